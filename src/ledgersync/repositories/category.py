"""Category repository."""
from uuid import UUID

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from ledgersync.models.category import Category
from ledgersync.repositories.base import BaseRepository


class CategoryRepository(BaseRepository[Category]):
    """Repository for owner-scoped and system-wide categories."""

    def __init__(self, db: AsyncSession):
        super().__init__(db, Category)

    async def search_by_name(self, owner_id: UUID, term: str) -> list[Category]:
        """
        Case-insensitive partial-name search over owner and system categories.

        Owner-scoped rows come first, then system rows; within a scope the
        oldest row wins.
        """
        result = await self.db.execute(
            select(Category)
            .where(
                or_(Category.owner_id == owner_id, Category.owner_id.is_(None)),
                Category.name.ilike(f"%{term}%"),
            )
            .order_by(Category.owner_id.is_(None), Category.created_at)
        )
        return list(result.scalars().all())

    async def get_by_normalized_name(
        self, owner_id: UUID | None, normalized_name: str
    ) -> Category | None:
        scope = Category.owner_id.is_(None) if owner_id is None else Category.owner_id == owner_id
        result = await self.db.execute(
            select(Category).where(scope, Category.normalized_name == normalized_name)
        )
        return result.scalar_one_or_none()

    async def get_by_owner(self, owner_id: UUID) -> list[Category]:
        result = await self.db.execute(
            select(Category).where(Category.owner_id == owner_id).order_by(Category.name)
        )
        return list(result.scalars().all())
