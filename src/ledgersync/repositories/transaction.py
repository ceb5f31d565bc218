"""Transaction repository with dedup and provenance queries."""
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ledgersync.models.transaction import Transaction
from ledgersync.repositories.base import BaseRepository


class TransactionRepository(BaseRepository[Transaction]):
    """Repository for canonical ledger transactions."""

    def __init__(self, db: AsyncSession):
        super().__init__(db, Transaction)

    async def get_by_external_id(
        self, owner_id: UUID, provider_external_id: str
    ) -> Transaction | None:
        """Dedup lookup: the owner's row for a provider external id, if any."""
        result = await self.db.execute(
            select(Transaction).where(
                Transaction.owner_id == owner_id,
                Transaction.provider_external_id == provider_external_id,
            )
        )
        return result.scalar_one_or_none()

    async def get_synced(
        self, owner_id: UUID, skip: int = 0, limit: int = 100
    ) -> list[Transaction]:
        """Get provider-synced transactions for an owner, newest first."""
        result = await self.db.execute(
            select(Transaction)
            .where(
                Transaction.owner_id == owner_id,
                Transaction.provider_external_id.is_not(None),
            )
            .order_by(Transaction.txn_date.desc(), Transaction.created_at.desc())
            .offset(skip)
            .limit(limit)
        )
        return list(result.scalars().all())

    async def count_by_owner(self, owner_id: UUID) -> int:
        result = await self.db.execute(
            select(func.count()).select_from(Transaction).where(Transaction.owner_id == owner_id)
        )
        return int(result.scalar_one())
