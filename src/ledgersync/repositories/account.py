"""Linked account repository."""
from datetime import datetime
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ledgersync.models.linked_account import LinkedAccount
from ledgersync.repositories.base import BaseRepository


class LinkedAccountRepository(BaseRepository[LinkedAccount]):
    """Repository for LinkedAccount scoped by owner and provider source."""

    def __init__(self, db: AsyncSession):
        super().__init__(db, LinkedAccount)

    async def get_by_owner(
        self, owner_id: UUID, provider_source: str, active_only: bool = False
    ) -> list[LinkedAccount]:
        """Get the owner's accounts for a provider, newest first."""
        query = select(LinkedAccount).where(
            LinkedAccount.owner_id == owner_id,
            LinkedAccount.provider_source == provider_source,
        )
        if active_only:
            query = query.where(LinkedAccount.is_active.is_(True))
        result = await self.db.execute(
            query.order_by(LinkedAccount.created_at.desc(), LinkedAccount.id.desc())
        )
        return list(result.scalars().all())

    async def get_active_by_reference(
        self, owner_id: UUID, reference: str, provider_source: str
    ) -> LinkedAccount | None:
        result = await self.db.execute(
            select(LinkedAccount).where(
                LinkedAccount.owner_id == owner_id,
                LinkedAccount.reference == reference,
                LinkedAccount.provider_source == provider_source,
                LinkedAccount.is_active.is_(True),
            )
        )
        return result.scalar_one_or_none()

    async def get_for_owner(
        self, owner_id: UUID, account_id: UUID, provider_source: str
    ) -> LinkedAccount | None:
        """Get one account only if it belongs to the owner and provider."""
        result = await self.db.execute(
            select(LinkedAccount).where(
                LinkedAccount.id == account_id,
                LinkedAccount.owner_id == owner_id,
                LinkedAccount.provider_source == provider_source,
            )
        )
        return result.scalar_one_or_none()

    async def mark_synced(self, account_ids: list[UUID], synced_at: datetime) -> None:
        """Stamp ``last_synced_at`` on the given accounts."""
        if not account_ids:
            return
        await self.db.execute(
            update(LinkedAccount)
            .where(LinkedAccount.id.in_(account_ids))
            .values(last_synced_at=synced_at)
        )
        await self.db.commit()
