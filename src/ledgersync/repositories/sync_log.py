"""Sync log repository."""
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ledgersync.models.sync_log import SyncLog
from ledgersync.repositories.base import BaseRepository


class SyncLogRepository(BaseRepository[SyncLog]):
    """Repository for SyncLog audit entries."""

    def __init__(self, db: AsyncSession):
        super().__init__(db, SyncLog)

    async def get_recent(self, owner_id: UUID, limit: int = 10) -> list[SyncLog]:
        """Get the owner's most recent runs, newest first."""
        result = await self.db.execute(
            select(SyncLog)
            .where(SyncLog.owner_id == owner_id)
            .order_by(SyncLog.started_at.desc(), SyncLog.created_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())
