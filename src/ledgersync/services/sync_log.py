"""Sync audit log.

Audit writes never fail a run: errors are logged and swallowed.
"""

import logging
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ledgersync.core.result import rollback_quietly
from ledgersync.models.base import utcnow
from ledgersync.models.sync_log import SyncLog, SyncStatus, SyncType
from ledgersync.repositories.sync_log import SyncLogRepository

logger = logging.getLogger(__name__)

TERMINAL_STATUSES = (SyncStatus.SUCCESS, SyncStatus.FAILED)


class SyncLogService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.sync_log_repo = SyncLogRepository(db)

    async def create(
        self, owner_id: UUID, account_id: UUID, sync_type: SyncType = SyncType.MANUAL
    ) -> UUID | None:
        """Open an in-progress entry; returns its id, or None if the write failed."""
        entry = SyncLog(
            owner_id=owner_id,
            account_id=account_id,
            sync_type=SyncType(sync_type).value,
            status=SyncStatus.IN_PROGRESS.value,
            transactions_synced=0,
            started_at=utcnow(),
        )
        try:
            entry = await self.sync_log_repo.create(entry)
        except SQLAlchemyError as exc:
            logger.error(
                "Failed to create sync log",
                extra={"account_id": str(account_id), "error_type": type(exc).__name__},
            )
            await rollback_quietly(self.db)
            return None
        return entry.id

    async def finalize(
        self,
        log_id: UUID | None,
        status: SyncStatus,
        transactions_synced: int,
        error_message: str | None = None,
        item_error_count: int = 0,
    ) -> bool:
        """One-shot terminal update.

        Returns:
            True if the entry was finalized; False if there was no entry, it
            was already terminal, or the write failed

        Raises:
            ValueError: If ``status`` is not a terminal status
        """
        status = SyncStatus(status)
        if status not in TERMINAL_STATUSES:
            raise ValueError(f"Sync log can only be finalized as success or failed, not {status.value}")
        if log_id is None:
            return False

        try:
            entry = await self.sync_log_repo.get_by_id(log_id)
            if entry is None:
                logger.warning("Sync log not found", extra={"sync_log_id": str(log_id)})
                return False
            if entry.is_terminal:
                logger.warning(
                    "Refusing to finalize a terminal sync log",
                    extra={"sync_log_id": str(log_id), "status": entry.status},
                )
                return False
            await self.sync_log_repo.apply(
                entry,
                {
                    "status": status.value,
                    "transactions_synced": transactions_synced,
                    "item_error_count": item_error_count,
                    "error_message": error_message,
                    "completed_at": utcnow(),
                },
            )
        except SQLAlchemyError as exc:
            logger.error(
                "Failed to finalize sync log",
                extra={"sync_log_id": str(log_id), "error_type": type(exc).__name__},
            )
            await rollback_quietly(self.db)
            return False
        return True
