"""Audit record of one synchronization run."""
from datetime import datetime
from enum import Enum
from uuid import UUID

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from ledgersync.models.base import BaseModel, utcnow


class SyncStatus(str, Enum):
    IN_PROGRESS = "in_progress"
    SUCCESS = "success"
    FAILED = "failed"


class SyncType(str, Enum):
    MANUAL = "manual"
    AUTOMATIC = "automatic"
    WEBHOOK = "webhook"


class SyncLog(BaseModel):
    """Sync log entry; created in progress and finalized exactly once."""

    __tablename__ = "sync_logs"

    owner_id: Mapped[UUID] = mapped_column(nullable=False, index=True)
    account_id: Mapped[UUID] = mapped_column(
        ForeignKey("linked_accounts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    sync_type: Mapped[str] = mapped_column(String(20), nullable=False, default=SyncType.MANUAL.value)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=SyncStatus.IN_PROGRESS.value)
    transactions_synced: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    item_error_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    @property
    def is_terminal(self) -> bool:
        return self.status != SyncStatus.IN_PROGRESS.value

    def __repr__(self) -> str:
        return f"<SyncLog(id={self.id}, status={self.status}, synced={self.transactions_synced})>"
