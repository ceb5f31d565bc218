"""Sync request/response schemas."""

from datetime import date, datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from ledgersync.models.sync_log import SyncType


class SyncRequest(BaseModel):
    """Request body for triggering a sync run."""

    sync_type: SyncType = Field(default=SyncType.MANUAL)


class SyncResult(BaseModel):
    """Outcome of one sync run.

    ``errors`` holds per-item failures; they do not make the run fail.
    """

    total: int = 0
    new: int = 0
    updated: int = 0
    errors: list[str] = Field(default_factory=list)
    sync_log_id: UUID | None = None


class SyncLogResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    account_id: UUID
    sync_type: str
    status: str
    transactions_synced: int
    item_error_count: int
    error_message: str | None = None
    started_at: datetime
    completed_at: datetime | None = None


class CategorySummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    icon_name: str
    direction: str | None = None


class SyncedTransactionResponse(BaseModel):
    """Canonical transaction carrying provider provenance."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    account_id: UUID | None = None
    amount: int = Field(description="Amount in minor units (e.g. pesewas)")
    currency: str
    direction: str
    txn_date: date
    description: str
    merchant_name: str | None = None
    category: CategorySummary | None = None
    confidence: float
    auto_categorized: bool
    needs_review: bool
    provider_external_id: str | None = None
    provider_status: str | None = None
    provider_reference: str | None = None
    provider_financial_transaction_id: str | None = None
    provider_payer_info: dict[str, Any] | None = None
    sync_log_id: UUID | None = None
