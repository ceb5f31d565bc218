"""Canonical ledger transaction, optionally carrying provider provenance."""
from datetime import date
from enum import Enum
from typing import Any
from uuid import UUID

from sqlalchemy import JSON, BigInteger, Boolean, Date, Float, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ledgersync.models.base import BaseModel


class Direction(str, Enum):
    INCOME = "income"
    EXPENSE = "expense"


class Transaction(BaseModel):
    """The system's own ledger record for one real-world transaction."""

    __tablename__ = "transactions"

    owner_id: Mapped[UUID] = mapped_column(nullable=False, index=True)
    account_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("linked_accounts.id", ondelete="SET NULL"), nullable=True
    )
    category_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("categories.id", ondelete="SET NULL"), nullable=True, index=True
    )
    sync_log_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("sync_logs.id", ondelete="SET NULL"), nullable=True
    )
    # Amount in minor units (pesewas/cents), always non-negative; see direction.
    amount: Mapped[int] = mapped_column(BigInteger, nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    direction: Mapped[str] = mapped_column(String(10), nullable=False)
    txn_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    description: Mapped[str] = mapped_column(String(255), nullable=False)
    merchant_name: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # Provider provenance
    provider_source: Mapped[str | None] = mapped_column(String(30), nullable=True)
    provider_external_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    provider_reference: Mapped[str | None] = mapped_column(String(50), nullable=True)
    provider_status: Mapped[str | None] = mapped_column(String(20), nullable=True)
    provider_payer_info: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    provider_financial_transaction_id: Mapped[str | None] = mapped_column(String(100), nullable=True)

    # Categorization metadata
    auto_categorized: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    confidence: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    needs_review: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    __table_args__ = (
        UniqueConstraint("owner_id", "provider_external_id", name="uq_transactions_owner_external_id"),
        Index("ix_transactions_owner_id_txn_date", "owner_id", "txn_date"),
    )

    category: Mapped["Category"] = relationship("Category", lazy="joined")

    def __repr__(self) -> str:
        return (
            f"<Transaction(id={self.id}, external_id={self.provider_external_id}, "
            f"amount={self.amount})>"
        )
