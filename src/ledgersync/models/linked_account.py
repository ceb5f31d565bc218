"""Linked external account (bank or mobile-money) owned by a user."""
from datetime import datetime
from enum import Enum
from uuid import UUID

from sqlalchemy import Boolean, DateTime, Index, String, text
from sqlalchemy.orm import Mapped, mapped_column

from ledgersync.models.base import BaseModel


class AccountKind(str, Enum):
    BANK = "bank"
    MOBILE_MONEY = "mobile_money"


class LinkedAccount(BaseModel):
    """An external provider account linked by an owner.

    Accounts are soft-deactivated on unlink and never hard-deleted.
    """

    __tablename__ = "linked_accounts"

    owner_id: Mapped[UUID] = mapped_column(nullable=False, index=True)
    reference: Mapped[str] = mapped_column(String(50), nullable=False)
    display_name: Mapped[str] = mapped_column(String(50), nullable=False)
    kind: Mapped[str] = mapped_column(String(20), nullable=False, default=AccountKind.MOBILE_MONEY.value)
    provider_source: Mapped[str] = mapped_column(String(30), nullable=False, index=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    last_synced_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        # At most one active link per (owner, reference, provider).
        Index(
            "uq_linked_accounts_active_reference",
            "owner_id",
            "reference",
            "provider_source",
            unique=True,
            postgresql_where=text("is_active"),
            sqlite_where=text("is_active = 1"),
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<LinkedAccount(id={self.id}, provider={self.provider_source}, "
            f"active={self.is_active})>"
        )
