"""Provider adapter interface and the raw transaction record it yields."""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, field_validator


class PayerParty(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    party_id_type: str = Field(default="MSISDN", alias="partyIdType")
    party_id: str = Field(default="", alias="partyId")


class RawProviderTransaction(BaseModel):
    """One transaction as reported by a provider (transient, never persisted).

    Field names accept the provider's camelCase aliases. ``amount`` is kept as
    the provider's numeric string; it is validated per item during sync.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    external_id: str = Field(default="", alias="externalId")
    amount: str = ""
    currency: str = "GHS"
    status: str = "SUCCESSFUL"
    payer: PayerParty | None = None
    payer_message: str | None = Field(default=None, alias="payerMessage")
    payee_note: str | None = Field(default=None, alias="payeeNote")
    financial_transaction_id: str | None = Field(default=None, alias="financialTransactionId")
    created_at: datetime | None = Field(default=None, alias="createdAt")

    _invalid_reason: str | None = PrivateAttr(default=None)

    @field_validator("amount", mode="before")
    @classmethod
    def _amount_as_text(cls, value: Any) -> str:
        return "" if value is None else str(value)

    @field_validator("external_id", mode="before")
    @classmethod
    def _external_id_as_text(cls, value: Any) -> str:
        return "" if value is None else str(value).strip()

    @classmethod
    def rejected(cls, payload: Any, reason: str) -> RawProviderTransaction:
        """Stand-in for a record that failed validation.

        Keeps the external id when the payload carries one so the sync run can
        report the failure against it.
        """
        external_id = payload.get("externalId") if isinstance(payload, dict) else None
        record = cls(external_id=external_id)
        record._invalid_reason = reason
        return record

    @property
    def invalid_reason(self) -> str | None:
        return self._invalid_reason

    def payer_info(self) -> dict[str, str] | None:
        if self.payer is None:
            return None
        return self.payer.model_dump(by_alias=True)


class ProviderAdapter(ABC):
    """Abstract external account provider.

    A run calls ``initialize_session`` once, then ``fetch_candidates`` for one
    bounded page. Implementations raise ``ProviderUnavailableError`` when the
    provider cannot be reached or rejects the session.
    """

    source: str = "unknown"

    @abstractmethod
    async def initialize_session(self) -> None:
        """Authenticate / open the provider session."""

    @abstractmethod
    async def fetch_candidates(
        self, references: list[str], limit: int
    ) -> list[RawProviderTransaction]:
        """Return at most ``limit`` candidate transactions for ``references``."""

    async def close(self) -> None:
        """Release provider resources (HTTP clients, sessions)."""
        return None
