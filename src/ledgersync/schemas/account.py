"""Linked account schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class LinkedAccountResponse(BaseModel):
    """Linked account as returned by the account registry."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    owner_id: UUID
    reference: str
    display_name: str
    kind: str
    provider_source: str
    is_active: bool
    last_synced_at: datetime | None = None
    created_at: datetime
