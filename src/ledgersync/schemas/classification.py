"""Categorization request/response schemas."""

from decimal import Decimal

from pydantic import BaseModel, Field


class CategorizeRequest(BaseModel):
    """Ad-hoc classification of a transaction description."""

    description: str = Field(default="", max_length=500)
    amount: Decimal = Field(ge=0, description="Major-unit amount, e.g. 25.50")
    payee_note: str | None = Field(default=None, max_length=500)
    merchant_hint: str | None = Field(default=None, max_length=100)


class ClassificationResponse(BaseModel):
    category_id: str
    category_name: str
    direction: str
    confidence: float = Field(ge=0, le=100)
    reasons: list[str]
    is_fallback: bool
    needs_review: bool
    merchant_name: str
