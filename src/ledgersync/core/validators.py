"""Input validators shared by the account registry and sync pipeline."""

import re
from decimal import Decimal, InvalidOperation
from typing import Any, Callable
from uuid import UUID

from ledgersync.config import settings
from ledgersync.core.exceptions import AuthenticationError, ValidationError

ACCOUNT_NAME_MIN_LENGTH = 2
ACCOUNT_NAME_MAX_LENGTH = 50

_REFERENCE_SEPARATORS = re.compile(r"[\s\-()]")


def validate_input(
    field: str,
    value: Any,
    check: Callable[[Any], bool],
    message: str,
    error_code: str | None = None,
) -> None:
    """Raise ``ValidationError`` for ``field`` when ``check(value)`` fails."""
    if value is None or not check(value):
        raise ValidationError(field, message, value, error_code=error_code)


def require_owner(owner_id: UUID | None) -> UUID:
    """Return the owner id or raise when the caller is not authenticated."""
    if owner_id is None:
        raise AuthenticationError("User not authenticated")
    return owner_id


def normalize_reference(reference: str) -> str:
    """Strip whitespace, dashes and brackets from a provider reference."""
    return _REFERENCE_SEPARATORS.sub("", reference or "")


def is_valid_reference(reference: str, pattern: str | None = None) -> bool:
    return re.match(pattern or settings.account_reference_pattern, reference) is not None


def is_valid_account_name(name: str) -> bool:
    length = len(name.strip())
    return ACCOUNT_NAME_MIN_LENGTH <= length <= ACCOUNT_NAME_MAX_LENGTH


def parse_amount(field: str, raw: Any) -> Decimal:
    """Parse a provider amount into a finite, non-negative ``Decimal``.

    Args:
        field: Field name reported in the validation error
        raw: Amount as delivered by the provider (usually a numeric string)

    Returns:
        Parsed amount

    Raises:
        ValidationError: If the amount is missing, non-numeric, not finite or negative
    """
    try:
        amount = Decimal(str(raw).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError(field, "Transaction amount is invalid", raw)

    if not amount.is_finite():
        raise ValidationError(field, "Transaction amount is invalid", raw)
    if amount < 0:
        raise ValidationError(
            field,
            "Transaction amount must not be negative",
            raw,
            error_code="VALIDATION_INVALID_RANGE",
        )
    return amount


def to_minor_units(amount: Decimal, minor_unit: int | None = None) -> int:
    """Convert a major-unit amount to integer minor units (e.g. 25.50 -> 2550)."""
    exponent = settings.currency_minor_unit if minor_unit is None else minor_unit
    return int((amount * (Decimal(10) ** exponent)).to_integral_value())
