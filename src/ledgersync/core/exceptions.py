"""Custom exception classes for account linking and synchronization.

This module defines a hierarchy of exceptions used throughout the sync
pipeline. Each exception maps to a specific error code defined in errors.py.
Services catch these at their public boundary and turn them into a
``ServiceResult`` error envelope.
"""

from typing import Any

from ledgersync.core.errors import get_error


class LedgerSyncError(Exception):
    """Base exception for all coded domain errors.

    Attributes:
        error_code: Code from the error catalog (e.g., "ACCOUNT_NOT_FOUND")
        message: Human readable message (defaults to the catalog user message)
        details: Additional context about the error (for logging)
        http_status: HTTP status code to return
    """

    default_code = "INTERNAL_ERROR"

    def __init__(
        self,
        message: str | None = None,
        details: dict[str, Any] | None = None,
        error_code: str | None = None,
        http_status: int | None = None,
    ):
        """Initialize the exception.

        Args:
            message: Optional message overriding the catalog user message
            details: Additional error context (not shown to users)
            error_code: Optional override of the class default code
            http_status: Optional override of the catalog HTTP status
        """
        self.error_code = error_code or self.default_code
        definition = get_error(self.error_code)
        self.message = message or definition["user_message"]
        self.details = details or {}
        self.http_status = http_status or definition["http_status"]
        super().__init__(self.message)


class ValidationError(LedgerSyncError):
    """Raised when caller input fails validation.

    Carries the offending field and value in addition to the message.
    """

    default_code = "VALIDATION_INVALID_FORMAT"

    def __init__(
        self,
        field: str,
        message: str,
        value: Any = None,
        error_code: str | None = None,
    ):
        self.field = field
        self.value = value
        super().__init__(
            message,
            details={"field": field, "value": value},
            error_code=error_code,
        )


class AuthenticationError(LedgerSyncError):
    """Raised when no owner identity is available for an operation."""

    default_code = "AUTH_USER_NOT_FOUND"


class AccountNotFoundError(LedgerSyncError):
    """Raised when a linked account does not exist for the owner."""

    default_code = "ACCOUNT_NOT_FOUND"


class AccountAlreadyLinkedError(LedgerSyncError):
    """Raised when an active account already exists for the reference."""

    default_code = "ACCOUNT_ALREADY_LINKED"


class NoActiveAccountError(LedgerSyncError):
    """Raised when a sync is requested for an owner without active accounts."""

    default_code = "NO_ACTIVE_ACCOUNT"


class ProviderUnavailableError(LedgerSyncError):
    """Raised when the provider session cannot be initialized or queried.

    Common causes:
    - Missing or rejected provider credentials
    - Provider API timeouts or 5xx responses
    - Malformed provider payloads
    """

    default_code = "PROVIDER_UNAVAILABLE"


class SyncFailedError(LedgerSyncError):
    """Raised when a sync run fails for a reason other than the provider."""

    default_code = "SYNC_FAILED"
