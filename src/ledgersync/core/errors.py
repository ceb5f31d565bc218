"""Error codes and user-friendly messages.

This module defines the error catalog for account linking, synchronization
and categorization. Each error has:
- code: Unique identifier (stable, returned to callers in the result envelope)
- message: Technical description (for logs)
- user_message: User-friendly explanation
- suggestion: Actionable guidance for the user
- retry_allowed: Whether the error is retryable
- http_status: Status code used when the envelope crosses the HTTP boundary
"""

ERROR_CATALOG: dict[str, dict] = {
    # Validation
    "VALIDATION_REQUIRED_FIELD": {
        "code": "VALIDATION_REQUIRED_FIELD",
        "message": "A required field is missing",
        "user_message": "This field is required.",
        "suggestion": "Please fill in all required fields.",
        "retry_allowed": True,
        "http_status": 400,
    },
    "VALIDATION_INVALID_FORMAT": {
        "code": "VALIDATION_INVALID_FORMAT",
        "message": "Input failed format validation",
        "user_message": "Please enter a valid format.",
        "suggestion": "Check the value and try again.",
        "retry_allowed": True,
        "http_status": 400,
    },
    "VALIDATION_INVALID_RANGE": {
        "code": "VALIDATION_INVALID_RANGE",
        "message": "Input is outside the allowed range",
        "user_message": "Value is outside the allowed range.",
        "suggestion": "Check the value and try again.",
        "retry_allowed": True,
        "http_status": 400,
    },
    # Identity
    "AUTH_USER_NOT_FOUND": {
        "code": "AUTH_USER_NOT_FOUND",
        "message": "No authenticated owner for this operation",
        "user_message": "User not authenticated.",
        "suggestion": "Please log in again.",
        "retry_allowed": False,
        "http_status": 401,
    },
    # Accounts
    "ACCOUNT_NOT_FOUND": {
        "code": "ACCOUNT_NOT_FOUND",
        "message": "Linked account not found for owner",
        "user_message": "Account not found.",
        "suggestion": "Refresh your linked accounts and try again.",
        "retry_allowed": False,
        "http_status": 404,
    },
    "ACCOUNT_ALREADY_LINKED": {
        "code": "ACCOUNT_ALREADY_LINKED",
        "message": "An active account with this reference is already linked",
        "user_message": "This account is already linked to your profile.",
        "suggestion": "Use the existing linked account instead.",
        "retry_allowed": False,
        "http_status": 409,
    },
    "NO_ACTIVE_ACCOUNT": {
        "code": "NO_ACTIVE_ACCOUNT",
        "message": "Owner has no active linked account for the provider",
        "user_message": "No active accounts found.",
        "suggestion": "Please link an account first.",
        "retry_allowed": False,
        "http_status": 404,
    },
    # Provider / sync
    "PROVIDER_UNAVAILABLE": {
        "code": "PROVIDER_UNAVAILABLE",
        "message": "Provider session could not be initialized or queried",
        "user_message": "The provider service is temporarily unavailable.",
        "suggestion": "Please try again in a few minutes.",
        "retry_allowed": True,
        "http_status": 503,
    },
    "SYNC_FAILED": {
        "code": "SYNC_FAILED",
        "message": "Synchronization run failed",
        "user_message": "Failed to sync transactions.",
        "suggestion": "Please try again.",
        "retry_allowed": True,
        "http_status": 500,
    },
    # Persistence / generic
    "DB_001": {
        "code": "DB_001",
        "message": "Database operation failed",
        "user_message": "A database error occurred.",
        "suggestion": "Please try again later.",
        "retry_allowed": True,
        "http_status": 500,
    },
    "DB_002": {
        "code": "DB_002",
        "message": "Resource already exists",
        "user_message": "This record already exists.",
        "suggestion": "Please check if the record was already created.",
        "retry_allowed": False,
        "http_status": 409,
    },
    "INTERNAL_ERROR": {
        "code": "INTERNAL_ERROR",
        "message": "Internal server error",
        "user_message": "An unexpected error occurred.",
        "suggestion": "Please try again later or contact support.",
        "retry_allowed": True,
        "http_status": 500,
    },
}


def get_error(error_code: str) -> dict:
    """Get error definition by code.

    Unknown codes (e.g. operation-specific wrappers such as
    ``LINK_ACCOUNT_ERROR``) resolve to a generic definition that keeps the
    requested code.

    Args:
        error_code: Error code from the catalog

    Returns:
        Dict with error details
    """
    if error_code not in ERROR_CATALOG:
        return {
            "code": error_code,
            "message": f"Unexpected error ({error_code})",
            "user_message": "An unexpected error occurred.",
            "suggestion": "Please try again. Contact support if the problem persists.",
            "retry_allowed": True,
            "http_status": 500,
        }
    return ERROR_CATALOG[error_code]


def get_user_message(error_code: str) -> str:
    """Get user-friendly message for an error code."""
    return get_error(error_code)["user_message"]


def get_http_status(error_code: str) -> int:
    """Get the HTTP status used when an error crosses the API boundary."""
    return get_error(error_code)["http_status"]
