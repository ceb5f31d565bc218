"""Global error handling.

Exceptions that escape a route are converted to the same ``{data, error}``
envelope the services return, with the status from the error catalog.
Internal details are never returned or logged outside debug mode.
"""

import logging

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError

from ledgersync.api.envelope import error_body
from ledgersync.config import settings
from ledgersync.core.errors import get_error
from ledgersync.core.exceptions import LedgerSyncError

logger = logging.getLogger(__name__)


async def handle_domain_error(request: Request, exc: LedgerSyncError) -> JSONResponse:
    """Handle coded domain exceptions raised outside a service boundary."""
    extra = {"error_code": exc.error_code, "path": request.url.path, "method": request.method}
    if settings.debug:
        extra["details"] = exc.details

    logger.error(f"Domain error: {exc.error_code}", extra=extra)

    return JSONResponse(
        status_code=exc.http_status,
        content=error_body(exc.error_code, exc.message),
    )


async def handle_validation_error(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Handle request body/query validation errors."""
    error_messages = []
    for error in exc.errors():
        field = ".".join(str(x) for x in error.get("loc", []))
        msg = error.get("msg", "Invalid value")
        error_messages.append(f"{field}: {msg}")

    extra = {"path": request.url.path, "method": request.method}
    if settings.debug:
        extra["errors"] = exc.errors()
    logger.warning(f"Validation error on {request.url.path}", extra=extra)

    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_body("VALIDATION_INVALID_FORMAT", " | ".join(error_messages)),
    )


async def handle_integrity_error(request: Request, exc: IntegrityError) -> JSONResponse:
    """Handle database integrity errors."""
    # Do not log str(exc): it can include SQL + bound parameters.
    extra = {"path": request.url.path, "method": request.method}
    if settings.debug:
        logger.exception(f"Database integrity error on {request.url.path}", extra=extra)
    else:
        logger.error(f"Database integrity error on {request.url.path}", extra=extra)

    error_msg = str(exc).lower()
    code = "DB_002" if "unique" in error_msg or "duplicate" in error_msg else "DB_001"
    definition = get_error(code)
    return JSONResponse(
        status_code=definition["http_status"],
        content=error_body(code, definition["user_message"]),
    )


async def handle_generic_error(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions."""
    extra = {
        "error_type": type(exc).__name__,
        "path": request.url.path,
        "method": request.method,
    }
    if settings.debug:
        logger.exception(f"Unexpected error on {request.url.path}", extra=extra)
    else:
        logger.error(f"Unexpected error on {request.url.path}", extra=extra)

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_body("INTERNAL_ERROR", get_error("INTERNAL_ERROR")["user_message"]),
    )
