"""Uniform result envelope for the public service API.

Every public service operation returns a ``ServiceResult``: either
``data`` is set, or ``error`` carries a stable code and a message. Domain
and validation errors never propagate past a service method decorated with
``service_operation``.
"""

import functools
import logging
from typing import Any, Awaitable, Callable, Generic, TypeVar

from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError

from ledgersync.config import settings
from ledgersync.core.exceptions import LedgerSyncError, ValidationError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ErrorInfo(BaseModel):
    """Error payload of the result envelope."""

    code: str
    message: str


class ServiceResult(BaseModel, Generic[T]):
    """Tagged result: success-with-data or failure-with-coded-error."""

    data: T | None = None
    error: ErrorInfo | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, data: Any = None) -> "ServiceResult":
        return cls(data=data)

    @classmethod
    def failure(cls, code: str, message: str) -> "ServiceResult":
        return cls(error=ErrorInfo(code=code, message=message))


async def rollback_quietly(db: Any) -> None:
    """Roll back ``db``, logging (not raising) a failed rollback."""
    if db is None:
        return
    try:
        await db.rollback()
    except SQLAlchemyError:
        logger.error("Rollback after failed operation also failed")


def service_operation(fallback_code: str):
    """Wrap an async service method so it returns a ``ServiceResult``.

    Args:
        fallback_code: Code used for unexpected (non-domain) errors

    Returns:
        Decorator converting return values and exceptions into envelopes
    """

    def decorator(
        func: Callable[..., Awaitable[Any]],
    ) -> Callable[..., Awaitable[ServiceResult]]:
        @functools.wraps(func)
        async def wrapper(self, *args, **kwargs) -> ServiceResult:
            operation = func.__qualname__
            try:
                data = await func(self, *args, **kwargs)
            except ValidationError as exc:
                logger.warning(
                    "Validation failed",
                    extra={"operation": operation, "error_code": exc.error_code, "field": exc.field},
                )
                await rollback_quietly(getattr(self, "db", None))
                return ServiceResult.failure(exc.error_code, exc.message)
            except LedgerSyncError as exc:
                extra = {"operation": operation, "error_code": exc.error_code}
                if settings.debug:
                    extra["details"] = exc.details
                logger.warning(f"Operation failed: {exc.error_code}", extra=extra)
                await rollback_quietly(getattr(self, "db", None))
                return ServiceResult.failure(exc.error_code, exc.message)
            except Exception as exc:
                # Do not log str(exc) outside debug: it can include SQL + bound parameters.
                extra = {"operation": operation, "error_type": type(exc).__name__}
                if settings.debug:
                    logger.exception("Unexpected error", extra=extra)
                else:
                    logger.error("Unexpected error", extra=extra)
                await rollback_quietly(getattr(self, "db", None))
                message = str(exc) if settings.debug else "An unexpected error occurred."
                return ServiceResult.failure(fallback_code, message)
            return ServiceResult.success(data)

        return wrapper

    return decorator
