from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from sqlalchemy.exc import IntegrityError

from ledgersync.api.middleware.error_handler import (
    handle_domain_error,
    handle_generic_error,
    handle_integrity_error,
    handle_validation_error,
)
from ledgersync.api.middleware.logging import RequestLoggingMiddleware, configure_logging
from ledgersync.api.v1 import router as v1_router
from ledgersync.api.v1.health import router as health_router
from ledgersync.config import settings
from ledgersync.core.exceptions import LedgerSyncError


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    configure_logging()
    yield
    # Shutdown


def create_app() -> FastAPI:
    app = FastAPI(
        title="LedgerSync API",
        description="Provider transaction sync, reconciliation and categorization",
        version="0.1.0",
        debug=settings.debug,
        lifespan=lifespan,
    )

    app.add_middleware(RequestLoggingMiddleware)

    # Register exception handlers (order matters - most specific first)
    app.add_exception_handler(LedgerSyncError, handle_domain_error)
    app.add_exception_handler(RequestValidationError, handle_validation_error)
    app.add_exception_handler(IntegrityError, handle_integrity_error)
    app.add_exception_handler(Exception, handle_generic_error)

    app.include_router(health_router)
    app.include_router(v1_router)

    return app


app = create_app()
