"""FastAPI dependency injection for identity, database and sync services."""

from functools import lru_cache
from typing import Annotated
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from ledgersync.categorization import CategorizationEngine
from ledgersync.core.security import get_owner_id_from_token
from ledgersync.db.session import get_db
from ledgersync.providers import ProviderAdapter, get_provider
from ledgersync.services.sync import SyncOrchestrator

# Bearer token scheme; tokens are issued by the external identity provider.
security = HTTPBearer()


async def get_current_owner_id(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(security)],
) -> UUID:
    """
    Extract the owner id from the bearer JWT.

    Args:
        credentials: HTTP bearer token credentials

    Returns:
        Owner ID from the ``sub`` claim

    Raises:
        HTTPException: If the token is invalid, expired, or has no usable subject
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    try:
        return get_owner_id_from_token(credentials.credentials)
    except JWTError:
        raise credentials_exception
    except ValueError:
        raise credentials_exception


def get_sync_provider() -> ProviderAdapter:
    """Provider adapter for one request (selected by PROVIDER_MODE)."""
    return get_provider()


@lru_cache(maxsize=1)
def get_categorization_engine() -> CategorizationEngine:
    return CategorizationEngine()


async def get_sync_orchestrator(
    db: AsyncSession = Depends(get_db),
    provider: ProviderAdapter = Depends(get_sync_provider),
    engine: CategorizationEngine = Depends(get_categorization_engine),
) -> SyncOrchestrator:
    return SyncOrchestrator(db, provider=provider, engine=engine)
