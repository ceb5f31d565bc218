"""Sync endpoints: trigger a run, read run history and synced transactions."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Body, Depends, Query
from fastapi.responses import JSONResponse

from ledgersync.api.deps import get_current_owner_id, get_sync_orchestrator
from ledgersync.api.envelope import to_response
from ledgersync.schemas.sync import SyncRequest
from ledgersync.services.sync import SyncOrchestrator

router = APIRouter(prefix="/sync", tags=["sync"])


@router.post("")
async def trigger_sync(
    owner_id: Annotated[UUID, Depends(get_current_owner_id)],
    orchestrator: Annotated[SyncOrchestrator, Depends(get_sync_orchestrator)],
    request: Annotated[SyncRequest | None, Body()] = None,
) -> JSONResponse:
    """Run one synchronization for the authenticated owner.

    Item-level failures are reported in ``data.errors`` with a 200 status;
    run-level failures return the coded error envelope.
    """
    request = request or SyncRequest()
    result = await orchestrator.sync_transactions(owner_id, request.sync_type)
    return to_response(result)


@router.get("/history")
async def sync_history(
    owner_id: Annotated[UUID, Depends(get_current_owner_id)],
    orchestrator: Annotated[SyncOrchestrator, Depends(get_sync_orchestrator)],
    limit: int = Query(10, ge=1, le=100),
) -> JSONResponse:
    """Most recent sync runs, newest first."""
    result = await orchestrator.get_sync_history(owner_id, limit)
    return to_response(result)


@router.get("/transactions")
async def synced_transactions(
    owner_id: Annotated[UUID, Depends(get_current_owner_id)],
    orchestrator: Annotated[SyncOrchestrator, Depends(get_sync_orchestrator)],
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
) -> JSONResponse:
    """Provider-synced transactions, newest first."""
    result = await orchestrator.list_synced_transactions(owner_id, skip, limit)
    return to_response(result)
