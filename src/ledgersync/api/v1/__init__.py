"""API version 1 routes."""

from fastapi import APIRouter

from ledgersync.api.v1 import categorize, sync

router = APIRouter(prefix="/api/v1")

router.include_router(sync.router)
router.include_router(categorize.router)
