"""
System Endpoints
================

Health check with analysis snapshot readiness.
"""

import logging
import time
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from services.snapshot import SnapshotStore, get_snapshot_store

logger = logging.getLogger(__name__)
router = APIRouter()

_STARTED_AT = time.time()
_LAST_HEALTH_LOG_TS: float = 0.0


class HealthResponse(BaseModel):
    """Response model for the health check endpoint"""
    status: str
    uptime_seconds: float
    # True once a snapshot has been published and tiles can be served
    ready: bool
    snapshot_version: Optional[str] = None
    last_error: Optional[str] = None


@router.get("/health", response_model=HealthResponse)
def check_system_health(store: SnapshotStore = Depends(get_snapshot_store)):
    """Cheap health probe; never triggers an analysis run."""
    snapshot = store.peek()
    ready = snapshot is not None

    global _LAST_HEALTH_LOG_TS
    now = time.time()
    msg = f"🏥 HEALTH ► ready={ready} snapshot={snapshot.version[:12] if snapshot else '-'}"
    if now - _LAST_HEALTH_LOG_TS > 60:
        logger.info(msg)
        _LAST_HEALTH_LOG_TS = now
    else:
        logger.debug(msg)

    return HealthResponse(
        status="success",
        uptime_seconds=round(now - _STARTED_AT, 3),
        ready=ready,
        snapshot_version=snapshot.version if snapshot else None,
        last_error=store.last_error,
    )
