"""
Stream endpoints: read the reconciled view and connection health, and
trigger a manual reconnect of the push channel.
"""

from fastapi import APIRouter, Depends, HTTPException, Request
from typing import Any, Dict
import logging

from lockwatch.errors import TransportError, create_http_exception
from lockwatch.services.live_sync import LiveSync

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/stream", tags=["stream"])


def get_live_sync(request: Request) -> LiveSync:
    live_sync = getattr(request.app.state, "live_sync", None)
    if live_sync is None:
        raise HTTPException(status_code=503, detail="Live sync is not running")
    return live_sync


@router.get("/status")
async def stream_status(live_sync: LiveSync = Depends(get_live_sync)) -> Dict[str, Any]:
    """Connection status indicator plus channel health."""
    return live_sync.get_health_metrics()


@router.get("/hot-accounts")
async def stream_hot_accounts(live_sync: LiveSync = Depends(get_live_sync)) -> Dict[str, Any]:
    """Current reconciled records; empty until the first snapshot arrives."""
    view = live_sync.view
    return {
        "source": view.source.value if view else None,
        "retrieved_at": view.retrieved_at if view else None,
        "stale": live_sync.poll_errors.get("hot_accounts") is not None and not live_sync.connected,
        "records": [record.model_dump() for record in live_sync.hot_accounts],
    }


@router.post("/reconnect")
async def stream_reconnect(live_sync: LiveSync = Depends(get_live_sync)) -> Dict[str, Any]:
    """Cancel any pending retry and reconnect the push channel now."""
    if live_sync.push.stopped:
        raise create_http_exception(TransportError("Push channel is stopped"))

    live_sync.reconnect()
    logger.info("Push channel reconnect requested via /stream/reconnect")

    return {
        "success": True,
        "status": live_sync.status_label,
        "state": live_sync.state.value,
    }
