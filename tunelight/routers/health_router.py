"""Health endpoints."""

import time
from datetime import UTC, datetime

import httpx
from fastapi import APIRouter, Depends, Request

from tunelight import __version__
from tunelight.dependencies import get_http_client, get_orchestrator
from tunelight.models import DetailedHealthResponse, HealthResponse
from tunelight.services.sync_orchestrator import SyncOrchestrator

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health_check():
    """Basic liveness check.

    For component state, use `/health/ready`.
    """
    return HealthResponse(status="ok", version=__version__)


@router.get("/health/ready", response_model=DetailedHealthResponse)
async def readiness_check(
    request: Request,
    client: httpx.AsyncClient = Depends(get_http_client),
    orchestrator: SyncOrchestrator = Depends(get_orchestrator),
):
    """Component state snapshot.

    Never calls Spotify or the light; it only reports what the app already
    knows. Status is "ready" when the HTTP client is open and a valid token
    is held, "degraded" otherwise. Always answers 200, since a missing login
    is a normal state for this app.
    """
    checks = {
        "http_client": "closed" if client.is_closed else "ok",
        "spotify_auth": "ok" if orchestrator.is_authenticated else "not_authenticated",
        "auth_flow": orchestrator.auth_flow.state.value,
        "polling": "running" if orchestrator.is_polling else "stopped",
        "palette": "cached" if orchestrator.palette is not None else "none",
        "wled_target": "set" if orchestrator.device_target.is_set else "not_set",
        "spectrum": orchestrator.analyzer.state.value,
        "uptime_seconds": str(int(time.time() - getattr(request.app.state, "startup_time", time.time()))),
        "total_requests": str(getattr(request.app.state, "request_count", 0)),
    }
    ready = checks["http_client"] == "ok" and checks["spotify_auth"] == "ok"

    return DetailedHealthResponse(
        status="ready" if ready else "degraded",
        version=__version__,
        timestamp=datetime.now(UTC),
        checks=checks,
    )
