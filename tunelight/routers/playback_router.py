"""Now-playing routes with support for JSON and HTML responses."""

from typing import Literal

from fastapi import APIRouter, Depends, Query, Request

from tunelight.dependencies import get_orchestrator
from tunelight.exceptions import TokenExpiredOrRejectedException
from tunelight.models import ErrorResponse, PollResult
from tunelight.services.sync_orchestrator import SyncOrchestrator
from tunelight.views.template_renderer import TemplateRenderer

router = APIRouter()


@router.get(
    "/now-playing",
    summary="Last observed playback",
    description="""
    Returns the result of the most recent now-playing poll. Polling itself
    runs in the background every `poll_interval_seconds`; this endpoint never
    calls Spotify.
    """,
    responses={
        200: {
            "description": "Last poll result (null before the first poll)",
            "content": {
                "application/json": {
                    "example": {
                        "outcome": "playing",
                        "state": {
                            "track_name": "Bohemian Rhapsody",
                            "artist_names": ["Queen"],
                            "album_name": "A Night at the Opera",
                            "artwork_url": "https://i.scdn.co/image/ab67616d0000b273",
                        },
                        "artwork_changed": False,
                        "error": None,
                    }
                }
            },
        },
    },
)
async def now_playing(
    request: Request,
    orchestrator: SyncOrchestrator = Depends(get_orchestrator),
    format: Literal["json", "html"] = Query(default="json", description="Response format"),
):
    """Get the last poll result.

    Args:
        request: FastAPI request object
        orchestrator: Sync orchestrator from dependency injection
        format: Response format - 'json' for API, 'html' for HTMX

    Returns:
        PollResult JSON or now-playing tile fragment
    """
    if format == "html":
        return TemplateRenderer.render_now_playing_tile(request, orchestrator)
    return orchestrator.last_poll


@router.post(
    "/refresh",
    summary="Poll Spotify now",
    description="""
    Runs a poll immediately. If a poll is already in progress, waits for it
    and returns its result instead of issuing a second request.
    """,
    responses={
        200: {"description": "Fresh poll result", "model": PollResult},
        401: {"description": "Token missing, expired or rejected - log in again", "model": ErrorResponse},
    },
)
async def refresh(
    request: Request,
    orchestrator: SyncOrchestrator = Depends(get_orchestrator),
    format: Literal["json", "html"] = Query(default="json", description="Response format"),
):
    """Poll on demand."""
    result = await orchestrator.refresh()
    if format == "html":
        return TemplateRenderer.render_now_playing_tile(request, orchestrator)
    if result.needs_reauth:
        raise TokenExpiredOrRejectedException()
    return result
