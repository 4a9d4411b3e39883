"""Template rendering utilities for HTML views."""

from pathlib import Path
from typing import TYPE_CHECKING

from fastapi import Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates

from tunelight.models import PollOutcome

if TYPE_CHECKING:
    from tunelight.services.sync_orchestrator import SyncOrchestrator


TEMPLATES_DIR = Path(__file__).parent.parent / "templates"
templates = Jinja2Templates(directory=TEMPLATES_DIR)

NOTHING_PLAYING = "N/A (Nothing playing or private session)"


class TemplateRenderer:
    """Handles rendering of Jinja2 templates for the page and its tiles."""

    @staticmethod
    def render_index(request: Request, orchestrator: "SyncOrchestrator") -> HTMLResponse:
        """Render the login view, or the main view when a valid token is held."""
        return templates.TemplateResponse(
            request,
            "index.html",
            {
                "authenticated": orchestrator.is_authenticated,
                "auth_error": orchestrator.auth_flow.last_error,
                "device_ip": orchestrator.device_target.ip,
                "audio_running": orchestrator.analyzer.is_running,
                "audio_light_mode": orchestrator.context.settings.audio_light_mode,
            },
        )

    @staticmethod
    def render_now_playing_tile(request: Request, orchestrator: "SyncOrchestrator") -> HTMLResponse:
        """Render the now-playing tile.

        A poll that needs a new login answers with ``HX-Refresh`` so the
        whole page reloads into the login view.
        """
        result = orchestrator.last_poll
        context: dict = {"loading": result is None, "artwork_url": None}

        if result is not None and result.outcome is PollOutcome.PLAYING and result.state is not None:
            context.update(
                track_name=result.state.track_name,
                artist_name=result.state.artist_display,
                album_name=result.state.album_name,
                artwork_url=result.state.artwork_url,
            )
        elif result is not None and result.outcome is PollOutcome.ERROR:
            context.update(track_name=f"Error: {result.error}", artist_name=None, album_name=None)
        elif result is not None:
            context.update(track_name=NOTHING_PLAYING, artist_name="N/A", album_name="N/A")

        response = templates.TemplateResponse(request, "tiles/now_playing.html", context)
        if result is not None and result.needs_reauth:
            response.headers["HX-Refresh"] = "true"
        return response

    @staticmethod
    def render_palette_tile(request: Request, orchestrator: "SyncOrchestrator") -> HTMLResponse:
        """Render extracted swatches, or the palette status message."""
        palette = orchestrator.palette
        return templates.TemplateResponse(
            request,
            "tiles/palette.html",
            {
                "status": orchestrator.palette_status,
                "swatches": palette.swatches if palette is not None else [],
            },
        )

    @staticmethod
    def render_light_tile(request: Request, orchestrator: "SyncOrchestrator") -> HTMLResponse:
        """Render the WLED status line."""
        return templates.TemplateResponse(
            request,
            "tiles/light_status.html",
            {
                "status": orchestrator.light_status,
                "device_ip": orchestrator.device_target.ip,
            },
        )

    @staticmethod
    def render_spectrum_tile(request: Request, orchestrator: "SyncOrchestrator") -> HTMLResponse:
        """Render the spectrum canvas as an SVG fragment."""
        snapshot = orchestrator.analyzer.snapshot()
        return templates.TemplateResponse(
            request,
            "tiles/spectrum.html",
            {
                "snapshot": snapshot,
                "running": orchestrator.analyzer.is_running,
                "error": orchestrator.audio_status,
            },
        )
