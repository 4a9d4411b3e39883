"""Page routes for serving the HTML page."""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse

from tunelight.dependencies import get_orchestrator
from tunelight.services.sync_orchestrator import SyncOrchestrator
from tunelight.views.template_renderer import TemplateRenderer

router = APIRouter()


@router.get("/", response_class=HTMLResponse)
async def index(request: Request, orchestrator: SyncOrchestrator = Depends(get_orchestrator)):
    """Render the login view or the main view."""
    return TemplateRenderer.render_index(request, orchestrator)
