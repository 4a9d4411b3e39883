"""Album colour palette route."""

from typing import Literal

from fastapi import APIRouter, Depends, Query, Request

from tunelight.dependencies import get_orchestrator
from tunelight.services.sync_orchestrator import SyncOrchestrator
from tunelight.views.template_renderer import TemplateRenderer

router = APIRouter()


@router.get(
    "",
    summary="Current palette",
    description="""
    Swatches extracted from the current album artwork, most dominant first,
    plus the extraction status line ("Extracting colors...",
    "No album art available.", ...).
    """,
    responses={
        200: {
            "description": "Palette and status",
            "content": {
                "application/json": {
                    "example": {
                        "status": "",
                        "palette": {
                            "artwork_url": "https://i.scdn.co/image/ab67616d0000b273",
                            "swatches": [{"red": 200, "green": 30, "blue": 40, "area": 0.42, "hex": "#c81e28"}],
                        },
                    }
                }
            },
        },
    },
)
async def get_palette(
    request: Request,
    orchestrator: SyncOrchestrator = Depends(get_orchestrator),
    format: Literal["json", "html"] = Query(default="json", description="Response format"),
):
    """Get the cached palette."""
    if format == "html":
        return TemplateRenderer.render_palette_tile(request, orchestrator)
    palette = orchestrator.palette
    return {
        "status": orchestrator.palette_status,
        "palette": palette.model_dump(mode="json") if palette is not None else None,
    }
