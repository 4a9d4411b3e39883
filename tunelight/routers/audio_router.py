"""Microphone spectrum analyzer routes."""

from typing import Literal

from fastapi import APIRouter, Depends, Query, Request

from tunelight.dependencies import get_orchestrator
from tunelight.exceptions import MediaAccessException
from tunelight.models import ErrorResponse, SpectrumSnapshot
from tunelight.services.spectrum_analyzer import AnalyzerState
from tunelight.services.sync_orchestrator import SyncOrchestrator
from tunelight.views.template_renderer import TemplateRenderer

router = APIRouter()

MICROPHONE_ERRORS = {503: {"description": "Microphone unavailable", "model": ErrorResponse}}


async def _control(
    request: Request,
    orchestrator: SyncOrchestrator,
    action: Literal["start", "stop", "toggle"],
    format: Literal["json", "html"],
):
    operations = {
        "start": orchestrator.start_audio,
        "stop": orchestrator.stop_audio,
        "toggle": orchestrator.toggle_audio,
    }
    try:
        state: AnalyzerState = await operations[action]()
    except MediaAccessException:
        # The HTML tile shows orchestrator.audio_status instead
        if format != "html":
            raise
        state = orchestrator.analyzer.state
    if format == "html":
        return TemplateRenderer.render_spectrum_tile(request, orchestrator)
    return {"state": state.value}


@router.post("/toggle", summary="Start or stop audio analysis", responses=MICROPHONE_ERRORS)
async def toggle(
    request: Request,
    orchestrator: SyncOrchestrator = Depends(get_orchestrator),
    format: Literal["json", "html"] = Query(default="json", description="Response format"),
):
    """Start analysis when stopped, stop it otherwise."""
    return await _control(request, orchestrator, "toggle", format)


@router.post("/start", summary="Start audio analysis", responses=MICROPHONE_ERRORS)
async def start(
    request: Request,
    orchestrator: SyncOrchestrator = Depends(get_orchestrator),
    format: Literal["json", "html"] = Query(default="json", description="Response format"),
):
    """Open the microphone and start rendering. A no-op while running."""
    return await _control(request, orchestrator, "start", format)


@router.post("/stop", summary="Stop audio analysis")
async def stop(
    request: Request,
    orchestrator: SyncOrchestrator = Depends(get_orchestrator),
    format: Literal["json", "html"] = Query(default="json", description="Response format"),
):
    """Stop rendering and release the microphone."""
    return await _control(request, orchestrator, "stop", format)


@router.get(
    "/spectrum",
    summary="Latest spectrum frame",
    description="""
    Bars currently drawn on the spectrum canvas. Empty while analysis is
    stopped. The HTML format renders them as an SVG.
    """,
    responses={200: {"description": "Canvas snapshot", "model": SpectrumSnapshot}},
)
async def spectrum(
    request: Request,
    orchestrator: SyncOrchestrator = Depends(get_orchestrator),
    format: Literal["json", "html"] = Query(default="json", description="Response format"),
):
    """Get the rendered spectrum."""
    if format == "html":
        return TemplateRenderer.render_spectrum_tile(request, orchestrator)
    return orchestrator.analyzer.snapshot()
