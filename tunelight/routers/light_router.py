"""WLED device routes with support for JSON and HTML responses."""

from typing import Literal

from fastapi import APIRouter, Depends, Query, Request
from pydantic import BaseModel, Field
from slowapi import Limiter
from slowapi.util import get_remote_address

from tunelight.dependencies import get_orchestrator
from tunelight.logging_config import get_logger, log_with_context
from tunelight.models import DeviceTarget, LightStatus
from tunelight.services.sync_orchestrator import SyncOrchestrator
from tunelight.views.template_renderer import TemplateRenderer

router = APIRouter()
limiter = Limiter(key_func=get_remote_address)
logger = get_logger(__name__)


class DeviceTargetUpdate(BaseModel):
    """Request body for saving the WLED address."""

    ip: str = Field(default="", description="WLED IP address or host name")


@router.get("/target", response_model=DeviceTarget, summary="Saved WLED address")
async def get_target(orchestrator: SyncOrchestrator = Depends(get_orchestrator)):
    """Get the stored device target."""
    return orchestrator.device_target


@router.put(
    "/target",
    summary="Save WLED address",
    description="""
    Persists the WLED IP address. Only surrounding whitespace is removed; the
    value is not otherwise validated. An empty value clears it.
    """,
    responses={200: {"description": "Saved target", "model": DeviceTarget}},
)
async def put_target(
    request: Request,
    body: DeviceTargetUpdate,
    orchestrator: SyncOrchestrator = Depends(get_orchestrator),
    format: Literal["json", "html"] = Query(default="json", description="Response format"),
):
    """Save the device target."""
    target = await orchestrator.set_device_ip(body.ip)
    if format == "html":
        return TemplateRenderer.render_light_tile(request, orchestrator)
    return target


@router.post(
    "/send",
    summary="Send primary colour to WLED",
    description="""
    Sends the most dominant colour of the current palette as a solid colour.

    Delivery is unacknowledged: `accepted` only means the request was sent
    without a transport error. The device's answer is never read.

    **Rate Limited:** 30 requests/minute
    """,
    responses={
        200: {
            "description": "Dispatch status",
            "content": {
                "application/json": {
                    "example": {"message": "Command sent to WLED (21:04:13). Check WLED device.", "level": "ok"}
                }
            },
        },
    },
)
@limiter.limit("30/minute")
async def send_color(
    request: Request,
    orchestrator: SyncOrchestrator = Depends(get_orchestrator),
    format: Literal["json", "html"] = Query(default="json", description="Response format"),
):
    """Dispatch the primary swatch."""
    status = await orchestrator.send_current_color()
    log_with_context(
        logger,
        "info",
        "Send colour requested",
        status_level=status.level,
        status_message=status.message,
        event_type="light_send_requested",
    )
    if format == "html":
        return TemplateRenderer.render_light_tile(request, orchestrator)
    return status


@router.get("/status", response_model=LightStatus, summary="Last dispatch status")
async def light_status(
    request: Request,
    orchestrator: SyncOrchestrator = Depends(get_orchestrator),
    format: Literal["json", "html"] = Query(default="json", description="Response format"),
):
    """Get the last light status line."""
    if format == "html":
        return TemplateRenderer.render_light_tile(request, orchestrator)
    return orchestrator.light_status
