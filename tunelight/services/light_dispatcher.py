"""Fire-and-forget commands for the WLED JSON API.

WLED is reached over plain HTTP on the local network, usually without
authentication and often without usable CORS headers. Commands are therefore
sent opaquely: the response status and body are never looked at. An accepted
result only means the request went out without a transport error (DNS,
refused connection, timeout). It does not mean the device applied it.
"""

from datetime import datetime
from typing import Any

import httpx

from tunelight.logging_config import get_logger, log_with_context
from tunelight.models import DeviceTarget, DispatchResult, Swatch

logger = get_logger(__name__)

WLED_IP_NOT_SET = "WLED IP not set."


def solid_color_command(swatch: Swatch) -> dict[str, Any]:
    """Turn the light on with a single solid colour on segment 0."""
    return {"on": True, "seg": [{"col": [swatch.rgb]}]}


def brightness_command(brightness: int) -> dict[str, Any]:
    """Set segment 0 brightness (0-255)."""
    return {"seg": [{"bri": max(0, min(255, int(brightness)))}]}


def levels_command(levels: list[int], color: Swatch | None = None) -> dict[str, Any]:
    """Per-LED colours from 0-100 levels, scaling ``color`` (white by default)."""
    base = color.rgb if color is not None else [255, 255, 255]
    leds = [[round(channel * max(0, min(100, level)) / 100) for channel in base] for level in levels]
    return {"seg": [{"i": leds}]}


class LightDispatcher:
    """Sends commands to ``http://<ip>/json/state`` without reading the answer."""

    def __init__(self, client: httpx.AsyncClient, timeout: float = 10.0):
        self._client = client
        self._timeout = timeout

    async def send(self, target: DeviceTarget | str, command: dict[str, Any]) -> DispatchResult:
        """Send ``command`` to the device.

        Returns:
            DispatchResult with accepted=False and no network attempt when the
            target is empty; otherwise accepted reflects only whether the
            request could be sent.
        """
        if isinstance(target, str):
            target = DeviceTarget(ip=target)

        if not target.is_set:
            return DispatchResult(accepted=False, message=WLED_IP_NOT_SET)

        try:
            # Status and body are never inspected.
            await self._client.post(target.state_url, json=command, timeout=self._timeout)
        except (httpx.TransportError, httpx.InvalidURL) as e:
            reason = str(e) or type(e).__name__
            log_with_context(
                logger,
                "warning",
                "Error sending command to WLED",
                device_ip=target.ip,
                error=reason,
                error_type=type(e).__name__,
                event_type="wled_send_failed",
            )
            return DispatchResult(accepted=False, message=f"Error sending to WLED: {reason}")

        sent_at = datetime.now()
        log_with_context(
            logger,
            "debug",
            "Command sent to WLED",
            device_ip=target.ip,
            event_type="wled_sent",
        )
        return DispatchResult(
            accepted=True,
            message=f"Command sent to WLED ({sent_at.strftime('%H:%M:%S')}). Check WLED device.",
            sent_at=sent_at,
        )
