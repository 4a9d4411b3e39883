"""Wires login, polling, palette extraction, spectrum analysis and light dispatch."""

import asyncio
import time
from collections.abc import Callable
from dataclasses import dataclass

import httpx

from tunelight.config import Settings
from tunelight.exceptions import MediaAccessException
from tunelight.logging_config import get_logger, log_with_context
from tunelight.models import DeviceTarget, DispatchResult, LightStatus, Palette, PollResult, SpectrumFrame
from tunelight.protocols import LightDispatcherProtocol
from tunelight.services.auth_flow import AuthFlow
from tunelight.services.light_dispatcher import (
    brightness_command,
    levels_command,
    solid_color_command,
)
from tunelight.services.palette_extractor import PaletteExtractor
from tunelight.services.playback_poller import PlaybackPoller
from tunelight.services.spectrum_analyzer import AnalyzerState, SpectrumAnalyzer
from tunelight.state_managers import DeviceTargetStore, PendingAuthStore, TokenStore

logger = get_logger(__name__)

EXTRACTING_COLORS = "Extracting colors..."
NO_ALBUM_ART = "No album art available."
NO_COLORS_YET = "No colors extracted yet."


@dataclass
class SyncContext:
    """Shared references handed to the orchestrator and its components."""

    settings: Settings
    client: httpx.AsyncClient
    token_store: TokenStore
    pending_store: PendingAuthStore
    device_store: DeviceTargetStore


class SyncOrchestrator:
    """Coordinates the components without owning their state.

    The poller's artwork changes drive palette extraction; the user's "send"
    dispatches the dominant colour; spectrum frames optionally drive the
    light on their own. Everything UI facing is exposed as plain status
    attributes that the views render.
    """

    def __init__(
        self,
        context: SyncContext,
        auth_flow: AuthFlow,
        poller: PlaybackPoller,
        extractor: PaletteExtractor,
        dispatcher: LightDispatcherProtocol,
        analyzer: SpectrumAnalyzer,
        monotonic: Callable[[], float] = time.monotonic,
    ):
        self.context = context
        self.auth_flow = auth_flow
        self.poller = poller
        self.extractor = extractor
        self.dispatcher = dispatcher
        self.analyzer = analyzer
        self._monotonic = monotonic

        self.palette_status = ""
        self.light_status = LightStatus()
        self.audio_status = ""

        self._poll_task: asyncio.Task | None = None
        self._audio_dispatch: asyncio.Task | None = None
        self._last_audio_dispatch: float | None = None

        poller.on_artwork_change = self._on_artwork_change
        analyzer.add_listener(self._on_spectrum_frame)

    # --- lifecycle ---

    @property
    def is_authenticated(self) -> bool:
        return self.context.token_store.is_valid()

    @property
    def is_polling(self) -> bool:
        return self._poll_task is not None and not self._poll_task.done()

    @property
    def last_poll(self) -> PollResult | None:
        return self.poller.last_result

    @property
    def palette(self) -> Palette | None:
        return self.extractor.cached()

    @property
    def device_target(self) -> DeviceTarget:
        return self.context.device_store.get()

    async def startup(self) -> None:
        """Resume polling when a still-valid token was persisted."""
        if self.is_authenticated:
            log_with_context(logger, "info", "Valid token found, starting playback polling", event_type="sync_resume")
            self.start_polling()

    async def on_authenticated(self) -> None:
        """Start over after a successful login."""
        self.poller.reset()
        self.extractor.invalidate()
        self.palette_status = ""
        self.start_polling()

    async def shutdown(self) -> None:
        await self.stop_polling()
        await self.analyzer.stop()
        if self._audio_dispatch is not None and not self._audio_dispatch.done():
            await asyncio.wait([self._audio_dispatch])

    # --- playback ---

    def start_polling(self) -> None:
        if self.is_polling:
            return
        self._poll_task = asyncio.create_task(self._poll_loop())

    async def stop_polling(self) -> None:
        task, self._poll_task = self._poll_task, None
        if task is not None and not task.done():
            task.cancel()
            await asyncio.wait([task])

    async def refresh(self) -> PollResult:
        """Poll right away, sharing any poll already in progress."""
        result = await self.poller.poll()
        if result.needs_reauth:
            await self.stop_polling()
        return result

    async def _poll_loop(self) -> None:
        interval = self.context.settings.poll_interval_seconds
        log_with_context(logger, "info", "Playback polling started", interval_seconds=interval, event_type="poll_loop_start")
        while True:
            try:
                result = await self.poller.poll()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                log_with_context(
                    logger,
                    "error",
                    "Playback poll crashed, retrying next cycle",
                    error=str(e),
                    error_type=type(e).__name__,
                    event_type="poll_loop_error",
                )
            else:
                if result.needs_reauth:
                    log_with_context(logger, "info", "Re-login required, playback polling halted", event_type="poll_loop_halt")
                    return
            await asyncio.sleep(interval)

    async def _on_artwork_change(self, artwork_url: str | None) -> None:
        if artwork_url is None:
            self.extractor.invalidate()
            last = self.poller.last_result
            has_item = last is not None and last.state is not None and last.state.has_item
            self.palette_status = NO_ALBUM_ART if has_item else ""
            return

        self.palette_status = EXTRACTING_COLORS
        result = await self.extractor.extract(artwork_url)
        # A newer artwork may have arrived while this one was extracting.
        if self.poller.last_artwork_url != artwork_url:
            return
        self.palette_status = "" if result.available else (result.reason or "")

    # --- light ---

    async def set_device_ip(self, ip: str) -> DeviceTarget:
        return self.context.device_store.set(ip)

    async def send_current_color(self) -> LightStatus:
        """Send the dominant colour of the current palette to the device."""
        palette = self.extractor.cached()
        if palette is None or palette.primary is None:
            self.light_status = LightStatus(message=NO_COLORS_YET, level="warning")
            return self.light_status

        result = await self.dispatcher.send(self.device_target, solid_color_command(palette.primary))
        self.light_status = _status_for(result)
        return self.light_status

    # --- audio ---

    async def start_audio(self) -> AnalyzerState:
        try:
            await self.analyzer.start()
        except MediaAccessException as e:
            self.audio_status = e.message
            raise
        self.audio_status = ""
        return self.analyzer.state

    async def stop_audio(self) -> AnalyzerState:
        await self.analyzer.stop()
        self.audio_status = ""
        return self.analyzer.state

    async def toggle_audio(self) -> AnalyzerState:
        if self.analyzer.state is AnalyzerState.STOPPED:
            return await self.start_audio()
        return await self.stop_audio()

    def _on_spectrum_frame(self, frame: SpectrumFrame) -> None:
        settings = self.context.settings
        if settings.audio_light_mode == "off":
            return

        target = self.device_target
        if not target.is_set:
            return
        if self._audio_dispatch is not None and not self._audio_dispatch.done():
            return

        now = self._monotonic()
        if (
            self._last_audio_dispatch is not None
            and (now - self._last_audio_dispatch) * 1000 < settings.audio_dispatch_interval_ms
        ):
            return

        if settings.audio_light_mode == "bass":
            command = brightness_command(frame.bass)
        else:
            levels = frame.led_levels(settings.led_count)
            if not levels:
                return
            palette = self.extractor.cached()
            command = levels_command(levels, palette.primary if palette is not None else None)

        self._last_audio_dispatch = now
        self._audio_dispatch = asyncio.create_task(self.dispatcher.send(target, command))
        self._audio_dispatch.add_done_callback(self._audio_dispatch_done)

    def _audio_dispatch_done(self, task: asyncio.Task) -> None:
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            log_with_context(
                logger,
                "error",
                "Spectrum dispatch failed",
                error=str(error),
                error_type=type(error).__name__,
                event_type="spectrum_dispatch_error",
            )
        elif not task.result().accepted:
            self.light_status = _status_for(task.result())


def _status_for(result: DispatchResult) -> LightStatus:
    return LightStatus(message=result.message, level="ok" if result.accepted else "error")
