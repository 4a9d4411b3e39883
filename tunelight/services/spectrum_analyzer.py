"""Live microphone spectrum: frequency analysis, bar rendering and the frame loop."""

import asyncio
from collections.abc import Callable
from enum import Enum
from typing import Protocol

import numpy as np

from tunelight.exceptions import MediaAccessException
from tunelight.logging_config import get_logger, log_with_context
from tunelight.models import Bar, SpectrumFrame, SpectrumSnapshot
from tunelight.services.audio_input import AudioInput

logger = get_logger(__name__)

SMOOTHING_TIME_CONSTANT = 0.8
MIN_DECIBELS = -100.0
MAX_DECIBELS = -30.0
BAR_GAP = 1

FrameListener = Callable[[SpectrumFrame], None]


class AnalyzerState(str, Enum):
    STOPPED = "stopped"
    STARTING = "starting"
    RUNNING = "running"


class FrequencyAnalyser:
    """Byte frequency data with the same conventions as a browser AnalyserNode.

    Blackman window over ``fft_size`` samples, magnitudes normalised by
    ``fft_size``, exponential smoothing across frames, then decibels mapped
    linearly from [min_decibels, max_decibels] onto 0-255.
    """

    def __init__(
        self,
        bin_count: int = 128,
        smoothing: float = SMOOTHING_TIME_CONSTANT,
        min_decibels: float = MIN_DECIBELS,
        max_decibels: float = MAX_DECIBELS,
    ):
        self.bin_count = bin_count
        self.fft_size = bin_count * 2
        self.smoothing = smoothing
        self.min_decibels = min_decibels
        self.max_decibels = max_decibels
        self._window = np.blackman(self.fft_size)
        self._previous = np.zeros(bin_count)

    def reset(self) -> None:
        self._previous = np.zeros(self.bin_count)

    def byte_frequency_data(self, samples: np.ndarray) -> bytes:
        if len(samples) != self.fft_size:
            raise ValueError(f"expected {self.fft_size} samples, got {len(samples)}")

        spectrum = np.fft.rfft(samples * self._window)[: self.bin_count]
        magnitude = np.abs(spectrum) / self.fft_size
        smoothed = self.smoothing * self._previous + (1 - self.smoothing) * magnitude
        self._previous = smoothed

        with np.errstate(divide="ignore"):
            decibels = 20 * np.log10(smoothed)
        scaled = (decibels - self.min_decibels) * (255 / (self.max_decibels - self.min_decibels))
        return np.clip(np.nan_to_num(scaled, neginf=0.0), 0, 255).astype(np.uint8).tobytes()


class FrameClock(Protocol):
    """Paces the render loop; ``tick()`` resolves when the next frame is due."""

    async def tick(self) -> None: ...


class IntervalFrameClock:
    """Steady frame pacing on the event loop clock.

    Late frames are not made up for: if a frame overruns, the schedule
    restarts from now.
    """

    def __init__(self, fps: int = 60):
        self.period = 1 / fps
        self._next: float | None = None

    async def tick(self) -> None:
        loop = asyncio.get_running_loop()
        now = loop.time()
        self._next = now + self.period if self._next is None else max(self._next + self.period, now)
        await asyncio.sleep(self._next - now)


def bar_color(magnitude: int, index: int, bin_count: int) -> str:
    red = min(255, round(magnitude + 25 * index / bin_count))
    green = min(255, round(250 * index / bin_count))
    return f"rgb({red},{green},50)"


def render_bars(frame: SpectrumFrame, width: int, height: int) -> list[Bar]:
    """Lay the frame out as bars growing up from the bottom edge.

    Bars are ``width / n * 2.5`` wide, so the upper bins fall off the right
    edge of the canvas.
    """
    n = len(frame)
    if n == 0:
        return []
    bar_width = width / n * 2.5
    bars = []
    x = 0.0
    for i, magnitude in enumerate(frame.magnitudes):
        bar_height = magnitude / 2
        bars.append(
            Bar(
                x=x,
                y=height - bar_height,
                width=bar_width,
                height=bar_height,
                color=bar_color(magnitude, i, n),
            )
        )
        x += bar_width + BAR_GAP
    return bars


class SpectrumCanvas:
    """In-memory drawing surface holding the bars of the last frame."""

    def __init__(self, width: int = 512, height: int = 256):
        self.width = width
        self.height = height
        self.bars: list[Bar] = []
        self.last_frame: SpectrumFrame | None = None

    def draw(self, frame: SpectrumFrame) -> None:
        self.last_frame = frame
        self.bars = render_bars(frame, self.width, self.height)

    def clear(self) -> None:
        self.last_frame = None
        self.bars = []


class SpectrumAnalyzer:
    """Owns the microphone stream and the render loop.

    ``STOPPED -> STARTING -> RUNNING -> STOPPED``, or straight back to
    STOPPED when the microphone cannot be opened. Whichever way the loop
    ends, the tap is disconnected, the stream stopped and the canvas cleared.
    """

    def __init__(
        self,
        audio_input: AudioInput,
        clock: FrameClock,
        canvas: SpectrumCanvas,
        bin_count: int = 128,
    ):
        self._input = audio_input
        self._clock = clock
        self.canvas = canvas
        self._analyser = FrequencyAnalyser(bin_count)
        self._listeners: list[FrameListener] = []
        self._task: asyncio.Task | None = None
        self.state = AnalyzerState.STOPPED
        self.frame_count = 0
        self.last_error: str | None = None

    @property
    def bin_count(self) -> int:
        return self._analyser.bin_count

    @property
    def is_running(self) -> bool:
        return self.state is AnalyzerState.RUNNING

    def add_listener(self, listener: FrameListener) -> None:
        self._listeners.append(listener)

    async def start(self) -> None:
        """Open the microphone and start rendering.

        Raises:
            MediaAccessException: The microphone could not be acquired. The
                analyzer is back in STOPPED and nothing is retried.
        """
        if self.state is not AnalyzerState.STOPPED:
            return

        self.state = AnalyzerState.STARTING
        try:
            self._input.open()
        except MediaAccessException as e:
            self.state = AnalyzerState.STOPPED
            self.last_error = e.message
            raise

        self.last_error = None
        self._analyser.reset()
        self.frame_count = 0
        self.state = AnalyzerState.RUNNING
        self._task = asyncio.create_task(self._run())
        log_with_context(logger, "info", "Spectrum analyzer started", bin_count=self.bin_count, event_type="spectrum_started")

    async def stop(self) -> None:
        if self.state is AnalyzerState.STOPPED and self._task is None:
            return

        self.state = AnalyzerState.STOPPED
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
            await asyncio.wait([task])
        self._release()
        log_with_context(logger, "info", "Spectrum analyzer stopped", frame_count=self.frame_count, event_type="spectrum_stopped")

    async def toggle(self) -> AnalyzerState:
        if self.state is AnalyzerState.STOPPED:
            await self.start()
        else:
            await self.stop()
        return self.state

    def render_frame(self) -> SpectrumFrame:
        """Read the latest samples, draw them and notify listeners."""
        samples = self._input.read_latest(self._analyser.fft_size)
        frame = SpectrumFrame(self._analyser.byte_frequency_data(samples))
        self.canvas.draw(frame)
        self.frame_count += 1
        for listener in list(self._listeners):
            try:
                listener(frame)
            except Exception as e:
                log_with_context(
                    logger,
                    "warning",
                    "Frame listener failed",
                    error=str(e),
                    error_type=type(e).__name__,
                    event_type="spectrum_listener_error",
                )
        return frame

    def snapshot(self) -> SpectrumSnapshot:
        frame = self.canvas.last_frame
        return SpectrumSnapshot(
            state=self.state.value,
            width=self.canvas.width,
            height=self.canvas.height,
            frame_count=self.frame_count,
            bars=list(self.canvas.bars),
            bass=frame.bass if frame is not None else 0,
        )

    async def _run(self) -> None:
        try:
            while self.state is AnalyzerState.RUNNING:
                await self._clock.tick()
                if self.state is not AnalyzerState.RUNNING:
                    break
                self.render_frame()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self.last_error = str(e)
            log_with_context(
                logger,
                "error",
                "Spectrum loop crashed",
                error=str(e),
                error_type=type(e).__name__,
                event_type="spectrum_loop_error",
            )
        finally:
            self.state = AnalyzerState.STOPPED
            self._release()

    def _release(self) -> None:
        self._input.disconnect()
        self._input.stop()
        self.canvas.clear()
