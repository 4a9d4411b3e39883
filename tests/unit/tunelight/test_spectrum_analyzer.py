"""Unit tests for the spectrum analyzer."""

import asyncio

import numpy as np
import pytest

from tunelight.exceptions import MediaAccessException
from tunelight.models import SpectrumFrame
from tunelight.services.audio_input import MicrophoneInput
from tunelight.services.spectrum_analyzer import (
    AnalyzerState,
    FrequencyAnalyser,
    IntervalFrameClock,
    SpectrumAnalyzer,
    SpectrumCanvas,
    bar_color,
    render_bars,
)


class FakeAudioInput:
    """AudioInput recording lifecycle calls; returns a fixed signal."""

    def __init__(self, signal=None, open_error=None, read_error=None):
        self.signal = signal
        self.open_error = open_error
        self.read_error = read_error
        self.calls: list[str] = []

    def open(self):
        self.calls.append("open")
        if self.open_error is not None:
            raise self.open_error

    def read_latest(self, n):
        if self.read_error is not None:
            raise self.read_error
        if self.signal is None:
            return np.zeros(n, dtype=np.float32)
        return self.signal[-n:]

    def disconnect(self):
        self.calls.append("disconnect")

    def stop(self):
        self.calls.append("stop")


class YieldingClock:
    """Frame clock that just yields to the event loop."""

    async def tick(self):
        await asyncio.sleep(0)


def sine(bin_index: int, n: int = 256, amplitude: float = 0.5) -> np.ndarray:
    t = np.arange(n)
    return (amplitude * np.sin(2 * np.pi * bin_index * t / n)).astype(np.float32)


async def run_frames(analyzer: SpectrumAnalyzer, frames: int = 5) -> None:
    for _ in range(frames * 2):
        await asyncio.sleep(0)


@pytest.fixture
def audio():
    return FakeAudioInput(signal=sine(20))


@pytest.fixture
def analyzer(audio):
    return SpectrumAnalyzer(audio, YieldingClock(), SpectrumCanvas(512, 256), bin_count=128)


# FrequencyAnalyser


class TestFrequencyAnalyser:
    def test_frame_length_is_bin_count(self):
        analyser = FrequencyAnalyser(64)

        data = analyser.byte_frequency_data(sine(5, n=128))

        assert analyser.fft_size == 128
        assert len(data) == 64

    def test_sine_peaks_at_its_bin(self):
        analyser = FrequencyAnalyser(128)

        data = np.frombuffer(analyser.byte_frequency_data(sine(20)), dtype=np.uint8)

        assert int(np.argmax(data)) == 20
        assert data[20] > 200

    def test_silence_is_all_zero(self):
        analyser = FrequencyAnalyser(128)

        assert analyser.byte_frequency_data(np.zeros(256)) == bytes(128)

    def test_smoothing_builds_up_over_frames(self):
        analyser = FrequencyAnalyser(128)
        signal = sine(20, amplitude=0.01)

        first = analyser.byte_frequency_data(signal)[20]
        second = analyser.byte_frequency_data(signal)[20]

        assert second > first

    def test_reset_forgets_history(self):
        analyser = FrequencyAnalyser(128)
        first = analyser.byte_frequency_data(sine(20))
        analyser.byte_frequency_data(sine(20))

        analyser.reset()

        assert analyser.byte_frequency_data(sine(20)) == first

    def test_wrong_sample_count(self):
        with pytest.raises(ValueError):
            FrequencyAnalyser(128).byte_frequency_data(np.zeros(100))


# Rendering


def test_bar_color():
    assert bar_color(0, 0, 128) == "rgb(0,0,50)"
    assert bar_color(200, 64, 128) == "rgb(212,125,50)"
    assert bar_color(255, 127, 128) == "rgb(255,248,50)"


def test_render_bars_geometry():
    frame = SpectrumFrame(bytes([100, 0, 255, 50]))

    bars = render_bars(frame, width=400, height=200)

    assert len(bars) == 4
    assert bars[0].width == pytest.approx(250.0)
    assert bars[0].x == 0
    assert bars[1].x == pytest.approx(251.0)
    assert bars[0].height == 50
    assert bars[0].y == 150
    assert bars[1].height == 0
    assert bars[2].height == pytest.approx(127.5)
    assert bars[3].color == bar_color(50, 3, 4)


def test_render_empty_frame():
    assert render_bars(SpectrumFrame(b""), 100, 100) == []


def test_canvas_draw_and_clear():
    canvas = SpectrumCanvas(100, 50)
    frame = SpectrumFrame(bytes([10, 20]))

    canvas.draw(frame)
    assert canvas.last_frame is frame
    assert len(canvas.bars) == 2

    canvas.clear()
    assert canvas.bars == []
    assert canvas.last_frame is None


# SpectrumFrame


def test_frame_bass_and_levels():
    frame = SpectrumFrame(bytes([255] * 16 + [0] * 112))

    assert frame.bass == 255
    assert frame.led_levels(8) == [100, 0, 0, 0, 0, 0, 0, 0]
    assert len(frame.led_levels(16)) == 16


def test_frame_levels_need_enough_bins():
    assert SpectrumFrame(bytes(4)).led_levels(8) == []
    assert SpectrumFrame(b"").bass == 0


# SpectrumAnalyzer


@pytest.mark.asyncio
async def test_start_renders_frames_of_bin_count(analyzer, audio):
    frames = []
    analyzer.add_listener(frames.append)

    await analyzer.start()
    await run_frames(analyzer)
    await analyzer.stop()

    assert audio.calls[0] == "open"
    assert frames
    assert all(len(frame) == 128 for frame in frames)
    assert analyzer.frame_count == len(frames)


@pytest.mark.asyncio
async def test_no_frames_after_stop(analyzer):
    frames = []
    analyzer.add_listener(frames.append)
    await analyzer.start()
    await run_frames(analyzer)

    await analyzer.stop()
    count = len(frames)
    await run_frames(analyzer)

    assert len(frames) == count
    assert analyzer.state is AnalyzerState.STOPPED


@pytest.mark.asyncio
async def test_stop_releases_input_and_clears_canvas(analyzer, audio):
    await analyzer.start()
    await run_frames(analyzer)

    await analyzer.stop()

    assert "disconnect" in audio.calls
    assert "stop" in audio.calls
    assert analyzer.canvas.bars == []
    assert analyzer.snapshot().bars == []


@pytest.mark.asyncio
async def test_open_failure_leaves_analyzer_stopped(audio, analyzer):
    audio.open_error = MediaAccessException("Could not access microphone: device busy")

    with pytest.raises(MediaAccessException):
        await analyzer.start()

    assert analyzer.state is AnalyzerState.STOPPED
    assert analyzer.last_error == "Could not access microphone: device busy"
    assert analyzer.frame_count == 0


@pytest.mark.asyncio
async def test_loop_crash_releases_resources(audio, analyzer):
    audio.read_error = RuntimeError("buffer gone")

    await analyzer.start()
    await run_frames(analyzer)

    assert analyzer.state is AnalyzerState.STOPPED
    assert analyzer.last_error == "buffer gone"
    assert audio.calls.count("stop") >= 1

    # A later stop is harmless
    await analyzer.stop()


@pytest.mark.asyncio
async def test_cancelled_loop_releases_resources(analyzer, audio):
    await analyzer.start()
    await run_frames(analyzer)

    analyzer._task.cancel()
    await run_frames(analyzer)

    assert analyzer.state is AnalyzerState.STOPPED
    assert "disconnect" in audio.calls


@pytest.mark.asyncio
async def test_toggle(analyzer):
    assert await analyzer.toggle() is AnalyzerState.RUNNING
    assert analyzer.is_running

    assert await analyzer.toggle() is AnalyzerState.STOPPED
    assert not analyzer.is_running


@pytest.mark.asyncio
async def test_start_twice_opens_once(analyzer, audio):
    await analyzer.start()
    await analyzer.start()
    await analyzer.stop()

    assert audio.calls.count("open") == 1


@pytest.mark.asyncio
async def test_listener_errors_do_not_stop_the_loop(analyzer):
    def broken(frame):
        raise ValueError("listener broke")

    analyzer.add_listener(broken)
    await analyzer.start()
    await run_frames(analyzer)

    assert analyzer.is_running
    assert analyzer.frame_count > 1
    await analyzer.stop()


@pytest.mark.asyncio
async def test_snapshot_while_running(analyzer):
    await analyzer.start()
    await run_frames(analyzer)

    snapshot = analyzer.snapshot()
    await analyzer.stop()

    assert snapshot.state == "running"
    assert snapshot.width == 512
    assert len(snapshot.bars) == 128
    assert snapshot.frame_count > 0


@pytest.mark.asyncio
async def test_interval_clock_paces_frames():
    clock = IntervalFrameClock(fps=100)
    loop = asyncio.get_running_loop()

    start = loop.time()
    for _ in range(3):
        await clock.tick()

    assert loop.time() - start >= 0.025


# MicrophoneInput buffer handling (no audio device needed)


def test_microphone_callback_fills_ring_buffer():
    mic = MicrophoneInput(buffer_size=8)
    mic._connected = True

    mic._callback(np.arange(1, 4, dtype=np.float32).reshape(-1, 1), 3, None, None)

    assert mic.read_latest(4).tolist() == [0.0, 1.0, 2.0, 3.0]
    assert len(mic.read_latest(16)) == 16


def test_microphone_callback_ignored_when_disconnected():
    mic = MicrophoneInput(buffer_size=4)
    mic._connected = True
    mic.disconnect()

    mic._callback(np.ones((4, 1), dtype=np.float32), 4, None, None)

    assert mic.read_latest(4).tolist() == [0.0, 0.0, 0.0, 0.0]


def test_microphone_stop_without_stream_is_noop():
    mic = MicrophoneInput(device="3")

    mic.stop()
    mic.stop()

    assert mic.device == 3
    assert not mic.is_active
