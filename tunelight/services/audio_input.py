"""Microphone capture feeding a ring buffer that the analyzer reads each tick."""

import threading
from typing import Protocol

import numpy as np

from tunelight.exceptions import MediaAccessException
from tunelight.logging_config import get_logger, log_with_context

logger = get_logger(__name__)


class AudioInput(Protocol):
    """Audio source for the spectrum analyzer.

    ``disconnect()`` detaches the tap so no more samples reach the buffer;
    ``stop()`` releases the hardware stream. Both must be safe to call
    repeatedly and in either order.
    """

    def open(self) -> None: ...

    def read_latest(self, n: int) -> np.ndarray: ...

    def disconnect(self) -> None: ...

    def stop(self) -> None: ...


class MicrophoneInput:
    """Mono sounddevice input stream written into a float32 ring buffer.

    The PortAudio callback runs on its own thread, so buffer access is
    guarded by a lock. Everything else happens on the event loop.
    """

    def __init__(
        self,
        sample_rate: int = 44100,
        buffer_size: int = 256,
        device: str | None = None,
        blocksize: int = 0,
    ):
        self.sample_rate = sample_rate
        self.buffer_size = buffer_size
        self.device: str | int | None = int(device) if device and device.isdigit() else device
        self.blocksize = blocksize
        self._buffer = np.zeros(buffer_size, dtype=np.float32)
        self._lock = threading.Lock()
        self._stream = None
        self._connected = False

    @property
    def is_active(self) -> bool:
        return self._stream is not None

    def open(self) -> None:
        """Acquire the microphone.

        Raises:
            MediaAccessException: PortAudio missing, device unknown or access denied
        """
        try:
            import sounddevice as sd
        except OSError as e:  # PortAudio shared library not found
            raise MediaAccessException(f"Audio backend unavailable: {e}") from e

        with self._lock:
            self._buffer = np.zeros(self.buffer_size, dtype=np.float32)

        stream = None
        try:
            stream = sd.InputStream(
                samplerate=self.sample_rate,
                channels=1,
                dtype="float32",
                blocksize=self.blocksize,
                device=self.device,
                callback=self._callback,
            )
            self._connected = True
            stream.start()
        except (sd.PortAudioError, ValueError) as e:
            self._connected = False
            if stream is not None:
                stream.close()
            log_with_context(
                logger,
                "warning",
                "Could not access microphone",
                device=str(self.device),
                error=str(e),
                event_type="audio_open_failed",
            )
            raise MediaAccessException(f"Could not access microphone: {e}") from e

        self._stream = stream
        log_with_context(
            logger,
            "info",
            "Microphone stream started",
            device=str(self.device),
            sample_rate=self.sample_rate,
            event_type="audio_started",
        )

    def _callback(self, indata, frames, time_info, status) -> None:
        if not self._connected:
            return
        samples = indata[:, 0]
        with self._lock:
            if len(samples) >= self.buffer_size:
                self._buffer[:] = samples[-self.buffer_size :]
            else:
                self._buffer = np.roll(self._buffer, -len(samples))
                self._buffer[-len(samples) :] = samples

    def read_latest(self, n: int) -> np.ndarray:
        """Most recent ``n`` samples, zero padded at the front when fewer are buffered."""
        with self._lock:
            data = self._buffer[-n:].copy()
        if len(data) < n:
            data = np.concatenate([np.zeros(n - len(data), dtype=np.float32), data])
        return data

    def disconnect(self) -> None:
        self._connected = False

    def stop(self) -> None:
        stream, self._stream = self._stream, None
        if stream is None:
            return
        try:
            stream.stop()
        finally:
            stream.close()
        log_with_context(logger, "info", "Microphone stream stopped", event_type="audio_stopped")
