"""Pytest configuration and shared fixtures."""

import os
import tempfile
from io import BytesIO
from pathlib import Path
from unittest.mock import AsyncMock

import httpx
import pytest
from PIL import Image

# Settings are read once at import time of the app; point them somewhere disposable.
_TEST_HOME = Path(tempfile.mkdtemp(prefix="tunelight-tests-"))
os.environ.setdefault("SPOTIFY_CLIENT_ID", "test-spotify-client-id")
os.environ["STORAGE_PATH"] = str(_TEST_HOME / "storage.json")
os.environ["LOG_DIR"] = str(_TEST_HOME / "logs")

from tunelight.config import Settings  # noqa: E402
from tunelight.state_managers import DeviceTargetStore, PendingAuthStore, TokenStore  # noqa: E402
from tunelight.utils.local_storage import LocalStorage  # noqa: E402

NOW_MS = 1_700_000_000_000


class FakeClock:
    """Millisecond clock that only moves when told to."""

    def __init__(self, now_ms: int = NOW_MS):
        self.now_ms = now_ms

    def __call__(self) -> int:
        return self.now_ms

    def advance(self, ms: int) -> None:
        self.now_ms += ms


def _make_response(status_code: int, json=None, content: bytes | None = None, url: str = "https://test") -> httpx.Response:
    """Real httpx.Response bound to a request, so is_success/raise_for_status work."""
    request = httpx.Request("GET", url)
    if json is not None:
        return httpx.Response(status_code, json=json, request=request)
    return httpx.Response(status_code, content=content or b"", request=request)


def _make_image_bytes(colors: list[tuple[int, int, int]], size: int = 40, fmt: str = "PNG") -> bytes:
    """Image with equal-width vertical stripes of the given colours."""
    image = Image.new("RGB", (size, size))
    stripe = size // len(colors)
    for i, color in enumerate(colors):
        image.paste(color, (i * stripe, 0, (i + 1) * stripe if i < len(colors) - 1 else size, size))
    buffer = BytesIO()
    image.save(buffer, format=fmt)
    return buffer.getvalue()


@pytest.fixture
def make_response():
    """Factory for httpx responses."""
    return _make_response


@pytest.fixture
def make_image_bytes():
    """Factory for encoded test images."""
    return _make_image_bytes


@pytest.fixture
def clock():
    """Controllable millisecond clock."""
    return FakeClock()


@pytest.fixture
def storage(tmp_path):
    """LocalStorage backed by a temp file."""
    return LocalStorage(tmp_path / "storage.json")


@pytest.fixture
def token_store(storage, clock):
    return TokenStore(storage, clock=clock)


@pytest.fixture
def pending_store(storage):
    return PendingAuthStore(storage)


@pytest.fixture
def device_store(storage):
    return DeviceTargetStore(storage)


@pytest.fixture
def mock_settings(tmp_path):
    """Settings instance with test values."""
    return Settings(
        spotify_client_id="test-spotify-client-id",
        spotify_redirect_uri="http://127.0.0.1:8000/auth/callback",
        storage_path=tmp_path / "storage.json",
        log_dir=tmp_path / "logs",
        poll_interval_seconds=15,
        request_timeout_seconds=10,
    )


@pytest.fixture
def mock_http_client():
    """Mock httpx.AsyncClient for external API calls."""
    mock_client = AsyncMock(spec=httpx.AsyncClient)
    mock_client.get = AsyncMock()
    mock_client.post = AsyncMock()
    mock_client.aclose = AsyncMock()
    return mock_client


@pytest.fixture
def mock_currently_playing_response():
    """Spotify /me/player/currently-playing response."""
    return {
        "is_playing": True,
        "item": {
            "name": "Test Song",
            "artists": [{"name": "Test Artist"}, {"name": "Second Artist"}],
            "album": {
                "name": "Test Album",
                "images": [
                    {"url": "https://i.scdn.co/image/large.jpg", "width": 640, "height": 640},
                    {"url": "https://i.scdn.co/image/small.jpg", "width": 64, "height": 64},
                ],
            },
        },
    }


@pytest.fixture
def reset_app_storage():
    """Start every app-level test from empty storage."""
    path = Path(os.environ["STORAGE_PATH"])
    path.unlink(missing_ok=True)
    yield path
    path.unlink(missing_ok=True)
