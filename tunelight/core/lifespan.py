"""Application lifespan management."""

import os
import time
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from typing import Any

import httpx
from fastapi import FastAPI

from tunelight import __version__
from tunelight.config import Settings, get_settings
from tunelight.logging_config import get_logger, log_with_context
from tunelight.middleware.logging_middleware import redact_sensitive_data
from tunelight.models.light import WLED_STATE_PATH
from tunelight.services.audio_input import MicrophoneInput
from tunelight.services.auth_flow import AuthFlow
from tunelight.services.light_dispatcher import LightDispatcher
from tunelight.services.palette_extractor import HttpImageLoader, PaletteExtractor
from tunelight.services.playback_poller import PlaybackPoller
from tunelight.services.spectrum_analyzer import IntervalFrameClock, SpectrumAnalyzer, SpectrumCanvas
from tunelight.services.sync_orchestrator import SyncContext, SyncOrchestrator
from tunelight.state_managers import DeviceTargetStore, PendingAuthStore, TokenStore
from tunelight.utils.local_storage import LocalStorage

logger = get_logger(__name__)


def _hook_level(request: httpx.Request) -> str:
    # WLED pushes can run at up to 20/s in audio light mode
    return "debug" if request.url.path == WLED_STATE_PATH else "info"


async def log_request(request: httpx.Request) -> None:
    """Event hook to log requests with redacted sensitive data."""
    redacted_url = redact_sensitive_data(str(request.url))
    log_with_context(
        logger,
        _hook_level(request),
        "HTTP Request",
        method=request.method,
        url=redacted_url,
        event_type="http_request",
    )


async def log_response(response: httpx.Response) -> None:
    """Event hook to log responses with redacted sensitive data."""
    redacted_url = redact_sensitive_data(str(response.request.url))
    log_with_context(
        logger,
        _hook_level(response.request),
        "HTTP Response",
        status_code=response.status_code,
        url=redacted_url,
        event_type="http_response",
    )


def create_http_client(settings: Settings) -> httpx.AsyncClient:
    """Shared client for Spotify, artwork downloads and WLED."""
    proxy = os.getenv("HTTP_PROXY") or os.getenv("HTTPS_PROXY")

    # Event hooks for logging with sensitive data redaction
    event_hooks: dict[str, list[Callable[..., Any]]] = {
        "request": [log_request],
        "response": [log_response],
    }

    if proxy:
        log_with_context(logger, "info", "Using HTTP proxy", proxy=redact_sensitive_data(proxy), event_type="proxy_config")

    return httpx.AsyncClient(
        timeout=httpx.Timeout(
            connect=5.0,  # Connection establishment timeout
            read=settings.request_timeout_seconds,
            write=5.0,
            pool=5.0,
        ),
        limits=httpx.Limits(
            max_keepalive_connections=5,
            max_connections=10,
            keepalive_expiry=30.0,  # How long to keep idle connections
        ),
        follow_redirects=True,
        proxy=proxy or None,
        event_hooks=event_hooks,
    )


def build_orchestrator(settings: Settings, client: httpx.AsyncClient, storage: LocalStorage) -> SyncOrchestrator:
    """Assemble every component around one SyncContext."""
    context = SyncContext(
        settings=settings,
        client=client,
        token_store=TokenStore(storage),
        pending_store=PendingAuthStore(storage),
        device_store=DeviceTargetStore(storage),
    )
    timeout = settings.request_timeout_seconds
    analyzer = SpectrumAnalyzer(
        audio_input=MicrophoneInput(
            sample_rate=settings.audio_sample_rate,
            buffer_size=settings.spectrum_bin_count * 2,
            device=settings.audio_device,
        ),
        clock=IntervalFrameClock(settings.spectrum_fps),
        canvas=SpectrumCanvas(settings.spectrum_canvas_width, settings.spectrum_canvas_height),
        bin_count=settings.spectrum_bin_count,
    )
    return SyncOrchestrator(
        context=context,
        auth_flow=AuthFlow(client, context.token_store, context.pending_store, settings),
        poller=PlaybackPoller(client, context.token_store, settings),
        extractor=PaletteExtractor(HttpImageLoader(client, timeout), settings.palette_size),
        dispatcher=LightDispatcher(client, timeout),
        analyzer=analyzer,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application lifespan - startup and shutdown events.

    Exceptions after yield are re-raised so cleanup still runs and the
    error is not swallowed.
    """
    settings = get_settings()
    app.state.startup_time = time.time()
    app.state.request_count = 0

    log_with_context(
        logger,
        "info",
        "Starting tunelight application",
        version=__version__,
        event_type="app_startup",
    )

    client = create_http_client(settings)
    app.state.http_client = client
    log_with_context(
        logger,
        "info",
        "HTTP client initialized successfully",
        event_type="http_client_ready",
    )

    storage = LocalStorage(settings.storage_path)
    orchestrator = build_orchestrator(settings, client, storage)
    app.state.orchestrator = orchestrator

    # Initialize state managers
    state_managers = [orchestrator.context.token_store, orchestrator.context.device_store]
    for manager in state_managers:
        await manager.initialize()
    log_with_context(
        logger,
        "info",
        "State managers initialized",
        storage_path=str(settings.storage_path),
        event_type="state_managers_ready",
    )

    await orchestrator.startup()

    try:
        yield
    except Exception as e:
        # Log the error for observability
        log_with_context(
            logger,
            "error",
            "Application error during lifespan",
            error=str(e),
            error_type=type(e).__name__,
            event_type="app_error",
        )
        raise
    finally:
        # Cleanup always runs, even if exception was raised
        log_with_context(
            logger,
            "info",
            "Shutting down tunelight application",
            event_type="app_shutdown",
        )

        await orchestrator.shutdown()
        for manager in state_managers:
            await manager.cleanup()
        log_with_context(
            logger,
            "info",
            "State managers cleaned up",
            event_type="state_managers_cleanup",
        )

        await client.aclose()
        log_with_context(
            logger,
            "info",
            "HTTP client closed",
            event_type="http_client_cleanup",
        )
