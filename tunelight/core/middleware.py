"""Middleware configuration."""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import Limiter
from slowapi.util import get_remote_address

from tunelight.config import Settings
from tunelight.logging_config import get_logger, log_with_context

logger = get_logger(__name__)


def get_cors_origins(settings: Settings) -> list[str]:
    """Origins allowed to call the API: the page itself, on either loopback name."""
    origins = {f"http://{settings.api_host}:{settings.api_port}"}
    if settings.api_host in ("127.0.0.1", "localhost", "0.0.0.0"):
        origins.update({f"http://127.0.0.1:{settings.api_port}", f"http://localhost:{settings.api_port}"})
    return sorted(origins)


def setup_middleware(app: FastAPI, settings: Settings) -> Limiter:
    """Configure all middleware for the application.

    Args:
        app: FastAPI application instance
        settings: Application settings

    Returns:
        Limiter instance for rate limiting
    """
    origins = get_cors_origins(settings)
    log_with_context(
        logger,
        "info",
        "Configuring CORS middleware",
        event_type="security_config",
        origins=origins,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Initialize rate limiter (60 requests per minute per IP)
    limiter = Limiter(key_func=get_remote_address, default_limits=["60/minute"])
    app.state.limiter = limiter

    # Middleware to count requests
    @app.middleware("http")
    async def count_requests(request, call_next):
        """Count total requests for the readiness endpoint."""
        app.state.request_count = getattr(app.state, "request_count", 0) + 1
        response = await call_next(request)
        return response

    return limiter
