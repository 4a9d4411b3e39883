"""Application factory for creating and configuring the FastAPI app."""

from pathlib import Path

from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles

from tunelight import __version__
from tunelight.config import get_settings
from tunelight.core.lifespan import lifespan
from tunelight.core.middleware import setup_middleware
from tunelight.middleware.error_handlers import register_error_handlers
from tunelight.routers import (
    audio_router,
    auth_router,
    health_router,
    light_router,
    palette_router,
    playback_router,
    view_router,
)

STATIC_DIR = Path(__file__).parent.parent / "static"


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application instance
    """
    # Load settings
    settings = get_settings()

    app = FastAPI(
        title="tunelight",
        description="""
        Syncs the colours of the album you are playing on Spotify to a WLED
        light, and can drive it from a live microphone spectrum instead.

        ## Spotify login
        1. Open `/` and choose **Login with Spotify** (or visit `/auth/login`)
        2. Approve access; Spotify redirects back to `/auth/callback`
        3. Playback is polled every 15 seconds from then on

        There is no refresh token: once the access token expires, log in again.

        ## WLED
        Commands are posted to `http://<ip>/json/state` without reading the
        answer, so a successful send only means the request went out.

        ## Health
        - `/health` - Liveness check
        - `/health/ready` - Component state

        ## Rate limits
        - Most endpoints: 60 requests/minute per IP
        - Send colour: 30 requests/minute per IP
        """,
        version=__version__,
        lifespan=lifespan,
    )

    # Configure middleware
    setup_middleware(app, settings)

    # Register exception handlers
    register_error_handlers(app)

    # Mount static files
    app.mount("/static", StaticFiles(directory=str(STATIC_DIR)), name="static")

    # Include routers
    # Page and login routes - no prefix
    app.include_router(view_router.router, tags=["views"])
    app.include_router(auth_router.router, tags=["auth"])

    # Health endpoints
    app.include_router(health_router.router, tags=["health"])

    # API routes
    app.include_router(playback_router.router, prefix="/api/playback", tags=["playback"])
    app.include_router(palette_router.router, prefix="/api/palette", tags=["palette"])
    app.include_router(light_router.router, prefix="/api/light", tags=["light"])
    app.include_router(audio_router.router, prefix="/api/audio", tags=["audio"])

    return app
