"""Exception handlers turning tunelight errors into JSON error bodies.

Every error leaves as ``{"error": {"code", "message", "details"}}``. Spotify
login problems and rejected tokens are client errors; a missing microphone,
an unreachable artwork CDN or a bad configuration are server-side.
"""

from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from tunelight.exceptions import ErrorCode, SyncException
from tunelight.logging_config import get_logger, log_with_context
from tunelight.middleware.logging_middleware import redact_sensitive_data

logger = get_logger(__name__)


def _error_body(code: ErrorCode, message: str, details: dict[str, Any] | None = None) -> dict[str, Any]:
    error: dict[str, Any] = {"code": code.value, "message": message}
    if details is not None:
        error["details"] = details
    return {"error": error}


async def sync_exception_handler(request: Request, exc: SyncException) -> JSONResponse:
    """Answer with the exception's status code and error code.

    A rejected Spotify token on an HTMX request also sets ``HX-Refresh`` so
    the page reloads into the login view.
    """
    log_with_context(
        logger,
        "error" if exc.status_code >= 500 else "warning",
        "Request failed",
        error_code=exc.code.value,
        error_message=exc.message,
        status_code=exc.status_code,
        method=request.method,
        url=redact_sensitive_data(str(request.url)),
        event_type="sync_error",
    )

    headers = None
    if exc.code is ErrorCode.TOKEN_EXPIRED_OR_REJECTED and request.headers.get("HX-Request") == "true":
        headers = {"HX-Refresh": "true"}

    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(exc.code, exc.message, exc.details),
        headers=headers,
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    log_with_context(
        logger,
        "error",
        "Unhandled exception",
        error=str(exc),
        error_type=type(exc).__name__,
        method=request.method,
        url=redact_sensitive_data(str(request.url)),
        event_type="unhandled_error",
    )
    logger.error("Exception traceback:", exc_info=exc)

    # Internal details stay in the log
    return JSONResponse(
        status_code=500,
        content=_error_body(ErrorCode.INTERNAL_ERROR, "Internal server error"),
    )


def register_error_handlers(app: FastAPI) -> None:
    """Install the tunelight handlers plus slowapi's 429 handler."""
    from slowapi import _rate_limit_exceeded_handler
    from slowapi.errors import RateLimitExceeded

    app.add_exception_handler(SyncException, sync_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
