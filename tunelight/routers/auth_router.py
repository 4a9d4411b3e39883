"""Spotify login routes (PKCE authorization code flow)."""

from fastapi import APIRouter, Depends, Query
from fastapi.responses import RedirectResponse

from tunelight.dependencies import get_orchestrator
from tunelight.exceptions import AuthException
from tunelight.logging_config import get_logger, log_with_context
from tunelight.services.sync_orchestrator import SyncOrchestrator

router = APIRouter()
logger = get_logger(__name__)


@router.get(
    "/auth/login",
    summary="Start Spotify login",
    description="""
    Creates a fresh PKCE verifier and redirects the browser to Spotify's
    authorization page. Calling it again replaces any pending login.
    """,
    response_class=RedirectResponse,
    responses={307: {"description": "Redirect to Spotify authorization"}},
)
async def login(orchestrator: SyncOrchestrator = Depends(get_orchestrator)):
    """Redirect to the Spotify authorization URL."""
    return RedirectResponse(orchestrator.auth_flow.begin_login())


@router.get(
    "/auth/callback",
    summary="Spotify login callback",
    description="""
    Exchanges the authorization code for an access token and starts playback
    polling. Always answers with a redirect to `/`, so the one-time `code`
    and `error` parameters never stay in the address bar. Failures are shown
    on the login view.
    """,
    response_class=RedirectResponse,
    responses={303: {"description": "Redirect to the main page"}},
)
async def callback(
    code: str | None = Query(default=None, description="Authorization code"),
    error: str | None = Query(default=None, description="Authorization error"),
    orchestrator: SyncOrchestrator = Depends(get_orchestrator),
):
    """Complete the login and normalize the URL."""
    try:
        await orchestrator.auth_flow.complete_login(code, error)
    except AuthException as e:
        # AuthFlow keeps the message for the login view
        log_with_context(logger, "info", "Login did not complete", error_code=e.code.value, event_type="auth_callback_failed")
    else:
        await orchestrator.on_authenticated()
    return RedirectResponse("/", status_code=303)
