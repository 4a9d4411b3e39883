"""Spotify authorization code flow with PKCE (no client secret)."""

import base64
import hashlib
import secrets
import string
from collections.abc import Callable
from enum import Enum
from urllib.parse import urlencode

import httpx

from tunelight.config import Settings
from tunelight.exceptions import (
    AuthorizationDeniedException,
    AuthSessionLostException,
    TokenExchangeException,
)
from tunelight.logging_config import get_logger, log_with_context
from tunelight.models import PendingAuthRequest, Token
from tunelight.state_managers import PendingAuthStore, TokenStore, epoch_ms

logger = get_logger(__name__)

VERIFIER_ALPHABET = string.ascii_letters + string.digits
VERIFIER_LENGTH = 128  # RFC 7636 allows 43-128


def generate_code_verifier(length: int = VERIFIER_LENGTH) -> str:
    """Random PKCE verifier drawn from [A-Za-z0-9] with a CSPRNG."""
    if not 43 <= length <= 128:
        raise ValueError("PKCE verifier length must be between 43 and 128")
    return "".join(secrets.choice(VERIFIER_ALPHABET) for _ in range(length))


def generate_code_challenge(code_verifier: str) -> str:
    """S256 challenge: base64url(SHA-256(verifier)) with padding stripped."""
    digest = hashlib.sha256(code_verifier.encode("ascii")).digest()
    return base64.urlsafe_b64encode(digest).decode("ascii").rstrip("=")


class AuthState(str, Enum):
    IDLE = "idle"
    AUTHORIZATION_REQUESTED = "authorization_requested"
    CALLBACK_RECEIVED = "callback_received"
    EXCHANGING = "exchanging"
    AUTHENTICATED = "authenticated"
    FAILED = "failed"


class AuthFlow:
    """Drives one login at a time and populates the TokenStore.

    AUTHENTICATED and FAILED are both re-enterable: ``begin_login()`` may be
    called again at any time and simply replaces the pending verifier.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        token_store: TokenStore,
        pending_store: PendingAuthStore,
        settings: Settings,
        clock: Callable[[], int] = epoch_ms,
    ):
        self._client = client
        self._token_store = token_store
        self._pending_store = pending_store
        self._settings = settings
        self._clock = clock
        self.state = AuthState.IDLE
        self.last_error: str | None = None

    def begin_login(self) -> str:
        """Create and store a verifier, return the authorization URL to redirect to."""
        code_verifier = generate_code_verifier()
        self._pending_store.set(PendingAuthRequest(code_verifier=code_verifier, created_at_ms=self._clock()))

        params = {
            "client_id": self._settings.spotify_client_id,
            "response_type": "code",
            "redirect_uri": self._settings.spotify_redirect_uri,
            "scope": " ".join(self._settings.scopes),
            "code_challenge_method": "S256",
            "code_challenge": generate_code_challenge(code_verifier),
        }
        self.state = AuthState.AUTHORIZATION_REQUESTED
        self.last_error = None

        log_with_context(logger, "info", "Spotify login initiated", event_type="auth_login_started")
        return f"{self._settings.spotify_auth_url}?{urlencode(params)}"

    async def complete_login(self, code: str | None, error: str | None = None) -> Token:
        """Handle the redirect back from Spotify.

        Args:
            code: Authorization code query parameter
            error: Error query parameter

        Returns:
            The stored token

        Raises:
            AuthorizationDeniedException: Spotify returned an error parameter
            AuthSessionLostException: No pending verifier (storage cleared mid-flow)
            TokenExchangeException: Token endpoint rejected the exchange or was unreachable
        """
        self.state = AuthState.CALLBACK_RECEIVED

        if error or not code:
            exc = AuthorizationDeniedException(error or "missing_code")
            self._fail(exc.message, "auth_denied")
            raise exc

        pending = self._pending_store.get()
        if pending is None:
            exc = AuthSessionLostException()
            self._fail(exc.message, "auth_session_lost")
            raise exc

        self.state = AuthState.EXCHANGING
        try:
            response = await self._client.post(
                self._settings.spotify_token_url,
                data={
                    "client_id": self._settings.spotify_client_id,
                    "grant_type": "authorization_code",
                    "code": code,
                    "redirect_uri": self._settings.spotify_redirect_uri,
                    "code_verifier": pending.code_verifier,
                },
                timeout=self._settings.request_timeout_seconds,
            )
        except httpx.HTTPError as e:
            exc = TokenExchangeException(str(e) or type(e).__name__)
            self._fail(exc.message, "auth_exchange_failed")
            raise exc from e

        if not response.is_success:
            exc = TokenExchangeException(_error_description(response), details={"status_code": response.status_code})
            self._fail(exc.message, "auth_exchange_failed", status_code=response.status_code)
            raise exc

        try:
            data = response.json()
            token = Token(
                value=data["access_token"],
                expires_at_ms=self._clock() + int(data["expires_in"]) * 1000,
            )
        except (KeyError, TypeError, ValueError) as e:
            exc = TokenExchangeException(f"Invalid token response: {e}")
            self._fail(exc.message, "auth_exchange_failed")
            raise exc from e

        self._token_store.set(token)
        self._pending_store.clear()
        self.state = AuthState.AUTHENTICATED
        self.last_error = None

        log_with_context(
            logger,
            "info",
            "Spotify authentication succeeded",
            expires_at_ms=token.expires_at_ms,
            event_type="auth_success",
        )
        return token

    def reset(self) -> None:
        """Forget any pending request and return to IDLE."""
        self._pending_store.clear()
        self.state = AuthState.IDLE
        self.last_error = None

    def _fail(self, reason: str, event_type: str, **fields) -> None:
        self.state = AuthState.FAILED
        self.last_error = reason
        log_with_context(logger, "warning", "Spotify authentication failed", reason=reason, event_type=event_type, **fields)


def _error_description(response: httpx.Response) -> str:
    """Remote error_description when present, otherwise the HTTP reason phrase."""
    try:
        data = response.json()
    except ValueError:
        data = None
    if isinstance(data, dict) and data.get("error_description"):
        return str(data["error_description"])
    return response.reason_phrase or f"HTTP {response.status_code}"
