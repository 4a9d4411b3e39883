"""Custom exceptions for Tunelight with proper HTTP status codes."""

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Error codes for structured error responses."""

    # Generic errors
    SYNC_ERROR = "SYNC_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"

    # Spotify authorization errors
    AUTH_ERROR = "AUTH_ERROR"
    AUTH_DENIED = "AUTH_DENIED"
    AUTH_SESSION_LOST = "AUTH_SESSION_LOST"
    AUTH_EXCHANGE_FAILED = "AUTH_EXCHANGE_FAILED"
    TOKEN_EXPIRED_OR_REJECTED = "TOKEN_EXPIRED_OR_REJECTED"

    # Network errors that clear up on the next scheduled cycle
    TRANSIENT_NETWORK_ERROR = "TRANSIENT_NETWORK_ERROR"
    IMAGE_LOAD_ERROR = "IMAGE_LOAD_ERROR"

    # Microphone / audio backend errors
    MEDIA_ACCESS_ERROR = "MEDIA_ACCESS_ERROR"

    # Configuration errors
    CONFIG_ERROR = "CONFIG_ERROR"


class SyncException(Exception):
    """Base exception for tunelight errors with HTTP status code support.

    All custom exceptions should inherit from this class to ensure
    consistent error handling across the application.
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.SYNC_ERROR,
        status_code: int = 500,
        details: dict[str, Any] | None = None,
    ):
        """Initialize sync exception.

        Args:
            message: Human-readable error message
            code: Error code from ErrorCode enum
            status_code: HTTP status code (default 500)
            details: Additional error context/details
        """
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)


class AuthException(SyncException):
    """Spotify authorization flow failed. Terminal for the current flow."""

    def __init__(
        self,
        message: str = "Spotify authentication failed",
        code: ErrorCode = ErrorCode.AUTH_ERROR,
        status_code: int = 400,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, code, status_code, details)


class AuthorizationDeniedException(AuthException):
    """The authorization server redirected back with an error parameter."""

    def __init__(self, error: str, details: dict[str, Any] | None = None):
        super().__init__(
            f"Spotify authentication failed: {error}",
            code=ErrorCode.AUTH_DENIED,
            details={"error": error, **(details or {})},
        )


class AuthSessionLostException(AuthException):
    """The pending PKCE verifier vanished between login and callback."""

    def __init__(
        self,
        message: str = "Authentication session error. Please try logging in again.",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, code=ErrorCode.AUTH_SESSION_LOST, details=details)


class TokenExchangeException(AuthException):
    """Exchanging the authorization code for an access token failed."""

    def __init__(self, reason: str, details: dict[str, Any] | None = None):
        super().__init__(
            f"Token exchange failed: {reason}",
            code=ErrorCode.AUTH_EXCHANGE_FAILED,
            status_code=502,
            details={"reason": reason, **(details or {})},
        )


class TokenExpiredOrRejectedException(SyncException):
    """Access token is expired or was rejected by the Web API."""

    def __init__(self, message: str = "Not authenticated with Spotify", details: dict[str, Any] | None = None):
        super().__init__(
            message,
            code=ErrorCode.TOKEN_EXPIRED_OR_REJECTED,
            status_code=401,
            details=details,
        )


class TransientNetworkException(SyncException):
    """A remote call failed; the next scheduled cycle retries it."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.TRANSIENT_NETWORK_ERROR,
        status_code: int = 502,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, code, status_code, details)


class ImageLoadException(TransientNetworkException):
    """Album artwork could not be fetched or decoded."""

    def __init__(self, message: str = "Failed to load album art", details: dict[str, Any] | None = None):
        super().__init__(message, code=ErrorCode.IMAGE_LOAD_ERROR, details=details)


class MediaAccessException(SyncException):
    """Microphone is denied, missing, or the audio backend is unavailable."""

    def __init__(self, message: str = "Could not access microphone", details: dict[str, Any] | None = None):
        super().__init__(
            message,
            code=ErrorCode.MEDIA_ACCESS_ERROR,
            status_code=503,
            details=details,
        )


class ConfigurationException(SyncException):
    """Configuration errors."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.CONFIG_ERROR,
        status_code: int = 500,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, code, status_code, details)
