"""State managers for handling application-wide mutable state.

Every state manager mirrors its state to LocalStorage. Writes go to storage
first and only then to memory, so a failed write leaves both sides on the
previous value. All access happens on the event loop thread, so no locking
is needed.
"""

import time
from abc import ABC, abstractmethod
from collections.abc import Callable

from tunelight.logging_config import get_logger, log_with_context
from tunelight.models import DeviceTarget, PendingAuthRequest, Token
from tunelight.utils.local_storage import (
    ACCESS_TOKEN_KEY,
    CODE_VERIFIER_CREATED_AT_KEY,
    CODE_VERIFIER_KEY,
    TOKEN_EXPIRES_AT_KEY,
    WLED_IP_KEY,
    LocalStorage,
)

logger = get_logger(__name__)


def epoch_ms() -> int:
    """Current wall clock time in epoch milliseconds."""
    return int(time.time() * 1000)


class StateManager(ABC):
    """Base class for all state managers.

    All subclasses must implement lifecycle methods.
    """

    @abstractmethod
    async def initialize(self) -> None:
        """Initialize the state manager (called during app startup)."""
        pass

    @abstractmethod
    async def cleanup(self) -> None:
        """Cleanup resources (called during app shutdown)."""
        pass


class TokenStore(StateManager):
    """Holds the Spotify access token and its expiry.

    A pure state holder: no refresh and no retries. A cleared token is
    removed from storage too, so a stale one never comes back on restart.
    """

    def __init__(self, storage: LocalStorage, clock: Callable[[], int] = epoch_ms):
        self._storage = storage
        self._clock = clock
        self._token: Token | None = None

    async def initialize(self) -> None:
        """Load a persisted token, if any."""
        value = self._storage.get(ACCESS_TOKEN_KEY)
        expires_at = self._storage.get(TOKEN_EXPIRES_AT_KEY)
        if not value or not expires_at:
            return

        try:
            self._token = Token(value=value, expires_at_ms=int(float(expires_at)))
        except ValueError:
            log_with_context(
                logger,
                "warning",
                "Discarding persisted token with unreadable expiry",
                event_type="token_load_invalid",
            )
            self.clear()
            return

        log_with_context(
            logger,
            "info",
            "Loaded persisted Spotify token",
            valid=self.is_valid(),
            event_type="token_loaded",
        )

    async def cleanup(self) -> None:
        """Nothing to release. The persisted token must survive restarts."""
        pass

    def get(self) -> Token | None:
        return self._token

    def is_valid(self) -> bool:
        """True iff a token is held, it is non-empty, and now < expiry."""
        return self._token is not None and self._token.is_valid(self._clock())

    def set(self, token: Token) -> None:
        """Persist and hold a new token."""
        self._storage.set_many(
            {
                ACCESS_TOKEN_KEY: token.value,
                TOKEN_EXPIRES_AT_KEY: str(token.expires_at_ms),
            }
        )
        self._token = token
        log_with_context(
            logger,
            "info",
            "Spotify token stored",
            expires_at_ms=token.expires_at_ms,
            event_type="token_set",
        )

    def clear(self) -> None:
        """Drop the token from storage and memory."""
        self._storage.remove(ACCESS_TOKEN_KEY, TOKEN_EXPIRES_AT_KEY)
        self._token = None
        log_with_context(logger, "info", "Spotify token cleared", event_type="token_cleared")


class PendingAuthStore:
    """Holds the single in-flight PKCE verifier."""

    def __init__(self, storage: LocalStorage):
        self._storage = storage

    def get(self) -> PendingAuthRequest | None:
        verifier = self._storage.get(CODE_VERIFIER_KEY)
        if not verifier:
            return None
        created_at = self._storage.get(CODE_VERIFIER_CREATED_AT_KEY) or "0"
        try:
            return PendingAuthRequest(code_verifier=verifier, created_at_ms=int(created_at))
        except ValueError:
            return None

    def set(self, request: PendingAuthRequest) -> None:
        self._storage.set_many(
            {
                CODE_VERIFIER_KEY: request.code_verifier,
                CODE_VERIFIER_CREATED_AT_KEY: str(request.created_at_ms),
            }
        )

    def clear(self) -> None:
        self._storage.remove(CODE_VERIFIER_KEY, CODE_VERIFIER_CREATED_AT_KEY)


class DeviceTargetStore(StateManager):
    """Holds the user supplied WLED address."""

    def __init__(self, storage: LocalStorage):
        self._storage = storage
        self._target = DeviceTarget()

    async def initialize(self) -> None:
        """Load the saved device IP."""
        self._target = DeviceTarget(ip=self._storage.get(WLED_IP_KEY))

    async def cleanup(self) -> None:
        pass

    def get(self) -> DeviceTarget:
        return self._target

    def set(self, ip: str) -> DeviceTarget:
        """Persist a new address (whitespace stripped) and return it."""
        target = DeviceTarget(ip=ip)
        self._storage.set(WLED_IP_KEY, target.ip)
        self._target = target
        log_with_context(
            logger,
            "info",
            "WLED device address saved",
            device_ip=target.ip,
            event_type="device_target_set",
        )
        return target
