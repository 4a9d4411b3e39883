"""Now-playing poller for the Spotify Web API."""

import asyncio
from collections.abc import Awaitable, Callable

import httpx

from tunelight.config import Settings
from tunelight.logging_config import get_logger, log_with_context
from tunelight.models import PlaybackState, PollOutcome, PollResult
from tunelight.state_managers import TokenStore

logger = get_logger(__name__)

CURRENTLY_PLAYING_PATH = "/me/player/currently-playing"

ArtworkChangeHandler = Callable[[str | None], Awaitable[None]]


class PlaybackPoller:
    """Fetches "now playing" and reports artwork changes.

    Polls never overlap: a ``poll()`` issued while another is running awaits
    the running one and returns its result. ``on_artwork_change`` is awaited
    only when the artwork URL differs from the previously observed one, with
    ``None`` meaning "no item" or "item without artwork".
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        token_store: TokenStore,
        settings: Settings,
        on_artwork_change: ArtworkChangeHandler | None = None,
    ):
        self._client = client
        self._token_store = token_store
        self._settings = settings
        self.on_artwork_change = on_artwork_change
        self._inflight: asyncio.Task[PollResult] | None = None
        self._last_artwork_url: str | None = None
        self.last_result: PollResult | None = None

    @property
    def last_artwork_url(self) -> str | None:
        return self._last_artwork_url

    def reset(self) -> None:
        """Forget the last observed artwork so the next poll counts as a change."""
        self._last_artwork_url = None
        self.last_result = None

    async def poll(self) -> PollResult:
        """Fetch the current item, coalescing with a poll already in progress."""
        if self._inflight is None or self._inflight.done():
            self._inflight = asyncio.ensure_future(self._poll_once())
        return await asyncio.shield(self._inflight)

    async def _poll_once(self) -> PollResult:
        if not self._token_store.is_valid():
            log_with_context(
                logger,
                "info",
                "Access token expired or invalid, re-login required",
                event_type="poll_token_invalid",
            )
            self._token_store.clear()
            return self._record(PollResult(outcome=PollOutcome.NEEDS_REAUTH))

        token = self._token_store.get()
        if token is None:
            return self._record(PollResult(outcome=PollOutcome.NEEDS_REAUTH))

        try:
            response = await self._client.get(
                f"{self._settings.spotify_api_base_url}{CURRENTLY_PLAYING_PATH}",
                headers={"Authorization": f"Bearer {token.value}"},
                timeout=self._settings.request_timeout_seconds,
            )
        except httpx.HTTPError as e:
            return self._error(f"Spotify request failed: {str(e) or type(e).__name__}")

        if response.status_code == 401:
            log_with_context(
                logger,
                "info",
                "Token resulted in 401, clearing token",
                event_type="poll_token_rejected",
            )
            self._token_store.clear()
            return self._record(PollResult(outcome=PollOutcome.NEEDS_REAUTH))

        if not response.is_success:
            return self._error(f"Spotify API Error: {_api_error_message(response)}", status_code=response.status_code)

        if response.status_code == 204 or not response.content:
            return await self._observe(PlaybackState())

        try:
            data = response.json()
        except ValueError as e:
            return self._error(f"Spotify API Error: invalid JSON ({e})")

        if data is None:
            data = {}
        if not isinstance(data, dict):
            return self._error(f"Spotify API Error: unexpected response format ({type(data).__name__})")

        return await self._observe(PlaybackState.from_currently_playing(data))

    async def _observe(self, state: PlaybackState) -> PollResult:
        artwork_url = state.artwork_url if state.has_item else None
        changed = artwork_url != self._last_artwork_url
        self._last_artwork_url = artwork_url

        result = self._record(
            PollResult(
                outcome=PollOutcome.PLAYING if state.has_item else PollOutcome.NOTHING_PLAYING,
                state=state,
                artwork_changed=changed,
            )
        )

        if changed:
            log_with_context(
                logger,
                "info",
                "Album artwork changed",
                artwork_url=artwork_url,
                track_name=state.track_name,
                event_type="poll_artwork_changed",
            )
            if self.on_artwork_change is not None:
                await self.on_artwork_change(artwork_url)

        return result

    def _error(self, message: str, **fields) -> PollResult:
        log_with_context(logger, "warning", "Now-playing poll failed", error=message, event_type="poll_error", **fields)
        return self._record(PollResult(outcome=PollOutcome.ERROR, error=message))

    def _record(self, result: PollResult) -> PollResult:
        self.last_result = result
        return result


def _api_error_message(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        data = None
    if isinstance(data, dict):
        error = data.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
    return response.reason_phrase or f"HTTP {response.status_code}"
