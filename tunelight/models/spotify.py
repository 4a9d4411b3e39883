"""Pydantic models for Spotify auth state and playback."""

from enum import Enum

from pydantic import BaseModel, Field


class Token(BaseModel):
    """OAuth bearer token with absolute expiry in epoch milliseconds."""

    value: str
    expires_at_ms: int

    def is_valid(self, now_ms: int) -> bool:
        """A token is valid iff it is non-empty and not yet expired."""
        return bool(self.value) and now_ms < self.expires_at_ms


class PendingAuthRequest(BaseModel):
    """PKCE verifier held between "login initiated" and "callback received"."""

    code_verifier: str = Field(min_length=43, max_length=128)
    created_at_ms: int


class PlaybackState(BaseModel):
    """Last observed playing item. All fields empty when nothing plays."""

    track_name: str | None = None
    artist_names: list[str] = Field(default_factory=list)
    album_name: str | None = None
    artwork_url: str | None = None

    @property
    def has_item(self) -> bool:
        """Whether an item was playing."""
        return self.track_name is not None

    @property
    def artist_display(self) -> str:
        """Artist names joined for display."""
        return ", ".join(self.artist_names)

    @classmethod
    def from_currently_playing(cls, data: dict) -> "PlaybackState":
        """Build state from a /me/player/currently-playing payload.

        Spotify lists album images widest first, so the first one is the
        highest resolution.
        """
        item = data.get("item")
        if not item:
            return cls()

        album = item.get("album") or {}
        images = album.get("images") or []
        return cls(
            track_name=item.get("name"),
            artist_names=[artist.get("name", "") for artist in item.get("artists") or []],
            album_name=album.get("name"),
            artwork_url=images[0].get("url") if images else None,
        )


class PollOutcome(str, Enum):
    """What a single now-playing poll observed."""

    PLAYING = "playing"
    NOTHING_PLAYING = "nothing_playing"
    NEEDS_REAUTH = "needs_reauth"
    ERROR = "error"


class PollResult(BaseModel):
    """Result of one PlaybackPoller.poll() call."""

    outcome: PollOutcome
    state: PlaybackState | None = None
    artwork_changed: bool = False
    error: str | None = None

    @property
    def needs_reauth(self) -> bool:
        return self.outcome == PollOutcome.NEEDS_REAUTH
