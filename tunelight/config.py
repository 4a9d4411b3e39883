from pathlib import Path
from typing import Literal

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from tunelight.exceptions import ConfigurationException

BASE_DIR = Path(__file__).resolve().parent.parent  # repository root


class Settings(BaseSettings):
    """Application settings with validation.

    Only the Spotify client ID is required. PKCE needs no client secret, so
    nothing else here is sensitive.

    Uses Pydantic v2 API:
    - model_config with SettingsConfigDict
    - @field_validator decorator
    """

    # Local web server
    api_host: str = Field(default="127.0.0.1", min_length=1, description="Server host")
    api_port: int = Field(ge=1, le=65535, default=8000, description="Server port")

    # Spotify PKCE client - client ID is public, no secret involved
    spotify_client_id: str = Field(min_length=1, description="Spotify OAuth client ID")
    spotify_redirect_uri: str = Field(
        default="http://127.0.0.1:8000/auth/callback",
        pattern=r"^https?://",
        description="Redirect URI registered in the Spotify developer dashboard",
    )
    spotify_scopes: str = Field(
        default="user-read-currently-playing user-read-playback-state",
        description="Space separated OAuth scopes",
    )
    spotify_auth_url: str = Field(default="https://accounts.spotify.com/authorize")
    spotify_token_url: str = Field(default="https://accounts.spotify.com/api/token")
    spotify_api_base_url: str = Field(default="https://api.spotify.com/v1")

    # Polling and network
    poll_interval_seconds: float = Field(default=15.0, gt=0, description="Now-playing poll cadence")
    request_timeout_seconds: float = Field(default=10.0, gt=0, description="Timeout for remote calls")

    # Client-local durable key/value storage
    storage_path: Path = Field(
        default=Path.home() / ".tunelight" / "storage.json",
        description="JSON file holding token, PKCE verifier and WLED IP",
    )

    # Palette extraction
    palette_size: int = Field(default=6, ge=1, le=32, description="Number of swatches to extract")

    # Spectrum analysis
    spectrum_bin_count: int = Field(default=128, ge=16, le=16384, description="Frequency bins (power of two)")
    spectrum_fps: float = Field(default=60.0, gt=0, le=240, description="Render ticks per second")
    spectrum_canvas_width: int = Field(default=512, ge=16)
    spectrum_canvas_height: int = Field(default=256, ge=16)
    audio_sample_rate: int = Field(default=44100, ge=8000)
    audio_device: str | None = Field(default=None, description="sounddevice input device (name or index)")

    # Spectrum -> light mapping
    led_count: int = Field(default=16, ge=1, description="LEDs on the WLED segment for level mapping")
    audio_light_mode: Literal["off", "bass", "levels"] = Field(
        default="off",
        description="Whether spectrum frames are forwarded to WLED",
    )
    audio_dispatch_interval_ms: int = Field(default=100, ge=10, description="Minimum gap between spectrum dispatches")

    # Logging
    log_level: str = Field(default="INFO")
    log_dir: Path = Field(default=BASE_DIR / "logs")

    model_config = SettingsConfigDict(
        env_file=Path(BASE_DIR / ".env"),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        validate_default=True,  # Validate defaults too
    )

    @property
    def scopes(self) -> list[str]:
        """OAuth scopes as a list."""
        return self.spotify_scopes.split()

    @field_validator("spotify_client_id", mode="after")
    @classmethod
    def validate_spotify_client_id(cls, v: str) -> str:
        """Ensure client ID is not whitespace."""
        v = v.strip()
        if not v:
            raise ValueError("spotify_client_id must not be empty")
        return v

    @field_validator("spectrum_bin_count", mode="after")
    @classmethod
    def validate_spectrum_bin_count(cls, v: int) -> int:
        """Ensure the bin count is a power of two (FFT size is twice the bin count)."""
        if v & (v - 1) != 0:
            raise ValueError("spectrum_bin_count must be a power of two")
        return v

    @field_validator("spotify_redirect_uri", mode="after")
    @classmethod
    def validate_spotify_redirect_uri(cls, v: str) -> str:
        """Ensure redirect URI is an http(s) URL."""
        if not v.startswith(("http://", "https://")):
            raise ValueError("spotify_redirect_uri must be a valid http:// or https:// URL")
        return v

    @field_validator("audio_device", mode="before")
    @classmethod
    def validate_audio_device(cls, v: str | int | None) -> str | None:
        """Treat an empty device string as the system default."""
        if v is None:
            return None
        v = str(v).strip()
        return v or None


# Singleton settings instance (cached for performance)
_settings_instance: Settings | None = None


def get_settings() -> Settings:
    """Get singleton Settings instance for dependency injection.

    This function creates a singleton to avoid re-reading .env file
    on every request. Use this with FastAPI's Depends() for
    dependency injection.

    Returns:
        Cached Settings instance

    Raises:
        ConfigurationException: Required settings missing or invalid
    """
    global _settings_instance
    if _settings_instance is None:
        try:
            _settings_instance = Settings()
        except ValidationError as e:
            fields = [".".join(str(part) for part in error["loc"]) for error in e.errors()]
            raise ConfigurationException(
                f"Invalid configuration: {', '.join(fields)}",
                details={"errors": [error["msg"] for error in e.errors()]},
            ) from e
    return _settings_instance
