"""Tunelight models"""

from tunelight.models.base_models import DetailedHealthResponse, ErrorResponse, HealthResponse
from tunelight.models.light import DeviceTarget, DispatchResult, LightStatus
from tunelight.models.palette import Palette, PaletteResult, Swatch
from tunelight.models.spectrum import Bar, SpectrumFrame, SpectrumSnapshot
from tunelight.models.spotify import PendingAuthRequest, PlaybackState, PollOutcome, PollResult, Token

__all__ = [
    "Bar",
    "DetailedHealthResponse",
    "DeviceTarget",
    "DispatchResult",
    "ErrorResponse",
    "HealthResponse",
    "LightStatus",
    "Palette",
    "PaletteResult",
    "PendingAuthRequest",
    "PlaybackState",
    "PollOutcome",
    "PollResult",
    "SpectrumFrame",
    "SpectrumSnapshot",
    "Swatch",
    "Token",
]
