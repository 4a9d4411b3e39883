"""Tunelight - Spotify album art and microphone spectrum to WLED"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("tunelight")
except PackageNotFoundError:
    __version__ = "dev"
