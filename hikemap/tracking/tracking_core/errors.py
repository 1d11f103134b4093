"""Exceptions raised by the tracking engine."""

from __future__ import annotations


class TrackingError(Exception):
    """Base class for tracking engine errors."""


class InvalidCoordinateError(TrackingError, ValueError):
    """Latitude or longitude outside its valid range, or not a finite number."""


class FrameParseError(TrackingError, ValueError):
    """A BLE text frame could not be turned into a position."""

    def __init__(self, message: str, frame: object = None) -> None:
        super().__init__(message)
        self.frame = frame


class ConfigurationError(TrackingError):
    """Configuration is unusable."""


class MissingCredentialError(ConfigurationError):
    """The map provider access token is not configured."""


class SessionClosedError(TrackingError):
    """Operation requested on a tracking session that has been closed."""


__all__ = [
    "TrackingError",
    "InvalidCoordinateError",
    "FrameParseError",
    "ConfigurationError",
    "MissingCredentialError",
    "SessionClosedError",
]
