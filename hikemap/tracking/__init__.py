"""Live hike tracking: config, command-line runner and control API."""

from .config import TrackingConfig

__all__ = ["TrackingConfig"]
