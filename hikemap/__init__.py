"""Top-level package for the hikemap position tracking engine."""

from __future__ import annotations

from importlib import metadata
from typing import Optional, Sequence

try:
    __version__ = metadata.version("hikemap")
except metadata.PackageNotFoundError:  # pragma: no cover - local dev
    __version__ = "0.0.0"


def run(argv: Optional[Sequence[str]] = None) -> int:
    """Convenience wrapper that runs the tracking command-line entry point."""
    from .tracking.main_tracking import run as run_tracking

    return run_tracking(list(argv) if argv is not None else None)


__all__ = ["__version__", "run"]
