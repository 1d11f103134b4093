"""Tracking state shared by the recorder, arbiter and camera controller."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Tuple

from .geo import GeoPoint


class Source(Enum):
    """Origin of position samples allowed to update the tracking state."""
    NONE = "none"
    PHONE_GPS = "phone_gps"
    BLE_PERIPHERAL = "ble_peripheral"


@dataclass(slots=True)
class TrackingState:
    """Single source of truth for one tracking session.

    ``current`` and ``previous`` only change together with an append to
    ``_path``; use :class:`~.recorder.PathRecorder` to mutate them.
    """

    current: GeoPoint
    previous: GeoPoint
    _path: List[GeoPoint] = field(default_factory=list, repr=False)
    follow_mode: bool = False
    active_source: Source = Source.NONE

    @classmethod
    def seeded(cls, seed: GeoPoint, follow_mode: bool = False) -> "TrackingState":
        """Create a state whose path holds only the seed point."""
        return cls(current=seed, previous=seed, _path=[seed], follow_mode=follow_mode)

    @property
    def path(self) -> Tuple[GeoPoint, ...]:
        """Read-only view of the traveled path."""
        return tuple(self._path)

    @property
    def path_length(self) -> int:
        return len(self._path)

    def to_dict(self) -> dict:
        return {
            "current": self.current.to_dict(),
            "previous": self.previous.to_dict(),
            "path_points": len(self._path),
            "follow_mode": self.follow_mode,
            "active_source": self.active_source.value,
        }


__all__ = ["Source", "TrackingState"]
