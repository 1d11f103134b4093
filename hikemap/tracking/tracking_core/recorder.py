"""Jitter filter and path recorder."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple, Union

from hikemap.core.logging_utils import get_module_logger
from .constants import DEFAULT_DISTANCE_THRESHOLD_M
from .geo import GeoPoint, haversine_m, path_length_m
from .state import TrackingState

logger = get_module_logger(__name__)


@dataclass(frozen=True, slots=True)
class Accepted:
    point: GeoPoint
    distance_m: float


@dataclass(frozen=True, slots=True)
class Rejected:
    candidate: GeoPoint
    distance_m: float


IngestResult = Union[Accepted, Rejected]


class PathRecorder:
    """Accepts position samples that moved far enough and records them.

    A candidate is accepted when it lies more than ``distance_threshold_m``
    from the last accepted point, or when the path still holds only its seed
    point. Rejected samples leave the state untouched.

    Example:
        state = TrackingState.seeded(GeoPoint(6.9271, 79.8612))
        recorder = PathRecorder(state)
        result = recorder.ingest(GeoPoint(6.95, 79.90))
        if isinstance(result, Accepted):
            ...
    """

    def __init__(
        self,
        state: TrackingState,
        distance_threshold_m: float = DEFAULT_DISTANCE_THRESHOLD_M,
    ):
        if distance_threshold_m < 0:
            raise ValueError("distance_threshold_m must be >= 0")
        self._state = state
        self.distance_threshold_m = float(distance_threshold_m)
        self._accepted_count = 0
        self._rejected_count = 0

    @property
    def state(self) -> TrackingState:
        return self._state

    @property
    def current(self) -> GeoPoint:
        return self._state.current

    @property
    def previous(self) -> GeoPoint:
        return self._state.previous

    @property
    def path(self) -> Tuple[GeoPoint, ...]:
        return self._state.path

    @property
    def accepted_count(self) -> int:
        return self._accepted_count

    @property
    def rejected_count(self) -> int:
        return self._rejected_count

    def ingest(self, candidate: GeoPoint) -> IngestResult:
        """Filter one sample and append it to the path if accepted."""
        state = self._state
        d = haversine_m(state.previous, candidate)

        if d > self.distance_threshold_m or state.path_length == 1:
            state._path.append(candidate)
            state.previous = candidate
            state.current = candidate
            self._accepted_count += 1
            logger.debug(
                "Accepted %.6f,%.6f (%.1f m, path=%d)",
                candidate.lat, candidate.lon, d, state.path_length,
            )
            return Accepted(candidate, d)

        self._rejected_count += 1
        logger.debug("Rejected jitter %.6f,%.6f (%.1f m)", candidate.lat, candidate.lon, d)
        return Rejected(candidate, d)

    def total_distance_m(self) -> float:
        """Length of the recorded path in meters."""
        return path_length_m(self._state._path)


__all__ = ["Accepted", "Rejected", "IngestResult", "PathRecorder"]
