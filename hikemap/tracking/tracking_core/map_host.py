"""Host map collaborator interface.

The tracking engine never draws anything itself. It drives a host map widget
through the small async surface declared by :class:`MapHost`: one marker for
the current location, one polyline for the path, and the camera.
"""

from __future__ import annotations

import itertools
from dataclasses import dataclass
from typing import Any, Dict, Hashable, List, Optional, Protocol, Sequence, Tuple, runtime_checkable

from hikemap.core.logging_utils import get_module_logger
from .constants import (
    DEFAULT_INITIAL_ZOOM,
    MARKER_COLOR,
    MARKER_RADIUS,
    MARKER_STROKE_COLOR,
    MARKER_STROKE_WIDTH,
    PATH_LINE_COLOR,
    PATH_LINE_WIDTH,
)
from .geo import GeoPoint

logger = get_module_logger(__name__)

AnnotationHandle = Hashable


@dataclass(frozen=True, slots=True)
class MarkerStyle:
    color: int = MARKER_COLOR
    radius: float = MARKER_RADIUS
    stroke_color: int = MARKER_STROKE_COLOR
    stroke_width: float = MARKER_STROKE_WIDTH


@dataclass(frozen=True, slots=True)
class PolylineStyle:
    color: int = PATH_LINE_COLOR
    width: float = PATH_LINE_WIDTH


@dataclass(frozen=True, slots=True)
class CameraState:
    zoom: float
    bearing: float = 0.0
    pitch: float = 0.0


@runtime_checkable
class MapHost(Protocol):
    """Operations the engine consumes from the host map widget."""

    async def create_marker(self, point: GeoPoint, style: MarkerStyle) -> AnnotationHandle: ...

    async def update_marker(self, handle: AnnotationHandle, point: GeoPoint) -> None: ...

    async def delete_marker(self, handle: AnnotationHandle) -> None: ...

    async def create_polyline(self, points: Sequence[GeoPoint], style: PolylineStyle) -> AnnotationHandle: ...

    async def update_polyline(self, handle: AnnotationHandle, points: Sequence[GeoPoint]) -> None: ...

    async def delete_polyline(self, handle: AnnotationHandle) -> None: ...

    async def get_camera_state(self) -> CameraState: ...

    async def animate_camera_to(
        self,
        point: GeoPoint,
        zoom: float,
        bearing: float,
        pitch: float,
        duration_ms: int,
    ) -> None: ...


class HeadlessMapHost:
    """In-memory map host for headless runs.

    Keeps annotations in dictionaries and moves its camera instantly. Useful
    on a device without a display, where the API exposes what a map would
    show.
    """

    def __init__(self, center: GeoPoint, zoom: float = DEFAULT_INITIAL_ZOOM):
        self._ids = itertools.count(1)
        self.markers: Dict[int, Tuple[GeoPoint, MarkerStyle]] = {}
        self.polylines: Dict[int, Tuple[List[GeoPoint], PolylineStyle]] = {}
        self.center = center
        self.camera = CameraState(zoom=zoom)
        self.animations: List[Tuple[GeoPoint, CameraState, int]] = []

    async def create_marker(self, point: GeoPoint, style: MarkerStyle) -> int:
        handle = next(self._ids)
        self.markers[handle] = (point, style)
        logger.debug("Marker %d created at %.6f,%.6f", handle, point.lat, point.lon)
        return handle

    async def update_marker(self, handle: int, point: GeoPoint) -> None:
        _, style = self._lookup(self.markers, handle)
        self.markers[handle] = (point, style)

    async def delete_marker(self, handle: int) -> None:
        self._lookup(self.markers, handle)
        del self.markers[handle]

    async def create_polyline(self, points: Sequence[GeoPoint], style: PolylineStyle) -> int:
        handle = next(self._ids)
        self.polylines[handle] = (list(points), style)
        logger.debug("Polyline %d created with %d points", handle, len(points))
        return handle

    async def update_polyline(self, handle: int, points: Sequence[GeoPoint]) -> None:
        _, style = self._lookup(self.polylines, handle)
        self.polylines[handle] = (list(points), style)

    async def delete_polyline(self, handle: int) -> None:
        self._lookup(self.polylines, handle)
        del self.polylines[handle]

    async def get_camera_state(self) -> CameraState:
        return self.camera

    async def animate_camera_to(
        self,
        point: GeoPoint,
        zoom: float,
        bearing: float,
        pitch: float,
        duration_ms: int,
    ) -> None:
        self.center = point
        self.camera = CameraState(zoom=zoom, bearing=bearing, pitch=pitch)
        self.animations.append((point, self.camera, duration_ms))

    def snapshot(self) -> Dict[str, Any]:
        """Describe the visible map content."""
        return {
            "center": self.center.to_dict(),
            "zoom": self.camera.zoom,
            "markers": [p.to_dict() for p, _ in self.markers.values()],
            "polylines": [len(points) for points, _ in self.polylines.values()],
        }

    @staticmethod
    def _lookup(table: Dict[int, Any], handle: int) -> Any:
        try:
            return table[handle]
        except KeyError:
            raise LookupError(f"Unknown annotation handle {handle!r}") from None


def describe_host(host: Optional[MapHost]) -> str:
    return type(host).__name__ if host is not None else "none"


__all__ = [
    "AnnotationHandle",
    "CameraState",
    "HeadlessMapHost",
    "MapHost",
    "MarkerStyle",
    "PolylineStyle",
    "describe_host",
]
