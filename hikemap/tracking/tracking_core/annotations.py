"""Keeps the location marker and path polyline in step with the recorder."""

from __future__ import annotations

from typing import Optional, Sequence

from hikemap.core.logging_utils import get_module_logger
from .geo import GeoPoint
from .map_host import AnnotationHandle, MapHost, MarkerStyle, PolylineStyle

logger = get_module_logger(__name__)


class AnnotationSynchronizer:
    """Owns at most one marker handle and one polyline handle per map.

    Handles are created on the first sync after a map is attached, then
    updated in place. ``clear()`` deletes whatever is live.
    """

    def __init__(
        self,
        host: Optional[MapHost] = None,
        marker_style: MarkerStyle = MarkerStyle(),
        polyline_style: PolylineStyle = PolylineStyle(),
    ):
        self._host = host
        self.marker_style = marker_style
        self.polyline_style = polyline_style
        self._marker: Optional[AnnotationHandle] = None
        self._polyline: Optional[AnnotationHandle] = None

    @property
    def marker_handle(self) -> Optional[AnnotationHandle]:
        return self._marker

    @property
    def polyline_handle(self) -> Optional[AnnotationHandle]:
        return self._polyline

    @property
    def host(self) -> Optional[MapHost]:
        return self._host

    async def attach(self, host: MapHost) -> None:
        """Switch to a new host map, dropping handles owned by the old one."""
        if host is self._host:
            return
        if self._host is not None:
            await self.clear()
        self._host = host

    async def sync(self, current: GeoPoint, path: Sequence[GeoPoint]) -> None:
        """Create or update both annotations for the given state."""
        if self._host is None:
            return
        await self._sync_marker(current)
        await self._sync_polyline(path)

    async def _sync_marker(self, point: GeoPoint) -> None:
        if self._marker is None:
            self._marker = await self._host.create_marker(point, self.marker_style)
            logger.debug("Created location marker %r", self._marker)
        else:
            await self._host.update_marker(self._marker, point)

    async def _sync_polyline(self, path: Sequence[GeoPoint]) -> None:
        points = list(path)
        if self._polyline is None:
            self._polyline = await self._host.create_polyline(points, self.polyline_style)
            logger.debug("Created path polyline %r", self._polyline)
        else:
            await self._host.update_polyline(self._polyline, points)

    async def clear(self) -> None:
        """Delete live annotations. Safe to call repeatedly."""
        host = self._host
        marker, self._marker = self._marker, None
        polyline, self._polyline = self._polyline, None
        if host is None:
            return
        if marker is not None:
            await host.delete_marker(marker)
        if polyline is not None:
            await host.delete_polyline(polyline)


__all__ = ["AnnotationSynchronizer"]
