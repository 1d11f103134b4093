"""Built-in catalog of hiking areas.

Each area supplies the seed point of a session's path (its center) and the
polygon used when its offline tiles were packaged.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, Tuple

from .geo import GeoPoint


@dataclass(frozen=True, slots=True)
class HikingArea:
    key: str
    name: str
    center: GeoPoint
    boundary: Tuple[GeoPoint, ...]

    def contains(self, point: GeoPoint) -> bool:
        """Ray-casting point-in-polygon test against the area boundary."""
        inside = False
        vertices = self.boundary
        j = len(vertices) - 1
        for i, vi in enumerate(vertices):
            vj = vertices[j]
            if (vi.lat > point.lat) != (vj.lat > point.lat):
                cross_lon = (vj.lon - vi.lon) * (point.lat - vi.lat) / (vj.lat - vi.lat) + vi.lon
                if point.lon < cross_lon:
                    inside = not inside
            j = i
        return inside

    def to_dict(self) -> dict:
        return {
            "key": self.key,
            "name": self.name,
            "center": self.center.to_dict(),
            "boundary": [p.to_dict() for p in self.boundary],
        }


def _ring(lonlat: Iterable[Tuple[float, float]]) -> Tuple[GeoPoint, ...]:
    return tuple(GeoPoint(lat=lat, lon=lon) for lon, lat in lonlat)


HIKING_AREAS: Dict[str, HikingArea] = {
    "colombo": HikingArea(
        key="colombo",
        name="Colombo",
        center=GeoPoint(6.9271, 79.8612),
        boundary=_ring([(79.80, 6.85), (79.92, 6.85), (79.92, 7.00), (79.80, 7.00), (79.80, 6.85)]),
    ),
    "sinharaja": HikingArea(
        key="sinharaja",
        name="Sinharaja Forest",
        center=GeoPoint(6.4167, 80.5000),
        boundary=_ring([(80.45, 6.38), (80.55, 6.38), (80.55, 6.45), (80.45, 6.45), (80.45, 6.38)]),
    ),
}

DEFAULT_AREA = "colombo"


def get_area(key: str) -> HikingArea:
    """Look up an area by key (case-insensitive).

    Raises:
        KeyError: if the key is not in the catalog.
    """
    try:
        return HIKING_AREAS[key.strip().lower()]
    except KeyError:
        raise KeyError(f"Unknown hiking area '{key}' (known: {', '.join(sorted(HIKING_AREAS))})") from None


__all__ = ["HikingArea", "HIKING_AREAS", "DEFAULT_AREA", "get_area"]
