"""Geographic value types and great-circle distance."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, Tuple

from .constants import EARTH_RADIUS_M
from .errors import InvalidCoordinateError


@dataclass(frozen=True, slots=True)
class GeoPoint:
    """A validated WGS84 position in decimal degrees.

    Raises:
        InvalidCoordinateError: if lat is outside [-90, 90], lon outside
            [-180, 180], or either value is not a finite number.
    """

    lat: float
    lon: float

    def __post_init__(self) -> None:
        try:
            lat = float(self.lat)
            lon = float(self.lon)
        except (TypeError, ValueError) as exc:
            raise InvalidCoordinateError(f"Non-numeric coordinate: {self.lat!r}, {self.lon!r}") from exc
        if not (math.isfinite(lat) and math.isfinite(lon)):
            raise InvalidCoordinateError(f"Non-finite coordinate: {lat}, {lon}")
        if not -90.0 <= lat <= 90.0:
            raise InvalidCoordinateError(f"Latitude {lat} out of range [-90, 90]")
        if not -180.0 <= lon <= 180.0:
            raise InvalidCoordinateError(f"Longitude {lon} out of range [-180, 180]")
        object.__setattr__(self, "lat", lat)
        object.__setattr__(self, "lon", lon)

    def as_tuple(self) -> Tuple[float, float]:
        return (self.lat, self.lon)

    def as_lonlat(self) -> Tuple[float, float]:
        """GeoJSON coordinate order, as map hosts expect it."""
        return (self.lon, self.lat)

    def to_dict(self) -> dict:
        return {"lat": self.lat, "lon": self.lon}


def haversine_m(a: GeoPoint, b: GeoPoint) -> float:
    """Great-circle distance between two points in meters."""
    lat1 = math.radians(a.lat)
    lat2 = math.radians(b.lat)
    d_lat = lat2 - lat1
    d_lon = math.radians(b.lon - a.lon)

    h = (
        math.sin(d_lat / 2) ** 2
        + math.cos(lat1) * math.cos(lat2) * math.sin(d_lon / 2) ** 2
    )
    h = min(1.0, h)
    return EARTH_RADIUS_M * 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))


distance = haversine_m


def path_length_m(points: Iterable[GeoPoint]) -> float:
    """Sum of segment lengths along an ordered sequence of points."""
    total = 0.0
    previous = None
    for point in points:
        if previous is not None:
            total += haversine_m(previous, point)
        previous = point
    return total


__all__ = ["GeoPoint", "haversine_m", "distance", "path_length_m"]
