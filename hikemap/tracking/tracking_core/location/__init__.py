"""Device location services used as the fallback position source."""

from .nmea_service import NMEALocationService
from .service import (
    LocationSample,
    LocationService,
    PermissionStatus,
    ensure_location_available,
)

__all__ = [
    "LocationSample",
    "LocationService",
    "NMEALocationService",
    "PermissionStatus",
    "ensure_location_available",
]
