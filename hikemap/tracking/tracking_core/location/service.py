"""Device location service interface and startup checks."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import AsyncIterator, Protocol, runtime_checkable

from hikemap.core.logging_utils import get_module_logger

logger = get_module_logger(__name__)


class PermissionStatus(Enum):
    GRANTED = "granted"
    DENIED = "denied"
    DENIED_FOREVER = "denied_forever"


@dataclass(frozen=True, slots=True)
class LocationSample:
    """Raw location callback payload; validated before it enters the engine."""

    lat: float
    lon: float


@runtime_checkable
class LocationService(Protocol):
    """The device's own location provider."""

    async def service_enabled(self) -> bool: ...

    async def request_service(self) -> bool: ...

    async def permission_status(self) -> PermissionStatus: ...

    async def request_permission(self) -> PermissionStatus: ...

    def locations(self) -> AsyncIterator[LocationSample]: ...

    async def close(self) -> None: ...


async def ensure_location_available(service: LocationService) -> bool:
    """Run the service and permission checks, asking once for each.

    Returns:
        True if the location stream can be started.
    """
    if not await service.service_enabled():
        logger.info("Location service disabled, requesting it")
        if not await service.request_service():
            logger.warning("Location service unavailable")
            return False

    status = await service.permission_status()
    if status is PermissionStatus.DENIED:
        logger.info("Location permission denied, requesting it")
        status = await service.request_permission()

    if status is not PermissionStatus.GRANTED:
        logger.warning("Location permission not granted (%s)", status.value)
        return False

    return True


__all__ = [
    "LocationSample",
    "LocationService",
    "PermissionStatus",
    "ensure_location_available",
]
