"""Location service backed by an onboard serial NMEA receiver."""

from __future__ import annotations

import os
from pathlib import Path
from typing import AsyncIterator, Optional

from hikemap.core.logging_utils import get_module_logger
from ..constants import DEFAULT_BAUD_RATE, DEFAULT_SERIAL_PORT
from ..parsers.nmea_parser import NMEAParser
from ..transports.base_transport import BaseReadOnlyTransport
from ..transports.serial_transport import SerialNMEATransport
from .service import LocationSample, PermissionStatus

logger = get_module_logger(__name__)


class NMEALocationService:
    """Device location from a UART receiver such as a BerryGPS hat.

    "Service enabled" means the serial device node exists and "permission"
    means the process may read it. Each sentence with a valid fix becomes a
    :class:`LocationSample`; GGA and RMC report the same fix, so consecutive
    identical positions are collapsed.
    """

    def __init__(
        self,
        port: str = DEFAULT_SERIAL_PORT,
        baudrate: int = DEFAULT_BAUD_RATE,
        transport: Optional[BaseReadOnlyTransport] = None,
    ):
        self.port = port
        self.transport = transport or SerialNMEATransport(port, baudrate)
        self._parser = NMEAParser(validate_checksums=True)
        self._permission_requested = False

    async def service_enabled(self) -> bool:
        return self.transport.is_connected or Path(self.port).exists()

    async def request_service(self) -> bool:
        return await self.transport.connect()

    async def permission_status(self) -> PermissionStatus:
        if self.transport.is_connected or os.access(self.port, os.R_OK):
            return PermissionStatus.GRANTED
        if self._permission_requested:
            return PermissionStatus.DENIED_FOREVER
        return PermissionStatus.DENIED

    async def request_permission(self) -> PermissionStatus:
        # Device node permissions cannot be granted at runtime; re-check once.
        self._permission_requested = True
        status = await self.permission_status()
        if status is not PermissionStatus.GRANTED:
            logger.warning("No read access to %s (add the user to the dialout group)", self.port)
        return status

    async def locations(self) -> AsyncIterator[LocationSample]:
        if not self.transport.is_connected and not await self.transport.connect():
            logger.error("Cannot open NMEA receiver on %s", self.port)
            return

        last: Optional[LocationSample] = None
        async for sentence in self.transport.read_sentences(timeout=1.0):
            position = self._parser.parse_sentence(sentence)
            if position is None:
                continue
            point = position.to_point()
            if point is None:
                continue
            sample = LocationSample(point.lat, point.lon)
            if sample != last:
                last = sample
                yield sample

        logger.info("NMEA location stream on %s ended", self.port)

    async def close(self) -> None:
        await self.transport.disconnect()


__all__ = ["NMEALocationService"]
