"""Serial UART transport for an onboard NMEA receiver.

Uses serial_asyncio for non-blocking line reads from UART receivers such as
the BerryGPS hat, which back the device's own location service.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Optional

import serial
import serial_asyncio

from .base_transport import BaseReadOnlyTransport
from ..constants import DEFAULT_BAUD_RATE

logger = logging.getLogger(__name__)


class SerialNMEATransport(BaseReadOnlyTransport):
    """Line reader over a serial port.

    Example:
        transport = SerialNMEATransport("/dev/serial0", 9600)
        async with transport:
            async for sentence in transport.read_sentences():
                print(sentence)
    """

    def __init__(self, port: str, baudrate: int = DEFAULT_BAUD_RATE):
        """Initialize the serial transport.

        Args:
            port: Serial port path (e.g., '/dev/serial0' or '/dev/ttyUSB0')
            baudrate: Serial baudrate (9600 for most receivers)
        """
        super().__init__()
        self.port = port
        self.baudrate = baudrate

        self._reader: Optional[asyncio.StreamReader] = None
        self._writer: Optional[asyncio.StreamWriter] = None
        self._last_error: Optional[str] = None

    @property
    def is_connected(self) -> bool:
        return self._connected and self._reader is not None

    @property
    def last_error(self) -> Optional[str]:
        return self._last_error

    async def connect(self) -> bool:
        if self.is_connected:
            return True

        try:
            self._reader, self._writer = await serial_asyncio.open_serial_connection(
                url=self.port,
                baudrate=self.baudrate,
            )
        except asyncio.CancelledError:
            raise
        except (serial.SerialException, OSError) as exc:
            self._last_error = str(exc)
            self._connected = False
            logger.warning("Cannot open %s at %d baud: %s", self.port, self.baudrate, exc)
            return False

        self._connected = True
        self._last_error = None
        logger.info("Opened NMEA receiver on %s at %d baud", self.port, self.baudrate)
        return True

    async def disconnect(self) -> None:
        writer = self._writer
        self._writer = None
        self._reader = None
        self._connected = False
        if writer is None:
            return

        with contextlib.suppress(Exception):
            writer.close()
        try:
            await asyncio.wait_for(writer.wait_closed(), timeout=1.0)
        except (asyncio.TimeoutError, OSError, serial.SerialException):
            logger.debug("Serial close on %s did not complete cleanly", self.port)

        logger.info("Closed NMEA receiver on %s", self.port)

    async def read_line(self, timeout: float = 1.0) -> Optional[str]:
        if not self.is_connected or self._reader is None:
            return None

        try:
            line = await asyncio.wait_for(self._reader.readline(), timeout=timeout)
        except asyncio.TimeoutError:
            return None
        except (serial.SerialException, OSError) as exc:
            self._last_error = str(exc)
            logger.warning("Read error on %s: %s", self.port, exc)
            return None

        if not line:
            logger.warning("Serial stream ended on %s (EOF)", self.port)
            self._last_error = "Stream ended (EOF)"
            self._connected = False
            return None

        decoded = line.decode("ascii", errors="ignore").strip()
        return decoded or None


__all__ = ["SerialNMEATransport"]
