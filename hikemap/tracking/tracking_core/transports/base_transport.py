"""
Base Transports

Abstract interfaces for the two kinds of device links the engine talks to:

    BaseReadOnlyTransport: line-oriented stream (serial NMEA receiver)
    BasePeripheralLink: BLE peripheral with scan, connect, GATT lookup and
        notifications
"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import AsyncIterator, Callable, Optional


class BaseReadOnlyTransport(ABC):
    """Abstract base class for receive-only line transports."""

    def __init__(self):
        self._connected = False

    @property
    def is_connected(self) -> bool:
        """Check if the transport is connected."""
        return self._connected

    @abstractmethod
    async def connect(self) -> bool:
        """
        Open the link.

        Returns:
            True if connection was successful
        """
        ...

    @abstractmethod
    async def disconnect(self) -> None:
        """Close the link."""
        ...

    @abstractmethod
    async def read_line(self, timeout: float = 1.0) -> Optional[str]:
        """
        Read one line of text.

        Returns:
            The stripped line, or None on timeout or error
        """
        ...

    async def read_sentences(self, timeout: float = 1.0) -> AsyncIterator[str]:
        """Yield NMEA sentences (lines starting with '$') until the link closes."""
        while self.is_connected:
            line = await self.read_line(timeout=timeout)
            if line and line.startswith("$"):
                yield line

    async def __aenter__(self):
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.disconnect()
        return False


@dataclass(frozen=True, slots=True)
class PeripheralInfo:
    """A peripheral seen during a scan."""

    id: str
    name: Optional[str] = None
    rssi: Optional[int] = None
    discovered_at: float = field(default_factory=time.time)

    @property
    def label(self) -> str:
        return f"{self.name} ({self.id})" if self.name else self.id

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "rssi": self.rssi,
            "discovered_at": self.discovered_at,
        }


class ResolveResult(Enum):
    """Outcome of looking up the GPS service and its notify characteristic."""
    OK = "ok"
    SERVICE_NOT_FOUND = "service_not_found"
    CHARACTERISTIC_NOT_FOUND = "characteristic_not_found"


DiscoveryCallback = Callable[[PeripheralInfo], None]
NotificationCallback = Callable[[bytes], None]
DisconnectCallback = Callable[[str], None]


class BasePeripheralLink(ABC):
    """
    Abstract BLE link to one GPS peripheral at a time.

    Implementations report link loss through the callback registered with
    ``set_disconnected_callback``; the callback receives the peripheral id.
    Failures of ``connect`` are reported by returning False and are
    available from ``last_error``.
    """

    def __init__(self):
        self._disconnected_callback: Optional[DisconnectCallback] = None
        self._last_error: Optional[str] = None

    @property
    def last_error(self) -> Optional[str]:
        return self._last_error

    @property
    @abstractmethod
    def is_connected(self) -> bool:
        ...

    def set_disconnected_callback(self, callback: Optional[DisconnectCallback]) -> None:
        self._disconnected_callback = callback

    def _notify_disconnected(self, peripheral_id: str) -> None:
        if self._disconnected_callback:
            self._disconnected_callback(peripheral_id)

    @abstractmethod
    async def start_scan(self, on_discovered: DiscoveryCallback) -> None:
        """Start discovery; raises if the adapter is off or access is denied."""
        ...

    @abstractmethod
    async def stop_scan(self) -> None:
        ...

    @abstractmethod
    async def connect(self, peripheral_id: str) -> bool:
        ...

    @abstractmethod
    async def resolve(self, service_uuid: str, characteristic_uuid: str) -> ResolveResult:
        ...

    @abstractmethod
    async def subscribe(self, characteristic_uuid: str, on_notification: NotificationCallback) -> None:
        ...

    @abstractmethod
    async def unsubscribe(self, characteristic_uuid: str) -> None:
        ...

    @abstractmethod
    async def disconnect(self) -> None:
        ...


__all__ = [
    "BasePeripheralLink",
    "BaseReadOnlyTransport",
    "DisconnectCallback",
    "DiscoveryCallback",
    "NotificationCallback",
    "PeripheralInfo",
    "ResolveResult",
]
