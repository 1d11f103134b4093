"""BLE events and connection records."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from ..transports.base_transport import PeripheralInfo


class BleState(Enum):
    """Discovery/connection state of the BLE GPS peripheral."""
    IDLE = "idle"
    SCANNING = "scanning"
    DEVICE_CHOSEN = "device_chosen"
    CONNECTING = "connecting"
    SERVICE_DISCOVERY = "service_discovery"
    SUBSCRIBED = "subscribed"
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"
    FAILED = "failed"


class ConnectionState(Enum):
    CONNECTING = "connecting"
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"
    FAILED = "failed"


class BleEventKind(Enum):
    # Requests from the user-facing layer
    SCAN_REQUESTED = "scan_requested"
    DEVICE_SELECTED = "device_selected"
    RECONNECT_REQUESTED = "reconnect_requested"
    # Discovery
    DEVICE_DISCOVERED = "device_discovered"
    SCAN_COMPLETED = "scan_completed"
    SCAN_FAILED = "scan_failed"
    # Connection setup results
    CONNECT_SUCCEEDED = "connect_succeeded"
    CONNECT_FAILED = "connect_failed"
    SERVICES_RESOLVED = "services_resolved"
    SERVICE_NOT_FOUND = "service_not_found"
    CHARACTERISTIC_NOT_FOUND = "characteristic_not_found"
    SUBSCRIBE_SUCCEEDED = "subscribe_succeeded"
    SUBSCRIBE_FAILED = "subscribe_failed"
    # Link traffic
    NOTIFICATION = "notification"
    DISCONNECTED = "disconnected"


@dataclass(frozen=True, slots=True)
class BleEvent:
    """One BLE event; which optional fields are set depends on ``kind``."""

    kind: BleEventKind
    peripheral_id: Optional[str] = None
    peripheral: Optional[PeripheralInfo] = None
    payload: Optional[bytes] = None
    error: Optional[str] = None

    @classmethod
    def discovered(cls, peripheral: PeripheralInfo) -> "BleEvent":
        return cls(BleEventKind.DEVICE_DISCOVERED, peripheral_id=peripheral.id, peripheral=peripheral)

    @classmethod
    def selected(cls, peripheral_id: str) -> "BleEvent":
        return cls(BleEventKind.DEVICE_SELECTED, peripheral_id=peripheral_id)

    @classmethod
    def notification(cls, peripheral_id: str, payload: bytes) -> "BleEvent":
        return cls(BleEventKind.NOTIFICATION, peripheral_id=peripheral_id, payload=payload)

    @classmethod
    def disconnected(cls, peripheral_id: str) -> "BleEvent":
        return cls(BleEventKind.DISCONNECTED, peripheral_id=peripheral_id)

    @classmethod
    def failed(cls, kind: BleEventKind, peripheral_id: Optional[str], error: str) -> "BleEvent":
        return cls(kind, peripheral_id=peripheral_id, error=error)


@dataclass(slots=True)
class PeripheralConnection:
    """Bookkeeping for one connection attempt."""

    id: str
    discovered_at: float = field(default_factory=time.time)
    service_found: bool = False
    notify_characteristic_found: bool = False
    connection_state: ConnectionState = ConnectionState.CONNECTING

    @property
    def resolved(self) -> bool:
        return self.service_found and self.notify_characteristic_found

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "discovered_at": self.discovered_at,
            "service_found": self.service_found,
            "notify_characteristic_found": self.notify_characteristic_found,
            "connection_state": self.connection_state.value,
        }


__all__ = [
    "BleEvent",
    "BleEventKind",
    "BleState",
    "ConnectionState",
    "PeripheralConnection",
]
