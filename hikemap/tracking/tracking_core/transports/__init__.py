"""Device transports: BLE peripheral link and serial NMEA receiver."""

from .base_transport import (
    BasePeripheralLink,
    BaseReadOnlyTransport,
    PeripheralInfo,
    ResolveResult,
)
from .ble_transport import BleakPeripheralLink
from .serial_transport import SerialNMEATransport

__all__ = [
    "BasePeripheralLink",
    "BaseReadOnlyTransport",
    "BleakPeripheralLink",
    "PeripheralInfo",
    "ResolveResult",
    "SerialNMEATransport",
]
