"""BLE GPS peripheral discovery and connection."""

from .events import BleEvent, BleEventKind, BleState, ConnectionState, PeripheralConnection
from .state_machine import BleConnectionStateMachine

__all__ = [
    "BleConnectionStateMachine",
    "BleEvent",
    "BleEventKind",
    "BleState",
    "ConnectionState",
    "PeripheralConnection",
]
