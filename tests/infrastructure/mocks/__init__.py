"""Mock devices and services for tests without hardware."""

from tests.infrastructure.mocks.ble_mocks import MockPeripheralLink, make_peripherals
from tests.infrastructure.mocks.location_mocks import MockLineTransport, MockLocationService

__all__ = ["MockLineTransport", "MockLocationService", "MockPeripheralLink", "make_peripherals"]
