"""Shared pytest configuration and fixtures for the hikemap test suite."""

import sys
from pathlib import Path

import pytest

# Ensure the project root is in the path for imports
PROJECT_ROOT = Path(__file__).parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from hikemap.tracking.tracking_core.geo import GeoPoint
from hikemap.tracking.tracking_core.map_host import HeadlessMapHost
from hikemap.tracking.tracking_core.recorder import PathRecorder
from hikemap.tracking.tracking_core.state import TrackingState


# =============================================================================
# Pytest Configuration
# =============================================================================

def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "hardware: mark test as requiring a BLE adapter or serial GPS"
    )
    config.addinivalue_line(
        "markers", "slow: mark test as slow running"
    )


def pytest_addoption(parser):
    """Add custom command-line options."""
    parser.addoption(
        "--run-hardware",
        action="store_true",
        default=False,
        help="Run tests that require physical hardware",
    )


def pytest_collection_modifyitems(config, items):
    """Skip hardware tests unless --run-hardware is specified."""
    if config.getoption("--run-hardware"):
        return

    skip_hardware = pytest.mark.skip(reason="Need --run-hardware option to run")
    for item in items:
        if "hardware" in item.keywords:
            item.add_marker(skip_hardware)


# =============================================================================
# Shared Fixtures
# =============================================================================

COLOMBO = (6.9271, 79.8612)


@pytest.fixture
def seed() -> GeoPoint:
    """Colombo city center, the default path seed."""
    return GeoPoint(*COLOMBO)


@pytest.fixture
def state(seed) -> TrackingState:
    return TrackingState.seeded(seed)


@pytest.fixture
def recorder(state) -> PathRecorder:
    return PathRecorder(state)


@pytest.fixture
def map_host(seed) -> HeadlessMapHost:
    return HeadlessMapHost(seed, zoom=10.0)


@pytest.fixture
def mock_link():
    """Peripheral link that finds two peripherals and connects cleanly."""
    from tests.infrastructure.mocks.ble_mocks import MockPeripheralLink, make_peripherals
    return MockPeripheralLink(make_peripherals())


@pytest.fixture
def mock_location():
    """Location service that is enabled and permitted."""
    from tests.infrastructure.mocks.location_mocks import MockLocationService
    return MockLocationService()
