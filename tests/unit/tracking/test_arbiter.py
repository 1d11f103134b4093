"""Unit tests for position source arbitration."""

from unittest.mock import MagicMock

import pytest

from hikemap.tracking.tracking_core.arbiter import SourceArbiter
from hikemap.tracking.tracking_core.geo import GeoPoint
from hikemap.tracking.tracking_core.recorder import Accepted
from hikemap.tracking.tracking_core.state import Source


@pytest.fixture
def on_change():
    return MagicMock()


@pytest.fixture
def arbiter(state, recorder, on_change):
    return SourceArbiter(state, recorder, on_change)


FAR = GeoPoint(6.95, 79.90)


class TestTransitions:

    def test_starts_with_no_source(self, arbiter):
        assert arbiter.active_source is Source.NONE
        assert arbiter.phone_available is None

    def test_phone_ready_promotes_from_none(self, arbiter, on_change):
        arbiter.on_phone_ready(True)
        assert arbiter.active_source is Source.PHONE_GPS
        on_change.assert_called_once_with(Source.NONE, Source.PHONE_GPS, "location service ready")

    def test_phone_unavailable_stays_none(self, arbiter, on_change):
        arbiter.on_phone_ready(False)
        assert arbiter.active_source is Source.NONE
        on_change.assert_not_called()

    def test_ble_connected_wins(self, arbiter):
        arbiter.on_phone_ready(True)
        arbiter.on_ble_connected()
        assert arbiter.active_source is Source.BLE_PERIPHERAL

    def test_phone_ready_does_not_demote_ble(self, arbiter):
        arbiter.on_ble_connected()
        arbiter.on_phone_ready(True)
        assert arbiter.active_source is Source.BLE_PERIPHERAL

    def test_ble_failure_falls_back_to_phone(self, arbiter):
        arbiter.on_phone_ready(True)
        arbiter.on_ble_connected()
        arbiter.on_ble_failure("peripheral disconnected")
        assert arbiter.active_source is Source.PHONE_GPS

    def test_ble_failure_with_unknown_phone_status(self, arbiter, on_change):
        arbiter.on_ble_failure("connect failed")
        assert arbiter.active_source is Source.PHONE_GPS
        on_change.assert_called_once_with(Source.NONE, Source.PHONE_GPS, "connect failed")

    def test_ble_failure_with_phone_unavailable(self, arbiter):
        arbiter.on_phone_ready(False)
        arbiter.on_ble_connected()
        arbiter.on_ble_failure("service not found")
        assert arbiter.active_source is Source.NONE

    def test_phone_lost_while_active(self, arbiter):
        arbiter.on_phone_ready(True)
        arbiter.on_phone_ready(False)
        assert arbiter.active_source is Source.NONE

    def test_repeated_transition_notifies_once(self, arbiter, on_change):
        arbiter.on_ble_failure("a")
        arbiter.on_ble_failure("b")
        assert on_change.call_count == 1

    def test_callback_errors_are_contained(self, state, recorder):
        arbiter = SourceArbiter(state, recorder, MagicMock(side_effect=RuntimeError("ui gone")))
        arbiter.on_ble_connected()
        assert arbiter.active_source is Source.BLE_PERIPHERAL


class TestSubmit:

    def test_active_source_reaches_recorder(self, arbiter, recorder):
        arbiter.on_phone_ready(True)
        result = arbiter.submit(Source.PHONE_GPS, FAR)
        assert isinstance(result, Accepted)
        assert recorder.current == FAR

    def test_inactive_source_ignored(self, arbiter, recorder, seed):
        arbiter.on_ble_connected()
        assert arbiter.submit(Source.PHONE_GPS, FAR) is None
        assert recorder.current == seed
        assert recorder.path == (seed,)
        assert arbiter.ignored_samples == 1

    def test_nothing_accepted_without_source(self, arbiter, recorder):
        assert arbiter.submit(Source.PHONE_GPS, FAR) is None
        assert arbiter.submit(Source.BLE_PERIPHERAL, FAR) is None
        assert arbiter.submit(Source.NONE, FAR) is None
        assert recorder.accepted_count == 0

    def test_source_callback_can_be_replaced(self, arbiter, on_change):
        replacement = MagicMock()
        arbiter.set_source_change_callback(replacement)
        arbiter.on_ble_connected()
        on_change.assert_not_called()
        replacement.assert_called_once()
