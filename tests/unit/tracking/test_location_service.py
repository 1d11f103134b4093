"""Unit tests for location service checks and the NMEA-backed service."""

import pytest

from hikemap.tracking.tracking_core.location.nmea_service import NMEALocationService
from hikemap.tracking.tracking_core.location.service import (
    LocationSample,
    LocationService,
    PermissionStatus,
    ensure_location_available,
)
from tests.infrastructure.helpers import generate_nmea_sentence
from tests.infrastructure.mocks.location_mocks import MockLineTransport, MockLocationService


class TestEnsureLocationAvailable:

    @pytest.mark.asyncio
    async def test_available(self):
        service = MockLocationService()
        assert await ensure_location_available(service)
        assert service.service_requests == 0
        assert service.permission_requests == 0

    @pytest.mark.asyncio
    async def test_service_requested_once(self):
        service = MockLocationService(enabled=False)
        assert await ensure_location_available(service)
        assert service.service_requests == 1

    @pytest.mark.asyncio
    async def test_service_refused(self):
        service = MockLocationService(enabled=False, enable_on_request=False)
        assert not await ensure_location_available(service)
        assert service.permission_requests == 0

    @pytest.mark.asyncio
    async def test_permission_requested_once(self):
        service = MockLocationService(permission=PermissionStatus.DENIED)
        assert await ensure_location_available(service)
        assert service.permission_requests == 1

    @pytest.mark.asyncio
    async def test_permission_refused(self):
        service = MockLocationService(
            permission=PermissionStatus.DENIED,
            permission_on_request=PermissionStatus.DENIED,
        )
        assert not await ensure_location_available(service)
        assert service.permission_requests == 1

    @pytest.mark.asyncio
    async def test_denied_forever_not_requested(self):
        service = MockLocationService(permission=PermissionStatus.DENIED_FOREVER)
        assert not await ensure_location_available(service)
        assert service.permission_requests == 0


class TestNMEALocationService:

    def test_satisfies_protocol(self):
        assert isinstance(NMEALocationService("/dev/null", transport=MockLineTransport([])), LocationService)

    @pytest.mark.asyncio
    async def test_yields_valid_fixes_once(self):
        lines = [
            generate_nmea_sentence("GGA", lat=6.9271, lon=79.8612),
            generate_nmea_sentence("RMC", lat=6.9271, lon=79.8612),
            "$GPGSV,3,1,11,03,03,111,00,04,15,270,00,06,01,010,00,13,06,292,00*74",
            generate_nmea_sentence("RMC", lat=6.95, lon=79.90, fix_valid=False),
            generate_nmea_sentence("GGA", lat=6.95, lon=79.90)[:-2] + "00",
            generate_nmea_sentence("RMC", lat=6.95, lon=79.90),
        ]
        service = NMEALocationService("/dev/ttyMOCK0", transport=MockLineTransport(lines))
        samples = [sample async for sample in service.locations()]

        assert len(samples) == 2
        assert samples[0].lat == pytest.approx(6.9271)
        assert samples[1].lon == pytest.approx(79.90)
        assert all(isinstance(s, LocationSample) for s in samples)

    @pytest.mark.asyncio
    async def test_skips_lines_that_are_not_sentences(self):
        lines = [
            "",
            "garbage from a half-read buffer",
            generate_nmea_sentence("GGA", lat=6.95, lon=79.90)[1:],
            generate_nmea_sentence("GLL", lat=6.95, lon=79.90),
        ]
        transport = MockLineTransport(lines)
        service = NMEALocationService("/dev/ttyMOCK0", transport=transport)

        samples = [sample async for sample in service.locations()]

        assert len(samples) == 1
        assert (samples[0].lat, samples[0].lon) == pytest.approx((6.95, 79.90))
        assert not transport.is_connected

    @pytest.mark.asyncio
    async def test_stream_empty_when_port_cannot_open(self):
        service = NMEALocationService("/dev/ttyMOCK0", transport=MockLineTransport([], connect_ok=False))
        assert [s async for s in service.locations()] == []

    @pytest.mark.asyncio
    async def test_service_checks_follow_device_node(self, tmp_path):
        node = tmp_path / "ttyGPS"
        node.write_text("")
        service = NMEALocationService(str(node), transport=MockLineTransport([]))
        assert await service.service_enabled()
        assert await service.permission_status() is PermissionStatus.GRANTED

        missing = NMEALocationService(str(tmp_path / "missing"), transport=MockLineTransport([]))
        assert not await missing.service_enabled()

    @pytest.mark.asyncio
    async def test_permission_request_is_final(self, tmp_path):
        service = NMEALocationService(str(tmp_path / "missing"), transport=MockLineTransport([]))
        assert await service.permission_status() is PermissionStatus.DENIED
        assert await service.request_permission() is PermissionStatus.DENIED_FOREVER

    @pytest.mark.asyncio
    async def test_request_service_opens_transport(self):
        transport = MockLineTransport([])
        service = NMEALocationService("/dev/ttyMOCK0", transport=transport)
        assert await service.request_service()
        assert transport.is_connected
        await service.close()
        assert transport.disconnect_calls == 1
