"""Unit tests for the serial and bleak transports with the libraries mocked."""

import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
import serial
from bleak.exc import BleakError

from hikemap.tracking.tracking_core.transports.base_transport import PeripheralInfo, ResolveResult
from hikemap.tracking.tracking_core.transports.ble_transport import BleakPeripheralLink
from hikemap.tracking.tracking_core.transports.serial_transport import SerialNMEATransport

SERIAL_OPEN = "hikemap.tracking.tracking_core.transports.serial_transport.serial_asyncio.open_serial_connection"
BLE_MODULE = "hikemap.tracking.tracking_core.transports.ble_transport"


def _reader_with(lines):
    reader = asyncio.StreamReader()
    for line in lines:
        reader.feed_data(line)
    reader.feed_eof()
    return reader


class TestSerialNMEATransport:

    @pytest.mark.asyncio
    async def test_reads_sentences_until_eof(self):
        reader = _reader_with([b"$GPGGA,1*00\r\n", b"noise\r\n", b"$GPRMC,2*00\r\n"])
        writer = MagicMock()
        writer.wait_closed = AsyncMock()
        with patch(SERIAL_OPEN, AsyncMock(return_value=(reader, writer))) as open_conn:
            transport = SerialNMEATransport("/dev/ttyMOCK0", 9600)
            assert await transport.connect()
            open_conn.assert_awaited_once_with(url="/dev/ttyMOCK0", baudrate=9600)

            sentences = [s async for s in transport.read_sentences(timeout=0.1)]

        assert sentences == ["$GPGGA,1*00", "$GPRMC,2*00"]
        assert not transport.is_connected
        assert transport.last_error == "Stream ended (EOF)"

        await transport.disconnect()
        writer.close.assert_called_once()

    @pytest.mark.asyncio
    async def test_connect_failure(self):
        error = serial.SerialException("could not open port /dev/ttyMOCK0")
        with patch(SERIAL_OPEN, AsyncMock(side_effect=error)):
            transport = SerialNMEATransport("/dev/ttyMOCK0")
            assert not await transport.connect()
        assert "could not open port" in transport.last_error
        assert await transport.read_line() is None

    @pytest.mark.asyncio
    async def test_read_timeout_returns_none(self):
        reader = asyncio.StreamReader()
        writer = MagicMock()
        writer.wait_closed = AsyncMock()
        with patch(SERIAL_OPEN, AsyncMock(return_value=(reader, writer))):
            transport = SerialNMEATransport("/dev/ttyMOCK0")
            async with transport:
                assert await transport.read_line(timeout=0.01) is None
                assert transport.is_connected
        assert not transport.is_connected


def _client_mock(services=None, connect_error=None):
    client = MagicMock()
    client.is_connected = False
    client.address = "AA:BB:CC:DD:EE:01"

    async def _connect():
        if connect_error is not None:
            raise connect_error
        client.is_connected = True

    async def _disconnect():
        client.is_connected = False

    client.connect = AsyncMock(side_effect=_connect)
    client.disconnect = AsyncMock(side_effect=_disconnect)
    client.start_notify = AsyncMock()
    client.stop_notify = AsyncMock()
    client.services = services if services is not None else MagicMock()
    return client


def _services(has_service=True, properties=("notify",)):
    characteristic = SimpleNamespace(properties=list(properties or ()))
    service = MagicMock()
    service.get_characteristic.return_value = characteristic if properties is not None else None
    services = MagicMock()
    services.get_service.return_value = service if has_service else None
    return services


class TestBleakPeripheralLink:

    @pytest.mark.asyncio
    async def test_scan_reports_peripherals(self):
        scanner = MagicMock()
        scanner.start = AsyncMock()
        scanner.stop = AsyncMock()
        found = []
        with patch(f"{BLE_MODULE}.BleakScanner", return_value=scanner) as scanner_cls:
            link = BleakPeripheralLink()
            await link.start_scan(found.append)
            callback = scanner_cls.call_args.kwargs["detection_callback"]
            device = SimpleNamespace(address="AA:BB:CC:DD:EE:01", name=None)
            callback(device, SimpleNamespace(local_name="ESP32-GPS", rssi=-58))
            await link.stop_scan()

        assert found == [PeripheralInfo(
            id="AA:BB:CC:DD:EE:01", name="ESP32-GPS", rssi=-58, discovered_at=found[0].discovered_at,
        )]
        scanner.start.assert_awaited_once()
        scanner.stop.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_connect_resolve_subscribe(self):
        client = _client_mock(_services())
        with patch(f"{BLE_MODULE}.BleakClient", return_value=client):
            link = BleakPeripheralLink()
            assert await link.connect("AA:BB:CC:DD:EE:01")
            assert link.is_connected
            assert await link.resolve("svc", "chr") is ResolveResult.OK

            received = []
            await link.subscribe("chr", received.append)
            handler = client.start_notify.call_args.args[1]
            handler(None, bytearray(b"6.95,79.90"))
            assert received == [b"6.95,79.90"]

            await link.unsubscribe("chr")
            client.stop_notify.assert_awaited_once_with("chr")
            await link.disconnect()
            assert not link.is_connected

    @pytest.mark.asyncio
    async def test_connect_failure_sets_last_error(self):
        client = _client_mock(connect_error=BleakError("Device with address AA not found"))
        with patch(f"{BLE_MODULE}.BleakClient", return_value=client):
            link = BleakPeripheralLink()
            assert not await link.connect("AA:BB:CC:DD:EE:01")
        assert "not found" in link.last_error
        assert not link.is_connected

    @pytest.mark.asyncio
    @pytest.mark.parametrize("services,expected", [
        (_services(has_service=False), ResolveResult.SERVICE_NOT_FOUND),
        (_services(properties=None), ResolveResult.CHARACTERISTIC_NOT_FOUND),
        (_services(properties=("read",)), ResolveResult.CHARACTERISTIC_NOT_FOUND),
    ])
    async def test_resolve_failures(self, services, expected):
        client = _client_mock(services)
        with patch(f"{BLE_MODULE}.BleakClient", return_value=client):
            link = BleakPeripheralLink()
            await link.connect("AA:BB:CC:DD:EE:01")
            assert await link.resolve("svc", "chr") is expected

    @pytest.mark.asyncio
    async def test_resolve_requires_connection(self):
        with pytest.raises(BleakError):
            await BleakPeripheralLink().resolve("svc", "chr")

    @pytest.mark.asyncio
    async def test_link_loss_forwarded(self):
        client = _client_mock(_services())
        lost = []
        with patch(f"{BLE_MODULE}.BleakClient", return_value=client) as client_cls:
            link = BleakPeripheralLink()
            link.set_disconnected_callback(lost.append)
            await link.connect("AA:BB:CC:DD:EE:01")
            on_disconnect = client_cls.call_args.kwargs["disconnected_callback"]
            on_disconnect(client)
        assert lost == ["AA:BB:CC:DD:EE:01"]
