"""BLE peripheral link built on bleak.

Discovery uses a BleakScanner with a detection callback; the connection is a
BleakClient whose disconnected callback is forwarded to the engine.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Dict, Optional, Union

from bleak import BleakClient, BleakScanner
from bleak.backends.device import BLEDevice
from bleak.backends.scanner import AdvertisementData
from bleak.exc import BleakError

from .base_transport import (
    BasePeripheralLink,
    DiscoveryCallback,
    NotificationCallback,
    PeripheralInfo,
    ResolveResult,
)
from ..constants import BLE_CONNECT_TIMEOUT_S

logger = logging.getLogger(__name__)


class BleakPeripheralLink(BasePeripheralLink):
    """Link to one GPS peripheral over the host Bluetooth adapter.

    Example:
        link = BleakPeripheralLink()
        await link.start_scan(print)
        await asyncio.sleep(10)
        await link.stop_scan()
        if await link.connect(address):
            await link.resolve(SERVICE_UUID, CHAR_UUID)
    """

    def __init__(self, adapter: Optional[str] = None, connect_timeout: float = BLE_CONNECT_TIMEOUT_S):
        super().__init__()
        self.adapter = adapter
        self.connect_timeout = connect_timeout
        self._scanner: Optional[BleakScanner] = None
        self._client: Optional[BleakClient] = None
        self._peripheral_id: Optional[str] = None
        # Devices from the last scan; connecting with a BLEDevice avoids a
        # second lookup on backends that need one.
        self._seen: Dict[str, BLEDevice] = {}

    @property
    def is_connected(self) -> bool:
        return self._client is not None and self._client.is_connected

    # =========================================================================
    # Discovery
    # =========================================================================

    async def start_scan(self, on_discovered: DiscoveryCallback) -> None:
        if self._scanner is not None:
            await self.stop_scan()

        def _detection(device: BLEDevice, adv: AdvertisementData) -> None:
            self._seen[device.address] = device
            on_discovered(
                PeripheralInfo(
                    id=device.address,
                    name=device.name or adv.local_name,
                    rssi=adv.rssi,
                )
            )

        kwargs = {"detection_callback": _detection}
        if self.adapter:
            kwargs["adapter"] = self.adapter
        scanner = BleakScanner(**kwargs)
        await scanner.start()
        self._scanner = scanner
        logger.info("BLE scan started%s", f" on {self.adapter}" if self.adapter else "")

    async def stop_scan(self) -> None:
        scanner, self._scanner = self._scanner, None
        if scanner is None:
            return
        try:
            await scanner.stop()
        except (BleakError, OSError) as exc:
            logger.warning("Error stopping BLE scan: %s", exc)
        logger.info("BLE scan stopped")

    # =========================================================================
    # Connection
    # =========================================================================

    async def connect(self, peripheral_id: str) -> bool:
        if self._client is not None:
            await self.disconnect()

        target: Union[BLEDevice, str] = self._seen.get(peripheral_id, peripheral_id)
        client = BleakClient(
            target,
            disconnected_callback=self._on_client_disconnected,
            timeout=self.connect_timeout,
        )
        self._client = client
        self._peripheral_id = peripheral_id

        try:
            await client.connect()
        except asyncio.CancelledError:
            raise
        except (BleakError, asyncio.TimeoutError, OSError) as exc:
            self._last_error = str(exc) or type(exc).__name__
            logger.warning("Connect to %s failed: %s", peripheral_id, self._last_error)
            self._client = None
            return False

        self._last_error = None
        logger.info("Connected to peripheral %s", peripheral_id)
        return True

    async def resolve(self, service_uuid: str, characteristic_uuid: str) -> ResolveResult:
        client = self._require_client()
        service = client.services.get_service(service_uuid)
        if service is None:
            return ResolveResult.SERVICE_NOT_FOUND
        characteristic = service.get_characteristic(characteristic_uuid)
        if characteristic is None or "notify" not in characteristic.properties:
            return ResolveResult.CHARACTERISTIC_NOT_FOUND
        return ResolveResult.OK

    async def subscribe(self, characteristic_uuid: str, on_notification: NotificationCallback) -> None:
        client = self._require_client()

        def _handler(_sender, data: bytearray) -> None:
            on_notification(bytes(data))

        await client.start_notify(characteristic_uuid, _handler)

    async def unsubscribe(self, characteristic_uuid: str) -> None:
        client = self._client
        if client is None or not client.is_connected:
            return
        try:
            await client.stop_notify(characteristic_uuid)
        except (BleakError, OSError) as exc:
            logger.debug("stop_notify on %s failed: %s", characteristic_uuid, exc)

    async def disconnect(self) -> None:
        client, self._client = self._client, None
        if client is None:
            return
        try:
            await client.disconnect()
        except (BleakError, OSError) as exc:
            logger.warning("Error disconnecting %s: %s", self._peripheral_id, exc)
        logger.info("Disconnected from peripheral %s", self._peripheral_id)

    def _on_client_disconnected(self, client: BleakClient) -> None:
        if self._client is not None and client is not self._client:
            return
        peripheral_id = self._peripheral_id or client.address
        logger.info("Peripheral %s dropped the link", peripheral_id)
        self._notify_disconnected(peripheral_id)

    def _require_client(self) -> BleakClient:
        if self._client is None or not self._client.is_connected:
            raise BleakError("Peripheral is not connected")
        return self._client


__all__ = ["BleakPeripheralLink"]
