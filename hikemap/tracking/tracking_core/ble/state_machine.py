"""
BLE discovery/connection state machine.

IDLE -> SCANNING -> DEVICE_CHOSEN -> CONNECTING -> SERVICE_DISCOVERY
     -> SUBSCRIBED -> CONNECTED

DISCONNECTED and FAILED are reachable from every non-IDLE state. Every
failure and every drop hands the position source back to the arbiter's
fallback. All transitions happen in ``handle()``; slow link operations run
as background tasks that report their outcome by posting another event, so
results of superseded attempts can be recognized and ignored.
"""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Coroutine, Dict, List, Optional, Set

from hikemap.core.logging_utils import get_module_logger
from ..arbiter import SourceArbiter
from ..constants import (
    BLE_NOTIFY_CHARACTERISTIC_UUID,
    BLE_SCAN_WINDOW_S,
    BLE_SERVICE_UUID,
)
from ..errors import FrameParseError
from ..parsers.frame_parser import parse_frame
from ..recorder import IngestResult
from ..state import Source
from ..transports.base_transport import BasePeripheralLink, PeripheralInfo, ResolveResult
from .events import BleEvent, BleEventKind, BleState, ConnectionState, PeripheralConnection

logger = get_module_logger(__name__)

EventSink = Callable[[BleEvent], None]
DevicesFoundCallback = Callable[[List[PeripheralInfo]], None]
StatusCallback = Callable[[str], None]

# States from which a new scan or connection attempt may start
_RESTARTABLE = (BleState.IDLE, BleState.FAILED, BleState.DISCONNECTED)
# States in which a link-level drop aborts setup
_SETUP_STATES = (
    BleState.DEVICE_CHOSEN,
    BleState.CONNECTING,
    BleState.SERVICE_DISCOVERY,
    BleState.SUBSCRIBED,
)
_LINK_OPEN_STATES = (BleState.SERVICE_DISCOVERY, BleState.SUBSCRIBED, BleState.CONNECTED)


class BleConnectionStateMachine:
    """Scans for, connects to and listens to one BLE GPS peripheral.

    Example:
        machine = BleConnectionStateMachine(link, arbiter, post=queue.put_nowait)
        machine.handle(BleEvent(BleEventKind.SCAN_REQUESTED))
        # ... the consumer keeps feeding queued events to machine.handle()
        await machine.teardown()
    """

    def __init__(
        self,
        link: BasePeripheralLink,
        arbiter: SourceArbiter,
        post: EventSink,
        *,
        service_uuid: str = BLE_SERVICE_UUID,
        characteristic_uuid: str = BLE_NOTIFY_CHARACTERISTIC_UUID,
        scan_window_s: float = BLE_SCAN_WINDOW_S,
        on_devices_found: Optional[DevicesFoundCallback] = None,
        on_status: Optional[StatusCallback] = None,
    ):
        self._link = link
        self._arbiter = arbiter
        self._post = post
        self.service_uuid = service_uuid
        self.characteristic_uuid = characteristic_uuid
        self.scan_window_s = scan_window_s
        self._on_devices_found = on_devices_found
        self._on_status = on_status

        self._state = BleState.IDLE
        self._discovered: Dict[str, PeripheralInfo] = {}
        self._connection: Optional[PeripheralConnection] = None
        self._selected_id: Optional[str] = None
        self._closed = False
        self._dropped_frames = 0
        self._last_status = ""

        # Track pending background tasks for cleanup
        self._pending_tasks: Set[asyncio.Task] = set()

        self._handlers: Dict[BleEventKind, Callable[[BleEvent], Optional[IngestResult]]] = {
            BleEventKind.SCAN_REQUESTED: self._on_scan_requested,
            BleEventKind.DEVICE_DISCOVERED: self._on_device_discovered,
            BleEventKind.SCAN_COMPLETED: self._on_scan_completed,
            BleEventKind.SCAN_FAILED: self._on_scan_failed,
            BleEventKind.DEVICE_SELECTED: self._on_device_selected,
            BleEventKind.RECONNECT_REQUESTED: self._on_reconnect_requested,
            BleEventKind.CONNECT_SUCCEEDED: self._on_connect_succeeded,
            BleEventKind.CONNECT_FAILED: self._on_setup_failed,
            BleEventKind.SERVICES_RESOLVED: self._on_services_resolved,
            BleEventKind.SERVICE_NOT_FOUND: self._on_setup_failed,
            BleEventKind.CHARACTERISTIC_NOT_FOUND: self._on_setup_failed,
            BleEventKind.SUBSCRIBE_SUCCEEDED: self._on_subscribe_succeeded,
            BleEventKind.SUBSCRIBE_FAILED: self._on_setup_failed,
            BleEventKind.NOTIFICATION: self._on_notification,
            BleEventKind.DISCONNECTED: self._on_disconnected,
        }

        link.set_disconnected_callback(self._on_link_lost)

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def state(self) -> BleState:
        return self._state

    @property
    def connection(self) -> Optional[PeripheralConnection]:
        return self._connection

    @property
    def discovered(self) -> List[PeripheralInfo]:
        """Peripherals from the current or last scan, one entry per id."""
        return list(self._discovered.values())

    @property
    def selected_id(self) -> Optional[str]:
        return self._selected_id

    @property
    def dropped_frames(self) -> int:
        return self._dropped_frames

    @property
    def last_status(self) -> str:
        return self._last_status

    @property
    def is_closed(self) -> bool:
        return self._closed

    # =========================================================================
    # Event handling
    # =========================================================================

    def handle(self, event: BleEvent) -> Optional[IngestResult]:
        """Apply one event.

        Returns:
            The recorder's verdict for a notification that carried a valid
            position from the active source, otherwise None.
        """
        if self._closed:
            logger.debug("Discarding %s after teardown", event.kind.value)
            return None
        return self._handlers[event.kind](event)

    def _on_scan_requested(self, event: BleEvent) -> None:
        if self._state not in _RESTARTABLE:
            logger.warning("Scan requested while %s; ignored", self._state.value)
            return
        self._discovered.clear()
        self._set_state(BleState.SCANNING)
        self._status(f"Scanning for {self.scan_window_s:g}s")
        self._create_background_task(self._run_scan())

    def _on_device_discovered(self, event: BleEvent) -> None:
        if self._state is not BleState.SCANNING or event.peripheral is None:
            return
        if event.peripheral.id not in self._discovered:
            self._discovered[event.peripheral.id] = event.peripheral
            logger.info("Discovered %s (rssi=%s)", event.peripheral.label, event.peripheral.rssi)

    def _on_scan_completed(self, event: BleEvent) -> None:
        if self._state is not BleState.SCANNING:
            return
        self._set_state(BleState.IDLE)
        found = self.discovered
        if not found:
            self._status("No devices found")
            return
        self._status(f"Found {len(found)} device(s)")
        if self._on_devices_found:
            try:
                self._on_devices_found(found)
            except Exception as exc:
                logger.error("Devices-found callback error: %s", exc)

    def _on_scan_failed(self, event: BleEvent) -> None:
        if self._state is not BleState.SCANNING:
            return
        self._fail(f"BLE scan failed: {event.error}")

    def _on_device_selected(self, event: BleEvent) -> None:
        if self._state not in _RESTARTABLE:
            logger.warning("Device selected while %s; ignored", self._state.value)
            return
        peripheral_id = event.peripheral_id
        if not peripheral_id:
            return
        if peripheral_id not in self._discovered:
            logger.warning("Selected peripheral %s was not seen in the last scan", peripheral_id)
        self._selected_id = peripheral_id
        self._set_state(BleState.DEVICE_CHOSEN)
        self._begin_connect(peripheral_id)

    def _on_reconnect_requested(self, event: BleEvent) -> None:
        if self._selected_id is None:
            logger.warning("Reconnect requested but no peripheral was ever selected")
            return
        if self._state not in _RESTARTABLE:
            logger.warning("Reconnect requested while %s; ignored", self._state.value)
            return
        self._begin_connect(self._selected_id)

    def _on_connect_succeeded(self, event: BleEvent) -> None:
        if not self._is_current(event, BleState.CONNECTING):
            return
        self._set_state(BleState.SERVICE_DISCOVERY)
        self._create_background_task(self._run_resolve(event.peripheral_id))

    def _on_services_resolved(self, event: BleEvent) -> None:
        if not self._is_current(event, BleState.SERVICE_DISCOVERY):
            return
        self._connection.service_found = True
        self._connection.notify_characteristic_found = True
        self._set_state(BleState.SUBSCRIBED)
        self._create_background_task(self._run_subscribe(event.peripheral_id))

    def _on_subscribe_succeeded(self, event: BleEvent) -> None:
        if not self._is_current(event, BleState.SUBSCRIBED):
            return
        self._connection.connection_state = ConnectionState.CONNECTED
        self._set_state(BleState.CONNECTED)
        self._arbiter.on_ble_connected()
        self._status(f"Connected to {event.peripheral_id}")

    def _on_setup_failed(self, event: BleEvent) -> None:
        expected = {
            BleEventKind.CONNECT_FAILED: BleState.CONNECTING,
            BleEventKind.SERVICE_NOT_FOUND: BleState.SERVICE_DISCOVERY,
            BleEventKind.CHARACTERISTIC_NOT_FOUND: BleState.SERVICE_DISCOVERY,
            BleEventKind.SUBSCRIBE_FAILED: BleState.SUBSCRIBED,
        }[event.kind]
        if not self._is_current(event, expected):
            return
        if event.kind is BleEventKind.CHARACTERISTIC_NOT_FOUND:
            self._connection.service_found = True
        reason = event.kind.value.replace("_", " ")
        if event.error:
            reason = f"{reason}: {event.error}"
        # Anything past CONNECTING left an open link behind
        self._fail(reason, close_link=event.kind is not BleEventKind.CONNECT_FAILED)

    def _on_notification(self, event: BleEvent) -> Optional[IngestResult]:
        if self._state is not BleState.CONNECTED or not self._is_current_id(event):
            logger.debug("Dropping notification received while %s", self._state.value)
            return None
        try:
            point = parse_frame(event.payload or b"")
        except FrameParseError as exc:
            self._dropped_frames += 1
            logger.warning("Dropped malformed GPS frame %r: %s", exc.frame, exc)
            return None
        return self._arbiter.submit(Source.BLE_PERIPHERAL, point)

    def _on_disconnected(self, event: BleEvent) -> None:
        if not self._is_current_id(event):
            return
        if self._state in _SETUP_STATES:
            self._fail("link lost during connection setup")
        elif self._state is BleState.CONNECTED:
            self._cancel_pending_tasks()
            self._connection.connection_state = ConnectionState.DISCONNECTED
            self._set_state(BleState.DISCONNECTED)
            self._arbiter.on_ble_failure("peripheral disconnected")
            self._status(f"Disconnected from {event.peripheral_id}")

    # =========================================================================
    # Transitions
    # =========================================================================

    def _begin_connect(self, peripheral_id: str) -> None:
        info = self._discovered.get(peripheral_id)
        self._connection = PeripheralConnection(id=peripheral_id)
        if info is not None:
            self._connection.discovered_at = info.discovered_at
        self._set_state(BleState.CONNECTING)
        self._status(f"Connecting to {info.label if info else peripheral_id}")
        self._create_background_task(self._run_connect(peripheral_id))

    def _fail(self, reason: str, close_link: bool = False) -> None:
        self._cancel_pending_tasks()
        if self._connection is not None:
            self._connection.connection_state = ConnectionState.FAILED
        self._set_state(BleState.FAILED)
        logger.warning("BLE failure: %s", reason)
        self._arbiter.on_ble_failure(reason)
        if self._arbiter.active_source is Source.PHONE_GPS:
            self._status(f"BLE failed ({reason}); using phone GPS")
        else:
            self._status(f"BLE failed ({reason}); no position source")
        if close_link:
            self._create_background_task(self._close_link())

    def _set_state(self, new: BleState) -> None:
        if new is not self._state:
            logger.debug("BLE %s -> %s", self._state.value, new.value)
            self._state = new

    def _is_current_id(self, event: BleEvent) -> bool:
        return self._connection is not None and event.peripheral_id == self._connection.id

    def _is_current(self, event: BleEvent, expected: BleState) -> bool:
        if self._state is expected and self._is_current_id(event):
            return True
        logger.debug("Ignoring stale %s for %s while %s", event.kind.value, event.peripheral_id, self._state.value)
        return False

    def _status(self, message: str) -> None:
        self._last_status = message
        if self._on_status:
            try:
                self._on_status(message)
            except Exception as exc:
                logger.error("Status callback error: %s", exc)

    # =========================================================================
    # Link operations (background tasks)
    # =========================================================================

    async def _run_scan(self) -> None:
        try:
            await self._link.start_scan(lambda info: self._post(BleEvent.discovered(info)))
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            self._post(BleEvent.failed(BleEventKind.SCAN_FAILED, None, str(exc) or type(exc).__name__))
            return
        try:
            await asyncio.sleep(self.scan_window_s)
        finally:
            try:
                await self._link.stop_scan()
            except Exception as exc:
                logger.warning("Error stopping BLE scan: %s", exc)
        self._post(BleEvent(BleEventKind.SCAN_COMPLETED))

    async def _run_connect(self, peripheral_id: str) -> None:
        try:
            ok = await self._link.connect(peripheral_id)
            error = self._link.last_error
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            ok, error = False, str(exc) or type(exc).__name__
        if ok:
            self._post(BleEvent(BleEventKind.CONNECT_SUCCEEDED, peripheral_id=peripheral_id))
        else:
            self._post(BleEvent.failed(BleEventKind.CONNECT_FAILED, peripheral_id, error or "connect failed"))

    async def _run_resolve(self, peripheral_id: str) -> None:
        try:
            result = await self._link.resolve(self.service_uuid, self.characteristic_uuid)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            self._post(BleEvent.failed(BleEventKind.SERVICE_NOT_FOUND, peripheral_id, str(exc)))
            return
        kind = {
            ResolveResult.OK: BleEventKind.SERVICES_RESOLVED,
            ResolveResult.SERVICE_NOT_FOUND: BleEventKind.SERVICE_NOT_FOUND,
            ResolveResult.CHARACTERISTIC_NOT_FOUND: BleEventKind.CHARACTERISTIC_NOT_FOUND,
        }[result]
        self._post(BleEvent(kind, peripheral_id=peripheral_id))

    async def _run_subscribe(self, peripheral_id: str) -> None:
        def _on_payload(payload: bytes) -> None:
            self._post(BleEvent.notification(peripheral_id, payload))

        try:
            await self._link.subscribe(self.characteristic_uuid, _on_payload)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            self._post(BleEvent.failed(BleEventKind.SUBSCRIBE_FAILED, peripheral_id, str(exc)))
            return
        self._post(BleEvent(BleEventKind.SUBSCRIBE_SUCCEEDED, peripheral_id=peripheral_id))

    async def _close_link(self) -> None:
        await self._link.disconnect()

    def _on_link_lost(self, peripheral_id: str) -> None:
        self._post(BleEvent.disconnected(peripheral_id))

    # =========================================================================
    # Teardown
    # =========================================================================

    async def teardown(self) -> None:
        """Cancel pending work, stop notifications and disconnect.

        Events handled afterwards are discarded. Safe to call repeatedly.
        """
        if self._closed:
            return
        self._closed = True
        self._link.set_disconnected_callback(None)

        pending = list(self._pending_tasks)
        self._cancel_pending_tasks()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

        link_open = self._state in _LINK_OPEN_STATES or self._link.is_connected
        try:
            if self._state in (BleState.SUBSCRIBED, BleState.CONNECTED):
                await self._link.unsubscribe(self.characteristic_uuid)
            if link_open:
                await self._link.disconnect()
        except Exception as exc:
            logger.warning("Error releasing BLE link during teardown: %s", exc)

        if self._connection is not None and self._connection.connection_state is not ConnectionState.FAILED:
            self._connection.connection_state = ConnectionState.DISCONNECTED
        if self._state is not BleState.IDLE:
            self._set_state(BleState.DISCONNECTED)
        logger.info("BLE state machine torn down")

    # =========================================================================
    # Utility Methods
    # =========================================================================

    def _create_background_task(self, coro: Coroutine[Any, Any, None]) -> asyncio.Task:
        task = asyncio.create_task(coro)
        self._pending_tasks.add(task)
        task.add_done_callback(self._on_task_done)
        return task

    def _on_task_done(self, task: asyncio.Task) -> None:
        self._pending_tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Unhandled exception in BLE background task: %s", exc)

    def _cancel_pending_tasks(self) -> None:
        current = asyncio.current_task()
        for task in list(self._pending_tasks):
            if task is not current and not task.done():
                task.cancel()

    def to_dict(self) -> dict:
        return {
            "state": self._state.value,
            "selected_id": self._selected_id,
            "connection": self._connection.to_dict() if self._connection else None,
            "discovered": [p.to_dict() for p in self._discovered.values()],
            "dropped_frames": self._dropped_frames,
            "status": self._last_status,
        }


__all__ = ["BleConnectionStateMachine"]
