"""Tracking session: one tracking state, one event queue, one owner.

Every input (BLE callbacks, location samples, link operation results) is
posted to an asyncio queue and handled to completion by a single consumer
task, so the recorder, arbiter and annotation handles are never touched by
two handlers at once.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set, Tuple, Union

from hikemap.core.logging_utils import get_module_logger
from .annotations import AnnotationSynchronizer
from .arbiter import SourceArbiter, SourceChangeCallback
from .ble.events import BleEvent, BleEventKind
from .ble.state_machine import BleConnectionStateMachine, DevicesFoundCallback, StatusCallback
from .camera import CameraFollowController
from .constants import (
    BLE_NOTIFY_CHARACTERISTIC_UUID,
    BLE_SCAN_WINDOW_S,
    BLE_SERVICE_UUID,
    CAMERA_ANIMATION_MS,
    DEFAULT_DISTANCE_THRESHOLD_M,
)
from .errors import InvalidCoordinateError, SessionClosedError
from .geo import GeoPoint
from .location.service import LocationSample, LocationService, ensure_location_available
from .map_host import MapHost, MarkerStyle, PolylineStyle, describe_host
from .recorder import Accepted, IngestResult, PathRecorder
from .state import Source, TrackingState
from .transports.base_transport import BasePeripheralLink, PeripheralInfo

logger = get_module_logger(__name__)


@dataclass(slots=True)
class MapRequest:
    """Host map work run by the consumer; its outcome is set on ``done``."""

    action: Callable[[], Awaitable[Any]]
    done: "asyncio.Future[Any]"


SessionEvent = Union[BleEvent, LocationSample, MapRequest]


class TrackingSession:
    """Owns the tracking state and every resource attached to it.

    Example:
        async with TrackingSession(area.center, link=BleakPeripheralLink(),
                                   location_service=NMEALocationService()) as session:
            await session.attach_map(host)
            session.request_scan()
            ...
    """

    def __init__(
        self,
        seed: GeoPoint,
        *,
        link: Optional[BasePeripheralLink] = None,
        location_service: Optional[LocationService] = None,
        map_host: Optional[MapHost] = None,
        distance_threshold_m: float = DEFAULT_DISTANCE_THRESHOLD_M,
        scan_window_s: float = BLE_SCAN_WINDOW_S,
        service_uuid: str = BLE_SERVICE_UUID,
        characteristic_uuid: str = BLE_NOTIFY_CHARACTERISTIC_UUID,
        camera_animation_ms: int = CAMERA_ANIMATION_MS,
        follow_mode: bool = False,
        marker_style: MarkerStyle = MarkerStyle(),
        polyline_style: PolylineStyle = PolylineStyle(),
        on_status: Optional[StatusCallback] = None,
        on_devices_found: Optional[DevicesFoundCallback] = None,
        on_source_change: Optional[SourceChangeCallback] = None,
    ):
        self._state = TrackingState.seeded(seed, follow_mode=follow_mode)
        self._recorder = PathRecorder(self._state, distance_threshold_m)
        self._arbiter = SourceArbiter(self._state, self._recorder, on_source_change)
        self._annotations = AnnotationSynchronizer(map_host, marker_style, polyline_style)
        self._camera = CameraFollowController(self._state, map_host, camera_animation_ms)
        self._location_service = location_service
        self._link = link

        self._queue: "asyncio.Queue[SessionEvent]" = asyncio.Queue()
        self._ble: Optional[BleConnectionStateMachine] = None
        if link is not None:
            self._ble = BleConnectionStateMachine(
                link,
                self._arbiter,
                self._post,
                service_uuid=service_uuid,
                characteristic_uuid=characteristic_uuid,
                scan_window_s=scan_window_s,
                on_devices_found=on_devices_found,
                on_status=on_status,
            )
        self._on_status = on_status

        self._consumer_task: Optional[asyncio.Task] = None
        self._location_task: Optional[asyncio.Task] = None
        self._pending_tasks: Set[asyncio.Task] = set()
        self._started = False
        self._closed = False
        self._invalid_samples = 0

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def state(self) -> TrackingState:
        return self._state

    @property
    def recorder(self) -> PathRecorder:
        return self._recorder

    @property
    def arbiter(self) -> SourceArbiter:
        return self._arbiter

    @property
    def ble(self) -> Optional[BleConnectionStateMachine]:
        return self._ble

    @property
    def annotations(self) -> AnnotationSynchronizer:
        return self._annotations

    @property
    def active_source(self) -> Source:
        return self._state.active_source

    @property
    def current(self) -> GeoPoint:
        return self._state.current

    @property
    def path(self) -> Tuple[GeoPoint, ...]:
        return self._state.path

    @property
    def follow_mode(self) -> bool:
        return self._state.follow_mode

    @property
    def is_running(self) -> bool:
        return self._started and not self._closed

    @property
    def is_closed(self) -> bool:
        return self._closed

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def start(self) -> None:
        """Start the event consumer and the location service checks."""
        if self._closed:
            raise SessionClosedError("Tracking session already closed")
        if self._started:
            logger.warning("Tracking session already running")
            return
        self._started = True
        self._consumer_task = asyncio.create_task(self._consume())

        if self._ble is None:
            self._arbiter.on_ble_failure("no BLE adapter configured")

        if self._location_service is None:
            self._arbiter.on_phone_ready(False)
        else:
            # Permission prompts can take a while; BLE setup runs meanwhile.
            self._location_task = self._create_background_task(self._run_location())

        logger.info(
            "Tracking session started at %.6f,%.6f (map=%s)",
            self._state.current.lat, self._state.current.lon,
            describe_host(self._annotations.host),
        )

    async def close(self) -> None:
        """Release subscriptions, the BLE link and annotation handles.

        Events still queued, or posted later, are discarded.
        """
        if self._closed:
            return
        self._closed = True

        pending = list(self._pending_tasks)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

        if self._ble is not None:
            await self._ble.teardown()

        if self._location_service is not None:
            try:
                await self._location_service.close()
            except Exception as exc:
                logger.warning("Error closing location service: %s", exc)

        if self._consumer_task is not None:
            self._consumer_task.cancel()
            try:
                await self._consumer_task
            except asyncio.CancelledError:
                pass
            self._consumer_task = None

        while not self._queue.empty():
            self._discard(self._queue.get_nowait())
            self._queue.task_done()

        try:
            await self._annotations.clear()
        finally:
            logger.info(
                "Tracking session closed (path=%d points, %.0f m)",
                self._state.path_length, self._recorder.total_distance_m(),
            )

    async def __aenter__(self) -> "TrackingSession":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> bool:
        await self.close()
        return False

    async def drain(self) -> None:
        """Wait until every event posted so far has been handled."""
        if self._consumer_task is None:
            raise RuntimeError("Tracking session not started")
        await self._queue.join()

    # =========================================================================
    # Requests from the user-facing layer
    # =========================================================================

    async def attach_map(self, host: MapHost) -> None:
        """Attach the host map once it exists and draw the current state.

        Runs on the event consumer, after any samples already queued, so
        annotation handles are never created twice. Host errors are raised
        here.
        """
        async def _attach() -> None:
            await self._annotations.attach(host)
            self._camera.attach(host)
            await self._annotations.sync(self._state.current, self._state.path)

        await self._run_map_request(_attach)

    async def set_follow_mode(self, enabled: bool) -> None:
        await self._run_map_request(lambda: self._camera.set_follow_mode(enabled))
        logger.info("Follow mode %s", "on" if enabled else "off")

    async def toggle_follow_mode(self) -> bool:
        await self.set_follow_mode(not self._state.follow_mode)
        return self._state.follow_mode

    def request_scan(self) -> None:
        self._post_ble(BleEvent(BleEventKind.SCAN_REQUESTED))

    def select_peripheral(self, peripheral_id: str) -> None:
        self._post_ble(BleEvent.selected(peripheral_id))

    def reconnect(self) -> None:
        self._post_ble(BleEvent(BleEventKind.RECONNECT_REQUESTED))

    def submit_location(self, lat: float, lon: float) -> None:
        """Entry point for hosts that push location callbacks themselves."""
        self._ensure_open()
        self._post(LocationSample(lat, lon))

    def discovered_peripherals(self) -> List[PeripheralInfo]:
        return self._ble.discovered if self._ble is not None else []

    # =========================================================================
    # Event consumer
    # =========================================================================

    def _post(self, event: SessionEvent) -> None:
        if self._closed:
            return
        self._queue.put_nowait(event)

    def _post_ble(self, event: BleEvent) -> None:
        self._ensure_open()
        if self._ble is None:
            logger.warning("No BLE adapter configured; %s ignored", event.kind.value)
            return
        self._post(event)

    async def _run_map_request(self, action: Callable[[], Awaitable[Any]]) -> Any:
        self._ensure_open()
        if self._consumer_task is None:
            # Not started: nothing else can touch the map yet
            return await action()
        done = asyncio.get_running_loop().create_future()
        self._post(MapRequest(action, done))
        return await done

    async def _consume(self) -> None:
        while True:
            event = await self._queue.get()
            try:
                if self._closed:
                    self._discard(event)
                else:
                    await self._dispatch(event)
            except asyncio.CancelledError:
                if isinstance(event, MapRequest):
                    self._discard(event)
                raise
            except Exception:
                logger.exception("Error handling %s", type(event).__name__)
            finally:
                self._queue.task_done()

    @staticmethod
    def _discard(event: SessionEvent) -> None:
        if isinstance(event, MapRequest) and not event.done.done():
            event.done.set_exception(SessionClosedError("Tracking session closed"))

    async def _dispatch(self, event: SessionEvent) -> None:
        if isinstance(event, MapRequest):
            await self._handle_map_request(event)
            return

        result: Optional[IngestResult]
        if isinstance(event, LocationSample):
            result = self._handle_location(event)
        elif self._ble is not None:
            result = self._ble.handle(event)
        else:
            return

        if isinstance(result, Accepted):
            await self._on_accepted(result.point)

    async def _handle_map_request(self, request: MapRequest) -> None:
        try:
            result = await request.action()
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            if not request.done.done():
                request.done.set_exception(exc)
            return
        if not request.done.done():
            request.done.set_result(result)

    def _handle_location(self, sample: LocationSample) -> Optional[IngestResult]:
        try:
            point = GeoPoint(sample.lat, sample.lon)
        except InvalidCoordinateError as exc:
            self._invalid_samples += 1
            logger.warning("Dropped invalid location sample: %s", exc)
            return None
        return self._arbiter.submit(Source.PHONE_GPS, point)

    async def _on_accepted(self, point: GeoPoint) -> None:
        await self._annotations.sync(self._state.current, self._state.path)
        await self._camera.on_position_accepted(point)

    # =========================================================================
    # Location service
    # =========================================================================

    async def _run_location(self) -> None:
        service = self._location_service
        try:
            available = await ensure_location_available(service)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.error("Location service check failed: %s", exc)
            available = False

        self._arbiter.on_phone_ready(available)
        if not available:
            self._report("Location service unavailable")
            return

        async for sample in service.locations():
            self._post(sample)

        logger.info("Location stream ended")

    def _report(self, message: str) -> None:
        if self._on_status:
            try:
                self._on_status(message)
            except Exception as exc:
                logger.error("Status callback error: %s", exc)

    # =========================================================================
    # Utility Methods
    # =========================================================================

    def _ensure_open(self) -> None:
        if self._closed:
            raise SessionClosedError("Tracking session already closed")

    def _create_background_task(self, coro) -> asyncio.Task:
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
            logger.error("Unhandled exception in session background task: %s", exc)

    def status(self) -> Dict[str, Any]:
        return {
            "running": self.is_running,
            "tracking": self._state.to_dict(),
            "accepted_samples": self._recorder.accepted_count,
            "rejected_samples": self._recorder.rejected_count,
            "ignored_samples": self._arbiter.ignored_samples,
            "invalid_samples": self._invalid_samples,
            "distance_m": round(self._recorder.total_distance_m(), 1),
            "phone_available": self._arbiter.phone_available,
            "ble": self._ble.to_dict() if self._ble is not None else None,
        }


__all__ = ["MapRequest", "SessionEvent", "TrackingSession"]
