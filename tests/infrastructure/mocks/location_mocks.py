"""Mock location service and line transport."""

from __future__ import annotations

import asyncio
from typing import AsyncIterator, List, Optional

from hikemap.tracking.tracking_core.location.service import LocationSample, PermissionStatus
from hikemap.tracking.tracking_core.transports.base_transport import BaseReadOnlyTransport


class MockLocationService:
    """Location service whose checks and samples are driven by the test.

    ``ready`` holds the startup checks open until it is set, so tests can
    exercise the window in which the service's availability is unknown.
    """

    def __init__(
        self,
        *,
        enabled: bool = True,
        enable_on_request: bool = True,
        permission: PermissionStatus = PermissionStatus.GRANTED,
        permission_on_request: PermissionStatus = PermissionStatus.GRANTED,
        ready: bool = True,
    ):
        self.enabled = enabled
        self.enable_on_request = enable_on_request
        self.permission = permission
        self.permission_on_request = permission_on_request
        self.ready = asyncio.Event()
        if ready:
            self.ready.set()

        self._samples: "asyncio.Queue[Optional[LocationSample]]" = asyncio.Queue()
        self.service_requests = 0
        self.permission_requests = 0
        self.closed = False
        self.streaming = False

    async def service_enabled(self) -> bool:
        await self.ready.wait()
        return self.enabled

    async def request_service(self) -> bool:
        self.service_requests += 1
        self.enabled = self.enable_on_request
        return self.enabled

    async def permission_status(self) -> PermissionStatus:
        return self.permission

    async def request_permission(self) -> PermissionStatus:
        self.permission_requests += 1
        self.permission = self.permission_on_request
        return self.permission

    async def locations(self) -> AsyncIterator[LocationSample]:
        self.streaming = True
        try:
            while True:
                sample = await self._samples.get()
                if sample is None:
                    return
                yield sample
        finally:
            self.streaming = False

    async def close(self) -> None:
        self.closed = True

    # Test controls

    def push(self, lat: float, lon: float) -> None:
        self._samples.put_nowait(LocationSample(lat, lon))

    def end(self) -> None:
        self._samples.put_nowait(None)


class MockLineTransport(BaseReadOnlyTransport):
    """Mock transport that yields predefined lines, then reports EOF."""

    def __init__(self, lines: List[str], connect_ok: bool = True):
        super().__init__()
        self._lines = list(lines)
        self._index = 0
        self.connect_ok = connect_ok
        self.disconnect_calls = 0

    async def connect(self) -> bool:
        self._connected = self.connect_ok
        return self.connect_ok

    async def disconnect(self) -> None:
        self.disconnect_calls += 1
        self._connected = False

    async def read_line(self, timeout: float = 1.0) -> Optional[str]:
        if self._index < len(self._lines):
            line = self._lines[self._index]
            self._index += 1
            await asyncio.sleep(0)
            return line
        self._connected = False
        return None
