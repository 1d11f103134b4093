"""Arbitration between the BLE peripheral and the phone location service.

Only one source may update the tracking state at a time. The BLE peripheral
wins while its link is fully established; every BLE failure demotes to the
phone location service, or to no source when that service is known to be
unavailable. Promotion back to BLE needs an explicit reconnect.
"""

from __future__ import annotations

from typing import Callable, Optional

from hikemap.core.logging_utils import get_module_logger
from .geo import GeoPoint
from .recorder import IngestResult, PathRecorder
from .state import Source, TrackingState

logger = get_module_logger(__name__)

SourceChangeCallback = Callable[[Source, Source, str], None]


class SourceArbiter:
    """State machine over :class:`Source` that gates samples into the recorder."""

    def __init__(
        self,
        state: TrackingState,
        recorder: PathRecorder,
        on_source_change: Optional[SourceChangeCallback] = None,
    ):
        self._state = state
        self._recorder = recorder
        self._on_source_change = on_source_change
        # None until the location service has been checked
        self._phone_available: Optional[bool] = None
        self._ignored_samples = 0

    @property
    def active_source(self) -> Source:
        return self._state.active_source

    @property
    def phone_available(self) -> Optional[bool]:
        return self._phone_available

    @property
    def ignored_samples(self) -> int:
        return self._ignored_samples

    def set_source_change_callback(self, callback: Optional[SourceChangeCallback]) -> None:
        self._on_source_change = callback

    # =========================================================================
    # Transitions
    # =========================================================================

    def on_phone_ready(self, available: bool) -> None:
        """Record the outcome of the location service startup checks."""
        self._phone_available = available
        current = self._state.active_source
        if available and current is Source.NONE:
            self._set_source(Source.PHONE_GPS, "location service ready")
        elif not available and current is Source.PHONE_GPS:
            self._set_source(Source.NONE, "location service unavailable")

    def on_ble_connected(self) -> None:
        """The peripheral link is connected, resolved and subscribed."""
        self._set_source(Source.BLE_PERIPHERAL, "peripheral connected")

    def on_ble_failure(self, reason: str) -> None:
        """Any BLE failure: unavailable adapter, connect, discovery or drop."""
        fallback = Source.NONE if self._phone_available is False else Source.PHONE_GPS
        self._set_source(fallback, reason)

    def _set_source(self, new: Source, reason: str) -> None:
        old = self._state.active_source
        if old is new:
            return
        self._state.active_source = new
        logger.info("Active source %s -> %s (%s)", old.value, new.value, reason)
        if self._on_source_change:
            try:
                self._on_source_change(old, new, reason)
            except Exception as exc:
                logger.error("Source change callback error: %s", exc)

    # =========================================================================
    # Sample routing
    # =========================================================================

    def submit(self, source: Source, point: GeoPoint) -> Optional[IngestResult]:
        """Forward a sample from ``source`` to the recorder if it is active.

        Returns:
            The recorder's result, or None when the sample came from an
            inactive source and was ignored.
        """
        if source is Source.NONE or source is not self._state.active_source:
            self._ignored_samples += 1
            logger.debug(
                "Ignoring %s sample while %s is active",
                source.value, self._state.active_source.value,
            )
            return None
        return self._recorder.ingest(point)


__all__ = ["SourceArbiter", "SourceChangeCallback"]
