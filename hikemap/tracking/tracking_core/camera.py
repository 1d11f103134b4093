"""Camera follow controller."""

from __future__ import annotations

from typing import Optional

from hikemap.core.logging_utils import get_module_logger
from .constants import CAMERA_ANIMATION_MS
from .geo import GeoPoint
from .map_host import MapHost
from .state import TrackingState

logger = get_module_logger(__name__)


class CameraFollowController:
    """Keeps the host camera centered on accepted positions in follow mode.

    Only the center moves: zoom, bearing and pitch are read from the host
    before each animation and passed back unchanged.
    """

    def __init__(
        self,
        state: TrackingState,
        host: Optional[MapHost] = None,
        duration_ms: int = CAMERA_ANIMATION_MS,
    ):
        self._state = state
        self._host = host
        self.duration_ms = duration_ms

    @property
    def follow_mode(self) -> bool:
        return self._state.follow_mode

    def attach(self, host: Optional[MapHost]) -> None:
        self._host = host

    async def set_follow_mode(self, enabled: bool) -> None:
        """Turn follow mode on or off.

        Turning it on animates once to the current position.
        """
        was_enabled = self._state.follow_mode
        self._state.follow_mode = enabled
        if enabled and not was_enabled:
            await self._animate_to(self._state.current)

    async def on_position_accepted(self, point: GeoPoint) -> None:
        if self._state.follow_mode:
            await self._animate_to(point)

    async def _animate_to(self, point: GeoPoint) -> None:
        if self._host is None:
            logger.debug("No map attached; skipping camera update")
            return
        camera = await self._host.get_camera_state()
        await self._host.animate_camera_to(
            point,
            zoom=camera.zoom,
            bearing=camera.bearing,
            pitch=camera.pitch,
            duration_ms=self.duration_ms,
        )


__all__ = ["CameraFollowController"]
