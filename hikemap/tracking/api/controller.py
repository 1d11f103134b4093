"""
API Controller - Thin wrapper around TrackingSession for REST API.

Routes call these async methods; they translate requests into session calls
and session state into JSON-ready dicts without duplicating engine logic.
"""

from typing import Any, Dict, List, Optional

from hikemap.core.logging_utils import get_module_logger
from ..tracking_core.areas import HIKING_AREAS
from ..tracking_core.session import TrackingSession

logger = get_module_logger("APIController")


class TrackingApiController:
    """API controller providing programmatic access to one tracking session."""

    def __init__(self, session: TrackingSession):
        self.session = session

    # =========================================================================
    # Read-only Endpoints
    # =========================================================================

    async def get_status(self) -> Dict[str, Any]:
        return self.session.status()

    async def get_path(self) -> Dict[str, Any]:
        path = self.session.path
        return {
            "points": [p.to_dict() for p in path],
            "count": len(path),
            "distance_m": round(self.session.recorder.total_distance_m(), 1),
            "current": self.session.current.to_dict(),
            "source": self.session.active_source.value,
        }

    async def get_areas(self) -> List[Dict[str, Any]]:
        return [area.to_dict() for area in HIKING_AREAS.values()]

    async def get_peripherals(self) -> Optional[Dict[str, Any]]:
        """Peripherals from the last scan, or None when BLE is not configured."""
        ble = self.session.ble
        if ble is None:
            return None
        return {
            "state": ble.state.value,
            "selected_id": ble.selected_id,
            "peripherals": [p.to_dict() for p in ble.discovered],
        }

    # =========================================================================
    # Control Endpoints
    # =========================================================================

    async def request_scan(self) -> Optional[Dict[str, Any]]:
        if self.session.ble is None:
            return None
        self.session.request_scan()
        logger.info("Scan requested via API")
        return {"success": True, "scan_window_s": self.session.ble.scan_window_s}

    async def select_peripheral(self, peripheral_id: str) -> Optional[Dict[str, Any]]:
        if self.session.ble is None:
            return None
        known = any(p.id == peripheral_id for p in self.session.discovered_peripherals())
        self.session.select_peripheral(peripheral_id)
        logger.info("Peripheral %s selected via API", peripheral_id)
        return {"success": True, "peripheral_id": peripheral_id, "seen_in_last_scan": known}

    async def reconnect(self) -> Optional[Dict[str, Any]]:
        ble = self.session.ble
        if ble is None:
            return None
        if ble.selected_id is None:
            return {"success": False, "error": "No peripheral has been selected"}
        self.session.reconnect()
        return {"success": True, "peripheral_id": ble.selected_id}

    async def set_follow_mode(self, enabled: bool) -> Dict[str, Any]:
        await self.session.set_follow_mode(enabled)
        return {"success": True, "follow_mode": self.session.follow_mode}


__all__ = ["TrackingApiController"]
