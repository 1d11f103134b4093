"""
Tracking Routes - control API endpoints for a live tracking session.
"""

from aiohttp import web

from .controller import TrackingApiController
from .middleware import create_error_response, parse_json_body

API_PREFIX = "/api/v1/tracking"


def setup_tracking_routes(app: web.Application, controller: TrackingApiController) -> None:
    """Register tracking routes."""
    # State
    app.router.add_get(f"{API_PREFIX}/status", status_handler)
    app.router.add_get(f"{API_PREFIX}/path", path_handler)
    app.router.add_get(f"{API_PREFIX}/areas", areas_handler)

    # BLE peripheral
    app.router.add_get(f"{API_PREFIX}/peripherals", peripherals_handler)
    app.router.add_post(f"{API_PREFIX}/scan", scan_handler)
    app.router.add_post(f"{API_PREFIX}/select", select_handler)
    app.router.add_post(f"{API_PREFIX}/reconnect", reconnect_handler)

    # Camera
    app.router.add_put(f"{API_PREFIX}/follow", follow_handler)


def _ble_unavailable() -> web.Response:
    return create_error_response(
        "BLE_NOT_AVAILABLE",
        "No BLE adapter configured for this session",
        status=503,
    )


async def status_handler(request: web.Request) -> web.Response:
    """GET /api/v1/tracking/status - Session, source and BLE state."""
    controller: TrackingApiController = request.app["controller"]
    return web.json_response(await controller.get_status())


async def path_handler(request: web.Request) -> web.Response:
    """GET /api/v1/tracking/path - Accepted path in acceptance order."""
    controller: TrackingApiController = request.app["controller"]
    return web.json_response(await controller.get_path())


async def areas_handler(request: web.Request) -> web.Response:
    """GET /api/v1/tracking/areas - Built-in hiking areas."""
    controller: TrackingApiController = request.app["controller"]
    return web.json_response({"areas": await controller.get_areas()})


async def peripherals_handler(request: web.Request) -> web.Response:
    """GET /api/v1/tracking/peripherals - Peripherals found by the last scan."""
    controller: TrackingApiController = request.app["controller"]
    result = await controller.get_peripherals()
    if result is None:
        return _ble_unavailable()
    return web.json_response(result)


async def scan_handler(request: web.Request) -> web.Response:
    """POST /api/v1/tracking/scan - Start a scan window."""
    controller: TrackingApiController = request.app["controller"]
    result = await controller.request_scan()
    if result is None:
        return _ble_unavailable()
    return web.json_response(result, status=202)


async def select_handler(request: web.Request) -> web.Response:
    """POST /api/v1/tracking/select - Connect to a peripheral.

    Example body:
        {"peripheral_id": "AA:BB:CC:DD:EE:FF"}
    """
    controller: TrackingApiController = request.app["controller"]
    body, error = await parse_json_body(request)
    if error:
        return error

    peripheral_id = body.get("peripheral_id")
    if not isinstance(peripheral_id, str) or not peripheral_id.strip():
        return create_error_response(
            "MISSING_FIELD",
            "peripheral_id must be a non-empty string",
            status=400,
        )

    result = await controller.select_peripheral(peripheral_id.strip())
    if result is None:
        return _ble_unavailable()
    return web.json_response(result, status=202)


async def reconnect_handler(request: web.Request) -> web.Response:
    """POST /api/v1/tracking/reconnect - Reconnect to the selected peripheral."""
    controller: TrackingApiController = request.app["controller"]
    result = await controller.reconnect()
    if result is None:
        return _ble_unavailable()
    if not result.get("success"):
        return create_error_response("NO_PERIPHERAL_SELECTED", result["error"], status=409)
    return web.json_response(result, status=202)


async def follow_handler(request: web.Request) -> web.Response:
    """PUT /api/v1/tracking/follow - Turn camera follow mode on or off.

    Example body:
        {"enabled": true}
    """
    controller: TrackingApiController = request.app["controller"]
    body, error = await parse_json_body(request)
    if error:
        return error

    enabled = body.get("enabled")
    if not isinstance(enabled, bool):
        return create_error_response(
            "VALIDATION_ERROR",
            "enabled must be a boolean",
            status=400,
        )

    return web.json_response(await controller.set_follow_mode(enabled))


__all__ = ["API_PREFIX", "setup_tracking_routes"]
