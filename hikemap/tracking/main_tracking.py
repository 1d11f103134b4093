"""Command-line runner: one tracking session on this machine's BLE adapter
and serial GPS receiver, drawn onto a headless map host."""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import signal
import sys
from pathlib import Path
from typing import List, Optional, Sequence

from hikemap.core.logging_config import configure_logging
from hikemap.core.logging_utils import get_module_logger
from .api import TrackingApiController, TrackingApiServer
from .config import DEFAULT_CONFIG_PATH, TrackingConfig
from .tracking_core.errors import ConfigurationError
from .tracking_core.location import NMEALocationService
from .tracking_core.map_host import HeadlessMapHost
from .tracking_core.session import TrackingSession
from .tracking_core.state import Source
from .tracking_core.transports import BleakPeripheralLink, PeripheralInfo

logger = get_module_logger(__name__)

EXIT_OK = 0
EXIT_CONFIG_ERROR = 2
EXIT_INTERRUPTED = 130


def _positive_float(value: str) -> float:
    try:
        parsed = float(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError("Value must be a number") from exc
    if parsed <= 0:
        raise argparse.ArgumentTypeError("Value must be positive")
    return parsed


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="hikemap-track",
        description="Track a hike from a BLE GPS peripheral with serial GPS fallback",
    )
    parser.add_argument("--config", type=Path, default=DEFAULT_CONFIG_PATH,
                        help="config.txt path (default: %(default)s)")
    parser.add_argument("--area", help="Hiking area key used as the path seed")
    parser.add_argument("--distance-threshold-m", dest="distance_threshold_m", type=float,
                        help="Minimum movement before a sample is recorded")
    parser.add_argument("--scan-window-s", dest="scan_window_s", type=_positive_float,
                        help="BLE scan window in seconds")
    parser.add_argument("--serial-port", dest="serial_port", help="Serial GPS device node")
    parser.add_argument("--baud-rate", dest="baud_rate", type=int, help="Serial GPS baud rate")
    parser.add_argument("--follow", dest="follow_mode", action="store_const", const=True,
                        help="Start with camera follow mode on")
    parser.add_argument("--log-level", dest="log_level", help="Logging level (debug, info, ...)")
    parser.add_argument("--log-file", dest="log_file", help="Rotating log file path")

    parser.add_argument("--scan", action="store_true",
                        help="Scan at startup and connect to the first matching peripheral")
    parser.add_argument("--device", help="Peripheral id or name to connect to after --scan")
    parser.add_argument("--no-ble", action="store_true", help="Run without the BLE adapter")
    parser.add_argument("--no-location", action="store_true", help="Run without the serial GPS")

    parser.add_argument("--api", action="store_true", help="Serve the control API")
    parser.add_argument("--api-host", dest="api_host", help="Control API bind address")
    parser.add_argument("--api-port", dest="api_port", type=int, help="Control API port")
    parser.add_argument("--duration", type=_positive_float,
                        help="Stop after this many seconds (default: until interrupted)")
    return parser.parse_args(list(argv) if argv is not None else None)


def match_peripheral(found: List[PeripheralInfo], wanted: Optional[str]) -> Optional[PeripheralInfo]:
    """Pick the peripheral to auto-connect to.

    With ``wanted`` set, an exact id match wins over a case-insensitive name
    match. Without it, the strongest signal wins.
    """
    if not found:
        return None
    if not wanted:
        return max(found, key=lambda p: p.rssi if p.rssi is not None else -1000)

    needle = wanted.strip().lower()
    for peripheral in found:
        if peripheral.id.lower() == needle:
            return peripheral
    for peripheral in found:
        if peripheral.name and peripheral.name.lower() == needle:
            return peripheral
    return None


def install_signal_handlers(stop_event: asyncio.Event, loop: asyncio.AbstractEventLoop) -> None:
    """Register SIGINT/SIGTERM handlers that end the run."""
    for sig in (signal.SIGINT, signal.SIGTERM):
        with contextlib.suppress(NotImplementedError):
            loop.add_signal_handler(sig, stop_event.set)


async def main_async(args: argparse.Namespace) -> int:
    try:
        config = TrackingConfig.load(args.config, args)
        configure_logging(config.log_level, log_file=config.log_file or None)
        config.require_access_token()
    except (ConfigurationError, ValueError) as exc:
        configure_logging("info")
        logger.error("Configuration error: %s", exc)
        return EXIT_CONFIG_ERROR

    area = config.hiking_area
    logger.info("Tracking in %s (seed %.4f,%.4f)", area.name, area.center.lat, area.center.lon)
    logger.debug("Config: %s", config.to_dict())

    host = HeadlessMapHost(area.center, config.initial_zoom)
    link = None if args.no_ble else BleakPeripheralLink()
    location = None if args.no_location else NMEALocationService(config.serial_port, config.baud_rate)

    session: Optional[TrackingSession] = None

    def on_devices_found(found: List[PeripheralInfo]) -> None:
        if not args.scan or session is None:
            return
        choice = match_peripheral(found, args.device)
        if choice is None:
            logger.warning("No scanned peripheral matches %r", args.device)
            return
        session.select_peripheral(choice.id)

    def on_source_change(old: Source, new: Source, reason: str) -> None:
        print(f"Position source: {old.value} -> {new.value} ({reason})")

    session = TrackingSession(
        area.center,
        link=link,
        location_service=location,
        on_status=lambda message: print(f"BLE: {message}"),
        on_devices_found=on_devices_found,
        on_source_change=on_source_change,
        **config.session_kwargs(),
    )

    stop_event = asyncio.Event()
    install_signal_handlers(stop_event, asyncio.get_running_loop())
    api_server: Optional[TrackingApiServer] = None

    async with session:
        await session.attach_map(host)
        if args.scan:
            session.request_scan()

        try:
            if args.api:
                api_server = TrackingApiServer(
                    TrackingApiController(session), config.api_host, config.api_port
                )
                await api_server.start()

            with contextlib.suppress(asyncio.TimeoutError):
                await asyncio.wait_for(stop_event.wait(), timeout=args.duration)
        finally:
            if api_server is not None:
                await api_server.stop()

        logger.info(
            "Stopping: %d path points, %.0f m, source=%s",
            len(session.path), session.recorder.total_distance_m(), session.active_source.value,
        )

    return EXIT_OK


def run(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    try:
        return asyncio.run(main_async(args))
    except KeyboardInterrupt:
        return EXIT_INTERRUPTED


if __name__ == "__main__":
    sys.exit(run())
