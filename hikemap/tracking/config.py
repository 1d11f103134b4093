"""Tracking configuration: ``config.txt`` values, CLI overrides, env token."""

from __future__ import annotations

import argparse
import os
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional

from hikemap.core.config_loader import ConfigLoader
from hikemap.core.logging_utils import get_module_logger
from .tracking_core.areas import DEFAULT_AREA, HikingArea, get_area
from .tracking_core.constants import (
    ACCESS_TOKEN_ENV,
    BLE_NOTIFY_CHARACTERISTIC_UUID,
    BLE_SCAN_WINDOW_S,
    BLE_SERVICE_UUID,
    CAMERA_ANIMATION_MS,
    DEFAULT_BAUD_RATE,
    DEFAULT_DISTANCE_THRESHOLD_M,
    DEFAULT_INITIAL_ZOOM,
    DEFAULT_SERIAL_PORT,
)
from .tracking_core.errors import ConfigurationError, MissingCredentialError

logger = get_module_logger(__name__)

DEFAULT_CONFIG_PATH = Path("config.txt")


@dataclass(slots=True)
class TrackingConfig:
    area: str = DEFAULT_AREA
    distance_threshold_m: float = DEFAULT_DISTANCE_THRESHOLD_M
    scan_window_s: float = BLE_SCAN_WINDOW_S
    camera_animation_ms: int = CAMERA_ANIMATION_MS
    initial_zoom: float = DEFAULT_INITIAL_ZOOM
    service_uuid: str = BLE_SERVICE_UUID
    characteristic_uuid: str = BLE_NOTIFY_CHARACTERISTIC_UUID
    serial_port: str = DEFAULT_SERIAL_PORT
    baud_rate: int = DEFAULT_BAUD_RATE
    follow_mode: bool = False
    api_host: str = "127.0.0.1"
    api_port: int = 8080
    log_level: str = "info"
    log_file: str = ""
    access_token: str = ""

    @classmethod
    def defaults(cls) -> Dict[str, Any]:
        return asdict(cls())

    @classmethod
    def from_dict(cls, values: Dict[str, Any]) -> "TrackingConfig":
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(values) - known)
        if unknown:
            logger.warning("Ignoring unknown config keys: %s", ", ".join(unknown))
        config = cls(**{k: v for k, v in values.items() if k in known})
        config.validate()
        return config

    @classmethod
    def load(
        cls,
        path: Optional[Path] = None,
        args: Optional[argparse.Namespace] = None,
        environ: Optional[Dict[str, str]] = None,
    ) -> "TrackingConfig":
        """Build a config from the file, then CLI overrides, then the env token.

        Args:
            path: ``config.txt`` location; missing files fall back to defaults.
            args: Parsed CLI namespace; attributes named like config keys and
                not None override file values.
            environ: Environment mapping (defaults to ``os.environ``).
        """
        values = ConfigLoader.load(path or DEFAULT_CONFIG_PATH, cls.defaults(), strict=True)

        if args is not None:
            for f in fields(cls):
                override = getattr(args, f.name, None)
                if override is not None:
                    values[f.name] = override

        env = os.environ if environ is None else environ
        token = env.get(ACCESS_TOKEN_ENV, "").strip()
        if token:
            values["access_token"] = token

        return cls.from_dict(values)

    def validate(self) -> None:
        """Raise ConfigurationError for values the engine cannot run with."""
        try:
            get_area(self.area)
        except KeyError as exc:
            raise ConfigurationError(str(exc.args[0])) from None
        if self.distance_threshold_m < 0:
            raise ConfigurationError("distance_threshold_m must not be negative")
        if self.scan_window_s <= 0:
            raise ConfigurationError("scan_window_s must be positive")
        if self.camera_animation_ms < 0:
            raise ConfigurationError("camera_animation_ms must not be negative")
        if not 0 < self.api_port < 65536:
            raise ConfigurationError(f"api_port out of range: {self.api_port}")

    @property
    def hiking_area(self) -> HikingArea:
        return get_area(self.area)

    def require_access_token(self) -> str:
        """Return the map access token.

        Raises:
            MissingCredentialError: if neither the environment nor the config
                file supplies one.
        """
        if not self.access_token:
            raise MissingCredentialError(
                f"Map access token missing; set {ACCESS_TOKEN_ENV} or access_token in config"
            )
        return self.access_token

    def session_kwargs(self) -> Dict[str, Any]:
        """Keyword arguments for :class:`TrackingSession` taken from this config."""
        return {
            "distance_threshold_m": self.distance_threshold_m,
            "scan_window_s": self.scan_window_s,
            "service_uuid": self.service_uuid,
            "characteristic_uuid": self.characteristic_uuid,
            "camera_animation_ms": self.camera_animation_ms,
            "follow_mode": self.follow_mode,
        }

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["access_token"] = "***" if self.access_token else ""
        return data


__all__ = ["DEFAULT_CONFIG_PATH", "TrackingConfig"]
