"""Unit tests for the hikemap-track command-line runner."""

from unittest.mock import MagicMock, patch

import pytest

from hikemap.tracking import main_tracking
from hikemap.tracking.main_tracking import (
    EXIT_CONFIG_ERROR,
    EXIT_OK,
    match_peripheral,
    parse_args,
)
from hikemap.tracking.tracking_core.transports import PeripheralInfo

PERIPHERALS = [
    PeripheralInfo(id="AA:BB:CC:DD:EE:01", name="ESP32-GPS", rssi=-70),
    PeripheralInfo(id="AA:BB:CC:DD:EE:02", name="Trail Beacon", rssi=-50),
    PeripheralInfo(id="AA:BB:CC:DD:EE:03", name=None, rssi=None),
]


class TestParseArgs:

    def test_defaults(self):
        args = parse_args([])
        assert args.area is None
        assert args.follow_mode is None
        assert args.scan is False
        assert args.duration is None

    def test_overrides(self):
        args = parse_args([
            "--area", "sinharaja",
            "--distance-threshold-m", "15",
            "--scan-window-s", "2.5",
            "--follow",
            "--scan", "--device", "ESP32-GPS",
            "--api", "--api-port", "9000",
        ])
        assert args.area == "sinharaja"
        assert args.distance_threshold_m == 15.0
        assert args.scan_window_s == 2.5
        assert args.follow_mode is True
        assert args.device == "ESP32-GPS"
        assert args.api is True
        assert args.api_port == 9000

    @pytest.mark.parametrize("value", ["0", "-3", "soon"])
    def test_rejects_non_positive_durations(self, value):
        with pytest.raises(SystemExit):
            parse_args(["--duration", value])


class TestMatchPeripheral:

    def test_strongest_signal_without_filter(self):
        assert match_peripheral(PERIPHERALS, None).id == "AA:BB:CC:DD:EE:02"

    def test_id_match(self):
        assert match_peripheral(PERIPHERALS, "aa:bb:cc:dd:ee:01").name == "ESP32-GPS"

    def test_name_match_is_case_insensitive(self):
        assert match_peripheral(PERIPHERALS, " trail beacon ").id == "AA:BB:CC:DD:EE:02"

    def test_no_match(self):
        assert match_peripheral(PERIPHERALS, "Other") is None
        assert match_peripheral([], None) is None


class TestMainAsync:

    @pytest.fixture(autouse=True)
    def quiet_runner(self):
        with patch.object(main_tracking, "configure_logging"), \
                patch.object(main_tracking, "install_signal_handlers"):
            yield

    @pytest.mark.asyncio
    async def test_missing_token_is_config_error(self, tmp_path, monkeypatch):
        monkeypatch.delenv("MAPBOX_ACCESS_TOKEN", raising=False)
        args = parse_args(["--config", str(tmp_path / "config.txt"), "--no-ble", "--no-location"])

        assert await main_tracking.main_async(args) == EXIT_CONFIG_ERROR

    @pytest.mark.asyncio
    async def test_unknown_area_is_config_error(self, tmp_path, monkeypatch):
        monkeypatch.setenv("MAPBOX_ACCESS_TOKEN", "pk.test")
        args = parse_args(["--config", str(tmp_path / "config.txt"), "--area", "atlantis"])

        assert await main_tracking.main_async(args) == EXIT_CONFIG_ERROR

    @pytest.mark.asyncio
    async def test_runs_for_duration(self, tmp_path, monkeypatch, capsys):
        monkeypatch.setenv("MAPBOX_ACCESS_TOKEN", "pk.test")
        args = parse_args([
            "--config", str(tmp_path / "config.txt"),
            "--no-ble", "--no-location",
            "--duration", "0.05",
        ])

        assert await main_tracking.main_async(args) == EXIT_OK
        assert "Position source: none -> phone_gps" in capsys.readouterr().out

    def test_run_returns_exit_code(self):
        with patch.object(main_tracking, "main_async", MagicMock(return_value="coro")), \
                patch.object(main_tracking.asyncio, "run", return_value=EXIT_CONFIG_ERROR) as run:
            assert main_tracking.run(["--no-ble"]) == EXIT_CONFIG_ERROR
            run.assert_called_once_with("coro")

    def test_run_interrupted(self):
        with patch.object(main_tracking, "main_async", MagicMock(return_value="coro")), \
                patch.object(main_tracking.asyncio, "run", side_effect=KeyboardInterrupt):
            assert main_tracking.run([]) == main_tracking.EXIT_INTERRUPTED
