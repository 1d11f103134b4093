"""Unit tests for ConfigLoader."""

import pytest

from hikemap.core.config_loader import ConfigLoader


class TestConfigLoaderParsing:
    """Test untyped value parsing."""

    def test_parse_value_bool(self):
        for val in ["true", "Yes", "ON", "1"]:
            assert ConfigLoader._parse_value(val) is True
        for val in ["false", "No", "OFF", "0"]:
            assert ConfigLoader._parse_value(val) is False

    def test_parse_value_numbers(self):
        assert ConfigLoader._parse_value("42") == 42
        assert ConfigLoader._parse_value("-10") == -10
        assert ConfigLoader._parse_value("3.14") == pytest.approx(3.14)

    def test_parse_value_string(self):
        assert ConfigLoader._parse_value("/dev/serial0") == "/dev/serial0"


class TestConfigLoaderTypedParsing:
    """Test parsing against a default's type."""

    def test_bool(self):
        assert ConfigLoader._parse_value_with_type("yes", bool, False) is True
        assert ConfigLoader._parse_value_with_type("off", bool, True) is False

    def test_number(self):
        assert ConfigLoader._parse_value_with_type("25", float, 10.0) == 25.0
        assert ConfigLoader._parse_value_with_type("115200", int, 9600) == 115200

    def test_invalid_number_keeps_default(self):
        assert ConfigLoader._parse_value_with_type("far", float, 10.0) == 10.0
        assert ConfigLoader._parse_value_with_type("1.5", int, 9600) == 9600

    def test_string(self):
        assert ConfigLoader._parse_value_with_type("kandy", str, "colombo") == "kandy"


class TestConfigLoaderLoad:
    """Test ConfigLoader.load."""

    def test_missing_file_returns_defaults(self, tmp_path):
        defaults = {"area": "colombo", "baud_rate": 9600}
        assert ConfigLoader.load(tmp_path / "missing.txt", defaults) == defaults
        assert ConfigLoader.load(tmp_path / "missing.txt") == {}

    def test_comments_and_blank_lines(self, tmp_path):
        config_path = tmp_path / "config.txt"
        config_path.write_text(
            "# hikemap settings\n"
            "\n"
            "area = sinharaja   # rainforest\n"
            "not a setting\n"
            "distance_threshold_m=15\n"
        )

        result = ConfigLoader.load(config_path, {"area": "colombo", "distance_threshold_m": 10.0})

        assert result == {"area": "sinharaja", "distance_threshold_m": 15.0}
        assert isinstance(result["distance_threshold_m"], float)

    def test_strict_ignores_unknown_keys(self, tmp_path):
        config_path = tmp_path / "config.txt"
        config_path.write_text("area = sinharaja\ncolour = red\n")

        result = ConfigLoader.load(config_path, {"area": "colombo"}, strict=True)

        assert result == {"area": "sinharaja"}

    def test_non_strict_keeps_unknown_keys(self, tmp_path):
        config_path = tmp_path / "config.txt"
        config_path.write_text("colour = red\nretries = 3\n")

        result = ConfigLoader.load(config_path, {"area": "colombo"})

        assert result == {"area": "colombo", "colour": "red", "retries": 3}

    @pytest.mark.asyncio
    async def test_load_async(self, tmp_path):
        config_path = tmp_path / "config.txt"
        config_path.write_text("follow_mode = yes\n")

        result = await ConfigLoader.load_async(config_path, {"follow_mode": False})

        assert result == {"follow_mode": True}
