"""Tests for run configuration.

Covers:
- Default values
- Loading from ``HAZE_*`` environment variables
- Hour/day selection parsing
- Fail-fast validation
"""

from __future__ import annotations

import dataclasses
import os
from unittest.mock import patch

import pytest

from haze.core.config import ConfigValidationError, HazeConfig, validate_config


class TestHazeConfigDefaults:
    """Verify default configuration values."""

    def test_default_hours_cover_whole_day(self) -> None:
        cfg = HazeConfig()
        assert cfg.hours == tuple(range(24))
        assert cfg.hours_per_day == 24

    def test_default_days_cover_longest_month(self) -> None:
        assert HazeConfig().days == tuple(range(1, 32))

    def test_default_output_naming(self) -> None:
        cfg = HazeConfig()
        assert cfg.dataset_tag == "ERA"
        assert cfg.output_prefix == "WVP_"

    def test_default_tree_node_capacity(self) -> None:
        assert HazeConfig().tree_node_capacity == 100

    def test_units_not_converted_by_default(self) -> None:
        assert HazeConfig().convert_units is False

    def test_frozen(self) -> None:
        cfg = HazeConfig()
        with pytest.raises(dataclasses.FrozenInstanceError):
            cfg.dataset_tag = "X"  # type: ignore[misc]


class TestHazeConfigFromEnv:
    """Verify loading from environment variables."""

    def test_loads_from_environment(self) -> None:
        env = {
            "HAZE_INPUT_DIR": "/data/era5",
            "HAZE_RASTER_PATTERN": "*.tif",
            "HAZE_AOI_PATH": "/data/aoi.gpkg",
            "HAZE_AOI_LAYER": "tiles",
            "HAZE_OUTPUT_DIR": "/data/wvp",
            "HAZE_HOURS": "0,6,12,18",
            "HAZE_DAYS": "1:15",
            "HAZE_DATASET_TAG": "MOD",
            "HAZE_OUTPUT_PREFIX": "TCWV_",
            "HAZE_TREE_NODE_CAPACITY": "16",
            "HAZE_CONVERT_UNITS": "yes",
        }
        with patch.dict(os.environ, env, clear=True):
            cfg = HazeConfig.from_env()

        assert cfg.input_dir == "/data/era5"
        assert cfg.raster_pattern == "*.tif"
        assert cfg.aoi_path == "/data/aoi.gpkg"
        assert cfg.aoi_layer == "tiles"
        assert cfg.output_dir == "/data/wvp"
        assert cfg.hours == (0, 6, 12, 18)
        assert cfg.hours_per_day == 4
        assert cfg.days == tuple(range(1, 16))
        assert cfg.dataset_tag == "MOD"
        assert cfg.output_prefix == "TCWV_"
        assert cfg.tree_node_capacity == 16
        assert cfg.convert_units is True

    def test_defaults_when_env_missing(self) -> None:
        with patch.dict(os.environ, {"HAZE_AOI_PATH": "aoi.gpkg"}, clear=True):
            cfg = HazeConfig.from_env()
        assert cfg == HazeConfig(aoi_path="aoi.gpkg")

    def test_single_hour(self) -> None:
        env = {"HAZE_AOI_PATH": "aoi.gpkg", "HAZE_HOURS": "12"}
        with patch.dict(os.environ, env, clear=True):
            assert HazeConfig.from_env().hours == (12,)

    @pytest.mark.parametrize("flag", ["", "0", "false", "no", "off"])
    def test_convert_units_false_values(self, flag: str) -> None:
        env = {"HAZE_AOI_PATH": "aoi.gpkg", "HAZE_CONVERT_UNITS": flag}
        with patch.dict(os.environ, env, clear=True):
            assert HazeConfig.from_env().convert_units is False


class TestConfigValidation:
    """Fail-fast validation of bad values."""

    def test_missing_aoi_path(self) -> None:
        with patch.dict(os.environ, {}, clear=True), pytest.raises(ConfigValidationError) as exc_info:
            HazeConfig.from_env()
        assert exc_info.value.key == "HAZE_AOI_PATH"
        assert exc_info.value.fatal is True

    @pytest.mark.parametrize("hours", ["24", "5:2", "a:b", "-1", ""])
    def test_bad_hours(self, hours: str) -> None:
        env = {"HAZE_AOI_PATH": "aoi.gpkg", "HAZE_HOURS": hours}
        with patch.dict(os.environ, env, clear=True), pytest.raises(ConfigValidationError) as exc_info:
            HazeConfig.from_env()
        assert exc_info.value.key == "HAZE_HOURS"

    @pytest.mark.parametrize("days", ["0", "32", "1:40"])
    def test_bad_days(self, days: str) -> None:
        env = {"HAZE_AOI_PATH": "aoi.gpkg", "HAZE_DAYS": days}
        with patch.dict(os.environ, env, clear=True), pytest.raises(ConfigValidationError) as exc_info:
            HazeConfig.from_env()
        assert exc_info.value.key == "HAZE_DAYS"

    def test_non_integer_node_capacity(self) -> None:
        env = {"HAZE_AOI_PATH": "aoi.gpkg", "HAZE_TREE_NODE_CAPACITY": "many"}
        with patch.dict(os.environ, env, clear=True), pytest.raises(ConfigValidationError) as exc_info:
            HazeConfig.from_env()
        assert exc_info.value.key == "HAZE_TREE_NODE_CAPACITY"

    def test_node_capacity_too_small(self) -> None:
        with pytest.raises(ConfigValidationError, match="HAZE_TREE_NODE_CAPACITY"):
            validate_config(HazeConfig(aoi_path="aoi.gpkg", tree_node_capacity=1))

    def test_repeated_hours(self) -> None:
        with pytest.raises(ConfigValidationError, match="repeat"):
            validate_config(HazeConfig(aoi_path="aoi.gpkg", hours=(0, 1, 1)))

    def test_empty_days(self) -> None:
        with pytest.raises(ConfigValidationError, match="HAZE_DAYS"):
            validate_config(HazeConfig(aoi_path="aoi.gpkg", days=()))

    def test_tag_with_whitespace(self) -> None:
        with pytest.raises(ConfigValidationError, match="HAZE_DATASET_TAG"):
            validate_config(HazeConfig(aoi_path="aoi.gpkg", dataset_tag="ERA 5"))

    def test_non_ascii_tag(self) -> None:
        with pytest.raises(ConfigValidationError, match="ASCII"):
            validate_config(HazeConfig(aoi_path="aoi.gpkg", dataset_tag="\u00c9RA"))

    def test_non_ascii_tag_from_env(self) -> None:
        env = {"HAZE_AOI_PATH": "aoi.gpkg", "HAZE_DATASET_TAG": "\u00c9RA"}
        with patch.dict(os.environ, env), pytest.raises(ConfigValidationError) as exc_info:
            HazeConfig.from_env()
        assert exc_info.value.key == "HAZE_DATASET_TAG"

    def test_empty_pattern(self) -> None:
        with pytest.raises(ConfigValidationError, match="HAZE_RASTER_PATTERN"):
            validate_config(HazeConfig(aoi_path="aoi.gpkg", raster_pattern=""))

    def test_valid_config_passes(self) -> None:
        validate_config(HazeConfig(aoi_path="aoi.gpkg"))

    def test_error_payload(self) -> None:
        err = ConfigValidationError("HAZE_DAYS", "0", "out of range")
        payload = err.to_error_dict()
        assert payload["category"] == "configuration"
        assert payload["code"] == "CONFIG_VALIDATION_FAILED"
        assert payload["stage"] == "config"
        assert payload["fatal"] is True
        assert "HAZE_DAYS" in payload["message"]
