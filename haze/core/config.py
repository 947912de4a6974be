"""Run configuration loaded from environment variables.

All configuration values have sensible defaults except the AOI path.

Fail-fast validation:
    ``from_env()`` raises ``ConfigValidationError`` if any value is out of
    its valid range.  This catches bad configuration before the first
    raster is opened.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from haze.core.constants import (
    DEFAULT_DATASET_TAG,
    DEFAULT_OUTPUT_PREFIX,
    DEFAULT_TREE_NODE_CAPACITY,
    MAX_DAY,
    MAX_HOUR,
    MIN_DAY,
    MIN_HOUR,
)
from haze.core.exceptions import ConfigurationError
from haze.utils.ranges import IntegerSelectionError, parse_integers

_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})


class ConfigValidationError(ConfigurationError):
    """Raised when configuration values are out of valid range.

    Attributes:
        key: The configuration key that failed validation.
        value: The invalid value.
        message: Human-readable description of the valid range.
    """

    default_stage = "config"
    default_code = "CONFIG_VALIDATION_FAILED"

    def __init__(self, key: str, value: object, message: str) -> None:
        self.key = key
        self.value = value
        super().__init__(f"Invalid configuration {key}={value!r}: {message}", fatal=True)


@dataclass(frozen=True, slots=True)
class HazeConfig:
    """Immutable run configuration.

    Loaded once at startup and threaded through the driving loop.

    Attributes:
        input_dir: Directory holding the raster stacks.
        raster_pattern: Glob selecting raster files inside ``input_dir``.
        aoi_path: OGR-readable file with the AOI polygons.
        aoi_layer: Layer name inside ``aoi_path`` (empty selects the first layer).
        output_dir: Directory receiving one text file per processed day.
        hours: Hours of day contained in every daily band block (zero-based).
        days: Days of month to process for monthly stacks.
        dataset_tag: Source tag appended to every output line.
        output_prefix: File-name prefix for per-day output files.
        tree_node_capacity: STR tree fan-out.
        convert_units: Convert kg/m^2 to g/cm^2 before writing.
    """

    input_dir: str = "."
    raster_pattern: str = "*.grib"
    aoi_path: str = ""
    aoi_layer: str = ""
    output_dir: str = "."
    hours: tuple[int, ...] = tuple(range(MIN_HOUR, MAX_HOUR + 1))
    days: tuple[int, ...] = tuple(range(MIN_DAY, MAX_DAY + 1))
    dataset_tag: str = DEFAULT_DATASET_TAG
    output_prefix: str = DEFAULT_OUTPUT_PREFIX
    tree_node_capacity: int = DEFAULT_TREE_NODE_CAPACITY
    convert_units: bool = False

    @property
    def hours_per_day(self) -> int:
        """Number of hourly bands that make up one daily period."""
        return len(self.hours)

    @classmethod
    def from_env(cls) -> HazeConfig:
        """Load and validate configuration from environment variables.

        Raises:
            ConfigValidationError: If a value is out of range, a selection
                cannot be parsed, or a required string value is empty.
        """
        hours_raw = os.getenv("HAZE_HOURS", f"{MIN_HOUR}:{MAX_HOUR}")
        days_raw = os.getenv("HAZE_DAYS", f"{MIN_DAY}:{MAX_DAY}")
        capacity_raw = os.getenv("HAZE_TREE_NODE_CAPACITY", str(DEFAULT_TREE_NODE_CAPACITY))

        try:
            hours = parse_integers(hours_raw, minimum=MIN_HOUR, maximum=MAX_HOUR)
        except IntegerSelectionError as exc:
            raise ConfigValidationError("HAZE_HOURS", hours_raw, str(exc)) from exc

        try:
            days = parse_integers(days_raw, minimum=MIN_DAY, maximum=MAX_DAY)
        except IntegerSelectionError as exc:
            raise ConfigValidationError("HAZE_DAYS", days_raw, str(exc)) from exc

        try:
            tree_node_capacity = int(capacity_raw)
        except ValueError as exc:
            raise ConfigValidationError(
                "HAZE_TREE_NODE_CAPACITY", capacity_raw, "must be an integer"
            ) from exc

        config = cls(
            input_dir=os.getenv("HAZE_INPUT_DIR", "."),
            raster_pattern=os.getenv("HAZE_RASTER_PATTERN", "*.grib"),
            aoi_path=os.getenv("HAZE_AOI_PATH", ""),
            aoi_layer=os.getenv("HAZE_AOI_LAYER", ""),
            output_dir=os.getenv("HAZE_OUTPUT_DIR", "."),
            hours=hours,
            days=days,
            dataset_tag=os.getenv("HAZE_DATASET_TAG", DEFAULT_DATASET_TAG),
            output_prefix=os.getenv("HAZE_OUTPUT_PREFIX", DEFAULT_OUTPUT_PREFIX),
            tree_node_capacity=tree_node_capacity,
            convert_units=os.getenv("HAZE_CONVERT_UNITS", "").strip().lower() in _TRUE_VALUES,
        )
        validate_config(config)
        return config


def validate_config(config: HazeConfig) -> None:
    """Validate configuration ranges.  Raises ``ConfigValidationError``."""
    if not config.aoi_path:
        raise ConfigValidationError("HAZE_AOI_PATH", config.aoi_path, "must not be empty")

    if not config.raster_pattern:
        raise ConfigValidationError(
            "HAZE_RASTER_PATTERN", config.raster_pattern, "must not be empty"
        )

    if config.tree_node_capacity < 2:
        raise ConfigValidationError(
            "HAZE_TREE_NODE_CAPACITY",
            config.tree_node_capacity,
            "must be >= 2 (entries per node)",
        )

    if not config.hours:
        raise ConfigValidationError("HAZE_HOURS", config.hours, "must select at least one hour")

    if len(set(config.hours)) != len(config.hours):
        raise ConfigValidationError("HAZE_HOURS", config.hours, "must not repeat an hour")

    if not config.days:
        raise ConfigValidationError("HAZE_DAYS", config.days, "must select at least one day")

    tag = config.dataset_tag
    if not tag or not tag.isascii() or any(ch.isspace() for ch in tag):
        raise ConfigValidationError(
            "HAZE_DATASET_TAG",
            tag,
            "must be a non-empty ASCII token without whitespace",
        )
