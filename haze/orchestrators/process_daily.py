"""Driving loop: per-day zonal means for every raster stack of a run.

A raster's calendar identity comes from its file name:

- ``2020-01-15.grib`` is a daily stack; all of its bands form one period.
- ``2020-01.grib`` is a monthly stack of ``hours_per_day`` bands per day;
  day ``d`` covers bands ``[(d - 1) * hours_per_day, d * hours_per_day)``.
  Processing stops normally at the last day of that calendar month.

Every period rebuilds and discards its own averaged grid and cell index.
AOI polygons are loaded once per distinct raster CRS and reused.

Failure policy:
- Non-fatal ``HazeError`` (bad identity, band range, geotransform, CRS
  mode, unreadable raster) -> logged, the raster is skipped, the run continues.
- Fatal ``HazeError`` (allocation failure, unwritable output, invalid run
  configuration, unreadable AOI layer) -> logged and re-raised.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import TYPE_CHECKING, TypedDict

from haze.activities.load_vectors import crs_of_vector, load_polygons
from haze.activities.read_raster import read_raster
from haze.activities.write_results import convert_units, output_path_for, write_weighted_means
from haze.activities.zonal_statistics import compute_zonal_statistics
from haze.core.config import validate_config
from haze.core.environment import HazeEnvironment
from haze.core.exceptions import HazeError, RasterIdentityError
from haze.models.grid import PeriodSelector

if TYPE_CHECKING:
    from collections.abc import Iterator

    from pyproj import CRS

    from haze.core.config import HazeConfig
    from haze.models.feature import VectorFeature
    from haze.models.raster import RasterIdentity
    from haze.models.zonal import ZonalMean

logger = logging.getLogger("haze.orchestrators.process_daily")

#: Writes the means of one day and returns the number of lines written.
ResultWriter = Callable[[Sequence["ZonalMean"], str], int]


# ---------------------------------------------------------------------------
# Result contracts
# ---------------------------------------------------------------------------


class RasterResult(TypedDict):
    """Outcome of one raster stack."""

    raster: str
    status: str  # "processed" | "failed"
    days_written: int
    means_written: int
    error: dict[str, object] | None


class RunSummary(TypedDict):
    """Outcome of a whole run."""

    rasters_found: int
    rasters_processed: int
    rasters_failed: int
    days_written: int
    means_written: int
    results: list[RasterResult]


# ---------------------------------------------------------------------------
# AOI polygons per raster CRS
# ---------------------------------------------------------------------------


class FeatureCatalog:
    """Loads the AOI layer lazily, once per distinct target CRS."""

    def __init__(self, path: str | Path, layer: str, env: HazeEnvironment) -> None:
        self.path = Path(path)
        self.layer = layer
        self._env = env
        self._cache: dict[str, list[VectorFeature]] = {}

    def for_crs(self, crs: CRS | None) -> list[VectorFeature]:
        key = crs.to_wkt() if crs is not None else ""
        if key not in self._cache:
            self._cache[key] = load_polygons(self.path, self.layer, crs, self._env)
        return self._cache[key]


def file_writer(config: HazeConfig) -> ResultWriter:
    """Writer that stores each day as ``{output_prefix}{YYYY-MM-DD}.txt``."""

    def write(means: Sequence[ZonalMean], date_label: str) -> int:
        if config.convert_units:
            means = convert_units(means)
        path = output_path_for(config.output_dir, date_label, config.output_prefix)
        return write_weighted_means(means, path, tag=config.dataset_tag)

    return write


def daily_periods(
    identity: RasterIdentity,
    days: Sequence[int],
    hours_per_day: int,
) -> Iterator[tuple[str, PeriodSelector]]:
    """Yield ``(date_label, selector)`` for every day to process in a stack."""
    if identity.is_daily:
        yield identity.label, PeriodSelector()
        return

    for day in sorted(set(days)):
        if day > identity.days_in_month:
            break
        yield identity.date_label(day), PeriodSelector.for_day(day, hours_per_day)


# ---------------------------------------------------------------------------
# Per raster
# ---------------------------------------------------------------------------


def process_raster(
    path: str | Path,
    features: FeatureCatalog | Sequence[VectorFeature],
    config: HazeConfig,
    writer: ResultWriter,
    *,
    env: HazeEnvironment,
) -> RasterResult:
    """Process every day of one raster stack.

    Args:
        path: Raster file; its name must contain ``YYYY-MM`` or ``YYYY-MM-DD``.
        features: AOI polygons already in the raster CRS, or a catalog that
            loads them in the raster CRS.
        config: Run configuration.
        writer: Receives the means of each day.
        env: Entered GDAL environment.

    Raises:
        HazeError: Any stage failure; ``fatal`` tells the caller whether the
            run can continue with the next raster.
    """
    path = Path(path)
    raster = read_raster(path, env)
    if raster.identity is None:
        msg = f"Raster name {path.name!r} carries no YYYY-MM or YYYY-MM-DD date"
        raise RasterIdentityError(msg, context=path.name)
    identity = raster.identity

    if isinstance(features, FeatureCatalog):
        aoi = features.for_crs(raster.crs)
    else:
        aoi = list(features)

    days_written = 0
    means_written = 0
    for date_label, selector in daily_periods(identity, config.days, config.hours_per_day):
        means = compute_zonal_statistics(
            raster,
            aoi,
            selector,
            node_capacity=config.tree_node_capacity,
        )
        means_written += writer(means, date_label)
        days_written += 1
        logger.info(
            "Day processed | raster=%s | date=%s | bands=[%d, %d) | means=%d",
            path.name,
            date_label,
            selector.offset,
            selector.offset + (selector.size or raster.bands),
            len(means),
        )

    return RasterResult(
        raster=path.name,
        status="processed",
        days_written=days_written,
        means_written=means_written,
        error=None,
    )


# ---------------------------------------------------------------------------
# Whole run
# ---------------------------------------------------------------------------


def find_rasters(config: HazeConfig) -> list[Path]:
    """Raster files of the input directory, sorted by name."""
    return sorted(p for p in Path(config.input_dir).glob(config.raster_pattern) if p.is_file())


def process_daily(
    config: HazeConfig,
    *,
    env: HazeEnvironment | None = None,
    writer: ResultWriter | None = None,
) -> RunSummary:
    """Run the pipeline over every raster stack in ``config.input_dir``.

    Args:
        config: Validated run configuration.
        env: Entered GDAL environment; a fresh one is used when omitted.
        writer: Output sink; defaults to per-day text files in
            ``config.output_dir``.

    Raises:
        ConfigValidationError: If ``config`` is invalid.
        HazeError: The first fatal failure (``exc.fatal`` is True).
    """
    validate_config(config)
    if env is None:
        with HazeEnvironment() as scoped_env:
            return process_daily(config, env=scoped_env, writer=writer)

    rasters = find_rasters(config)
    if not rasters:
        logger.warning(
            "No rasters found | input_dir=%s | pattern=%s",
            config.input_dir,
            config.raster_pattern,
        )

    # Fail before the first raster when the AOI layer is unreadable.
    try:
        crs_of_vector(config.aoi_path, config.aoi_layer, env)
    except HazeError as exc:
        exc.fatal = True
        logger.error("AOI layer unreadable | %s", exc.to_error_dict())
        raise

    catalog = FeatureCatalog(config.aoi_path, config.aoi_layer, env)
    sink = writer or file_writer(config)
    results: list[RasterResult] = []

    for path in rasters:
        try:
            results.append(process_raster(path, catalog, config, sink, env=env))
        except HazeError as exc:
            if exc.fatal:
                logger.error("Run halted | raster=%s | %s", path.name, exc.to_error_dict())
                raise
            logger.warning("Raster skipped | raster=%s | %s", path.name, exc.to_error_dict())
            results.append(
                RasterResult(
                    raster=path.name,
                    status="failed",
                    days_written=0,
                    means_written=0,
                    error=exc.to_error_dict(),
                )
            )

    summary = RunSummary(
        rasters_found=len(rasters),
        rasters_processed=sum(1 for r in results if r["status"] == "processed"),
        rasters_failed=sum(1 for r in results if r["status"] == "failed"),
        days_written=sum(r["days_written"] for r in results),
        means_written=sum(r["means_written"] for r in results),
        results=results,
    )
    logger.info(
        "Run complete | rasters=%d | processed=%d | failed=%d | days=%d | means=%d",
        summary["rasters_found"],
        summary["rasters_processed"],
        summary["rasters_failed"],
        summary["days_written"],
        summary["means_written"],
    )
    return summary
