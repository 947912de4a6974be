"""Zonal statistics: area-weighted mean and centroid per AOI polygon.

For one feature and its candidate cells:

1. Measure the feature polygon's area.
2. Intersect the polygon with every candidate cell rectangle and measure
   the overlap in the same way; ``weight = overlap_area / feature_area``.
3. ``value = sum(v * w) / sum(w)``.  When every weight is zero (the
   polygon only touches its candidates) the unweighted mean of the
   evaluated cells is used instead.
4. The centroid of the feature polygon is reported alongside the value.

Area is measured in one of two modes, chosen once per raster from its CRS:
planar (Cartesian area in CRS units) for projected grids, geodesic (square
metres on the CRS ellipsoid, via ``pyproj.Geod``) for geographic grids.
Mixing the two within one round would make weights meaningless.

Failure handling:
- Unknown CRS mode  -> ``CRSModeError``, the raster is skipped.
- Feature area fails or is zero -> ``FeatureAreaError``, the feature is skipped.
- One cell intersection fails -> the cell is skipped and counted.
"""

from __future__ import annotations

import logging
import math
from typing import TYPE_CHECKING

import numpy as np
import shapely
from pyproj import CRS
from pyproj.exceptions import CRSError, GeodError
from shapely.errors import GEOSException
from shapely.geometry import Polygon

from haze.activities.aggregate_bands import average_bands
from haze.activities.cell_index import build_cell_index
from haze.activities.spatial_join import join_features
from haze.core.constants import DEFAULT_TREE_NODE_CAPACITY
from haze.core.exceptions import CellIntersectionError, CRSModeError, FeatureAreaError
from haze.models.zonal import AreaMode, ZonalMean

if TYPE_CHECKING:
    from collections.abc import Iterable

    from pyproj import Geod
    from shapely.geometry.base import BaseGeometry

    from haze.activities.cell_index import CellIndex
    from haze.models.feature import VectorFeature
    from haze.models.grid import PeriodSelector
    from haze.models.raster import RasterDataset
    from haze.models.zonal import JoinResult

logger = logging.getLogger("haze.activities.zonal_statistics")

# Library failures that mean "this geometry could not be measured".
_GEOMETRY_FAILURES = (GEOSException, GeodError, ValueError)


# ---------------------------------------------------------------------------
# Area mode
# ---------------------------------------------------------------------------


def area_mode_for_crs(crs: CRS | str | None, *, context: str = "") -> AreaMode:
    """Choose planar or geodesic area for a raster CRS.

    Args:
        crs: A ``pyproj.CRS`` or anything ``CRS.from_user_input`` accepts
            (EPSG code string, WKT, PROJ string).
        context: Raster identity for error messages.

    Raises:
        CRSModeError: If the CRS is missing or cannot be interpreted.
    """
    if crs is None:
        msg = "Raster has no CRS; cannot choose planar or geodesic area"
        raise CRSModeError(msg, context=context)
    try:
        parsed = CRS.from_user_input(crs)
    except CRSError as exc:
        msg = f"Cannot interpret raster CRS {crs!r}: {exc}"
        raise CRSModeError(msg, context=context) from exc
    return AreaMode.GEODESIC if parsed.is_geographic else AreaMode.PLANAR


class AreaCalculator:
    """Measures polygon areas in the mode chosen for one raster CRS.

    Attributes:
        mode: ``AreaMode.PLANAR`` or ``AreaMode.GEODESIC``.
        crs: The raster CRS.
    """

    def __init__(self, crs: CRS | str | None, *, context: str = "") -> None:
        self.mode = area_mode_for_crs(crs, context=context)
        self.crs = CRS.from_user_input(crs)
        self._geod: Geod | None = None
        if self.mode is AreaMode.GEODESIC:
            self._geod = self.crs.get_geod()
            if self._geod is None:
                msg = f"Geographic CRS {self.crs.name!r} has no ellipsoid for geodesic area"
                raise CRSModeError(msg, context=context)

    def area(self, geometry: BaseGeometry) -> float:
        """Area of a (multi)polygon or geometry collection.

        Non-polygonal parts (lines and points left by an intersection that
        only touches) contribute zero.  Returns square CRS units in planar
        mode, square metres in geodesic mode.
        """
        if geometry.is_empty:
            return 0.0
        if self._geod is None:
            return float(geometry.area)

        total = 0.0
        for part in shapely.get_parts(geometry):
            if isinstance(part, Polygon):
                total += _geodesic_polygon_area(self._geod, part)
            elif part.geom_type in {"MultiPolygon", "GeometryCollection"}:
                total += self.area(part)
        return total


def _geodesic_polygon_area(geod: Geod, polygon: Polygon) -> float:
    # polygon_area_perimeter is signed by ring orientation; holes are
    # subtracted by magnitude so input winding does not matter.
    area_m2, _perimeter = geod.polygon_area_perimeter(*polygon.exterior.xy)
    total = abs(area_m2)
    for ring in polygon.interiors:
        hole_m2, _ = geod.polygon_area_perimeter(*ring.xy)
        total -= abs(hole_m2)
    return total


# ---------------------------------------------------------------------------
# Per-feature mean
# ---------------------------------------------------------------------------


def feature_area(feature: VectorFeature, calculator: AreaCalculator) -> float:
    """Area of a feature polygon.

    Raises:
        FeatureAreaError: If the area cannot be computed, is not finite, or
            is zero.
    """
    try:
        area = calculator.area(feature.geometry)
    except _GEOMETRY_FAILURES as exc:
        msg = f"Cannot compute area of feature {feature.feature_id}: {exc}"
        raise FeatureAreaError(msg, context=feature.feature_id) from exc
    if not math.isfinite(area) or area <= 0.0:
        msg = f"Feature {feature.feature_id} has non-positive area {area!r}"
        raise FeatureAreaError(msg, context=feature.feature_id)
    return area


def overlap_area(
    feature: VectorFeature,
    cell: BaseGeometry,
    calculator: AreaCalculator,
    *,
    handle: int = -1,
) -> float:
    """Area of the exact intersection of a feature polygon and one cell.

    Raises:
        CellIntersectionError: If the intersection or its area fails.
    """
    try:
        overlap = shapely.intersection(feature.geometry, cell)
        return calculator.area(overlap)
    except _GEOMETRY_FAILURES as exc:
        msg = f"Intersection of feature {feature.feature_id} with cell {handle} failed: {exc}"
        raise CellIntersectionError(msg, context=feature.feature_id) from exc


def compute_zonal_mean(
    index: CellIndex,
    join: JoinResult,
    calculator: AreaCalculator,
) -> ZonalMean | None:
    """Area-weighted mean of the candidate cells of one feature.

    Returns:
        The ``ZonalMean``, or ``None`` when the feature has no candidates or
        every candidate intersection failed.

    Raises:
        FeatureAreaError: If the feature polygon's area fails or is zero.
    """
    feature = join.feature
    if join.is_empty:
        return None

    total_area = feature_area(feature, calculator)
    cells = index.geometries_of(join.cells)
    values = index.values_of(join.cells)

    weighted_sum = 0.0
    total_weight = 0.0
    evaluated: list[float] = []
    skipped = 0

    for handle, cell, value in zip(join.cells, cells, values, strict=True):
        try:
            area = overlap_area(feature, cell, calculator, handle=handle)
        except CellIntersectionError as exc:
            skipped += 1
            logger.warning(
                "Cell skipped | feature=%s | cell=%d | error=%s",
                feature.feature_id,
                handle,
                exc.message,
            )
            continue
        weight = area / total_area
        weighted_sum += float(value) * weight
        total_weight += weight
        evaluated.append(float(value))

    if not evaluated:
        logger.warning(
            "No cell could be evaluated | feature=%s | candidates=%d",
            feature.feature_id,
            join.count,
        )
        return None

    if total_weight > 0.0:
        value = weighted_sum / total_weight
        weighted = True
    else:
        value = float(np.mean(evaluated))
        weighted = False
        logger.debug(
            "Zero total weight, using unweighted mean | feature=%s | cells=%d",
            feature.feature_id,
            len(evaluated),
        )

    centroid = feature.geometry.centroid
    return ZonalMean(
        feature_id=feature.feature_id,
        x=float(centroid.x),
        y=float(centroid.y),
        value=float(value),
        cell_count=len(evaluated),
        skipped_cells=skipped,
        total_weight=total_weight,
        weighted=weighted,
    )


# ---------------------------------------------------------------------------
# One round: aggregate, index, join, calculate
# ---------------------------------------------------------------------------


def compute_zonal_statistics(
    raster: RasterDataset,
    features: Iterable[VectorFeature],
    selector: PeriodSelector | None = None,
    *,
    node_capacity: int = DEFAULT_TREE_NODE_CAPACITY,
) -> list[ZonalMean]:
    """Compute the zonal mean of every feature for one band period of a raster.

    Features without candidate cells, and features whose area fails, emit
    nothing.  Any other error propagates and no partial result is returned.

    Raises:
        CRSModeError: If the raster CRS does not determine an area mode.
        BandRangeError: If ``selector`` lies outside the raster's bands.
        GeoTransformError: If the raster geotransform is singular.
        IndexBuildError / CubeAllocationError: On allocation failure.
    """
    context = raster.name
    calculator = AreaCalculator(raster.crs, context=context)
    grid = average_bands(raster.cube, selector, context=context)

    means: list[ZonalMean] = []
    with build_cell_index(
        grid, raster.transform, node_capacity=node_capacity, context=context
    ) as index:
        for join in join_features(index, features):
            if join.is_empty:
                logger.debug("No candidate cells | feature=%s", join.feature.feature_id)
                continue
            try:
                mean = compute_zonal_mean(index, join, calculator)
            except FeatureAreaError as exc:
                logger.warning(
                    "Feature skipped | raster=%s | feature=%s | error=%s",
                    context,
                    join.feature.feature_id,
                    exc.message,
                )
                continue
            if mean is not None:
                means.append(mean)

    logger.info(
        "Zonal statistics complete | raster=%s | mode=%s | means=%d",
        context,
        calculator.mode.value,
        len(means),
    )
    return means
