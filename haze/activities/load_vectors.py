"""Vector geometry loader: AOI polygons from any OGR-readable layer.

Reads one layer with fiona, keeps its Polygon features, and reprojects them
into the raster's CRS when the layer CRS differs.  Features that are not
polygons, are empty, or fail to reproject are logged and skipped; only a
layer that cannot be opened at all is an error.

The loaded collection is reused for every raster and period of a run, so
callers typically load once per distinct raster CRS.
"""

from __future__ import annotations

import logging
import math
from pathlib import Path
from typing import TYPE_CHECKING, Any

from pyproj import CRS, Transformer
from pyproj.exceptions import CRSError, ProjError
import shapely
from shapely.geometry import Polygon, shape

from haze.core.exceptions import VectorLoadError
from haze.models.feature import VectorFeature

if TYPE_CHECKING:
    from haze.core.environment import HazeEnvironment

logger = logging.getLogger("haze.activities.load_vectors")

WGS84 = CRS.from_epsg(4326)


def load_polygons(
    path: str | Path,
    layer: str | int | None,
    target_crs: CRS | None,
    env: HazeEnvironment,
) -> list[VectorFeature]:
    """Load the Polygon features of one layer in the target CRS.

    Args:
        path: OGR-readable dataset (GeoPackage, Shapefile, GeoJSON, ...).
        layer: Layer name or index; empty or ``None`` selects the first layer.
        target_crs: CRS of the raster the polygons will be joined with.
            ``None`` disables reprojection.
        env: Entered GDAL environment.

    Returns:
        Accepted features in layer order.

    Raises:
        VectorLoadError: If the layer cannot be opened or its CRS cannot be
            interpreted.
    """
    import fiona
    from fiona.errors import FionaError

    env.require_active("load_vectors")
    path = Path(path)
    features: list[VectorFeature] = []
    skipped = 0

    try:
        with fiona.open(str(path), layer=layer or None) as collection:
            source_crs = _layer_crs(collection, path)
            transformer = _transformer_for(source_crs, target_crs, path)

            for idx, record in enumerate(collection):
                feature_id = str(record.id if record.id is not None else idx)
                feature = _to_feature(record, feature_id, transformer, path.name)
                if feature is None:
                    skipped += 1
                    continue
                features.append(feature)
    except (FionaError, OSError) as exc:
        msg = f"Cannot read AOI layer {layer or 0!r} of {path}: {exc}"
        raise VectorLoadError(msg, context=path.name) from exc

    logger.info(
        "AOI polygons loaded | source=%s | layer=%s | polygons=%d | skipped=%d | reprojected=%s",
        path.name,
        layer or 0,
        len(features),
        skipped,
        transformer is not None,
    )
    return features


def crs_of_vector(
    path: str | Path,
    layer: str | int | None,
    env: HazeEnvironment,
) -> CRS | None:
    """Return the CRS of one vector layer (``None`` when it declares none).

    Raises:
        VectorLoadError: If the layer cannot be opened.
    """
    import fiona
    from fiona.errors import FionaError

    env.require_active("load_vectors")
    path = Path(path)
    try:
        with fiona.open(str(path), layer=layer or None) as collection:
            return _layer_crs(collection, path)
    except (FionaError, OSError) as exc:
        msg = f"Cannot read CRS of AOI layer {layer or 0!r} of {path}: {exc}"
        raise VectorLoadError(msg, context=path.name) from exc


def aoi_bounding_box(
    path: str | Path,
    layer: str | int | None,
    env: HazeEnvironment,
) -> tuple[float, float, float, float]:
    """Extent of a vector layer as ``(min_lon, min_lat, max_lon, max_lat)`` in WGS 84.

    Used to size a data request around the AOIs.  A layer without a CRS is
    assumed to already be in WGS 84.

    Raises:
        VectorLoadError: If the layer cannot be opened, is empty, or its
            extent cannot be transformed.
    """
    import fiona
    from fiona.errors import FionaError

    env.require_active("load_vectors")
    path = Path(path)
    try:
        with fiona.open(str(path), layer=layer or None) as collection:
            source_crs = _layer_crs(collection, path) or WGS84
            if len(collection) == 0:
                msg = f"AOI layer {layer or 0!r} of {path} has no features"
                raise VectorLoadError(msg, context=path.name)
            min_x, min_y, max_x, max_y = collection.bounds
    except (FionaError, OSError) as exc:
        msg = f"Cannot read extent of AOI layer {layer or 0!r} of {path}: {exc}"
        raise VectorLoadError(msg, context=path.name) from exc

    if source_crs == WGS84:
        return (float(min_x), float(min_y), float(max_x), float(max_y))

    try:
        transformer = Transformer.from_crs(source_crs, WGS84, always_xy=True)
        bounds = transformer.transform_bounds(min_x, min_y, max_x, max_y)
    except ProjError as exc:
        msg = f"Cannot transform extent of {path} to WGS 84: {exc}"
        raise VectorLoadError(msg, context=path.name) from exc
    return (float(bounds[0]), float(bounds[1]), float(bounds[2]), float(bounds[3]))


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _layer_crs(collection: Any, path: Path) -> CRS | None:
    """Layer CRS as ``pyproj.CRS``, or ``None`` when the layer declares none."""
    wkt = getattr(collection, "crs_wkt", "") or ""
    if not wkt:
        return None
    try:
        return CRS.from_wkt(wkt)
    except CRSError as exc:
        msg = f"AOI layer of {path} carries an unreadable CRS: {exc}"
        raise VectorLoadError(msg, context=path.name) from exc


def _transformer_for(source: CRS | None, target: CRS | None, path: Path) -> Transformer | None:
    if source is None or target is None:
        if source is None and target is not None:
            logger.warning("AOI layer has no CRS; assuming the raster CRS %s", target.name)
        return None
    if source == target:
        return None
    try:
        return Transformer.from_crs(source, target, always_xy=True)
    except ProjError as exc:
        msg = f"Cannot reproject AOI layer of {path} to {target.name}: {exc}"
        raise VectorLoadError(msg, context=path.name) from exc


def _to_feature(
    record: Any,
    feature_id: str,
    transformer: Transformer | None,
    source_name: str,
) -> VectorFeature | None:
    """Convert one fiona record, returning None when it must be skipped."""
    if record.geometry is None:
        logger.warning("Skipping feature %s in %s: no geometry", feature_id, source_name)
        return None

    geometry = shape(record.geometry)
    if not isinstance(geometry, Polygon):
        logger.warning(
            "Skipping feature %s in %s: geometry type %s is not Polygon",
            feature_id,
            source_name,
            geometry.geom_type,
        )
        return None
    if geometry.is_empty:
        logger.warning("Skipping feature %s in %s: empty polygon", feature_id, source_name)
        return None

    if transformer is not None:
        try:
            geometry = shapely.transform(geometry, transformer.transform, interleaved=False)
        except ProjError as exc:
            logger.warning(
                "Skipping feature %s in %s: reprojection failed: %s",
                feature_id,
                source_name,
                exc,
            )
            return None
        if not all(math.isfinite(c) for c in geometry.bounds):
            logger.warning(
                "Skipping feature %s in %s: outside the target CRS domain",
                feature_id,
                source_name,
            )
            return None

    properties = {
        str(k): "" if v is None else str(v) for k, v in dict(record.properties or {}).items()
    }
    return VectorFeature.from_polygon(feature_id, geometry, properties)
