"""Raster reader: decode a raster stack into a ``RasterDataset``.

This is the rasterio (GDAL) boundary of the engine.  The whole band stack
is read into memory as a float64 band-sequential cube, because the driving
loop slices the same stack once per day.

All dataset access happens inside an entered ``HazeEnvironment``.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

import numpy as np
from pyproj import CRS
from pyproj.exceptions import CRSError

from haze.core.exceptions import CubeAllocationError, RasterIdentityError, RasterReadError
from haze.models.grid import GeoTransform
from haze.models.raster import RasterDataset, RasterIdentity

if TYPE_CHECKING:
    from haze.core.environment import HazeEnvironment

logger = logging.getLogger("haze.activities.read_raster")


def read_raster(path: str | Path, env: HazeEnvironment) -> RasterDataset:
    """Read every band of a raster into memory.

    Args:
        path: Path to any GDAL-readable raster (GRIB, GeoTIFF, ...).
        env: Entered GDAL environment.

    Returns:
        A ``RasterDataset`` with a ``(bands, rows, columns)`` float64 cube,
        its geotransform, its CRS (``None`` when the file has none), and
        the calendar identity parsed from the file name when present.

    Raises:
        RasterReadError: If the file cannot be opened or decoded.
        CubeAllocationError: If the cube does not fit in memory.
    """
    import rasterio
    from rasterio.errors import RasterioError

    env.require_active("read_raster")
    path = Path(path)
    name = path.name

    try:
        with rasterio.open(path) as src:
            transform = GeoTransform.from_affine(src.transform)
            crs = _to_pyproj(src.crs, name)
            cube = src.read(out_dtype=np.float64)
    except MemoryError as exc:
        msg = f"Cannot allocate raw cube for {name}: {exc}"
        raise CubeAllocationError(msg, context=name) from exc
    except (RasterioError, OSError) as exc:
        msg = f"Cannot read raster {path}: {exc}"
        raise RasterReadError(msg, context=name) from exc

    try:
        identity: RasterIdentity | None = RasterIdentity.from_name(path.stem)
    except RasterIdentityError:
        identity = None

    dataset = RasterDataset(
        cube=cube,
        transform=transform,
        crs=crs,
        name=name,
        identity=identity,
    )
    logger.info(
        "Raster read | raster=%s | bands=%d | grid=%dx%d | crs=%s",
        name,
        dataset.bands,
        dataset.rows,
        dataset.columns,
        crs.name if crs is not None else "none",
    )
    return dataset


def crs_of_raster(path: str | Path, env: HazeEnvironment) -> CRS | None:
    """Return the CRS of a raster without reading its bands.

    Raises:
        RasterReadError: If the file cannot be opened.
    """
    import rasterio
    from rasterio.errors import RasterioError

    env.require_active("read_raster")
    path = Path(path)
    try:
        with rasterio.open(path) as src:
            return _to_pyproj(src.crs, path.name)
    except (RasterioError, OSError) as exc:
        msg = f"Cannot read CRS of raster {path}: {exc}"
        raise RasterReadError(msg, context=path.name) from exc


def _to_pyproj(crs: object, name: str) -> CRS | None:
    """Convert a rasterio CRS to ``pyproj.CRS`` (``None`` stays ``None``)."""
    if crs is None:
        return None
    try:
        return CRS.from_wkt(crs.to_wkt())  # type: ignore[attr-defined]
    except CRSError as exc:
        msg = f"Raster {name} carries an unreadable CRS: {exc}"
        raise RasterReadError(msg, context=name) from exc
