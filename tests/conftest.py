"""Shared pytest fixtures for the haze test suite."""

from __future__ import annotations

from collections.abc import Callable, Iterator, Sequence
from pathlib import Path

import numpy as np
import pytest
from shapely.geometry import Polygon, box, mapping

from haze.core.environment import HazeEnvironment
from haze.models.feature import VectorFeature
from haze.models.grid import GeoTransform

# ---------------------------------------------------------------------------
# Reference grids
# ---------------------------------------------------------------------------

#: North-up unit grid with its origin at (0, 2): cell (c, r) covers
#: x in [c, c + 1], y in [1 - r, 2 - r].
UNIT_TRANSFORM = GeoTransform(0.0, 1.0, 0.0, 2.0, 0.0, -1.0)


@pytest.fixture()
def unit_transform() -> GeoTransform:
    """2x2 north-up grid of unit cells over [0, 2] x [0, 2]."""
    return UNIT_TRANSFORM


@pytest.fixture()
def unit_grid() -> np.ndarray:
    """Averaged values of the 2x2 unit grid (row-major: 1, 2 / 3, 4)."""
    return np.array([[1.0, 2.0], [3.0, 4.0]])


def make_feature(feature_id: str, geometry: Polygon) -> VectorFeature:
    return VectorFeature.from_polygon(feature_id, geometry)


@pytest.fixture()
def feature_factory() -> Callable[[str, Polygon], VectorFeature]:
    """Build a ``VectorFeature`` from an id and a polygon."""
    return make_feature


# ---------------------------------------------------------------------------
# GDAL environment and on-disk datasets
# ---------------------------------------------------------------------------


@pytest.fixture()
def env() -> Iterator[HazeEnvironment]:
    """An entered GDAL environment."""
    with HazeEnvironment() as entered:
        yield entered


def write_geotiff(
    path: Path,
    cube: np.ndarray,
    transform: GeoTransform,
    crs: str | None = "EPSG:4326",
) -> Path:
    """Write a band-sequential float32 cube to a GeoTIFF."""
    import rasterio
    from affine import Affine

    bands, rows, columns = cube.shape
    profile = {
        "driver": "GTiff",
        "width": columns,
        "height": rows,
        "count": bands,
        "dtype": "float32",
        "transform": Affine.from_gdal(*transform.to_gdal()),
    }
    if crs is not None:
        profile["crs"] = crs
    with rasterio.open(path, "w", **profile) as dst:
        dst.write(cube.astype(np.float32))
    return path


def write_geojson(
    path: Path,
    geometries: Sequence[object],
    crs: str = "EPSG:4326",
) -> Path:
    """Write shapely geometries to a GeoJSON layer with a ``name`` attribute."""
    import fiona
    from fiona.crs import CRS as FionaCRS

    geometry_types = sorted({g.geom_type for g in geometries}) or ["Polygon"]
    schema = {
        "geometry": geometry_types[0] if len(geometry_types) == 1 else "Unknown",
        "properties": {"name": "str"},
    }
    with fiona.open(
        str(path),
        "w",
        driver="GeoJSON",
        schema=schema,
        crs=FionaCRS.from_user_input(crs),
    ) as dst:
        for idx, geometry in enumerate(geometries):
            dst.write(
                {
                    "geometry": mapping(geometry),
                    "properties": {"name": f"aoi-{idx}"},
                }
            )
    return path


@pytest.fixture()
def aoi_geojson(tmp_path: Path) -> Path:
    """GeoJSON (EPSG:4326) holding one polygon over the unit grid's first cell."""
    return write_geojson(tmp_path / "aoi.geojson", [box(0.25, 1.25, 0.75, 1.75)])


@pytest.fixture()
def geotiff_writer() -> Callable[..., Path]:
    """``write_geotiff(path, cube, transform, crs="EPSG:4326")``."""
    return write_geotiff


@pytest.fixture()
def geojson_writer() -> Callable[..., Path]:
    """``write_geojson(path, geometries, crs="EPSG:4326")``."""
    return write_geojson
