"""Data models.

Defines the data structures used throughout the engine:
- GeoTransform: affine grid-to-world mapping
- PeriodSelector: contiguous band range of a raw cube
- RasterIdentity / RasterDataset: a decoded raster and its calendar identity
- VectorFeature: AOI polygon with cached bounding box
- JoinResult / ZonalMean / AreaMode: spatial join and zonal statistics results
"""

from haze.models.feature import VectorFeature
from haze.models.grid import GeoTransform, PeriodSelector
from haze.models.raster import RasterDataset, RasterIdentity
from haze.models.zonal import AreaMode, JoinResult, ZonalMean

__all__ = [
    "AreaMode",
    "GeoTransform",
    "JoinResult",
    "PeriodSelector",
    "RasterDataset",
    "RasterIdentity",
    "VectorFeature",
    "ZonalMean",
]
