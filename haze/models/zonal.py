"""Spatial join and zonal statistics result models.

- ``AreaMode``: planar vs. geodesic area, chosen once per raster CRS
- ``JoinResult``: one feature and the handles of its candidate cells
- ``ZonalMean``: area-weighted mean and centroid for one feature
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from haze.models.feature import VectorFeature


class AreaMode(enum.Enum):
    """How polygon areas are measured.

    Values:
        PLANAR:   Cartesian area in CRS units squared (projected CRSs).
        GEODESIC: Area on the CRS ellipsoid in square metres (geographic CRSs).
    """

    PLANAR = "planar"
    GEODESIC = "geodesic"


@dataclass(frozen=True, slots=True)
class JoinResult:
    """Candidate cells for one feature.

    Candidates come from a bounding-box test only; exact intersection is
    computed later.  An empty ``cells`` tuple is the regular "no overlap"
    outcome.

    Attributes:
        feature: The AOI feature (borrowed from the loader's collection).
        cells: Handles (row-major cell indices) into the owning cell index.
    """

    feature: VectorFeature
    cells: tuple[int, ...] = ()

    @property
    def count(self) -> int:
        return len(self.cells)

    @property
    def is_empty(self) -> bool:
        return not self.cells


@dataclass(frozen=True, slots=True)
class ZonalMean:
    """Area-weighted mean of the raster cells overlapping one feature.

    Attributes:
        feature_id: Identifier of the source feature.
        x: Centroid x of the feature polygon.
        y: Centroid y of the feature polygon.
        value: Area-weighted mean (or unweighted fallback, see ``weighted``).
        cell_count: Number of candidate cells that were evaluated.
        skipped_cells: Number of candidate cells whose intersection failed.
        total_weight: Sum of intersection-area / feature-area weights.
        weighted: ``False`` when every weight was zero and the unweighted
            mean of the evaluated cells was used instead.
    """

    feature_id: str
    x: float
    y: float
    value: float
    cell_count: int = 0
    skipped_cells: int = 0
    total_weight: float = 0.0
    weighted: bool = True

    def to_dict(self) -> dict[str, object]:
        """Serialise to a plain dict (for logging and summaries)."""
        return {
            "feature_id": self.feature_id,
            "x": self.x,
            "y": self.y,
            "value": self.value,
            "cell_count": self.cell_count,
            "skipped_cells": self.skipped_cells,
            "total_weight": self.total_weight,
            "weighted": self.weighted,
        }
