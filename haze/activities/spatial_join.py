"""Spatial join: candidate raster cells for each AOI polygon.

Candidates are selected by bounding box only.  Exact polygon/cell overlap
is left to the zonal statistics stage, where non-overlapping candidates
simply receive zero weight.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from haze.models.zonal import JoinResult

if TYPE_CHECKING:
    from collections.abc import Iterable

    from haze.activities.cell_index import CellIndex
    from haze.models.feature import VectorFeature

logger = logging.getLogger("haze.activities.spatial_join")


def join_feature(index: CellIndex, feature: VectorFeature) -> JoinResult:
    """Return every cell whose rectangle touches or overlaps the feature's bbox.

    An empty result is the regular "no overlap" outcome, not an error.
    """
    handles = index.query(feature.bbox)
    return JoinResult(feature=feature, cells=tuple(int(h) for h in handles))


def join_features(index: CellIndex, features: Iterable[VectorFeature]) -> list[JoinResult]:
    """Join a collection of features against one cell index, in input order."""
    results = [join_feature(index, feature) for feature in features]
    empty = sum(1 for r in results if r.is_empty)
    logger.info(
        "Spatial join complete | features=%d | without_candidates=%d | candidates=%d",
        len(results),
        empty,
        sum(r.count for r in results),
    )
    return results
