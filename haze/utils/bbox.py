"""Tolerant bounding-box comparisons.

Raster cells tile exactly and AOIs are often aligned to raster boundaries,
so two boxes that share only an edge or a corner must count as
intersecting even after floating-point round-off.  Near-equality uses a
relative epsilon scaled by the magnitude of the operands, with an absolute
floor for values close to zero, so the rule holds for degrees and metres
alike.
"""

from __future__ import annotations

import numpy as np

from haze.core.constants import ABSOLUTE_TOLERANCE_FLOOR, RELATIVE_TOLERANCE

BBox = tuple[float, float, float, float]


def near_equal(a: float, b: float) -> bool:
    """Whether ``a`` and ``b`` are equal within the relative tolerance."""
    if a == b:
        return True
    norm = min(abs(a) + abs(b), np.finfo(np.float64).max)
    return abs(a - b) < max(ABSOLUTE_TOLERANCE_FLOOR, RELATIVE_TOLERANCE * norm)


def lte(a: float, b: float) -> bool:
    """``a <= b`` within tolerance."""
    return a < b or near_equal(a, b)


def gte(a: float, b: float) -> bool:
    """``a >= b`` within tolerance."""
    return a > b or near_equal(a, b)


def boxes_intersect(a: BBox, b: BBox) -> bool:
    """Whether two ``(min_x, min_y, max_x, max_y)`` boxes overlap or touch."""
    return lte(a[0], b[2]) and gte(a[2], b[0]) and lte(a[1], b[3]) and gte(a[3], b[1])


def _near_equal_array(a: np.ndarray | float, b: np.ndarray) -> np.ndarray:
    norm = np.minimum(np.abs(a) + np.abs(b), np.finfo(np.float64).max)
    threshold = np.maximum(ABSOLUTE_TOLERANCE_FLOOR, RELATIVE_TOLERANCE * norm)
    return (a == b) | (np.abs(a - b) < threshold)


def boxes_intersect_many(box: BBox, bounds: np.ndarray) -> np.ndarray:
    """Vectorised ``boxes_intersect`` of one box against ``(n, 4)`` bounds.

    Returns:
        Boolean mask of length ``n``.
    """
    min_x, min_y, max_x, max_y = box
    b_min_x, b_min_y, b_max_x, b_max_y = bounds.T
    return (
        ((min_x < b_max_x) | _near_equal_array(min_x, b_max_x))
        & ((max_x > b_min_x) | _near_equal_array(max_x, b_min_x))
        & ((min_y < b_max_y) | _near_equal_array(min_y, b_max_y))
        & ((max_y > b_min_y) | _near_equal_array(max_y, b_min_y))
    )


def expand_box(box: BBox) -> BBox:
    """Grow a box outward by the largest distance ``near_equal`` can absorb.

    Any box that tolerantly intersects ``box`` strictly intersects the
    expanded box, so the expanded box is a safe pre-filter for an index
    query followed by ``boxes_intersect_many``.
    """

    def margin(value: float) -> float:
        # near_equal(v, w) holds for |v - w| < eps * (|v| + |w|) <= eps * (2|v| + |v - w|),
        # so |v - w| < 2 * eps * |v| / (1 - eps); four times eps * |v| covers it.
        return 4.0 * RELATIVE_TOLERANCE * abs(value) + 2.0 * ABSOLUTE_TOLERANCE_FLOOR

    min_x, min_y, max_x, max_y = box
    return (
        min_x - margin(min_x),
        min_y - margin(min_y),
        max_x + margin(max_x),
        max_y + margin(max_y),
    )
