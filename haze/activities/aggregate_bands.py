"""Band aggregation: reduce a raw cube to a per-cell mean over a band range.

The raw cube is band-sequential, shape ``(bands, rows, columns)``, as read
by rasterio.  Pixel-interleaved cubes, shape ``(rows, columns, bands)``, are
accepted with ``interleave="pixel"``.

Numeric semantics: plain float64 summation divided by the number of
selected bands.  Band counts are hours-per-day scale, so no compensated
summation is used.
"""

from __future__ import annotations

import logging
from typing import Literal

import numpy as np

from haze.core.exceptions import CubeAllocationError, ShapeMismatchError
from haze.models.grid import PeriodSelector

logger = logging.getLogger("haze.activities.aggregate_bands")

Interleave = Literal["band", "pixel"]

_BAND_AXIS: dict[str, int] = {"band": 0, "pixel": 2}


def average_bands(
    cube: np.ndarray,
    selector: PeriodSelector | None = None,
    *,
    interleave: Interleave = "band",
    context: str = "",
) -> np.ndarray:
    """Average the selected bands of a raw cube.

    Args:
        cube: Raw cube, ``(bands, rows, columns)`` for ``interleave="band"``
            or ``(rows, columns, bands)`` for ``interleave="pixel"``.
        selector: Band range ``[offset, offset + size)``.  ``None`` or
            ``PeriodSelector()`` selects every band.
        interleave: Memory layout of ``cube``.
        context: Raster identity for error messages.

    Returns:
        A new float64 array of shape ``(rows, columns)``.

    Raises:
        ShapeMismatchError: If ``cube`` is not 3-D or ``interleave`` is unknown.
        BandRangeError: If the band range lies outside the cube.  Raised
            before any output array is allocated.
        CubeAllocationError: If the output grid cannot be allocated.
    """
    if interleave not in _BAND_AXIS:
        msg = f"Unknown interleave {interleave!r}; expected 'band' or 'pixel'"
        raise ShapeMismatchError(msg, context=context)
    if cube.ndim != 3:
        msg = f"Raw cube must be 3-D, got shape {cube.shape}"
        raise ShapeMismatchError(msg, context=context)

    band_axis = _BAND_AXIS[interleave]
    bands = cube.shape[band_axis]
    start, stop = (selector or PeriodSelector()).resolve(bands, context=context)

    selected = cube[start:stop] if band_axis == 0 else cube[:, :, start:stop]

    try:
        average = np.sum(selected, axis=band_axis, dtype=np.float64)
    except MemoryError as exc:
        msg = f"Cannot allocate averaged grid for {context or 'raster'}: {exc}"
        raise CubeAllocationError(msg, context=context) from exc
    average /= float(stop - start)

    logger.debug(
        "Bands averaged | raster=%s | bands=[%d, %d) of %d | grid=%dx%d",
        context,
        start,
        stop,
        bands,
        average.shape[0],
        average.shape[1],
    )
    return average


def reorder_to_pixel_interleave(cube: np.ndarray) -> np.ndarray:
    """Return a C-contiguous pixel-interleaved copy of a band-sequential cube.

    Repeated aggregations over many band ranges of the same cube read
    contiguous memory per cell in this layout.

    Raises:
        ShapeMismatchError: If ``cube`` is not 3-D.
    """
    if cube.ndim != 3:
        msg = f"Raw cube must be 3-D, got shape {cube.shape}"
        raise ShapeMismatchError(msg)
    return np.ascontiguousarray(np.moveaxis(cube, 0, -1))
