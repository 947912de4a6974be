"""Raster grid model: world-coordinate rectangles of grid cells.

The rectangle of cell ``(column, row)`` is the bounding box of its four
corners ``(c, r)``, ``(c+1, r)``, ``(c, r+1)`` and ``(c+1, r+1)`` mapped
through the geotransform.  Min/max are taken independently per axis, so
rotated and south-up rasters produce valid rectangles; no north-up
assumption is made.

A degenerate (singular) geotransform is a caller precondition and is not
checked here.  See ``GeoTransform.is_degenerate``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np

if TYPE_CHECKING:
    from haze.models.grid import GeoTransform

# Corner offsets (d_column, d_row) of a unit cell.
_CORNERS = ((0, 0), (1, 0), (0, 1), (1, 1))


def cell_rectangle(
    transform: GeoTransform,
    column: int,
    row: int,
) -> tuple[float, float, float, float]:
    """Return ``(min_x, min_y, max_x, max_y)`` covering one grid cell.

    Args:
        transform: Geotransform of the raster.
        column: Zero-based column index.
        row: Zero-based row index.
    """
    xs: list[float] = []
    ys: list[float] = []
    for d_col, d_row in _CORNERS:
        x, y = transform.world(column + d_col, row + d_row)
        xs.append(x)
        ys.append(y)
    return (min(xs), min(ys), max(xs), max(ys))


def cell_bounds(transform: GeoTransform, rows: int, columns: int) -> np.ndarray:
    """Vectorised ``cell_rectangle`` over a whole grid.

    Args:
        transform: Geotransform of the raster.
        rows: Number of grid rows.
        columns: Number of grid columns.

    Returns:
        Array of shape ``(rows * columns, 4)`` holding
        ``min_x, min_y, max_x, max_y`` per cell in row-major order, so the
        cell at ``(column, row)`` sits at index ``row * columns + column``.
    """
    row_idx, col_idx = np.meshgrid(
        np.arange(rows, dtype=np.float64),
        np.arange(columns, dtype=np.float64),
        indexing="ij",
    )
    col_idx = col_idx.ravel()
    row_idx = row_idx.ravel()

    corner_x = np.empty((len(_CORNERS), col_idx.size), dtype=np.float64)
    corner_y = np.empty_like(corner_x)
    for i, (d_col, d_row) in enumerate(_CORNERS):
        c = col_idx + d_col
        r = row_idx + d_row
        corner_x[i] = transform.x_origin + c * transform.pixel_width + r * transform.row_rotation
        corner_y[i] = (
            transform.y_origin + c * transform.column_rotation + r * transform.pixel_height
        )

    return np.column_stack(
        (
            corner_x.min(axis=0),
            corner_y.min(axis=0),
            corner_x.max(axis=0),
            corner_y.max(axis=0),
        )
    )
