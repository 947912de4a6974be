"""Cell index: one rectangle per grid cell, bulk-loaded into an STR tree.

The index owns its cell records as parallel arrays (box geometry, bounds,
value, column, row) addressed by an integer handle ``row * columns +
column``.  Join results carry these handles and are only meaningful while
the index that produced them is open.

Queries are tolerant: a cell that touches a query box at an edge or corner
counts as a candidate even after round-off (see ``haze.utils.bbox``).
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import numpy as np
import shapely
from shapely import STRtree

from haze.activities.grid_model import cell_bounds
from haze.core.constants import DEFAULT_TREE_NODE_CAPACITY
from haze.core.exceptions import GeoTransformError, IndexBuildError, ShapeMismatchError
from haze.utils.bbox import BBox, boxes_intersect_many, expand_box

if TYPE_CHECKING:
    from types import TracebackType

    from shapely.geometry import Polygon

    from haze.models.grid import GeoTransform

logger = logging.getLogger("haze.activities.cell_index")


class CellIndex:
    """Read-only spatial index over the cells of one averaged grid.

    Usage::

        with build_cell_index(grid, transform) as index:
            handles = index.query(feature.bbox)

    Attributes:
        rows: Number of grid rows.
        columns: Number of grid columns.
        node_capacity: Fan-out of the STR tree.
    """

    def __init__(
        self,
        tree: STRtree,
        geometries: np.ndarray,
        bounds: np.ndarray,
        values: np.ndarray,
        rows: int,
        columns: int,
        node_capacity: int,
    ) -> None:
        self.rows = rows
        self.columns = columns
        self.node_capacity = node_capacity
        self._tree: STRtree | None = tree
        self._geometries = geometries
        self._bounds = bounds
        self._values = values

    def __len__(self) -> int:
        return self.rows * self.columns

    def __enter__(self) -> CellIndex:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    @property
    def closed(self) -> bool:
        return self._tree is None

    def close(self) -> None:
        """Release the tree and cell arrays.  Safe to call twice."""
        if self._tree is None:
            return
        self._tree = None
        self._geometries = np.empty(0, dtype=object)
        self._bounds = np.empty((0, 4), dtype=np.float64)
        self._values = np.empty(0, dtype=np.float64)
        logger.debug("Cell index closed | grid=%dx%d", self.rows, self.columns)

    def _require_open(self) -> STRtree:
        if self._tree is None:
            msg = "Cell index has been closed"
            raise RuntimeError(msg)
        return self._tree

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def query(self, bbox: BBox) -> np.ndarray:
        """Handles of every cell whose rectangle touches or overlaps ``bbox``.

        Returns:
            Sorted ``int64`` array of cell handles (possibly empty).
        """
        tree = self._require_open()
        if len(self) == 0:
            return np.empty(0, dtype=np.int64)
        candidates = tree.query(shapely.box(*expand_box(bbox)))
        if candidates.size == 0:
            return np.empty(0, dtype=np.int64)
        mask = boxes_intersect_many(bbox, self._bounds[candidates])
        return np.sort(candidates[mask]).astype(np.int64, copy=False)

    def geometry_of(self, handle: int) -> Polygon:
        """Rectangle of a cell as a shapely box."""
        self._require_open()
        return self._geometries[handle]

    def geometries_of(self, handles: np.ndarray | tuple[int, ...]) -> np.ndarray:
        """Rectangles of several cells as an object array of shapely boxes."""
        self._require_open()
        return self._geometries[np.asarray(handles, dtype=np.int64)]

    def bounds_of(self, handle: int) -> BBox:
        """``(min_x, min_y, max_x, max_y)`` of a cell."""
        self._require_open()
        min_x, min_y, max_x, max_y = self._bounds[handle]
        return (float(min_x), float(min_y), float(max_x), float(max_y))

    def value_of(self, handle: int) -> float:
        """Averaged grid value of a cell."""
        self._require_open()
        return float(self._values[handle])

    def values_of(self, handles: np.ndarray | tuple[int, ...]) -> np.ndarray:
        self._require_open()
        return self._values[np.asarray(handles, dtype=np.int64)]

    def position_of(self, handle: int) -> tuple[int, int]:
        """``(column, row)`` of a cell handle."""
        if not 0 <= handle < len(self):
            msg = f"Cell handle {handle} is outside 0-{len(self) - 1}"
            raise IndexError(msg)
        row, column = divmod(handle, self.columns)
        return (column, row)


def build_cell_index(
    grid: np.ndarray,
    transform: GeoTransform,
    *,
    node_capacity: int = DEFAULT_TREE_NODE_CAPACITY,
    context: str = "",
) -> CellIndex:
    """Build one cell record per grid cell and bulk-load them into an STR tree.

    Args:
        grid: Averaged grid, shape ``(rows, columns)``.
        transform: Geotransform of the raster the grid came from.
        node_capacity: Maximum entries per tree node.
        context: Raster identity for error messages.

    Returns:
        A read-only ``CellIndex`` holding ``rows * columns`` cells.

    Raises:
        GeoTransformError: If the geotransform is singular.
        ShapeMismatchError: If ``grid`` is not 2-D.
        IndexBuildError: If the cell arrays or the tree cannot be allocated.
            No partially built index is returned.
    """
    if grid.ndim != 2:
        msg = f"Averaged grid must be 2-D (rows, columns), got shape {grid.shape}"
        raise ShapeMismatchError(msg, stage="cell_index", context=context)
    if transform.is_degenerate:
        msg = f"Geotransform {transform.to_gdal()} is singular; cells have no area"
        raise GeoTransformError(msg, context=context)

    rows, columns = (int(n) for n in grid.shape)

    try:
        bounds = cell_bounds(transform, rows, columns)
        geometries = shapely.box(bounds[:, 0], bounds[:, 1], bounds[:, 2], bounds[:, 3])
        values = np.array(grid, dtype=np.float64).ravel()
        values.setflags(write=False)
        bounds.setflags(write=False)
        tree = STRtree(geometries, node_capacity=node_capacity)
    except MemoryError as exc:
        msg = f"Cannot allocate cell index for {rows}x{columns} grid: {exc}"
        raise IndexBuildError(msg, context=context) from exc

    logger.info(
        "Cell index built | raster=%s | cells=%d | grid=%dx%d | node_capacity=%d",
        context,
        rows * columns,
        rows,
        columns,
        node_capacity,
    )
    return CellIndex(
        tree=tree,
        geometries=geometries,
        bounds=bounds,
        values=values,
        rows=rows,
        columns=columns,
        node_capacity=node_capacity,
    )
