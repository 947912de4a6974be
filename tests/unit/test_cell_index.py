"""Tests for the STR-tree cell index and tolerant box comparisons."""

from __future__ import annotations

from unittest.mock import patch

import numpy as np
import pytest

from haze.activities.cell_index import CellIndex, build_cell_index
from haze.core.exceptions import GeoTransformError, IndexBuildError, ShapeMismatchError
from haze.models.grid import GeoTransform
from haze.utils.bbox import boxes_intersect, boxes_intersect_many, expand_box, near_equal

# ---------------------------------------------------------------------------
# Tolerant comparisons
# ---------------------------------------------------------------------------


class TestNearEqual:
    """Relative near-equality with an absolute floor."""

    def test_exact_equality(self) -> None:
        assert near_equal(1.5, 1.5)
        assert near_equal(0.0, 0.0)

    def test_round_off_is_equal(self) -> None:
        assert near_equal(0.1 + 0.2, 0.3)
        assert near_equal(1e6 + 1e-10, 1e6)

    def test_distinct_values_not_equal(self) -> None:
        assert not near_equal(1.0, 1.0001)
        assert not near_equal(0.0, 1e-300)

    def test_scales_with_magnitude(self) -> None:
        big = 1e12
        assert near_equal(big, big + 1e-3)
        assert not near_equal(1.0, 1.0 + 1e-3)


class TestBoxesIntersect:
    """Boxes touching at an edge or corner intersect."""

    def test_overlap(self) -> None:
        assert boxes_intersect((0, 0, 2, 2), (1, 1, 3, 3))

    def test_shared_edge(self) -> None:
        assert boxes_intersect((0, 0, 1, 1), (1, 0, 2, 1))

    def test_shared_corner(self) -> None:
        assert boxes_intersect((0, 0, 1, 1), (1, 1, 2, 2))

    def test_shared_edge_after_round_off(self) -> None:
        assert boxes_intersect((0.0, 0.0, 0.1 + 0.2, 1.0), (0.3, 0.0, 1.0, 1.0))

    def test_disjoint(self) -> None:
        assert not boxes_intersect((0, 0, 1, 1), (1.5, 0, 2, 1))

    def test_vectorised_matches_scalar(self) -> None:
        query = (0.0, 0.0, 0.1 + 0.2, 1.0)
        bounds = np.array(
            [
                [0.3, 0.0, 1.0, 1.0],
                [0.31, 0.0, 1.0, 1.0],
                [-1.0, -1.0, 0.0, 0.0],
                [-1.0, 1.0000000000000002, 0.0, 2.0],
            ]
        )
        mask = boxes_intersect_many(query, bounds)
        assert mask.tolist() == [boxes_intersect(query, tuple(b)) for b in bounds]
        assert mask.tolist() == [True, False, True, True]

    def test_expand_box_grows_outward(self) -> None:
        min_x, min_y, max_x, max_y = expand_box((1.0, -1.0, 2.0, 3.0))
        assert min_x < 1.0
        assert min_y < -1.0
        assert max_x > 2.0
        assert max_y > 3.0


# ---------------------------------------------------------------------------
# Index build
# ---------------------------------------------------------------------------


class TestBuildCellIndex:
    """build_cell_index produces one record per cell."""

    def test_cell_count(self, unit_grid: np.ndarray, unit_transform: GeoTransform) -> None:
        with build_cell_index(unit_grid, unit_transform) as index:
            assert len(index) == 4
            assert index.rows == 2
            assert index.columns == 2
            assert index.node_capacity == 100

    def test_records_follow_row_major_handles(
        self, unit_grid: np.ndarray, unit_transform: GeoTransform
    ) -> None:
        with build_cell_index(unit_grid, unit_transform) as index:
            assert index.bounds_of(0) == (0.0, 1.0, 1.0, 2.0)
            assert index.bounds_of(3) == (1.0, 0.0, 2.0, 1.0)
            assert index.value_of(1) == 2.0
            assert index.value_of(2) == 3.0
            assert index.position_of(3) == (1, 1)
            assert index.geometry_of(0).bounds == (0.0, 1.0, 1.0, 2.0)

    def test_min_below_max_for_every_record(self) -> None:
        gt = GeoTransform(10.0, -0.5, 0.0, -5.0, 0.0, 0.25)  # south-up, east-to-west
        grid = np.zeros((3, 4))
        with build_cell_index(grid, gt) as index:
            for handle in range(len(index)):
                min_x, min_y, max_x, max_y = index.bounds_of(handle)
                assert min_x < max_x
                assert min_y < max_y

    def test_values_are_copied(self, unit_grid: np.ndarray, unit_transform: GeoTransform) -> None:
        with build_cell_index(unit_grid, unit_transform) as index:
            unit_grid[0, 0] = 99.0
            assert index.value_of(0) == 1.0

    def test_custom_node_capacity(
        self, unit_grid: np.ndarray, unit_transform: GeoTransform
    ) -> None:
        with build_cell_index(unit_grid, unit_transform, node_capacity=4) as index:
            assert index.node_capacity == 4
            assert index.query((0.0, 0.0, 2.0, 2.0)).tolist() == [0, 1, 2, 3]

    def test_degenerate_transform_rejected(self, unit_grid: np.ndarray) -> None:
        with pytest.raises(GeoTransformError):
            build_cell_index(unit_grid, GeoTransform(0.0, 0.0, 0.0, 0.0, 0.0, -1.0))

    def test_non_grid_rejected(self, unit_transform: GeoTransform) -> None:
        with pytest.raises(ShapeMismatchError):
            build_cell_index(np.zeros((2, 2, 2)), unit_transform)

    def test_allocation_failure_is_resource_error(
        self, unit_grid: np.ndarray, unit_transform: GeoTransform
    ) -> None:
        with (
            patch("haze.activities.cell_index.STRtree", side_effect=MemoryError),
            pytest.raises(IndexBuildError) as exc_info,
        ):
            build_cell_index(unit_grid, unit_transform, context="2020-01.grib")
        assert exc_info.value.fatal is True
        assert exc_info.value.category == "resource"

    def test_empty_grid(self, unit_transform: GeoTransform) -> None:
        with build_cell_index(np.zeros((0, 3)), unit_transform) as index:
            assert len(index) == 0
            assert index.query((0.0, 0.0, 1.0, 1.0)).size == 0


class TestCellIndexQuery:
    """Bounding-box queries against the index."""

    def test_interior_box_hits_one_cell(
        self, unit_grid: np.ndarray, unit_transform: GeoTransform
    ) -> None:
        with build_cell_index(unit_grid, unit_transform) as index:
            assert index.query((0.25, 1.25, 0.75, 1.75)).tolist() == [0]

    def test_box_on_shared_edge_hits_both_cells(
        self, unit_grid: np.ndarray, unit_transform: GeoTransform
    ) -> None:
        with build_cell_index(unit_grid, unit_transform) as index:
            # x == 1.0 is the edge between columns 0 and 1 of row 0
            assert index.query((1.0, 1.25, 1.0, 1.75)).tolist() == [0, 1]

    def test_box_touching_grid_corner(
        self, unit_grid: np.ndarray, unit_transform: GeoTransform
    ) -> None:
        with build_cell_index(unit_grid, unit_transform) as index:
            assert index.query((2.0, 2.0, 3.0, 3.0)).tolist() == [1]

    def test_box_just_past_edge_after_round_off(
        self, unit_grid: np.ndarray, unit_transform: GeoTransform
    ) -> None:
        with build_cell_index(unit_grid, unit_transform) as index:
            edge = 2.0 * (1.0 + 1e-15)
            assert index.query((edge, 0.25, 3.0, 0.75)).tolist() == [3]

    def test_disjoint_box_hits_nothing(
        self, unit_grid: np.ndarray, unit_transform: GeoTransform
    ) -> None:
        with build_cell_index(unit_grid, unit_transform) as index:
            assert index.query((5.0, 5.0, 6.0, 6.0)).size == 0

    def test_large_grid_matches_brute_force(self) -> None:
        gt = GeoTransform(-180.0, 0.25, 0.0, 90.0, 0.0, -0.25)
        grid = np.zeros((40, 60))
        query = (-175.0, 81.0, -170.3, 84.5)
        with build_cell_index(grid, gt, node_capacity=10) as index:
            found = set(index.query(query).tolist())
            expected = {
                h for h in range(len(index)) if boxes_intersect(query, index.bounds_of(h))
            }
            assert found == expected
            assert found


class TestCellIndexLifecycle:
    """close() releases the index."""

    def test_query_after_close_raises(
        self, unit_grid: np.ndarray, unit_transform: GeoTransform
    ) -> None:
        index = build_cell_index(unit_grid, unit_transform)
        assert isinstance(index, CellIndex)
        index.close()
        assert index.closed
        with pytest.raises(RuntimeError, match="closed"):
            index.query((0.0, 0.0, 1.0, 1.0))

    def test_close_twice_is_safe(
        self, unit_grid: np.ndarray, unit_transform: GeoTransform
    ) -> None:
        index = build_cell_index(unit_grid, unit_transform)
        index.close()
        index.close()
        assert index.closed

    def test_context_manager_closes(
        self, unit_grid: np.ndarray, unit_transform: GeoTransform
    ) -> None:
        with build_cell_index(unit_grid, unit_transform) as index:
            assert not index.closed
        assert index.closed
