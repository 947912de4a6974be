"""Raster grid models: the affine geotransform and the band period selector.

A ``GeoTransform`` maps integer ``(column, row)`` grid positions to world
coordinates::

    world_x = x_origin + column * pixel_width + row * row_rotation
    world_y = y_origin + column * column_rotation + row * pixel_height

The coefficient order follows GDAL's six-element geotransform, so
``GeoTransform.from_gdal(dataset.GetGeoTransform())`` and
``GeoTransform.from_affine(rasterio_dataset.transform)`` are equivalent.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from haze.core.exceptions import BandRangeError

if TYPE_CHECKING:
    from collections.abc import Sequence

    from affine import Affine


@dataclass(frozen=True, slots=True)
class GeoTransform:
    """Immutable six-coefficient affine mapping from grid to world coordinates.

    Attributes:
        x_origin: World x of the outer corner of cell ``(0, 0)``.
        pixel_width: World x step per column.
        row_rotation: World x step per row (zero for north-up rasters).
        y_origin: World y of the outer corner of cell ``(0, 0)``.
        column_rotation: World y step per column (zero for north-up rasters).
        pixel_height: World y step per row (negative for north-up rasters).
    """

    x_origin: float
    pixel_width: float
    row_rotation: float
    y_origin: float
    column_rotation: float
    pixel_height: float

    @classmethod
    def from_gdal(cls, coefficients: Sequence[float]) -> GeoTransform:
        """Build from a GDAL-ordered 6-sequence.

        Raises:
            ValueError: If the sequence does not hold exactly six values.
        """
        if len(coefficients) != 6:
            msg = f"GDAL geotransform needs 6 coefficients, got {len(coefficients)}"
            raise ValueError(msg)
        return cls(*(float(c) for c in coefficients))

    @classmethod
    def from_affine(cls, affine: Affine) -> GeoTransform:
        """Build from a rasterio/``affine`` transform."""
        return cls.from_gdal(affine.to_gdal())

    def to_gdal(self) -> tuple[float, float, float, float, float, float]:
        """Return the GDAL-ordered coefficient tuple."""
        return (
            self.x_origin,
            self.pixel_width,
            self.row_rotation,
            self.y_origin,
            self.column_rotation,
            self.pixel_height,
        )

    @property
    def determinant(self) -> float:
        """Determinant of the linear part of the mapping."""
        return self.pixel_width * self.pixel_height - self.row_rotation * self.column_rotation

    @property
    def is_degenerate(self) -> bool:
        """Whether the mapping collapses cells to zero area.

        A singular mapping means ``pixel_width``/``row_rotation`` or
        ``column_rotation``/``pixel_height`` are both zero, or the grid axes
        are parallel.  No valid cell rectangle exists in that case.
        """
        return self.determinant == 0.0

    def world(self, column: float, row: float) -> tuple[float, float]:
        """Map a (possibly fractional) grid position to world ``(x, y)``."""
        x = self.x_origin + column * self.pixel_width + row * self.row_rotation
        y = self.y_origin + column * self.column_rotation + row * self.pixel_height
        return (x, y)


@dataclass(frozen=True, slots=True)
class PeriodSelector:
    """A contiguous band range ``[offset, offset + size)`` of a raw cube.

    ``PeriodSelector()`` (``offset == 0`` and ``size == 0``) selects every band.

    Attributes:
        offset: Zero-based index of the first selected band.
        size: Number of selected bands.
    """

    offset: int = 0
    size: int = 0

    def __post_init__(self) -> None:
        if self.offset < 0 or self.size < 0:
            msg = f"Band range offset={self.offset}, size={self.size} must be non-negative"
            raise BandRangeError(msg)

    @property
    def selects_all(self) -> bool:
        """Whether this selector means "the full band range"."""
        return self.offset == 0 and self.size == 0

    def resolve(self, bands: int, *, context: str = "") -> tuple[int, int]:
        """Return the concrete ``(start, stop)`` band bounds for a cube.

        Raises:
            BandRangeError: If ``offset >= bands`` or ``offset + size > bands``.
        """
        if self.selects_all:
            if bands <= 0:
                msg = "Cannot select the full band range of a cube without bands"
                raise BandRangeError(msg, context=context)
            return (0, bands)

        stop = self.offset + self.size
        if self.offset >= bands or stop > bands:
            msg = (
                f"Band range [{self.offset}, {stop}) is outside the cube's "
                f"{bands} band(s)"
            )
            raise BandRangeError(msg, context=context)
        if self.size == 0:
            msg = f"Band range at offset {self.offset} selects no bands"
            raise BandRangeError(msg, context=context)
        return (self.offset, stop)

    @classmethod
    def for_day(cls, day: int, hours_per_day: int) -> PeriodSelector:
        """Selector for a 1-based day of a stack holding ``hours_per_day`` bands per day."""
        if day < 1:
            msg = f"Day {day} must be >= 1"
            raise BandRangeError(msg)
        return cls(offset=(day - 1) * hours_per_day, size=hours_per_day)
