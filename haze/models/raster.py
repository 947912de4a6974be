"""In-memory raster models.

A ``RasterDataset`` is everything the engine needs from a decoded raster:
the raw band-sequential cube, its geotransform, its CRS, and an identity
parsed from the file name.  It is produced by the ``read_raster`` stage and
owned by the driving loop until all of its periods are processed.
"""

from __future__ import annotations

import calendar
import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from haze.core.exceptions import RasterIdentityError, ShapeMismatchError

if TYPE_CHECKING:
    import numpy as np
    from pyproj import CRS

    from haze.models.grid import GeoTransform

_IDENTITY_PATTERN = re.compile(r"(?P<year>\d{4})-(?P<month>\d{2})(?:-(?P<day>\d{2}))?")


@dataclass(frozen=True, slots=True)
class RasterIdentity:
    """Calendar identity of a raster stack.

    A stack named ``2020-01.grib`` holds every day of January 2020; one
    named ``2020-01-15.grib`` holds a single day.

    Attributes:
        year: Four-digit year.
        month: Month of year (1-12).
        day: Day of month for single-day stacks, ``None`` for monthly stacks.
    """

    year: int
    month: int
    day: int | None = None

    def __post_init__(self) -> None:
        if not 1 <= self.month <= 12:
            msg = f"Month {self.month} is outside 1-12"
            raise RasterIdentityError(msg, context=self.label)
        if self.day is not None and not 1 <= self.day <= self.days_in_month:
            msg = f"Day {self.day} is outside 1-{self.days_in_month}"
            raise RasterIdentityError(msg, context=self.label)

    @classmethod
    def from_name(cls, name: str) -> RasterIdentity:
        """Parse ``YYYY-MM`` or ``YYYY-MM-DD`` from a file name or stem.

        Raises:
            RasterIdentityError: If no date pattern is present.
        """
        match = _IDENTITY_PATTERN.search(name)
        if match is None:
            msg = f"Cannot derive year/month from raster name {name!r}"
            raise RasterIdentityError(msg, context=name)
        day = match.group("day")
        return cls(
            year=int(match.group("year")),
            month=int(match.group("month")),
            day=int(day) if day is not None else None,
        )

    @property
    def is_daily(self) -> bool:
        """Whether the stack holds exactly one day."""
        return self.day is not None

    @property
    def days_in_month(self) -> int:
        """Number of days in this identity's calendar month."""
        return calendar.monthrange(self.year, self.month)[1]

    @property
    def label(self) -> str:
        """ISO-style label (``2020-01`` or ``2020-01-15``)."""
        if self.day is None:
            return f"{self.year:04d}-{self.month:02d}"
        return f"{self.year:04d}-{self.month:02d}-{self.day:02d}"

    def date_label(self, day: int) -> str:
        """ISO date label for a day of this identity's month."""
        return f"{self.year:04d}-{self.month:02d}-{day:02d}"


@dataclass(slots=True)
class RasterDataset:
    """A fully materialised raster.

    Attributes:
        cube: Raw cube, shape ``(bands, rows, columns)``, float64.
        transform: Affine geotransform of the grid.
        crs: Coordinate reference system of the grid (``None`` if unknown).
        name: Identifying name (usually the file name).
        identity: Calendar identity parsed from ``name``, if any.
    """

    cube: np.ndarray
    transform: GeoTransform
    crs: CRS | None = None
    name: str = ""
    identity: RasterIdentity | None = field(default=None)

    def __post_init__(self) -> None:
        if self.cube.ndim != 3:
            msg = f"Raw cube must be 3-D (bands, rows, columns), got shape {self.cube.shape}"
            raise ShapeMismatchError(msg, stage="read_raster", context=self.name)

    @property
    def bands(self) -> int:
        return int(self.cube.shape[0])

    @property
    def rows(self) -> int:
        return int(self.cube.shape[1])

    @property
    def columns(self) -> int:
        return int(self.cube.shape[2])
