"""Unified exception taxonomy.

Every domain exception inherits from ``HazeError`` and carries structured
context fields so the driving loop can decide whether a failure is local
(skip the feature, cell, period, or raster) or halts the whole run.

Taxonomy categories
-------------------
- ``ConfigurationError`` -- bad geotransform, band range, raster identity,
  CRS mode, or run configuration.  Fatal for the current raster.
- ``GeometryError``      -- a geometry primitive failed.  Recovered locally.
- ``ResourceError``      -- allocation failure while building a cube or index,
  or an output file that cannot be written.
  Halts the run.
- ``InputError``         -- an input file could not be read or decoded.

Empty candidate sets and zero total weight are NOT errors; they are
explicit outcomes of the zonal statistics stage.

Every exception exposes ``to_error_dict()`` for a stable structured
payload suitable for logging.
"""

from __future__ import annotations


class HazeError(Exception):
    """Base exception for all haze-domain errors.

    Attributes:
        message: Human-readable error description.
        stage: Processing stage where the error occurred
            (e.g. ``"aggregate_bands"``, ``"cell_index"``).
        code: Machine-readable error code (e.g. ``"BAND_RANGE_INVALID"``).
        fatal: Whether the error halts the whole run.
        context: Raster identity, feature id, or other diagnostic context.
    """

    #: Default stage for subclasses (override via class attribute or kwarg).
    default_stage: str = ""
    #: Default code for subclasses (override via class attribute or kwarg).
    default_code: str = ""

    def __init__(
        self,
        message: str = "",
        *,
        stage: str = "",
        code: str = "",
        fatal: bool = False,
        context: str = "",
    ) -> None:
        self.message = message
        self.stage = stage or self.default_stage
        self.code = code or self.default_code
        self.fatal = fatal
        self.context = context
        super().__init__(message)

    @property
    def category(self) -> str:
        """Return the error category based on concrete class."""
        if isinstance(self, ConfigurationError):
            return "configuration"
        if isinstance(self, GeometryError):
            return "geometry"
        if isinstance(self, ResourceError):
            return "resource"
        if isinstance(self, InputError):
            return "input"
        return "fatal" if self.fatal else "local"

    def to_error_dict(self) -> dict[str, object]:
        """Return a structured error payload with stable keys."""
        return {
            "category": self.category,
            "code": self.code,
            "stage": self.stage,
            "message": self.message,
            "fatal": self.fatal,
            "context": self.context,
        }


# ---------------------------------------------------------------------------
# Category base classes
# ---------------------------------------------------------------------------


class ConfigurationError(HazeError):
    """Invalid configuration for the current raster or run."""

    def __init__(self, message: str = "", **kwargs: object) -> None:
        kwargs.setdefault("fatal", False)
        super().__init__(message, **kwargs)  # type: ignore[arg-type]


class GeometryError(HazeError):
    """A geometry primitive (intersection, area, centroid) failed."""

    def __init__(self, message: str = "", **kwargs: object) -> None:
        kwargs.setdefault("fatal", False)
        super().__init__(message, **kwargs)  # type: ignore[arg-type]


class ResourceError(HazeError):
    """Resource exhaustion.  Always halts the run."""

    def __init__(self, message: str = "", **kwargs: object) -> None:
        kwargs.setdefault("fatal", True)
        super().__init__(message, **kwargs)  # type: ignore[arg-type]


class InputError(HazeError):
    """An input dataset could not be opened or decoded."""

    def __init__(self, message: str = "", **kwargs: object) -> None:
        kwargs.setdefault("fatal", False)
        super().__init__(message, **kwargs)  # type: ignore[arg-type]


# ---------------------------------------------------------------------------
# Concrete errors
# ---------------------------------------------------------------------------


class GeoTransformError(ConfigurationError):
    """The raster geotransform is singular or missing."""

    default_stage = "grid_model"
    default_code = "GEOTRANSFORM_DEGENERATE"


class BandRangeError(ConfigurationError):
    """The requested band range lies outside the raw cube."""

    default_stage = "aggregate_bands"
    default_code = "BAND_RANGE_INVALID"


class ShapeMismatchError(ConfigurationError):
    """An array does not have the dimensionality a stage expects."""

    default_stage = "aggregate_bands"
    default_code = "ARRAY_SHAPE_INVALID"


class RasterIdentityError(ConfigurationError):
    """Year/month/day cannot be derived from a raster's file name."""

    default_stage = "process_daily"
    default_code = "RASTER_IDENTITY_INVALID"


class CRSModeError(ConfigurationError):
    """The planar/geodesic area mode cannot be established for a CRS."""

    default_stage = "zonal_statistics"
    default_code = "CRS_MODE_UNDETERMINED"


class FeatureAreaError(GeometryError):
    """The area of an AOI polygon could not be computed or is zero."""

    default_stage = "zonal_statistics"
    default_code = "FEATURE_AREA_FAILED"


class CellIntersectionError(GeometryError):
    """Intersecting an AOI polygon with one raster cell failed."""

    default_stage = "zonal_statistics"
    default_code = "CELL_INTERSECTION_FAILED"


class IndexBuildError(ResourceError):
    """The cell index could not be allocated or built."""

    default_stage = "cell_index"
    default_code = "INDEX_BUILD_FAILED"


class RasterReadError(InputError):
    """A raster could not be opened or its bands could not be read."""

    default_stage = "read_raster"
    default_code = "RASTER_READ_FAILED"


class VectorLoadError(InputError):
    """An AOI vector dataset could not be opened or reprojected."""

    default_stage = "load_vectors"
    default_code = "VECTOR_LOAD_FAILED"


class CubeAllocationError(ResourceError):
    """The raw cube or an averaged grid could not be allocated."""

    default_stage = "read_raster"
    default_code = "CUBE_ALLOCATION_FAILED"


class ResultWriteError(ResourceError):
    """A per-day result file could not be written."""

    default_stage = "write_results"
    default_code = "RESULT_WRITE_FAILED"
