"""Data model for an area-of-interest polygon.

A ``VectorFeature`` is one accepted input polygon, already in the raster's
CRS, together with its cached axis-aligned bounding box.  It is the output
of the ``load_vectors`` stage and the input to the spatial join.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from shapely.geometry import Polygon


@dataclass(frozen=True, slots=True)
class VectorFeature:
    """A single AOI polygon.

    Attributes:
        feature_id: Identifier of the source feature (OGR FID as string).
        geometry: Polygon in the working (raster) CRS.
        bbox: ``(min_x, min_y, max_x, max_y)`` of ``geometry``.
        properties: Attribute values preserved from the source feature.
    """

    feature_id: str
    geometry: Polygon
    bbox: tuple[float, float, float, float] = (0.0, 0.0, 0.0, 0.0)
    properties: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_polygon(
        cls,
        feature_id: str,
        geometry: Polygon,
        properties: dict[str, str] | None = None,
    ) -> VectorFeature:
        """Build a feature, computing its bounding box from the polygon."""
        min_x, min_y, max_x, max_y = geometry.bounds
        return cls(
            feature_id=feature_id,
            geometry=geometry,
            bbox=(float(min_x), float(min_y), float(max_x), float(max_y)),
            properties=dict(properties or {}),
        )

    @property
    def has_holes(self) -> bool:
        """Whether the polygon has interior rings."""
        return len(self.geometry.interiors) > 0
