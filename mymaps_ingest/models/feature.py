"""Data model for a converted GeoJSON feature.

A Feature is one entry of the converter's FeatureCollection: a tagged
geometry, a mapping of scalar properties, and its position in the
converter output.  The position is stable for the whole run and is
kept for diagnostics; media filenames number features by their
position among the valid features instead.
"""

from __future__ import annotations

import enum
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from typing import Any


class GeometryKind(enum.StrEnum):
    """Geometry variants accepted in a layer."""

    POINT = "Point"
    LINE_STRING = "LineString"
    POLYGON = "Polygon"
    MULTI_POINT = "MultiPoint"
    MULTI_LINE_STRING = "MultiLineString"
    MULTI_POLYGON = "MultiPolygon"

    @classmethod
    def parse(cls, value: object) -> GeometryKind | None:
        """Return the kind for a GeoJSON ``type`` string, or ``None`` if unsupported."""
        if not isinstance(value, str):
            return None
        try:
            return cls(value)
        except ValueError:
            return None

    @property
    def element_kind(self) -> GeometryKind | None:
        """Singular kind for a Multi* kind, ``None`` for singular kinds."""
        return _MULTI_ELEMENT.get(self)


_MULTI_ELEMENT: dict[GeometryKind, GeometryKind] = {
    GeometryKind.MULTI_POINT: GeometryKind.POINT,
    GeometryKind.MULTI_LINE_STRING: GeometryKind.LINE_STRING,
    GeometryKind.MULTI_POLYGON: GeometryKind.POLYGON,
}


@dataclass(frozen=True, slots=True)
class Feature:
    """A single GeoJSON feature from the converted source.

    Attributes:
        geometry: GeoJSON geometry object, or ``None`` when absent.
        properties: Property name → scalar value (str, number, bool or None).
        index: Zero-based position in the converter output.
    """

    geometry: Mapping[str, Any] | None = None
    properties: dict[str, Any] = field(default_factory=dict)
    index: int = 0

    @classmethod
    def from_geojson(cls, data: object, index: int) -> Feature:
        """Build a Feature from a GeoJSON feature object.

        Anything that is not a mapping becomes a geometry-less feature,
        which the validator rejects.
        """
        if not isinstance(data, Mapping):
            return cls(index=index)

        geometry = data.get("geometry")
        properties = data.get("properties")
        return cls(
            geometry=geometry if isinstance(geometry, Mapping) else None,
            properties=dict(properties) if isinstance(properties, Mapping) else {},
            index=index,
        )

    def to_geojson(self) -> dict[str, Any]:
        """Serialise with a fixed key order: ``type``, ``properties``, ``geometry``."""
        return {
            "type": "Feature",
            "properties": dict(self.properties),
            "geometry": dict(self.geometry) if self.geometry is not None else None,
        }

    @property
    def kind(self) -> GeometryKind | None:
        """Geometry kind, or ``None`` for missing or unsupported geometry."""
        if self.geometry is None:
            return None
        return GeometryKind.parse(self.geometry.get("type"))

    def with_properties(self, properties: dict[str, Any]) -> Feature:
        """Return a copy carrying *properties* in place of the current ones."""
        return replace(self, properties=properties)
