"""Structural geometry validation.

Pure functions with no I/O: each geometry kind has its own rule, and
Multi* kinds delegate element-wise to their singular rule.  Dispatch is
a table keyed on ``GeometryKind`` rather than a chain of string checks.

Rules:
- Point: ``[lon, lat, ...]`` with both numeric and inside WGS 84 bounds.
- LineString: at least 2 valid points.
- Polygon: at least 1 ring; each ring has at least 4 valid points and
  is closed (first == last, exactly).
- Multi*: at least 1 element, every element valid.
- Missing geometry, missing coordinates or any other kind: invalid.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from typing import TYPE_CHECKING, Any

from mymaps_ingest.activities.filter_features._constants import (
    MAX_LATITUDE,
    MAX_LONGITUDE,
    MIN_LATITUDE,
    MIN_LINE_POINTS,
    MIN_LONGITUDE,
    MIN_RING_POINTS,
)
from mymaps_ingest.models.feature import GeometryKind

if TYPE_CHECKING:
    from mymaps_ingest.models.feature import Feature


def _is_sequence(value: object) -> bool:
    return isinstance(value, Sequence) and not isinstance(value, str | bytes)


def _is_number(value: object) -> bool:
    # bool is an int subclass but never a coordinate.
    return isinstance(value, int | float) and not isinstance(value, bool)


# ---------------------------------------------------------------------------
# Singular rules
# ---------------------------------------------------------------------------


def validate_coordinate(coords: object) -> bool:
    """Return True for ``[lon, lat]`` (extra elevation ignored) inside WGS 84 bounds."""
    if not _is_sequence(coords) or len(coords) < 2:  # type: ignore[arg-type]
        return False
    lon, lat = coords[0], coords[1]  # type: ignore[index]
    if not (_is_number(lon) and _is_number(lat)):
        return False
    return MIN_LONGITUDE <= lon <= MAX_LONGITUDE and MIN_LATITUDE <= lat <= MAX_LATITUDE


def validate_line(coords: object) -> bool:
    """Return True for a LineString coordinate list of at least 2 valid points."""
    if not _is_sequence(coords) or len(coords) < MIN_LINE_POINTS:  # type: ignore[arg-type]
        return False
    return all(validate_coordinate(point) for point in coords)  # type: ignore[union-attr]


def validate_ring(ring: object) -> bool:
    """Return True for a closed ring of at least 4 valid points."""
    if not _is_sequence(ring) or len(ring) < MIN_RING_POINTS:  # type: ignore[arg-type]
        return False
    if not all(validate_coordinate(point) for point in ring):  # type: ignore[union-attr]
        return False
    return _same_position(ring[0], ring[-1])  # type: ignore[index]


def validate_polygon(coords: object) -> bool:
    """Return True for at least one ring, every ring valid."""
    if not _is_sequence(coords) or len(coords) < 1:  # type: ignore[arg-type]
        return False
    return all(validate_ring(ring) for ring in coords)  # type: ignore[union-attr]


def _same_position(first: Sequence[Any], last: Sequence[Any]) -> bool:
    """Exact equality of two positions, regardless of list/tuple container."""
    return list(first) == list(last)


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------

_SINGULAR_RULES: dict[GeometryKind, Callable[[object], bool]] = {
    GeometryKind.POINT: validate_coordinate,
    GeometryKind.LINE_STRING: validate_line,
    GeometryKind.POLYGON: validate_polygon,
}


def _validate_multi(element_rule: Callable[[object], bool]) -> Callable[[object], bool]:
    def rule(coords: object) -> bool:
        # An empty multi-geometry carries no data and counts as absent.
        if not _is_sequence(coords) or len(coords) < 1:  # type: ignore[arg-type]
            return False
        return all(element_rule(element) for element in coords)  # type: ignore[union-attr]

    return rule


_RULES: dict[GeometryKind, Callable[[object], bool]] = dict(_SINGULAR_RULES)
for _kind in GeometryKind:
    if _kind.element_kind is not None:
        _RULES[_kind] = _validate_multi(_SINGULAR_RULES[_kind.element_kind])


def validate_geometry(geometry: object) -> bool:
    """Return True if *geometry* is a structurally valid GeoJSON geometry.

    Never raises; anything malformed is simply invalid.
    """
    if not isinstance(geometry, Mapping):
        return False
    kind = GeometryKind.parse(geometry.get("type"))
    if kind is None:
        return False
    coords = geometry.get("coordinates")
    if coords is None:
        return False
    return _RULES[kind](coords)


def validate_feature(feature: Feature) -> bool:
    """Return True if *feature* carries a valid geometry."""
    return validate_geometry(feature.geometry)
