"""Document contracts for the GeoJSON written per layer.

``TypedDict`` mirrors the JSON shape directly, so the writer can build
plain dicts and the tiling hand-off can be typed without conversion.
"""

from __future__ import annotations

from typing import Any, TypedDict


class CrsProperties(TypedDict):
    name: str


class CrsDeclaration(TypedDict):
    """Named CRS member (``{"type": "name", "properties": {"name": ...}}``)."""

    type: str
    properties: CrsProperties


class FeaturePayload(TypedDict):
    """Serialised ``Feature`` as written to the layer file."""

    type: str
    properties: dict[str, Any]
    geometry: dict[str, Any] | None


class LayerCollection(TypedDict):
    """The per-layer FeatureCollection handed to the tiling tool."""

    type: str
    name: str
    crs: CrsDeclaration
    features: list[FeaturePayload]
