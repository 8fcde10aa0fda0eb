"""Converter abstract base class.

Defines the contract for turning raw KML bytes into a GeoJSON
FeatureCollection.  The orchestrator only talks to this interface, so
the external tool behind it (``ogr2ogr``, fiona/OGR, or a test fake) can
be swapped without touching the pipeline.

Contract:
    ``convert(raw)`` returns a FeatureCollection-shaped dict or raises
    ``ConversionError``.  Converters must not repair the tool's output
    beyond checking that shape.
"""

from __future__ import annotations

import abc
from typing import Any

from mymaps_ingest.core.exceptions import ConversionError


class Converter(abc.ABC):
    """Abstract base class for KML → GeoJSON converters.

    Example usage::

        converter = get_converter("ogr2ogr", scratch_dir=Path("tmp"))
        converter.ensure_available()
        document = converter.convert(raw_kml)
    """

    #: Registry name of the converter.
    name: str = ""

    def ensure_available(self) -> None:
        """Check that the underlying tool can run.

        The default implementation has nothing to check.

        Raises:
            ConversionError: If the tool is missing.
        """

    @abc.abstractmethod
    def convert(self, raw: bytes) -> dict[str, Any]:
        """Convert raw KML bytes into a GeoJSON FeatureCollection dict.

        Raises:
            ConversionError: If the tool fails or yields no usable document.
        """


def require_feature_collection(document: object, *, source: str) -> dict[str, Any]:
    """Return *document* if it is FeatureCollection-shaped.

    Raises:
        ConversionError: If ``type`` is not ``"FeatureCollection"`` or
            ``features`` is not a list.
    """
    if not isinstance(document, dict):
        msg = f"{source} output is not a JSON object (got {type(document).__name__})"
        raise ConversionError(msg)
    if document.get("type") != "FeatureCollection":
        msg = f"{source} output is not a FeatureCollection (type={document.get('type')!r})"
        raise ConversionError(msg)
    if not isinstance(document.get("features"), list):
        msg = f"{source} output has no 'features' list"
        raise ConversionError(msg)
    return document
