"""KML → GeoJSON converters.

Implements the converter capability as a swappable strategy:
- Converter: Abstract base class defining the interface
- Ogr2OgrConverter: GDAL ``ogr2ogr`` subprocess (default)
- FionaConverter: In-process OGR through fiona

The active converter is selected via configuration; tests substitute
fakes that return canned FeatureCollection documents.
"""

from mymaps_ingest.converters.base import Converter, require_feature_collection
from mymaps_ingest.converters.factory import (
    FIONA,
    OGR2OGR,
    get_converter,
    list_converters,
    register_converter,
    unregister_converter,
)

__all__ = [
    "FIONA",
    "OGR2OGR",
    "Converter",
    "get_converter",
    "list_converters",
    "register_converter",
    "require_feature_collection",
    "unregister_converter",
]
