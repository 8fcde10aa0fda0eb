"""Data models and schemas.

Defines the data structures used throughout the pipeline:
- Feature / GeometryKind: Converted GeoJSON feature with tagged geometry
- MediaAsset: Content-addressed local copy of a remote media URL
- LayerCollection: Per-layer FeatureCollection document contract
- RunSummary: End-of-run report for one layer
"""

from mymaps_ingest.models.contracts import FeaturePayload, LayerCollection
from mymaps_ingest.models.feature import Feature, GeometryKind
from mymaps_ingest.models.media import MediaAsset
from mymaps_ingest.models.summary import RunSummary

__all__ = [
    "Feature",
    "FeaturePayload",
    "GeometryKind",
    "LayerCollection",
    "MediaAsset",
    "RunSummary",
]
