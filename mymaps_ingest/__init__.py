"""My Maps layer ingestion pipeline.

Downloads a Google My Maps dataset as KML, converts it to GeoJSON,
drops structurally invalid features, localises embedded media and
writes one FeatureCollection per logical layer for downstream tiling.
"""

__version__ = "0.1.0"
