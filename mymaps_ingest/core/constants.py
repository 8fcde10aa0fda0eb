"""Shared pipeline constants — single source of truth.

Centralises the remote endpoint, HTTP limits, on-disk layout defaults
and GeoJSON literals used across activities and the orchestrator.
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Remote source (Google My Maps KML export)
# ---------------------------------------------------------------------------

DEFAULT_SOURCE_BASE_URL: str = "https://www.google.com/maps/d/kml"
"""Export endpoint; ``forcekml=1`` is always requested so the body is plain KML, not KMZ."""

USER_AGENT: str = "Mozilla/5.0 (compatible; My Maps Layer Downloader)"

SOURCE_ACCEPT: str = "application/vnd.google-earth.kml+xml,application/xml,text/xml,*/*"
MEDIA_ACCEPT: str = "image/*,*/*"

SOURCE_TIMEOUT_SECONDS: float = 30.0
SOURCE_MAX_REDIRECTS: int = 5

MEDIA_TIMEOUT_SECONDS: float = 30.0
MEDIA_MAX_REDIRECTS: int = 3
DEFAULT_MEDIA_WORKERS: int = 4

# ---------------------------------------------------------------------------
# Local layout
# ---------------------------------------------------------------------------

DEFAULT_LAYER_NAME: str = "propostas"
DEFAULT_OUTPUT_DIR: str = "tmp"
DEFAULT_SCRATCH_DIR: str = "tmp"
DEFAULT_MEDIA_DIR: str = "assets/data/images"

OUTPUT_SUFFIX: str = ".geojson"
RAW_SCRATCH_SUFFIX: str = "_raw.kml"
CONVERTED_SCRATCH_SUFFIX: str = "_converted.geojson"

# ---------------------------------------------------------------------------
# GeoJSON
# ---------------------------------------------------------------------------

MEDIA_LINKS_PROPERTY: str = "gx_media_links"
"""Property the KML driver uses for My Maps photo/video attachments."""

CRS84_NAME: str = "urn:ogc:def:crs:OGC:1.3:CRS84"

IMAGE_EXTENSIONS: frozenset[str] = frozenset(
    {".jpg", ".jpeg", ".png", ".gif", ".webp", ".bmp", ".svg"}
)
DEFAULT_IMAGE_EXTENSION: str = ".jpg"

URL_HASH_LENGTH: int = 9
