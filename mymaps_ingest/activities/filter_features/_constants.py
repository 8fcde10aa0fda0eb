"""Shared constants for geometry validation."""

from __future__ import annotations

# WGS 84 coordinate bounds
MIN_LONGITUDE = -180.0
MAX_LONGITUDE = 180.0
MIN_LATITUDE = -90.0
MAX_LATITUDE = 90.0

# Minimum points for a LineString
MIN_LINE_POINTS = 2

# Minimum points for a polygon ring (3 distinct + closing = 4)
MIN_RING_POINTS = 4
