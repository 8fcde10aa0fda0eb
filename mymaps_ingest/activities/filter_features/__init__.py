"""Feature filtering activity — keep only structurally valid features.

The converter output is taken as-is; this stage only selects.  Invalid
features are expected (unclosed rings, out-of-range coordinates,
geometry-less placemarks) and are dropped silently, surfacing only as
an aggregate count in the run summary.

The filtering pipeline is split into focused modules:
- **_constants**: WGS 84 bounds and minimum point counts
- **_validation**: per-kind geometry rules and dispatch
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

from mymaps_ingest.activities.filter_features._constants import (
    MAX_LATITUDE,
    MAX_LONGITUDE,
    MIN_LATITUDE,
    MIN_LINE_POINTS,
    MIN_LONGITUDE,
    MIN_RING_POINTS,
)
from mymaps_ingest.activities.filter_features._validation import (
    validate_coordinate,
    validate_feature,
    validate_geometry,
    validate_line,
    validate_polygon,
    validate_ring,
)
from mymaps_ingest.models.feature import Feature

logger = logging.getLogger("mymaps_ingest.activities.filter_features")

# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

__all__ = [
    "MAX_LATITUDE",
    "MAX_LONGITUDE",
    "MIN_LATITUDE",
    "MIN_LINE_POINTS",
    "MIN_LONGITUDE",
    "MIN_RING_POINTS",
    "FilterResult",
    "features_from_document",
    "filter_features",
    "validate_coordinate",
    "validate_feature",
    "validate_geometry",
    "validate_line",
    "validate_polygon",
    "validate_ring",
]


@dataclass(frozen=True, slots=True)
class FilterResult:
    """Outcome of a filtering pass.

    Attributes:
        valid: Valid features, in their original order.
        total_count: Number of input features.
        valid_count: Number of valid features.
    """

    valid: list[Feature] = field(default_factory=list)
    total_count: int = 0
    valid_count: int = 0

    @property
    def rejected_count(self) -> int:
        return self.total_count - self.valid_count


def features_from_document(document: Mapping[str, object]) -> list[Feature]:
    """Build ``Feature`` objects from a converter FeatureCollection, indexed by position."""
    raw_features = document.get("features") or []
    if not isinstance(raw_features, list):
        return []
    return [Feature.from_geojson(raw, index) for index, raw in enumerate(raw_features)]


def filter_features(features: Iterable[Feature]) -> FilterResult:
    """Select the features with valid geometry.

    Single order-preserving pass; features are never modified and the
    function never raises.
    """
    total = 0
    valid: list[Feature] = []
    for feature in features:
        total += 1
        if validate_feature(feature):
            valid.append(feature)

    logger.info(
        "filter_features completed | total=%d | valid=%d | rejected=%d",
        total,
        len(valid),
        total - len(valid),
    )
    return FilterResult(valid=valid, total_count=total, valid_count=len(valid))
