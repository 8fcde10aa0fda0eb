"""Pydantic run summary for one layer.

The summary is the end-of-run report: what was fetched, how many
features survived validation, what happened to media, and where the
output went.  Non-fatal conditions (rejected features, failed media)
surface only here.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from mymaps_ingest.utils.helpers import format_file_size


class RunSummary(BaseModel):
    """Outcome of one layer run.

    Attributes:
        layer_name: Logical layer name (output basename).
        dataset_id: My Maps dataset ID.
        output_path: Written FeatureCollection path (empty if the run failed).
        total_features: Features in the converter output.
        valid_features: Features that passed geometry validation.
        rejected_features: Features dropped by geometry validation.
        geometry_types: Valid feature count per geometry type, in first-seen order.
        media_downloaded: Assets fetched over the network in this run.
        media_reused: Distinct assets adopted from disk or the run cache.
        media_failed: Distinct URLs that could not be localised.
        features_with_media: Valid features still carrying media links.
        output_size_bytes: Size of the written file in bytes.
        status: ``"succeeded"`` or ``"failed"``.
        error: Structured error payload for a failed run.
    """

    layer_name: str
    dataset_id: str
    output_path: str = ""
    total_features: int = 0
    valid_features: int = 0
    rejected_features: int = 0
    geometry_types: dict[str, int] = Field(default_factory=dict)
    media_downloaded: int = 0
    media_reused: int = 0
    media_failed: int = 0
    features_with_media: int = 0
    output_size_bytes: int = 0
    status: str = "succeeded"
    error: dict[str, object] | None = None

    @property
    def succeeded(self) -> bool:
        return self.status == "succeeded"

    def summary_lines(self) -> list[str]:
        """Human-readable report lines for the end-of-run log."""
        if not self.succeeded:
            message = (self.error or {}).get("message", "unknown error")
            return [f"Layer {self.layer_name} ({self.dataset_id}) failed: {message}"]

        lines = [
            f"Layer {self.layer_name} ({self.dataset_id})",
            f"  Valid features: {self.valid_features} of {self.total_features}"
            f" ({self.rejected_features} rejected)",
        ]
        lines.extend(
            f"  - {geom_type}: {count} features" for geom_type, count in self.geometry_types.items()
        )
        lines.append(
            f"  Media: {self.media_downloaded} downloaded, {self.media_reused} reused,"
            f" {self.media_failed} failed"
        )
        if self.features_with_media:
            lines.append(f"  Features with media: {self.features_with_media}")
        lines.append(f"  Output: {self.output_path} ({format_file_size(self.output_size_bytes)})")
        return lines
