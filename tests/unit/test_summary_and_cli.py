"""Tests for the run summary, shared helpers and the command-line entry point."""

from __future__ import annotations

import os
from pathlib import Path
from unittest.mock import patch

from mymaps_ingest.__main__ import main
from mymaps_ingest.models.summary import RunSummary
from mymaps_ingest.orchestrators.layer_pipeline import LayersRun
from mymaps_ingest.utils.helpers import (
    converted_scratch_path,
    format_file_size,
    layer_output_path,
    raw_scratch_path,
)


class TestFormatFileSize:
    def test_bytes(self) -> None:
        assert format_file_size(512) == "512 bytes"

    def test_kilobytes(self) -> None:
        assert format_file_size(1536) == "1.5 KB"

    def test_megabytes(self) -> None:
        assert format_file_size(3 * 1024 * 1024) == "3.0 MB"


class TestPaths:
    def test_layer_output_path(self) -> None:
        assert layer_output_path(Path("tmp"), "propostas") == Path("tmp/propostas.geojson")

    def test_scratch_paths(self) -> None:
        assert raw_scratch_path(Path("tmp"), "propostas") == Path("tmp/propostas_raw.kml")
        assert converted_scratch_path(Path("tmp"), "propostas") == Path(
            "tmp/propostas_converted.geojson"
        )


class TestRunSummary:
    def test_summary_lines(self) -> None:
        summary = RunSummary(
            layer_name="propostas",
            dataset_id="MAP123",
            output_path="tmp/propostas.geojson",
            total_features=10,
            valid_features=8,
            rejected_features=2,
            geometry_types={"Point": 5, "Polygon": 3},
            media_downloaded=2,
            media_reused=1,
            features_with_media=3,
            output_size_bytes=2048,
        )
        assert summary.summary_lines() == [
            "Layer propostas (MAP123)",
            "  Valid features: 8 of 10 (2 rejected)",
            "  - Point: 5 features",
            "  - Polygon: 3 features",
            "  Media: 2 downloaded, 1 reused, 0 failed",
            "  Features with media: 3",
            "  Output: tmp/propostas.geojson (2.0 KB)",
        ]

    def test_failed_summary(self) -> None:
        summary = RunSummary(
            layer_name="propostas",
            dataset_id="MAP123",
            status="failed",
            error={"message": "HTTP 404"},
        )
        assert not summary.succeeded
        assert summary.summary_lines() == ["Layer propostas (MAP123) failed: HTTP 404"]

    def test_serialises(self) -> None:
        summary = RunSummary(layer_name="propostas", dataset_id="MAP123")
        assert summary.model_dump()["status"] == "succeeded"


class TestMain:
    def test_invalid_config_exits_non_zero(self) -> None:
        env = {k: v for k, v in os.environ.items() if not k.startswith("MY_GOOGLE_MAPS")}
        with patch.dict(os.environ, env, clear=True):
            assert main() == 1

    def test_non_numeric_config_exits_non_zero(self) -> None:
        with patch.dict(os.environ, {"MY_GOOGLE_MAPS_ID": "X", "MEDIA_WORKERS": "many"}):
            assert main() == 1

    def test_exit_code_follows_run(self) -> None:
        failed = LayersRun(
            summaries=[RunSummary(layer_name="a", dataset_id="X", status="failed")]
        )
        with (
            patch.dict(os.environ, {"MY_GOOGLE_MAPS_ID": "X"}),
            patch("mymaps_ingest.__main__.run_layers", return_value=failed) as run_layers,
        ):
            assert main() == 1
        run_layers.assert_called_once()

    def test_success(self) -> None:
        ok = LayersRun(
            summaries=[RunSummary(layer_name="a", dataset_id="X")],
            handoff=[("a", Path("tmp/a.geojson"))],
        )
        with (
            patch.dict(os.environ, {"MY_GOOGLE_MAPS_ID": "X"}),
            patch("mymaps_ingest.__main__.run_layers", return_value=ok),
        ):
            assert main() == 0
