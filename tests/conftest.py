"""Shared pytest fixtures for the My Maps ingestion test suite."""

from __future__ import annotations

from pathlib import Path

import httpx
import pytest

from mymaps_ingest.core.config import LayerSpec, PipelineConfig
from tests.factories import PHOTO_URL, SAMPLE_KML, RecordingHandler, image_response

# ---------------------------------------------------------------------------
# Path fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def media_dir(tmp_path: Path) -> Path:
    """Return a per-test media directory (not created)."""
    return tmp_path / "assets" / "data" / "images"


# ---------------------------------------------------------------------------
# Configuration fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def pipeline_config(tmp_path: Path, media_dir: Path) -> PipelineConfig:
    """Single-layer configuration rooted in ``tmp_path``."""
    return PipelineConfig(
        layers=(LayerSpec(name="propostas", dataset_id="MAP123"),),
        output_dir=tmp_path / "out",
        scratch_dir=tmp_path / "scratch",
        media_dir=media_dir,
        media_workers=2,
    )


# ---------------------------------------------------------------------------
# HTTP fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def source_and_media_handler() -> RecordingHandler:
    """Serve the sample KML and one photo; everything else is 404."""
    return RecordingHandler(
        {
            "https://www.google.com/maps/d/kml": httpx.Response(200, content=SAMPLE_KML),
            PHOTO_URL: image_response(),
        }
    )
