"""Shared helper functions used across activities and the orchestrator."""

from __future__ import annotations

from pathlib import Path

from mymaps_ingest.core.constants import (
    CONVERTED_SCRATCH_SUFFIX,
    OUTPUT_SUFFIX,
    RAW_SCRATCH_SUFFIX,
)


def format_file_size(size_bytes: int) -> str:
    """Format a byte count as ``bytes``, ``KB`` or ``MB`` with one decimal."""
    if size_bytes < 1024:
        return f"{size_bytes} bytes"
    if size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.1f} KB"
    return f"{size_bytes / (1024 * 1024):.1f} MB"


def layer_output_path(output_dir: Path, layer_name: str) -> Path:
    """Format: ``<output_dir>/<layer_name>.geojson``."""
    return output_dir / f"{layer_name}{OUTPUT_SUFFIX}"


def raw_scratch_path(scratch_dir: Path, layer_name: str) -> Path:
    """Format: ``<scratch_dir>/<layer_name>_raw.kml``."""
    return scratch_dir / f"{layer_name}{RAW_SCRATCH_SUFFIX}"


def converted_scratch_path(scratch_dir: Path, layer_name: str) -> Path:
    """Format: ``<scratch_dir>/<layer_name>_converted.geojson``."""
    return scratch_dir / f"{layer_name}{CONVERTED_SCRATCH_SUFFIX}"
