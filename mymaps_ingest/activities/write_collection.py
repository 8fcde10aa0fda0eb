"""Write collection activity — serialise one layer's FeatureCollection.

Output is deterministic: fixed key order, two-space indentation, UTF-8
without escaping and a trailing newline, so unchanged input produces a
byte-identical file and diffs in version control stay readable.  The
file is written through a temporary sibling and atomically replaced.
"""

from __future__ import annotations

import contextlib
import json
import logging
import os
from typing import TYPE_CHECKING

from mymaps_ingest.core.constants import CRS84_NAME
from mymaps_ingest.core.exceptions import WriteError
from mymaps_ingest.utils.helpers import layer_output_path

if TYPE_CHECKING:
    from collections.abc import Iterable
    from pathlib import Path

    from mymaps_ingest.models.contracts import LayerCollection
    from mymaps_ingest.models.feature import Feature

logger = logging.getLogger("mymaps_ingest.activities.write_collection")


def collection_name(layer_name: str, dataset_id: str) -> str:
    """Format: ``"<Layer> Layer (<dataset_id>)"``."""
    return f"{layer_name.capitalize()} Layer ({dataset_id})"


def build_collection(
    layer_name: str,
    dataset_id: str,
    features: Iterable[Feature],
) -> LayerCollection:
    """Assemble the FeatureCollection document without touching the filesystem."""
    return {
        "type": "FeatureCollection",
        "name": collection_name(layer_name, dataset_id),
        "crs": {"type": "name", "properties": {"name": CRS84_NAME}},
        "features": [feature.to_geojson() for feature in features],  # type: ignore[misc]
    }


def serialise_collection(collection: LayerCollection) -> str:
    """Serialise *collection* deterministically."""
    return json.dumps(collection, indent=2, ensure_ascii=False) + "\n"


def write_collection(
    layer_name: str,
    dataset_id: str,
    features: Iterable[Feature],
    *,
    output_dir: Path,
) -> Path:
    """Write ``<output_dir>/<layer_name>.geojson`` and return its path.

    Raises:
        WriteError: On any filesystem failure.
    """
    collection = build_collection(layer_name, dataset_id, features)
    text = serialise_collection(collection)
    output_path = layer_output_path(output_dir, layer_name)
    tmp_path = output_path.with_name(f".{output_path.name}.tmp")

    try:
        output_dir.mkdir(parents=True, exist_ok=True)
        tmp_path.write_text(text, encoding="utf-8")
        os.replace(tmp_path, output_path)
    except OSError as exc:
        with contextlib.suppress(OSError):
            tmp_path.unlink(missing_ok=True)
        msg = f"Cannot write layer {layer_name!r} to {output_path}: {exc}"
        raise WriteError(msg) from exc

    logger.info(
        "write_collection completed | layer=%s | features=%d | path=%s",
        layer_name,
        len(collection["features"]),
        output_path,
    )
    return output_path
