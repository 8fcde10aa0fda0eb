"""In-process converter using fiona (OGR KML driver).

My Maps exports one KML ``Folder`` per map layer; OGR exposes each
folder as a separate layer, so every layer is read and concatenated in
file order.  Geometries and properties are copied as plain GeoJSON
mappings without any repair.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from mymaps_ingest.converters.base import Converter, require_feature_collection
from mymaps_ingest.core.constants import DEFAULT_SCRATCH_DIR
from mymaps_ingest.core.exceptions import ConversionError
from mymaps_ingest.utils.helpers import raw_scratch_path

logger = logging.getLogger("mymaps_ingest.converters.fiona")


class FionaConverter(Converter):
    """Convert KML with fiona's OGR KML driver.

    Args:
        scratch_dir: Directory holding the raw KML file fiona opens.
        stem: Filename stem for the scratch file (usually the layer name).
    """

    name = "fiona"

    def __init__(self, scratch_dir: Path | str = DEFAULT_SCRATCH_DIR, *, stem: str = "source") -> None:
        self._scratch_dir = Path(scratch_dir)
        self._stem = stem

    def ensure_available(self) -> None:
        import fiona

        if "KML" not in fiona.supported_drivers and "LIBKML" not in fiona.supported_drivers:
            msg = "fiona is installed but its GDAL build has no KML driver"
            raise ConversionError(msg, hint="install a GDAL build with KML/LIBKML support")

    def convert(self, raw: bytes) -> dict[str, Any]:
        import fiona

        kml_path = raw_scratch_path(self._scratch_dir, self._stem)
        try:
            self._scratch_dir.mkdir(parents=True, exist_ok=True)
            kml_path.write_bytes(raw)
        except OSError as exc:
            msg = f"Cannot write KML to {kml_path}: {exc}"
            raise ConversionError(msg) from exc

        features: list[dict[str, Any]] = []
        try:
            for layer in fiona.listlayers(str(kml_path)):
                with fiona.open(str(kml_path), layer=layer, driver="KML") as collection:
                    for record in collection:
                        features.append(_record_to_geojson(record))
        except ConversionError:
            raise
        except Exception as exc:
            msg = f"fiona could not read {kml_path}: {exc}"
            raise ConversionError(msg) from exc

        logger.info("Converted to GeoJSON with fiona | features=%d", len(features))
        return require_feature_collection(
            {"type": "FeatureCollection", "features": features},
            source=self.name,
        )


def _record_to_geojson(record: Any) -> dict[str, Any]:
    """Convert a fiona record into a plain GeoJSON feature dict."""
    geom = record.get("geometry")
    props = record.get("properties") or {}

    geometry: dict[str, Any] | None = None
    if geom is not None:
        geometry = _to_lists(dict(getattr(geom, "__geo_interface__", geom)))

    return {
        "type": "Feature",
        "properties": {str(k): v for k, v in dict(props).items()},
        "geometry": geometry,
    }


def _to_lists(value: Any) -> Any:
    """Recursively turn coordinate tuples into lists."""
    if isinstance(value, dict):
        return {k: _to_lists(v) for k, v in value.items()}
    if isinstance(value, list | tuple):
        return [_to_lists(v) for v in value]
    return value
