"""``ogr2ogr`` subprocess converter.

Runs GDAL's ``ogr2ogr -f GeoJSON <out> <in>`` on the raw KML written to
the scratch directory and loads the result.  The tool is a black box:
a non-zero exit status or a missing output file is a ``ConversionError``.
"""

from __future__ import annotations

import json
import logging
import shutil
import subprocess
from pathlib import Path
from typing import Any

from mymaps_ingest.converters.base import Converter, require_feature_collection
from mymaps_ingest.core.constants import DEFAULT_SCRATCH_DIR
from mymaps_ingest.core.exceptions import ConversionError
from mymaps_ingest.utils.helpers import converted_scratch_path, raw_scratch_path

logger = logging.getLogger("mymaps_ingest.converters.ogr2ogr")

OGR2OGR_EXECUTABLE = "ogr2ogr"

_INSTALL_HINT = (
    "install GDAL/OGR: brew install gdal (macOS) or apt-get install gdal-bin (Ubuntu)"
)

# Upper bound for a single conversion; KML exports are small.
_DEFAULT_TIMEOUT_SECONDS = 300.0


class Ogr2OgrConverter(Converter):
    """Convert KML with the ``ogr2ogr`` command-line tool.

    Args:
        scratch_dir: Directory for the input KML and output GeoJSON.
        stem: Filename stem for the scratch files (usually the layer name).
        executable: ``ogr2ogr`` binary name or path.
        timeout: Subprocess timeout in seconds.
    """

    name = "ogr2ogr"

    def __init__(
        self,
        scratch_dir: Path | str = DEFAULT_SCRATCH_DIR,
        *,
        stem: str = "source",
        executable: str = OGR2OGR_EXECUTABLE,
        timeout: float = _DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        self._scratch_dir = Path(scratch_dir)
        self._stem = stem
        self._executable = executable
        self._timeout = timeout

    @property
    def input_path(self) -> Path:
        return raw_scratch_path(self._scratch_dir, self._stem)

    @property
    def output_path(self) -> Path:
        return converted_scratch_path(self._scratch_dir, self._stem)

    def ensure_available(self) -> None:
        if shutil.which(self._executable) is None:
            msg = f"{self._executable} is required but was not found on PATH"
            raise ConversionError(msg, hint=_INSTALL_HINT)

    def convert(self, raw: bytes) -> dict[str, Any]:
        input_path = self.input_path
        output_path = self.output_path

        try:
            self._scratch_dir.mkdir(parents=True, exist_ok=True)
            if not input_path.exists() or input_path.read_bytes() != raw:
                input_path.write_bytes(raw)
            # ogr2ogr refuses to overwrite an existing GeoJSON file.
            output_path.unlink(missing_ok=True)
        except OSError as exc:
            msg = f"Cannot prepare scratch files in {self._scratch_dir}: {exc}"
            raise ConversionError(msg) from exc

        cmd = [self._executable, "-f", "GeoJSON", str(output_path), str(input_path)]
        logger.info("Converting KML to GeoJSON | cmd=%s", " ".join(cmd))

        try:
            completed = subprocess.run(  # noqa: S603
                cmd,
                capture_output=True,
                text=True,
                timeout=self._timeout,
                check=False,
            )
        except (OSError, subprocess.TimeoutExpired) as exc:
            msg = f"{self._executable} could not be run: {exc}"
            raise ConversionError(msg, hint=_INSTALL_HINT) from exc

        if completed.returncode != 0:
            stderr = (completed.stderr or "").strip()
            msg = f"{self._executable} exited with status {completed.returncode}: {stderr}"
            raise ConversionError(msg)

        if not output_path.exists():
            msg = f"{self._executable} produced no output at {output_path}"
            raise ConversionError(msg)

        try:
            document = json.loads(output_path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            msg = f"Cannot read {self._executable} output {output_path}: {exc}"
            raise ConversionError(msg) from exc

        document = require_feature_collection(document, source=self._executable)
        logger.info(
            "Converted to GeoJSON | features=%d | output=%s",
            len(document["features"]),
            output_path,
        )
        return document
