"""Pipeline configuration loaded from environment variables.

All configuration values have sensible defaults for a static-site
checkout (``tmp/`` for outputs, ``assets/data/images`` for media).

Fail-fast validation:
    ``from_env()`` raises ``ConfigValidationError`` if any value is out
    of its valid range, so bad configuration is caught before any
    network call is made.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from mymaps_ingest.core.constants import (
    DEFAULT_LAYER_NAME,
    DEFAULT_MEDIA_DIR,
    DEFAULT_MEDIA_WORKERS,
    DEFAULT_OUTPUT_DIR,
    DEFAULT_SCRATCH_DIR,
    DEFAULT_SOURCE_BASE_URL,
    MEDIA_TIMEOUT_SECONDS,
    SOURCE_TIMEOUT_SECONDS,
)
from mymaps_ingest.core.exceptions import FatalError

_TRUTHY = frozenset({"1", "true", "yes", "on"})


class ConfigValidationError(FatalError):
    """Raised when configuration values are missing or out of valid range.

    Attributes:
        key: The configuration key that failed validation.
        value: The invalid value.
    """

    default_stage = "config"
    default_code = "CONFIG_VALIDATION_FAILED"

    def __init__(self, key: str, value: object, message: str) -> None:
        self.key = key
        self.value = value
        super().__init__(f"Invalid configuration {key}={value!r}: {message}")


@dataclass(frozen=True, slots=True)
class LayerSpec:
    """One logical layer: output basename plus the My Maps dataset it comes from."""

    name: str
    dataset_id: str


@dataclass(frozen=True, slots=True)
class PipelineConfig:
    """Immutable pipeline configuration.

    Attributes:
        layers: Layers to ingest, each written to its own file.
        output_dir: Directory receiving ``<layer>.geojson`` files.
        scratch_dir: Directory for raw KML and intermediate GeoJSON.
        media_dir: Directory for localised media assets.
        converter: Registered converter name (``ogr2ogr`` or ``fiona``).
        media_workers: Maximum concurrent media downloads.
        source_timeout_s: Timeout for the KML export request, in seconds.
        media_timeout_s: Timeout for each media request, in seconds.
        source_base_url: My Maps KML export endpoint.
        keep_scratch: Keep scratch files after a successful layer run.
    """

    layers: tuple[LayerSpec, ...] = field(default_factory=tuple)
    output_dir: Path = Path(DEFAULT_OUTPUT_DIR)
    scratch_dir: Path = Path(DEFAULT_SCRATCH_DIR)
    media_dir: Path = Path(DEFAULT_MEDIA_DIR)
    converter: str = "ogr2ogr"
    media_workers: int = DEFAULT_MEDIA_WORKERS
    source_timeout_s: float = SOURCE_TIMEOUT_SECONDS
    media_timeout_s: float = MEDIA_TIMEOUT_SECONDS
    source_base_url: str = DEFAULT_SOURCE_BASE_URL
    keep_scratch: bool = False

    @classmethod
    def from_env(cls) -> PipelineConfig:
        """Load and validate configuration from environment variables.

        ``MY_GOOGLE_MAPS_LAYERS`` (``name=id,name=id``) takes precedence
        over the single-layer pair ``MY_GOOGLE_MAPS_LAYER`` /
        ``MY_GOOGLE_MAPS_ID``.

        Raises:
            ConfigValidationError: If a value is out of range, a layer
                entry is malformed, or no dataset ID is configured.
            ValueError: If a numeric environment variable cannot be
                parsed (e.g. ``MEDIA_WORKERS=abc``).
        """
        layers_raw = os.getenv("MY_GOOGLE_MAPS_LAYERS", "").strip()
        if layers_raw:
            layers = parse_layers(layers_raw)
        else:
            layers = (
                LayerSpec(
                    name=os.getenv("MY_GOOGLE_MAPS_LAYER", DEFAULT_LAYER_NAME),
                    dataset_id=os.getenv("MY_GOOGLE_MAPS_ID", ""),
                ),
            )

        config = cls(
            layers=layers,
            output_dir=Path(os.getenv("OUTPUT_DIR", DEFAULT_OUTPUT_DIR)),
            scratch_dir=Path(os.getenv("SCRATCH_DIR", DEFAULT_SCRATCH_DIR)),
            media_dir=Path(os.getenv("MEDIA_DIR", DEFAULT_MEDIA_DIR)),
            converter=os.getenv("CONVERTER", "ogr2ogr"),
            media_workers=int(os.getenv("MEDIA_WORKERS", str(DEFAULT_MEDIA_WORKERS))),
            source_timeout_s=float(os.getenv("SOURCE_TIMEOUT_S", str(SOURCE_TIMEOUT_SECONDS))),
            media_timeout_s=float(os.getenv("MEDIA_TIMEOUT_S", str(MEDIA_TIMEOUT_SECONDS))),
            source_base_url=os.getenv("SOURCE_BASE_URL", DEFAULT_SOURCE_BASE_URL),
            keep_scratch=os.getenv("KEEP_SCRATCH", "").strip().lower() in _TRUTHY,
        )
        validate_config(config)
        return config


def parse_layers(value: str) -> tuple[LayerSpec, ...]:
    """Parse ``name=dataset_id`` pairs separated by commas.

    Raises:
        ConfigValidationError: If an entry lacks ``=`` or either side is empty.
    """
    layers: list[LayerSpec] = []
    for entry in value.split(","):
        entry = entry.strip()
        if not entry:
            continue
        name, sep, dataset_id = entry.partition("=")
        if not sep or not name.strip() or not dataset_id.strip():
            raise ConfigValidationError(
                "MY_GOOGLE_MAPS_LAYERS",
                entry,
                "each entry must look like layer_name=dataset_id",
            )
        layers.append(LayerSpec(name=name.strip(), dataset_id=dataset_id.strip()))
    return tuple(layers)


def validate_config(config: PipelineConfig) -> None:
    """Validate configuration ranges.  Raises ``ConfigValidationError``."""
    if not config.layers:
        raise ConfigValidationError("MY_GOOGLE_MAPS_LAYERS", "", "at least one layer is required")

    seen: set[str] = set()
    for layer in config.layers:
        if not layer.dataset_id:
            raise ConfigValidationError(
                "MY_GOOGLE_MAPS_ID",
                layer.dataset_id,
                "must not be empty; copy it from https://www.google.com/maps/d/viewer?mid=<ID>",
            )
        if not layer.name or "/" in layer.name or "\\" in layer.name:
            raise ConfigValidationError(
                "MY_GOOGLE_MAPS_LAYER",
                layer.name,
                "must be a non-empty file basename",
            )
        # The basename becomes the layer name in the tiled archive.
        if layer.name in seen:
            raise ConfigValidationError(
                "MY_GOOGLE_MAPS_LAYERS",
                layer.name,
                "layer names must be unique",
            )
        seen.add(layer.name)

    if config.media_workers < 1:
        raise ConfigValidationError("MEDIA_WORKERS", config.media_workers, "must be >= 1")

    if config.source_timeout_s <= 0:
        raise ConfigValidationError(
            "SOURCE_TIMEOUT_S", config.source_timeout_s, "must be > 0 (seconds)"
        )

    if config.media_timeout_s <= 0:
        raise ConfigValidationError(
            "MEDIA_TIMEOUT_S", config.media_timeout_s, "must be > 0 (seconds)"
        )

    if not config.converter:
        raise ConfigValidationError("CONVERTER", config.converter, "must not be empty")
