"""Layer pipeline orchestrator.

Coordinates the pipeline steps for one logical layer:

1. Fetch source — download the dataset's KML export
2. Convert — KML → GeoJSON through the configured converter
3. Filter — keep features with structurally valid geometry
4. Fetch media — localise ``gx_media_links`` assets
5. Write — serialise ``<output_dir>/<layer>.geojson``

Failure boundaries:
    ``DownloadError``, ``ConversionError`` and ``WriteError`` are fatal:
    they propagate out of ``run_layer`` and stop ``run_layers`` before
    the next layer.  Rejected features and failed media are non-fatal
    and only appear in the ``RunSummary``.

Layers are independent: each gets its own converter scratch files and
its own ``MediaCache``; only the content-addressed media directory is
shared, which is safe because asset paths are derived from the URL.
"""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from mymaps_ingest.activities.fetch_media import MediaCache, MediaFetcher
from mymaps_ingest.activities.fetch_source import fetch_source
from mymaps_ingest.activities.filter_features import features_from_document, filter_features
from mymaps_ingest.activities.write_collection import write_collection
from mymaps_ingest.converters.factory import get_converter
from mymaps_ingest.core.exceptions import PipelineError
from mymaps_ingest.models.summary import RunSummary
from mymaps_ingest.utils.helpers import converted_scratch_path, raw_scratch_path

if TYPE_CHECKING:
    import httpx

    from mymaps_ingest.converters.base import Converter
    from mymaps_ingest.core.config import LayerSpec, PipelineConfig

logger = logging.getLogger("mymaps_ingest.orchestrators.layer_pipeline")

#: ``(layer_name, file_path)`` pairs handed to the tiling tool.
TileHandoff = list[tuple[str, Path]]


class LayerPipeline:
    """Sequence the pipeline steps for one layer.

    Args:
        config: Pipeline configuration (directories, limits, converter name).
        layer: The layer to ingest.
        converter: Converter to use; built from ``config.converter`` when omitted.
        transport: Optional httpx transport shared by the source and media requests.
        media_cache: Run-scoped media cache; a fresh one is created when omitted.
    """

    def __init__(
        self,
        config: PipelineConfig,
        layer: LayerSpec,
        *,
        converter: Converter | None = None,
        transport: httpx.BaseTransport | None = None,
        media_cache: MediaCache | None = None,
    ) -> None:
        self._config = config
        self._layer = layer
        self._converter = converter or get_converter(
            config.converter,
            scratch_dir=config.scratch_dir,
            stem=layer.name,
        )
        self._transport = transport
        self._media_cache = media_cache if media_cache is not None else MediaCache()

    @property
    def converter(self) -> Converter:
        return self._converter

    def run(self) -> RunSummary:
        """Run the layer end to end and return its summary.

        Raises:
            DownloadError: The source could not be fetched.
            ConversionError: The converter failed.
            WriteError: Scratch or output files could not be written.
        """
        config = self._config
        layer = self._layer

        logger.info(
            "Layer pipeline started | layer=%s | dataset=%s | converter=%s",
            layer.name,
            layer.dataset_id,
            self._converter.name,
        )

        # Fail before any network call if the tool is missing.
        self._converter.ensure_available()

        raw = fetch_source(
            layer.dataset_id,
            scratch_path=raw_scratch_path(config.scratch_dir, layer.name),
            base_url=config.source_base_url,
            timeout=config.source_timeout_s,
            transport=self._transport,
        )

        document = self._converter.convert(raw)

        filtered = filter_features(features_from_document(document))

        media = MediaFetcher(
            layer_name=layer.name,
            media_dir=config.media_dir,
            cache=self._media_cache,
            max_workers=config.media_workers,
            timeout=config.media_timeout_s,
            transport=self._transport,
        ).fetch(filtered.valid)

        output_path = write_collection(
            layer.name,
            layer.dataset_id,
            media.features,
            output_dir=config.output_dir,
        )

        if not config.keep_scratch:
            self._cleanup()

        summary = RunSummary(
            layer_name=layer.name,
            dataset_id=layer.dataset_id,
            output_path=str(output_path),
            total_features=filtered.total_count,
            valid_features=filtered.valid_count,
            rejected_features=filtered.rejected_count,
            geometry_types=_geometry_breakdown(media.features),
            media_downloaded=media.downloaded,
            media_reused=media.reused,
            media_failed=media.failed,
            features_with_media=media.features_with_media,
            output_size_bytes=output_path.stat().st_size,
        )
        for line in summary.summary_lines():
            logger.info(line)
        return summary

    def _cleanup(self) -> None:
        """Remove scratch files of a successful run; failures only warn."""
        for path in (
            raw_scratch_path(self._config.scratch_dir, self._layer.name),
            converted_scratch_path(self._config.scratch_dir, self._layer.name),
        ):
            try:
                path.unlink(missing_ok=True)
            except OSError as exc:
                logger.warning("Could not remove scratch file | path=%s | error=%s", path, exc)
        logger.debug("Cleaned up scratch files | layer=%s", self._layer.name)


def _geometry_breakdown(features: list) -> dict[str, int]:
    counts: Counter[str] = Counter()
    for feature in features:
        kind = feature.kind
        counts[str(kind) if kind is not None else "Unknown"] += 1
    return dict(counts)


def run_layer(
    config: PipelineConfig,
    layer: LayerSpec,
    *,
    converter: Converter | None = None,
    transport: httpx.BaseTransport | None = None,
) -> RunSummary:
    """Run one layer with a fresh media cache.  Fatal errors propagate."""
    return LayerPipeline(config, layer, converter=converter, transport=transport).run()


@dataclass(slots=True)
class LayersRun:
    """Outcome of a multi-layer run.

    Attributes:
        summaries: One summary per attempted layer (the last one failed
            if the run aborted).
        handoff: ``(layer_name, path)`` pairs for every written layer.
    """

    summaries: list[RunSummary] = field(default_factory=list)
    handoff: TileHandoff = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return all(summary.succeeded for summary in self.summaries)

    @property
    def exit_code(self) -> int:
        return 0 if self.succeeded else 1


def run_layers(
    config: PipelineConfig,
    *,
    converter_factory: Callable[[LayerSpec], Converter] | None = None,
    transport: httpx.BaseTransport | None = None,
) -> LayersRun:
    """Run every configured layer in order, stopping at the first fatal error.

    Args:
        config: Pipeline configuration; layer names are unique (validated).
        converter_factory: Builds the converter for a layer; defaults to
            ``config.converter`` through the factory.
        transport: Optional httpx transport for all requests.

    Returns:
        A ``LayersRun`` with per-layer summaries and the tiling hand-off.
    """
    run = LayersRun()
    for layer in config.layers:
        converter = converter_factory(layer) if converter_factory is not None else None
        try:
            summary = run_layer(config, layer, converter=converter, transport=transport)
        except PipelineError as exc:
            if not exc.fatal:
                raise
            logger.error(
                "Layer pipeline failed | layer=%s | dataset=%s | stage=%s | code=%s | %s",
                layer.name,
                layer.dataset_id,
                exc.stage,
                exc.code,
                exc.describe(),
            )
            run.summaries.append(
                RunSummary(
                    layer_name=layer.name,
                    dataset_id=layer.dataset_id,
                    status="failed",
                    error=exc.to_error_dict(),
                )
            )
            break

        run.summaries.append(summary)
        run.handoff.append((layer.name, Path(summary.output_path)))

    if run.succeeded:
        logger.info(
            "All layers written | layers=%s",
            ", ".join(name for name, _ in run.handoff),
        )
    return run
