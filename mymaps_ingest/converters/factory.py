"""Converter lookup by name.

``PipelineConfig.converter`` (the ``CONVERTER`` environment variable) names
the KML → GeoJSON backend; ``get_converter`` turns that name into an
instance bound to a layer's scratch files::

    converter = get_converter("ogr2ogr", scratch_dir=Path("tmp"), stem="propostas")

Backends are stored as loaders returning the converter class, so GDAL's
Python bindings are imported only when the fiona backend is chosen.
Extra backends (and test doubles) are added with ``register_converter``.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from mymaps_ingest.core.exceptions import ConversionError

if TYPE_CHECKING:
    from collections.abc import Callable

    from mymaps_ingest.converters.base import Converter

    ConverterLoader = Callable[[], type[Converter]]

logger = logging.getLogger("mymaps_ingest.converters.factory")

OGR2OGR = "ogr2ogr"
FIONA = "fiona"


def _load_ogr2ogr() -> type[Converter]:
    from mymaps_ingest.converters.ogr2ogr import Ogr2OgrConverter

    return Ogr2OgrConverter


def _load_fiona() -> type[Converter]:
    from mymaps_ingest.converters.fiona_converter import FionaConverter

    return FionaConverter


_BUILTIN_CONVERTERS: dict[str, ConverterLoader] = {
    OGR2OGR: _load_ogr2ogr,
    FIONA: _load_fiona,
}

_CONVERTER_REGISTRY: dict[str, ConverterLoader] = dict(_BUILTIN_CONVERTERS)


def register_converter(name: str, loader: ConverterLoader) -> None:
    """Make *loader*'s converter selectable as *name*.

    Raises:
        ValueError: *name* is empty or shadows a built-in backend.
    """
    if not name:
        msg = "Converter name must be non-empty"
        raise ValueError(msg)
    if name in _BUILTIN_CONVERTERS:
        msg = f"Converter {name!r} is built in and cannot be replaced"
        raise ValueError(msg)
    _CONVERTER_REGISTRY[name] = loader
    logger.debug("Converter registered | name=%s", name)


def unregister_converter(name: str) -> None:
    """Forget a converter added with ``register_converter``; built-ins stay."""
    if name not in _BUILTIN_CONVERTERS:
        _CONVERTER_REGISTRY.pop(name, None)


def get_converter(name: str, **kwargs: Any) -> Converter:
    """Instantiate the converter registered as *name*.

    *kwargs* go to the converter constructor (``scratch_dir``, ``stem``).

    Raises:
        ConversionError: No converter is registered under *name*.
    """
    loader = _CONVERTER_REGISTRY.get(name)
    if loader is None:
        msg = f"Unknown converter: {name!r}. Available: {', '.join(list_converters())}"
        raise ConversionError(msg, hint="set CONVERTER to one of the available names")

    logger.debug("Converter selected | name=%s", name)
    return loader()(**kwargs)


def list_converters() -> list[str]:
    return sorted(_CONVERTER_REGISTRY)
