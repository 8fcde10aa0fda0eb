"""Content-addressed media asset model.

A MediaAsset pairs a remote URL with the deterministic local file it is
stored in.  The filename depends only on the layer, the owning feature's
position among the layer's valid features and the URL, so repeated runs
over the same input resolve to the same file and can reuse it without
downloading.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from urllib.parse import urlsplit

from mymaps_ingest.core.constants import (
    DEFAULT_IMAGE_EXTENSION,
    IMAGE_EXTENSIONS,
    URL_HASH_LENGTH,
)


@dataclass(frozen=True, slots=True)
class MediaAsset:
    """A remote media URL and its local, content-addressed location.

    Attributes:
        url: Remote media URL.
        filename: ``<layer>_<feature_index>_<url_hash><ext>``.
        local_path: Filesystem path the body is written to.
        reference: Relative path written into feature properties.
    """

    url: str
    filename: str
    local_path: Path
    reference: str

    @classmethod
    def for_url(
        cls,
        url: str,
        *,
        layer_name: str,
        feature_index: int,
        media_dir: Path,
    ) -> MediaAsset:
        """Derive the asset location for *url* owned by feature *feature_index*."""
        filename = build_asset_filename(url, layer_name=layer_name, feature_index=feature_index)
        local_path = media_dir / filename
        return cls(
            url=url,
            filename=filename,
            local_path=local_path,
            reference=relative_reference(local_path),
        )


def url_hash(url: str) -> str:
    """Return the short MD5 hex prefix used in asset filenames."""
    return hashlib.md5(url.encode("utf-8")).hexdigest()[:URL_HASH_LENGTH]  # noqa: S324


def infer_extension(url: str) -> str:
    """Infer an image extension from the URL path, defaulting to ``.jpg``.

    Best effort: unparseable URLs and unknown suffixes fall back to the
    default rather than failing.
    """
    try:
        path = urlsplit(url).path
    except ValueError:
        return DEFAULT_IMAGE_EXTENSION
    suffix = PurePosixPath(path).suffix.lower()
    if suffix in IMAGE_EXTENSIONS:
        return suffix
    return DEFAULT_IMAGE_EXTENSION


def build_asset_filename(url: str, *, layer_name: str, feature_index: int) -> str:
    """Format: ``<layer>_<feature_index>_<url_hash><ext>``."""
    return f"{layer_name}_{feature_index}_{url_hash(url)}{infer_extension(url)}"


def relative_reference(local_path: Path) -> str:
    """Return the property value for *local_path*.

    Relative paths are written as ``./<posix path>`` so they resolve from
    the site root; absolute paths are kept as-is.
    """
    if local_path.is_absolute():
        return local_path.as_posix()
    return f"./{local_path.as_posix()}"
