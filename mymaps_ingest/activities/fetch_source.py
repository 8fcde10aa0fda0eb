"""Fetch source activity — download the KML export of a My Maps dataset.

Requests the ``forcekml=1`` export so the body is plain KML rather than
a KMZ archive, applies a bounded timeout and redirect budget, and sniffs
the body for KML before handing it on.  The raw payload is persisted to
the scratch directory as soon as the server answers, so a payload that
is rejected here or breaks the converter later stays diagnosable.
"""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING
from urllib.parse import urlencode

import httpx

from mymaps_ingest.core.constants import (
    DEFAULT_SOURCE_BASE_URL,
    SOURCE_ACCEPT,
    SOURCE_MAX_REDIRECTS,
    SOURCE_TIMEOUT_SECONDS,
    USER_AGENT,
)
from mymaps_ingest.core.exceptions import DownloadError, WriteError

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger("mymaps_ingest.activities.fetch_source")

# Cheap content sniff: an XML declaration or a <kml> root somewhere in the body.
_KML_SNIFF_RE = re.compile(rb"<\?xml|<kml", re.IGNORECASE)

_PREVIEW_BYTES = 200


def build_source_url(dataset_id: str, *, base_url: str = DEFAULT_SOURCE_BASE_URL) -> str:
    """Return the KML export URL for *dataset_id*."""
    return f"{base_url}?{urlencode({'mid': dataset_id, 'forcekml': 1})}"


def looks_like_kml(content: bytes) -> bool:
    """Return True if *content* looks like an XML/KML document."""
    return _KML_SNIFF_RE.search(content) is not None


def fetch_source(
    dataset_id: str,
    *,
    scratch_path: Path,
    base_url: str = DEFAULT_SOURCE_BASE_URL,
    timeout: float = SOURCE_TIMEOUT_SECONDS,
    max_redirects: int = SOURCE_MAX_REDIRECTS,
    transport: httpx.BaseTransport | None = None,
) -> bytes:
    """Download the raw KML for *dataset_id*.

    Args:
        dataset_id: My Maps ``mid`` identifier.
        scratch_path: File the raw body is persisted to for debugging.
        base_url: Export endpoint (overridable for tests and mirrors).
        timeout: Per-request timeout in seconds.
        max_redirects: Maximum redirect hops to follow.
        transport: Optional httpx transport (e.g. ``httpx.MockTransport``).

    Returns:
        The raw response body.

    Raises:
        DownloadError: Empty dataset ID, transport failure, non-200
            status, or a body that does not look like KML.
        WriteError: If the raw payload cannot be persisted.
    """
    if not dataset_id:
        msg = "fetch_source: dataset ID is empty"
        raise DownloadError(msg, hint="set MY_GOOGLE_MAPS_ID to the map's mid value")

    url = build_source_url(dataset_id, base_url=base_url)
    logger.info("fetch_source started | dataset=%s | url=%s", dataset_id, url)

    try:
        with httpx.Client(
            timeout=timeout,
            follow_redirects=True,
            max_redirects=max_redirects,
            headers={"User-Agent": USER_AGENT, "Accept": SOURCE_ACCEPT},
            transport=transport,
        ) as client:
            response = client.get(url)
    except httpx.HTTPError as exc:
        msg = f"HTTP request for dataset {dataset_id} failed: {exc}"
        raise DownloadError(
            msg,
            hint="network connectivity issue, timeout, or Google Maps service issue",
        ) from exc

    if response.status_code != 200:
        msg = f"Failed to download map data for dataset {dataset_id} (HTTP {response.status_code})"
        raise DownloadError(msg)

    content = response.content
    _persist_raw(content, scratch_path)

    if not looks_like_kml(content):
        preview = content[:_PREVIEW_BYTES].decode("utf-8", errors="replace")
        msg = f"Downloaded content for dataset {dataset_id} does not look like KML: {preview!r}"
        raise DownloadError(msg, hint=f"raw payload kept at {scratch_path}")

    logger.info(
        "fetch_source completed | dataset=%s | size=%d bytes | raw=%s",
        dataset_id,
        len(content),
        scratch_path,
    )
    return content


def _persist_raw(content: bytes, scratch_path: Path) -> None:
    """Write the raw payload to *scratch_path*.  Raises ``WriteError``."""
    try:
        scratch_path.parent.mkdir(parents=True, exist_ok=True)
        scratch_path.write_bytes(content)
    except OSError as exc:
        msg = f"Cannot persist raw payload to {scratch_path}: {exc}"
        raise WriteError(msg) from exc
    logger.debug("Raw payload saved | path=%s | size=%d bytes", scratch_path, len(content))
