"""Fetch media activity — localise ``gx_media_links`` assets.

My Maps attaches photos to placemarks as a ``gx_media_links`` property
holding one or more remote URLs separated by whitespace or commas.  This
activity downloads each URL once into the media directory and rewrites
the property to the local relative paths, so the published map does not
depend on the authoring service's media hosting.

Resolution order for each URL:
1. Run-scoped ``MediaCache`` hit — reuse, no network.
2. Content-addressed file already on disk from a prior run — adopt it
   and seed the cache, no network.
3. Download (bounded timeout and redirects) and persist verbatim.

A URL that fails is logged and skipped; the run always continues.  When
none of a feature's URLs could be localised the property is removed so
the output never points at unreachable remote media.

Concurrency:
    URLs are planned sequentially in feature order (the first feature
    referencing a URL owns its filename), then resolved on a bounded
    thread pool.  ``MediaCache`` is the only shared mutable state; each
    URL is claimed under a lock and later claimants wait on the owner's
    ``Future``, so one URL never triggers two network calls.
"""

from __future__ import annotations

import concurrent.futures
import enum
import logging
import os
import re
import threading
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import httpx

from mymaps_ingest.core.constants import (
    DEFAULT_MEDIA_WORKERS,
    MEDIA_ACCEPT,
    MEDIA_LINKS_PROPERTY,
    MEDIA_MAX_REDIRECTS,
    MEDIA_TIMEOUT_SECONDS,
    USER_AGENT,
)
from mymaps_ingest.core.exceptions import MediaAssetError
from mymaps_ingest.models.media import MediaAsset

if TYPE_CHECKING:
    from collections.abc import Sequence
    from pathlib import Path

    from mymaps_ingest.models.feature import Feature

logger = logging.getLogger("mymaps_ingest.activities.fetch_media")

_SPLIT_RE = re.compile(r"[\s,]+")
_HTTP_URL_RE = re.compile(r"^https?://", re.IGNORECASE)


# ---------------------------------------------------------------------------
# Run-scoped cache
# ---------------------------------------------------------------------------


class MediaCache:
    """URL → local reference map shared by the download workers of one run.

    Each entry is a ``Future`` resolved by the worker that claimed the URL:
    a reference string on success, ``None`` if the URL could not be
    localised.  Failed URLs stay failed for the lifetime of the cache.
    """

    def __init__(self) -> None:
        self._entries: dict[str, concurrent.futures.Future[str | None]] = {}
        self._lock = threading.Lock()

    def claim(self, url: str) -> tuple[concurrent.futures.Future[str | None], bool]:
        """Return the entry for *url* and whether the caller now owns it.

        The owner must resolve the returned future exactly once.
        """
        with self._lock:
            entry = self._entries.get(url)
            if entry is not None:
                return entry, False
            entry = concurrent.futures.Future()
            self._entries[url] = entry
            return entry, True

    def lookup(self, url: str) -> str | None:
        """Return the resolved reference for *url*, or ``None`` if unknown, pending or failed."""
        with self._lock:
            entry = self._entries.get(url)
        if entry is None or not entry.done():
            return None
        return entry.result()

    def __contains__(self, url: object) -> bool:
        with self._lock:
            return url in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


class MediaOutcome(enum.StrEnum):
    """How a single URL was resolved."""

    DOWNLOADED = "downloaded"
    REUSED = "reused"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class _Resolution:
    url: str
    reference: str | None
    outcome: MediaOutcome
    error: MediaAssetError | None = None


@dataclass(frozen=True, slots=True)
class MediaResult:
    """Outcome of a media pass over a feature list.

    Attributes:
        features: Features with ``gx_media_links`` rewritten or removed,
            in input order.
        downloaded: Distinct URLs fetched over the network.
        reused: Distinct URLs resolved from the cache or from disk.
        failed: Distinct URLs that could not be localised.
        features_with_media: Features still carrying media links.
        errors: One ``MediaAssetError`` per failed URL.
    """

    features: list[Feature] = field(default_factory=list)
    downloaded: int = 0
    reused: int = 0
    failed: int = 0
    features_with_media: int = 0
    errors: list[MediaAssetError] = field(default_factory=list)


def split_media_links(value: object) -> list[str]:
    """Split a ``gx_media_links`` value into URLs, dropping empty tokens."""
    if value is None:
        return []
    return [token for token in _SPLIT_RE.split(str(value).strip()) if token]


# ---------------------------------------------------------------------------
# Fetcher
# ---------------------------------------------------------------------------


class MediaFetcher:
    """Download and localise media referenced by a layer's features.

    Args:
        layer_name: Layer name used as the asset filename prefix.
        media_dir: Directory receiving asset files.
        cache: Run-scoped cache; a fresh one is created when omitted.
        max_workers: Maximum concurrent downloads.
        timeout: Per-request timeout in seconds.
        max_redirects: Maximum redirect hops per request.
        transport: Optional httpx transport (e.g. ``httpx.MockTransport``).
    """

    def __init__(
        self,
        *,
        layer_name: str,
        media_dir: Path,
        cache: MediaCache | None = None,
        max_workers: int = DEFAULT_MEDIA_WORKERS,
        timeout: float = MEDIA_TIMEOUT_SECONDS,
        max_redirects: int = MEDIA_MAX_REDIRECTS,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._layer_name = layer_name
        self._media_dir = media_dir
        self._cache = cache if cache is not None else MediaCache()
        self._max_workers = max(1, max_workers)
        self._timeout = timeout
        self._max_redirects = max_redirects
        self._transport = transport

    @property
    def cache(self) -> MediaCache:
        return self._cache

    def fetch(self, features: Sequence[Feature]) -> MediaResult:
        """Localise the media of *features* and return the rewritten features."""
        logger.info(
            "fetch_media started | layer=%s | features=%d | media_dir=%s",
            self._layer_name,
            len(features),
            self._media_dir,
        )

        links = [self._links_for(feature) for feature in features]
        assets = self._plan(links)
        resolutions = self._resolve_all(assets)

        rewritten: list[Feature] = []
        with_media = 0
        for feature, urls in zip(features, links, strict=True):
            if urls is None:
                rewritten.append(feature)
                continue
            references = [
                ref for url in urls if (ref := resolutions[url].reference) is not None
            ]
            properties = dict(feature.properties)
            if references:
                properties[MEDIA_LINKS_PROPERTY] = " ".join(references)
                with_media += 1
            else:
                properties.pop(MEDIA_LINKS_PROPERTY, None)
            rewritten.append(feature.with_properties(properties))

        counts = {outcome: 0 for outcome in MediaOutcome}
        for resolution in resolutions.values():
            counts[resolution.outcome] += 1
        errors = [r.error for r in resolutions.values() if r.error is not None]

        logger.info(
            "fetch_media completed | layer=%s | downloaded=%d | reused=%d | failed=%d",
            self._layer_name,
            counts[MediaOutcome.DOWNLOADED],
            counts[MediaOutcome.REUSED],
            counts[MediaOutcome.FAILED],
        )
        return MediaResult(
            features=rewritten,
            downloaded=counts[MediaOutcome.DOWNLOADED],
            reused=counts[MediaOutcome.REUSED],
            failed=counts[MediaOutcome.FAILED],
            features_with_media=with_media,
            errors=errors,
        )

    # ------------------------------------------------------------------
    # Planning
    # ------------------------------------------------------------------

    @staticmethod
    def _links_for(feature: Feature) -> list[str] | None:
        """URLs in the feature's media property, or ``None`` if there is nothing to process."""
        value = feature.properties.get(MEDIA_LINKS_PROPERTY)
        urls = split_media_links(value)
        return urls or None

    def _plan(self, links: Sequence[list[str] | None]) -> dict[str, MediaAsset | MediaAssetError]:
        """Map each distinct URL to its asset, owned by the first referencing feature.

        *links* holds one entry per feature passed to ``fetch`` (the valid
        features of the layer); the owner is numbered by that position,
        not by its converter index.
        """
        plan: dict[str, MediaAsset | MediaAssetError] = {}
        for position, urls in enumerate(links):
            for url in urls or ():
                if url in plan:
                    continue
                if not _HTTP_URL_RE.match(url):
                    plan[url] = MediaAssetError(url, "not an http(s) URL")
                    continue
                plan[url] = MediaAsset.for_url(
                    url,
                    layer_name=self._layer_name,
                    feature_index=position,
                    media_dir=self._media_dir,
                )
        return plan

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def _resolve_all(
        self, plan: dict[str, MediaAsset | MediaAssetError]
    ) -> dict[str, _Resolution]:
        resolutions: dict[str, _Resolution] = {}
        assets: list[MediaAsset] = []
        for url, planned in plan.items():
            if isinstance(planned, MediaAssetError):
                logger.warning("Skipping media | layer=%s | %s", self._layer_name, planned)
                resolutions[url] = _Resolution(url, None, MediaOutcome.FAILED, planned)
            else:
                assets.append(planned)

        if not assets:
            return resolutions

        with (
            httpx.Client(
                timeout=self._timeout,
                follow_redirects=True,
                max_redirects=self._max_redirects,
                headers={"User-Agent": USER_AGENT, "Accept": MEDIA_ACCEPT},
                transport=self._transport,
            ) as client,
            concurrent.futures.ThreadPoolExecutor(
                max_workers=min(self._max_workers, len(assets)),
                thread_name_prefix="fetch-media",
            ) as executor,
        ):
            for resolution in executor.map(lambda a: self._resolve(client, a), assets):
                resolutions[resolution.url] = resolution

        return resolutions

    def _resolve(self, client: httpx.Client, asset: MediaAsset) -> _Resolution:
        entry, owner = self._cache.claim(asset.url)
        if not owner:
            reference = entry.result()
            logger.debug("Media cache hit | url=%s | reference=%s", asset.url, reference)
            if reference is None:
                error = MediaAssetError(asset.url, "failed earlier in this run")
                return _Resolution(asset.url, None, MediaOutcome.FAILED, error)
            return _Resolution(asset.url, reference, MediaOutcome.REUSED)

        try:
            outcome = self._localise(client, asset)
        except MediaAssetError as exc:
            logger.warning("Media download failed | layer=%s | %s", self._layer_name, exc)
            entry.set_result(None)
            return _Resolution(asset.url, None, MediaOutcome.FAILED, exc)
        except BaseException:
            # Waiters must never block on an unresolved entry.
            entry.set_result(None)
            raise

        entry.set_result(asset.reference)
        return _Resolution(asset.url, asset.reference, outcome)

    def _localise(self, client: httpx.Client, asset: MediaAsset) -> MediaOutcome:
        """Make sure *asset* exists on disk.  Raises ``MediaAssetError``."""
        if asset.local_path.exists():
            logger.debug("Media already on disk | file=%s", asset.filename)
            return MediaOutcome.REUSED

        logger.info("Downloading media | url=%s | file=%s", asset.url, asset.filename)
        try:
            response = client.get(asset.url)
        except httpx.HTTPError as exc:
            raise MediaAssetError(asset.url, f"request failed: {exc}") from exc

        if response.status_code != 200:
            raise MediaAssetError(asset.url, f"HTTP {response.status_code}")

        content_type = response.headers.get("Content-Type", "")
        if not content_type.startswith("image/"):
            logger.warning(
                "Media does not look like an image | url=%s | content_type=%s",
                asset.url,
                content_type,
            )

        body = response.content
        try:
            _write_atomic(asset.local_path, body)
        except OSError as exc:
            raise MediaAssetError(asset.url, f"cannot write {asset.local_path}: {exc}") from exc
        logger.info("Downloaded media | file=%s | size=%d bytes", asset.filename, len(body))
        return MediaOutcome.DOWNLOADED


def _write_atomic(path: Path, body: bytes) -> None:
    """Write *body* to *path* via a temporary sibling so no partial file is ever adopted."""
    tmp_path = path.with_name(f".{path.name}.part")
    path.parent.mkdir(parents=True, exist_ok=True)
    try:
        tmp_path.write_bytes(body)
        os.replace(tmp_path, path)
    except OSError:
        tmp_path.unlink(missing_ok=True)
        raise
