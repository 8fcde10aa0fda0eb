"""Tests for the fetch_media activity and the MediaAsset model.

Covers:
- Deduplication of repeated URLs within and across features
- Failed downloads (HTTP 404, transport errors, non-http URLs)
- Reuse of files left on disk by a previous run
- Run-scoped cache semantics, including cached failures
- Deterministic, content-addressed asset filenames
"""

from __future__ import annotations

import concurrent.futures
from collections.abc import Callable
from pathlib import Path

import httpx
import pytest

from mymaps_ingest.activities.fetch_media import (
    MediaCache,
    MediaFetcher,
    split_media_links,
)
from mymaps_ingest.core.constants import MEDIA_LINKS_PROPERTY, MEDIA_MAX_REDIRECTS
from mymaps_ingest.core.exceptions import MediaAssetError
from mymaps_ingest.models.feature import Feature
from mymaps_ingest.models.media import (
    MediaAsset,
    build_asset_filename,
    infer_extension,
    relative_reference,
    url_hash,
)
from tests.factories import (
    IMAGE_BODY,
    MISSING_PHOTO_URL,
    OTHER_PHOTO_URL,
    PHOTO_URL,
    RecordingHandler,
    image_response,
    point,
)


def _feature(index: int, links: object = None, **properties: object) -> Feature:
    props = dict(properties)
    if links is not None:
        props[MEDIA_LINKS_PROPERTY] = links
    return Feature(geometry=point(0, 0), properties=props, index=index)


def _fetcher(
    media_dir: Path,
    handler: RecordingHandler,
    *,
    cache: MediaCache | None = None,
    max_workers: int = 2,
) -> MediaFetcher:
    return MediaFetcher(
        layer_name="propostas",
        media_dir=media_dir,
        cache=cache,
        max_workers=max_workers,
        transport=httpx.MockTransport(handler),
    )


def _reference(media_dir: Path, url: str, index: int) -> str:
    return MediaAsset.for_url(url, layer_name="propostas", feature_index=index, media_dir=media_dir).reference


@pytest.fixture()
def handler() -> RecordingHandler:
    return RecordingHandler(
        {
            PHOTO_URL: image_response(),
            OTHER_PHOTO_URL: image_response(b"png-body", "image/png"),
        }
    )


# ---------------------------------------------------------------------------
# Link parsing
# ---------------------------------------------------------------------------


class TestSplitMediaLinks:
    def test_whitespace_and_commas(self) -> None:
        assert split_media_links(f" {PHOTO_URL},{OTHER_PHOTO_URL}\n{PHOTO_URL} ") == [
            PHOTO_URL,
            OTHER_PHOTO_URL,
            PHOTO_URL,
        ]

    def test_none(self) -> None:
        assert split_media_links(None) == []

    def test_blank(self) -> None:
        assert split_media_links("   ") == []


# ---------------------------------------------------------------------------
# Asset naming
# ---------------------------------------------------------------------------


class TestMediaAsset:
    def test_filename_format(self) -> None:
        name = build_asset_filename(PHOTO_URL, layer_name="propostas", feature_index=3)
        assert name == f"propostas_3_{url_hash(PHOTO_URL)}.jpg"

    def test_hash_is_nine_hex_chars(self) -> None:
        digest = url_hash(PHOTO_URL)
        assert len(digest) == 9
        int(digest, 16)

    def test_hash_is_stable(self) -> None:
        assert url_hash(PHOTO_URL) == url_hash(PHOTO_URL)
        assert url_hash(PHOTO_URL) != url_hash(OTHER_PHOTO_URL)

    @pytest.mark.parametrize(
        ("url", "expected"),
        [
            ("https://x/a.PNG", ".png"),
            ("https://x/a.jpeg?size=large", ".jpeg"),
            ("https://x/a.webp#frag", ".webp"),
            ("https://x/a.svg", ".svg"),
            ("https://x/photo", ".jpg"),
            ("https://x/doc.pdf", ".jpg"),
            ("https://lh3.googleusercontent.com/abc=w400-h300", ".jpg"),
        ],
    )
    def test_infer_extension(self, url: str, expected: str) -> None:
        assert infer_extension(url) == expected

    def test_relative_reference(self) -> None:
        path = Path("assets/data/images/propostas_0_abc.jpg")
        assert relative_reference(path) == "./assets/data/images/propostas_0_abc.jpg"

    def test_absolute_reference(self, tmp_path: Path) -> None:
        path = tmp_path / "x.jpg"
        assert relative_reference(path) == path.as_posix()

    def test_for_url(self, media_dir: Path) -> None:
        asset = MediaAsset.for_url(PHOTO_URL, layer_name="propostas", feature_index=0, media_dir=media_dir)
        assert asset.local_path == media_dir / asset.filename
        assert asset.filename.startswith("propostas_0_")


# ---------------------------------------------------------------------------
# Cache
# ---------------------------------------------------------------------------


class TestMediaCache:
    def test_first_claim_owns(self) -> None:
        cache = MediaCache()
        entry, owner = cache.claim(PHOTO_URL)
        again, second_owner = cache.claim(PHOTO_URL)
        assert owner is True
        assert second_owner is False
        assert again is entry

    def test_lookup_pending_and_resolved(self) -> None:
        cache = MediaCache()
        entry, _ = cache.claim(PHOTO_URL)
        assert cache.lookup(PHOTO_URL) is None
        entry.set_result("./a.jpg")
        assert cache.lookup(PHOTO_URL) == "./a.jpg"
        assert PHOTO_URL in cache
        assert len(cache) == 1

    def test_concurrent_claims_have_single_owner(self) -> None:
        cache = MediaCache()
        with concurrent.futures.ThreadPoolExecutor(max_workers=8) as executor:
            owners = list(executor.map(lambda _: cache.claim(PHOTO_URL)[1], range(64)))
        assert owners.count(True) == 1


# ---------------------------------------------------------------------------
# Fetcher
# ---------------------------------------------------------------------------


class TestMediaFetcher:
    def test_downloads_and_rewrites(self, media_dir: Path, handler: RecordingHandler) -> None:
        result = _fetcher(media_dir, handler).fetch([_feature(0, PHOTO_URL, Name="a")])

        reference = _reference(media_dir, PHOTO_URL, 0)
        assert result.features[0].properties == {"Name": "a", MEDIA_LINKS_PROPERTY: reference}
        assert result.downloaded == 1
        assert result.features_with_media == 1
        files = list(media_dir.iterdir())
        assert len(files) == 1
        assert files[0].read_bytes() == IMAGE_BODY

    def test_duplicate_url_in_one_feature(self, media_dir: Path, handler: RecordingHandler) -> None:
        result = _fetcher(media_dir, handler).fetch([_feature(0, f"{PHOTO_URL} {PHOTO_URL}")])

        reference = _reference(media_dir, PHOTO_URL, 0)
        assert handler.count(PHOTO_URL) == 1
        assert result.features[0].properties[MEDIA_LINKS_PROPERTY] == f"{reference} {reference}"
        assert result.downloaded == 1

    def test_shared_url_owned_by_first_feature(self, media_dir: Path, handler: RecordingHandler) -> None:
        features = [
            _feature(0),
            _feature(1, PHOTO_URL),
            _feature(2, f"{OTHER_PHOTO_URL},{PHOTO_URL}"),
        ]
        result = _fetcher(media_dir, handler).fetch(features)

        photo = _reference(media_dir, PHOTO_URL, 1)
        other = _reference(media_dir, OTHER_PHOTO_URL, 2)
        assert handler.count(PHOTO_URL) == 1
        assert result.features[1].properties[MEDIA_LINKS_PROPERTY] == photo
        assert result.features[2].properties[MEDIA_LINKS_PROPERTY] == f"{other} {photo}"
        assert other.endswith(".png")
        assert result.downloaded == 2
        assert result.features_with_media == 2

    def test_filename_uses_position_not_converter_index(
        self, media_dir: Path, handler: RecordingHandler
    ) -> None:
        # Converter indexes 0 and 1 were rejected by the filter.
        features = [_feature(2, PHOTO_URL), _feature(5, OTHER_PHOTO_URL)]
        result = _fetcher(media_dir, handler).fetch(features)

        photo = result.features[0].properties[MEDIA_LINKS_PROPERTY]
        other = result.features[1].properties[MEDIA_LINKS_PROPERTY]
        assert photo.endswith(f"propostas_0_{url_hash(PHOTO_URL)}.jpg")
        assert other.endswith(f"propostas_1_{url_hash(OTHER_PHOTO_URL)}.png")
        assert [f.index for f in result.features] == [2, 5]

    def test_http_404_drops_property(self, media_dir: Path, handler: RecordingHandler) -> None:
        result = _fetcher(media_dir, handler).fetch([_feature(0, MISSING_PHOTO_URL, Name="x")])

        assert len(result.features) == 1
        assert result.features[0].properties == {"Name": "x"}
        assert result.failed == 1
        assert result.features_with_media == 0
        assert isinstance(result.errors[0], MediaAssetError)
        assert "HTTP 404" in str(result.errors[0])
        assert not media_dir.exists() or not any(media_dir.iterdir())

    def test_partial_failure_keeps_successful_links(self, media_dir: Path, handler: RecordingHandler) -> None:
        result = _fetcher(media_dir, handler).fetch([_feature(0, f"{MISSING_PHOTO_URL} {PHOTO_URL}")])

        assert result.features[0].properties[MEDIA_LINKS_PROPERTY] == _reference(media_dir, PHOTO_URL, 0)
        assert result.failed == 1
        assert result.downloaded == 1

    def test_transport_error_counts_as_failure(self, media_dir: Path) -> None:
        def broken(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        fetcher = MediaFetcher(
            layer_name="propostas",
            media_dir=media_dir,
            transport=httpx.MockTransport(broken),
        )
        result = fetcher.fetch([_feature(0, PHOTO_URL)])
        assert result.failed == 1
        assert MEDIA_LINKS_PROPERTY not in result.features[0].properties

    def test_non_http_url_is_failed_without_request(self, media_dir: Path, handler: RecordingHandler) -> None:
        result = _fetcher(media_dir, handler).fetch([_feature(0, "file:///etc/passwd")])

        assert handler.requests == []
        assert result.failed == 1
        assert MEDIA_LINKS_PROPERTY not in result.features[0].properties

    @pytest.mark.parametrize("value", [None, "", "   "])
    def test_missing_or_blank_links_untouched(
        self, media_dir: Path, handler: RecordingHandler, value: object
    ) -> None:
        original = Feature(
            geometry=point(0, 0),
            properties={"Name": "x", MEDIA_LINKS_PROPERTY: value},
            index=0,
        )
        result = _fetcher(media_dir, handler).fetch([original])
        assert result.features[0] is original
        assert handler.requests == []

    def test_feature_without_property_untouched(self, media_dir: Path, handler: RecordingHandler) -> None:
        original = _feature(0, Name="x")
        result = _fetcher(media_dir, handler).fetch([original])
        assert result.features == [original]
        assert result.downloaded == result.reused == result.failed == 0

    def test_rerun_reuses_files_on_disk(self, media_dir: Path, handler: RecordingHandler) -> None:
        features = [_feature(0, PHOTO_URL)]
        first = _fetcher(media_dir, handler).fetch(features)
        second = _fetcher(media_dir, handler).fetch(features)

        assert handler.count(PHOTO_URL) == 1
        assert first.downloaded == 1
        assert second.downloaded == 0
        assert second.reused == 1
        assert second.features == first.features

    def test_shared_cache_skips_network(self, media_dir: Path, handler: RecordingHandler) -> None:
        cache = MediaCache()
        _fetcher(media_dir, handler, cache=cache).fetch([_feature(0, PHOTO_URL)])
        result = _fetcher(media_dir, handler, cache=cache).fetch([_feature(0, PHOTO_URL)])

        assert handler.count(PHOTO_URL) == 1
        assert result.reused == 1
        assert cache.lookup(PHOTO_URL) == _reference(media_dir, PHOTO_URL, 0)

    def test_cached_failure_is_not_retried(self, media_dir: Path, handler: RecordingHandler) -> None:
        cache = MediaCache()
        _fetcher(media_dir, handler, cache=cache).fetch([_feature(0, MISSING_PHOTO_URL)])
        result = _fetcher(media_dir, handler, cache=cache).fetch([_feature(0, MISSING_PHOTO_URL)])

        assert handler.count(MISSING_PHOTO_URL) == 1
        assert result.failed == 1
        assert MISSING_PHOTO_URL in cache
        assert cache.lookup(MISSING_PHOTO_URL) is None

    def test_many_urls_each_fetched_once(self, media_dir: Path) -> None:
        urls = [f"https://photos.example.com/{i}.jpg" for i in range(20)]
        handler = RecordingHandler({"https://photos.example.com/": image_response()})
        features = [_feature(i, f"{urls[i]} {urls[(i + 1) % 20]}") for i in range(20)]

        result = _fetcher(media_dir, handler, max_workers=4).fetch(features)

        assert len(handler.requests) == 20
        assert result.downloaded == 20
        assert len(list(media_dir.iterdir())) == 20
        assert [f.index for f in result.features] == list(range(20))

    def test_non_image_content_type_still_saved(self, media_dir: Path) -> None:
        handler = RecordingHandler({PHOTO_URL: httpx.Response(200, content=b"<html/>")})
        result = _fetcher(media_dir, handler).fetch([_feature(0, PHOTO_URL)])
        assert result.downloaded == 1

    def test_unwritable_media_dir_is_recoverable(self, tmp_path: Path, handler: RecordingHandler) -> None:
        blocker = tmp_path / "blocker"
        blocker.write_text("file, not a directory")
        result = _fetcher(blocker / "images", handler).fetch([_feature(0, PHOTO_URL, Name="x")])

        assert result.failed == 1
        assert result.features[0].properties == {"Name": "x"}

    def test_redirects_within_limit_are_followed(self, media_dir: Path) -> None:
        handler, requested = _redirect_chain(MEDIA_MAX_REDIRECTS)
        result = _fetcher(media_dir, handler).fetch([_feature(0, _hop_url(0))])

        assert result.downloaded == 1
        assert len(requested) == MEDIA_MAX_REDIRECTS + 1
        reference = result.features[0].properties[MEDIA_LINKS_PROPERTY]
        assert reference == _reference(media_dir, _hop_url(0), 0)
        assert (media_dir / Path(reference).name).read_bytes() == IMAGE_BODY

    def test_redirects_beyond_limit_fail(self, media_dir: Path) -> None:
        handler, requested = _redirect_chain(MEDIA_MAX_REDIRECTS + 1)
        result = _fetcher(media_dir, handler).fetch([_feature(0, _hop_url(0), Name="x")])

        assert result.failed == 1
        assert result.downloaded == 0
        assert result.features[0].properties == {"Name": "x"}
        assert len(requested) == MEDIA_MAX_REDIRECTS + 1
        assert not any(media_dir.glob("propostas_*"))


def _hop_url(hop: int) -> str:
    return f"https://photos.example.com/hop/{hop}.jpg"


def _redirect_chain(hops: int) -> tuple[Callable[[httpx.Request], httpx.Response], list[str]]:
    """Handler that redirects ``hop/0`` through ``hop/<hops>`` and serves an image there."""
    requested: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requested.append(str(request.url))
        hop = int(request.url.path.rsplit("/", 1)[-1].removesuffix(".jpg"))
        if hop < hops:
            return httpx.Response(302, headers={"Location": _hop_url(hop + 1)})
        return image_response()

    return handler, requested
