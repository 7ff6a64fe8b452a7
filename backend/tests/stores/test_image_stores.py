"""
Tests for the image store backends.
"""
import json
from datetime import datetime, timedelta, timezone

import httpx
import pytest

from picquiz.stores.base import StoreUnavailableError
from picquiz.stores.images import LocalImageStore, SupabaseImageStore
from picquiz.stores.supabase import SupabaseClient

BASE_URL = "https://demo.supabase.co"


def _client(handler):
    return SupabaseClient(BASE_URL, "key", 5.0, transport=httpx.MockTransport(handler))


class TestLocalImageStore:
    def test_lists_images_sorted(self, image_dir):
        names = LocalImageStore(str(image_dir)).list()
        assert len(names) == 12
        assert names == sorted(names)
        assert "README.txt" not in names

    def test_prefix(self, image_dir):
        (image_dir / "zebra.png").write_bytes(b"x")
        assert LocalImageStore(str(image_dir)).list("zeb") == ["zebra.png"]

    def test_missing_directory_is_empty(self, tmp_path):
        assert LocalImageStore(str(tmp_path / "nope")).list() == []

    def test_signed_url_is_static_path(self, image_dir):
        store = LocalImageStore(str(image_dir))
        assert store.signed_url("img000.png") == "/quiz_images/img000.png"

    def test_signed_url_quotes_names(self, image_dir):
        (image_dir / "two words.png").write_bytes(b"x")
        store = LocalImageStore(str(image_dir))
        assert store.signed_url("two words.png") == "/quiz_images/two%20words.png"

    def test_signed_url_for_missing_or_traversal(self, image_dir):
        store = LocalImageStore(str(image_dir))
        assert store.signed_url("missing.png") is None
        assert store.signed_url("../secret.png") is None
        assert store.signed_url("") is None

    def test_signed_urls_skips_missing(self, image_dir):
        urls = LocalImageStore(str(image_dir)).signed_urls(["img000.png", "missing.png"])
        assert urls == {"img000.png": "/quiz_images/img000.png"}


class TestSupabaseImageStoreList:
    def test_list_filters_and_sorts(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/storage/v1/object/list/quiz-images"
            body = json.loads(request.content)
            assert body["sortBy"] == {"column": "name", "order": "asc"}
            return httpx.Response(
                200,
                json=[
                    {"name": "b.png", "id": "2"},
                    {"name": "a.jpg", "id": "1"},
                    {"name": "folder/", "id": None},
                    {"name": "notes.txt", "id": "3"},
                    {"name": " ", "id": "4"},
                ],
            )

        store = SupabaseImageStore(_client(handler), "quiz-images")
        assert store.list() == ["a.jpg", "b.png"]

    def test_list_is_cached(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(200, json=[{"name": "a.png", "id": "1"}])

        store = SupabaseImageStore(_client(handler), "quiz-images")
        store.list()
        store.list()
        assert len(calls) == 1

        store.invalidate()
        store.list()
        assert len(calls) == 2

    def test_list_failure_is_unavailable(self):
        store = SupabaseImageStore(
            _client(lambda r: httpx.Response(503, text="down")), "quiz-images"
        )
        with pytest.raises(StoreUnavailableError):
            store.list()

    def test_bucket_is_required(self):
        with pytest.raises(ValueError):
            SupabaseImageStore(_client(lambda r: httpx.Response(200)), "")


class TestSupabaseImageStoreSigning:
    def test_signed_url_is_absolute_and_cached(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            assert json.loads(request.content) == {"expiresIn": 3600}
            return httpx.Response(
                200, json={"signedURL": "/object/sign/quiz-images/a.png?token=abc"}
            )

        store = SupabaseImageStore(_client(handler), "quiz-images")
        url = store.signed_url("a.png")
        assert url == f"{BASE_URL}/storage/v1/object/sign/quiz-images/a.png?token=abc"
        assert store.signed_url("a.png") == url
        assert len(calls) == 1

    def test_missing_object_returns_none(self):
        store = SupabaseImageStore(
            _client(lambda r: httpx.Response(400, json={"error": "not_found"})),
            "quiz-images",
        )
        assert store.signed_url("missing.png") is None

    def test_cached_url_expires_before_the_signature(self):
        now = [datetime(2024, 1, 1, tzinfo=timezone.utc)]
        store = SupabaseImageStore(
            _client(
                lambda r: httpx.Response(200, json={"signedURL": "/object/sign/x?token=t"})
            ),
            "quiz-images",
            signed_url_ttl=3600,
        )
        store._url_cache._clock = lambda: now[0]
        store.signed_url("x.png")

        now[0] += timedelta(seconds=3540)
        assert store._url_cache.get("x.png") is None

    def test_batch_signing_uses_cache_for_known_names(self):
        batches = []

        def handler(request: httpx.Request) -> httpx.Response:
            body = json.loads(request.content)
            if "paths" in body:
                batches.append(body["paths"])
                return httpx.Response(
                    200,
                    json=[
                        {"path": p, "signedURL": f"/object/sign/quiz-images/{p}?t=1"}
                        for p in body["paths"]
                    ],
                )
            return httpx.Response(200, json={"signedURL": "/object/sign/quiz-images/a.png?t=0"})

        store = SupabaseImageStore(_client(handler), "quiz-images")
        store.signed_url("a.png")
        urls = store.signed_urls(["a.png", "b.png", "c.png", "b.png"])

        assert batches == [["b.png", "c.png"]]
        assert urls["a.png"].endswith("a.png?t=0")
        assert urls["c.png"] == f"{BASE_URL}/storage/v1/object/sign/quiz-images/c.png?t=1"

    def test_batch_entries_with_errors_are_omitted(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200,
                json=[
                    {"path": "a.png", "signedURL": "/object/sign/quiz-images/a.png?t=1"},
                    {"path": "gone.png", "signedURL": None, "error": "Either the object does not exist"},
                ],
            )

        urls = SupabaseImageStore(_client(handler), "quiz-images").signed_urls(
            ["a.png", "gone.png"]
        )
        assert list(urls) == ["a.png"]
