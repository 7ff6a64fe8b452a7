"""
Image store implementations.

``SupabaseImageStore`` lists a storage bucket through the Storage REST API
and hands out signed URLs; ``LocalImageStore`` serves a directory mounted
under ``/quiz_images``. Only image objects (.png .jpg .jpeg .webp) are
returned, sorted by name, because the sort order defines question groups.
"""
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence
from urllib.parse import quote

from picquiz.core.expiring import ExpiringCache
from picquiz.engine.image_pool import filter_image_names
from picquiz.stores.base import ImageStore, StoreUnavailableError
from picquiz.stores.supabase import SupabaseClient

logger = logging.getLogger(__name__)

LIST_PAGE_SIZE = 1000
LOCAL_URL_PREFIX = "/quiz_images"


class SupabaseImageStore(ImageStore):
    """
    Images in a Supabase storage bucket.

    Listings are cached for ``list_cache_seconds``. Signed URLs are cached a
    minute short of their lifetime (never less than 60 seconds) so a cached
    URL is never handed out after it stops working.
    """

    NAME = "SupabaseImageStore"

    def __init__(
        self,
        client: SupabaseClient,
        bucket: str,
        signed_url_ttl: int = 3600,
        list_cache_seconds: int = 300,
    ):
        if not bucket:
            raise ValueError("Bucket name is required")
        self.client = client
        self.bucket = bucket
        self.signed_url_ttl = signed_url_ttl if signed_url_ttl > 0 else 3600
        self._list_cache: ExpiringCache[str, List[str]] = ExpiringCache(list_cache_seconds)
        self._url_cache: ExpiringCache[str, str] = ExpiringCache(
            max(60, self.signed_url_ttl - 60)
        )

    def list(self, prefix: str = "") -> List[str]:
        cached = self._list_cache.get(prefix)
        if cached is not None:
            return cached

        response = self.client.request(
            self.NAME,
            "list",
            "POST",
            f"/storage/v1/object/list/{self.bucket}",
            json={
                "limit": LIST_PAGE_SIZE,
                "offset": 0,
                "sortBy": {"column": "name", "order": "asc"},
                "prefix": prefix or "",
            },
        )
        items = self.client.json(self.NAME, "list", response)
        if not isinstance(items, list):
            raise StoreUnavailableError(
                self.NAME, "list", ValueError("expected a JSON array")
            )

        names: List[str] = []
        for item in items:
            name = (item or {}).get("name")
            if not name or not name.strip():
                continue
            # Folders come back without an id
            if item.get("id") is None and name.endswith("/"):
                continue
            names.append(name)

        names = filter_image_names(names)
        logger.info(f"Listed {len(names)} images from bucket '{self.bucket}'")
        self._list_cache.set(prefix, names)
        return names

    def _absolute(self, signed_path: str) -> str:
        if signed_path.startswith("http"):
            return signed_path
        return f"{self.client.base_url}/storage/v1{signed_path}"

    def signed_url(self, name: str, ttl_seconds: Optional[int] = None) -> Optional[str]:
        if not name or not name.strip():
            return None
        cached = self._url_cache.get(name)
        if cached is not None and ttl_seconds is None:
            return cached

        ttl = ttl_seconds or self.signed_url_ttl
        response = self.client.request(
            self.NAME,
            "signed_url",
            "POST",
            f"/storage/v1/object/sign/{self.bucket}/{quote(name)}",
            json={"expiresIn": ttl},
            # Missing objects are reported as 400 or 404
            expected=(200, 400, 404),
        )
        if response.status_code != 200:
            return None
        data = self.client.json(self.NAME, "signed_url", response)
        signed = (data or {}).get("signedURL") or (data or {}).get("signedUrl")
        if not signed:
            return None
        url = self._absolute(signed)
        if ttl_seconds is None:
            self._url_cache.set(name, url)
        return url

    def signed_urls(self, names: Sequence[str]) -> Dict[str, str]:
        result: Dict[str, str] = {}
        missing: List[str] = []
        for name in names:
            if not name or not name.strip():
                continue
            cached = self._url_cache.get(name)
            if cached is not None:
                result[name] = cached
            elif name not in missing:
                missing.append(name)
        if not missing:
            return result

        response = self.client.request(
            self.NAME,
            "signed_urls",
            "POST",
            f"/storage/v1/object/sign/{self.bucket}",
            json={"expiresIn": self.signed_url_ttl, "paths": missing},
        )
        entries: Any = self.client.json(self.NAME, "signed_urls", response)
        for entry in entries if isinstance(entries, list) else []:
            path = entry.get("path")
            signed = entry.get("signedURL") or entry.get("signedUrl")
            if not path or not signed or entry.get("error"):
                continue
            url = self._absolute(signed)
            self._url_cache.set(path, url)
            result[path] = url
        return result

    def invalidate(self) -> None:
        self._list_cache.clear()


class LocalImageStore(ImageStore):
    """Images in a local directory, served as static files."""

    NAME = "LocalImageStore"

    def __init__(self, directory: str, url_prefix: str = LOCAL_URL_PREFIX):
        self.directory = Path(directory)
        self.url_prefix = url_prefix.rstrip("/")

    def list(self, prefix: str = "") -> List[str]:
        if not self.directory.is_dir():
            logger.warning(f"Image directory {self.directory} does not exist")
            return []
        try:
            names = [
                p.name
                for p in self.directory.iterdir()
                if p.is_file() and p.name.startswith(prefix)
            ]
        except OSError as e:
            logger.error(f"Failed to list {self.directory}: {e}")
            raise StoreUnavailableError(self.NAME, "list", e) from e
        return filter_image_names(names)

    def signed_url(self, name: str, ttl_seconds: Optional[int] = None) -> Optional[str]:
        if not name or "/" in name or "\\" in name or name in (".", ".."):
            return None
        if not (self.directory / name).is_file():
            return None
        return f"{self.url_prefix}/{quote(name)}"


def create_image_store(
    settings: Any, client: Optional[SupabaseClient] = None
) -> ImageStore:
    """Pick the image backend once, from configuration."""
    if settings.use_remote_backends:
        logger.info(f"Using Supabase image bucket '{settings.SUPABASE_BUCKET}'")
        client = client or SupabaseClient(
            settings.SUPABASE_URL, settings.SUPABASE_KEY, settings.STORE_TIMEOUT_SECONDS
        )
        return SupabaseImageStore(
            client,
            settings.SUPABASE_BUCKET,
            signed_url_ttl=settings.SIGNED_URL_TTL_SECONDS,
            list_cache_seconds=settings.IMAGE_LIST_CACHE_SECONDS,
        )
    logger.info(f"Using local image directory {settings.LOCAL_IMAGES_DIR}")
    return LocalImageStore(settings.LOCAL_IMAGES_DIR)
