"""
Supabase storage: reads archive assets from a Supabase Storage bucket.
"""
from __future__ import annotations

import httpx

from warc_parser.config import settings
from warc_parser.errors import AssetNotFound
from warc_parser.storage.base import AssetStore


class SupabaseAssetStore(AssetStore):
    """Minimal Supabase Storage client, shared across requests."""

    name = "supabase"

    def __init__(self, base_url: str, key: str, bucket: str, timeout: float = 60,
                 transport: httpx.BaseTransport | None = None):
        self.base = base_url.rstrip("/")
        self.key = key
        self.bucket = bucket
        self._headers = {
            "apikey": self.key,
            "Authorization": f"Bearer {self.key}",
        }
        self._client = httpx.Client(timeout=timeout, transport=transport)

    def _storage_url(self, path: str) -> str:
        return f"{self.base}/storage/v1/object/{self.bucket}/{path.lstrip('/')}"

    def load(self, asset_name: str) -> bytes:
        res = self._client.get(self._storage_url(asset_name), headers=self._headers)
        # Supabase answers 400 with a JSON body for missing objects
        if res.status_code in (400, 404):
            raise AssetNotFound(asset_name)
        res.raise_for_status()
        return res.content


_store: SupabaseAssetStore | None = None


def get_supabase() -> SupabaseAssetStore | None:
    if not settings.supabase_url or not settings.supabase_key:
        return None
    global _store
    if _store is None:
        _store = SupabaseAssetStore(
            settings.supabase_url,
            settings.supabase_key,
            settings.supabase_bucket,
            timeout=settings.request_timeout,
        )
    return _store
