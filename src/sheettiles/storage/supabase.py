"""Supabase Storage blob store over its REST API."""

from __future__ import annotations

import os
from typing import Optional
from urllib.parse import quote

import requests

from sheettiles.core.errors import ConfigError, StorageConflict, StorageError
from sheettiles.core.models import StorageConfig
from sheettiles.logging import get_logger

LOGGER = get_logger(__name__)


class SupabaseBlobStore:
    """Thin client for the Supabase Storage object endpoints."""

    def __init__(
        self,
        url: str,
        key: str,
        *,
        bucket: str = "drawings-tiles",
        timeout: int = 60,
        session: Optional[requests.Session] = None,
    ) -> None:
        self._root = f"{url.rstrip('/')}/storage/v1/object/{bucket}"
        self._timeout = timeout
        self._session = session or requests.Session()
        self._session.headers.update({"Authorization": f"Bearer {key}", "apikey": key})

    @classmethod
    def from_config(cls, config: StorageConfig, **kwargs) -> "SupabaseBlobStore":
        url = config.supabase_url or os.getenv("SUPABASE_URL")
        key = config.supabase_key or os.getenv("SUPABASE_SERVICE_ROLE_KEY")
        if not url or not key:
            raise ConfigError(
                "Supabase storage requires SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY."
            )
        return cls(url, key, bucket=config.bucket, timeout=config.timeout_seconds, **kwargs)

    def _object_url(self, path: str) -> str:
        return f"{self._root}/{quote(path.lstrip('/'))}"

    def put(
        self,
        path: str,
        data: bytes,
        content_type: str,
        cache_control: str,
        fail_if_exists: bool = True,
    ) -> None:
        headers = {
            "Content-Type": content_type,
            "cache-control": cache_control,
            "x-upsert": "false" if fail_if_exists else "true",
        }
        try:
            response = self._session.post(
                self._object_url(path), data=data, headers=headers, timeout=self._timeout
            )
        except requests.RequestException as exc:
            raise StorageError(f"Upload failed ({path}): {exc}") from exc
        if response.ok:
            return
        if _is_conflict(response):
            raise StorageConflict(path)
        raise StorageError(f"Upload failed ({path}): {response.status_code} {response.text}")

    def get(self, path: str) -> bytes:
        try:
            response = self._session.get(self._object_url(path), timeout=self._timeout)
        except requests.RequestException as exc:
            raise StorageError(f"Download failed ({path}): {exc}") from exc
        if response.status_code != 200:
            raise StorageError(f"Download failed ({path}): {response.status_code} {response.text}")
        return response.content

    def exists(self, path: str) -> bool:
        try:
            response = self._session.head(self._object_url(path), timeout=self._timeout)
        except requests.RequestException as exc:
            raise StorageError(f"Lookup failed ({path}): {exc}") from exc
        return response.status_code == 200


def _is_conflict(response: requests.Response) -> bool:
    if response.status_code == 409:
        return True
    try:
        payload = response.json()
    except ValueError:
        payload = {}
    if not isinstance(payload, dict):
        payload = {}
    if str(payload.get("statusCode", "")) == "409":
        return True
    message = str(payload.get("message") or payload.get("error") or response.text).lower()
    return "already exists" in message
