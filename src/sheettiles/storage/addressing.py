"""Content-addressed storage paths for pyramid artifacts."""

from __future__ import annotations

import hashlib

DEFAULT_HASH_LENGTH = 16


def content_hash(source: bytes, *, length: int = DEFAULT_HASH_LENGTH) -> str:
    """Return the SHA-256 hex digest of ``source`` truncated to ``length`` chars."""

    if not 8 <= length <= 64:
        raise ValueError(f"hash length must be between 8 and 64: {length}")
    return hashlib.sha256(source).hexdigest()[:length]


def storage_prefix(org_id: str, digest: str) -> str:
    org = org_id.strip("/")
    if not org or not digest:
        raise ValueError("org_id and digest are required for a storage prefix")
    return f"{org}/{digest}"


def tile_path(prefix: str, level: int, col: int, row: int, extension: str) -> str:
    return f"{prefix}/tiles/{level}/{col}_{row}.{extension}"


def thumbnail_path(prefix: str, extension: str) -> str:
    return f"{prefix}/thumbnail.{extension}"


def manifest_path(prefix: str) -> str:
    return f"{prefix}/manifest.json"


def public_url(base_url: str, path: str) -> str:
    return f"{base_url.rstrip('/')}/{path.lstrip('/')}"
