"""Storage collaborators and content-addressed paths."""

from .addressing import (
    content_hash,
    manifest_path,
    public_url,
    storage_prefix,
    thumbnail_path,
    tile_path,
)
from .base import BlobStore, MetadataStore, Outbox
from .filesystem import FilesystemBlobStore, JsonFileMetadataStore
from .memory import MemoryBlobStore, MemoryMetadataStore, MemoryOutbox
from .supabase import SupabaseBlobStore

__all__ = [
    "BlobStore",
    "FilesystemBlobStore",
    "JsonFileMetadataStore",
    "MemoryBlobStore",
    "MemoryMetadataStore",
    "MemoryOutbox",
    "MetadataStore",
    "Outbox",
    "SupabaseBlobStore",
    "content_hash",
    "manifest_path",
    "public_url",
    "storage_prefix",
    "thumbnail_path",
    "tile_path",
]
