"""Protocol definitions for storage collaborators."""

from __future__ import annotations

from typing import Any, Dict, Optional, Protocol

from sheettiles.core.models import MetadataRecord


class BlobStore(Protocol):
    """Object storage keyed by path."""

    def put(
        self,
        path: str,
        data: bytes,
        content_type: str,
        cache_control: str,
        fail_if_exists: bool = True,
    ) -> None:
        """Write an object; raise ``StorageConflict`` if it exists and ``fail_if_exists``."""

    def get(self, path: str) -> bytes:
        """Return the object's bytes or raise ``StorageError``."""

    def exists(self, path: str) -> bool:
        """Return True when an object is stored at ``path``."""


class MetadataStore(Protocol):
    """Record store holding generation metadata per sheet version."""

    def get(self, record_id: str) -> Optional[MetadataRecord]:
        """Return the record, or None when nothing has been stored yet."""

    def set(self, record_id: str, record: MetadataRecord) -> None:
        """Persist the generation metadata for ``record_id``."""

    def claim(self, record_id: str) -> bool:
        """Mark generation in progress; return False if already claimed."""

    def release(self, record_id: str) -> None:
        """Clear the in-progress marker set by :meth:`claim`."""


class Outbox(Protocol):
    """At-least-once notification sink used after a successful run."""

    def append(self, event: str, payload: Dict[str, Any]) -> None:
        """Queue ``event`` with ``payload`` for later delivery."""
