"""In-process storage collaborators."""

from __future__ import annotations

import copy
import threading
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Set, Tuple

from sheettiles.core.errors import StorageConflict, StorageError
from sheettiles.core.models import MetadataRecord


@dataclass(frozen=True)
class StoredObject:
    data: bytes
    content_type: str
    cache_control: str


class MemoryBlobStore:
    """Thread-safe dictionary-backed blob store."""

    def __init__(self) -> None:
        self._objects: Dict[str, StoredObject] = {}
        self._lock = threading.Lock()
        self.writes: List[str] = []
        self.conflicts: List[str] = []

    def put(
        self,
        path: str,
        data: bytes,
        content_type: str,
        cache_control: str,
        fail_if_exists: bool = True,
    ) -> None:
        with self._lock:
            if fail_if_exists and path in self._objects:
                self.conflicts.append(path)
                raise StorageConflict(path)
            self._objects[path] = StoredObject(bytes(data), content_type, cache_control)
            self.writes.append(path)

    def get(self, path: str) -> bytes:
        with self._lock:
            stored = self._objects.get(path)
        if stored is None:
            raise StorageError(f"Object not found: {path}")
        return stored.data

    def exists(self, path: str) -> bool:
        with self._lock:
            return path in self._objects

    def describe(self, path: str) -> StoredObject:
        with self._lock:
            return self._objects[path]

    def paths(self) -> List[str]:
        with self._lock:
            return sorted(self._objects)


class MemoryMetadataStore:
    """Thread-safe metadata records with an in-progress claim set."""

    def __init__(self) -> None:
        self._records: Dict[str, MetadataRecord] = {}
        self._claims: Set[str] = set()
        self._lock = threading.Lock()

    def get(self, record_id: str) -> Optional[MetadataRecord]:
        with self._lock:
            record = self._records.get(record_id)
            return copy.deepcopy(record) if record is not None else None

    def set(self, record_id: str, record: MetadataRecord) -> None:
        with self._lock:
            self._records[record_id] = copy.deepcopy(record)

    def claim(self, record_id: str) -> bool:
        with self._lock:
            if record_id in self._claims:
                return False
            self._claims.add(record_id)
            return True

    def release(self, record_id: str) -> None:
        with self._lock:
            self._claims.discard(record_id)

    def is_claimed(self, record_id: str) -> bool:
        with self._lock:
            return record_id in self._claims


class MemoryOutbox:
    """Append-only list of queued events."""

    def __init__(self) -> None:
        self.events: List[Tuple[str, Dict[str, Any]]] = []
        self._lock = threading.Lock()

    def append(self, event: str, payload: Dict[str, Any]) -> None:
        with self._lock:
            self.events.append((event, dict(payload)))
