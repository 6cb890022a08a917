"""Local-directory storage collaborators used by the CLI."""

from __future__ import annotations

import json
import os
import threading
import uuid
from pathlib import Path
from typing import Any, Dict, Optional

from sheettiles.core.errors import MetadataError, StorageConflict, StorageError
from sheettiles.core.models import MetadataRecord
from sheettiles.logging import get_logger

LOGGER = get_logger(__name__)

_META_SUFFIX = ".meta.json"


class FilesystemBlobStore:
    """Store objects as files below ``root``; content type lives in a sidecar."""

    def __init__(self, root: Path) -> None:
        self._root = root
        self._root.mkdir(parents=True, exist_ok=True)

    @property
    def root(self) -> Path:
        return self._root

    def _resolve(self, path: str) -> Path:
        parts = [part for part in path.split("/") if part]
        if not parts or any(part in {".", ".."} for part in parts):
            raise StorageError(f"Invalid object path: {path!r}")
        return self._root.joinpath(*parts)

    def put(
        self,
        path: str,
        data: bytes,
        content_type: str,
        cache_control: str,
        fail_if_exists: bool = True,
    ) -> None:
        target = self._resolve(path)
        if fail_if_exists and target.exists():
            raise StorageConflict(path)
        sidecar = target.with_name(target.name + _META_SUFFIX)
        staging = _staging_path(target)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            staging.write_bytes(data)
            _replace_text(
                sidecar,
                json.dumps({"content_type": content_type, "cache_control": cache_control}),
            )
            # Objects only appear under their final name once fully written.
            if fail_if_exists:
                os.link(staging, target)
            else:
                os.replace(staging, target)
        except FileExistsError as exc:
            raise StorageConflict(path) from exc
        except OSError as exc:
            raise StorageError(f"Failed to write {path}: {exc}") from exc
        finally:
            staging.unlink(missing_ok=True)

    def get(self, path: str) -> bytes:
        target = self._resolve(path)
        try:
            return target.read_bytes()
        except OSError as exc:
            raise StorageError(f"Failed to read {path}: {exc}") from exc

    def exists(self, path: str) -> bool:
        return self._resolve(path).is_file()

    def describe(self, path: str) -> Dict[str, str]:
        sidecar = self._resolve(path + _META_SUFFIX)
        return json.loads(sidecar.read_text(encoding="utf-8"))


class JsonFileMetadataStore:
    """Keep every record in one JSON document; claims are lock files."""

    def __init__(self, path: Path) -> None:
        self._path = path
        self._lock_dir = path.with_name(path.name + ".locks")
        self._lock = threading.Lock()

    def _load(self) -> Dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            payload = json.loads(self._path.read_text(encoding="utf-8")) or {}
        except (OSError, ValueError) as exc:
            raise MetadataError(f"Failed to read metadata file {self._path}: {exc}") from exc
        if not isinstance(payload, dict):
            raise MetadataError(f"Metadata file {self._path} must contain a mapping")
        return payload

    def get(self, record_id: str) -> Optional[MetadataRecord]:
        with self._lock:
            payload = self._load().get(record_id)
        if payload is None:
            return None
        return MetadataRecord.from_dict(payload)

    def set(self, record_id: str, record: MetadataRecord) -> None:
        with self._lock:
            payload = self._load()
            payload[record_id] = record.to_dict()
            tmp_path = self._path.with_name(self._path.name + ".tmp")
            try:
                self._path.parent.mkdir(parents=True, exist_ok=True)
                tmp_path.write_text(json.dumps(payload, indent=2, sort_keys=True), encoding="utf-8")
                os.replace(tmp_path, self._path)
            except OSError as exc:
                raise MetadataError(f"Failed to write metadata file {self._path}: {exc}") from exc

    def _lock_file(self, record_id: str) -> Path:
        safe = "".join(ch if ch.isalnum() or ch in "-_." else "_" for ch in record_id)
        return self._lock_dir / f"{safe}.lock"

    def claim(self, record_id: str) -> bool:
        lock_file = self._lock_file(record_id)
        try:
            self._lock_dir.mkdir(parents=True, exist_ok=True)
            with lock_file.open("x", encoding="utf-8") as handle:
                handle.write(str(os.getpid()))
        except FileExistsError:
            LOGGER.warning("record already claimed", extra={"record_id": record_id, "lock": str(lock_file)})
            return False
        except OSError as exc:
            raise MetadataError(f"Failed to claim {record_id}: {exc}") from exc
        return True

    def release(self, record_id: str) -> None:
        try:
            self._lock_file(record_id).unlink()
        except FileNotFoundError:
            return
        except OSError as exc:
            raise MetadataError(f"Failed to release claim on {record_id}: {exc}") from exc


def _staging_path(target: Path) -> Path:
    return target.with_name(f".{target.name}.{uuid.uuid4().hex}.tmp")


def _replace_text(target: Path, text: str) -> None:
    staging = _staging_path(target)
    try:
        staging.write_text(text, encoding="utf-8")
        os.replace(staging, target)
    finally:
        staging.unlink(missing_ok=True)
