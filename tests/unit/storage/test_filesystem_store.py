from pathlib import Path

import pytest

from sheettiles.core.errors import MetadataError, StorageConflict, StorageError
from sheettiles.core.models import MetadataRecord
from sheettiles.storage.filesystem import FilesystemBlobStore, JsonFileMetadataStore


def test_put_is_exclusive(tmp_path: Path) -> None:
    store = FilesystemBlobStore(tmp_path / "blobs")
    store.put("org/hash/tiles/0/0_0.webp", b"one", "image/webp", "public, max-age=60")

    assert store.exists("org/hash/tiles/0/0_0.webp")
    assert store.get("org/hash/tiles/0/0_0.webp") == b"one"
    assert store.describe("org/hash/tiles/0/0_0.webp") == {
        "content_type": "image/webp",
        "cache_control": "public, max-age=60",
    }
    with pytest.raises(StorageConflict) as exc_info:
        store.put("org/hash/tiles/0/0_0.webp", b"two", "image/webp", "public, max-age=60")
    assert exc_info.value.path == "org/hash/tiles/0/0_0.webp"
    assert store.get("org/hash/tiles/0/0_0.webp") == b"one"

    store.put("org/hash/tiles/0/0_0.webp", b"two", "image/webp", "x", fail_if_exists=False)
    assert store.get("org/hash/tiles/0/0_0.webp") == b"two"


def test_rejects_escaping_paths(tmp_path: Path) -> None:
    store = FilesystemBlobStore(tmp_path)
    with pytest.raises(StorageError):
        store.put("../outside.txt", b"x", "text/plain", "no-cache")
    with pytest.raises(StorageError):
        store.get("missing/object")


def test_metadata_round_trip(tmp_path: Path) -> None:
    path = tmp_path / "meta" / "records.json"
    store = JsonFileMetadataStore(path)
    assert store.get("sv-1") is None

    record = MetadataRecord(
        manifest={"format": "webp"},
        base_url="https://cdn/org/hash",
        source_hash="hash",
        levels=3,
        width=600,
        height=400,
    )
    store.set("sv-1", record)
    reloaded = JsonFileMetadataStore(path).get("sv-1")
    assert reloaded == record
    assert reloaded is not None and reloaded.is_generated


def test_claims_are_exclusive(tmp_path: Path) -> None:
    store = JsonFileMetadataStore(tmp_path / "records.json")
    assert store.claim("sv/1") is True
    assert JsonFileMetadataStore(tmp_path / "records.json").claim("sv/1") is False
    store.release("sv/1")
    assert store.claim("sv/1") is True
    store.release("sv/1")
    store.release("sv/1")


def test_corrupt_metadata_file(tmp_path: Path) -> None:
    path = tmp_path / "records.json"
    path.write_text("[1, 2]", encoding="utf-8")
    with pytest.raises(MetadataError):
        JsonFileMetadataStore(path).get("sv-1")


def _stored_files(root: Path) -> list:
    return sorted(str(item.relative_to(root)) for item in root.rglob("*") if item.is_file())


def test_interrupted_write_publishes_nothing(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    store = FilesystemBlobStore(tmp_path)
    payload = b"RIFF" + b"\x00" * 200
    real_write_bytes = Path.write_bytes

    def short_write(self: Path, data: bytes) -> int:
        real_write_bytes(self, data[:10])
        raise OSError(28, "No space left on device")

    monkeypatch.setattr(Path, "write_bytes", short_write)
    with pytest.raises(StorageError) as exc_info:
        store.put("org/hash/tiles/1/0_0.webp", payload, "image/webp", "immutable")
    assert not isinstance(exc_info.value, StorageConflict)
    monkeypatch.undo()

    assert not store.exists("org/hash/tiles/1/0_0.webp")
    assert _stored_files(tmp_path) == []

    store.put("org/hash/tiles/1/0_0.webp", payload, "image/webp", "immutable")
    assert store.get("org/hash/tiles/1/0_0.webp") == payload


def test_sidecar_failure_is_a_storage_error(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    store = FilesystemBlobStore(tmp_path)

    def failing_write_text(self: Path, *args, **kwargs):  # type: ignore[no-untyped-def]
        raise PermissionError(13, "Permission denied")

    monkeypatch.setattr(Path, "write_text", failing_write_text)
    with pytest.raises(StorageError):
        store.put("org/hash/thumbnail.webp", b"thumb", "image/webp", "immutable")
    monkeypatch.undo()

    assert _stored_files(tmp_path) == []
    store.put("org/hash/thumbnail.webp", b"thumb", "image/webp", "immutable")
    assert store.describe("org/hash/thumbnail.webp")["content_type"] == "image/webp"
