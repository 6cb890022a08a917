"""Exception hierarchy shared by the pyramid pipeline."""

from __future__ import annotations

from typing import Dict, Optional


class SheetTilesError(RuntimeError):
    """Base class for every error raised by sheettiles."""


class ConfigError(SheetTilesError, ValueError):
    """Raised when configuration values are missing or malformed."""


class InputError(SheetTilesError, ValueError):
    """Raised when the source reference is missing or invalid."""


class RenderError(SheetTilesError):
    """Raised when the base raster cannot be produced."""


class EncodeError(SheetTilesError):
    """Raised when a tile or thumbnail fails to compress."""


class ManifestError(SheetTilesError, ValueError):
    """Raised when a manifest does not describe a valid pyramid."""


class StorageError(SheetTilesError):
    """Raised when the blob store rejects a write or read."""


class StorageConflict(StorageError):
    """Raised when an object already exists at the requested path."""

    def __init__(self, path: str) -> None:
        super().__init__(f"Object already exists: {path}")
        self.path = path


class MetadataError(SheetTilesError):
    """Raised when the metadata record cannot be read or updated."""


class GenerationInProgress(MetadataError):
    """Raised when another invocation holds the claim on a record."""


class GenerationCancelled(SheetTilesError):
    """Raised when generation stops because cancellation was requested."""


class GenerationError(SheetTilesError):
    """Single structured failure surfaced to the caller of the generator."""

    def __init__(
        self,
        message: str,
        *,
        record_id: str,
        artifact: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message)
        self.record_id = record_id
        self.artifact = artifact
        self.cause = cause

    @property
    def category(self) -> str:
        return type(self.cause).__name__ if self.cause is not None else type(self).__name__

    def failure_payload(self) -> Dict[str, object]:
        payload: Dict[str, object] = {
            "success": False,
            "error": str(self),
            "category": self.category,
            "record_id": self.record_id,
        }
        if self.artifact:
            payload["artifact"] = self.artifact
        return payload
