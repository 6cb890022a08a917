"""Core data models for sheettiles."""

from .errors import (
    ConfigError,
    EncodeError,
    GenerationCancelled,
    GenerationError,
    GenerationInProgress,
    InputError,
    ManifestError,
    MetadataError,
    RenderError,
    SheetTilesError,
    StorageConflict,
    StorageError,
)
from .models import (
    Artifact,
    CropRect,
    GenerationRequest,
    GenerationResult,
    GenerationState,
    Manifest,
    MetadataRecord,
    PyramidLevel,
    RenderConfig,
    SourceImage,
    StorageConfig,
    Tile,
    TilingConfig,
)

__all__ = [
    "Artifact",
    "ConfigError",
    "CropRect",
    "EncodeError",
    "GenerationCancelled",
    "GenerationError",
    "GenerationInProgress",
    "GenerationRequest",
    "GenerationResult",
    "GenerationState",
    "InputError",
    "Manifest",
    "ManifestError",
    "MetadataError",
    "MetadataRecord",
    "PyramidLevel",
    "RenderConfig",
    "RenderError",
    "SheetTilesError",
    "SourceImage",
    "StorageConfig",
    "StorageConflict",
    "StorageError",
    "Tile",
    "TilingConfig",
]
