"""Deep Zoom tile pyramids for drawing-sheet pages."""

from __future__ import annotations

import importlib
from typing import Any

__all__ = [
    "FilesystemBlobStore",
    "GenerationRequest",
    "GenerationResult",
    "HttpRasterizer",
    "JsonFileMetadataStore",
    "Manifest",
    "MemoryBlobStore",
    "MemoryMetadataStore",
    "PyramidGenerator",
    "SourceImage",
    "SupabaseBlobStore",
    "TileEncoder",
    "TilingConfig",
    "VipsRasterizer",
    "build_manifest",
    "compute_level_count",
    "enumerate_tiles",
    "plan_levels",
]

_MODULE_MAP = {
    "FilesystemBlobStore": ("sheettiles.storage", "FilesystemBlobStore"),
    "GenerationRequest": ("sheettiles.core", "GenerationRequest"),
    "GenerationResult": ("sheettiles.core", "GenerationResult"),
    "HttpRasterizer": ("sheettiles.rendering", "HttpRasterizer"),
    "JsonFileMetadataStore": ("sheettiles.storage", "JsonFileMetadataStore"),
    "Manifest": ("sheettiles.core", "Manifest"),
    "MemoryBlobStore": ("sheettiles.storage", "MemoryBlobStore"),
    "MemoryMetadataStore": ("sheettiles.storage", "MemoryMetadataStore"),
    "PyramidGenerator": ("sheettiles.generation", "PyramidGenerator"),
    "SourceImage": ("sheettiles.core", "SourceImage"),
    "SupabaseBlobStore": ("sheettiles.storage", "SupabaseBlobStore"),
    "TileEncoder": ("sheettiles.tiling", "TileEncoder"),
    "TilingConfig": ("sheettiles.core", "TilingConfig"),
    "VipsRasterizer": ("sheettiles.rendering", "VipsRasterizer"),
    "build_manifest": ("sheettiles.tiling", "build_manifest"),
    "compute_level_count": ("sheettiles.tiling", "compute_level_count"),
    "enumerate_tiles": ("sheettiles.tiling", "enumerate_tiles"),
    "plan_levels": ("sheettiles.tiling", "plan_levels"),
}


def __getattr__(name: str) -> Any:
    if name not in _MODULE_MAP:
        raise AttributeError(f"module 'sheettiles' has no attribute '{name}'")
    module_name, attr = _MODULE_MAP[name]
    module = importlib.import_module(module_name)
    return getattr(module, attr)
