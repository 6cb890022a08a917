"""Manifest construction and validation."""

from __future__ import annotations

import json
from typing import Any, Mapping, Union

from sheettiles.core.errors import ManifestError
from sheettiles.core.models import Manifest


def build_manifest(width: int, height: int, tile_size: int, overlap: int, tile_format: str) -> Manifest:
    manifest = Manifest(
        format=tile_format,
        tile_size=tile_size,
        overlap=overlap,
        width=width,
        height=height,
    )
    validate_manifest(manifest)
    return manifest


def validate_manifest(manifest: Union[Manifest, Mapping[str, Any]]) -> Manifest:
    """Return the manifest when it describes a valid pyramid, else raise."""

    if not isinstance(manifest, Manifest):
        try:
            manifest = Manifest.from_dict(manifest)
        except (TypeError, ValueError, AttributeError) as exc:
            raise ManifestError(f"Malformed manifest payload: {exc}") from exc
    if not manifest.format:
        raise ManifestError("Manifest format must be a non-empty string")
    if manifest.tile_size <= 0:
        raise ManifestError(f"Manifest tileSize must be positive: {manifest.tile_size}")
    if manifest.overlap < 0 or manifest.overlap >= manifest.tile_size:
        raise ManifestError(
            f"Manifest overlap must be within [0, tileSize): {manifest.overlap}"
        )
    if manifest.width <= 0 or manifest.height <= 0:
        raise ManifestError(
            f"Manifest size must be positive: {manifest.width}x{manifest.height}"
        )
    return manifest


def manifest_to_json(manifest: Manifest) -> bytes:
    return json.dumps(manifest.to_dict(), sort_keys=True).encode("utf-8")
