"""Pyramid planning, tile geometry, encoding and manifests."""

from .encoder import TileEncoder, content_type_for, extension_for, source_to_vips, vips_to_source
from .geometry import clamp_rect, core_rect, enumerate_tiles, grid_size, tile_rect
from .manifest import build_manifest, manifest_to_json, validate_manifest
from .planner import compute_level_count, level_scale, plan_levels

__all__ = [
    "TileEncoder",
    "build_manifest",
    "clamp_rect",
    "compute_level_count",
    "content_type_for",
    "core_rect",
    "enumerate_tiles",
    "extension_for",
    "grid_size",
    "level_scale",
    "manifest_to_json",
    "plan_levels",
    "source_to_vips",
    "tile_rect",
    "validate_manifest",
    "vips_to_source",
]
