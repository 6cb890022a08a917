"""Tile grid enumeration and edge-clamped crop rectangles."""

from __future__ import annotations

import math
from typing import Iterator, Tuple

from sheettiles.core.models import CropRect, Tile


def grid_size(level_width: int, level_height: int, tile_size: int) -> Tuple[int, int]:
    """Return ``(cols, rows)`` for a level raster."""

    if tile_size <= 0:
        raise ValueError(f"tile_size must be positive: {tile_size}")
    return math.ceil(level_width / tile_size), math.ceil(level_height / tile_size)


def clamp_rect(x: int, y: int, width: int, height: int, max_width: int, max_height: int) -> CropRect:
    """Intersect a rectangle with ``[0, max_width) x [0, max_height)``."""

    x0 = max(0, x)
    y0 = max(0, y)
    x1 = min(max_width, x + width)
    y1 = min(max_height, y + height)
    return CropRect(x=x0, y=y0, width=max(0, x1 - x0), height=max(0, y1 - y0))


def tile_rect(col: int, row: int, level_width: int, level_height: int, tile_size: int, overlap: int) -> CropRect:
    """Crop rectangle of one grid cell including overlap on every inner side."""

    span = tile_size + 2 * overlap
    return clamp_rect(
        col * tile_size - overlap,
        row * tile_size - overlap,
        span,
        span,
        level_width,
        level_height,
    )


def enumerate_tiles(
    level_width: int,
    level_height: int,
    tile_size: int,
    overlap: int,
    *,
    level: int = 0,
) -> Iterator[Tile]:
    """Yield the tiles of one level column by column.

    Zero-area rectangles are skipped. The sequence is a pure function of its
    arguments and may be re-run to reproduce identical rectangles.
    """

    if overlap < 0:
        raise ValueError(f"overlap must not be negative: {overlap}")
    cols, rows = grid_size(level_width, level_height, tile_size)
    for col in range(cols):
        for row in range(rows):
            rect = tile_rect(col, row, level_width, level_height, tile_size, overlap)
            if rect.is_empty:
                continue
            yield Tile(level=level, col=col, row=row, rect=rect)


def core_rect(tile: Tile, tile_size: int, level_width: int, level_height: int) -> CropRect:
    """The tile's grid cell without overlap."""

    return clamp_rect(
        tile.col * tile_size,
        tile.row * tile_size,
        tile_size,
        tile_size,
        level_width,
        level_height,
    )
