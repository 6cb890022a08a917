"""Pyramid level planning."""

from __future__ import annotations

import math
from typing import List

from sheettiles.core.models import PyramidLevel, scaled_dimension


def compute_level_count(max_dimension: int, tile_size: int, level_cap: int) -> int:
    """Return how many levels are needed for the finest one to reach native size.

    ``ceil(log2(max_dimension / tile_size)) + 1`` clamped to ``[1, level_cap]``.
    Images no larger than one tile get a single level.
    """

    if max_dimension <= 0:
        raise ValueError(f"max_dimension must be positive: {max_dimension}")
    if tile_size <= 0:
        raise ValueError(f"tile_size must be positive: {tile_size}")
    if level_cap < 1:
        raise ValueError(f"level_cap must be at least 1: {level_cap}")
    if max_dimension <= tile_size:
        return 1
    computed = math.ceil(math.log2(max_dimension / tile_size)) + 1
    return max(1, min(level_cap, computed))


def level_scale(index: int, level_count: int) -> float:
    """Scale of level ``index``; the last level is exactly 1.0."""

    if not 0 <= index < level_count:
        raise ValueError(f"level {index} outside 0..{level_count - 1}")
    return 2.0 ** (index - (level_count - 1))


def plan_levels(width: int, height: int, tile_size: int, level_cap: int) -> List[PyramidLevel]:
    """Return every level from coarsest (index 0) to native resolution."""

    count = compute_level_count(max(width, height), tile_size, level_cap)
    levels = []
    for index in range(count):
        scale = level_scale(index, count)
        if scale == 1.0:
            level_width, level_height = width, height
        else:
            level_width = scaled_dimension(width, scale)
            level_height = scaled_dimension(height, scale)
        levels.append(PyramidLevel(index=index, scale=scale, width=level_width, height=level_height))
    return levels
