"""Pyramid generation orchestrator."""

from .generator import TILES_GENERATED_EVENT, PyramidGenerator

__all__ = ["PyramidGenerator", "TILES_GENERATED_EVENT"]
