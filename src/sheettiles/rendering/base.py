"""Protocol definitions for base-raster producers."""

from __future__ import annotations

from typing import Protocol

from sheettiles.core.models import SourceImage


class Rasterizer(Protocol):
    """Turn a single-page source document into one decoded raster."""

    def render(self, document: bytes) -> SourceImage:
        """Return the page raster; raise ``RenderError`` when it cannot be produced."""
