"""Base-raster producers."""

from .base import Rasterizer
from .http import HttpRasterizer
from .vips import VipsRasterizer, decode_image, is_pdf

__all__ = ["HttpRasterizer", "Rasterizer", "VipsRasterizer", "decode_image", "is_pdf"]
