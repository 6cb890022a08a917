"""Local rasterization with libvips (poppler-backed PDF loading)."""

from __future__ import annotations

import pyvips

from sheettiles.core.errors import RenderError
from sheettiles.core.models import SourceImage
from sheettiles.logging import get_logger
from sheettiles.tiling.encoder import vips_to_source

LOGGER = get_logger(__name__)

PDF_MAGIC = b"%PDF"


def _flatten(image: pyvips.Image) -> pyvips.Image:
    # Bring 16-bit and float rasters to 8-bit first so white is 255.
    if image.format != "uchar":
        grey = image.interpretation in ("grey16", "b-w")
        image = image.colourspace("b-w" if grey else "srgb")
    if not image.hasalpha():
        return image
    return image.flatten(background=[255] * (image.bands - 1))


def is_pdf(document: bytes) -> bool:
    return document[:1024].lstrip().startswith(PDF_MAGIC)


def decode_image(data: bytes) -> SourceImage:
    """Decode an encoded raster (PNG, JPEG, WebP, TIFF...) onto a white background."""

    try:
        image = pyvips.Image.new_from_buffer(data, "")
        return vips_to_source(_flatten(image))
    except pyvips.Error as exc:
        raise RenderError(f"Failed to decode raster: {exc}") from exc


class VipsRasterizer:
    """Render page 0 of a PDF, or decode an already-rasterized page."""

    def __init__(self, *, scale: float = 4.0) -> None:
        if scale <= 0:
            raise ValueError(f"scale must be positive: {scale}")
        self._scale = scale

    def render(self, document: bytes) -> SourceImage:
        if not document:
            raise RenderError("Empty document")
        if not is_pdf(document):
            return decode_image(document)
        try:
            page = pyvips.Image.pdfload_buffer(document, page=0, scale=self._scale)
            source = vips_to_source(_flatten(page))
        except pyvips.Error as exc:
            raise RenderError(f"Failed to render PDF page: {exc}") from exc
        LOGGER.info(
            "rendered pdf page",
            extra={"width": source.width, "height": source.height, "scale": self._scale},
        )
        return source
