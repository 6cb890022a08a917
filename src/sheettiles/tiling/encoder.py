"""Tile and thumbnail encoding built on libvips."""

from __future__ import annotations

from typing import Optional

import pyvips

from sheettiles.core.errors import EncodeError
from sheettiles.core.models import PyramidLevel, SourceImage, Tile, TilingConfig, scaled_dimension
from sheettiles.logging import get_logger

LOGGER = get_logger(__name__)

# The format tag doubles as the tile file extension, since viewers build tile
# URLs from the manifest ``format`` field.
_CONTENT_TYPES = {"webp": "image/webp", "jpg": "image/jpeg"}
_ALIASES = {"jpeg": "jpg"}


def normalize_format(tile_format: str) -> str:
    fmt = tile_format.lower()
    fmt = _ALIASES.get(fmt, fmt)
    if fmt not in _CONTENT_TYPES:
        raise ValueError(f"Unsupported tile format: {tile_format}")
    return fmt


def content_type_for(tile_format: str) -> str:
    return _CONTENT_TYPES[normalize_format(tile_format)]


def extension_for(tile_format: str) -> str:
    return normalize_format(tile_format)


def source_to_vips(source: SourceImage) -> pyvips.Image:
    """Wrap a decoded source raster as a libvips image without re-encoding."""

    try:
        image = pyvips.Image.new_from_memory(
            source.pixels, source.width, source.height, source.bands, "uchar"
        )
    except pyvips.Error as exc:
        raise EncodeError(
            f"Failed to load {source.width}x{source.height} source raster: {exc}"
        ) from exc
    if source.bands >= 3:
        return image.copy(interpretation="srgb")
    return image.copy(interpretation="b-w")


def vips_to_source(image: pyvips.Image) -> SourceImage:
    """Flatten a libvips image into an 8-bit interleaved :class:`SourceImage`."""

    if image.interpretation not in ("srgb", "b-w"):
        image = image.colourspace("srgb")
    if image.format != "uchar":
        image = image.cast("uchar")
    return SourceImage(
        width=image.width,
        height=image.height,
        bands=image.bands,
        pixels=image.write_to_memory(),
    )


class TileEncoder:
    """Resample levels, crop tiles and compress them at a fixed quality."""

    def __init__(self, config: TilingConfig) -> None:
        self._config = config
        self._format = normalize_format(config.tile_format)

    @property
    def format(self) -> str:
        return self._format

    @property
    def extension(self) -> str:
        return extension_for(self._format)

    @property
    def content_type(self) -> str:
        return content_type_for(self._format)

    def level_image(self, base: pyvips.Image, level: PyramidLevel) -> pyvips.Image:
        """Return the raster for ``level``; the native level is the base itself."""

        if level.scale == 1.0:
            return base
        try:
            return base.thumbnail_image(level.width, height=level.height, size="force")
        except pyvips.Error as exc:
            raise EncodeError(f"Failed to resample level {level.index}: {exc}") from exc

    def encode(self, image: pyvips.Image, *, quality: Optional[int] = None) -> bytes:
        """Compress ``image`` into the configured format."""

        q = quality if quality is not None else self._config.tile_quality
        try:
            return image.write_to_buffer(f".{self.extension}", Q=q)
        except pyvips.Error as exc:
            raise EncodeError(f"Failed to encode {image.width}x{image.height} region: {exc}") from exc

    def encode_tile(self, level_image: pyvips.Image, tile: Tile) -> bytes:
        rect = tile.rect
        try:
            region = level_image.crop(rect.x, rect.y, rect.width, rect.height)
        except pyvips.Error as exc:
            raise EncodeError(
                f"Failed to crop tile {tile.level}/{tile.col}_{tile.row}: {exc}"
            ) from exc
        return self.encode(region)

    def thumbnail(self, base: pyvips.Image) -> bytes:
        """Downsize so the longer side equals the thumbnail target and encode."""

        target = self._config.thumbnail_size
        scale = target / max(base.width, base.height)
        width = scaled_dimension(base.width, scale)
        height = scaled_dimension(base.height, scale)
        try:
            resized = base.thumbnail_image(width, height=height, size="force")
        except pyvips.Error as exc:
            raise EncodeError(f"Failed to resize thumbnail: {exc}") from exc
        LOGGER.debug("thumbnail resized", extra={"width": width, "height": height})
        return self.encode(resized, quality=self._config.thumbnail_quality)
