"""Dataclasses describing core sheettiles entities."""

from __future__ import annotations

import enum
import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Tuple

DEEPZOOM_XMLNS = "http://schemas.microsoft.com/deepzoom/2008"
IMMUTABLE_CACHE_CONTROL = "public, max-age=31536000, immutable"


def scaled_dimension(value: int, scale: float) -> int:
    """Scale a pixel dimension, rounding half up, never below one pixel."""

    return max(1, math.floor(value * scale + 0.5))


@dataclass(frozen=True)
class SourceImage:
    """Decoded raster of one drawing-sheet page (8-bit, interleaved bands)."""

    width: int
    height: int
    pixels: bytes = field(repr=False)
    bands: int = 3

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f"Image dimensions must be positive: {self.width}x{self.height}")
        if self.bands not in (1, 2, 3, 4):
            raise ValueError(f"Unsupported band count: {self.bands}")
        expected = self.width * self.height * self.bands
        if len(self.pixels) != expected:
            raise ValueError(
                f"Pixel buffer holds {len(self.pixels)} bytes; expected {expected} "
                f"for {self.width}x{self.height}x{self.bands}"
            )

    @property
    def max_dimension(self) -> int:
        return max(self.width, self.height)


@dataclass(frozen=True)
class PyramidLevel:
    """One zoom level; index 0 is the most zoomed-out."""

    index: int
    scale: float
    width: int
    height: int


@dataclass(frozen=True)
class CropRect:
    """Rectangle in level pixel space."""

    x: int
    y: int
    width: int
    height: int

    @property
    def area(self) -> int:
        return self.width * self.height

    @property
    def is_empty(self) -> bool:
        return self.width <= 0 or self.height <= 0


@dataclass(frozen=True)
class Tile:
    """A grid cell of a level with its overlapping crop rectangle."""

    level: int
    col: int
    row: int
    rect: CropRect


@dataclass(frozen=True)
class Artifact:
    """An object ready for the blob store."""

    path: str
    data: bytes = field(repr=False)
    content_type: str
    cache_control: str = IMMUTABLE_CACHE_CONTROL


@dataclass(frozen=True)
class Manifest:
    """Pyramid descriptor fetched by a tiled-image viewer."""

    format: str
    tile_size: int
    overlap: int
    width: int
    height: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "format": self.format,
            "overlap": self.overlap,
            "tileSize": self.tile_size,
            "size": {"width": self.width, "height": self.height},
        }

    def to_deepzoom(self) -> Dict[str, Any]:
        """Return the Deep Zoom ``Image`` JSON form."""

        return {
            "Image": {
                "xmlns": DEEPZOOM_XMLNS,
                "Format": self.format,
                "Overlap": self.overlap,
                "TileSize": self.tile_size,
                "Size": {"Width": self.width, "Height": self.height},
            }
        }

    def to_dzi_xml(self) -> str:
        """Return the manifest as a ``.dzi`` XML document."""

        import xml.etree.ElementTree as ET

        image = ET.Element(
            "Image",
            {
                "xmlns": DEEPZOOM_XMLNS,
                "Format": self.format,
                "Overlap": str(self.overlap),
                "TileSize": str(self.tile_size),
            },
        )
        ET.SubElement(image, "Size", {"Width": str(self.width), "Height": str(self.height)})
        body = ET.tostring(image, encoding="unicode")
        return f'<?xml version="1.0" encoding="UTF-8"?>\n{body}'

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "Manifest":
        """Parse either the primary manifest shape or the Deep Zoom ``Image`` shape."""

        if "Image" in payload:
            image = payload["Image"]
            size = image.get("Size") or {}
            return cls(
                format=str(image.get("Format", "")),
                tile_size=int(image.get("TileSize", 0)),
                overlap=int(image.get("Overlap", 0)),
                width=int(size.get("Width", 0)),
                height=int(size.get("Height", 0)),
            )
        size = payload.get("size") or {}
        return cls(
            format=str(payload.get("format", "")),
            tile_size=int(payload.get("tileSize", 0)),
            overlap=int(payload.get("overlap", 0)),
            width=int(size.get("width", 0)),
            height=int(size.get("height", 0)),
        )

    def level_count(self, max_levels: Optional[int] = None) -> int:
        computed = math.ceil(math.log2(max(self.width, self.height) / self.tile_size)) + 1
        if max_levels is not None:
            computed = min(max_levels, computed)
        return max(1, computed)

    def level_dimensions(self, max_levels: Optional[int] = None) -> List[Tuple[int, int]]:
        """Recompute each level's raster size the way a viewer does."""

        count = self.level_count(max_levels)
        sizes = []
        for index in range(count):
            scale = 2.0 ** (index - (count - 1))
            sizes.append(
                (scaled_dimension(self.width, scale), scaled_dimension(self.height, scale))
            )
        return sizes


@dataclass
class MetadataRecord:
    """Generation metadata kept for one sheet version."""

    manifest: Optional[Dict[str, Any]] = None
    base_url: Optional[str] = None
    source_hash: Optional[str] = None
    levels: Optional[int] = None
    width: Optional[int] = None
    height: Optional[int] = None
    thumbnail_url: Optional[str] = None
    base_path: Optional[str] = None
    generated_at: Optional[datetime] = None

    @property
    def is_generated(self) -> bool:
        return bool(self.manifest) and bool(self.base_url)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "manifest": self.manifest,
            "base_url": self.base_url,
            "source_hash": self.source_hash,
            "levels": self.levels,
            "width": self.width,
            "height": self.height,
            "thumbnail_url": self.thumbnail_url,
            "base_path": self.base_path,
            "generated_at": self.generated_at.isoformat() if self.generated_at else None,
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "MetadataRecord":
        generated_at = payload.get("generated_at")
        return cls(
            manifest=payload.get("manifest"),
            base_url=payload.get("base_url"),
            source_hash=payload.get("source_hash"),
            levels=payload.get("levels"),
            width=payload.get("width"),
            height=payload.get("height"),
            thumbnail_url=payload.get("thumbnail_url"),
            base_path=payload.get("base_path"),
            generated_at=datetime.fromisoformat(generated_at) if generated_at else None,
        )


class GenerationState(enum.Enum):
    IDLE = "idle"
    GUARDED = "guarded"
    RENDERING = "rendering"
    PLANNING = "planning"
    PER_LEVEL_TILING = "per_level_tiling"
    THUMBNAIL_GENERATED = "thumbnail_generated"
    MANIFEST_PERSISTED = "manifest_persisted"
    DONE = "done"
    FAILED = "failed"


@dataclass
class GenerationRequest:
    """Input handed to the generator by a job worker."""

    record_id: str
    org_id: str
    document: Optional[bytes] = field(default=None, repr=False)


@dataclass
class GenerationResult:
    """Outcome of one generator invocation."""

    skipped: bool
    levels: int = 0
    width: int = 0
    height: int = 0
    base_url: Optional[str] = None
    source_hash: Optional[str] = None
    uploaded: int = 0
    deduplicated: int = 0
    states: List[GenerationState] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "skipped": self.skipped,
            "levelCount": self.levels,
            "width": self.width,
            "height": self.height,
        }


@dataclass
class TilingConfig:
    """Pyramid geometry and encoding options."""

    tile_size: int = 256
    overlap: int = 1
    max_levels: int = 12
    tile_format: str = "webp"
    tile_quality: int = 82
    thumbnail_size: int = 256
    thumbnail_quality: int = 80
    workers: int = 1


@dataclass
class StorageConfig:
    """Where artifacts go and how they are published."""

    base_url: Optional[str] = None
    cache_control: str = IMMUTABLE_CACHE_CONTROL
    hash_length: int = 16
    bucket: str = "drawings-tiles"
    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None
    timeout_seconds: int = 60


@dataclass
class RenderConfig:
    """Options for producing the base raster."""

    mode: str = "vips"
    scale: float = 4.0
    endpoint: Optional[str] = None
    timeout_seconds: int = 120
