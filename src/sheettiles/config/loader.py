"""Configuration management with YAML and JSON support."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Type, TypeVar

import yaml

from sheettiles.core.errors import ConfigError
from sheettiles.core.models import RenderConfig, StorageConfig, TilingConfig
from sheettiles.tiling.encoder import normalize_format

T = TypeVar("T")

ENV_OVERRIDES = {
    "SHEETTILES_BASE_URL": ("storage", "base_url"),
    "DRAWINGS_TILES_BASE_URL": ("storage", "base_url"),
    "SUPABASE_URL": ("storage", "supabase_url"),
    "SUPABASE_SERVICE_ROLE_KEY": ("storage", "supabase_key"),
    "SHEETTILES_RENDER_ENDPOINT": ("render", "endpoint"),
}


@dataclass
class PipelineConfig:
    """Top-level configuration for generation runs."""

    store_dir: Path = Path("tiles")
    metadata_path: Path = Path("tiles/metadata.json")
    tiling: TilingConfig = field(default_factory=TilingConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    render: RenderConfig = field(default_factory=RenderConfig)

    def resolve_relative_paths(self, base_dir: Path) -> None:
        """Resolve relative directories against the provided base directory."""

        if not self.store_dir.is_absolute():
            self.store_dir = base_dir / self.store_dir
        if not self.metadata_path.is_absolute():
            self.metadata_path = base_dir / self.metadata_path

    def apply_env(self, environ: Optional[Mapping[str, str]] = None) -> None:
        """Fill unset storage and render options from environment variables."""

        environ = os.environ if environ is None else environ
        for name, (section, key) in ENV_OVERRIDES.items():
            value = environ.get(name)
            target = getattr(self, section)
            if value and not getattr(target, key):
                setattr(target, key, value)


class ConfigLoader:
    """Load pipeline configuration files in YAML or JSON format."""

    def __init__(self, base_dir: Optional[Path] = None) -> None:
        self._base_dir = base_dir or Path.cwd()

    def load(self, path: Path | str) -> PipelineConfig:
        """Parse a configuration file and return a populated dataclass."""

        config_path = self._resolve_path(Path(path))
        payload = self._load_payload(config_path)
        config = self.build(payload)
        config.resolve_relative_paths(config_path.parent)
        return config

    def _resolve_path(self, path: Path) -> Path:
        if path.is_absolute():
            return path
        return (self._base_dir / path).resolve()

    def _load_payload(self, path: Path) -> Dict[str, Any]:
        suffix = path.suffix.lower()
        try:
            with path.open("r", encoding="utf-8") as handle:
                if suffix in {".yaml", ".yml"}:
                    payload = yaml.safe_load(handle) or {}
                elif suffix == ".json":
                    payload = json.load(handle) or {}
                else:
                    raise ConfigError(f"Unsupported configuration format: {suffix}")
        except OSError as exc:
            raise ConfigError(f"Cannot read configuration file {path}: {exc}") from exc
        except (yaml.YAMLError, json.JSONDecodeError) as exc:
            raise ConfigError(f"Invalid configuration file {path}: {exc}") from exc
        if not isinstance(payload, dict):
            raise ConfigError("configuration root must be a mapping")
        return payload

    def build(self, payload: Mapping[str, Any]) -> PipelineConfig:
        tiling = _section(payload, "tiling", TilingConfig)
        for key in ("tile_size", "overlap", "max_levels", "tile_quality", "thumbnail_size", "thumbnail_quality", "workers"):
            setattr(tiling, key, int(getattr(tiling, key)))
        tiling.tile_format = _tile_format(tiling.tile_format)
        _validate_tiling(tiling)

        storage = _section(payload, "storage", StorageConfig)
        storage.hash_length = int(storage.hash_length)
        storage.timeout_seconds = int(storage.timeout_seconds)

        render = _section(payload, "render", RenderConfig)
        render.scale = float(render.scale)
        render.timeout_seconds = int(render.timeout_seconds)
        if render.mode not in {"vips", "http"}:
            raise ConfigError(f"render.mode must be 'vips' or 'http': {render.mode}")

        return PipelineConfig(
            store_dir=Path(payload.get("store_dir", "tiles")),
            metadata_path=Path(payload.get("metadata_path", "tiles/metadata.json")),
            tiling=tiling,
            storage=storage,
            render=render,
        )


def _section(payload: Mapping[str, Any], name: str, cls: Type[T]) -> T:
    section = payload.get(name) or {}
    if not isinstance(section, dict):
        raise ConfigError(f"{name} section must be a mapping")
    known = {item.name for item in fields(cls)}
    unknown = sorted(set(section) - known)
    if unknown:
        raise ConfigError(f"Unknown {name} options: {', '.join(unknown)}")
    return cls(**section)


def _tile_format(value: Any) -> str:
    try:
        return normalize_format(str(value))
    except ValueError as exc:
        raise ConfigError(f"tiling.tile_format must be webp or jpg: {value}") from exc


def _validate_tiling(tiling: TilingConfig) -> None:
    if tiling.tile_size <= 0:
        raise ConfigError("tiling.tile_size must be positive")
    if not 0 <= tiling.overlap < tiling.tile_size:
        raise ConfigError("tiling.overlap must be within [0, tile_size)")
    if tiling.max_levels < 1:
        raise ConfigError("tiling.max_levels must be at least 1")
    for key in ("tile_quality", "thumbnail_quality"):
        if not 1 <= getattr(tiling, key) <= 100:
            raise ConfigError(f"tiling.{key} must be between 1 and 100")
    if tiling.thumbnail_size <= 0:
        raise ConfigError("tiling.thumbnail_size must be positive")
    if tiling.workers < 1:
        raise ConfigError("tiling.workers must be at least 1")


def load_config(path: Path | str, *, base_dir: Optional[Path] = None) -> PipelineConfig:
    """Convenience wrapper around :class:`ConfigLoader`."""

    loader = ConfigLoader(base_dir=base_dir)
    return loader.load(path)
