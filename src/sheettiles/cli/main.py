"""CLI entry point for sheettiles."""

from __future__ import annotations

import argparse
import json
import os
import sys
from pathlib import Path
from typing import Iterable

from sheettiles.config import PipelineConfig, load_config
from sheettiles.core.errors import ConfigError, GenerationError
from sheettiles.core.models import GenerationRequest
from sheettiles.generation import PyramidGenerator
from sheettiles.logging import configure_logging, get_logger
from sheettiles.rendering import HttpRasterizer, VipsRasterizer
from sheettiles.storage import FilesystemBlobStore, JsonFileMetadataStore
from sheettiles.tiling.geometry import grid_size
from sheettiles.tiling.planner import plan_levels

LOGGER = get_logger(__name__)


def _load_env() -> None:
    env_path = Path.cwd() / ".env"
    if not env_path.exists():
        return
    try:
        for line in env_path.read_text(encoding="utf-8").splitlines():
            stripped = line.strip()
            if not stripped or stripped.startswith("#") or "=" not in stripped:
                continue
            key, value = stripped.split("=", 1)
            os.environ.setdefault(key.strip(), value.strip().strip('"'))
    except OSError as exc:  # pragma: no cover - filesystem errors
        LOGGER.warning("Failed to load .env file", extra={"path": str(env_path), "error": str(exc)})


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Deep Zoom tile pyramids for drawing sheets")
    parser.add_argument("--log-json", action="store_true", help="Emit logs in JSON format")
    parser.add_argument("--log-level", default="INFO", help="Logging level (default: INFO)")
    subcommands = parser.add_subparsers(dest="command", required=True)

    generate = subcommands.add_parser("generate", help="Build and store the tile pyramid of one page")
    generate.add_argument("--input", type=Path, required=True, help="Single-page PDF or page image")
    generate.add_argument("--record-id", required=True, help="Sheet-version identifier")
    generate.add_argument("--org-id", required=True, help="Organisation owning the sheet")
    generate.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to pipeline configuration file (YAML or JSON)",
    )
    generate.add_argument(
        "--store-dir",
        type=Path,
        default=None,
        help="Directory receiving tile objects (default: config store_dir)",
    )
    generate.add_argument(
        "--metadata",
        type=Path,
        default=None,
        help="JSON file holding sheet-version metadata (default: config metadata_path)",
    )
    generate.add_argument("--base-url", default=None, help="Public URL the store directory is served from")
    generate.add_argument("--workers", type=int, default=None, help="Parallel tile workers")

    plan = subcommands.add_parser("plan", help="Print the pyramid levels for an image size")
    plan.add_argument("--width", type=int, required=True)
    plan.add_argument("--height", type=int, required=True)
    plan.add_argument("--tile-size", type=int, default=256)
    plan.add_argument("--overlap", type=int, default=1)
    plan.add_argument("--max-levels", type=int, default=12)

    return parser


def main(argv: Iterable[str] | None = None) -> int:
    _load_env()
    parser = build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)
    configure_logging(level=args.log_level, json_logs=args.log_json)

    handlers = {
        "generate": _handle_generate,
        "plan": _handle_plan,
    }
    handler = handlers[args.command]
    return handler(args)


def _load_pipeline_config(path: Path | None) -> PipelineConfig:
    if path is None:
        config = PipelineConfig()
        config.resolve_relative_paths(Path.cwd())
    else:
        config = load_config(path)
    config.apply_env()
    return config


def _build_rasterizer(config: PipelineConfig):
    if config.render.mode == "http":
        if not config.render.endpoint:
            raise ConfigError("render.endpoint is required when render.mode is 'http'")
        return HttpRasterizer(
            config.render.endpoint,
            timeout=config.render.timeout_seconds,
            scale=config.render.scale,
        )
    return VipsRasterizer(scale=config.render.scale)


def _handle_generate(args: argparse.Namespace) -> int:
    try:
        config = _load_pipeline_config(args.config)
    except ConfigError as exc:
        LOGGER.error("Invalid configuration: %s", exc)
        return 1
    if args.store_dir is not None:
        config.store_dir = args.store_dir.resolve()
    if args.metadata is not None:
        config.metadata_path = args.metadata.resolve()
    if args.base_url:
        config.storage.base_url = args.base_url
    if not config.storage.base_url:
        config.storage.base_url = config.store_dir.resolve().as_uri()
    if args.workers is not None:
        config.tiling.workers = max(1, args.workers)

    source_path: Path = args.input
    if not source_path.exists():
        raise SystemExit(f"Input not found: {source_path}")

    try:
        generator = PyramidGenerator(
            _build_rasterizer(config),
            FilesystemBlobStore(config.store_dir),
            JsonFileMetadataStore(config.metadata_path),
            tiling=config.tiling,
            storage=config.storage,
        )
    except (ConfigError, ValueError) as exc:
        LOGGER.error("Invalid configuration: %s", exc)
        return 1

    request = GenerationRequest(
        record_id=args.record_id,
        org_id=args.org_id,
        document=source_path.read_bytes(),
    )
    try:
        result = generator.generate(request)
    except GenerationError as exc:
        print(json.dumps(exc.failure_payload()))
        return 1

    payload = {"success": True, **result.to_dict()}
    if result.base_url:
        payload["baseUrl"] = result.base_url
    print(json.dumps(payload))
    return 0


def _handle_plan(args: argparse.Namespace) -> int:
    if args.width <= 0 or args.height <= 0:
        raise SystemExit("--width and --height must be positive")
    levels = plan_levels(args.width, args.height, args.tile_size, args.max_levels)
    for level in levels:
        cols, rows = grid_size(level.width, level.height, args.tile_size)
        print(
            f"{level.index}\t{level.scale:g}\t{level.width}x{level.height}\t"
            f"{cols}x{rows}\t{cols * rows}"
        )
    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
