import json
from pathlib import Path

import pytest

from sheettiles.config import ConfigLoader, PipelineConfig, load_config
from sheettiles.core.errors import ConfigError


def test_load_yaml_config(tmp_path: Path) -> None:
    config_path = tmp_path / "conf" / "sheettiles.yaml"
    config_path.parent.mkdir()
    config_path.write_text(
        "\n".join(
            [
                "store_dir: out/tiles",
                "metadata_path: out/metadata.json",
                "tiling:",
                "  tile_size: 512",
                "  overlap: 2",
                "  tile_format: WEBP",
                "  workers: 4",
                "storage:",
                "  base_url: https://cdn.example.com/drawings-tiles",
                "render:",
                "  mode: http",
                "  endpoint: https://render.internal/page",
                "  scale: 2",
            ]
        ),
        encoding="utf-8",
    )

    config = load_config(config_path)

    assert config.store_dir == config_path.parent / "out/tiles"
    assert config.metadata_path == config_path.parent / "out/metadata.json"
    assert config.tiling.tile_size == 512
    assert config.tiling.overlap == 2
    assert config.tiling.tile_format == "webp"
    assert config.tiling.workers == 4
    assert config.tiling.tile_quality == 82
    assert config.storage.base_url == "https://cdn.example.com/drawings-tiles"
    assert config.render.mode == "http"
    assert config.render.scale == 2.0


def test_load_json_config_with_defaults(tmp_path: Path) -> None:
    config_path = tmp_path / "config.json"
    config_path.write_text(json.dumps({"tiling": {"max_levels": 8}}), encoding="utf-8")

    config = ConfigLoader(base_dir=tmp_path).load("config.json")

    assert config.tiling.max_levels == 8
    assert config.tiling.tile_size == 256
    assert config.store_dir == tmp_path / "tiles"


@pytest.mark.parametrize(
    "payload",
    [
        {"tiling": []},
        {"tiling": {"tile_sizes": 256}},
        {"tiling": {"overlap": 256}},
        {"tiling": {"tile_quality": 0}},
        {"tiling": {"workers": 0}},
        {"render": {"mode": "ghostscript"}},
        {"tiling": {"tile_format": "png"}},
    ],
)
def test_invalid_sections(payload) -> None:  # type: ignore[no-untyped-def]
    with pytest.raises(ConfigError):
        ConfigLoader().build(payload)


def test_unsupported_extension(tmp_path: Path) -> None:
    path = tmp_path / "config.toml"
    path.write_text("", encoding="utf-8")
    with pytest.raises(ConfigError):
        load_config(path)


def test_environment_fills_unset_options() -> None:
    config = PipelineConfig()
    config.storage.base_url = "https://explicit"
    config.apply_env(
        {
            "DRAWINGS_TILES_BASE_URL": "https://from-env",
            "SUPABASE_URL": "https://proj.supabase.co",
            "SHEETTILES_RENDER_ENDPOINT": "https://render",
        }
    )
    assert config.storage.base_url == "https://explicit"
    assert config.storage.supabase_url == "https://proj.supabase.co"
    assert config.render.endpoint == "https://render"
