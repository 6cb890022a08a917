import pytest

from sheettiles.core.models import CropRect
from sheettiles.tiling.geometry import clamp_rect, core_rect, enumerate_tiles, grid_size, tile_rect

SIZES = [(1, 1), (200, 150), (256, 256), (257, 255), (513, 129), (1000, 700)]


def test_single_tile_image_is_clamped_to_bounds() -> None:
    tiles = list(enumerate_tiles(200, 150, 256, 1))
    assert len(tiles) == 1
    assert (tiles[0].col, tiles[0].row) == (0, 0)
    assert tiles[0].rect == CropRect(0, 0, 200, 150)


def test_interior_tile_has_overlap_on_every_side() -> None:
    rect = tile_rect(1, 1, 1000, 1000, 256, 1)
    assert rect == CropRect(255, 255, 258, 258)


def test_first_tile_has_no_overlap_outside_image() -> None:
    rect = tile_rect(0, 0, 1000, 1000, 256, 2)
    assert rect == CropRect(0, 0, 258, 258)


@pytest.mark.parametrize(("width", "height"), SIZES)
@pytest.mark.parametrize("overlap", [0, 1, 3])
def test_cores_partition_the_level(width: int, height: int, overlap: int) -> None:
    tile_size = 128
    covered = set()
    total = 0
    for tile in enumerate_tiles(width, height, tile_size, overlap):
        core = core_rect(tile, tile_size, width, height)
        total += core.area
        cell = (core.x, core.y)
        assert cell not in covered
        covered.add(cell)
    assert total == width * height
    cols, rows = grid_size(width, height, tile_size)
    assert len(covered) == cols * rows


@pytest.mark.parametrize(("width", "height"), SIZES)
def test_edge_tiles_are_reduced_not_padded(width: int, height: int) -> None:
    tile_size, overlap = 128, 1
    cols, rows = grid_size(width, height, tile_size)
    for tile in enumerate_tiles(width, height, tile_size, overlap):
        rect = tile.rect
        assert 0 < rect.width <= tile_size + 2 * overlap
        assert 0 < rect.height <= tile_size + 2 * overlap
        assert rect.x >= 0 and rect.y >= 0
        assert rect.x + rect.width <= width
        assert rect.y + rect.height <= height
        core = core_rect(tile, tile_size, width, height)
        if tile.col == cols - 1:
            assert core.width == width - tile.col * tile_size
            assert rect.x + rect.width == width
        if tile.row == rows - 1:
            assert core.height == height - tile.row * tile_size
            assert rect.y + rect.height == height


def test_enumeration_is_restartable() -> None:
    first = list(enumerate_tiles(1000, 700, 256, 1, level=4))
    second = list(enumerate_tiles(1000, 700, 256, 1, level=4))
    assert first == second
    assert all(tile.level == 4 for tile in first)
    assert [(tile.col, tile.row) for tile in first[:3]] == [(0, 0), (0, 1), (0, 2)]


def test_clamp_rect_outside_bounds_is_empty() -> None:
    rect = clamp_rect(300, 10, 50, 50, 256, 256)
    assert rect.is_empty
    assert rect.area == 0


def test_negative_overlap_rejected() -> None:
    with pytest.raises(ValueError):
        list(enumerate_tiles(100, 100, 64, -1))
