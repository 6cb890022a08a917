import pytest

from sheettiles.tiling.geometry import grid_size
from sheettiles.tiling.planner import compute_level_count, level_scale, plan_levels


def test_drawing_sheet_scenario() -> None:
    assert compute_level_count(5000, 256, 12) == 6

    levels = plan_levels(5000, 3000, 256, 12)
    finest = levels[-1]
    assert (finest.width, finest.height) == (5000, 3000)
    assert grid_size(finest.width, finest.height, 256) == (20, 12)


def test_small_image_has_single_level() -> None:
    assert compute_level_count(200, 256, 12) == 1
    levels = plan_levels(200, 150, 256, 12)
    assert len(levels) == 1
    assert levels[0].scale == 1.0
    assert (levels[0].width, levels[0].height) == (200, 150)


@pytest.mark.parametrize(
    ("max_dimension", "expected"),
    [(1, 1), (256, 1), (257, 2), (512, 2), (513, 3), (1024, 3), (4096, 5)],
)
def test_level_count_boundaries(max_dimension: int, expected: int) -> None:
    assert compute_level_count(max_dimension, 256, 12) == expected


def test_level_cap_limits_count() -> None:
    assert compute_level_count(256 * 2**20, 256, 12) == 12
    assert compute_level_count(256 * 2**20, 256, 3) == 3


@pytest.mark.parametrize("max_dimension", [1, 17, 255, 256, 300, 999, 5000, 70000])
@pytest.mark.parametrize("tile_size", [64, 256, 510])
def test_finest_level_is_native(max_dimension: int, tile_size: int) -> None:
    levels = plan_levels(max_dimension, max(1, max_dimension // 3), tile_size, 12)
    assert len(levels) >= 1
    assert levels[-1].scale == 1.0
    assert levels[-1].width == max_dimension


def test_scales_are_powers_of_two() -> None:
    levels = plan_levels(5000, 3000, 256, 12)
    assert [level.scale for level in levels] == [1 / 32, 1 / 16, 1 / 8, 1 / 4, 1 / 2, 1.0]
    assert [level.index for level in levels] == list(range(6))
    # 5000 / 32 = 156.25, 3000 / 32 = 93.75
    assert (levels[0].width, levels[0].height) == (156, 94)


def test_odd_dimensions_round_half_up() -> None:
    levels = plan_levels(301, 5, 256, 12)
    assert (levels[0].width, levels[0].height) == (151, 3)


def test_level_scale_out_of_range() -> None:
    with pytest.raises(ValueError):
        level_scale(3, 3)


@pytest.mark.parametrize("args", [(0, 256, 12), (100, 0, 12), (100, 256, 0)])
def test_invalid_planner_arguments(args) -> None:  # type: ignore[no-untyped-def]
    with pytest.raises(ValueError):
        compute_level_count(*args)
