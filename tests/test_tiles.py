import pytest

from png2gbtiles.errors import DimensionMismatchError
from png2gbtiles.tiles import Tile, flip_both, flip_horizontal, flip_vertical, slice_tiles


def test_slice_tiles_scan_order():
    width, height = 4, 4
    indices = list(range(16))

    tiles = slice_tiles(indices, width, height, 2, 2)

    assert [tile.pixels for tile in tiles] == [
        (0, 1, 4, 5),
        (2, 3, 6, 7),
        (8, 9, 12, 13),
        (10, 11, 14, 15),
    ]


def test_slice_tiles_8x16():
    indices = [y for y in range(32) for _ in range(16)]

    tiles = slice_tiles(indices, 16, 32, 8, 16)

    assert len(tiles) == 4
    assert tiles[0].height == 16
    assert tiles[0].pixels[:8] == (0,) * 8
    assert tiles[2].pixels[:8] == (16,) * 8


@pytest.mark.parametrize(
    "width, height, axis",
    [(12, 8, "width"), (8, 20, "height"), (9, 9, "width")],
)
def test_slice_tiles_dimension_mismatch_names_axis(width, height, axis):
    with pytest.raises(DimensionMismatchError, match=f"Image {axis}"):
        slice_tiles([0] * (width * height), width, height, 8, 8)


def test_flips():
    pixels = (1, 2, 3, 4, 5, 6)  # 3 wide, 2 high
    assert flip_horizontal(pixels, 3, 2) == (3, 2, 1, 6, 5, 4)
    assert flip_vertical(pixels, 3, 2) == (4, 5, 6, 1, 2, 3)
    assert flip_both(pixels, 3, 2) == (6, 5, 4, 3, 2, 1)


def test_tile_colors_in_first_appearance_order():
    tile = Tile(2, 2, (5, 3, 5, 1))
    assert tile.colors() == [5, 3, 1]
    assert tile.rows() == [(5, 3), (5, 1)]
