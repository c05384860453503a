import os

import pytest

from png2gbtiles.converter import convert_image, convert_image_to_bytes, convert_png, write_output
from png2gbtiles.errors import (
    DimensionMismatchError,
    OutputWriteError,
    PaletteCapacityError,
    PaletteWarning,
    TileIdRangeError,
)
from png2gbtiles.options import MODE_CGB, MODE_DMG, ConversionOptions


def two_color_tile():
    rows = [[0] * 8 for _ in range(8)]
    rows[0][0] = 1
    rows[1][0] = 1
    rows[1][1] = 1
    return rows


def test_identical_quadrants_collapse_to_one_tile(make_source, quadrants):
    t = two_color_tile()
    result = convert_image(make_source(quadrants(t, t, t, t)))

    assert len(result.unique_tiles) == 1
    assert len(result.records) == 4
    for record in result.records:
        assert (record.tile_id, record.flip_x, record.flip_y) == (0, False, False)
    assert (result.map_width, result.map_height) == (2, 2)


def test_vertically_flipped_quadrant_sets_flip_bit(make_source, quadrants):
    t = two_color_tile()
    flipped = list(reversed(t))
    result = convert_image(make_source(quadrants(t, t, flipped, t)))

    assert len(result.unique_tiles) == 1
    assert (result.records[2].tile_id, result.records[2].flip_x, result.records[2].flip_y) == (0, False, True)


def test_flip_dedupe_disabled_never_merges_flipped_quadrant(make_source, quadrants):
    t = two_color_tile()
    flipped = list(reversed(t))
    result = convert_image(make_source(quadrants(t, t, flipped, t)), ConversionOptions(dedupe_flips=False))

    assert len(result.unique_tiles) == 2
    assert result.records[2].tile_id == 1


def five_color_rows():
    rows = [[0] * 8 for _ in range(8)]
    for x, color in enumerate([1, 2, 3, 4]):
        rows[7][x] = color
    return rows


def test_five_colors_in_dmg_mode_fail(make_source):
    with pytest.raises(PaletteCapacityError):
        convert_image(make_source(five_color_rows()), ConversionOptions(color_mode=MODE_DMG))


def test_five_colors_in_dmg_mode_tolerated(make_source):
    options = ConversionOptions(color_mode=MODE_DMG, ignore_palette_errors=True)

    with pytest.warns(PaletteWarning, match="#FF0000"):
        result = convert_image(make_source(five_color_rows()), options)

    assert len(result.color_table) == 4
    assert len(result.diagnostics) == 1
    assert "dropped colors: #FF0000" in result.diagnostics[0]


def test_four_colors_fit_dmg(make_source):
    rows = [[0, 1, 2, 3] * 2 for _ in range(8)]
    result = convert_image(make_source(rows), ConversionOptions(color_mode=MODE_DMG))
    assert result.palette_set.mode == MODE_DMG
    assert result.palette_set.palettes == ((0, 1, 2, 3),)


def test_auto_mode_picks_cgb_and_partitions(make_source, quadrants):
    a = [[0, 1] * 4 for _ in range(8)]
    b = [[4, 5] * 4 for _ in range(8)]
    c = [[6, 7, 2, 3] * 2 for _ in range(8)]
    result = convert_image(make_source(quadrants(a, b, c, a)))

    assert result.palette_set.mode == MODE_CGB
    for record in result.records:
        assert record.palette_id < len(result.palette_set)
    for unique in result.unique_tiles:
        assert max(unique.pixels) < len(result.palette_set.palettes[unique.palette_id])


def test_palette_variant_tiles_merge_in_cgb(make_source, quadrants):
    first = [[0, 1, 2, 3] * 2 for _ in range(8)]
    second = [[4, 5, 6, 7] * 2 for _ in range(8)]
    result = convert_image(make_source(quadrants(first, second, first, second)))

    assert len(result.palette_set) == 2
    assert len(result.unique_tiles) == 1
    assert [r.palette_id for r in result.records] == [0, 1, 0, 1]

    result = convert_image(
        make_source(quadrants(first, second, first, second)),
        ConversionOptions(dedupe_palettes=False),
    )
    assert len(result.unique_tiles) == 2


def test_dimension_mismatch(make_source):
    rows = [[0] * 12 for _ in range(8)]
    with pytest.raises(DimensionMismatchError, match="width"):
        convert_image(make_source(rows))


def test_external_palette_from_options(make_source, tmp_path):
    palette = tmp_path / "shades.pal"
    palette.write_text("081820\n346856\n88C070\nE0F8D0\n")
    rows = [[0, 1] * 4 for _ in range(8)]

    result = convert_image(make_source(rows), ConversionOptions(palette_path=str(palette)))

    assert result.unique_tiles[0].pixels[:2] == (3, 2)


def test_tile_origin_overflow(make_source):
    rows = [[0] * 8 + [1] * 8 for _ in range(8)]
    options = ConversionOptions(tile_origin=1023, dedupe_patterns=False)
    with pytest.raises(TileIdRangeError):
        convert_image_to_bytes(make_source(rows), "gbm", options)
    # the tileset alone carries no map ids
    assert convert_image_to_bytes(make_source(rows), "gbr", options)


def test_conversion_is_idempotent(write_png, quadrants):
    t = two_color_tile()
    path = write_png(quadrants(t, t, list(reversed(t)), t))
    for output_format in ("gbr", "gbm", "csource"):
        assert convert_png(path, output_format) == convert_png(path, output_format)


def test_write_output_replaces_target(tmp_path):
    target = tmp_path / "out" / "map.gbm"
    write_output(target, b"one")
    write_output(target, b"two")
    assert target.read_bytes() == b"two"
    assert os.listdir(target.parent) == ["map.gbm"]


def test_write_output_failure_leaves_nothing(tmp_path):
    target = tmp_path / "taken"
    target.mkdir()
    (target / "keep").write_text("x")
    with pytest.raises(OutputWriteError):
        write_output(target, b"data")
    assert sorted(os.listdir(tmp_path)) == ["taken"]


PALE_GREEN = (224, 248, 208)
LIGHT_GREEN = (136, 192, 112)


def _write_palette(tmp_path, colors):
    palette = tmp_path / "wide.pal"
    palette.write_text("".join(f"{r:02X}{g:02X}{b:02X}\n" for r, g, b in colors))
    return str(palette)


def test_large_palette_file_counts_only_used_colors(make_source, tmp_path):
    # the image uses entries 2 and 5 of a six entry palette
    palette = _write_palette(tmp_path, [(0, 0, 0), (9, 9, 9), LIGHT_GREEN, (7, 7, 7), (5, 5, 5), PALE_GREEN])
    rows = [[0, 1] * 4 for _ in range(8)]

    for color_mode in (MODE_DMG, None):
        result = convert_image(
            make_source(rows), ConversionOptions(color_mode=color_mode, palette_path=palette)
        )
        assert result.palette_set.mode == MODE_DMG
        assert result.palette_set.palettes == ((0, 1),)
        assert [c[:3] for c in result.color_table] == [LIGHT_GREEN, PALE_GREEN]
        assert result.unique_tiles[0].pixels[:2] == (1, 0)


def test_large_palette_file_still_limits_used_colors(make_source, tmp_path):
    palette = _write_palette(tmp_path, [PALE_GREEN, LIGHT_GREEN, (52, 104, 86), (8, 24, 32), (255, 0, 0), (0, 255, 0)])
    rows = [[0, 1, 2, 3, 4, 0, 0, 0] for _ in range(8)]

    with pytest.raises(PaletteCapacityError, match="uses 5 colors"):
        convert_image(make_source(rows), ConversionOptions(color_mode=MODE_DMG, palette_path=palette))


@pytest.mark.skipif(os.name == "nt", reason="POSIX permission bits")
def test_write_output_follows_umask(tmp_path):
    target = tmp_path / "map.gbm"
    previous = os.umask(0o022)
    try:
        write_output(target, b"data")
    finally:
        os.umask(previous)
    assert target.stat().st_mode & 0o777 == 0o644
