"""Binary and C source encoders.

Reference: output container (all multi-byte fields little endian)

Offset | Size | Field
-------|------|-----------------------------------------------------------
0      | 4    | Magic ``GBTL``
4      | 1    | Version (1)
5      | 1    | Flags: bit0 palette block, bit1 map block, bit2 cgb mode
6      | 1    | Tile width in pixels
7      | 1    | Tile height in pixels
8      | 2    | Unique tile count
10     | 1    | Palette count (0 without a palette block)
11     | 1    | Bank number
12     | 2    | Map width in tiles (0 without a map block)
14     | 2    | Map height in tiles (0 without a map block)
16     | ...  | Pattern block, palette block, map block

The ``.gbr``/``.gbm`` extensions only name the output mode; the files are this
container, not Game Boy Tile Designer (GBR) or Map Builder (GBM) files.

Pattern block: 2bpp planar, 16 bytes per 8x8 sub-tile (each row is the low
bit-plane byte then the high bit-plane byte, leftmost pixel in bit 7). Tiles
larger than 8x8 are stored as 8x8 sub-tiles in row-major order.

Palette block: per palette four BGR555 words (``0bbbbbgggggrrrrr``).

Map record: 24-bit word in 3 bytes
  bits 0-9   tile id plus origin
  bits 10-12 palette id
  bit 13     unused (0)
  bit 14     horizontal flip
  bit 15     vertical flip
  bits 16-23 bank number
"""

from __future__ import annotations

import struct
from typing import TYPE_CHECKING, Iterable, List, Sequence

from .dedupe import TileRecord
from .errors import ConversionError, TileIdRangeError
from .options import FORMAT_C_SOURCE, FORMAT_GBM, FORMAT_GBR, MODE_CGB
from .palette import COLORS_PER_PALETTE, ColorTable, PaletteSet
from .tiles import Tile

if TYPE_CHECKING:  # pragma: no cover
    from .converter import ConversionResult

MAGIC = b"GBTL"
VERSION = 1
HEADER = struct.Struct("<4sBBBBHBBHH")

FLAG_PALETTES = 0x01
FLAG_MAP = 0x02
FLAG_CGB = 0x04

SUBTILE = 8
MAP_RECORD_SIZE = 3
MAP_TILE_ID_BITS = 10
MAX_MAP_TILE_ID = (1 << MAP_TILE_ID_BITS) - 1
MAX_TILE_COUNT = 0xFFFF

MAP_PALETTE_SHIFT = 10
MAP_FLIP_X = 1 << 14
MAP_FLIP_Y = 1 << 15
MAP_BANK_SHIFT = 16

BYTES_PER_LINE = 16


def encode_tile_2bpp(tile: Tile) -> bytes:
    out = bytearray()
    for sy in range(0, tile.height, SUBTILE):
        for sx in range(0, tile.width, SUBTILE):
            for y in range(sy, sy + SUBTILE):
                low = high = 0
                row = tile.pixels[y * tile.width + sx : y * tile.width + sx + SUBTILE]
                for value in row:
                    low = (low << 1) | (value & 0x01)
                    high = (high << 1) | ((value >> 1) & 0x01)
                out.append(low)
                out.append(high)
    return bytes(out)


def encode_patterns(tiles: Sequence[Tile]) -> bytes:
    if len(tiles) > MAX_TILE_COUNT:
        raise TileIdRangeError(
            f"{len(tiles)} unique tiles exceed the tileset limit of {MAX_TILE_COUNT}"
        )
    return b"".join(encode_tile_2bpp(tile) for tile in tiles)


def encode_bgr555(color: Sequence[int]) -> int:
    r, g, b = color[:3]
    return (r >> 3) | ((g >> 3) << 5) | ((b >> 3) << 10)


def encode_palettes(palette_set: PaletteSet, table: ColorTable) -> bytes:
    out = bytearray()
    for palette in palette_set.palettes:
        words = [encode_bgr555(table[index]) for index in palette]
        words.extend([0] * (COLORS_PER_PALETTE - len(words)))
        out.extend(struct.pack("<4H", *words))
    return bytes(out)


def encode_map_record(record: TileRecord, tile_origin: int) -> int:
    tile_id = record.tile_id + tile_origin
    if tile_id > MAX_MAP_TILE_ID:
        raise TileIdRangeError(
            f"Tile id {record.tile_id} with origin {tile_origin} exceeds the "
            f"{MAP_TILE_ID_BITS}-bit map id field (max {MAX_MAP_TILE_ID})"
        )
    word = tile_id | (record.palette_id & 0x07) << MAP_PALETTE_SHIFT
    if record.flip_x:
        word |= MAP_FLIP_X
    if record.flip_y:
        word |= MAP_FLIP_Y
    return word | (record.bank & 0xFF) << MAP_BANK_SHIFT


def encode_map(records: Iterable[TileRecord], tile_origin: int) -> bytes:
    out = bytearray()
    for record in records:
        out.extend(encode_map_record(record, tile_origin).to_bytes(MAP_RECORD_SIZE, "little"))
    return bytes(out)


def _has_palette_block(result: "ConversionResult") -> bool:
    return result.palette_set.mode == MODE_CGB


def _encode_binary(result: "ConversionResult", include_map: bool) -> bytes:
    options = result.options
    patterns = encode_patterns(result.unique_tiles)
    palettes = encode_palettes(result.palette_set, result.color_table) if _has_palette_block(result) else b""
    tile_map = encode_map(result.records, options.tile_origin) if include_map else b""

    flags = 0
    if palettes:
        flags |= FLAG_PALETTES
    if include_map:
        flags |= FLAG_MAP
    if result.palette_set.mode == MODE_CGB:
        flags |= FLAG_CGB

    header = HEADER.pack(
        MAGIC,
        VERSION,
        flags,
        options.tile_width,
        options.tile_height,
        len(result.unique_tiles),
        len(result.palette_set) if palettes else 0,
        options.bank,
        result.map_width if include_map else 0,
        result.map_height if include_map else 0,
    )
    return header + patterns + palettes + tile_map


def encode_tileset(result: "ConversionResult") -> bytes:
    return _encode_binary(result, include_map=False)


def encode_tilemap(result: "ConversionResult") -> bytes:
    return _encode_binary(result, include_map=True)


def format_byte_array(name: str, data: bytes) -> List[str]:
    lines = [f"const unsigned char {name}[] = {{"]
    for start in range(0, len(data), BYTES_PER_LINE):
        chunk = data[start : start + BYTES_PER_LINE]
        lines.append("    " + ", ".join(f"0x{value:02X}" for value in chunk) + ",")
    lines.append("};")
    return lines


def encode_c_source(result: "ConversionResult") -> bytes:
    options = result.options
    var = options.variable_name
    macro = var.upper()

    patterns = encode_patterns(result.unique_tiles)
    tile_map = encode_map(result.records, options.tile_origin)
    palettes = encode_palettes(result.palette_set, result.color_table) if _has_palette_block(result) else b""
    palette_count = len(result.palette_set) if palettes else 0

    lines = [
        f"/* {var}: {len(result.unique_tiles)} tiles of {options.tile_width}x{options.tile_height}, "
        f"map {result.map_width}x{result.map_height}, {result.palette_set.mode} mode */",
        "",
        f"#define {macro}_TILE_COUNT {len(result.unique_tiles)}",
        f"#define {macro}_TILE_WIDTH {options.tile_width}",
        f"#define {macro}_TILE_HEIGHT {options.tile_height}",
        f"#define {macro}_MAP_WIDTH {result.map_width}",
        f"#define {macro}_MAP_HEIGHT {result.map_height}",
        f"#define {macro}_PALETTE_COUNT {palette_count}",
        f"#define {macro}_BANK {options.bank}",
        "",
    ]
    lines.extend(format_byte_array(f"{var}_tiles", patterns))
    if palettes:
        lines.append("")
        lines.extend(format_byte_array(f"{var}_palettes", palettes))
    lines.append("")
    lines.extend(format_byte_array(f"{var}_map", tile_map))
    return ("\n".join(lines) + "\n").encode("ascii")


ENCODERS = {
    FORMAT_GBR: encode_tileset,
    FORMAT_GBM: encode_tilemap,
    FORMAT_C_SOURCE: encode_c_source,
}


def encode(result: "ConversionResult", output_format: str) -> bytes:
    try:
        encoder = ENCODERS[output_format]
    except KeyError as exc:
        raise ConversionError(f"Unknown output format: {output_format}") from exc
    return encoder(result)
