"""Tile slicing and flip transforms."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import List, Sequence, Tuple

from .errors import DimensionMismatchError

Pixels = Tuple[int, ...]


@dataclass(frozen=True)
class Tile:
    """A tile as a flat, row-major tuple of color indices.

    Before palette assignment the indices point into the color table; after
    it they are slot numbers (0-3) within the palette named by ``palette_id``.
    """

    width: int
    height: int
    pixels: Pixels
    palette_id: int = 0

    def rows(self) -> List[Pixels]:
        return [self.pixels[y * self.width : (y + 1) * self.width] for y in range(self.height)]

    def colors(self) -> List[int]:
        """Distinct indices in order of first appearance."""
        return list(dict.fromkeys(self.pixels))

    def with_pixels(self, pixels: Pixels, palette_id: int) -> "Tile":
        return replace(self, pixels=pixels, palette_id=palette_id)


def flip_horizontal(pixels: Pixels, width: int, height: int) -> Pixels:
    out: List[int] = []
    for y in range(height):
        out.extend(reversed(pixels[y * width : (y + 1) * width]))
    return tuple(out)


def flip_vertical(pixels: Pixels, width: int, height: int) -> Pixels:
    out: List[int] = []
    for y in reversed(range(height)):
        out.extend(pixels[y * width : (y + 1) * width])
    return tuple(out)


def flip_both(pixels: Pixels, width: int, height: int) -> Pixels:
    return tuple(reversed(pixels))


def slice_tiles(
    indices: Sequence[int],
    width: int,
    height: int,
    tile_width: int,
    tile_height: int,
) -> Tuple[Tile, ...]:
    """Cut a row-major index buffer into tiles.

    Tiles come out left to right within a tile row, tile rows top to bottom.
    """

    if width % tile_width:
        raise DimensionMismatchError(
            f"Image width {width} is not a multiple of tile width {tile_width}"
        )
    if height % tile_height:
        raise DimensionMismatchError(
            f"Image height {height} is not a multiple of tile height {tile_height}"
        )

    tiles: List[Tile] = []
    for ty in range(0, height, tile_height):
        for tx in range(0, width, tile_width):
            pixels: List[int] = []
            for y in range(ty, ty + tile_height):
                row_start = y * width + tx
                pixels.extend(indices[row_start : row_start + tile_width])
            tiles.append(Tile(tile_width, tile_height, tuple(pixels)))
    return tuple(tiles)
