"""Tile deduplication by canonical key.

Two tiles are the same stored tile when their canonical keys match. The key
is built from the pixel pattern (the smallest of its flip variants when flip
dedupe is on) plus, when palette dedupe is off, the palette id. Keys map to
unique tile ids in a plain dict, so matching stays linear in the tile count
while ids follow first occurrence in scan order.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Dict, Hashable, List, Optional, Sequence, Tuple

from .options import ConversionOptions
from .tiles import Pixels, Tile, flip_both, flip_horizontal, flip_vertical

logger = logging.getLogger(__name__)

Transform = Callable[[Pixels, int, int], Pixels]


def _identity(pixels: Pixels, width: int, height: int) -> Pixels:
    return pixels


# (flip_x, flip_y, transform); identity first so symmetric tiles stay unflipped
FLIP_VARIANTS: Tuple[Tuple[bool, bool, Transform], ...] = (
    (False, False, _identity),
    (True, False, flip_horizontal),
    (False, True, flip_vertical),
    (True, True, flip_both),
)


@dataclass(frozen=True)
class TileRecord:
    """Placement of one tile position in the map."""

    tile_id: int
    flip_x: bool
    flip_y: bool
    palette_id: int
    bank: int


def canonical_key(tile: Tile, options: ConversionOptions) -> Optional[Hashable]:
    """Return the dedupe key for ``tile``, or ``None`` if it must stay unique."""

    if not options.dedupe_patterns:
        return None
    if options.dedupe_flips:
        pattern = min(
            transform(tile.pixels, tile.width, tile.height) for _, _, transform in FLIP_VARIANTS
        )
    else:
        pattern = tile.pixels
    if options.dedupe_palettes:
        return pattern
    return (pattern, tile.palette_id)


def match_flip(stored: Tile, tile: Tile, options: ConversionOptions) -> Tuple[bool, bool]:
    """Flip flags that turn ``stored`` into ``tile``."""

    variants = FLIP_VARIANTS if options.dedupe_flips else FLIP_VARIANTS[:1]
    for flip_x, flip_y, transform in variants:
        if transform(stored.pixels, stored.width, stored.height) == tile.pixels:
            return flip_x, flip_y
    raise ValueError("Tile does not match the stored tile under any enabled flip")


def dedupe_tiles(
    tiles: Sequence[Tile], options: ConversionOptions
) -> Tuple[Tuple[Tile, ...], Tuple[TileRecord, ...]]:
    unique: List[Tile] = []
    records: List[TileRecord] = []
    seen: Dict[Hashable, int] = {}

    for tile in tiles:
        key = canonical_key(tile, options)
        tile_id = seen.get(key) if key is not None else None
        if tile_id is None:
            tile_id = len(unique)
            unique.append(tile)
            if key is not None:
                seen[key] = tile_id
            flip_x = flip_y = False
        else:
            flip_x, flip_y = match_flip(unique[tile_id], tile, options)
        records.append(TileRecord(tile_id, flip_x, flip_y, tile.palette_id, options.bank))

    logger.info("Reduced %d tiles to %d unique tiles", len(tiles), len(unique))
    return tuple(unique), tuple(records)
