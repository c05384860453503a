"""Per-tile palette assignment for multi-palette (cgb) mode.

Each tile may only draw from one palette of four colors, so colors that
appear together in a tile must share a palette. Assignment is a single greedy
pass in scan order and never revisits a palette once a color is placed in it:

1. reuse the lowest-numbered palette that already holds all tile colors
2. else extend the palette sharing the most colors with the tile (lowest
   number on ties) if the missing colors fit in its free slots
3. else open a new palette while fewer than eight exist
4. else the tile overflows

The order dependence is intentional; tile ids downstream rely on it.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence, Tuple

from .errors import Diagnostics, PaletteOverflowError
from .palette import (
    COLORS_PER_PALETTE,
    MAX_PALETTES,
    ColorTable,
    PaletteSet,
    format_color,
    nearest_color_index,
)
from .options import MODE_CGB
from .tiles import Tile

logger = logging.getLogger(__name__)


def _find_covering(palettes: Sequence[List[int]], colors: Sequence[int]) -> Optional[int]:
    for palette_id, palette in enumerate(palettes):
        if all(color in palette for color in colors):
            return palette_id
    return None


def _find_extendable(palettes: Sequence[List[int]], colors: Sequence[int]) -> Optional[int]:
    best_id: Optional[int] = None
    best_shared = -1
    for palette_id, palette in enumerate(palettes):
        shared = sum(1 for color in colors if color in palette)
        if len(palette) + len(colors) - shared > COLORS_PER_PALETTE:
            continue
        if shared > best_shared:
            best_id = palette_id
            best_shared = shared
    return best_id


def _localize(
    tile: Tile,
    palette: Sequence[int],
    palette_id: int,
    table: ColorTable,
) -> Tuple[Tile, List[int]]:
    """Rewrite tile pixels as palette slots; return colors that had no slot."""

    slots = {color: slot for slot, color in enumerate(palette)}
    missing: List[int] = []
    pixels = []
    for color in tile.pixels:
        slot = slots.get(color)
        if slot is None:
            slot = nearest_color_index(table[color], [table[c] for c in palette])
            if color not in missing:
                missing.append(color)
        pixels.append(slot)
    return tile.with_pixels(tuple(pixels), palette_id), missing


def assign_palettes(
    tiles: Sequence[Tile],
    table: ColorTable,
    ignore_errors: bool = False,
    diagnostics: Optional[Diagnostics] = None,
) -> Tuple[PaletteSet, Tuple[Tile, ...]]:
    max_palettes = MAX_PALETTES[MODE_CGB]
    palettes: List[List[int]] = []
    chosen: List[int] = []

    for position, tile in enumerate(tiles):
        colors = tile.colors()

        palette_id = _find_covering(palettes, colors)
        if palette_id is None:
            palette_id = _find_extendable(palettes, colors)
            if palette_id is not None:
                palettes[palette_id].extend(c for c in colors if c not in palettes[palette_id])
        if palette_id is None and len(palettes) < max_palettes and len(colors) <= COLORS_PER_PALETTE:
            palettes.append(list(colors))
            palette_id = len(palettes) - 1
        if palette_id is None:
            names = ", ".join(format_color(table[c]) for c in colors)
            if not ignore_errors:
                raise PaletteOverflowError(
                    f"Tile {position} colors ({names}) do not fit any of the "
                    f"{max_palettes} palettes"
                )
            if not palettes:
                palettes.append(list(colors[:COLORS_PER_PALETTE]))
            palette_id = len(palettes) - 1
            logger.debug("Tile %d forced onto palette %d", position, palette_id)

        chosen.append(palette_id)

    resolved: List[Tile] = []
    for position, (tile, palette_id) in enumerate(zip(tiles, chosen)):
        local, missing = _localize(tile, palettes[palette_id], palette_id, table)
        if missing and diagnostics is not None:
            for color in missing:
                diagnostics.add(
                    "Colors outside the assigned palette",
                    f"tile {position} {format_color(table[color])}",
                )
        resolved.append(local)

    logger.info("Assigned %d tiles to %d palettes", len(resolved), len(palettes))
    return PaletteSet(MODE_CGB, tuple(tuple(p) for p in palettes)), tuple(resolved)


def localize_single_palette(tiles: Sequence[Tile]) -> Tuple[Tile, ...]:
    """In dmg mode the color index already is the palette slot."""
    return tuple(tile.with_pixels(tile.pixels, 0) for tile in tiles)
