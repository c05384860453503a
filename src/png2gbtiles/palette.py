"""Color table and palette construction.

The color table lists every color the converter works with; its order
defines the color indices used by the later stages. It comes either from the
image itself (first occurrence in scan order) or from an external palette
file with one ``RRGGBB`` entry per line.

Hardware capacity per mode:

=====  ========  ===================  ============
Mode   Palettes  Colors per palette   Total colors
=====  ========  ===================  ============
dmg    1         4                    4
cgb    8         4                    32
=====  ========  ===================  ============
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

from .errors import (
    ConversionError,
    Diagnostics,
    PaletteCapacityError,
    PaletteRemapError,
)
from .image import SourceImage
from .options import MODE_CGB, MODE_DMG, ConversionOptions

logger = logging.getLogger(__name__)

Color = Tuple[int, int, int, int]
ColorTable = Tuple[Color, ...]

TRANSPARENT: Color = (0, 0, 0, 0)
COLORS_PER_PALETTE = 4
MAX_PALETTES = {MODE_DMG: 1, MODE_CGB: 8}
MODE_CAPACITY = {mode: count * COLORS_PER_PALETTE for mode, count in MAX_PALETTES.items()}


@dataclass(frozen=True)
class PaletteSet:
    """Palettes as tuples of color table indices, at most four each."""

    mode: str
    palettes: Tuple[Tuple[int, ...], ...]

    def __post_init__(self) -> None:
        if len(self.palettes) > MAX_PALETTES[self.mode]:
            raise ConversionError(
                f"{self.mode} mode allows at most {MAX_PALETTES[self.mode]} palettes"
            )
        for palette in self.palettes:
            if len(palette) > COLORS_PER_PALETTE:
                raise ConversionError(
                    f"Palette holds {len(palette)} colors, limit is {COLORS_PER_PALETTE}"
                )

    def __len__(self) -> int:
        return len(self.palettes)


def parse_color(text: str) -> Color:
    """Parse ``RRGGBB`` (optionally ``#`` prefixed) into an opaque color."""

    text = text.strip()
    if text.startswith("#"):
        text = text[1:]
    if len(text) != 6:
        raise ConversionError(f"Color must have exactly six hex digits: {text!r}")
    try:
        r, g, b = (int(text[i : i + 2], 16) for i in range(0, 6, 2))
    except ValueError as exc:
        raise ConversionError(f"Invalid hex color: {text!r}") from exc
    return (r, g, b, 255)


def parse_palette_text(text: str) -> List[Color]:
    colors: List[Color] = []
    for line_no, line in enumerate(text.splitlines(), start=1):
        if not line.strip():
            continue
        try:
            colors.append(parse_color(line))
        except ConversionError as exc:
            raise ConversionError(f"Palette line {line_no}: {exc}") from exc
    if not colors:
        raise ConversionError("Palette file contains no colors")
    return colors


def load_palette_file(path: str | Path) -> List[Color]:
    path = Path(path)
    try:
        text = path.read_text()
    except FileNotFoundError as exc:
        raise ConversionError(f"Palette file not found: {path}") from exc
    except OSError as exc:
        raise ConversionError(f"Failed to read palette file: {path}") from exc
    return parse_palette_text(text)


def format_color(color: Color) -> str:
    r, g, b, a = color
    if a == 255:
        return f"#{r:02X}{g:02X}{b:02X}"
    return f"#{r:02X}{g:02X}{b:02X}{a:02X}"


def _squared_distance(a: Sequence[int], b: Sequence[int]) -> int:
    return sum((x - y) ** 2 for x, y in zip(a, b))


def nearest_color_index(color: Sequence[int], candidates: Sequence[Sequence[int]]) -> int:
    """
    Return the position of the candidate closest to ``color``.
    Squared distance keeps the ordering of Euclidean distance without the
    square root; the earliest candidate wins on equal distance.
    """
    best_idx = 0
    best_dist = None
    for i, candidate in enumerate(candidates):
        dist = _squared_distance(color, candidate)
        if best_dist is None or dist < best_dist:
            best_idx = i
            best_dist = dist
    return best_idx


def pixel_colors(source: SourceImage) -> List[Color]:
    """Resolve every pixel of ``source`` to a color, in scan order."""

    table = source.color_table
    step = source.bytes_per_pixel
    data = source.pixels
    colors: List[Color] = []
    for offset in range(0, len(data), step):
        if source.has_alpha and data[offset + 1] == 0:
            colors.append(TRANSPARENT)
            continue
        index = data[offset]
        if table is None:
            r = g = b = index
        else:
            if index >= len(table):
                raise ConversionError(
                    f"Pixel index {index} is outside the embedded color table ({len(table)} entries)"
                )
            r, g, b = table[index][:3]
        a = data[offset + 1] if source.has_alpha else 255
        colors.append((r, g, b, a))
    return colors


def build_color_table(
    source: SourceImage,
    external: Optional[Sequence[Color]] = None,
    ignore_errors: bool = False,
    diagnostics: Optional[Diagnostics] = None,
) -> Tuple[ColorTable, List[int]]:
    """Build the color table and the per-pixel color indices.

    Without ``external`` the table lists distinct colors in order of first
    occurrence. With it, the external entries are the table and every source
    color must match one of them by RGB value; misses are collected over the
    whole image before failing.
    """

    colors = pixel_colors(source)

    if external is None:
        lookup: Dict[Color, int] = {}
        indices = []
        for color in colors:
            index = lookup.get(color)
            if index is None:
                index = lookup[color] = len(lookup)
            indices.append(index)
        table = tuple(lookup)
        logger.debug("Found %d distinct colors", len(table))
        return table, indices

    table = tuple(external)
    by_rgb: Dict[Tuple[int, int, int], int] = {}
    for index, color in enumerate(table):
        by_rgb.setdefault(color[:3], index)

    misses: Dict[Color, int] = {}
    indices = []
    for color in colors:
        index = by_rgb.get(color[:3])
        if index is None:
            index = misses.get(color)
            if index is None:
                index = misses[color] = nearest_color_index(color[:3], [c[:3] for c in table])
        indices.append(index)

    if misses:
        missing = [format_color(color) for color in misses]
        if not ignore_errors:
            raise PaletteRemapError(
                "Colors not found in the supplied palette: " + ", ".join(missing)
            )
        if diagnostics is not None:
            for color, index in misses.items():
                diagnostics.add(
                    "Colors remapped to nearest palette entry",
                    f"{format_color(color)}->{format_color(table[index])}",
                )
    logger.debug("Remapped image onto %d palette entries", len(table))
    return table, indices


def compact_color_table(table: ColorTable, indices: Sequence[int]) -> Tuple[ColorTable, List[int]]:
    """Keep only the table entries ``indices`` refer to, in table order."""

    used = sorted(set(indices))
    remap = {old: new for new, old in enumerate(used)}
    return tuple(table[index] for index in used), [remap[index] for index in indices]


def resolve_color_mode(color_count: int, options: ConversionOptions) -> str:
    if options.color_mode is not None:
        return options.color_mode
    return MODE_DMG if color_count <= MODE_CAPACITY[MODE_DMG] else MODE_CGB


def enforce_capacity(
    table: ColorTable,
    indices: List[int],
    mode: str,
    ignore_errors: bool = False,
    diagnostics: Optional[Diagnostics] = None,
) -> Tuple[ColorTable, List[int]]:
    """Check the color count against ``mode``.

    In tolerant mode the colors past the limit are dropped and every pixel
    using one of them is redrawn with the nearest kept color.
    """

    capacity = MODE_CAPACITY[mode]
    if len(table) <= capacity:
        return table, indices

    dropped = table[capacity:]
    message = (
        f"Image uses {len(table)} colors but {mode} mode supports at most {capacity}"
    )
    if not ignore_errors:
        raise PaletteCapacityError(message)

    kept = table[:capacity]
    substitutes = {
        capacity + offset: nearest_color_index(color, kept) for offset, color in enumerate(dropped)
    }
    if diagnostics is not None:
        for color in dropped:
            diagnostics.add(f"{message}; dropped colors", format_color(color))
    return kept, [substitutes.get(index, index) for index in indices]


def single_palette(table: ColorTable) -> PaletteSet:
    return PaletteSet(MODE_DMG, (tuple(range(len(table))),))
