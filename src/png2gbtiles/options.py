"""Conversion options shared by every pipeline stage."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Tuple

from .errors import ConversionError

MODE_DMG = "dmg"  # 4 shades, one palette
MODE_CGB = "cgb"  # up to 8 palettes of 4 colors

FORMAT_GBR = "gbr"  # tileset only
FORMAT_GBM = "gbm"  # tileset and tilemap
FORMAT_C_SOURCE = "csource"

OUTPUT_EXTENSIONS: Dict[str, str] = {
    FORMAT_GBR: ".gbr",
    FORMAT_GBM: ".gbm",
    FORMAT_C_SOURCE: ".c",
}

TILE_SIZES: Dict[str, Tuple[int, int]] = {
    "8x8": (8, 8),
    "8x16": (8, 16),
    "16x16": (16, 16),
    "32x32": (32, 32),
}

MAX_BANK = 0xFF


@dataclass(frozen=True)
class ConversionOptions:
    """Immutable settings for one conversion run."""

    tile_width: int = 8
    tile_height: int = 8
    color_mode: str | None = None  # None picks dmg or cgb from the color count
    dedupe_patterns: bool = True
    dedupe_flips: bool = True
    dedupe_palettes: bool = True
    bank: int = 0
    tile_origin: int = 0
    variable_name: str = "tiles"
    palette_path: str | None = None
    ignore_palette_errors: bool = False

    def __post_init__(self) -> None:
        if (self.tile_width, self.tile_height) not in TILE_SIZES.values():
            raise ConversionError(
                f"Unsupported tile size {self.tile_width}x{self.tile_height} "
                f"(expected one of {', '.join(TILE_SIZES)})"
            )
        if self.color_mode not in (None, MODE_DMG, MODE_CGB):
            raise ConversionError(f"Unknown color mode: {self.color_mode}")
        if not 0 <= self.bank <= MAX_BANK:
            raise ConversionError(f"Bank number must be between 0 and {MAX_BANK}")
        if self.tile_origin < 0:
            raise ConversionError("Tile id origin must be zero or greater")
        if not self.variable_name:
            raise ConversionError("Variable name must not be empty")


def parse_tile_size(text: str) -> Tuple[int, int]:
    try:
        return TILE_SIZES[text.strip().lower()]
    except KeyError as exc:
        raise ConversionError(f"Invalid tile size: {text}") from exc
