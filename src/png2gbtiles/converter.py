"""Conversion pipeline from a decoded image to Game Boy tile data.

Stages run strictly in order and each one finishes before the next starts:

    color table -> capacity check -> tile slicing -> palette assignment
    -> deduplication -> encoding

Every stage receives the same frozen :class:`ConversionOptions`. Fatal
problems raise a :class:`ConversionError` subclass and stop the run; problems
tolerated through ``ignore_palette_errors`` are collected and reported once
as :class:`PaletteWarning` at the end.
"""

from __future__ import annotations

import logging
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from .assign import assign_palettes, localize_single_palette
from .dedupe import TileRecord, dedupe_tiles
from .encoder import encode
from .errors import Diagnostics, OutputWriteError
from .image import SourceImage, load_source_image
from .options import MODE_CGB, ConversionOptions
from .palette import (
    Color,
    MODE_CAPACITY,
    ColorTable,
    PaletteSet,
    build_color_table,
    compact_color_table,
    enforce_capacity,
    load_palette_file,
    resolve_color_mode,
    single_palette,
)
from .tiles import Tile, slice_tiles

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConversionResult:
    """Everything the encoders need, produced once per run."""

    color_table: ColorTable
    palette_set: PaletteSet
    unique_tiles: Tuple[Tile, ...]
    records: Tuple[TileRecord, ...]
    map_width: int
    map_height: int
    options: ConversionOptions
    diagnostics: Tuple[str, ...] = ()


def convert_image(
    source: SourceImage,
    options: ConversionOptions | None = None,
    external_palette: Optional[Sequence[Color]] = None,
) -> ConversionResult:
    """Run the full pipeline on ``source``.

    ``external_palette`` takes precedence over ``options.palette_path``; when
    neither is given the color table is built from the image itself.
    """

    options = options or ConversionOptions()
    diagnostics = Diagnostics()
    tolerant = options.ignore_palette_errors

    if external_palette is None and options.palette_path:
        external_palette = load_palette_file(options.palette_path)

    table, indices = build_color_table(source, external_palette, tolerant, diagnostics)
    color_count = len(set(indices)) if external_palette is not None else len(table)
    mode = resolve_color_mode(color_count, options)
    logger.info("Using %s mode for %d colors", mode, color_count)
    # a palette file larger than the mode allows is cut down to the entries in use
    if len(table) > MODE_CAPACITY[mode] and color_count < len(table):
        table, indices = compact_color_table(table, indices)
        logger.debug("Kept %d of the supplied palette entries", len(table))
    table, indices = enforce_capacity(table, indices, mode, tolerant, diagnostics)

    tiles = slice_tiles(indices, source.width, source.height, options.tile_width, options.tile_height)
    logger.debug("Sliced %d tiles of %dx%d", len(tiles), options.tile_width, options.tile_height)

    if mode == MODE_CGB:
        palette_set, tiles = assign_palettes(tiles, table, tolerant, diagnostics)
    else:
        palette_set = single_palette(table)
        tiles = localize_single_palette(tiles)

    unique_tiles, records = dedupe_tiles(tiles, options)

    messages: List[str] = diagnostics.emit() if diagnostics else []
    return ConversionResult(
        color_table=table,
        palette_set=palette_set,
        unique_tiles=unique_tiles,
        records=records,
        map_width=source.width // options.tile_width,
        map_height=source.height // options.tile_height,
        options=options,
        diagnostics=tuple(messages),
    )


def convert_image_to_bytes(
    source: SourceImage,
    output_format: str,
    options: ConversionOptions | None = None,
) -> bytes:
    return encode(convert_image(source, options), output_format)


def convert_png(
    path: str | Path,
    output_format: str,
    options: ConversionOptions | None = None,
) -> bytes:
    return convert_image_to_bytes(load_source_image(path), output_format, options)


def write_output(path: str | Path, data: bytes) -> Path:
    """Write ``data`` to ``path`` atomically; nothing is left behind on failure."""

    target = Path(path)
    tmp_name: str | None = None
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{target.name}.", dir=target.parent)
        with os.fdopen(fd, "wb") as handle:
            handle.write(data)
        # mkstemp creates 0600; match what a plain open() would give
        umask = os.umask(0)
        os.umask(umask)
        os.chmod(tmp_name, 0o666 & ~umask)
        os.replace(tmp_name, target)
        tmp_name = None
    except OSError as exc:
        raise OutputWriteError(f"Failed to write output file: {target} ({exc})") from exc
    finally:
        if tmp_name is not None and os.path.exists(tmp_name):
            os.unlink(tmp_name)
    return target
