"""Command line interface for the Game Boy tile converter."""

from __future__ import annotations

import argparse
import logging
import re
import sys
import warnings
from pathlib import Path

from .converter import convert_image, write_output
from .encoder import encode
from .errors import ConversionError
from .image import load_source_image
from .options import (
    FORMAT_C_SOURCE,
    FORMAT_GBM,
    FORMAT_GBR,
    MODE_CGB,
    MODE_DMG,
    OUTPUT_EXTENSIONS,
    TILE_SIZES,
    ConversionOptions,
    parse_tile_size,
)

logger = logging.getLogger("png2gbtiles")

LEVEL_QUIET = logging.CRITICAL + 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="png2gbtiles",
        description=(
            "Convert an indexed PNG into Game Boy tile data.\n"
            "gbr: tileset only, gbm: tileset and tilemap, csource: C arrays of both.\n"
            "gbr/gbm files use the GBTL container (16-byte header, 2bpp tiles,\n"
            "BGR555 palettes, 3-byte map records), not the Game Boy Tile\n"
            "Designer / Map Builder formats.\n"
            "Remap palette format: RGB in hex text, 1 color per line (ex: FF0080)"
        ),
        epilog=(
            "examples:\n"
            "  png2gbtiles spritesheet.png gbr spritesheet.gbr\n"
            "  png2gbtiles worldmap.png gbm -d -f -p worldmap.gbm\n"
            "  png2gbtiles worldmap.png gbm -c --pal mypal.pal --bank 4 --tileorg 64"
        ),
        formatter_class=argparse.RawTextHelpFormatter,
    )

    parser.add_argument("input", help="Source image (indexed or RGB PNG)")
    parser.add_argument(
        "mode",
        choices=[FORMAT_GBR, FORMAT_GBM, FORMAT_C_SOURCE],
        help="Output mode",
    )
    parser.add_argument(
        "output",
        nargs="?",
        help="Output file (defaults to the input name with a mode-specific extension)",
    )

    color = parser.add_mutually_exclusive_group()
    color.add_argument(
        "-g",
        "--dmg",
        dest="color_mode",
        action="store_const",
        const=MODE_DMG,
        help="Force DMG color mode (4 colors or less only)",
    )
    color.add_argument(
        "-c",
        "--cgb",
        dest="color_mode",
        action="store_const",
        const=MODE_CGB,
        help="Force CGB color mode (up to 32 colors)",
    )

    parser.add_argument(
        "-d",
        "--no-pattern-dedupe",
        action="store_true",
        help="Turn off tile deduplication of tile pattern",
    )
    parser.add_argument(
        "-f",
        "--no-flip-dedupe",
        action="store_true",
        help="Turn off tile deduplication of flip x/y",
    )
    parser.add_argument(
        "-p",
        "--no-palette-dedupe",
        action="store_true",
        help="Turn off tile deduplication of alternate palette",
    )
    parser.add_argument(
        "-i",
        "--ignore-palette-errors",
        action="store_true",
        help="Ignore palette errors (CGB will use the highest guessed palette number)",
    )
    parser.add_argument("--pal", metavar="FILE", help="Remap the image to this palette file")
    parser.add_argument("--var", metavar="NAME", help="Base name for export variables")
    parser.add_argument(
        "--bank",
        type=lambda text: int(text, 0),
        default=0,
        help="Bank number for all output modes",
    )
    parser.add_argument(
        "--tileorg",
        type=lambda text: int(text, 0),
        default=0,
        help="Tile id origin offset for maps (instead of zero)",
    )
    parser.add_argument(
        "--tilesz",
        choices=list(TILE_SIZES),
        default="8x8",
        help="Tile size",
    )

    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument(
        "-v",
        "--verbose",
        dest="log_level",
        action="store_const",
        const=logging.DEBUG,
        help="Verbose output during conversion",
    )
    verbosity.add_argument(
        "-e",
        "--errors-only",
        dest="log_level",
        action="store_const",
        const=logging.ERROR,
        help="Errors only, suppress all non-error output",
    )
    verbosity.add_argument(
        "-q",
        "--quiet",
        dest="log_level",
        action="store_const",
        const=LEVEL_QUIET,
        help="Quiet, suppress all output",
    )
    return parser


def configure_logging(level: int) -> None:
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.handlers[:] = [handler]
    logger.setLevel(level)
    logger.propagate = False


def default_output_path(input_path: Path, output_format: str) -> Path:
    return input_path.with_suffix(OUTPUT_EXTENSIONS[output_format])


def variable_name_for(path: Path) -> str:
    name = re.sub(r"\W", "_", path.stem)
    if not name or name[0].isdigit():
        name = "_" + name
    return name


def build_options(args: argparse.Namespace, output_path: Path) -> ConversionOptions:
    tile_width, tile_height = parse_tile_size(args.tilesz)
    return ConversionOptions(
        tile_width=tile_width,
        tile_height=tile_height,
        color_mode=args.color_mode,
        dedupe_patterns=not args.no_pattern_dedupe,
        dedupe_flips=not args.no_flip_dedupe,
        dedupe_palettes=not args.no_palette_dedupe,
        bank=args.bank,
        tile_origin=args.tileorg,
        variable_name=args.var or variable_name_for(output_path),
        palette_path=args.pal,
        ignore_palette_errors=args.ignore_palette_errors,
    )


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level if args.log_level is not None else logging.INFO)

    try:
        input_path = Path(args.input)
        output_path = Path(args.output) if args.output else default_output_path(input_path, args.mode)
        options = build_options(args, output_path)

        source = load_source_image(input_path)
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            result = convert_image(source, options)
        for warning in caught:
            logger.warning("Warning: %s", warning.message)

        data = encode(result, args.mode)
        write_output(output_path, data)
        logger.info("wrote %s", output_path)
        return 0
    except ConversionError as exc:
        logger.error("Error: %s", exc)
        return 1


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
