"""PNG to Game Boy tile converter.

Converts an indexed image into a deduplicated 2bpp tileset, an optional
tilemap and a C source listing. It can be invoked through the CLI (``python
-m png2gbtiles``) or imported to convert a single image into bytes.
"""

from .converter import (
    ConversionResult,
    convert_image,
    convert_image_to_bytes,
    convert_png,
    write_output,
)
from .dedupe import TileRecord, canonical_key, dedupe_tiles
from .encoder import encode
from .errors import (
    ConversionError,
    DimensionMismatchError,
    OutputWriteError,
    PaletteCapacityError,
    PaletteOverflowError,
    PaletteRemapError,
    PaletteWarning,
    TileIdRangeError,
)
from .image import SourceImage, load_source_image, source_image_from_pil
from .options import (
    FORMAT_C_SOURCE,
    FORMAT_GBM,
    FORMAT_GBR,
    MODE_CGB,
    MODE_DMG,
    ConversionOptions,
)
from .palette import PaletteSet, load_palette_file, parse_palette_text
from .tiles import Tile, slice_tiles

__all__ = [
    "FORMAT_C_SOURCE",
    "FORMAT_GBM",
    "FORMAT_GBR",
    "MODE_CGB",
    "MODE_DMG",
    "ConversionError",
    "ConversionOptions",
    "ConversionResult",
    "DimensionMismatchError",
    "OutputWriteError",
    "PaletteCapacityError",
    "PaletteOverflowError",
    "PaletteRemapError",
    "PaletteSet",
    "PaletteWarning",
    "SourceImage",
    "Tile",
    "TileIdRangeError",
    "TileRecord",
    "canonical_key",
    "convert_image",
    "convert_image_to_bytes",
    "convert_png",
    "dedupe_tiles",
    "encode",
    "load_palette_file",
    "load_source_image",
    "parse_palette_text",
    "slice_tiles",
    "source_image_from_pil",
    "write_output",
]
