"""Source image container and the Pillow-backed loader that fills it."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Sequence, Tuple

from PIL import Image

from .errors import ConversionError

RGB = Tuple[int, int, int]

BPP_INDEXED = 1
BPP_INDEXED_ALPHA = 2
MAX_INDEXED_COLORS = 256


@dataclass(frozen=True)
class SourceImage:
    """Decoded pixels handed to the converter.

    ``pixels`` holds one palette index per pixel, or ``[index, alpha]`` pairs
    when ``bytes_per_pixel`` is 2. ``color_table`` maps indices to RGB; when it
    is missing an index ``v`` stands for the grey ``(v, v, v)``.
    """

    width: int
    height: int
    bytes_per_pixel: int
    pixels: bytes
    color_table: Sequence[RGB] | None = None

    def __post_init__(self) -> None:
        if self.bytes_per_pixel not in (BPP_INDEXED, BPP_INDEXED_ALPHA):
            raise ConversionError(
                f"Unsupported bytes per pixel: {self.bytes_per_pixel} (expected 1 or 2)"
            )
        if self.width <= 0 or self.height <= 0:
            raise ConversionError("Image dimensions must be positive")
        expected = self.width * self.height * self.bytes_per_pixel
        if len(self.pixels) != expected:
            raise ConversionError(
                f"Pixel buffer holds {len(self.pixels)} bytes, expected {expected}"
            )

    @property
    def has_alpha(self) -> bool:
        return self.bytes_per_pixel == BPP_INDEXED_ALPHA


def _has_transparency(image: Image.Image) -> bool:
    return "A" in image.getbands() or "transparency" in image.info


def _interleave_alpha(indices: bytes, alpha: bytes) -> bytes:
    out = bytearray(len(indices) * 2)
    out[0::2] = indices
    out[1::2] = alpha
    return bytes(out)


def _palette_entries(image: Image.Image) -> List[RGB]:
    raw = image.getpalette() or []
    return [tuple(raw[i : i + 3]) for i in range(0, len(raw) - 2, 3)]  # type: ignore[misc]


def source_image_from_pil(image: Image.Image) -> SourceImage:
    """Convert a Pillow image into an indexed :class:`SourceImage`."""

    width, height = image.size
    alpha_bytes: bytes | None = None
    if _has_transparency(image):
        alpha_bytes = image.convert("RGBA").getchannel("A").tobytes()

    if image.mode in ("P", "PA"):
        indices = image.getchannel(0).tobytes()
        table = _palette_entries(image)
    else:
        rgb = image.convert("RGB")
        lookup: Dict[RGB, int] = {}
        index_values = bytearray()
        for color in rgb.getdata():
            index = lookup.get(color)
            if index is None:
                if len(lookup) >= MAX_INDEXED_COLORS:
                    raise ConversionError(
                        f"Image uses more than {MAX_INDEXED_COLORS} colors; reduce colors first"
                    )
                index = len(lookup)
                lookup[color] = index
            index_values.append(index)
        indices = bytes(index_values)
        table = list(lookup)

    if alpha_bytes is not None:
        return SourceImage(width, height, BPP_INDEXED_ALPHA, _interleave_alpha(indices, alpha_bytes), table)
    return SourceImage(width, height, BPP_INDEXED, indices, table)


def load_source_image(path: str | Path) -> SourceImage:
    path = Path(path)
    try:
        with Image.open(path) as img:
            img.load()
            return source_image_from_pil(img)
    except FileNotFoundError as exc:
        raise ConversionError(f"Input file not found: {path}") from exc
    except OSError as exc:
        raise ConversionError(f"Failed to read image: {path}") from exc
