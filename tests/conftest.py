from pathlib import Path
import sys

import pytest
from PIL import Image

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

from png2gbtiles.image import SourceImage  # noqa: E402

SHADES = [
    (224, 248, 208),
    (136, 192, 112),
    (52, 104, 86),
    (8, 24, 32),
    (255, 0, 0),
    (0, 255, 0),
    (0, 0, 255),
    (255, 255, 0),
]


@pytest.fixture
def quadrants():
    """Rows of a square image built from four equally sized tiles."""

    def _build(top_left, top_right, bottom_left, bottom_right):
        rows = [list(a) + list(b) for a, b in zip(top_left, top_right)]
        rows += [list(a) + list(b) for a, b in zip(bottom_left, bottom_right)]
        return rows

    return _build


@pytest.fixture
def make_source():
    def _make(rows, table=SHADES):
        height = len(rows)
        width = len(rows[0])
        flat = bytes(value for row in rows for value in row)
        return SourceImage(width, height, 1, flat, list(table))

    return _make


@pytest.fixture
def write_png(tmp_path):
    def _write(rows, name="image.png", table=SHADES):
        height = len(rows)
        width = len(rows[0])
        image = Image.new("P", (width, height))
        image.putpalette([component for color in table for component in color])
        image.putdata([value for row in rows for value in row])
        path = tmp_path / name
        image.save(path)
        return path

    return _write


@pytest.fixture
def sample_tile():
    """An 8x8 tile with no flip symmetry."""
    rows = [[0] * 8 for _ in range(8)]
    rows[0][0] = 1
    rows[0][1] = 2
    rows[1][0] = 3
    rows[7][6] = 2
    return rows
