"""Exceptions and collected diagnostics for the tile converter."""

from __future__ import annotations

import warnings
from typing import Dict, List


class ConversionError(Exception):
    """Base exception for conversion errors."""


class DimensionMismatchError(ConversionError):
    """Raised when the tile size does not evenly divide the image size."""


class PaletteCapacityError(ConversionError):
    """Raised when the image has more colors than the hardware mode allows."""


class PaletteRemapError(ConversionError):
    """Raised when source colors are missing from an external palette."""


class PaletteOverflowError(ConversionError):
    """Raised when a tile's colors cannot fit any palette bank."""


class TileIdRangeError(ConversionError):
    """Raised when a tile id plus origin does not fit the output id field."""


class OutputWriteError(ConversionError):
    """Raised when the output file cannot be written."""


class PaletteWarning(UserWarning):
    """Emitted once per degraded palette problem in error-tolerant runs."""


class Diagnostics:
    """Collects tolerated palette problems so they are reported once per kind.

    Each stage adds entries under a short kind label. Nothing is printed until
    :meth:`emit` runs at the end of the pipeline, which keeps the report to a
    single message per kind no matter how many pixels or tiles were affected.
    """

    def __init__(self) -> None:
        self._entries: Dict[str, List[str]] = {}

    def add(self, kind: str, detail: str) -> None:
        details = self._entries.setdefault(kind, [])
        if detail not in details:
            details.append(detail)

    def __bool__(self) -> bool:
        return bool(self._entries)

    def messages(self) -> List[str]:
        return [f"{kind}: {', '.join(details)}" for kind, details in self._entries.items()]

    def emit(self) -> List[str]:
        messages = self.messages()
        for message in messages:
            warnings.warn(message, PaletteWarning, stacklevel=2)
        return messages
