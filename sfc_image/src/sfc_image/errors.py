"""Exceptions raised by the sfc_image package."""

from __future__ import annotations


class ImageError(Exception):
    """Base class for all image conversion errors."""


class DecodeError(ImageError):
    """Raised when PNG input is malformed, truncated or unsupported."""


class EncodeError(ImageError):
    """Raised when an image buffer cannot be written out as PNG."""


class PaletteError(ImageError):
    """Raised for invalid palette definitions."""


class EmptyPaletteError(PaletteError):
    """Raised when a palette or subpalette has no colors to work with."""


class ColorNotInPaletteError(ImageError):
    """Raised when a pixel cannot be mapped onto the target subpalette."""

    def __init__(self, color: int, index: int, width: int):
        self.color = color
        self.index = index
        self.x = index % width if width else index
        self.y = index // width if width else 0
        channels = [(color >> shift) & 0xFF for shift in (0, 8, 16, 24)]
        super().__init__(
            "Color #" + "".join(f"{c:02x}" for c in channels)
            + f" at ({self.x}, {self.y}) is not in palette"
        )


class MissingIndexedDataError(ImageError):
    """Raised when indexed data is requested from an RGBA-only image."""
