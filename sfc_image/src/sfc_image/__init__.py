"""Retro console image conversion.

This package converts between full-color PNG images, indexed images mapped
onto fixed-size subpalettes, and fixed-size tile grids. It can be invoked
through the CLI (``python -m sfc_image``) or imported:

    >>> from sfc_image import Image, Palette
    >>> palette = Palette.load("palette.json")
    >>> indexed = Image.from_image(Image.open("sprite.png"), palette[0])
    >>> tiles = indexed.indexed_crops(8, 8)
"""

from .color import TRANSPARENT_COLOR, Mode, normalize_color, pack, reduce_color, unpack
from .errors import (
    ColorNotInPaletteError,
    DecodeError,
    EmptyPaletteError,
    EncodeError,
    ImageError,
    MissingIndexedDataError,
    PaletteError,
)
from .image import ATLAS_WIDTH, Image
from .palette import Palette, Subpalette
from .tileset import Tile, Tileset

__all__ = [
    "ATLAS_WIDTH",
    "ColorNotInPaletteError",
    "DecodeError",
    "EmptyPaletteError",
    "EncodeError",
    "Image",
    "ImageError",
    "MissingIndexedDataError",
    "Mode",
    "Palette",
    "PaletteError",
    "Subpalette",
    "TRANSPARENT_COLOR",
    "Tile",
    "Tileset",
    "normalize_color",
    "pack",
    "reduce_color",
    "unpack",
]
