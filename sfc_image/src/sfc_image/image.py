"""In-memory images with optional indexed color data.

An :class:`Image` always holds a flat 8-bit RGBA buffer (row-major, 4 bytes per
pixel). Images decoded from palette PNGs or quantized against a subpalette
also hold one palette index per pixel plus the palette itself.

Index ``0`` is reserved for transparent pixels regardless of which color sits
in palette slot 0.

``set_pixel`` and ``blit`` only touch the RGBA buffer. Once they modify an
image that holds indexed data, ``indexed_stale`` is set and the indexed data
describes the image as it was constructed, not as it is now.
"""

from __future__ import annotations

import struct
import warnings
from pathlib import Path
from typing import TYPE_CHECKING, Iterator, List, Optional, Sequence, Tuple

from . import png
from .color import TRANSPARENT_COLOR, normalize_color, reduce_color
from .errors import (
    ColorNotInPaletteError,
    DecodeError,
    EmptyPaletteError,
    EncodeError,
    MissingIndexedDataError,
    PaletteError,
)
from .png import ColorType

if TYPE_CHECKING:
    from .palette import Palette, Subpalette
    from .tileset import Tileset

ATLAS_WIDTH = 128
MAX_INDEXED_COLORS = 256

_PIXEL = struct.Struct("<I")


def _div_ceil(value: int, divisor: int) -> int:
    return (value + divisor - 1) // divisor


def _transparent_fill(count: int) -> bytearray:
    return bytearray(_PIXEL.pack(TRANSPARENT_COLOR)) * count


class Image:
    def __init__(
        self,
        width: int,
        height: int,
        pixels: bytes | bytearray | None = None,
        indexed: bytes | bytearray | None = None,
        palette: Sequence[int] | None = None,
    ):
        if width < 0 or height < 0:
            raise ValueError(f"Invalid image size: {width}x{height}")
        size = width * height
        self._width = width
        self._height = height
        self._data = _transparent_fill(size) if pixels is None else bytearray(pixels)
        if len(self._data) != size * 4:
            raise ValueError(
                f"RGBA buffer holds {len(self._data)} bytes, expected {size * 4}"
            )
        self._indexed_data: Optional[bytearray] = None
        if indexed is not None:
            if len(indexed) != size:
                raise ValueError(f"Indexed buffer holds {len(indexed)} bytes, expected {size}")
            self._indexed_data = bytearray(indexed)
        self._palette: List[int] = list(palette or [])
        self.indexed_stale = False

    # Construction -----------------------------------------------------------

    @classmethod
    def from_png_bytes(cls, data: bytes) -> "Image":
        """Decode PNG bytes into an image.

        Palette PNGs keep their index data and palette. Every other format is
        converted to 8-bit RGBA with a second decoding pass.
        """

        decoded = png.decode(data, convert_color=False)
        indexed = None
        palette: List[int] = []
        needs_conversion = False

        if decoded.color_type == ColorType.PALETTE:
            indexed = decoded.pixels
            palette = decoded.palette or []
            needs_conversion = True

        if decoded.color_type in (ColorType.RGB, ColorType.GREY, ColorType.GREY_ALPHA):
            needs_conversion = True

        if decoded.bit_depth != 8:
            needs_conversion = True

        pixels = decoded.pixels
        if needs_conversion:
            pixels = png.decode(data, convert_color=True).pixels

        return cls(decoded.width, decoded.height, pixels, indexed, palette)

    @classmethod
    def open(cls, path: str | Path) -> "Image":
        path = Path(path)
        try:
            data = path.read_bytes()
        except FileNotFoundError as exc:
            raise DecodeError(f"Input file not found: {path}") from exc
        except OSError as exc:
            raise DecodeError(f"Failed to read PNG: {path}") from exc
        return cls.from_png_bytes(data)

    @classmethod
    def from_palette(cls, palette: "Palette") -> "Image":
        """Render palette swatches, one row per subpalette."""

        colors = palette.normalized_colors()
        if not colors or not colors[0]:
            raise EmptyPaletteError("No colors")

        image = cls(palette.max_colors_per_subpalette, len(colors))
        for y, row in enumerate(colors):
            for x, color in enumerate(row):
                image.set_pixel(color, x, y)
        return image

    @classmethod
    def from_tileset(cls, tileset: "Tileset") -> "Image":
        """Lay tiles out left to right, top to bottom in a 128 pixel wide atlas."""

        tile_width = tileset.tile_width
        tile_height = tileset.tile_height
        tiles_per_row = _div_ceil(ATLAS_WIDTH, tile_width)
        rows = _div_ceil(tileset.size, tiles_per_row)

        image = cls(ATLAS_WIDTH, rows * tile_height)
        for tile_index, tile in enumerate(tileset.tiles):
            image.blit(
                tile.rgba_data(),
                (tile_index % tiles_per_row) * tile_width,
                (tile_index // tiles_per_row) * tile_height,
                tile_width,
            )
        return image

    @classmethod
    def from_image(cls, image: "Image", subpalette: "Subpalette") -> "Image":
        """Map every pixel of ``image`` onto ``subpalette``.

        Each color is reduced and normalized in the subpalette's mode and then
        looked up exactly. Fully reduced transparent pixels get index 0. A color
        that is not in the subpalette raises :class:`ColorNotInPaletteError`.
        """

        palette = subpalette.normalized_colors()
        if not palette:
            raise EmptyPaletteError("No colors")
        if len(palette) > MAX_INDEXED_COLORS:
            raise PaletteError(
                f"Subpalette has {len(palette)} colors, at most {MAX_INDEXED_COLORS} can be indexed"
            )

        lookup = {}
        for position, color in enumerate(palette):
            lookup.setdefault(color, position)

        mode = subpalette.mode
        result = cls(image.width, image.height, palette=palette)
        indexed = bytearray(image.width * image.height)

        for i, source in enumerate(image.rgba_data()):
            color = normalize_color(reduce_color(source, mode), mode)
            if color == TRANSPARENT_COLOR:
                indexed[i] = 0
                result._write(i, TRANSPARENT_COLOR)
                continue
            position = lookup.get(color)
            if position is None:
                raise ColorNotInPaletteError(color, i, image.width)
            indexed[i] = position
            result._write(i, palette[position])

        result._indexed_data = indexed
        return result

    # Accessors --------------------------------------------------------------

    @property
    def width(self) -> int:
        return self._width

    @property
    def height(self) -> int:
        return self._height

    @property
    def palette(self) -> List[int]:
        return list(self._palette)

    @property
    def palette_size(self) -> int:
        return len(self._palette)

    @property
    def has_indexed_data(self) -> bool:
        return self._indexed_data is not None

    def rgba_data(self) -> List[int]:
        return [color for (color,) in _PIXEL.iter_unpack(self._data)]

    def rgba_bytes(self) -> bytes:
        return bytes(self._data)

    def indexed_data(self) -> bytes:
        if self._indexed_data is None:
            return b""
        return bytes(self._indexed_data)

    def rgba_color_at(self, index: int) -> int:
        return _PIXEL.unpack_from(self._data, index * 4)[0]

    def pixel(self, x: int, y: int) -> int:
        if not (0 <= x < self._width and 0 <= y < self._height):
            raise IndexError(f"Pixel ({x}, {y}) is outside {self._width}x{self._height}")
        return self.rgba_color_at(y * self._width + x)

    # Drawing ----------------------------------------------------------------

    def _write(self, index: int, color: int) -> bool:
        offset = index * 4
        if offset < 0 or offset + 4 > len(self._data):
            return False
        _PIXEL.pack_into(self._data, offset, color & 0xFFFFFFFF)
        return True

    def set_pixel(self, color: int, x: int, y: Optional[int] = None) -> None:
        """Write one pixel, addressed by linear index or by ``(x, y)``.

        Writes that fall outside the image are dropped without error.
        """

        if y is None:
            index = x
        elif 0 <= x < self._width and 0 <= y < self._height:
            index = y * self._width + x
        else:
            return
        if self._write(index, color) and self._indexed_data is not None:
            self.indexed_stale = True

    def blit(self, pixels: Sequence[int], x: int, y: int, width: int) -> None:
        """Copy ``pixels``, laid out as rows of ``width``, with its origin at (x, y)."""

        if width <= 0:
            raise ValueError(f"Invalid blit row width: {width}")
        for i, color in enumerate(pixels):
            self.set_pixel(color, x + i % width, y + i // width)

    # Cropping ---------------------------------------------------------------

    def crop(self, x: int, y: int, crop_width: int, crop_height: int) -> "Image":
        """Cut out a ``crop_width`` x ``crop_height`` region at (x, y).

        Any part of the region outside this image is transparent (and index 0
        when the image holds indexed data).
        """

        if min(x, y, crop_width, crop_height) < 0:
            raise ValueError(f"Invalid crop: ({x}, {y}) {crop_width}x{crop_height}")

        img = Image(crop_width, crop_height, palette=self._palette)
        img.indexed_stale = self.indexed_stale
        if self._indexed_data is not None:
            img._indexed_data = bytearray(crop_width * crop_height)

        if x > self._width or y > self._height:
            return img

        blit_width = min(crop_width, self._width - x)
        blit_height = min(crop_height, self._height - y)

        for iy in range(blit_height):
            src = (y + iy) * self._width + x
            dst = iy * crop_width
            img._data[dst * 4 : (dst + blit_width) * 4] = self._data[
                src * 4 : (src + blit_width) * 4
            ]
            if self._indexed_data is not None:
                img._indexed_data[dst : dst + blit_width] = self._indexed_data[
                    src : src + blit_width
                ]
        return img

    def _grid(self, tile_width: int, tile_height: int) -> Iterator[Tuple[int, int]]:
        if tile_width <= 0 or tile_height <= 0:
            raise ValueError(f"Invalid tile size: {tile_width}x{tile_height}")
        for y in range(0, self._height, tile_height):
            for x in range(0, self._width, tile_width):
                yield x, y

    def crops(self, tile_width: int, tile_height: int) -> List["Image"]:
        return [self.crop(x, y, tile_width, tile_height) for x, y in self._grid(tile_width, tile_height)]

    def rgba_crops(self, tile_width: int, tile_height: int) -> List[List[int]]:
        return [
            self.crop(x, y, tile_width, tile_height).rgba_data()
            for x, y in self._grid(tile_width, tile_height)
        ]

    def indexed_crops(self, tile_width: int, tile_height: int) -> List[bytes]:
        if self._indexed_data is None:
            raise MissingIndexedDataError("No indexed data in image")
        if self.indexed_stale:
            warnings.warn(
                "Indexed data no longer matches the RGBA pixels of this image",
                stacklevel=2,
            )
        return [
            self.crop(x, y, tile_width, tile_height).indexed_data()
            for x, y in self._grid(tile_width, tile_height)
        ]

    # Export -----------------------------------------------------------------

    def to_png_bytes(self) -> bytes:
        return png.encode(self._data, self._width, self._height)

    def save(self, path: str | Path) -> None:
        data = self.to_png_bytes()
        path = Path(path)
        try:
            path.write_bytes(data)
        except OSError as exc:
            raise EncodeError(f"Failed to write PNG: {path}") from exc

    def __str__(self) -> str:
        kind = "indexed color" if self.palette_size else "rgb color"
        return f"{self._width}x{self._height}, {kind}"

    def __repr__(self) -> str:
        return f"<Image {self}>"
