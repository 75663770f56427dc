"""PNG reading and writing on top of Pillow.

``decode`` reports the native PNG color type and bit depth taken straight from
the IHDR chunk, because Pillow folds several of them into the same image mode.
"""

from __future__ import annotations

import io
import struct
from dataclasses import dataclass
from enum import IntEnum
from typing import List, Optional, Tuple

from PIL import Image

from .color import pack
from .errors import DecodeError, EncodeError

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"

# Pillow modes that hold more than 8 bits per greyscale sample.
WIDE_GREY_MODES = {"I", "I;16", "I;16B", "I;16L", "I;16N"}


class ColorType(IntEnum):
    """PNG IHDR color type codes."""

    GREY = 0
    RGB = 2
    PALETTE = 3
    GREY_ALPHA = 4
    RGBA = 6


@dataclass
class DecodedPng:
    pixels: bytes
    width: int
    height: int
    color_type: ColorType
    bit_depth: int
    palette: Optional[List[int]] = None


def read_header(data: bytes) -> Tuple[int, int, int, ColorType]:
    """Return ``(width, height, bit_depth, color_type)`` from the IHDR chunk."""

    if not data.startswith(PNG_SIGNATURE):
        raise DecodeError("Invalid PNG signature")
    offset = len(PNG_SIGNATURE)
    if len(data) < offset + 8 + 13:
        raise DecodeError("PNG data is truncated")

    length, chunk_type = struct.unpack(">I4s", data[offset : offset + 8])
    if chunk_type != b"IHDR" or length != 13:
        raise DecodeError("PNG data does not start with an IHDR chunk")

    width, height, bit_depth, color_type = struct.unpack(
        ">IIBB", data[offset + 8 : offset + 18]
    )
    try:
        return width, height, bit_depth, ColorType(color_type)
    except ValueError as exc:
        raise DecodeError(f"Unsupported PNG color type: {color_type}") from exc


def _palette_colors(img: Image.Image) -> List[int]:
    raw = img.getpalette("RGB") or []
    count = len(raw) // 3
    alphas = [0xFF] * count

    transparency = img.info.get("transparency")
    if isinstance(transparency, bytes):
        for i, alpha in enumerate(transparency[:count]):
            alphas[i] = alpha
    elif isinstance(transparency, int) and transparency < count:
        alphas[transparency] = 0

    return [pack(raw[i * 3], raw[i * 3 + 1], raw[i * 3 + 2], alphas[i]) for i in range(count)]


def _to_rgba(img: Image.Image) -> Image.Image:
    if img.mode in WIDE_GREY_MODES:
        img = img.convert("I").point(lambda v: v * (1 / 256)).convert("L")
    if img.mode != "RGBA":
        img = img.convert("RGBA")
    return img


def decode(data: bytes, convert_color: bool = False) -> DecodedPng:
    """Decode PNG bytes.

    With ``convert_color`` the pixels are always 8-bit RGBA. Without it the
    pixels are the samples in the image's native layout (one index per byte
    for palette images) and the embedded palette, if any, is returned as
    packed colors.
    """

    width, height, bit_depth, color_type = read_header(data)
    try:
        with Image.open(io.BytesIO(data), formats=["PNG"]) as img:
            img.load()
            if convert_color:
                return DecodedPng(_to_rgba(img).tobytes(), width, height, color_type, bit_depth)
            palette = _palette_colors(img) if img.mode == "P" else None
            return DecodedPng(img.tobytes(), width, height, color_type, bit_depth, palette)
    except (OSError, SyntaxError, ValueError, EOFError, Image.DecompressionBombError) as exc:
        raise DecodeError(f"Failed to decode PNG: {exc}") from exc


def encode(pixels: bytes | bytearray, width: int, height: int) -> bytes:
    """Encode an 8-bit RGBA buffer as PNG bytes."""

    expected = width * height * 4
    if len(pixels) != expected:
        raise EncodeError(
            f"RGBA buffer holds {len(pixels)} bytes, expected {expected} for {width}x{height}"
        )
    if width == 0 or height == 0:
        raise EncodeError(f"Cannot encode an empty {width}x{height} image")

    try:
        img = Image.frombytes("RGBA", (width, height), bytes(pixels))
        buffer = io.BytesIO()
        img.save(buffer, format="PNG")
    except (OSError, ValueError) as exc:
        raise EncodeError(f"Failed to encode PNG: {exc}") from exc
    return buffer.getvalue()
