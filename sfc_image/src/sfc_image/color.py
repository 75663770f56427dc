"""Packed RGBA colors and per-console color reduction.

Colors are handled as packed 32-bit integers with red in the lowest byte:

* bits 0-7   : red
* bits 8-15  : green
* bits 16-23 : blue
* bits 24-31 : alpha

``reduce_color`` truncates a color to the channel depth of a target console
and ``normalize_color`` scales the reduced channels back to 8 bits so that
reduced colors can be compared against palette entries and written to PNG.
"""

from __future__ import annotations

from enum import Enum
from typing import Dict, Tuple

from .errors import PaletteError

Channels = Tuple[int, int, int, int]

TRANSPARENT_COLOR = 0x00000000
ALPHA_THRESHOLD = 0x80


class Mode(str, Enum):
    """Target color space of a palette."""

    SNES = "snes"
    GB = "gb"
    GBC = "gbc"
    GBA = "gba"
    MD = "md"
    PCE = "pce"
    WS = "ws"
    WSC = "wsc"
    RGB = "rgb"

    @classmethod
    def parse(cls, text: str | "Mode") -> "Mode":
        if isinstance(text, Mode):
            return text
        try:
            return cls(text.strip().lower())
        except ValueError as exc:
            names = ", ".join(m.value for m in cls)
            raise PaletteError(f"Unknown mode: {text} (expected one of {names})") from exc


# Bits per channel after reduction.
CHANNEL_BITS: Dict[Mode, int] = {
    Mode.SNES: 5,
    Mode.GB: 2,
    Mode.GBC: 5,
    Mode.GBA: 5,
    Mode.MD: 3,
    Mode.PCE: 3,
    Mode.WS: 4,
    Mode.WSC: 4,
    Mode.RGB: 8,
}

GREYSCALE_MODES = frozenset({Mode.GB, Mode.WS})


def pack(r: int, g: int, b: int, a: int = 0xFF) -> int:
    return (r & 0xFF) | ((g & 0xFF) << 8) | ((b & 0xFF) << 16) | ((a & 0xFF) << 24)


def unpack(color: int) -> Channels:
    return (
        color & 0xFF,
        (color >> 8) & 0xFF,
        (color >> 16) & 0xFF,
        (color >> 24) & 0xFF,
    )


def _luminance(r: int, g: int, b: int) -> int:
    return (r * 299 + g * 587 + b * 114) // 1000


def _scale_up(value: int, bits: int) -> int:
    """Expand a ``bits``-wide channel to 8 bits by repeating its bit pattern."""

    if bits >= 8:
        return value & 0xFF
    shift = 8 - bits
    result = value << shift
    while shift > 0:
        shift -= bits
        result |= value << shift if shift >= 0 else value >> -shift
    return result & 0xFF


def reduce_color(color: int, mode: Mode) -> int:
    """Reduce ``color`` to the channel depth of ``mode``.

    Colors with alpha below ``ALPHA_THRESHOLD`` collapse to
    ``TRANSPARENT_COLOR``. The alpha of any other color is set to the maximum
    channel value of the mode.
    """

    if color == TRANSPARENT_COLOR:
        return color
    r, g, b, a = unpack(color)
    if a < ALPHA_THRESHOLD:
        return TRANSPARENT_COLOR
    if mode in GREYSCALE_MODES:
        r = g = b = _luminance(r, g, b)
    bits = CHANNEL_BITS[mode]
    shift = 8 - bits
    return pack(r >> shift, g >> shift, b >> shift, (1 << bits) - 1)


def normalize_color(color: int, mode: Mode) -> int:
    """Scale a color produced by ``reduce_color`` back to 8 bits per channel."""

    if color == TRANSPARENT_COLOR:
        return color
    r, g, b, _ = unpack(color)
    bits = CHANNEL_BITS[mode]
    return pack(_scale_up(r, bits), _scale_up(g, bits), _scale_up(b, bits), 0xFF)


def parse_color(text: str) -> int:
    """Parse ``#rrggbb``, ``#rrggbbaa`` or ``r,g,b[,a]`` into a packed color."""

    text = text.strip()
    if text.startswith("#"):
        text = text[1:]
    if "," in text:
        parts = text.split(",")
        base = 10
    else:
        parts = [text[i : i + 2] for i in range(0, len(text), 2)]
        base = 16
    if len(parts) not in (3, 4):
        raise PaletteError(f"Color must have three or four components: {text}")
    values = []
    for part in parts:
        try:
            values.append(int(part.strip(), base))
        except ValueError as exc:
            raise PaletteError(f"Invalid color component: {part}") from exc
    if any(not (0 <= v <= 255) for v in values):
        raise PaletteError("Color components must be between 0 and 255")
    return pack(*values)


def format_color(color: int) -> str:
    r, g, b, a = unpack(color)
    if a == 0xFF:
        return f"#{r:02x}{g:02x}{b:02x}"
    return f"#{r:02x}{g:02x}{b:02x}{a:02x}"
