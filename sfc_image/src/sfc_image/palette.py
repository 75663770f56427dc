"""Palettes made of fixed-size subpalettes."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional

from .color import Mode, normalize_color, parse_color, reduce_color
from .errors import PaletteError

DEFAULT_MAX_COLORS = 16


@dataclass
class Subpalette:
    """One group of colors addressed as a unit by indexed pixels."""

    colors: List[int] = field(default_factory=list)
    mode: Mode = Mode.SNES
    max_colors: Optional[int] = None

    def add_color(self, color: int) -> None:
        if color in self.colors:
            return
        if self.max_colors is not None and len(self.colors) >= self.max_colors:
            raise PaletteError(f"Subpalette is full ({self.max_colors} colors)")
        self.colors.append(color)

    def normalized_colors(self) -> List[int]:
        return [normalize_color(reduce_color(c, self.mode), self.mode) for c in self.colors]

    def __len__(self) -> int:
        return len(self.colors)


@dataclass
class Palette:
    mode: Mode = Mode.SNES
    max_colors_per_subpalette: int = DEFAULT_MAX_COLORS
    subpalettes: List[Subpalette] = field(default_factory=list)

    def add_subpalette(self, colors: Iterable[int] = ()) -> Subpalette:
        subpalette = Subpalette(mode=self.mode, max_colors=self.max_colors_per_subpalette)
        for color in colors:
            subpalette.add_color(color)
        self.subpalettes.append(subpalette)
        return subpalette

    def normalized_colors(self) -> List[List[int]]:
        return [sub.normalized_colors() for sub in self.subpalettes]

    def __len__(self) -> int:
        return len(self.subpalettes)

    def __getitem__(self, index: int) -> Subpalette:
        return self.subpalettes[index]

    @classmethod
    def from_dict(cls, data: dict) -> "Palette":
        """Build a palette from ``{"mode", "max_colors", "colors"}``.

        ``colors`` is a list of subpalettes, each a list of color strings
        accepted by :func:`sfc_image.color.parse_color`.
        """

        if not isinstance(data, dict):
            raise PaletteError("Palette definition must be a JSON object")
        rows = data.get("colors")
        if not isinstance(rows, list) or not all(isinstance(row, list) for row in rows):
            raise PaletteError('Palette definition needs "colors" as a list of lists')

        mode = Mode.parse(data.get("mode", Mode.SNES.value))
        max_colors = data.get("max_colors", DEFAULT_MAX_COLORS)
        if not isinstance(max_colors, int) or max_colors < 1:
            raise PaletteError(f"max_colors must be a positive integer: {max_colors!r}")

        palette = cls(mode=mode, max_colors_per_subpalette=max_colors)
        for row in rows:
            palette.add_subpalette(parse_color(str(text)) for text in row)
        return palette

    @classmethod
    def from_json(cls, text: str) -> "Palette":
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise PaletteError(f"Invalid palette JSON: {exc}") from exc
        return cls.from_dict(data)

    @classmethod
    def load(cls, path: str | Path) -> "Palette":
        path = Path(path)
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as exc:
            raise PaletteError(f"Failed to read palette: {path}") from exc
        return cls.from_json(text)
