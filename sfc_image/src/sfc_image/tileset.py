"""Fixed-size tiles and tile collections."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Iterable, List, Tuple

if TYPE_CHECKING:
    from .image import Image


@dataclass(frozen=True)
class Tile:
    width: int
    height: int
    pixels: Tuple[int, ...]

    def __post_init__(self) -> None:
        if len(self.pixels) != self.width * self.height:
            raise ValueError(
                f"Tile of {self.width}x{self.height} needs {self.width * self.height} pixels, "
                f"got {len(self.pixels)}"
            )

    def rgba_data(self) -> List[int]:
        return list(self.pixels)


@dataclass
class Tileset:
    tile_width: int = 8
    tile_height: int = 8
    tiles: List[Tile] = field(default_factory=list)

    def __post_init__(self) -> None:
        if self.tile_width <= 0 or self.tile_height <= 0:
            raise ValueError(f"Invalid tile size: {self.tile_width}x{self.tile_height}")

    @property
    def size(self) -> int:
        return len(self.tiles)

    def add(self, pixels: Iterable[int]) -> Tile:
        tile = Tile(self.tile_width, self.tile_height, tuple(pixels))
        self.tiles.append(tile)
        return tile

    @classmethod
    def from_image(
        cls, image: "Image", tile_width: int = 8, tile_height: int = 8, dedupe: bool = False
    ) -> "Tileset":
        """Cut ``image`` into tiles, optionally dropping repeated tiles."""

        tileset = cls(tile_width, tile_height)
        seen = set()
        for pixels in image.rgba_crops(tile_width, tile_height):
            key = tuple(pixels)
            if dedupe:
                if key in seen:
                    continue
                seen.add(key)
            tileset.add(key)
        return tileset
