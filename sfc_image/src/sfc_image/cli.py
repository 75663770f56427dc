"""Command line interface for sfc_image."""

from __future__ import annotations

import argparse
import sys
import warnings
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List

from .errors import ImageError
from .image import Image
from .palette import Palette
from .tileset import Tileset


@dataclass
class TileOptions:
    """Tile grid settings shared by the ``tiles`` and ``split`` commands."""

    tile_width: int = 8
    tile_height: int = 8
    dedupe: bool = False
    prefix: str = ""
    indexed: bool = False


def ensure_writable(target: Path, force: bool) -> None:
    if target.exists() and not force:
        raise ImageError(f"Output file already exists (use --force to overwrite): {target}")


def tile_options_from_args(args: argparse.Namespace) -> TileOptions:
    options = TileOptions()
    options.tile_width = args.tile_width
    options.tile_height = args.tile_height
    options.dedupe = getattr(args, "dedupe", False)
    options.prefix = getattr(args, "prefix", "")
    options.indexed = getattr(args, "indexed", False)
    if options.tile_width <= 0 or options.tile_height <= 0:
        raise ImageError(
            f"Tile size must be positive: {options.tile_width}x{options.tile_height}"
        )
    return options


def cmd_info(args: argparse.Namespace) -> None:
    for raw in args.inputs:
        image = Image.open(raw)
        print(f"{raw}: {image}")


def cmd_palette_image(args: argparse.Namespace) -> None:
    output = Path(args.output)
    ensure_writable(output, args.force)
    image = Image.from_palette(Palette.load(args.palette))
    image.save(output)
    print(f"wrote {output}")


def cmd_quantize(args: argparse.Namespace) -> None:
    output = Path(args.output)
    ensure_writable(output, args.force)
    palette = Palette.load(args.palette)
    if not 0 <= args.subpalette < len(palette):
        raise ImageError(
            f"Subpalette {args.subpalette} does not exist (palette has {len(palette)})"
        )
    source = Image.open(args.input)
    image = Image.from_image(source, palette[args.subpalette])
    image.save(output)
    print(f"wrote {output}")


def cmd_tiles(args: argparse.Namespace) -> None:
    options = tile_options_from_args(args)
    output = Path(args.output)
    ensure_writable(output, args.force)
    source = Image.open(args.input)
    tileset = Tileset.from_image(
        source, options.tile_width, options.tile_height, dedupe=options.dedupe
    )
    Image.from_tileset(tileset).save(output)
    print(f"wrote {output} ({tileset.size} tiles)")


def cmd_split(args: argparse.Namespace) -> None:
    options = tile_options_from_args(args)
    output_dir = Path(args.output_dir)
    source = Image.open(args.input)

    crops = source.crops(options.tile_width, options.tile_height)
    indexed: List[bytes] = []
    if options.indexed:
        indexed = source.indexed_crops(options.tile_width, options.tile_height)

    names = [f"{options.prefix}{i:04d}" for i in range(len(crops))]
    targets = [output_dir / f"{name}.png" for name in names]
    targets += [output_dir / f"{name}.idx" for name in names[: len(indexed)]]
    conflicts = [str(t) for t in targets if t.exists()]
    if conflicts and not args.force:
        raise ImageError(
            "Output files already exist (use --force to overwrite):\n" + "\n".join(conflicts)
        )

    output_dir.mkdir(parents=True, exist_ok=True)
    for name, crop in zip(names, crops):
        crop.save(output_dir / f"{name}.png")
    for name, data in zip(names, indexed):
        (output_dir / f"{name}.idx").write_bytes(data)
    print(f"wrote {len(crops)} tiles to {output_dir}")


def _add_tile_size(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--tile-width", type=int, default=8, help="Tile width in pixels")
    parser.add_argument("--tile-height", type=int, default=8, help="Tile height in pixels")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Convert PNG images to and from palettes, indexed data and tile atlases.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    info = sub.add_parser("info", help="Show size and color type of PNG files")
    info.add_argument("inputs", nargs="+", help="PNG files")
    info.set_defaults(func=cmd_info)

    swatch = sub.add_parser("palette-image", help="Render a palette JSON file as a PNG")
    swatch.add_argument("palette", help="Palette JSON file")
    swatch.add_argument("-o", "--output", required=True, help="Destination PNG")
    swatch.set_defaults(func=cmd_palette_image)

    quantize = sub.add_parser("quantize", help="Map an image onto one subpalette")
    quantize.add_argument("input", help="Source PNG")
    quantize.add_argument("--palette", required=True, help="Palette JSON file")
    quantize.add_argument(
        "--subpalette", type=int, default=0, help="Index of the subpalette to map to"
    )
    quantize.add_argument("-o", "--output", required=True, help="Destination PNG")
    quantize.set_defaults(func=cmd_quantize)

    tiles = sub.add_parser("tiles", help="Rebuild an image as a 128 pixel wide tile atlas")
    tiles.add_argument("input", help="Source PNG")
    tiles.add_argument("-o", "--output", required=True, help="Destination PNG")
    _add_tile_size(tiles)
    tiles.add_argument("--dedupe", action="store_true", help="Drop repeated tiles")
    tiles.set_defaults(func=cmd_tiles)

    split = sub.add_parser("split", help="Write every tile of an image as its own PNG")
    split.add_argument("input", help="Source PNG")
    split.add_argument("-o", "--output-dir", required=True, help="Destination directory")
    _add_tile_size(split)
    split.add_argument("--prefix", default="", help="Optional prefix for output filenames")
    split.add_argument(
        "--indexed",
        action="store_true",
        help="Also write each tile's palette indices as a raw .idx file",
    )
    split.set_defaults(func=cmd_split)

    for command in (swatch, quantize, tiles, split):
        command.add_argument(
            "-f",
            "--force",
            action="store_true",
            help="Overwrite existing files without prompting",
        )

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    func: Callable[[argparse.Namespace], None] = args.func

    try:
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            func(args)
        for warning in caught:
            print(f"Warning: {warning.message}")
        return 0
    except ImageError as exc:
        print(exc, file=sys.stderr)
        return 1


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
