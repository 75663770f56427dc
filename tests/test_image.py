import pytest

from sfc_image.color import TRANSPARENT_COLOR, Mode, pack
from sfc_image.errors import (
    ColorNotInPaletteError,
    DecodeError,
    EmptyPaletteError,
    MissingIndexedDataError,
)
from sfc_image.image import ATLAS_WIDTH, Image
from sfc_image.palette import Palette, Subpalette
from sfc_image.tileset import Tileset

RED = pack(255, 0, 0)
BLACK = pack(0, 0, 0)
BLUE = pack(0, 0, 255)
GREEN = pack(0, 255, 0)


def gradient(width: int, height: int) -> Image:
    image = Image(width, height)
    for y in range(height):
        for x in range(width):
            image.set_pixel(pack(x, y, 1), x, y)
    return image


def snes_subpalette() -> Subpalette:
    return Subpalette([TRANSPARENT_COLOR, RED, BLACK, BLUE], mode=Mode.SNES)


def quantized() -> Image:
    source = Image(2, 2)
    source.blit([RED, BLACK, pack(9, 9, 9, 0), pack(250, 3, 1)], 0, 0, 2)
    return Image.from_image(source, snes_subpalette())


def assert_buffer_sizes(image: Image) -> None:
    assert len(image.rgba_bytes()) == image.width * image.height * 4
    if image.has_indexed_data:
        assert len(image.indexed_data()) == image.width * image.height


# Construction ---------------------------------------------------------------


def test_new_image_is_transparent() -> None:
    image = Image(3, 2)
    assert image.rgba_data() == [TRANSPARENT_COLOR] * 6
    assert not image.has_indexed_data
    assert image.indexed_data() == b""
    assert str(image) == "3x2, rgb color"
    assert_buffer_sizes(image)


def test_constructor_checks_buffer_sizes() -> None:
    with pytest.raises(ValueError):
        Image(2, 2, pixels=b"\x00" * 15)
    with pytest.raises(ValueError):
        Image(2, 2, indexed=b"\x00" * 3)
    with pytest.raises(ValueError):
        Image(-1, 2)


def test_from_palette_pads_short_rows() -> None:
    palette = Palette(mode=Mode.RGB, max_colors_per_subpalette=4)
    palette.add_subpalette([pack(10, 20, 30), pack(40, 50, 60), pack(70, 80, 90)])
    palette.add_subpalette([pack(1, 2, 3)])

    image = Image.from_palette(palette)

    assert (image.width, image.height) == (4, 2)
    assert image.pixel(0, 0) == pack(10, 20, 30)
    assert image.pixel(2, 0) == pack(70, 80, 90)
    assert image.pixel(3, 0) == TRANSPARENT_COLOR
    assert image.pixel(0, 1) == pack(1, 2, 3)
    for x in range(1, 4):
        assert image.pixel(x, 1) == TRANSPARENT_COLOR
    assert not image.has_indexed_data
    assert_buffer_sizes(image)


def test_from_palette_uses_normalized_colors() -> None:
    palette = Palette(mode=Mode.SNES, max_colors_per_subpalette=2)
    palette.add_subpalette([pack(250, 3, 1)])
    assert Image.from_palette(palette).pixel(0, 0) == RED


def test_from_palette_requires_colors() -> None:
    with pytest.raises(EmptyPaletteError):
        Image.from_palette(Palette())
    palette = Palette()
    palette.add_subpalette([])
    palette.add_subpalette([RED])
    with pytest.raises(EmptyPaletteError):
        Image.from_palette(palette)


def test_from_tileset_places_tiles_in_rows() -> None:
    tileset = Tileset(16, 16)
    for i in range(5):
        tileset.add(pack(i, p & 0xFF, p >> 8) for p in range(16 * 16))

    image = Image.from_tileset(tileset)

    assert (image.width, image.height) == (ATLAS_WIDTH, 16)
    assert image.crop(48, 0, 16, 16).rgba_data() == tileset.tiles[3].rgba_data()
    assert image.pixel(48, 0) == tileset.tiles[3].rgba_data()[0]
    assert image.crop(80, 0, 48, 16).rgba_data() == [TRANSPARENT_COLOR] * (48 * 16)
    assert_buffer_sizes(image)


def test_from_tileset_drops_pixels_past_the_right_edge() -> None:
    tileset = Tileset(24, 8)
    for i in range(7):
        tileset.add([pack(i + 1, 0, 0)] * (24 * 8))

    image = Image.from_tileset(tileset)

    # ceil(128 / 24) = 6 tiles per row, the sixth one is clipped
    assert (image.width, image.height) == (ATLAS_WIDTH, 16)
    assert image.pixel(127, 0) == pack(6, 0, 0)
    assert image.pixel(0, 1) == pack(1, 0, 0)
    assert image.pixel(0, 8) == pack(7, 0, 0)
    assert image.pixel(24, 8) == TRANSPARENT_COLOR


def test_from_empty_tileset() -> None:
    image = Image.from_tileset(Tileset(8, 8))
    assert (image.width, image.height) == (ATLAS_WIDTH, 0)


def test_open_missing_file(tmp_path) -> None:
    with pytest.raises(DecodeError):
        Image.open(tmp_path / "missing.png")


def test_save_and_open(tmp_path) -> None:
    source = gradient(6, 4)
    target = tmp_path / "out.png"
    source.save(target)

    loaded = Image.open(target)
    assert (loaded.width, loaded.height) == (6, 4)
    assert loaded.rgba_data() == source.rgba_data()


# Quantization ---------------------------------------------------------------


def test_from_image_maps_colors_to_indices() -> None:
    image = quantized()

    assert image.indexed_data() == bytes([1, 2, 0, 1])
    assert image.rgba_data() == [RED, BLACK, TRANSPARENT_COLOR, RED]
    assert image.palette == [TRANSPARENT_COLOR, RED, BLACK, BLUE]
    assert str(image) == "2x2, indexed color"
    assert not image.indexed_stale
    assert_buffer_sizes(image)


def test_from_image_is_idempotent() -> None:
    first = quantized()
    second = Image.from_image(first, snes_subpalette())

    assert second.indexed_data() == first.indexed_data()
    assert second.rgba_data() == first.rgba_data()


def test_from_image_picks_first_duplicate() -> None:
    subpalette = Subpalette([BLUE, RED, pack(250, 0, 0)], mode=Mode.SNES)
    source = Image(1, 1)
    source.set_pixel(pack(252, 1, 2), 0)

    assert Image.from_image(source, subpalette).indexed_data() == bytes([1])


def test_from_image_rejects_unknown_color() -> None:
    source = gradient(3, 3)
    source.blit([RED] * 9, 0, 0, 3)
    source.set_pixel(GREEN, 2, 1)

    with pytest.raises(ColorNotInPaletteError) as excinfo:
        Image.from_image(source, snes_subpalette())
    assert (excinfo.value.x, excinfo.value.y) == (2, 1)
    assert excinfo.value.color == GREEN


def test_from_image_requires_colors() -> None:
    with pytest.raises(EmptyPaletteError):
        Image.from_image(gradient(2, 2), Subpalette([], mode=Mode.SNES))


# Pixel access ---------------------------------------------------------------


def test_set_pixel_by_index_and_position() -> None:
    image = Image(3, 3)
    image.set_pixel(RED, 4)
    image.set_pixel(BLUE, 2, 2)

    assert image.pixel(1, 1) == RED
    assert image.rgba_color_at(8) == BLUE


def test_out_of_bounds_writes_are_ignored() -> None:
    image = gradient(10, 10)
    before = image.rgba_data()

    image.set_pixel(RED, 10, 0)
    image.set_pixel(RED, 0, 10)
    image.set_pixel(RED, -1, 0)
    image.set_pixel(RED, 100)
    image.set_pixel(RED, -1)

    assert image.rgba_data() == before


def test_blit_clips_to_image() -> None:
    image = Image(4, 4)
    image.blit([RED, GREEN, BLUE, BLACK], 3, 3, 2)

    assert image.pixel(3, 3) == RED
    assert image.rgba_data().count(TRANSPARENT_COLOR) == 15


def test_blit_rejects_zero_width() -> None:
    with pytest.raises(ValueError):
        Image(2, 2).blit([RED], 0, 0, 0)


def test_writes_mark_indexed_data_stale() -> None:
    image = quantized()
    indexed = image.indexed_data()

    image.set_pixel(BLUE, 0, 0)

    assert image.indexed_stale
    assert image.indexed_data() == indexed
    assert image.pixel(0, 0) == BLUE


def test_rgba_only_image_never_goes_stale() -> None:
    image = Image(2, 2)
    image.set_pixel(RED, 0)
    assert not image.indexed_stale


# Cropping -------------------------------------------------------------------


def test_crop_inside() -> None:
    source = gradient(10, 10)
    crop = source.crop(2, 3, 3, 2)

    assert (crop.width, crop.height) == (3, 2)
    assert crop.rgba_data() == [
        pack(2, 3, 1), pack(3, 3, 1), pack(4, 3, 1),
        pack(2, 4, 1), pack(3, 4, 1), pack(4, 4, 1),
    ]


def test_crop_over_the_edge_fills_transparent() -> None:
    source = gradient(10, 10)
    crop = source.crop(8, 8, 4, 4)

    assert (crop.width, crop.height) == (4, 4)
    for y in range(4):
        for x in range(4):
            expected = pack(8 + x, 8 + y, 1) if x < 2 and y < 2 else TRANSPARENT_COLOR
            assert crop.pixel(x, y) == expected
    assert crop.rgba_data().count(TRANSPARENT_COLOR) == 12


def test_crop_outside_is_transparent() -> None:
    crop = gradient(10, 10).crop(20, 20, 4, 4)
    assert crop.rgba_data() == [TRANSPARENT_COLOR] * 16
    assert not crop.has_indexed_data


def test_crop_at_the_right_edge_is_transparent() -> None:
    crop = gradient(10, 10).crop(10, 0, 2, 2)
    assert crop.rgba_data() == [TRANSPARENT_COLOR] * 4


def test_crop_copies_indexed_data_and_palette() -> None:
    source = quantized()

    crop = source.crop(1, 0, 2, 2)
    assert crop.indexed_data() == bytes([2, 0, 1, 0])
    assert crop.palette == source.palette
    assert_buffer_sizes(crop)

    outside = source.crop(5, 5, 2, 2)
    assert outside.indexed_data() == bytes(4)
    assert outside.palette == source.palette


def test_crop_does_not_share_buffers() -> None:
    source = gradient(4, 4)
    crop = source.crop(0, 0, 2, 2)
    crop.set_pixel(RED, 0, 0)
    assert source.pixel(0, 0) == pack(0, 0, 1)


def test_crop_rejects_negative_arguments() -> None:
    with pytest.raises(ValueError):
        gradient(4, 4).crop(-1, 0, 2, 2)


# Tiling ---------------------------------------------------------------------


def test_crops_walk_rows_then_columns() -> None:
    source = gradient(16, 16)
    crops = source.crops(8, 8)

    assert len(crops) == 4
    assert [c.pixel(0, 0) for c in crops] == [
        pack(0, 0, 1), pack(8, 0, 1), pack(0, 8, 1), pack(8, 8, 1),
    ]


def test_crops_step_rows_by_tile_height() -> None:
    source = gradient(16, 8)
    crops = source.crops(8, 4)

    assert len(crops) == 4
    assert crops[2].rgba_data() == source.crop(0, 4, 8, 4).rgba_data()


def test_crops_pad_partial_tiles() -> None:
    crops = gradient(10, 10).crops(8, 8)
    assert len(crops) == 4
    assert crops[3].rgba_data().count(TRANSPARENT_COLOR) == 60


def test_rgba_crops_match_crops() -> None:
    source = gradient(12, 8)
    assert source.rgba_crops(4, 4) == [c.rgba_data() for c in source.crops(4, 4)]


def test_indexed_crops() -> None:
    assert quantized().indexed_crops(1, 1) == [b"\x01", b"\x02", b"\x00", b"\x01"]


def test_indexed_crops_require_indexed_data() -> None:
    with pytest.raises(MissingIndexedDataError):
        gradient(4, 4).indexed_crops(2, 2)


def test_indexed_crops_warn_when_stale() -> None:
    image = quantized()
    image.blit([BLUE], 1, 1, 1)
    with pytest.warns(UserWarning):
        crops = image.indexed_crops(2, 2)
    assert crops == [bytes([1, 2, 0, 1])]


def test_crops_reject_bad_tile_size() -> None:
    with pytest.raises(ValueError):
        gradient(4, 4).crops(0, 4)
