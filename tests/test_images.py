import pytest
from PIL import Image

from nestools.images import (
    IndexedImage,
    ToolError,
    load_indexed,
    load_rgb,
    save_indexed,
)

PALETTE = [(0, 0, 0), (255, 0, 0), (0, 255, 0), (0, 0, 255)]


def test_round_trip_pixels_and_palette(tmp_path):
    path = tmp_path / "img.png"
    pixels = bytes((x + y) % 4 for y in range(8) for x in range(16))
    save_indexed(path, 16, 8, pixels, PALETTE)
    image = load_indexed(path, 8)
    assert image.width == 16
    assert image.height == 8
    assert image.pixels == pixels
    assert list(image.palette) == PALETTE


def test_pixel_reads_row_major():
    image = IndexedImage(3, 2, bytes([0, 1, 2, 3, 0, 1]))
    assert image.pixel(1, 0) == 1
    assert image.pixel(0, 1) == 3
    assert image.pixel(2, 1) == 1


def test_tile_extracts_square():
    pixels = bytes(0 if x < 8 else 1 for y in range(8) for x in range(16))
    image = IndexedImage(16, 8, pixels)
    assert image.tile(0, 0, 8) == bytes(64)
    assert image.tile(1, 0, 8) == bytes([1]) * 64


def test_not_divisible(tmp_path):
    path = tmp_path / "odd.png"
    save_indexed(path, 10, 8, bytes(80), PALETTE)
    with pytest.raises(ToolError, match="not divisible by 8"):
        load_indexed(path, 8)
    assert load_indexed(path, None).width == 10


def test_not_paletted(tmp_path):
    path = tmp_path / "rgb.png"
    Image.new("RGB", (8, 8)).save(path)
    with pytest.raises(ToolError, match="paletted"):
        load_indexed(path, 8)


def test_missing_file(tmp_path):
    with pytest.raises(ToolError, match="Can't open"):
        load_indexed(tmp_path / "missing.png", 8)


def test_not_a_png(tmp_path):
    path = tmp_path / "text.png"
    path.write_text("hello")
    with pytest.raises(ToolError, match="PNG error"):
        load_indexed(path, 8)


def test_load_rgb_round_trip(tmp_path):
    path = tmp_path / "rgb.png"
    data = bytes(range(2 * 3 * 3))
    Image.frombytes("RGB", (3, 2), data).save(path)
    assert load_rgb(path) == (3, 2, data)


def test_load_rgb_expands_palette(tmp_path):
    path = tmp_path / "pal.png"
    save_indexed(path, 2, 1, bytes([1, 3]), PALETTE)
    width, height, data = load_rgb(path)
    assert (width, height) == (2, 1)
    assert data == bytes(PALETTE[1] + PALETTE[3])


def test_load_rgb_rejects_grayscale(tmp_path):
    path = tmp_path / "gray.png"
    Image.new("L", (4, 4)).save(path)
    with pytest.raises(ToolError, match="RGB"):
        load_rgb(path)


def test_save_wrong_length(tmp_path):
    with pytest.raises(ToolError):
        save_indexed(tmp_path / "x.png", 4, 4, bytes(3), PALETTE)