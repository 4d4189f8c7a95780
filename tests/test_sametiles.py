import pytest

from nestools.images import IndexedImage, ToolError, save_indexed
from nestools.sametiles import find_identical_tiles, main


def image_from_tiles(tiles):
    """Build an image one tile high from a list of 64-byte tiles."""
    width = 8 * len(tiles)
    pixels = bytearray(width * 8)
    for index, tile in enumerate(tiles):
        for y in range(8):
            start = y * width + index * 8
            pixels[start:start + 8] = tile[y * 8:y * 8 + 8]
    return IndexedImage(width, 8, bytes(pixels))


PATTERN = bytes((i % 3) for i in range(64))
OTHER = bytes(((i + 1) % 4) for i in range(64))


def test_identical_pair():
    image = image_from_tiles([PATTERN, PATTERN])
    assert find_identical_tiles(image) == [((0, 0), (8, 0))]


def test_zero_tiles_ignored():
    image = image_from_tiles([bytes(64), bytes(64), OTHER])
    assert find_identical_tiles(image) == []


def test_distinct_tiles():
    assert find_identical_tiles(image_from_tiles([PATTERN, OTHER])) == []


def test_three_identical():
    pairs = find_identical_tiles(image_from_tiles([PATTERN, OTHER, PATTERN, PATTERN]))
    assert len(pairs) == 2
    points = {p for pair in pairs for p in pair}
    assert points == {(0, 0), (16, 0), (24, 0)}


def test_bad_pixel():
    tile = bytearray(64)
    tile[3 * 8 + 1] = 4
    with pytest.raises(ToolError, match=r"\(4\) at 9,3"):
        find_identical_tiles(image_from_tiles([bytes(64), bytes(tile)]))


def test_main_prints(tmp_path, capsys):
    image = image_from_tiles([PATTERN, PATTERN])
    path = tmp_path / "t.png"
    save_indexed(path, image.width, image.height, image.pixels,
                 [(0, 0, 0), (1, 1, 1), (2, 2, 2), (3, 3, 3)])
    assert main([str(path)]) == 0
    assert capsys.readouterr().out == "Tiles at 0,0 and 8,0 are identical\n"


def test_main_usage():
    assert main([]) == 1