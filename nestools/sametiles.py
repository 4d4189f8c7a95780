"""Report identical non-empty 8x8 tiles in a paletted image."""

from __future__ import annotations

import sys

from .images import IndexedImage, ToolError, load_indexed

Point = tuple[int, int]


def find_identical_tiles(image: IndexedImage) -> list[tuple[Point, Point]]:
    """Return pairs of tile origins whose contents are equal.

    All-zero tiles are ignored; pixels above 3 are an error.
    """
    tiles: list[tuple[bytes, int, int]] = []
    for row in range(image.height // 8):
        for col in range(image.width // 8):
            data = image.tile(col, row, 8)
            for offset, pix in enumerate(data):
                if pix > 3:
                    raise ToolError(
                        f"Palette has too many colors ({pix}) at "
                        f"{col * 8 + offset % 8},{row * 8 + offset // 8}"
                    )
            if any(data):
                tiles.append((data, col * 8, row * 8))
    tiles.sort(key=lambda tile: tile[0])
    return [
        ((first[1], first[2]), (second[1], second[2]))
        for first, second in zip(tiles, tiles[1:])
        if first[0] == second[0]
    ]


def main(argv=None) -> int:
    """Print the identical tiles of a paletted PNG."""
    args = sys.argv[1:] if argv is None else list(argv)
    if not args:
        print("Usage: sametiles file.png", file=sys.stderr)
        return 1
    try:
        pairs = find_identical_tiles(load_indexed(args[0], 8))
    except ToolError as exc:
        print(exc, file=sys.stderr)
        return 1
    for (x1, y1), (x2, y2) in pairs:
        print(f"Tiles at {x1},{y1} and {x2},{y2} are identical")
    return 0