"""Find the tile numbers that make up a sprite image within a tile map."""

from __future__ import annotations

import os
import sys

from .images import IndexedImage, ToolError, load_indexed

Entry = "str | None"


def flip_horizontal(tile, side=8) -> bytes:
    """Mirror a square tile left to right."""
    data = bytes(tile)
    return b"".join(data[r:r + side][::-1] for r in range(0, side * side, side))


def flip_vertical(tile, side=8) -> bytes:
    """Mirror a square tile top to bottom."""
    data = bytes(tile)
    rows = [data[r:r + side] for r in range(0, side * side, side)]
    return b"".join(reversed(rows))


def extract_tiles(image: IndexedImage, side=8) -> list[bytes]:
    """Return the image's tiles in row-major order."""
    return [
        image.tile(col, row, side)
        for row in range(image.height // side)
        for col in range(image.width // side)
    ]


def _tile_number(index: int, side: int, nones: bool) -> int:
    if side == 8:
        return index - 256 if index >= 256 and not nones else index
    # Express the tile position in 8-pixel tiles of a 128-pixel-wide sheet.
    scale = side // 8
    per_row = 128 // side
    return (index // per_row) * scale * 16 + (index % per_row) * scale


def locate_tiles(tilemap, sprite, side=8, flips=False, nones=False):
    """Return, row by row, the tile-map entry for each sprite tile.

    An entry is a string such as "0x05" or "0x05|FLIPH", or None when the
    tile is not in the tile map.
    """
    lookup: dict[bytes, str] = {}
    for index, tile in enumerate(extract_tiles(tilemap, side)):
        number = f"0x{_tile_number(index, side, nones):02x}"
        candidates = [(tile, "")]
        if flips:
            horizontal = flip_horizontal(tile, side)
            candidates += [
                (flip_vertical(tile, side), "|FLIPV"),
                (horizontal, "|FLIPH"),
                (flip_vertical(horizontal, side), "|FLIPH|FLIPV"),
            ]
        for data, suffix in candidates:
            lookup.setdefault(data, number + suffix)
    return [
        [lookup.get(sprite.tile(col, row, side)) for col in range(sprite.width // side)]
        for row in range(sprite.height // side)
    ]


def _format(rows, flips: bool) -> str:
    separator = ", " if flips else " "
    ending = ",\n" if flips else "\n"
    parts: list[str] = []
    for row in rows:
        for position, entry in enumerate(row):
            if entry is None:
                parts.append("NONE ")
                continue
            parts.append(entry)
            if position < len(row) - 1:
                parts.append(separator)
        parts.append(ending)
    return "".join(parts)


def _run(argv, prog: str, side: int, allow_nones: bool) -> int:
    args = sys.argv[1:] if argv is None else list(argv)
    if len(args) < 2:
        print(f"Usage: {prog} tilemap.png sprite.png", file=sys.stderr)
        return 1
    flips = os.environ.get("flips") is not None
    nones = allow_nones and os.environ.get("nones") is not None
    try:
        tilemap = load_indexed(args[0], side)
        sprite = load_indexed(args[1], side)
    except ToolError as exc:
        print(exc, file=sys.stderr)
        return 1
    rows = locate_tiles(tilemap, sprite, side, flips, nones)
    sys.stdout.write(_format(rows, flips))
    return 1 if any(entry is None for row in rows for entry in row) else 0


def main(argv=None) -> int:
    """Print the 8x8 tile numbers of a sprite; env flips and nones adjust it."""
    return _run(argv, "tilecoords", 8, True)


def main16(argv=None) -> int:
    """Print the 16x16 tile positions of a sprite; env flips adjusts it."""
    return _run(argv, "tilecoords16", 16, False)