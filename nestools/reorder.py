"""Remap the palette indices of paletted PNG files in place."""

from __future__ import annotations

import argparse
import re
import sys

from .images import Color, IndexedImage, ToolError, load_indexed, save_indexed

PALETTE_SIZE = 16
_BLACK: Color = (0, 0, 0)


def _atoi(text: str) -> int:
    match = re.match(r"\s*([+-]?\d+)", text)
    return int(match.group(1)) if match else 0


def _padded(palette) -> list[Color]:
    colors = [tuple(color) for color in palette[:PALETTE_SIZE]]
    return colors + [_BLACK] * (PALETTE_SIZE - len(colors))


def read_source_palette(path) -> tuple[Color, ...]:
    """Return at most the first 16 colors of a paletted PNG."""
    return load_indexed(path, 0).palette[:PALETTE_SIZE]


def remap_table_from_source(in_palette, source_palette) -> list[int]:
    """Map each input color to its position in the source palette, or 0."""
    source = [tuple(color) for color in source_palette[:PALETTE_SIZE]]
    table = [0] * PALETTE_SIZE
    for index, color in enumerate(in_palette[:PALETTE_SIZE]):
        color = tuple(color)
        if color in source:
            table[index] = source.index(color)
    return table


def remap_table_from_offset(count, offset) -> list[int]:
    """Keep index 0 and shift indices 1..count-1 up by offset (modulo 256)."""
    table = [0] * PALETTE_SIZE
    for index in range(1, min(count, PALETTE_SIZE)):
        table[index] = (index + offset) & 0xFF
    return table


def remap_file(path, source_palette=None, offset=0) -> IndexedImage:
    """Rewrite a paletted PNG with remapped indices and a 16-color palette.

    A non-zero offset shifts indices; otherwise colors are matched against
    source_palette.
    """
    image = load_indexed(path, 0)
    count = len(image.palette)
    if count > PALETTE_SIZE and not offset:
        raise ToolError(f"Image {path} has {count} colors, not able to remap")
    limit = min(count, PALETTE_SIZE)
    in_palette = _padded(image.palette)

    if offset:
        table = remap_table_from_offset(limit, offset)
        out_palette = [_BLACK] * PALETTE_SIZE
        out_palette[0] = in_palette[0]
        for index in range(1, limit):
            if table[index] < PALETTE_SIZE:
                out_palette[table[index]] = in_palette[index]
    else:
        source = tuple(source_palette or ())
        table = remap_table_from_source(in_palette[:limit], source)
        out_palette = _padded(source)

    bad = next((pix for pix in image.pixels if pix > limit), None)
    if bad is not None:
        raise ToolError(f"{path} has too many colors ({bad})")

    lookup = bytes(table[pix] if pix < PALETTE_SIZE else 0 for pix in range(256))
    pixels = image.pixels.translate(lookup)
    save_indexed(path, image.width, image.height, pixels, out_palette)
    return IndexedImage(image.width, image.height, pixels, tuple(out_palette))


def main(argv=None) -> int:
    """Remap PNG files to a source palette or by an index offset."""
    args = sys.argv[1:] if argv is None else list(argv)
    if not args:
        print(
            "Usage: pngreorder [--source src.png / --offset 4] dst.png ...",
            file=sys.stderr,
        )
        return 1
    parser = argparse.ArgumentParser(prog="pngreorder")
    parser.add_argument("-s", "--source")
    parser.add_argument("-o", "--offset", default="0")
    parser.add_argument("files", nargs="*")
    opts = parser.parse_intermixed_args(args)
    offset = _atoi(opts.offset) & 0xFF

    if opts.source is not None and offset:
        print("Can't use both offset and source at the same time", file=sys.stderr)
        return 1
    try:
        if opts.source is not None:
            source_image = load_indexed(opts.source, 0)
            print(f"Source: {len(source_image.palette)} colors")
            palette = source_image.palette[:PALETTE_SIZE]
            for name in opts.files:
                remap_file(name, palette, 0)
                print(f"{name} successfully converted.")
        elif offset:
            for name in opts.files:
                remap_file(name, None, offset)
                print(f"{name} successfully converted.")
    except ToolError as exc:
        print(exc, file=sys.stderr)
        return 1
    return 0