"""Conversion of paletted PNG images into console tile formats."""

from __future__ import annotations

import sys
from collections.abc import Callable, Iterator
from pathlib import Path

from .images import IndexedImage, ToolError, load_indexed, load_rgb

CHR_TILE_LIMIT = 512
GBA_TILE_LIMIT = 1024


def _args(argv) -> list[str]:
    return sys.argv[1:] if argv is None else list(argv)


def _tile_count(image: IndexedImage) -> int:
    return (image.width // 8) * (image.height // 8)


def _tile_origins(image: IndexedImage) -> Iterator[tuple[int, int]]:
    for row in range(image.height // 8):
        for col in range(image.width // 8):
            yield col * 8, row * 8


def _checked(image: IndexedImage, x: int, y: int, limit: int) -> int:
    pix = image.pixel(x, y)
    if pix > limit:
        raise ToolError(f"Palette has too many colors ({pix}) at {x},{y}")
    return pix


def default_output_name(path, extension) -> str:
    """Replace the last three characters of path with the extension."""
    name = str(path)
    if len(name) < 3:
        raise ToolError(f"Can't derive an output name from '{name}'")
    return name[:-3] + extension


def encode_chr(image: IndexedImage) -> bytes:
    """Encode an image as 2-bit planar NES CHR tiles (16 bytes per tile)."""
    if _tile_count(image) > CHR_TILE_LIMIT:
        raise ToolError("Too large to fit in the 8kb CHR ROM")
    out = bytearray()
    for x0, y0 in _tile_origins(image):
        low = bytearray(8)
        high = bytearray(8)
        for dy in range(8):
            for dx in range(8):
                pix = _checked(image, x0 + dx, y0 + dy, 3)
                bit = 0x80 >> dx
                if pix & 1:
                    low[dy] |= bit
                if pix & 2:
                    high[dy] |= bit
        out += low
        out += high
    return bytes(out)


def encode_gba(image: IndexedImage) -> bytes:
    """Encode an image as 4-bit GBA tiles, left pixel in the low nibble."""
    if _tile_count(image) > GBA_TILE_LIMIT:
        raise ToolError("Too large to fit in a GBA page")
    out = bytearray()
    for x0, y0 in _tile_origins(image):
        for y in range(y0, y0 + 8):
            for x in range(x0, x0 + 8, 2):
                left = _checked(image, x, y, 15)
                right = _checked(image, x + 1, y, 15)
                out.append(left | (right << 4))
    return bytes(out)


def encode_rgb555(width, height, rgb) -> bytes:
    """Pack RGB pixels into big-endian 16-bit 5:5:5:1 values."""
    data = bytes(rgb)
    if len(data) != width * height * 3:
        raise ToolError(
            f"RGB data has {len(data)} bytes instead of {width * height * 3}"
        )
    out = bytearray()
    channels = iter(data)
    for red, green, blue in zip(channels, channels, channels):
        value = ((red & 0xF8) << 8) | ((green & 0xF8) << 3) | ((blue & 0xF8) >> 2)
        out += value.to_bytes(2, "big")
    return bytes(out)


def tilebit_source(image: IndexedImage) -> str:
    """Return a C array of one-bit-per-pixel tile rows.

    The bit accumulator is cleared per tile, not per row, so each row value
    also carries the bits of the rows above it.
    """
    lines = [f"const u8 tilebits[8 * {_tile_count(image)}] = {{"]
    for x0, y0 in _tile_origins(image):
        bits = 0
        entries = []
        for dy in range(8):
            for dx in range(8):
                if image.pixel(x0 + dx, y0 + dy):
                    bits |= 1 << dx
            entries.append(f"0x{bits:02x},")
        lines.append("\t" + " ".join(entries))
    lines.append("};")
    return "\n".join(lines) + "\n"


def _write(path, data: bytes) -> None:
    try:
        Path(path).write_bytes(data)
    except OSError as exc:
        raise ToolError(f"Can't open output file '{path}'") from exc


def _tile_main(
    argv,
    prog: str,
    extension: str,
    encoder: Callable[[IndexedImage], bytes],
    label: str,
) -> int:
    args = _args(argv)
    if not args:
        print(f"Usage: {prog} file.png [file.{extension}]", file=sys.stderr)
        return 1
    out_path = args[1] if len(args) > 1 else default_output_name(args[0], extension)
    try:
        image = load_indexed(args[0], 8)
        data = encoder(image)
        print(
            f"Converting {image.width}x{image.height} PNG to "
            f"{_tile_count(image)} {label} tiles."
        )
        _write(out_path, data)
    except ToolError as exc:
        print(exc, file=sys.stderr)
        return 1
    return 0


def chr_main(argv=None) -> int:
    """Convert a paletted PNG into an NES CHR file."""
    return _tile_main(argv, "png2chr", "chr", encode_chr, "CHR")


def gba_main(argv=None) -> int:
    """Convert a paletted PNG into GBA 4-bit tiles."""
    return _tile_main(argv, "png2gba", "gbt", encode_gba, "GBA")


def n64_main(argv=None) -> int:
    """Convert an RGB PNG into big-endian 16-bit pixels."""
    args = _args(argv)
    if not args:
        print("Usage: png2n64 in.png [out.bin]", file=sys.stderr)
        return 1
    try:
        width, height, rgb = load_rgb(args[0])
        out_path = args[1] if len(args) > 1 else default_output_name(args[0], "bin")
        _write(out_path, encode_rgb555(width, height, rgb))
    except ToolError as exc:
        print(exc, file=sys.stderr)
        return 1
    return 0


def tilebit_main(argv=None) -> int:
    """Print a paletted PNG as a C array of bit tiles."""
    args = _args(argv)
    if not args:
        print("Usage: png2tilebit file.png", file=sys.stderr)
        return 1
    try:
        image = load_indexed(args[0], 8)
    except ToolError as exc:
        print(exc, file=sys.stderr)
        return 1
    print(
        f"Converting {image.width}x{image.height} PNG to "
        f"{_tile_count(image)} bit tile arrays.",
        file=sys.stderr,
    )
    sys.stdout.write(tilebit_source(image))
    return 0