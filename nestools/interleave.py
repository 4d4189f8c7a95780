"""Interleave a Mode 7 tile map and character data into one image."""

from __future__ import annotations

import sys
from pathlib import Path

from .images import ToolError

BLOCK_SIZE = 16384


def _pad(data: bytes, name: str) -> bytes:
    if len(data) > BLOCK_SIZE:
        raise ToolError(f"{name} too large ({len(data)})")
    return bytes(data).ljust(BLOCK_SIZE, b"\0")


def read_block(path) -> bytes:
    """Read a file of at most BLOCK_SIZE bytes, padded with zeros."""
    try:
        data = Path(path).read_bytes()
    except OSError as exc:
        raise ToolError(f"Can't open {path}") from exc
    if len(data) > BLOCK_SIZE:
        raise ToolError(f"{path} too large ({len(data)})")
    if not data:
        raise ToolError("Read error")
    return _pad(data, str(path))


def interleave(map_data, chr_data) -> bytes:
    """Alternate map and character bytes, map byte first."""
    map_block = _pad(bytes(map_data), "map")
    chr_block = _pad(bytes(chr_data), "chr")
    out = bytearray(2 * BLOCK_SIZE)
    out[0::2] = map_block
    out[1::2] = chr_block
    return bytes(out)


def main(argv=None) -> int:
    """Combine map and chr files into one interleaved file."""
    args = sys.argv[1:] if argv is None else list(argv)
    if len(args) != 3:
        print("Usage: mode7interleave map chr combined", file=sys.stderr)
        return 1
    try:
        combined = interleave(read_block(args[0]), read_block(args[1]))
        try:
            Path(args[2]).write_bytes(combined)
        except OSError as exc:
            raise ToolError(f"Can't open {args[2]}") from exc
    except ToolError as exc:
        print(exc, file=sys.stderr)
        return 1
    return 0