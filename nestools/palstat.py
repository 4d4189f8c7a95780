"""Statistics on the palettes used by a set of paletted PNG files."""

from __future__ import annotations

import os
import sys

from .images import Color, ToolError, _open_png

MAX_COLORS = 16


def read_palette(path) -> tuple[Color, ...]:
    """Return the palette of a paletted PNG with at most 16 colors."""
    img = _open_png(path)
    if img.mode != "P":
        raise ToolError(f"{path} is not paletted")
    flat = img.getpalette() or []
    count = len(flat) // 3
    if count > MAX_COLORS:
        raise ToolError(f"{path} has over {MAX_COLORS} colors ({count})")
    return tuple((flat[i], flat[i + 1], flat[i + 2]) for i in range(0, count * 3, 3))


def group_palettes(paths) -> tuple[list[tuple[Color, ...]], list[int]]:
    """Return the distinct palettes in first-seen order and each file's index."""
    palettes: list[tuple[Color, ...]] = []
    assignment: list[int] = []
    for path in paths:
        palette = read_palette(path)
        if palette in palettes:
            assignment.append(palettes.index(palette))
        else:
            palettes.append(palette)
            assignment.append(len(palettes) - 1)
    return palettes, assignment


def format_report(paths, show_files) -> str:
    """Describe each distinct palette and how many files use it."""
    paths = [str(path) for path in paths]
    palettes, assignment = group_palettes(paths)
    total = len(paths)
    lines = [f"{len(palettes)} palettes total.", ""]
    for index, palette in enumerate(palettes):
        members = [path for path, pal in zip(paths, assignment) if pal == index]
        share = len(members) * 100 / total
        lines.append(
            f"Pal {index}: {len(palette)} colors, {share:.2f}%, {len(members)}/{total}"
        )
        lines.extend(f"\t{r} {g} {b}" for r, g, b in palette)
        if show_files:
            lines.append("")
            lines.extend(f"\t{path}" for path in members)
        lines.append("")
    return "\n".join(lines) + "\n"


def main(argv=None) -> int:
    """Print palette statistics; set the files variable to list file names."""
    args = sys.argv[1:] if argv is None else list(argv)
    if not args:
        print(
            "Usage: palstat file*png\n\n"
            "This is useful for checking how many palettes are used,\n"
            "and how they are distributed.\n\n"
            "files=1 to show file names.",
            file=sys.stderr,
        )
        return 1
    try:
        report = format_report(args, os.environ.get("files") is not None)
    except ToolError as exc:
        print(exc, file=sys.stderr)
        return 1
    sys.stdout.write(report)
    return 0