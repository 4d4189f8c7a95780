"""Reading and writing the PNG images that the conversion tools work on."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from PIL import Image

Color = tuple[int, int, int]


class ToolError(Exception):
    """Raised when a tool cannot finish; the message is meant for the user."""


@dataclass(frozen=True)
class IndexedImage:
    """A paletted image with one byte per pixel, stored row by row."""

    width: int
    height: int
    pixels: bytes
    palette: tuple[Color, ...] = ()

    def pixel(self, x: int, y: int) -> int:
        """Return the palette index at column x, row y."""
        return self.pixels[y * self.width + x]

    def tile(self, col: int, row: int, side: int = 8) -> bytes:
        """Return the square tile at tile column/row as side*side bytes."""
        x0 = col * side
        y0 = row * side
        return b"".join(
            self.pixels[(y0 + dy) * self.width + x0:(y0 + dy) * self.width + x0 + side]
            for dy in range(side)
        )


def _open_png(path) -> Image.Image:
    """Open and fully load a PNG file."""
    try:
        handle = open(path, "rb")
    except OSError as exc:
        raise ToolError("Can't open file") from exc
    with handle:
        try:
            img = Image.open(handle)
            img.load()
        except (OSError, SyntaxError, ValueError) as exc:
            raise ToolError("PNG error") from exc
    if img.format != "PNG":
        raise ToolError("PNG error")
    return img


def _palette_of(img: Image.Image) -> tuple[Color, ...]:
    flat = img.getpalette() or []
    return tuple(
        (flat[i], flat[i + 1], flat[i + 2]) for i in range(0, len(flat) - len(flat) % 3, 3)
    )


def load_indexed(path, side=8) -> IndexedImage:
    """Load a paletted PNG; with side set, its sizes must be multiples of it."""
    img = _open_png(path)
    width, height = img.size
    if side and (width % side or height % side):
        raise ToolError(f"Image is not divisible by {side}")
    if img.mode != "P":
        raise ToolError(f"Input must be a paletted PNG, got {img.mode}")
    return IndexedImage(width, height, img.tobytes(), _palette_of(img))


def load_rgb(path) -> tuple[int, int, bytes]:
    """Load a PNG as 8-bit RGB; returns width, height and packed RGB bytes."""
    img = _open_png(path)
    if img.mode not in ("RGB", "RGBA", "P"):
        raise ToolError(f"Input must be a RGB PNG, got {img.mode}")
    rgb = img.convert("RGB")
    width, height = rgb.size
    return width, height, rgb.tobytes()


def save_indexed(path, width, height, pixels, palette) -> None:
    """Write a paletted PNG; the bit depth follows the palette size."""
    data = bytes(pixels)
    if len(data) != width * height:
        raise ToolError(
            f"Pixel data has {len(data)} bytes instead of {width * height}"
        )
    img = Image.frombytes("P", (width, height), data)
    if palette:
        img.putpalette([channel for color in palette for channel in color])
    try:
        img.save(Path(path), format="PNG")
    except OSError as exc:
        raise ToolError(f"Can't write {path}") from exc