"""Convert NESASM sound driver sources into CA65 and ASM6 syntax."""

from __future__ import annotations

import sys
from enum import Enum
from pathlib import Path

from .images import ToolError


class Dialect(Enum):
    """Target assembler syntax."""

    CA65 = "ca65"
    ASM6 = "asm6"


_CA65_DEFINES = (
    (b"FT_DPCM_ENABLE", b".define FT_DPCM_ENABLE  1"),
    (b"FT_SFX_ENABLE", b".define FT_SFX_ENABLE   1"),
    (b"FT_THREAD", b".define FT_THREAD       1"),
    (b"FT_PAL_SUPPORT", b".define FT_PAL_SUPPORT  1"),
    (b"FT_NTSC_SUPPORT", b".define FT_NTSC_SUPPORT 1"),
    (b"FT_PITCH_FIX", b"FT_PITCH_FIX = (FT_PAL_SUPPORT|FT_NTSC_SUPPORT)"),
)

_SEMICOLON = ord(";")
_SPACE = ord(" ")
_DOT = ord(".")
_NEWLINE = 0x0A


class _Converter:
    """A single pass over the source text."""

    def __init__(self, src: bytes, dialect: Dialect):
        self.src = src
        self.dialect = dialect
        self.pos = 0
        self.out = bytearray()

    def at(self, index: int) -> int:
        return self.src[index] if 0 <= index < len(self.src) else 0

    def starts(self, prefix: bytes) -> bool:
        return self.src.startswith(prefix, self.pos)

    def copy_one(self) -> None:
        self.out.append(self.src[self.pos])
        self.pos += 1

    def line_has_equ(self) -> bool:
        # The scan stops at a carriage return or a comment only.
        for scan in range(self.pos, len(self.src)):
            if self.src.startswith((b"equ", b"EQU", b"="), scan):
                return True
            if self.src[scan] in (0x0D, _SEMICOLON):
                return False
        return False

    def line_start(self) -> bool:
        """Handle the start of a new line; return True to restart the loop."""
        if self.dialect is Dialect.CA65:
            for name, replacement in _CA65_DEFINES:
                if self.starts(name):
                    self.out += replacement
                    self.pos += len(name)
                    return True
        first = self.src[self.pos]
        if first < 0x20 or first in (_SPACE, _SEMICOLON):
            return False
        if first == _DOT:
            self.out += b"@"
            self.pos += 1
        if self.dialect is Dialect.CA65 and not self.line_has_equ():
            while self.pos < len(self.src) and self.src[self.pos] > 0x20:
                self.copy_one()
            if self.at(self.pos - 1) != ord(":"):
                self.out += b":"
        return False

    def conditional(self, keyword: bytes, opening: bytes) -> None:
        if not self.starts(keyword):
            return
        self.out += opening
        self.pos += len(keyword)
        while self.pos < len(self.src) and self.src[self.pos] <= 0x20:
            self.pos += 1
        while self.pos < len(self.src) and self.src[self.pos] > 0x20:
            self.copy_one()
        self.out += b")"

    def run(self) -> bytes:
        src = self.src
        ca65 = self.dialect is Dialect.CA65
        while self.pos < len(src):
            if src[self.pos] == _SEMICOLON:
                while self.pos < len(src) and src[self.pos] != _NEWLINE:
                    self.copy_one()
                continue
            if src[self.pos] == _NEWLINE:
                self.copy_one()
                if self.pos >= len(src):
                    break
                if self.line_start():
                    continue
                if self.pos >= len(src):
                    break

            if self.at(self.pos) == _DOT and self.at(self.pos - 1) == _SPACE:
                self.out += b"@"
                self.pos += 1
            if self.starts(b"LOW"):
                self.out += b".lobyte" if ca65 else b"<"
                self.pos += 3
            if self.starts(b"HIGH"):
                self.out += b".hibyte" if ca65 else b">"
                self.pos += 4
            if self.at(self.pos) == ord("["):
                self.out += b"("
                self.pos += 1
            if self.at(self.pos) == ord("]"):
                self.out += b")"
                self.pos += 1
            if ca65:
                self.conditional(b".ifndef", b".if(!")
                self.conditional(b".ifdef", b".if(")
                if self.starts(b".db"):
                    self.pos += 3
                    self.out += b".byte"
                if self.starts(b".dw"):
                    self.pos += 3
                    self.out += b".word"
            else:
                for directive in (b".byte", b".word", b".db", b".dw"):
                    if self.starts(directive):
                        self.pos += 1
            if self.pos >= len(src):
                break
            self.copy_one()
        return bytes(self.out)


def convert(text, dialect):
    """Convert source text to the given dialect; str in gives str out."""
    if isinstance(text, str):
        return _Converter(text.encode("latin-1"), dialect).run().decode("latin-1")
    return _Converter(bytes(text), dialect).run()


def output_name(path, dialect) -> str:
    """Name of the converted file: name.s for CA65, name_asm6.asm for ASM6."""
    name = str(path)
    if len(name) < 4:
        raise ToolError(f"Can't derive an output name from '{name}'")
    if dialect is Dialect.CA65:
        return name[:-3] + "s"
    return name[:-4] + "_" + name[-3:] + "6.asm"


def main(argv=None) -> int:
    """Write CA65 and ASM6 versions of a NESASM source file."""
    args = sys.argv[1:] if argv is None else list(argv)
    if not args:
        print("NESASM source code converter for FamiTone2")
        print("Usage: nesasmc filename.asm")
        return 0
    path = args[0]
    try:
        text = Path(path).read_bytes()
    except OSError:
        print(f"Error: Can't open file {path}")
        return 1
    status = 0
    for dialect in (Dialect.CA65, Dialect.ASM6):
        try:
            Path(output_name(path, dialect)).write_bytes(convert(text, dialect))
        except (OSError, ToolError):
            print("Error: Can't create file")
            status = 1
    return status