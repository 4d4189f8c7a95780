"""Text scanning and data model for FamiTracker text exports."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field

MAX_SUB_SONGS = (256 - 5) // 14
MAX_ROWS = 256
MAX_INSTRUMENTS = 64
MAX_ENVELOPES = 128
MAX_ENVELOPE_LEN = 256
DPCM_CAPACITY = 16384
CHANNEL_COUNT = 5


class ParseError(Exception):
    """Raised when the input text cannot be understood."""


def hex_digit(char) -> int:
    """Return the value of a hexadecimal digit, or -1."""
    if char and "0" <= char <= "9":
        return ord(char) - ord("0")
    if char and "A" <= char <= "F":
        return ord(char) - ord("A") + 10
    if char and "a" <= char <= "f":
        return ord(char) - ord("a") + 10
    return -1


class TextSource:
    """Normalised export text with offset-based scanning helpers.

    Tabs become spaces, carriage returns are dropped and a final newline is
    appended.
    """

    def __init__(self, text):
        if isinstance(text, (bytes, bytearray)):
            text = bytes(text).decode("latin-1")
        self.text = text.replace("\r", "").replace("\t", " ") + "\n"
        self.size = len(self.text)

    def _ch(self, off: int) -> str:
        return self.text[off] if 0 <= off < self.size else "\0"

    def skip_line(self, off: int) -> int:
        """Return the offset just past the next newline."""
        end = self.text.find("\n", max(off, 0))
        return self.size if end < 0 else end + 1

    def skip_spaces(self, off: int) -> int:
        while off < self.size and self._ch(off) == " ":
            off += 1
        return off

    def skip_dec_and_spaces(self, off: int) -> int:
        off = self.skip_spaces(off)
        while off < self.size and (self._ch(off).isdigit() or self._ch(off) == "-"):
            off += 1
        return self.skip_spaces(off)

    def skip_hex_and_spaces(self, off: int) -> int:
        off = self.skip_spaces(off)
        while off < self.size and hex_digit(self._ch(off)) >= 0:
            off += 1
        return self.skip_spaces(off)

    def find_tag(self, tag: str, off: int) -> int:
        """Find tag and return the offset after it and following spaces, or -1."""
        pos = self.text.find(tag, max(off, 0), self.size - 1)
        return -1 if pos < 0 else self.skip_spaces(pos + len(tag))

    def find_tag_in_subsong(self, tag: str, off: int) -> int:
        """Like find_tag, but give up at the next TRACK line."""
        limit = self.size - len(tag)
        start = max(off, 0)
        pos = self.text.find(tag, start, self.size - 1)
        track = self.text.find("TRACK", start)
        if 0 <= track < limit and (pos < 0 or track <= pos):
            return -1
        return -1 if pos < 0 else self.skip_spaces(pos + len(tag))

    def find_tag_in_section(self, tag: str, off: int) -> int:
        """Like find_tag, but give up at the next '[' section start."""
        limit = self.size - len(tag)
        off = max(off, 0)
        while off < limit:
            if self.text[off] == "[":
                break
            if self.text.startswith(tag, off):
                return self.skip_spaces(off + len(tag))
            off += 1
        return -1

    def find_tag_start(self, tag: str, off: int) -> int:
        """Return the offset where tag starts, or -1."""
        return self.text.find(tag, max(off, 0), self.size - 1)

    def skip_tag(self, off: int) -> int:
        while off < self.size and ord(self._ch(off)) > 0x20:
            off += 1
        return self.skip_spaces(off)

    def read_dec(self, off: int) -> int:
        sign = 1
        if self._ch(off) == "-":
            sign = -1
            off += 1
        num = 0
        while off < self.size:
            char = self.text[off]
            off += 1
            if not "0" <= char <= "9":
                break
            num = num * 10 + ord(char) - ord("0")
        return num * sign

    def read_hex(self, off: int) -> int:
        num = 0
        while off < self.size:
            digit = hex_digit(self.text[off])
            off += 1
            if digit < 0:
                break
            num = num * 16 + digit
        return num

    def error(self, off: int, message: str) -> ParseError:
        """Build a ParseError locating off as row:column."""
        if off < 0:
            return ParseError(f"Parsing error: {message}")
        row = 1 + self.text.count("\n", 0, off)
        line_start = self.text.rfind("\n", 0, off) + 1
        col = off - line_start + (1 if row == 1 else 0)
        return ParseError(f"Parsing error ({row}:{col}): {message}")


@dataclass
class Channel:
    """One channel cell: note 0 empty, 1 rest, 2+ a note from C-1."""

    note: int = 0
    instrument: int = 0
    effect: str = ""
    parameter: int = 0


@dataclass
class Row:
    channels: list[Channel] = field(
        default_factory=lambda: [Channel() for _ in range(CHANNEL_COUNT)]
    )
    speed: int = 0


@dataclass
class Pattern:
    rows: defaultdict = field(default_factory=lambda: defaultdict(Row))
    length: int = 0


@dataclass
class Song:
    speed: int = 0
    tempo: int = 0
    pattern_length: int = 0
    order_length: int = 0
    order_loop: int = 0
    patterns: defaultdict = field(default_factory=lambda: defaultdict(Pattern))


@dataclass
class Instrument:
    volume: int = 0
    pitch: int = 0
    arpeggio: int = 0
    duty: int = 0
    id: int = 0
    in_use: bool = False


@dataclass
class Envelope:
    values: list[int] = field(default_factory=lambda: [0] * MAX_ENVELOPE_LEN)
    length: int = 0
    loop: int = 0
    out_id: int = 0
    in_use: bool = False


@dataclass
class Sample:
    off: int = 0
    size: int = 0
    pitch: int = 0
    loop: int = 0
    id: int = 0


def _envelopes() -> list[Envelope]:
    return [Envelope() for _ in range(MAX_ENVELOPES)]


@dataclass
class ModuleData:
    """Everything parsed from one export: instruments, envelopes, samples, song."""

    channels: int = CHANNEL_COUNT
    song: Song = field(default_factory=Song)
    instruments: list[Instrument] = field(
        default_factory=lambda: [Instrument() for _ in range(MAX_INSTRUMENTS)]
    )
    volume: list[Envelope] = field(default_factory=_envelopes)
    arpeggio: list[Envelope] = field(default_factory=_envelopes)
    pitch: list[Envelope] = field(default_factory=_envelopes)
    duty: list[Envelope] = field(default_factory=_envelopes)
    samples: list[Sample] = field(
        default_factory=lambda: [Sample() for _ in range(MAX_INSTRUMENTS)]
    )
    dpcm: bytearray = field(default_factory=lambda: bytearray(DPCM_CAPACITY))
    dpcm_size: int = 0
    subsong_count: int = 0