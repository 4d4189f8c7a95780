"""Conversion of parsed FamiTracker data into FamiTone2 assembly source."""

from __future__ import annotations

import copy
from dataclasses import dataclass
from enum import Enum
from typing import TextIO

from .famiparse import parse_song
from .famitext import (
    MAX_ENVELOPES,
    MAX_INSTRUMENTS,
    MAX_SUB_SONGS,
    Envelope,
    ModuleData,
    ParseError,
    Song,
    TextSource,
)

MIN_PATTERN_LEN = 6
MAX_REPEAT_CNT = 60
MAX_PATTERNS = 128 * MAX_SUB_SONGS
MAX_ORDER = 128 * MAX_SUB_SONGS
MAX_PACKED_PATTERNS = 5 * MAX_ORDER * MAX_SUB_SONGS
MAX_PACKED_SIZE = 256 * 4
DEFAULT_ENVELOPE = bytes((0xC0, 0x00, 0x00))


class AsmSyntax(Enum):
    """Assembler flavour of the generated source: name, byte, word, local label."""

    NESASM = ("NESASM", ".db", ".dw", ".")
    CA65 = ("CA65", ".byte", ".word", "@")
    ASM6 = ("Asm6", "db", "dw", "@")

    @property
    def label(self) -> str:
        return self.value[0]

    @property
    def db(self) -> str:
        return self.value[1]

    @property
    def dw(self) -> str:
        return self.value[2]

    @property
    def local(self) -> str:
        return self.value[3]

    @property
    def extension(self) -> str:
        return ".s" if self is AsmSyntax.CA65 else ".asm"


def _fatal(message: str) -> ParseError:
    return ParseError(f"Parsing error (1:1): {message}")


def _hex(value: int) -> str:
    return f"{value & 0xFFFFFFFF:02x}"


def _div(a: int, b: int) -> int:
    quotient = abs(a) // abs(b)
    return quotient if (a >= 0) == (b >= 0) else -quotient


def _lookup(table: list[Envelope], index: int) -> Envelope | None:
    return table[index] if 0 <= index < len(table) else None


def cleanup_instrument_numbers(song: Song, channels: int) -> None:
    """Drop repeated instrument numbers and repeated speed values."""
    insloop = [-1] * 5
    speed = 0
    for chn in range(channels):
        ins = -1
        speed = 0
        for pos in range(song.order_length):
            pattern = song.patterns[pos]
            for index in range(pattern.length):
                row = pattern.rows[index]
                cell = row.channels[chn]
                if chn < 4:
                    if cell.note < 2 and cell.instrument >= 0:
                        cell.instrument = -1
                    if cell.instrument >= 0:
                        if ins != cell.instrument:
                            ins = cell.instrument
                        else:
                            cell.instrument = -1
                else:
                    cell.instrument = -1
                if chn == 0 and row.speed:
                    if speed == row.speed:
                        row.speed = 0
                    else:
                        speed = row.speed
        if ins < 0:
            ins = 0
        if chn < 4:
            insloop[chn] = ins

    # The first note after the loop point must carry its instrument.
    for chn in range(4):
        if insloop[chn] < 0:
            continue
        done = False
        for pos in range(song.order_loop, song.order_length):
            pattern = song.patterns[pos]
            for index in range(pattern.length):
                cell = pattern.rows[index].channels[chn]
                if cell.note > 1:
                    if cell.instrument < 0:
                        cell.instrument = insloop[chn]
                    done = True
                    break
            if done:
                break

    loop_row = song.patterns[song.order_loop].rows[0]
    if not loop_row.speed:
        loop_row.speed = speed


def cleanup_envelopes(module: ModuleData) -> None:
    """Trim trailing zero pairs of non-looping volume envelopes; keep one duty step."""
    for volume, duty in zip(module.volume, module.duty):
        if volume.loop < 0:
            for j in range(volume.length - 1, 0, -1):
                if not volume.values[j] and not volume.values[j - 1]:
                    volume.length -= 1
                else:
                    break
        if duty.length > 1:
            duty.length = 1


def convert_pitch_envelopes(module: ModuleData) -> None:
    """Turn relative pitch steps into clamped accumulated values."""
    for env in module.pitch:
        total = 0
        for j in range(env.length):
            total = max(-64, min(63, total + env.values[j]))
            env.values[j] = total


def split_song(song: Song, factor: int) -> Song:
    """Return a copy of song whose patterns are cut into pieces of length/factor rows."""
    if all(
        song.patterns[pos].length // factor < MIN_PATTERN_LEN
        for pos in range(song.order_length)
    ):
        factor = 1
    if factor < 1 and song.order_length > 0:
        raise ValueError("split factor must be positive")

    result = Song(speed=song.speed, tempo=song.tempo)
    dpos = 0
    for spos in range(song.order_length):
        if spos == song.order_loop:
            result.order_loop = dpos
        source = song.patterns[spos]
        piece = max(source.length // factor, MIN_PATTERN_LEN)
        drow = 0
        for srow in range(source.length):
            result.patterns[dpos].rows[drow] = copy.deepcopy(source.rows[srow])
            drow += 1
            if drow >= piece or srow == source.length - 1:
                result.patterns[dpos].length = drow
                dpos += 1
                if dpos >= MAX_PATTERNS:
                    raise _fatal("Patterns array is not large enough")
                drow = 0
    result.order_length = dpos
    return result


def format_byte_array(data, syntax: AsmSyntax) -> str:
    """Format bytes as data lines of at most 16 values each."""
    values = bytes(data)
    return "".join(
        f"\t{syntax.db} "
        + ",".join(f"${value:02x}" for value in values[start:start + 16])
        + "\n"
        for start in range(0, len(values), 16)
    )


@dataclass
class _Packed:
    data: bytes
    ref_id: int
    ref_length: int


class SongWriter:
    """Writes header, instruments and packed song streams to a text output."""

    def __init__(self, module: ModuleData, source: TextSource | None, syntax: AsmSyntax, out: TextIO):
        self.module = module
        self.source = source
        self.syntax = syntax
        self.out = out
        self.envelopes: list[bytes] = [DEFAULT_ENVELOPE]
        self.packed: list[_Packed] = []
        self.reference_id = 0
        self.split = Song()

    def _write(self, text: str) -> None:
        self.out.write(text)

    def _dump(self, data, test: bool) -> int:
        if not test:
            self._write(format_byte_array(data, self.syntax))
        return len(data)

    def encode_envelope(self, values, length, loop) -> int:
        """Encode an envelope with run lengths; return its index in the shared list."""
        if length <= 0:
            return 0
        data: list[int] = []
        ptr_loop = -1
        prev = values[0] + 1
        repeats = 0
        for j in range(length):
            if j == loop:
                ptr_loop = len(data)
            val = max(-64, min(63, values[j])) + 192
            if prev != val or j == length - 1:
                if repeats:
                    if repeats == 1:
                        data.append(prev)
                    else:
                        while repeats > 126:
                            data.append(126)
                            repeats -= 126
                        data.append(repeats)
                    repeats = 0
                data.append(val)
                prev = val
            else:
                repeats += 1
        if ptr_loop < 0:
            ptr_loop = len(data) - 1
        elif data[ptr_loop] < 128:
            ptr_loop += 1
        data += [0, ptr_loop]
        encoded = bytes(value & 0xFF for value in data)
        size = len(encoded)
        for index, existing in enumerate(self.envelopes):
            if existing.ljust(size, b"\0")[:size] == encoded:
                return index
        self.envelopes.append(encoded)
        return len(self.envelopes) - 1

    def write_header(self, song_name, song) -> int:
        """Write the music data header for all sub songs (song < 0) or one."""
        syntax, module = self.syntax, self.module
        self._write(";this file for FamiTone2 library generated by text2data tool\n\n")
        self._write(f"{song_name}_music_data:\n")
        self._write(f"\t{syntax.db} {module.subsong_count}\n")
        self._write(f"\t{syntax.dw} {syntax.local}instruments\n")
        self._write(f"\t{syntax.dw} {syntax.local}samples-3\n")
        size = 5
        subs = range(module.subsong_count) if song < 0 else range(song, song + 1)
        for sub in subs:
            parse_song(self.source, module, sub, True)
            pointers = "".join(
                f"{syntax.local}song{sub}ch{chn}," if chn < module.channels else "0,"
                for chn in range(5)
            )
            tempo = module.song.tempo
            tempo_pal = _div(256 * tempo, 50 * 60 // 24)
            tempo_ntsc = _div(256 * tempo, 60 * 60 // 24)
            self._write(f"\t{syntax.dw} {pointers}{tempo_pal},{tempo_ntsc}\n")
            size += 14
        self._write("\n")
        return size

    def write_instruments(self) -> int:
        """Write the instrument list, the sample list and all envelopes."""
        syntax, module = self.syntax, self.module
        ll = syntax.local
        self.envelopes = [DEFAULT_ENVELOPE]
        tables = (module.volume, module.arpeggio, module.pitch)
        for table in tables:
            for env in table:
                env.in_use = False
        used = [inst for inst in module.instruments if inst.in_use]
        for inst in used:
            for table, index in zip(tables, (inst.volume, inst.arpeggio, inst.pitch)):
                env = _lookup(table, index)
                if env is not None:
                    env.in_use = True
        for table in tables:
            for env in table:
                env.out_id = self.encode_envelope(
                    env.values, env.length if env.in_use else 0, env.loop
                )

        def out_id(table, index):
            env = _lookup(table, index)
            return env.out_id if env is not None else 0

        size = 0
        self._write(f"{ll}instruments:\n")
        for number, inst in enumerate(module.instruments):
            if not inst.in_use:
                continue
            duty_env = _lookup(module.duty, inst.duty)
            duty = duty_env.values[0] & 3 if duty_env is not None and duty_env.length > 0 else 0
            self._write(f"\t{syntax.db} ${(duty << 6) | 0x30:02x} ;instrument ${number:02x}\n")
            self._write(
                f"\t{syntax.dw} {ll}env{out_id(module.volume, inst.volume)},"
                f"{ll}env{out_id(module.arpeggio, inst.arpeggio)},"
                f"{ll}env{out_id(module.pitch, inst.pitch)}\n"
            )
            self._write(f"\t{syntax.db} $00\n")
            size += 2 * 3 + 2
        self._write("\n")

        self._write(f"{ll}samples:\n")
        if module.dpcm_size:
            for number, sample in enumerate(module.samples[:63]):
                flags = sample.pitch | ((sample.loop & 1) << 6)
                self._write(
                    f"\t{syntax.db} ${_hex(sample.off)}+FT_DPCM_PTR,"
                    f"${_hex(sample.size)},${_hex(flags)}\t;{number + 1}\n"
                )
                size += 3
            self._write("\n")

        for index, data in enumerate(self.envelopes):
            self._write(f"{ll}env{index}:\n")
            size += self._dump(data, False)
        return size

    def write_song(self, sub, speed_channel, test) -> int:
        """Pack the split song into channel streams; in test mode only measure."""
        syntax, module, song = self.syntax, self.module, self.split
        ll = syntax.local
        renumber = [0] * MAX_INSTRUMENTS
        count = 0
        for number, inst in enumerate(module.instruments):
            if inst.in_use:
                renumber[number] = count
                count += 1

        saved_count, saved_ref = len(self.packed), self.reference_id
        size = 0
        if not test:
            self._write("\n")
        for chn in range(module.channels):
            if not test:
                self._write(f"\n{ll}song{sub}ch{chn}:\n")
            if chn == speed_channel:
                size += self._dump(bytes((0xFB, song.speed & 0xFF)), test)

            def note_at(pattern, index):
                row = pattern.rows[index]
                if chn == speed_channel and row.speed:
                    return 1
                return row.channels[chn].note

            for pos in range(song.order_length):
                if not test and pos == song.order_loop:
                    self._write(f"{ll}song{sub}ch{chn}loop:\n")
                pattern = song.patterns[pos]
                length = pattern.length
                data = bytearray()
                srow = 0
                ref_len = length
                while srow < length:
                    if len(data) >= MAX_PACKED_SIZE:
                        raise _fatal("Not enough room in the tptn array")
                    row = pattern.rows[srow]
                    srow += 1
                    note = row.channels[chn].note
                    if chn == speed_channel and row.speed:
                        data += bytes((0xFB, row.speed & 0xFF))
                    if note > 0:
                        ins = row.channels[chn].instrument
                        if ins >= 0:
                            data.append((0x80 | (renumber[ins] << 1)) & 0xFF)
                        n1 = note_at(pattern, srow) if srow < length else 0
                        n2 = note_at(pattern, srow + 1) if srow + 1 < length else 0
                        skip = 1 if (not n1 and n2) else 0
                        data.append((((note - 1) << 1) | skip) & 0xFF)
                        if skip:
                            srow += 1
                            ref_len -= 1
                        continue
                    empty = 0
                    while srow < length and empty < MAX_REPEAT_CNT:
                        following = pattern.rows[srow]
                        if following.channels[chn].note:
                            break
                        if chn == speed_channel and following.speed:
                            break
                        srow += 1
                        empty += 1
                    ref_len -= empty
                    data.append((0x81 | (empty << 1)) & 0xFF)

                packed = bytes(data)
                ref = None
                if len(packed) > 4:
                    ref = next(
                        (
                            entry
                            for entry in self.packed
                            if len(packed) <= len(entry.data)
                            and entry.data[:len(packed)] == packed
                        ),
                        None,
                    )
                if ref is None:
                    if len(self.packed) >= MAX_PACKED_PATTERNS:
                        raise _fatal("Not enough room in the common data list")
                    self.packed.append(_Packed(packed, self.reference_id, ref_len))
                    if not test:
                        self._write(f"{ll}ref{self.reference_id}:\n")
                    size += self._dump(packed, test)
                else:
                    if not test:
                        self._write(f"\t{syntax.db} $ff,${_hex(ref_len)}\n")
                        self._write(f"\t{syntax.dw} {ll}ref{ref.ref_id}\n")
                    size += 4
                self.reference_id += 1

            if not test:
                self._write(f"\t{syntax.db} $fd\n")
                self._write(f"\t{syntax.dw} {ll}song{sub}ch{chn}loop\n")
            size += 3

        if test:
            del self.packed[saved_count:]
            self.reference_id = saved_ref
        return size

    def process_and_write_song(self, sub) -> int:
        """Try every speed channel and split factor, then write the smallest result."""
        song = self.module.song
        size_min = 65536
        best_channel = 0
        best_factor = 0
        for channel in range(self.module.channels):
            for factor in range(1, song.pattern_length // MIN_PATTERN_LEN + 1):
                self.split = split_song(song, factor)
                size = self.write_song(sub, channel, True)
                if size < size_min:
                    size_min = size
                    best_channel = channel
                    best_factor = factor
        self.split = split_song(song, best_factor)
        return self.write_song(sub, best_channel, False)


__all__ = [
    "AsmSyntax",
    "SongWriter",
    "cleanup_instrument_numbers",
    "cleanup_envelopes",
    "convert_pitch_envelopes",
    "split_song",
    "format_byte_array",
    "MAX_ENVELOPES",
]