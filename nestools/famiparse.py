"""Parsers for FamiTracker text exports and the older TextExporter format."""

from __future__ import annotations

from .famitext import (
    DPCM_CAPACITY,
    MAX_ENVELOPE_LEN,
    MAX_ENVELOPES,
    MAX_INSTRUMENTS,
    MAX_ROWS,
    MAX_SUB_SONGS,
    ModuleData,
    ParseError,
    Pattern,
    TextSource,
    hex_digit,
)

_NOTE_BASE = {".": 0, "-": 1, "C": 2, "D": 4, "E": 6, "F": 7, "G": 9, "A": 11, "B": 13}
_NO_EFFECT = ("", "\0", ".")


def _pattern_error(song, pos, row, chn, message) -> ParseError:
    return ParseError(
        f"Parsing error (song:{song + 1:02d} pos:{pos:02x} row:{row:02x} chn {chn}): {message}"
    )


def _store(source: TextSource, module: ModuleData, ptr: int, value: int, off: int) -> None:
    if ptr >= DPCM_CAPACITY:
        raise source.error(off, "DPCM data is too large")
    module.dpcm[ptr] = value & 0xFF


def is_famitracker_export(source: TextSource) -> bool:
    """Whether the text is a FamiTracker text export."""
    return source.find_tag("# FamiTracker text export", 0) >= 0


def parse_instruments(source: TextSource, module: ModuleData) -> None:
    """Read sub song count, macros, instruments and DPCM samples."""
    off = 0
    module.subsong_count = 0
    while True:
        off = source.find_tag("TRACK", off)
        if off < 0:
            break
        module.subsong_count += 1
    if module.subsong_count > MAX_SUB_SONGS:
        raise source.error(0, "Too many sub songs")

    off = source.find_tag("# Macros", 0)
    if off < 0:
        raise source.error(off, "Macros section not found")
    tables = {0: module.volume, 1: module.arpeggio, 2: module.pitch, 4: module.duty}
    while off < source.size:
        off = source.find_tag("MACRO", off)
        if off < 0:
            break
        kind = source.read_dec(off)
        off = source.skip_dec_and_spaces(off)
        ident = source.read_dec(off)
        if ident >= MAX_ENVELOPES:
            raise source.error(off, "Macro number is too large")
        off = source.skip_dec_and_spaces(off)
        loop = source.read_dec(off)
        for _ in range(3):
            off = source.skip_dec_and_spaces(off)
        if source._ch(off) != ":":
            raise source.error(off, "Unexpected macro format")
        table = tables.get(kind)
        if table is None:
            continue
        env = table[ident]
        off += 2
        ptr = 0
        while off < source.size and source.text[off] != "\n":
            if ptr >= MAX_ENVELOPE_LEN:
                raise source.error(off, "Macro is too long")
            env.values[ptr] = source.read_dec(off)
            ptr += 1
            nxt = source.skip_dec_and_spaces(off)
            if nxt == off:
                raise source.error(off, "Unexpected macro format")
            off = nxt
        env.length = ptr
        env.loop = loop

    for sample in module.samples:
        sample.id = -1
    off = source.find_tag("# Instruments", off)
    if off < 0:
        raise source.error(off, "Instruments section not found")
    ins_id = 0
    while off < source.size:
        off = source.skip_line(off)
        if source.text.startswith("INST2A03", off):
            off = source.skip_tag(off)
            ins = source.read_dec(off)
            if ins < 0 or ins >= MAX_INSTRUMENTS:
                raise source.error(off, "Wrong instrument number")
            inst = module.instruments[ins]
            off = source.skip_dec_and_spaces(off)
            inst.volume = source.read_dec(off)
            if inst.volume < 0:
                raise source.error(off, f"Instrument {ins} does not have volume envelope")
            off = source.skip_dec_and_spaces(off)
            inst.arpeggio = source.read_dec(off)
            off = source.skip_dec_and_spaces(off)
            inst.pitch = source.read_dec(off)
            off = source.skip_dec_and_spaces(off)
            off = source.skip_dec_and_spaces(off)
            inst.duty = source.read_dec(off)
            inst.id = ins_id
            ins_id += 1
            continue
        if source.text.startswith("KEYDPCM", off):
            off = source.skip_tag(off)
            if source.read_dec(off) != 0:
                continue
            values = []
            for _ in range(6):
                off = source.skip_dec_and_spaces(off)
                values.append(source.read_dec(off))
            octave, note, ident, pitch, loop, _unknown = values
            key = octave * 12 + note
            if key < 12 or key >= 6 * 12 + 3:
                raise source.error(off, "DPCM samples could only be assigned to notes C-1..D-6")
            sample = module.samples[key - 12]
            sample.id, sample.loop, sample.pitch, sample.size = ident, loop, pitch, 0
            continue
        break

    ptr = 0
    off = source.find_tag("# DPCM samples", off)
    while off < source.size:
        off = source.find_tag("DPCMDEF", off)
        if off < 0:
            break
        ident = source.read_dec(off)
        if not any(sample.id == ident for sample in module.samples):
            continue
        off = source.skip_dec_and_spaces(off)
        size = source.read_dec(off)
        for sample in module.samples:
            if sample.id == ident:
                sample.off = ptr >> 6
                sample.size = size >> 4
        while off < source.size:
            off = source.skip_line(off)
            if not source.text.startswith("DPCM :", off):
                break
            off += 7
            while off < source.size and source.text[off] != "\n":
                value = source.read_hex(off)
                nxt = source.skip_hex_and_spaces(off)
                if nxt == off:
                    raise source.error(off, "Unexpected character in DPCM data")
                _store(source, module, ptr, value, off)
                off = nxt
                ptr += 1
                size -= 1
        if size != 0:
            raise source.error(off, "Actual DPCM sample size does not match its definition")
        ptr = ((ptr >> 6) + 1) << 6
    for sample in module.samples:
        if sample.off < 0:
            sample.off = 0
    module.dpcm_size = ptr


def _read_note(source: TextSource, off: int, noise: bool) -> int:
    char = source._ch(off)
    if noise:
        if char == ".":
            return 0
        if char == "-":
            return 1
        digit = hex_digit(char)
        if digit < 0:
            raise source.error(off, "Unexpected character in the note field")
        return ((digit + 15) & 15) + 2
    if char not in _NOTE_BASE:
        raise source.error(off, "Unexpected character in the note field")
    note = _NOTE_BASE[char]
    if source._ch(off + 1) == "#":
        note += 1
    return note


def parse_song(source: TextSource, module: ModuleData, subsong, header_only) -> None:
    """Read one sub song; with header_only just its length, speed and tempo."""
    if subsong >= module.subsong_count:
        raise source.error(0, "No sub song found")
    song = module.song
    off = source.find_tag("# Tracks", 0)
    for _ in range(subsong + 1):
        off = source.find_tag("TRACK", off)
    if off < 0:
        raise source.error(off, "Can't find track section")
    off = source.skip_spaces(off)
    song.pattern_length = source.read_dec(off)
    off = source.skip_dec_and_spaces(off)
    song.speed = source.read_dec(off)
    off = source.skip_dec_and_spaces(off)
    song.tempo = source.read_dec(off)
    if header_only:
        return

    channels = module.channels
    order: list[list[int]] = []
    maxptn = 0
    off = source.find_tag_start("ORDER", off)
    while off < source.size and source._ch(off) == "O":
        entry = [source.read_hex(off + 11 + 3 * chn) for chn in range(5)]
        maxptn = max([maxptn, *entry[:channels]])
        order.append(entry)
        off = source.skip_line(off)
    song.order_length = len(order)

    patterns: list[Pattern] = []
    for index in range(maxptn + 1):
        pattern = Pattern(length=song.pattern_length)
        patterns.append(pattern)
        found = source.find_tag_in_subsong(f"PATTERN {index:02X}", off)
        if found < 0:
            continue
        off = source.skip_line(found)
        for row in range(song.pattern_length):
            if not source.text.startswith("ROW", off):
                raise source.error(off, "No row definition found ")
            if source.read_hex(off + 4) != row:
                raise source.error(off, "Unexpected row number")
            for chn in range(channels):
                while source._ch(off) != ":":
                    if off >= source.size:
                        raise source.error(off, "No row definition found ")
                    off += 1
                off += 2
                note = _read_note(source, off, chn == 3)
                if chn != 3 and note > 1:
                    note += 12 * source.read_dec(off + 2)
                    if note < 12 + 2 or note >= 12 + 64:
                        raise source.error(off, "Note is out of supported range (C-1..D-6)")
                    note -= 12
                ins = -1 if source._ch(off + 4) == "." else source.read_hex(off + 4)
                if ins > 63:
                    raise source.error(off, "Instrument number is out of range (0..63)")
                cell = pattern.rows[row].channels[chn]
                cell.note = note
                cell.instrument = ins
                cell.effect = source._ch(off + 9)
                cell.parameter = source.read_hex(off + 10)
                if ins >= 0:
                    module.instruments[ins].in_use = True
            off = source.skip_line(off)

    pos = 0
    while pos < song.order_length:
        target = song.patterns[pos]
        target.length = song.pattern_length
        for chn in range(channels):
            src_pattern = patterns[order[pos][chn]]
            for row in range(MAX_ROWS):
                cell = src_pattern.rows[row].channels[chn]
                dst = target.rows[row].channels[chn]
                dst.note = cell.note
                dst.instrument = cell.instrument
                effect = cell.effect
                if effect in _NO_EFFECT:
                    continue
                if effect == "B":
                    song.order_length = pos + 1
                    song.order_loop = cell.parameter
                    target.length = row + 1
                    if song.order_loop > pos:
                        raise _pattern_error(
                            subsong, pos, row, chn,
                            "Bxx loop position can't be a forward reference",
                        )
                    break
                if effect == "D":
                    target.length = row + 1
                    if cell.parameter:
                        raise _pattern_error(subsong, pos, row, chn, "Dxx value can only be zero")
                    break
                if effect == "F":
                    target.rows[row].speed = cell.parameter
                    continue
                raise _pattern_error(subsong, pos, row, chn, "Unsupported effect")
        pos += 1


def parse_instruments_old(source: TextSource, module: ModuleData) -> None:
    """Read instruments, sequences and samples of the older TextExporter format."""
    module.subsong_count = 1
    off = 0
    for ins_id in range(MAX_INSTRUMENTS):
        off = source.find_tag("[Instrument", off)
        if off < 0:
            break
        ins = source.read_dec(off)
        if ins > 63:
            raise source.error(off, "Only 64 instruments (0..63) are supported")
        off = source.skip_line(off)
        inst = module.instruments[ins]
        for attr, tag in (
            ("volume", "SequenceVolume="),
            ("arpeggio", "SequenceArpeggio="),
            ("pitch", "SequencePitch="),
            ("duty", "SequenceDuty="),
        ):
            found = source.find_tag_in_section(tag, off)
            setattr(inst, attr, -1 if found < 0 else source.read_dec(found))
        inst.id = ins_id

    kinds = (
        ("SequencesVolumeCount=", "[SequencesVolume]", "SequenceVolume", module.volume),
        ("SequencesArpeggioCount=", "[SequencesArpeggio]", "SequenceArpeggio", module.arpeggio),
        ("SequencesPitchCount=", "[SequencesPitch]", "SequencePitch", module.pitch),
        ("SequencesDutyCount=", "[SequencesDuty]", "SequenceDuty", module.duty),
    )
    for count_tag, section, name, table in kinds:
        off = source.find_tag(count_tag, 0)
        if off < 0:
            raise source.error(off, "SequenceTypeCount not found")
        count = source.read_dec(off)
        off = source.find_tag(section, off)
        ident = 0
        while count > 0:
            if ident >= MAX_ENVELOPES:
                raise source.error(off, "Sequence not found")
            ptr = source.find_tag_in_section(f"{name}{ident}=", off)
            if ptr >= 0:
                env = table[ident]
                env.loop = -1
                pos = 0
                while ptr < source.size and ord(source.text[ptr]) >= 32:
                    if source.text[ptr] == "|":
                        env.loop = pos
                        ptr += 1
                    value = source.read_dec(ptr)
                    if value < -64 or value > 63:
                        raise source.error(off, "Envelope value is out of range (-64..63)\n")
                    if pos >= MAX_ENVELOPE_LEN:
                        raise source.error(ptr, "Macro is too long")
                    env.values[pos] = value
                    pos += 1
                    while ptr < source.size and ord(source.text[ptr]) >= 32:
                        ptr += 1
                        if source.text[ptr - 1] == ",":
                            break
                env.length = pos
                count -= 1
            ident += 1

    soff = source.find_tag_start("[DMC", 0)
    if soff < 0:
        return
    dpcm_list = [[-1, 0] for _ in range(64)]
    doff = 0
    for index in range(64):
        off = source.find_tag(f"[Sample{index + 1}]", soff)
        if off < 0:
            continue
        off = source.find_tag("SampleSize=", off)
        if off < 0:
            raise source.error(off, "No SampleSize found")
        off = source.find_tag("SampleData=$", off)
        if off < 0:
            raise source.error(off, "No SampleData found")
        dpcm_list[index][0] = doff >> 6
        size = 0
        high = None
        while off < source.size and source.text[off] != "\n":
            digit = hex_digit(source.text[off])
            if high is None:
                high = digit << 4
            else:
                _store(source, module, doff, high | digit, off)
                doff += 1
                size += 1
                high = None
            off += 1
        dpcm_list[index][1] = size >> 4
        doff = ((doff >> 6) + 1) << 6

    off = source.find_tag("[DMC0]", soff)
    if off >= 0:
        for tag, missing in (
            ("SamplesAssigned=", "No SamplesAssigned found"),
            ("SamplesPitch=", "No SamplesPitch found"),
            ("SamplesLoop=", "No SamplesLoop found"),
        ):
            off = source.find_tag(tag, off)
            if off < 0:
                raise source.error(off, missing)
            for key in range(96):
                value = source.read_dec(off)
                off = source.skip_dec_and_spaces(off) + 1
                if not 12 <= key < 6 * 12 + 3:
                    continue
                sample = module.samples[key - 12]
                if tag == "SamplesAssigned=":
                    if value:
                        sample.off, sample.size = dpcm_list[value - 1]
                elif tag == "SamplesPitch=":
                    sample.pitch = value
                else:
                    sample.loop = value
    module.dpcm_size = doff


def parse_song_old(source: TextSource, module: ModuleData) -> None:
    """Read the single song of the older TextExporter format."""
    song = module.song
    off = source.find_tag("Speed=", 0)
    if off < 0:
        raise source.error(off, "Speed not found")
    song.speed = source.read_dec(off)
    song.tempo = 150
    off = source.find_tag("FramesCount=", off)
    if off < 0:
        raise source.error(off, "Frames count not found")
    song.order_length = source.read_dec(off)
    off = source.find_tag("PatternLength=", off)
    if off < 0:
        raise source.error(off, "Pattern length not found")
    song.pattern_length = source.read_dec(off)

    for pos in range(song.order_length):
        pattern = song.patterns[pos]
        pattern.length = song.pattern_length
        off = source.find_tag(f"[Frame{pos}]", off)
        if off < 0:
            raise source.error(off, "Frame not found")
        off = source.skip_line(off)
        stop_song = stop_pattern = False
        for row in range(song.pattern_length):
            if source.read_hex(off) != row:
                raise source.error(off, "Unexpected row number")
            off += 3
            for chn in range(module.channels):
                note = _read_note(source, off, False)
                if note > 1:
                    note += 12 * source.read_dec(off + 2)
                    if note < 12 + 2 or note >= 12 * 6 + 2 + 3:
                        raise _pattern_error(0, pos, row, chn, "Note is out of supported range (C-1..D-6)")
                    note -= 12
                if chn == 3 and note > 1:
                    note = ((note - 2 + 11) & 15) + 2
                if chn == 4 and note > 1:
                    if note < 2 * 12 + 2 or note > 3 * 12 - 1 + 2:
                        raise _pattern_error(0, pos, row, chn, "DPCM note is out of supported range (C-3..B-3)")
                    note -= 2 * 12
                ins = -1 if source._ch(off + 4) == "." else source.read_hex(off + 4)
                if ins > 63:
                    raise _pattern_error(0, pos, row, chn, "Instrument number is out of range (0..63)")
                cell = pattern.rows[row].channels[chn]
                cell.note = note
                cell.instrument = ins
                if ins >= 0:
                    module.instruments[ins].in_use = True
                effect = source._ch(off + 9)
                if effect == "B":
                    song.order_length = pos + 1
                    song.order_loop = source.read_hex(off + 10)
                    pattern.length = row + 1
                    stop_song = True
                    if song.order_loop > pos:
                        raise _pattern_error(0, pos, row, chn, "Bxx loop position can't be a forward reference")
                elif effect == "D":
                    pattern.length = row + 1
                    stop_pattern = True
                elif effect == "F":
                    pattern.rows[row].speed = source.read_hex(off + 10)
                elif effect not in _NO_EFFECT:
                    raise _pattern_error(0, pos, row, chn, "Unsupported effect")
                off += 13
            if stop_song or stop_pattern:
                break
        if stop_song:
            break