import io

import pytest

from nestools.famiout import (
    AsmSyntax,
    SongWriter,
    cleanup_envelopes,
    cleanup_instrument_numbers,
    convert_pitch_envelopes,
    format_byte_array,
    split_song,
)
from nestools.famiparse import parse_instruments
from nestools.famitext import ModuleData, Song, TextSource

EMPTY = "... .. . ..."


def export_text(length=8, notes=None):
    notes = notes or {}
    rows = []
    for index in range(length):
        cells = [EMPTY] * 5
        if index in notes:
            cells[0] = notes[index]
        rows.append(f"ROW {index:02X} : " + " : ".join(cells))
    return "\n".join([
        "# FamiTracker text export 0.4.2", "",
        "# Macros",
        "MACRO       0   0  -1  -1   0 : 15 10 5 0", "",
        "# DPCM samples", "",
        "# Instruments",
        'INST2A03   0     0    -1    -1    -1    -1 "Lead"', "",
        "# Tracks", "",
        f'TRACK  {length:2d}   6 150 "Song"',
        "COLUMNS : 1 1 1 1 1", "",
        "ORDER 00 : 00 00 00 00 00", "",
        "PATTERN 00", *rows, "",
        "# End", "",
    ])


def simple_song(length=12):
    song = Song(speed=6, tempo=150, pattern_length=length, order_length=1)
    pattern = song.patterns[0]
    pattern.length = length
    for index in range(length):
        cell = pattern.rows[index].channels[0]
        cell.note = 20 + index % 3
        cell.instrument = 0
    return song


@pytest.mark.parametrize(
    "syntax, expected",
    [
        (AsmSyntax.NESASM, "\t.db $01,$02"),
        (AsmSyntax.CA65, "\t.byte $01,$02"),
        (AsmSyntax.ASM6, "\tdb $01,$02"),
    ],
)
def test_format_byte_array_uses_dialect_directive(syntax, expected):
    text = format_byte_array(bytes([1, 2]), syntax)
    assert text.splitlines() == [expected]


def test_format_byte_array_wraps_at_sixteen():
    text = format_byte_array(bytes(range(17)), AsmSyntax.NESASM)
    lines = text.splitlines()
    assert len(lines) == 2
    assert lines[0].startswith("\t.db $00,$01")
    assert lines[1] == "\t.db $10"
    assert text.count("$") == 17


def test_format_byte_array_empty():
    assert format_byte_array(b"", AsmSyntax.CA65) == ""


def test_encode_envelope_default_and_dedup():
    writer = SongWriter(ModuleData(), None, AsmSyntax.NESASM, io.StringIO())
    assert writer.encode_envelope([1, 2], 0, -1) == 0
    first = writer.encode_envelope([15, 10, 5, 0], 4, -1)
    second = writer.encode_envelope([15, 10, 5, 0], 4, -1)
    assert first == second == 1
    assert writer.envelopes[first] == bytes([0xCF, 0xCA, 0xC5, 0xC0, 0, 3])


def test_encode_envelope_run_length_is_shorter():
    writer = SongWriter(ModuleData(), None, AsmSyntax.NESASM, io.StringIO())
    index = writer.encode_envelope([5] * 20, 20, -1)
    data = writer.envelopes[index]
    assert len(data) < 20
    assert data[-2] == 0


def test_cleanup_envelopes_trims_and_cuts_duty():
    module = ModuleData()
    volume = module.volume[3]
    volume.values[:4] = [5, 0, 0, 0]
    volume.length = 4
    volume.loop = -1
    module.duty[2].length = 3
    cleanup_envelopes(module)
    assert volume.length == 2
    assert module.duty[2].length == 1


def test_cleanup_envelopes_keeps_looping_volume():
    module = ModuleData()
    volume = module.volume[0]
    volume.values[:3] = [5, 0, 0]
    volume.length = 3
    volume.loop = 0
    cleanup_envelopes(module)
    assert volume.length == 3


def test_convert_pitch_accumulates_and_clamps():
    module = ModuleData()
    env = module.pitch[0]
    env.values[:3] = [1, 1, 1]
    env.length = 3
    clamp = module.pitch[1]
    clamp.values[:2] = [60, 10]
    clamp.length = 2
    convert_pitch_envelopes(module)
    assert env.values[:3] == [1, 2, 3]
    assert clamp.values[:2] == [60, 63]


def test_split_song_halves_patterns():
    song = simple_song(12)
    split = split_song(song, 2)
    assert split.order_length == 2
    assert [split.patterns[p].length for p in range(2)] == [6, 6]
    notes = [
        split.patterns[p].rows[r].channels[0].note for p in range(2) for r in range(6)
    ]
    assert notes == [song.patterns[0].rows[r].channels[0].note for r in range(12)]


def test_split_song_skips_when_too_short():
    song = simple_song(12)
    split = split_song(song, 3)
    assert split.order_length == 1
    assert split.patterns[0].length == 12


def test_split_song_maps_loop_point():
    song = simple_song(12)
    song.order_length = 2
    song.patterns[1] = song.patterns[0]
    song.order_loop = 1
    split = split_song(song, 2)
    assert split.order_length == 4
    assert split.order_loop == 2


def test_split_song_rejects_zero_factor():
    with pytest.raises(ZeroDivisionError):
        split_song(simple_song(12), 0)


def test_cleanup_instrument_numbers():
    song = Song(order_length=1)
    pattern = song.patterns[0]
    pattern.length = 4
    for index, (note, ins) in enumerate([(30, 2), (31, 2), (0, 3), (32, 5)]):
        cell = pattern.rows[index].channels[0]
        cell.note, cell.instrument = note, ins
    pattern.rows[0].channels[4].note = 5
    pattern.rows[0].channels[4].instrument = 1
    pattern.rows[0].speed = 6
    pattern.rows[1].speed = 6
    cleanup_instrument_numbers(song, 5)
    assert [pattern.rows[r].channels[0].instrument for r in range(4)] == [2, -1, -1, 5]
    assert pattern.rows[0].channels[4].instrument == -1
    assert pattern.rows[1].speed == 0


def test_cleanup_restores_instrument_after_loop():
    song = Song(order_length=2, order_loop=1)
    for pos in range(2):
        pattern = song.patterns[pos]
        pattern.length = 1
        pattern.rows[0].channels[0].note = 30
        pattern.rows[0].channels[0].instrument = 4
    cleanup_instrument_numbers(song, 5)
    assert song.patterns[1].rows[0].channels[0].instrument == 4


def test_write_song_test_mode_writes_nothing():
    module = ModuleData()
    module.instruments[0].in_use = True
    out = io.StringIO()
    writer = SongWriter(module, None, AsmSyntax.NESASM, out)
    writer.split = split_song(simple_song(12), 1)
    size = writer.write_song(0, 0, True)
    assert size > 0
    assert out.getvalue() == ""
    assert writer.packed == []
    assert writer.reference_id == 0


def test_write_song_output_labels():
    module = ModuleData()
    module.instruments[0].in_use = True
    out = io.StringIO()
    writer = SongWriter(module, None, AsmSyntax.CA65, out)
    writer.split = split_song(simple_song(12), 1)
    writer.write_song(0, 0, False)
    text = out.getvalue()
    for chn in range(5):
        assert f"@song0ch{chn}:" in text
        assert f"\t.word @song0ch{chn}loop" in text
    assert "\t.byte $fd" in text


def test_process_and_write_song_not_larger_than_plain():
    module = ModuleData()
    module.instruments[0].in_use = True
    module.song = simple_song(12)
    writer = SongWriter(module, None, AsmSyntax.NESASM, io.StringIO())
    writer.split = split_song(module.song, 1)
    baseline = writer.write_song(0, 0, True)
    size = writer.process_and_write_song(0)
    assert 0 < size <= baseline


def test_write_header_and_instruments():
    source = TextSource(export_text(8, {0: "C-4 00 . ..."}))
    module = ModuleData()
    parse_instruments(source, module)
    module.instruments[0].in_use = True
    out = io.StringIO()
    writer = SongWriter(module, source, AsmSyntax.NESASM, out)
    header = writer.write_header("tune", -1)
    assert header == 19
    assert module.song.tempo == 150
    size = writer.write_instruments()
    assert size == 8 + sum(len(env) for env in writer.envelopes)
    text = out.getvalue()
    assert "tune_music_data:\n" in text
    assert ".song0ch0,.song0ch1," in text
    assert "\t.db $30 ;instrument $00\n" in text
    assert "\t.db $c0,$00,$00\n" in text