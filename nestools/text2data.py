"""Command that turns a FamiTracker text export into FamiTone2 music data."""

from __future__ import annotations

import sys
from pathlib import Path

from .famiout import (
    AsmSyntax,
    SongWriter,
    cleanup_envelopes,
    cleanup_instrument_numbers,
    convert_pitch_envelopes,
)
from .famiparse import (
    is_famitracker_export,
    parse_instruments,
    parse_instruments_old,
    parse_song,
    parse_song_old,
)
from .famitext import ModuleData, ParseError, Song, TextSource

_CHANNEL_FLAGS = {f"-ch{count}": count for count in range(1, 6)}


def _strip_extension(path: str) -> str:
    dot = path.rfind(".")
    return path[:dot] if dot >= 0 else path


def song_name_from_path(path) -> str:
    """Base name without extension, with non-alphanumerics replaced by '_'."""
    base = _strip_extension(str(path))
    chars = []
    for char in reversed(base):
        if char in "\\/":
            break
        chars.append(char if char.isascii() and char.isalnum() else "_")
    return "".join(reversed(chars))


def _write_file(path: str, emit) -> None:
    with open(path, "w", encoding="latin-1") as handle:
        emit(handle)


def _convert_export(source, syntax, channels, separate, out_base, song_name) -> ModuleData:
    print("Input format: FamiTracker export")
    module = ModuleData(channels=channels)
    parse_instruments(source, module)

    if not separate:
        for sub in range(module.subsong_count):
            module.song = Song()
            parse_song(source, module, sub, False)
            cleanup_instrument_numbers(module.song, channels)
        cleanup_envelopes(module)
        convert_pitch_envelopes(module)

        sizes: list[int] = []
        result = {}

        def emit(handle):
            writer = SongWriter(module, source, syntax, handle)
            result["header"] = writer.write_header(song_name, -1)
            result["instruments"] = writer.write_instruments()
            for sub in range(module.subsong_count):
                module.song = Song()
                parse_song(source, module, sub, False)
                cleanup_instrument_numbers(module.song, channels)
                sizes.append(writer.process_and_write_song(sub))

        _write_file(out_base + syntax.extension, emit)
        print(f"Header:     {result['header']}")
        print(f"Instrument: {result['instruments']}")
        for sub, size in enumerate(sizes):
            print(f"Sub song {sub}: {size}")
        total = result["header"] + result["instruments"] + sum(sizes)
        print(f"\nTotal data size: {total} bytes")
        return module

    cleanup_envelopes(module)
    convert_pitch_envelopes(module)
    for sub in range(module.subsong_count):
        for inst in module.instruments:
            inst.in_use = False
        module.song = Song()
        parse_song(source, module, sub, False)
        cleanup_instrument_numbers(module.song, channels)
        result = {}

        def emit(handle, sub=sub):
            writer = SongWriter(module, source, syntax, handle)
            result["total"] = (
                writer.write_header(f"{song_name}_{sub}", sub)
                + writer.write_instruments()
                + writer.process_and_write_song(sub)
            )

        _write_file(f"{out_base}_{sub}{syntax.extension}", emit)
        print(f"Sub song {sub}: {result['total']}")
    return module


def _convert_old(source, syntax, channels, out_base, song_name) -> ModuleData:
    module = ModuleData(channels=channels)
    print("Input format: TextExporter plug-in")
    parse_instruments_old(source, module)
    module.song = Song()
    parse_song_old(source, module)
    cleanup_instrument_numbers(module.song, channels)
    cleanup_envelopes(module)
    result = {}

    def emit(handle):
        writer = SongWriter(module, source, syntax, handle)
        result["header"] = writer.write_header(song_name, -1)
        result["instruments"] = writer.write_instruments()
        result["song"] = writer.process_and_write_song(0)

    _write_file(out_base + syntax.extension, emit)
    print(f"Header:     {result['header']}")
    print(f"Instrument: {result['instruments']}")
    print(f"Song data 0: {result['song']}")
    total = result["header"] + result["instruments"] + result["song"]
    print(f"\nTotal data size: {total} bytes")
    return module


def main(argv=None) -> int:
    """Convert a text export; options -ca65, -asm6, -ch1..-ch5 and -s."""
    args = sys.argv[1:] if argv is None else list(argv)
    if not args:
        print("text2data for FamiTone2 NES audio library\n")
        print("Usage: text2data song.txt [-ca65 or -asm6][-ch1..5][-s]")
        return 0

    syntax = AsmSyntax.NESASM
    in_name = ""
    channels = 5
    separate = False
    for arg in args:
        if arg == "-ca65":
            syntax = AsmSyntax.CA65
        elif arg == "-asm6":
            syntax = AsmSyntax.ASM6
        elif arg in _CHANNEL_FLAGS:
            channels = _CHANNEL_FLAGS[arg]
        elif arg == "-s":
            separate = True
        if not arg.startswith("-"):
            in_name = arg

    try:
        raw = Path(in_name).read_bytes()
    except OSError:
        print(f"Can't open file '{in_name}'")
        return 1

    out_base = _strip_extension(in_name)
    song_name = song_name_from_path(in_name)
    mode = "each song in a separate file" if separate else "all songs in single file"
    print(f"Output format: {syntax.label}, {mode}")

    source = TextSource(raw)
    try:
        if is_famitracker_export(source):
            module = _convert_export(source, syntax, channels, separate, out_base, song_name)
        else:
            module = _convert_old(source, syntax, channels, out_base, song_name)
        if module.dpcm_size:
            size = module.dpcm_size
            Path(out_base + ".dmc").write_bytes(bytes(module.dpcm[:size]).ljust(size, b"\0"))
    except ParseError as exc:
        print(exc)
        return 1
    except OSError as exc:
        print(f"Can't create file: {exc}")
        return 1

    print(f"\nDPCM samples: {module.dpcm_size} bytes")
    return 0