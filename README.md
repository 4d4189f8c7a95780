# nestools

A set of small command-line tools for building graphics and music data for
NES homebrew, with a few extras for GBA, N64 and SNES mode 7 work.

All image tools read PNG files (through Pillow). Most of them expect a
paletted (indexed) image whose width and height are multiples of 8.

## Installation

```
pip install .
```

To run the test suite:

```
pip install .[test]
pytest
```

Every command prints its usage and exits with status 1 when called without
arguments (`nesasmc` and `text2data` print usage and exit with status 0).
Errors in the input are printed and give a non-zero exit status.

## Graphics tools

### png2chr

```
png2chr file.png [file.chr]
```

Converts a paletted PNG using palette indices 0 to 3 into NES CHR data: two
bit planes of 8 bytes each per 8x8 tile, tiles in reading order. At most 512
tiles (8 KB of CHR ROM) are accepted. Without an output name, the last
three characters of the input name are replaced with `chr`.

### png2gba

```
png2gba file.png [file.gbt]
```

Converts a paletted PNG using palette indices 0 to 15 into 4-bit GBA tiles,
two pixels per byte with the left pixel in the low nibble. At most 1024
tiles are accepted. The default output name ends in `gbt`.

### png2n64

```
png2n64 in.png [out.bin]
```

Converts a PNG (RGB, RGBA or paletted; it is converted to 8-bit RGB first)
into big-endian 16-bit pixels: 5 bits each of red, green and blue, with the
lowest bit clear. The default output name ends in `bin`.

### png2tilebit

```
png2tilebit file.png
```

Prints a C array `const u8 tilebits[...]` to standard output, eight values
per 8x8 tile, where any non-zero palette index sets the bit for its column
(leftmost pixel in bit 0). The bits are collected per tile rather than per
row, so each row value also contains the bits of the rows above it in the
same tile. A progress line goes to standard error.

### mode7interleave

```
mode7interleave map chr combined
```

Reads two non-empty files of up to 16384 bytes each (shorter files are
padded with zeroes) and writes them interleaved byte by byte, map byte
first, into a 32768-byte file.

### palstat

```
palstat a.png b.png c.png ...
```

Reads the palette of each paletted PNG (at most 16 colours each), groups
files that share an identical palette and prints how many distinct palettes
there are, their colours, and how many files use each. Set the environment
variable `files` to also list which files use each palette:

```
files=1 palstat sprites/*.png
```

### sametiles

```
sametiles file.png
```

Reports every pair of identical 8x8 tiles, ignoring tiles that are entirely
index 0. Pixels must use palette indices 0 to 3.

### pngreorder

```
pngreorder --source src.png dst.png ...
pngreorder --offset 4 dst.png ...
```

Rewrites paletted PNGs in place with a 16-colour palette.

* With `--source` (`-s`), each colour of the target image is mapped to the
  index of the same colour in the first 16 colours of the source image's
  palette (index 0 when it is not there), and the source palette is
  written out. Targets with more than 16 colours are refused.
* With `--offset` (`-o`), every index except 0 is moved up by the offset;
  colours that end up beyond index 15 are dropped from the palette.

The two options cannot be combined. With neither option (or an offset of
0) the files are left alone.

### tilecoords and tilecoords16

```
tilecoords tilemap.png sprite.png
tilecoords16 tilemap.png sprite.png
```

For every tile of the sprite image, prints the number of the matching tile
in the tilemap image as `0xNN`, one line of output per row of tiles.
Unmatched tiles print `NONE` and make the command exit with status 1.
`tilecoords` works with 8x8 tiles; `tilecoords16` works with 16x16 tiles and
prints the number of the top-left 8x8 tile in a 128-pixel-wide sheet.

Environment variables change the output:

* `flips` also matches horizontally and vertically flipped tiles, printing
  `|FLIPH`, `|FLIPV` or both after the number, and separates entries with
  commas.
* `nones` (tilecoords only) keeps tile numbers of 256 and above as they
  are instead of subtracting 256.

## Music tools

### text2data

```
text2data song.txt [-ca65 | -asm6] [-ch1 .. -ch5] [-s]
```

Converts a FamiTracker text export (or the older TextExporter plug-in
format) into FamiTone2 music data. The output is an assembly source file
next to the input: `.asm` for NESASM and asm6, `.s` for ca65. DPCM samples,
when present, are written to a `.dmc` file. The sizes of the header,
instrument and song data are printed.

* `-ch1` to `-ch5` limit the number of channels converted (all five by
  default).
* `-s` writes each sub-song to its own file (`name_0.asm`, `name_1.asm`,
  ...) instead of one file for all.

Supported effects are `Bxx` (end song, loop to an order position), `D00`
(end pattern) and `Fxx` (speed). Other effects are reported as errors.

### nesasmc

```
nesasmc filename.asm
```

Converts FamiTone2 sources written for NESASM into two new files: one for
ca65 (`filename.s`) and one for asm6 (`filename_asm6.asm`).

## Using the package from Python

The conversions are also available as functions, for example
`nestools.images.load_indexed`, `nestools.tiles.encode_chr`,
`nestools.tiles.encode_gba`, `nestools.interleave.interleave`,
`nestools.sametiles.find_identical_tiles`,
`nestools.tilecoords.locate_tiles` and `nestools.nesasm.convert`.
Errors in image and file input are raised as `nestools.images.ToolError`;
errors in music text input are raised as `nestools.famitext.ParseError`.

## What is not included

The package converts music only: it has no converter for FamiTone2 sound
effects. It does not compress data, and it does not turn CHR, GBA or other
converted data back into PNG images.