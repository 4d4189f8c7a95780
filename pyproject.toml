[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "nestools"
version = "1.0.0"
description = "Command-line asset tools for NES and other retro console projects: tile converters, palette utilities and FamiTone2 music data export."
requires-python = ">=3.10"
dependencies = [
    "pillow",
]
keywords = [
    "nes",
    "chr",
    "tiles",
    "png",
    "gba",
    "mode7",
    "famitracker",
    "famitone",
    "homebrew",
    "retro",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Build Tools",
    "Topic :: Multimedia :: Graphics :: Graphics Conversion",
    "Topic :: Multimedia :: Sound/Audio :: Conversion",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
png2chr = "nestools.tiles:chr_main"
png2gba = "nestools.tiles:gba_main"
png2n64 = "nestools.tiles:n64_main"
png2tilebit = "nestools.tiles:tilebit_main"
mode7interleave = "nestools.interleave:main"
palstat = "nestools.palstat:main"
sametiles = "nestools.sametiles:main"
pngreorder = "nestools.reorder:main"
tilecoords = "nestools.tilecoords:main"
tilecoords16 = "nestools.tilecoords:main16"
nesasmc = "nestools.nesasm:main"
text2data = "nestools.text2data:main"

[tool.hatch.build.targets.wheel]
packages = ["nestools"]

[tool.hatch.build.targets.sdist]
include = [
    "nestools",
    "tests",
]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
