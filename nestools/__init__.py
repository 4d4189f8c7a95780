"""Asset conversion tools for NES and other retro console projects: tile and palette utilities and FamiTone2 music export."""

__version__ = "1.0.0"