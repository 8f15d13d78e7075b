"""Read KAG script dialogue and translation exchange files, and split translation requests to a byte budget."""

__version__ = "0.1.0"

__all__ = [
    "arcsourcetext",
    "chunking",
    "csvformats",
    "foldertext",
    "jsonformats",
    "kag",
    "textutil",
    "translatedcsv",
]