"""Reading of per-arc text files holding source lines with optional translations."""

from __future__ import annotations

import os
import stat
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path

from ksworkbench.textutil import is_blank_source_text, normalize_source_text

_MAX_LINE_BYTES = 1024 * 1024
_BOM = "\ufeff"

_SPACE = (
    "\t\n\v\f\r \x85\xa0\u1680"
    + "".join(chr(code) for code in range(0x2000, 0x200B))
    + "\u2028\u2029\u202f\u205f\u3000"
)


@dataclass
class ArcSourceLine:
    """One non-blank line of an arc text file; ``error`` is set when it is invalid."""

    path: str
    line_number: int
    source_arc: str
    source_text: str = ""
    translated_text: str = ""
    has_translation: bool = False
    error: str = ""

    @property
    def valid(self) -> bool:
        return not self.error


def _extension(name: str) -> str:
    name = os.path.basename(name)
    dot = name.rfind(".")
    return name[dot:] if dot >= 0 else ""


def normalize_arc_from_text_filename(file_name: str) -> str:
    """Map ``script.txt`` or ``script.arc.txt`` to ``script.arc``."""
    ext = _extension(file_name)
    base = file_name[: len(file_name) - len(ext)] if ext else file_name
    if base.lower().endswith(".arc"):
        return base
    return base + ".arc"


def parse_arc_source_text_line(line: str) -> tuple[str, str, bool] | None:
    """Parse ``source`` or ``source<TAB...>translation``.

    Returns ``(source_text, translated_text, has_translation)``, or None when
    the line has no usable source text.
    """
    line = line.rstrip("\r").removeprefix(_BOM)
    if is_blank_source_text(line):
        return None

    start = line.find("\t")
    if start == -1:
        return line, "", False

    end = start
    while end < len(line) and line[end] == "\t":
        end += 1

    source_text = normalize_source_text(line[:start])
    if not source_text:
        return None
    translated_text = line[end:].strip(_SPACE)
    if not translated_text:
        return source_text, "", False
    return source_text, translated_text, True


def _walk_files(root: str) -> Iterator[str]:
    with os.scandir(root) as it:
        entries = sorted(it, key=lambda entry: entry.name)
    for entry in entries:
        if entry.is_dir(follow_symlinks=False):
            yield from _walk_files(entry.path)
        else:
            yield entry.path


def collect_arc_source_text_files(root_path: str) -> list[str]:
    """Return ``root_path`` if it is a ``.txt`` file, else the ``.txt`` files under it in walk order."""
    info = os.stat(root_path)
    if not stat.S_ISDIR(info.st_mode):
        if _extension(root_path).lower() != ".txt":
            raise ValueError("import source must be a .txt file or a directory containing .txt files")
        return [root_path]
    return [path for path in _walk_files(root_path) if _extension(path).lower() == ".txt"]


def _read_lines(path: str) -> Iterator[tuple[int, str]]:
    pieces = Path(path).read_bytes().split(b"\n")
    if pieces and pieces[-1] == b"":
        pieces.pop()
    for number, piece in enumerate(pieces, start=1):
        if len(piece) > _MAX_LINE_BYTES:
            raise ValueError(f"{path}:{number} line too long")
        piece = piece.removesuffix(b"\r")
        yield number, piece.decode("utf-8", errors="replace")


def iter_arc_source_text_lines(path: str) -> Iterator[ArcSourceLine]:
    """Yield the non-blank lines of one arc text file, with the arc taken from its name."""
    source_arc = normalize_arc_from_text_filename(os.path.basename(path))
    for line_number, line in _read_lines(path):
        if not line.strip(_SPACE):
            continue
        parsed = parse_arc_source_text_line(line)
        if parsed is None:
            yield ArcSourceLine(
                path=path,
                line_number=line_number,
                source_arc=source_arc,
                error=f"{path}:{line_number} invalid line",
            )
            continue
        source_text, translated_text, has_translation = parsed
        yield ArcSourceLine(
            path=path,
            line_number=line_number,
            source_arc=source_arc,
            source_text=source_text,
            translated_text=translated_text,
            has_translation=has_translation,
        )