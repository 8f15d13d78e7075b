"""Reading of tab-separated translation text files laid out by arc and script."""

from __future__ import annotations

import os
import stat
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path

from ksworkbench.textutil import normalize_source_text

_EXTRACTED_SUFFIX = "_extracted"
_MAX_LINE_BYTES = 1024 * 1024


@dataclass
class FolderTextLine:
    """One non-blank line of an import file; ``error`` is set when it is invalid."""

    path: str
    line_number: int
    source_arc: str
    source_file: str
    source_text: str = ""
    translated_text: str = ""
    error: str = ""

    @property
    def valid(self) -> bool:
        return not self.error


def _go_ext(name: str) -> str:
    base = os.path.basename(name)
    dot = base.rfind(".")
    return base[dot:] if dot >= 0 else ""


def normalize_import_arc(dir_name: str) -> str:
    """Map an ``x.arc_extracted`` directory name to ``x.arc``."""
    if dir_name.lower().endswith(".arc" + _EXTRACTED_SUFFIX):
        return dir_name[: -len(_EXTRACTED_SUFFIX)]
    return dir_name


def normalize_import_source_file(file_name: str) -> str:
    """Replace the extension of ``file_name`` with ``.ks``."""
    ext = _go_ext(file_name)
    base = file_name[: len(file_name) - len(ext)] if ext else file_name
    return base + ".ks"


def split_import_line(line: str) -> tuple[str, str] | None:
    """Split ``source<TAB...>translation``; return None if either side is empty."""
    start = line.find("\t")
    if start == -1:
        return None
    end = start
    while end < len(line) and line[end] == "\t":
        end += 1
    left = normalize_source_text(line[:start])
    right = line[end:].strip()
    if not left or not right:
        return None
    return left, right


def _walk_files(root: str) -> Iterator[str]:
    info = os.stat(root)
    if not stat.S_ISDIR(info.st_mode):
        yield root
        return
    with os.scandir(root) as it:
        entries = sorted(it, key=lambda entry: entry.name)
    for entry in entries:
        if entry.is_dir(follow_symlinks=False):
            yield from _walk_files(entry.path)
        else:
            yield entry.path


def _read_lines(path: str) -> Iterator[tuple[int, str]]:
    pieces = Path(path).read_bytes().split(b"\n")
    if pieces and pieces[-1] == b"":
        pieces.pop()
    for number, piece in enumerate(pieces, start=1):
        if len(piece) > _MAX_LINE_BYTES:
            raise ValueError(f"{path}:{number} line too long")
        yield number, piece.decode("utf-8", errors="replace").rstrip("\r")


def iter_folder_text_lines(root_dir: str) -> Iterator[FolderTextLine]:
    """Yield the lines of every ``.txt`` file under ``root_dir`` in walk order."""
    root = root_dir.strip()
    if not root:
        raise ValueError("import directory is required")

    for path in _walk_files(root):
        name = os.path.basename(path)
        if _go_ext(name).lower() != ".txt":
            continue
        source_arc = normalize_import_arc(os.path.basename(os.path.dirname(path)))
        source_file = normalize_import_source_file(name)

        for line_number, line in _read_lines(path):
            if not line.strip():
                continue
            parsed = split_import_line(line)
            if parsed is None:
                yield FolderTextLine(
                    path=path,
                    line_number=line_number,
                    source_arc=source_arc,
                    source_file=source_file,
                    error=f"{path}:{line_number} invalid line",
                )
                continue
            source_text, translated_text = parsed
            yield FolderTextLine(
                path=path,
                line_number=line_number,
                source_arc=source_arc,
                source_file=source_file,
                source_text=source_text,
                translated_text=translated_text,
            )