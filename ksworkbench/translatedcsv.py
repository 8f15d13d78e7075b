"""Reading of ``*_translated.csv`` files that pair source text with a translation."""

from __future__ import annotations

import os
import stat
from collections.abc import Iterable, Iterator
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field

from ksworkbench.csvformats import (
    HEADER_SOURCE_TEXT,
    HEADER_TARGET_TEXT,
    index_header,
    read_csv_rows,
    record_value,
)
from ksworkbench.textutil import normalize_source_text

_MAX_PARSE_WORKERS = 8
_TRANSLATED_SUFFIX = "_translated"


@dataclass
class ParsedCSVLine:
    """One data row; ``error`` is set when the row has no usable source text."""

    line_number: int
    source_text: str = ""
    translated_text: str = ""
    error: str = ""

    @property
    def valid(self) -> bool:
        return not self.error


@dataclass
class ParsedCSVFile:
    """The rows of one translated CSV file and the script it belongs to."""

    index: int
    path: str
    source_file: str
    lines: list[ParsedCSVLine] = field(default_factory=list)


def _extension(name: str) -> str:
    name = os.path.basename(name)
    dot = name.rfind(".")
    return name[dot:] if dot >= 0 else ""


def normalize_translated_csv_source_file(path: str) -> str:
    """Derive the script name from a CSV path: ``x_translated.csv`` becomes ``x.ks``."""
    name = os.path.basename(path)
    ext = _extension(name)
    base = name[: len(name) - len(ext)] if ext else name
    base = base.removesuffix(_TRANSLATED_SUFFIX)
    if _extension(base).lower() == ".ks":
        return base
    return base + ".ks"


def _walk_files(root: str) -> Iterator[str]:
    with os.scandir(root) as it:
        entries = sorted(it, key=lambda entry: entry.name)
    for entry in entries:
        if entry.is_dir(follow_symlinks=False):
            yield from _walk_files(entry.path)
        else:
            yield entry.path


def collect_translated_csv_files(root_path: str) -> list[str]:
    """Return ``root_path`` if it is a ``.csv`` file, else the ``*_translated.csv`` files under it."""
    info = os.stat(root_path)
    if not stat.S_ISDIR(info.st_mode):
        if _extension(root_path).lower() != ".csv":
            raise ValueError(
                "import source must be a .csv file or a directory containing *_translated.csv files"
            )
        return [root_path]

    return [
        path
        for path in _walk_files(root_path)
        if _extension(path).lower() == ".csv"
        and os.path.basename(path).lower().endswith(_TRANSLATED_SUFFIX + ".csv")
    ]


def parse_worker_count(file_count: int) -> int:
    """Return how many files to parse at once: between 2 and 8, never more than the files."""
    if file_count <= 0:
        return 1
    workers = os.cpu_count() or 1
    workers = max(workers, 2)
    workers = min(workers, _MAX_PARSE_WORKERS, file_count)
    return max(workers, 1)


def parse_translated_csv_file(path: str, index: int) -> ParsedCSVFile:
    """Read one translated CSV file.

    Raises ``ValueError`` if the file is empty, lacks the source or translation
    column, or is not well-formed CSV.
    """
    parsed = ParsedCSVFile(index=index, path=path, source_file=normalize_translated_csv_source_file(path))
    rows = read_csv_rows(path)
    header = next(rows, None)
    if header is None:
        raise ValueError(f"{path}: csv file is empty")

    source_index = index_header(header, HEADER_SOURCE_TEXT, "source_text", "text")
    translated_index = index_header(header, HEADER_TARGET_TEXT, "translated_text", "translation")
    if source_index < 0 or translated_index < 0:
        raise ValueError(f"{path}: translated csv missing required columns")

    for line_number, record in enumerate(rows, start=2):
        line = ParsedCSVLine(
            line_number=line_number,
            source_text=normalize_source_text(record_value(record, source_index)),
            translated_text=record_value(record, translated_index),
        )
        if not line.source_text:
            line.error = f"{path}:{line_number} missing required values"
        parsed.lines.append(line)
    return parsed


def parse_translated_csv_files(paths: Iterable[str]) -> Iterator[ParsedCSVFile]:
    """Parse files in parallel and yield them in the order given.

    A file that fails to parse raises its error when its turn comes; work on
    later files is then abandoned.
    """
    path_list = list(paths)
    if not path_list:
        return
    executor = ThreadPoolExecutor(max_workers=parse_worker_count(len(path_list)))
    try:
        futures: list[Future[ParsedCSVFile]] = [
            executor.submit(parse_translated_csv_file, path, index) for index, path in enumerate(path_list)
        ]
        for future in futures:
            yield future.result()
    finally:
        executor.shutdown(wait=True, cancel_futures=True)