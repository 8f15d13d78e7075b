"""Reading of ``ks_extract`` CSV exports and shared CSV helpers."""

from __future__ import annotations

import csv
import os
from collections.abc import Iterable, Iterator
from dataclasses import dataclass

HEADER_TYPE = "\u7c7b\u578b"
HEADER_ROLE = "\u89d2\u8272"
HEADER_SOURCE_ARC = "\u6240\u5c5earc"
HEADER_SOURCE_FILE = "\u6e90\u6587\u4ef6"
HEADER_SOURCE_TEXT = "\u539f\u6587"
HEADER_TARGET_TEXT = "\u8bd1\u6587"

_BOM = "\ufeff"
_EXTRACTED_SUFFIX = "_extracted"

# Characters with the Unicode White_Space property.
_SPACE = (
    "\t\n\v\f\r \x85\xa0\u1680"
    + "".join(chr(code) for code in range(0x2000, 0x200B))
    + "\u2028\u2029\u202f\u205f\u3000"
)

_SEPARATORS = "/\\" if os.sep == "\\" else "/"

_REQUIRED_COLUMNS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("type", (HEADER_TYPE, "type")),
    ("voice_id", ("voice_id",)),
    ("role", (HEADER_ROLE, "role", "name")),
    ("source_arc", (HEADER_SOURCE_ARC, "source_arc", "arc")),
    ("source_file", (HEADER_SOURCE_FILE, "source_file")),
    ("source_text", (HEADER_SOURCE_TEXT, "source_text", "text")),
    ("translated_text", (HEADER_TARGET_TEXT, "translated_text", "translation")),
)


@dataclass
class KSExtractRow:
    """One data row of a ``ks_extract`` CSV; ``error`` is set when it is unusable."""

    line_number: int
    entry_type: str = ""
    voice_id: str = ""
    role: str = ""
    source_arc: str = ""
    source_file: str = ""
    source_text: str = ""
    translated_text: str = ""
    error: str = ""

    @property
    def valid(self) -> bool:
        return not self.error


def _trim(value: str) -> str:
    return value.strip(_SPACE)


def _base_name(path: str) -> str:
    if not path:
        return "."
    stripped = path.rstrip(_SEPARATORS)
    if not stripped:
        return os.sep
    cut = max(stripped.rfind(sep) for sep in _SEPARATORS)
    return stripped[cut + 1 :]


def _extension(path: str) -> str:
    name = path[max(path.rfind(sep) for sep in _SEPARATORS) + 1 :]
    dot = name.rfind(".")
    return name[dot:] if dot >= 0 else ""


def normalize_csv_header(value: str) -> str:
    """Trim, drop a leading byte-order mark and lower-case a header cell."""
    return _trim(value).removeprefix(_BOM).lower()


def index_header(header: Iterable[str], *candidates: str) -> int:
    """Return the index of the first header cell matching any candidate, or -1."""
    wanted = {normalize_csv_header(candidate) for candidate in candidates}
    for index, value in enumerate(header):
        if normalize_csv_header(value) in wanted:
            return index
    return -1


def record_value(record: list[str], index: int) -> str:
    """Return the trimmed cell at ``index``, or an empty string if it is absent."""
    if index < 0 or index >= len(record):
        return ""
    return _trim(record[index].removeprefix(_BOM))


def normalize_ks_extract_source_arc(value: str) -> str:
    """Reduce an arc column value to an ``.arc`` file name."""
    value = _trim(value)
    if not value:
        return ""
    value = _base_name(value)
    if value.lower().endswith(".arc" + _EXTRACTED_SUFFIX):
        return value[: -len(_EXTRACTED_SUFFIX)]
    if not _extension(value):
        return value + ".arc"
    return value


def normalize_ks_extract_source_file(value: str) -> str:
    """Reduce a source-file column value to a script name, mapping ``.txt`` to ``.ks``."""
    value = _trim(value)
    if not value:
        return ""
    value = _base_name(value)
    ext = _extension(value)
    if ext.lower() == ".txt":
        return value[: -len(ext)] + ".ks"
    return value


def read_csv_rows(path: str) -> Iterator[list[str]]:
    """Yield the non-empty records of a CSV file, ignoring a leading byte-order mark."""
    with open(path, "r", encoding="utf-8-sig", errors="replace", newline="") as handle:
        reader = csv.reader(handle, strict=True)
        try:
            for record in reader:
                if record:
                    yield record
        except csv.Error as exc:
            raise ValueError(f"{path}: {exc}") from exc


def locate_ks_extract_columns(header: list[str]) -> dict[str, int]:
    """Map each required column to its index in ``header``.

    Raises ``ValueError`` naming the first required column that is missing.
    """
    columns: dict[str, int] = {}
    for name, candidates in _REQUIRED_COLUMNS:
        index = index_header(header, *candidates)
        if index < 0:
            raise ValueError(f"ks_extract csv missing required column: {name}")
        columns[name] = index
    return columns


def _iter_rows(file_path: str, rows: Iterator[list[str]], columns: dict[str, int]) -> Iterator[KSExtractRow]:
    for line_number, record in enumerate(rows, start=2):
        row = KSExtractRow(
            line_number=line_number,
            entry_type=record_value(record, columns["type"]),
            voice_id=record_value(record, columns["voice_id"]),
            role=record_value(record, columns["role"]),
            source_arc=normalize_ks_extract_source_arc(record_value(record, columns["source_arc"])),
            source_file=normalize_ks_extract_source_file(record_value(record, columns["source_file"])),
            source_text=_normalize_text(record_value(record, columns["source_text"])),
            translated_text=record_value(record, columns["translated_text"]),
        )
        if not row.source_arc or not row.source_file or not row.source_text:
            row.error = f"{file_path}:{line_number} missing required values"
        yield row


def _normalize_text(value: str) -> str:
    from ksworkbench.textutil import normalize_source_text

    return normalize_source_text(value)


def iter_ks_extract_rows(path: str) -> Iterator[KSExtractRow]:
    """Open a ``ks_extract`` CSV, check its header and yield its data rows.

    The file is opened and its header checked before this returns.
    """
    file_path = _trim(path)
    if not file_path:
        raise ValueError("import csv file is required")
    rows = read_csv_rows(file_path)
    header = next(rows, None)
    if header is None:
        raise ValueError(f"{file_path}: csv file is empty")
    columns = locate_ks_extract_columns(header)
    return _iter_rows(file_path, rows, columns)