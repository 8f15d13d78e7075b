"""Reading of translation-extract JSON files keyed by source text."""

from __future__ import annotations

import json
import os
import stat
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from ksworkbench.csvformats import normalize_ks_extract_source_file

_TRANSLATION_KEYS = frozenset({"official", "offical", "translation", "translatedtext"})
_SCRIPT_FILES_KEY = "scriptfiles"
_JSON_SPACE = " \t\n\r"
_PREVIEW_LIMIT = 80
_PREVIEW_CUT = 77

_SPACE = (
    "\t\n\v\f\r \x85\xa0\u1680"
    + "".join(chr(code) for code in range(0x2000, 0x200B))
    + "\u2028\u2029\u202f\u205f\u3000"
)


@dataclass
class ExtractEntryValue:
    """The translation and script files recorded for one source text."""

    translated_text: str = ""
    script_files: Optional[list[str]] = None


@dataclass
class ExtractEntry:
    """One entry of an extract file, numbered from 1; ``error`` is set when it is unusable."""

    entry_index: int
    source_text: str
    value: ExtractEntryValue = field(default_factory=ExtractEntryValue)
    error: str = ""

    @property
    def valid(self) -> bool:
        return not self.error


def _extension(name: str) -> str:
    dot = name.rfind(".")
    return name[dot:] if dot >= 0 else ""


def _walk_files(root: str) -> Iterator[str]:
    with os.scandir(root) as it:
        entries = sorted(it, key=lambda entry: entry.name)
    for entry in entries:
        if entry.is_dir(follow_symlinks=False):
            yield from _walk_files(entry.path)
        else:
            yield entry.path


def collect_extract_json_files(root_path: str) -> list[str]:
    """Return ``root_path`` if it is a ``.json`` file, or the sorted ``.json`` files under it."""
    info = os.stat(root_path)
    if not stat.S_ISDIR(info.st_mode):
        if _extension(os.path.basename(root_path)).lower() != ".json":
            raise ValueError("import source must be a .json file or a directory containing .json files")
        return [root_path]
    files = [
        path for path in _walk_files(root_path) if _extension(os.path.basename(path)).lower() == ".json"
    ]
    return sorted(files)


def decode_extract_entry_value(raw: Any) -> ExtractEntryValue:
    """Interpret the decoded JSON value of one entry.

    Translation keys and ``scriptFiles`` match case-insensitively; other keys
    are ignored. Values of the wrong kind raise ``ValueError``.
    """
    result = ExtractEntryValue()
    if raw is None:
        return result
    if not isinstance(raw, dict):
        raise ValueError("entry value must be an object")

    for key, value in raw.items():
        name = key.strip(_SPACE).lower()
        if name in _TRANSLATION_KEYS:
            if value is None:
                result.translated_text = ""
            elif isinstance(value, str):
                result.translated_text = value
            else:
                raise ValueError("translation field must be a string")
        elif name == _SCRIPT_FILES_KEY:
            if value is None:
                result.script_files = None
                continue
            if not isinstance(value, list) or not all(item is None or isinstance(item, str) for item in value):
                raise ValueError("scriptFiles field must be an array of strings")
            result.script_files = ["" if item is None else item for item in value]
    return result


def normalize_extract_script_files(values: Optional[Iterable[str]]) -> list[str]:
    """Normalise script names to ``.ks`` form, dropping blanks and repeats."""
    seen: dict[str, None] = {}
    for value in values or ():
        source_file = normalize_ks_extract_source_file(value)
        if source_file:
            seen.setdefault(source_file, None)
    return list(seen)


def extract_entry_preview(value: str) -> str:
    """Return ``value`` trimmed, cut to 77 bytes plus ``...`` when longer than 80."""
    value = value.strip(_SPACE)
    encoded = value.encode("utf-8")
    if len(encoded) <= _PREVIEW_LIMIT:
        return value
    return encoded[:_PREVIEW_CUT].decode("utf-8", errors="ignore") + "..."


def _quote(value: str) -> str:
    return json.dumps(value, ensure_ascii=False)


def _skip_space(text: str, pos: int) -> int:
    while pos < len(text) and text[pos] in _JSON_SPACE:
        pos += 1
    return pos


def _read_text(path: str) -> str:
    raw = Path(path).read_bytes()
    if raw.startswith(b"\xef\xbb\xbf"):
        raw = raw[3:]
    return raw.decode("utf-8", errors="replace")


def _decode_at(decoder: json.JSONDecoder, path: str, text: str, pos: int) -> tuple[Any, int]:
    if pos >= len(text):
        raise ValueError(f"{path}: translation extract json ended unexpectedly")
    try:
        return decoder.raw_decode(text, pos)
    except json.JSONDecodeError as exc:
        raise ValueError(f"{path}: {exc}") from exc


def _iter_entries(path: str, text: str) -> Iterator[ExtractEntry]:
    decoder = json.JSONDecoder()
    pos = _skip_space(text, 0)
    if pos >= len(text) or text[pos] != "{":
        raise ValueError(f"{path}: translation extract json must be a top-level object")

    pos = _skip_space(text, pos + 1)
    if pos < len(text) and text[pos] == "}":
        return

    entry_index = 0
    while True:
        key, pos = _decode_at(decoder, path, text, pos)
        if not isinstance(key, str):
            raise ValueError(f"{path}: invalid entry key")
        pos = _skip_space(text, pos)
        if pos >= len(text) or text[pos] != ":":
            raise ValueError(f"{path}: expected ':' after entry key")
        raw_value, pos = _decode_at(decoder, path, text, _skip_space(text, pos + 1))

        entry_index += 1
        try:
            value = decode_extract_entry_value(raw_value)
        except ValueError as exc:
            message = f"{path}: entry {entry_index} ({_quote(extract_entry_preview(key))}): {exc}"
            yield ExtractEntry(entry_index=entry_index, source_text=key, error=message)
        else:
            yield ExtractEntry(entry_index=entry_index, source_text=key, value=value)

        pos = _skip_space(text, pos)
        if pos >= len(text):
            raise ValueError(f"{path}: translation extract json ended unexpectedly")
        if text[pos] == "}":
            return
        if text[pos] != ",":
            raise ValueError(f"{path}: expected ',' or '}}' between entries")
        pos = _skip_space(text, pos + 1)


def iter_extract_json_file(path: str) -> Iterator[ExtractEntry]:
    """Read an extract file and yield its entries in file order.

    The file is read before this returns; structural problems raise
    ``ValueError`` when reached, while a badly formed entry value is yielded
    with ``error`` set.
    """
    text = _read_text(path)
    return _iter_entries(path, text)