"""Normalisation of script source text."""

from __future__ import annotations

_CLEANUP_CHARS: tuple[str, ...] = (
    "\u0009",
    "\u000a",
    "\u000b",
    "\u000c",
    "\u000d",
    "\u0020",
    "\u00a0",
    "\u180e",
    "\u200b",
    "\u200c",
    "\u200d",
    "\u2060",
    "\u3000",
    "\ufeff",
)

# Invisible characters dropped wherever they occur.
_IGNORED = frozenset("\u180e\u200b\u200c\u200d\u2060\ufeff")

# Characters with the Unicode White_Space property.
_WHITE_SPACE = frozenset(
    "\t\n\v\f\r \x85\xa0\u1680"
    + "".join(chr(code) for code in range(0x2000, 0x200B))
    + "\u2028\u2029\u202f\u205f\u3000"
)

_TRIM_CHARS = "".join(sorted(_WHITE_SPACE | _IGNORED))
_DROP_TABLE = {ord(char): None for char in _IGNORED}


def source_text_cleanup_chars() -> list[str]:
    """Return a fresh list of the characters that source-text cleanup handles."""
    return list(_CLEANUP_CHARS)


def normalize_source_text(value: str) -> str:
    """Unify line endings, drop invisible characters and trim surrounding space."""
    value = value.replace("\r\n", "\n").replace("\r", "\n")
    value = value.translate(_DROP_TABLE)
    return value.strip(_TRIM_CHARS)


def is_blank_source_text(value: str) -> bool:
    """Return True when nothing is left of ``value`` after normalisation."""
    return normalize_source_text(value) == ""