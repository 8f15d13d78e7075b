"""Splitting of translation requests so that each stays within a byte budget.

Sizes and offsets are counted in bytes of the UTF-8 encoding, and cuts only
ever fall on character boundaries.
"""

from __future__ import annotations

import dataclasses
import itertools
import logging
from collections.abc import Callable, Iterator, Sequence
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)

_ENCODING = "utf-8"
_ERRORS = "surrogatepass"

_BAIDU_BUDGET = 5000
_GOOGLE_BUDGET = 20000
_OPENAI_BUDGET = 12000
_DEFAULT_BUDGET = 8000

_BOUNDARY_CANDIDATES: tuple[bytes, ...] = tuple(
    candidate.encode(_ENCODING)
    for candidate in ("\n\n", "\n", "。", "！", "？", "…", "；", "：", "，", "、", ",", ".", " ", "\t")
)

_SPACE = (
    "\t\n\v\f\r \x85\xa0\u1680"
    + "".join(chr(code) for code in range(0x2000, 0x200B))
    + "\u2028\u2029\u202f\u205f\u3000"
)


@dataclass
class TranslationItem:
    """One text sent to a translator, with the context around it."""

    id: int = 0
    type: str = ""
    voice_id: str = ""
    role: str = ""
    source_arc: str = ""
    source_file: str = ""
    source_text: str = ""
    translated_text: str = ""
    polished_text: str = ""
    previous_source_text: str = ""
    next_source_text: str = ""


@dataclass
class TranslationResult:
    """The text a translator returned for the item with the same id."""

    id: int
    text: str


@dataclass
class ChunkedPiece:
    """A part of an item; ``original_id`` is None when the item was not split."""

    item: TranslationItem
    original_id: Optional[int] = None
    order: int = 0


Translate = Callable[[list[TranslationItem]], list[TranslationResult]]


def _encode(text: str) -> bytes:
    return text.encode(_ENCODING, _ERRORS)


def _decode(data: bytes) -> str:
    return data.decode(_ENCODING, _ERRORS)


def _is_polished(target_field: str) -> bool:
    return target_field.strip(_SPACE).lower() == "polished"


def translation_byte_budget(translator_name: str) -> int:
    """Return the request size limit, in bytes, for a translator."""
    name = translator_name.strip(_SPACE)
    if name == "baidu-translate":
        return _BAIDU_BUDGET
    if name == "google-translate":
        return _GOOGLE_BUDGET
    if name in ("openai-chat", "openai-responses"):
        return _OPENAI_BUDGET
    return _DEFAULT_BUDGET


def translation_item_byte_size(item: TranslationItem, target_field: str) -> int:
    """Return how many bytes an item adds to a request."""
    parts = [item.source_text, item.type, item.role, item.voice_id, item.source_arc, item.source_file]
    if _is_polished(target_field):
        parts.append(item.translated_text)
    return sum(len(_encode(part)) for part in parts)


def _is_char_start(byte: int) -> bool:
    return byte & 0xC0 != 0x80


def _safe_prefix(data: bytes, max_bytes: int) -> int:
    if max_bytes <= 0:
        return 0
    if len(data) <= max_bytes:
        return len(data)
    cut = next((i for i in range(max_bytes, 0, -1) if _is_char_start(data[i])), 0)
    if cut:
        return cut
    return next((i for i in range(1, len(data)) if _is_char_start(data[i])), len(data))


def _boundary(data: bytes, target: int) -> int:
    if target <= 0:
        return 0
    if len(data) <= target:
        return len(data)
    prefix = _safe_prefix(data, target)
    if prefix <= 0:
        return 0
    head = data[:prefix]
    for candidate in _BOUNDARY_CANDIDATES:
        index = head.rfind(candidate)
        if index >= 0:
            cut = index + len(candidate)
            if 0 < cut < len(data):
                return cut
    return prefix


def safe_utf8_prefix(text: str, max_bytes: int) -> int:
    """Return the longest byte length of ``text`` up to ``max_bytes`` ending on a character boundary.

    If even the first character is longer, its length is returned instead.
    """
    return _safe_prefix(_encode(text), max_bytes)


def find_chunk_boundary(text: str, target: int) -> int:
    """Return a byte offset near ``target`` at which to cut ``text``, preferring punctuation."""
    return _boundary(_encode(text), target)


def chunk_count_by_budget(text: str, budget: int) -> int:
    """Return how many chunks of ``budget`` bytes ``text`` needs, at least one."""
    if budget <= 0:
        return 1
    size = len(_encode(text))
    return max(1, -(-size // budget))


def _budgeted_chunks(data: bytes, budget: int) -> Iterator[bytes]:
    remaining = data
    while remaining:
        if len(remaining) <= budget:
            yield remaining
            return
        cut = _boundary(remaining, budget)
        if cut <= 0 or cut >= len(remaining):
            raise ValueError("unable to split long text safely")
        yield remaining[:cut]
        remaining = remaining[cut:]


def split_text_into_budgeted_chunks(text: str, budget: int) -> list[str]:
    """Cut ``text`` into consecutive chunks of at most ``budget`` bytes where possible."""
    if budget <= 0:
        raise ValueError("invalid text chunk budget")
    data = _encode(text)
    if len(data) <= budget:
        return [text]
    return [_decode(chunk) for chunk in _budgeted_chunks(data, budget)]


def split_text_into_count(text: str, count: int) -> list[str]:
    """Cut ``text`` into about ``count`` similar-sized parts; fewer if it cannot be cut further."""
    if count <= 1 or text == "":
        return [text]
    parts: list[str] = []
    remaining = _encode(text)
    remaining_parts = count
    while remaining_parts > 1:
        target = len(remaining) // remaining_parts
        if target <= 0:
            break
        cut = _boundary(remaining, target)
        if cut <= 0 or cut >= len(remaining):
            break
        parts.append(_decode(remaining[:cut]))
        remaining = remaining[cut:]
        remaining_parts -= 1
    parts.append(_decode(remaining))
    return parts


def split_paired_texts_into_budgeted_chunks(
    source_text: str, translated_text: str, budget: int
) -> tuple[list[str], list[str]]:
    """Cut a source text and its translation into the same number of parts, at least two."""
    count = max(chunk_count_by_budget(source_text, budget), chunk_count_by_budget(translated_text, budget), 2)
    return split_text_into_count(source_text, count), split_text_into_count(translated_text, count)


def _pieces(
    item: TranslationItem,
    sources: Sequence[str],
    translations: Sequence[str],
    synthetic_ids: Iterator[int],
) -> list[ChunkedPiece]:
    pieces = []
    for order, source in enumerate(sources):
        piece = dataclasses.replace(
            item,
            id=next(synthetic_ids),
            source_text=source,
            translated_text=translations[order],
            polished_text="",
            previous_source_text=sources[order - 1] if order > 0 else "",
            next_source_text=sources[order + 1] if order + 1 < len(sources) else "",
        )
        pieces.append(ChunkedPiece(item=piece, original_id=item.id, order=order))
    return pieces


def _split_source(item: TranslationItem, budget: int, synthetic_ids: Iterator[int]) -> list[ChunkedPiece]:
    chunks = split_text_into_budgeted_chunks(item.source_text, max(1, budget // 2))
    return _pieces(item, chunks, [""] * len(chunks), synthetic_ids)


def _split_polish(item: TranslationItem, budget: int, synthetic_ids: Iterator[int]) -> list[ChunkedPiece]:
    if not item.translated_text.strip(_SPACE):
        return _split_source(item, budget, synthetic_ids)
    sources, translations = split_paired_texts_into_budgeted_chunks(
        item.source_text, item.translated_text, max(1, budget // 2)
    )
    if len(sources) != len(translations):
        raise ValueError(f"unable to split polished translation item {item.id} into aligned chunks")
    return _pieces(item, sources, translations, synthetic_ids)


def split_item_for_budget(
    item: TranslationItem, target_field: str, budget: int, synthetic_ids: Iterator[int]
) -> list[ChunkedPiece]:
    """Split an item that exceeds ``budget`` into pieces with ids drawn from ``synthetic_ids``.

    An item that fits comes back as one piece whose ``original_id`` is None.
    """
    if translation_item_byte_size(item, target_field) <= budget:
        return [ChunkedPiece(item=item)]
    if _is_polished(target_field):
        return _split_polish(item, budget, synthetic_ids)
    return _split_source(item, budget, synthetic_ids)


def translate_items_within_budget(
    translate: Translate, items: Sequence[TranslationItem], target_field: str, budget: int
) -> list[TranslationResult]:
    """Send items in requests of at most ``budget`` bytes and collect the results in order."""
    results: list[TranslationResult] = []
    current: list[TranslationItem] = []
    current_bytes = 0
    for item in items:
        size = translation_item_byte_size(item, target_field)
        if size > budget:
            raise ValueError(f"translation item {item.id} exceeds request budget after chunking")
        if current and current_bytes + size > budget:
            results.extend(translate(current))
            current = []
            current_bytes = 0
        current.append(item)
        current_bytes += size
    if current:
        results.extend(translate(current))
    return results


def _log_long_entry(item: TranslationItem, target_field: str, chunk_count: int, budget: int) -> None:
    if chunk_count < 2:
        return
    parts = [value for value in (item.source_arc, item.source_file) if value.strip(_SPACE)]
    preview = item.source_text.strip(_SPACE).replace("\r", " ").replace("\n", " ")
    encoded = _encode(preview)
    if len(encoded) > 72:
        preview = encoded[:72].decode(_ENCODING, "ignore") + "..."
    if preview:
        parts.append(preview)
    logger.info(
        "Long entry chunking: entry %d (%s), target field %s, %d chunks, budget %d, "
        "source bytes %d, existing translated bytes %d",
        item.id,
        " / ".join(parts),
        "polished" if _is_polished(target_field) else "translated",
        chunk_count,
        budget,
        len(_encode(item.source_text)),
        len(_encode(item.translated_text)),
    )


def translate_items_with_chunking(
    translate: Translate, items: Sequence[TranslationItem], target_field: str, budget: int
) -> list[TranslationResult]:
    """Translate items, splitting any that exceed ``budget`` and joining their parts back.

    With a budget of zero or less, all items go in a single request.
    """
    if not items:
        return []
    if budget <= 0:
        return translate(list(items))

    results: list[TranslationResult] = []
    pending: list[TranslationItem] = []
    pending_bytes = 0
    synthetic_ids = itertools.count(-1, -1)

    for item in items:
        pieces = split_item_for_budget(item, target_field, budget, synthetic_ids)
        if len(pieces) == 1 and pieces[0].original_id is None:
            size = translation_item_byte_size(item, target_field)
            if pending and pending_bytes + size > budget:
                results.extend(translate_items_within_budget(translate, pending, target_field, budget))
                pending = []
                pending_bytes = 0
            pending.append(item)
            pending_bytes += size
            continue

        if pending:
            results.extend(translate_items_within_budget(translate, pending, target_field, budget))
            pending = []
            pending_bytes = 0

        _log_long_entry(item, target_field, len(pieces), budget)
        chunk_results = translate_items_within_budget(
            translate, [piece.item for piece in pieces], target_field, budget
        )
        text_by_id = {result.id: result.text for result in chunk_results}
        ordered = [""] * len(pieces)
        for piece in pieces:
            if piece.item.id not in text_by_id:
                raise ValueError(
                    f"translator did not return a result for chunk {piece.order + 1} of entry {piece.original_id}"
                )
            ordered[piece.order] = text_by_id[piece.item.id]
        results.append(TranslationResult(id=item.id, text="".join(ordered)))

    if pending:
        results.extend(translate_items_within_budget(translate, pending, target_field, budget))
    return results