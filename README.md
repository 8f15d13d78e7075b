# ksworkbench

A library for the dialogue text of KAG (`.ks`) game scripts. It pulls
translatable lines out of scripts, reads translation files in several
exchange formats, and keeps machine-translation requests within a byte
budget. It has no dependencies beyond the standard library.

## Install

```
pip install .
```

To run the tests, install the `test` extra and run pytest:

```
pip install ".[test]"
pytest
```

## Modules

- `ksworkbench.textutil`: `normalize_source_text` turns `\r\n` and `\r`
  into `\n`, removes zero-width and other invisible characters, and trims
  surrounding whitespace. `is_blank_source_text` reports whether anything
  is left after that. `source_text_cleanup_chars` lists the characters the
  cleanup covers.
- `ksworkbench.kag`: `parse_ks_file(path, arc_name)` and
  `parse_ks_dir(root, recursive, arc_name)` read scripts and return
  `KagEntry` records. An entry's type is one of `talk`, `narration`,
  `playvoice`, `playvoice_notext`, `subtitle`, `choice` or `calldialog`.
  `detect_and_decode` reads UTF-8 with a BOM and UTF-16 LE or BE with a
  BOM. Without a BOM it guesses between UTF-8 and Shift_JIS (cp932) by
  looking for kana and CJK characters. When `arc_name` is empty, the arc
  is taken from an `*.arc_extracted` directory in the path.
  `parse_ks_text`, `parse_tag_attributes`, `collect_ks_files`,
  `normalize_text`, `detect_arc_name` and `has_cjk` are public as well.
- `ksworkbench.foldertext`: `iter_folder_text_lines(root_dir)` walks
  `<name>.arc_extracted/<script>.txt` files of `source<TAB>translation`
  lines. It yields `FolderTextLine` records carrying the arc (`<name>.arc`)
  and the script (`<script>.ks`).
- `ksworkbench.arcsourcetext`: `collect_arc_source_text_files` and
  `iter_arc_source_text_lines` read one `.txt` file per arc. Each line holds
  either the source text alone or the source text and a translation. The
  results are `ArcSourceLine` records.
- `ksworkbench.csvformats`: `iter_ks_extract_rows(path)` reads
  full-identity extraction CSVs (type, voice id, role, arc, file, source,
  translation) with Chinese or English headers and yields `KSExtractRow`
  records. It raises `ValueError` when a required column is missing. It also
  provides the shared helpers `read_csv_rows`, `index_header`,
  `record_value`, `normalize_csv_header`, `normalize_ks_extract_source_arc`
  and `normalize_ks_extract_source_file`.
- `ksworkbench.translatedcsv`: `collect_translated_csv_files` finds
  `*_translated.csv` files. `parse_translated_csv_files` parses them on a
  thread pool and yields `ParsedCSVFile` objects in the order given.
  `x_translated.csv` maps to the script `x.ks`.
- `ksworkbench.jsonformats`: `iter_extract_json_file(path)` reads a
  translation-extract JSON object keyed by source text and yields one
  `ExtractEntry` per key. Each entry carries its translation (`Official`,
  `translation` and similar keys) and its normalised `scriptFiles`.
- `ksworkbench.chunking`: `translate_items_with_chunking(translate, items,
  target_field, budget)` groups `TranslationItem`s into requests of at most
  `budget` UTF-8 bytes. An item that is too long is split at sentence or
  punctuation boundaries, sent in pieces, and the pieces are joined again.
  `translation_byte_budget` gives the usual budget for a translator name.

In every reader, a line or entry that cannot be used is yielded with its
`error` field set. A problem with the file as a whole raises `ValueError`
or `OSError`.

## Examples

```python
from ksworkbench.kag import parse_ks_file

for entry in parse_ks_file("scene01.ks", "script.arc"):
    print(entry.type, entry.voice_id, entry.source_text)
```

```python
from ksworkbench.chunking import (
    TranslationItem,
    TranslationResult,
    translate_items_with_chunking,
)

def echo(items):
    return [TranslationResult(id=item.id, text=item.source_text) for item in items]

items = [TranslationItem(id=1, source_text="長文テキスト。" * 900)]
results = translate_items_with_chunking(echo, items, "translated", 5000)
assert results[0].text == items[0].source_text
```

## What it does not do

ksworkbench only reads and prepares data. The following are left to the
program that uses it:

- Storage: there is no database of entries. The readers yield records, and
  nothing matches them against stored entries or saves them.
- Translator clients: the `translate` callable given to the chunking
  functions must be supplied by the caller.
- Translation batching and reuse of earlier translations are not provided.
- There is no command-line tool and no graphical interface.