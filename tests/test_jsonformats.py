import pytest

from ksworkbench.jsonformats import (
    ExtractEntry,
    ExtractEntryValue,
    collect_extract_json_files,
    decode_extract_entry_value,
    extract_entry_preview,
    iter_extract_json_file,
    normalize_extract_script_files,
)


def _write(tmp_path, name, content):
    path = tmp_path / name
    path.write_text(content, encoding="utf-8")
    return str(path)


def test_entry_lists_all_script_files(tmp_path):
    content = "\ufeff" + """{
  "あっ、にゃんにゃん♪": {
    "Official": "Oh, look! It's a cat!",
    "scriptFiles": [
      "b_christmas2024_0002.ks",
      "d1_rrc_00880.ks"
    ]
  }
}"""
    path = _write(tmp_path, "translation_extract.json", content)
    entries = list(iter_extract_json_file(path))
    assert entries == [
        ExtractEntry(
            entry_index=1,
            source_text="あっ、にゃんにゃん♪",
            value=ExtractEntryValue(
                translated_text="Oh, look! It's a cat!",
                script_files=["b_christmas2024_0002.ks", "d1_rrc_00880.ks"],
            ),
        )
    ]
    assert normalize_extract_script_files(entries[0].value.script_files) == [
        "b_christmas2024_0002.ks",
        "d1_rrc_00880.ks",
    ]


def test_unmatched_entry_is_read_once(tmp_path):
    content = """{
  "missing line": {
    "Official": "translated",
    "scriptFiles": [
      "missing_a.ks",
      "missing_b.ks"
    ]
  }
}"""
    path = _write(tmp_path, "translation_extract.json", content)
    entries = list(iter_extract_json_file(path))
    assert len(entries) == 1
    assert entries[0].source_text == "missing line"
    assert entries[0].value.script_files == ["missing_a.ks", "missing_b.ks"]
    assert entries[0].valid


def test_single_script_file_entry(tmp_path):
    content = '{\n  "same line": {\n    "Official": "translated",\n    "scriptFiles": ["scene.ks"]\n  }\n}'
    path = _write(tmp_path, "translation_extract.json", content)
    (entry,) = iter_extract_json_file(path)
    assert entry.value == ExtractEntryValue(translated_text="translated", script_files=["scene.ks"])


def test_bad_entry_value_is_reported_and_reading_continues(tmp_path):
    path = _write(tmp_path, "mixed.json", '{"x": 5, "y": {"Translation": "t"}}')
    first, second = iter_extract_json_file(path)
    assert first.error == f'{path}: entry 1 ("x"): entry value must be an object'
    assert not first.valid
    assert second.entry_index == 2
    assert second.value.translated_text == "t"


def test_bad_translation_type_reported(tmp_path):
    path = _write(tmp_path, "bad.json", '{"x": {"Official": 3}}')
    (entry,) = iter_extract_json_file(path)
    assert entry.error.endswith("translation field must be a string")


def test_empty_object_yields_nothing(tmp_path):
    path = _write(tmp_path, "empty.json", "  { }  ")
    assert list(iter_extract_json_file(path)) == []


def test_top_level_array_raises(tmp_path):
    path = _write(tmp_path, "array.json", "[1, 2]")
    with pytest.raises(ValueError, match="top-level object"):
        list(iter_extract_json_file(path))


def test_truncated_file_raises_after_earlier_entries(tmp_path):
    path = _write(tmp_path, "cut.json", '{"a": {"Official": "x"}, "b": ')
    entries = iter_extract_json_file(path)
    first = next(entries)
    assert first.source_text == "a"
    with pytest.raises(ValueError):
        next(entries)


def test_non_string_key_raises(tmp_path):
    path = _write(tmp_path, "key.json", "{1: 2}")
    with pytest.raises(ValueError, match="invalid entry key"):
        list(iter_extract_json_file(path))


def test_decode_value_variants():
    assert decode_extract_entry_value(None) == ExtractEntryValue()
    assert decode_extract_entry_value({" Offical ": "a"}).translated_text == "a"
    assert decode_extract_entry_value({"TranslatedText": "b", "other": 1}).translated_text == "b"
    assert decode_extract_entry_value({"SCRIPTFILES": ["a.ks", None]}).script_files == ["a.ks", ""]
    assert decode_extract_entry_value({"official": None}).translated_text == ""


def test_decode_value_errors():
    with pytest.raises(ValueError, match="must be an object"):
        decode_extract_entry_value("text")
    with pytest.raises(ValueError, match="array of strings"):
        decode_extract_entry_value({"scriptFiles": "a.ks"})
    with pytest.raises(ValueError, match="array of strings"):
        decode_extract_entry_value({"scriptFiles": [1]})


def test_normalize_script_files_dedups_and_drops_blanks():
    assert normalize_extract_script_files(["a.txt", "a.ks", " ", "dir/b.ks"]) == ["a.ks", "b.ks"]
    assert normalize_extract_script_files(None) == []
    assert normalize_extract_script_files([]) == []


def test_preview():
    assert extract_entry_preview("  short  ") == "short"
    long_text = "x" * 100
    assert extract_entry_preview(long_text) == "x" * 77 + "..."
    assert extract_entry_preview("y" * 80) == "y" * 80


def test_preview_does_not_split_characters():
    preview = extract_entry_preview("あ" * 40)
    assert preview == "あ" * 25 + "..."


def test_collect_files_sorted(tmp_path):
    (tmp_path / "a").mkdir()
    _write(tmp_path, "b.json", "{}")
    _write(tmp_path / "a", "c.JSON", "{}")
    _write(tmp_path, "x.txt", "")
    files = collect_extract_json_files(str(tmp_path))
    assert files == sorted([str(tmp_path / "a" / "c.JSON"), str(tmp_path / "b.json")])


def test_collect_single_file(tmp_path):
    path = _write(tmp_path, "one.json", "{}")
    assert collect_extract_json_files(path) == [path]


def test_collect_rejects_other_file(tmp_path):
    path = _write(tmp_path, "one.txt", "")
    with pytest.raises(ValueError, match=".json file"):
        collect_extract_json_files(path)


def test_collect_missing_path(tmp_path):
    with pytest.raises(FileNotFoundError):
        collect_extract_json_files(str(tmp_path / "absent"))