from pathlib import Path
from unittest import mock

import pytest

from ksworkbench.csvformats import HEADER_SOURCE_TEXT, HEADER_TARGET_TEXT
from ksworkbench.translatedcsv import (
    ParsedCSVFile,
    ParsedCSVLine,
    collect_translated_csv_files,
    normalize_translated_csv_source_file,
    parse_translated_csv_file,
    parse_translated_csv_files,
    parse_worker_count,
)

HEADER = "\ufeff" + HEADER_SOURCE_TEXT + "," + HEADER_TARGET_TEXT + "\n"


def _write(path: Path, content: str) -> str:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return str(path)


def test_normalize_source_file_strips_translated_suffix():
    assert normalize_translated_csv_source_file("/x/001_a_minigame_translated.csv") == "001_a_minigame.ks"
    assert normalize_translated_csv_source_file("002_unknown_translated.csv") == "002_unknown.ks"


def test_normalize_source_file_keeps_existing_ks_extension():
    assert normalize_translated_csv_source_file("scene.KS_translated.csv") == "scene.KS"
    assert normalize_translated_csv_source_file("plain.csv") == "plain.ks"


def test_parse_file_reads_rows_and_derives_source_file(tmp_path):
    path = _write(tmp_path / "001_a_minigame_translated.csv", HEADER + "source-a,target-a\nsource-b,target-b\n")
    parsed = parse_translated_csv_file(path, 3)
    assert parsed.index == 3
    assert parsed.source_file == "001_a_minigame.ks"
    assert parsed.lines == [
        ParsedCSVLine(line_number=2, source_text="source-a", translated_text="target-a"),
        ParsedCSVLine(line_number=3, source_text="source-b", translated_text="target-b"),
    ]


def test_parse_file_unknown_source_file(tmp_path):
    path = _write(tmp_path / "002_unknown_translated.csv", HEADER + "source-a,target-a\n")
    parsed = parse_translated_csv_file(path, 0)
    assert parsed.source_file == "002_unknown.ks"
    assert len(parsed.lines) == 1
    assert parsed.lines[0].valid


def test_parse_file_marks_missing_source_text(tmp_path):
    path = _write(tmp_path / "x_translated.csv", HEADER + "a,b\n  ,only-target\n")
    parsed = parse_translated_csv_file(path, 0)
    assert parsed.lines[1].error == f"{path}:3 missing required values"
    assert not parsed.lines[1].valid


def test_parse_file_accepts_english_headers(tmp_path):
    path = _write(tmp_path / "x_translated.csv", "text,translation\nhello,bonjour\n")
    parsed = parse_translated_csv_file(path, 0)
    assert parsed.lines[0].translated_text == "bonjour"


def test_parse_file_missing_columns(tmp_path):
    path = _write(tmp_path / "x_translated.csv", "foo,bar\n1,2\n")
    with pytest.raises(ValueError, match="missing required columns"):
        parse_translated_csv_file(path, 0)


def test_parse_file_empty(tmp_path):
    path = _write(tmp_path / "x_translated.csv", "")
    with pytest.raises(ValueError, match="empty"):
        parse_translated_csv_file(path, 0)


def test_collect_single_file_requires_csv(tmp_path):
    path = _write(tmp_path / "notes.txt", "x")
    with pytest.raises(ValueError, match="must be a .csv file"):
        collect_translated_csv_files(path)


def test_collect_single_csv_file_any_name(tmp_path):
    path = _write(tmp_path / "data.csv", HEADER)
    assert collect_translated_csv_files(path) == [path]


def test_collect_directory_filters_and_orders(tmp_path):
    first = _write(tmp_path / "a" / "001_scene_translated.csv", HEADER)
    second = _write(tmp_path / "b" / "001_scene_translated.csv", HEADER)
    _write(tmp_path / "a" / "other.csv", HEADER)
    _write(tmp_path / "a" / "x_translated.txt", HEADER)
    assert collect_translated_csv_files(str(tmp_path)) == [first, second]


def test_parse_files_preserves_order(tmp_path):
    _write(tmp_path / "a" / "001_scene_translated.csv", HEADER + "source-a,target-from-a\n")
    _write(tmp_path / "b" / "001_scene_translated.csv", HEADER + "source-a,target-from-b\n")
    files = collect_translated_csv_files(str(tmp_path))
    parsed = list(parse_translated_csv_files(files))
    assert [item.index for item in parsed] == [0, 1]
    assert [item.lines[0].translated_text for item in parsed] == ["target-from-a", "target-from-b"]
    assert all(item.source_file == "001_scene.ks" for item in parsed)


def test_parse_files_many_keeps_order(tmp_path):
    paths = [
        _write(tmp_path / f"{n:03d}_translated.csv", HEADER + f"s{n},t{n}\n") for n in range(20)
    ]
    parsed = list(parse_translated_csv_files(paths))
    assert [item.path for item in parsed] == paths
    assert [item.lines[0].source_text for item in parsed] == [f"s{n}" for n in range(20)]


def test_parse_files_raises_at_failing_file(tmp_path):
    good = _write(tmp_path / "a_translated.csv", HEADER + "x,y\n")
    bad = _write(tmp_path / "b_translated.csv", "foo\n1\n")
    results = parse_translated_csv_files([good, bad])
    first = next(results)
    assert isinstance(first, ParsedCSVFile) and first.path == good
    with pytest.raises(ValueError, match="missing required columns"):
        next(results)


def test_parse_files_empty_input():
    assert list(parse_translated_csv_files([])) == []


def test_worker_count_bounds():
    assert parse_worker_count(0) == 1
    assert parse_worker_count(1) == 1
    with mock.patch("os.cpu_count", return_value=1):
        assert parse_worker_count(5) == 2
    with mock.patch("os.cpu_count", return_value=32):
        assert parse_worker_count(100) == 8
        assert parse_worker_count(3) == 3