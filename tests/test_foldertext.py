import pytest

from ksworkbench.foldertext import (
    FolderTextLine,
    iter_folder_text_lines,
    normalize_import_arc,
    normalize_import_source_file,
    split_import_line,
)


def test_imports_by_arc_and_file(tmp_path):
    root = tmp_path / "import"
    folder = root / "script.arc_extracted"
    folder.mkdir(parents=True)
    path = folder / "scene01.txt"
    path.write_text("原文A\t\t译文A\n", encoding="utf-8")

    lines = list(iter_folder_text_lines(str(root)))

    assert lines == [
        FolderTextLine(
            path=str(path),
            line_number=1,
            source_arc="script.arc",
            source_file="scene01.ks",
            source_text="原文A",
            translated_text="译文A",
        )
    ]
    assert lines[0].valid


def test_invalid_and_blank_lines(tmp_path):
    folder = tmp_path / "script.arc_extracted"
    folder.mkdir()
    path = folder / "scene.txt"
    path.write_text("\r\n   \nno tab here\r\nsrc\ttr\r\n", encoding="utf-8")

    lines = list(iter_folder_text_lines(str(tmp_path)))

    assert [line.line_number for line in lines] == [3, 4]
    assert lines[0].valid is False
    assert lines[0].error == f"{path}:3 invalid line"
    assert (lines[1].source_text, lines[1].translated_text) == ("src", "tr")


def test_non_txt_files_are_ignored(tmp_path):
    (tmp_path / "notes.csv").write_text("a\tb\n", encoding="utf-8")
    (tmp_path / "keep.TXT").write_text("a\tb\n", encoding="utf-8")
    lines = list(iter_folder_text_lines(str(tmp_path)))
    assert [line.source_file for line in lines] == ["keep.ks"]


def test_files_walked_in_lexical_order(tmp_path):
    (tmp_path / "b").mkdir()
    (tmp_path / "a").mkdir()
    (tmp_path / "b" / "x.txt").write_text("two\tB\n", encoding="utf-8")
    (tmp_path / "a" / "x.txt").write_text("one\tA\n", encoding="utf-8")
    lines = list(iter_folder_text_lines(str(tmp_path)))
    assert [line.source_text for line in lines] == ["one", "two"]
    assert [line.source_arc for line in lines] == ["a", "b"]


def test_empty_root_is_rejected():
    with pytest.raises(ValueError, match="import directory is required"):
        list(iter_folder_text_lines("   "))


def test_missing_root_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        list(iter_folder_text_lines(str(tmp_path / "missing")))


@pytest.mark.parametrize(
    "name,expected",
    [
        ("script.arc_extracted", "script.arc"),
        ("SCRIPT.ARC_EXTRACTED", "SCRIPT.ARC"),
        ("plain", "plain"),
    ],
)
def test_normalize_import_arc(name, expected):
    assert normalize_import_arc(name) == expected


@pytest.mark.parametrize(
    "name,expected",
    [("scene01.txt", "scene01.ks"), ("noext", "noext.ks"), ("a.b.txt", "a.b.ks")],
)
def test_normalize_import_source_file(name, expected):
    assert normalize_import_source_file(name) == expected


def test_split_import_line_valid():
    assert split_import_line("原文A\t\t译文A") == ("原文A", "译文A")


@pytest.mark.parametrize("line", ["no tab", "source\t   ", "\u200b\ttranslation"])
def test_split_import_line_invalid(line):
    assert split_import_line(line) is None