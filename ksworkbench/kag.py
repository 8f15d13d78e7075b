"""Extraction of translatable lines from KAG ``.ks`` scripts."""

from __future__ import annotations

import enum
import os
import re
import stat
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path

from ksworkbench.textutil import normalize_source_text

_RE_TAG_NAME = re.compile(r"^@\w+\s*(.*)", re.ASCII)
_RE_ATTR_KEY = re.compile(r"\w+", re.ASCII)
_RE_CHOICES_SET = re.compile(r"^@ChoicesSet\b", re.ASCII | re.IGNORECASE)
_RE_CALL_DIALOG = re.compile(r"^@CallDialog\b", re.ASCII | re.IGNORECASE)
_RE_SUBTITLE = re.compile(r"^@SubtitleDisplay(ForPlayVoice)?\b", re.ASCII | re.IGNORECASE)
_RE_TALK = re.compile(r"^@talk(Repeat)?\b", re.ASCII | re.IGNORECASE)
_RE_PLAY_VOICE = re.compile(r"^@PlayVoice\b", re.ASCII | re.IGNORECASE)
_RE_HITRET = re.compile(r"^@hitret\b", re.ASCII | re.IGNORECASE)

_EXTRACTED_SUFFIX = "_extracted"
_CJK_SCAN_LIMIT = 2000


@dataclass
class KagEntry:
    """One translatable line found in a script."""

    type: str
    voice_id: str = ""
    role: str = ""
    source_text: str = ""
    source_file: str = ""
    arc: str = ""


class _State(enum.Enum):
    IDLE = enum.auto()
    IN_TALK = enum.auto()
    IN_PLAY_VOICE = enum.auto()


def _go_ext(path: str) -> str:
    base = os.path.basename(path)
    dot = base.rfind(".")
    return base[dot:] if dot >= 0 else ""


def _walk_files(root: str) -> Iterator[str]:
    with os.scandir(root) as it:
        entries = sorted(it, key=lambda entry: entry.name)
    for entry in entries:
        if entry.is_dir(follow_symlinks=False):
            yield from _walk_files(entry.path)
        else:
            yield entry.path


def collect_ks_files(root: str, recursive: bool) -> list[str]:
    """Return the sorted ``.ks`` files under ``root`` (or ``root`` itself)."""
    info = os.stat(root)
    if not stat.S_ISDIR(info.st_mode):
        return [root] if _go_ext(root).lower() == ".ks" else []

    if recursive:
        files = [path for path in _walk_files(root) if _go_ext(path).lower() == ".ks"]
    else:
        with os.scandir(root) as it:
            files = [
                os.path.join(root, entry.name)
                for entry in it
                if not entry.is_dir(follow_symlinks=False) and _go_ext(entry.name).lower() == ".ks"
            ]
    return sorted(files)


def parse_ks_dir(root: str, recursive: bool, arc_name: str) -> list[KagEntry]:
    """Parse every script under ``root``; unreadable files are left out."""
    entries: list[KagEntry] = []
    for path in collect_ks_files(root, recursive):
        try:
            entries.extend(parse_ks_file(path, arc_name))
        except OSError:
            continue
    return entries


def parse_ks_file(path: str, arc_name: str) -> list[KagEntry]:
    """Read, decode and parse one script file."""
    text = detect_and_decode(Path(path).read_bytes())
    arc = arc_name or detect_arc_name(path)
    return parse_ks_text(text, os.path.basename(path), arc)


class _Parser:
    def __init__(self, source_file: str, arc: str) -> None:
        self.source_file = source_file
        self.arc = arc
        self.entries: list[KagEntry] = []
        self.state = _State.IDLE
        self.talk_voice_id = ""
        self.talk_role = ""
        self.talk_lines: list[str] = []
        self.play_voice_id = ""
        self.play_voice_comments: list[str] = []

    def _add(self, entry_type: str, text: str, voice_id: str = "", role: str = "") -> None:
        self.entries.append(
            KagEntry(
                type=entry_type,
                voice_id=voice_id,
                role=role,
                source_text=text,
                source_file=self.source_file,
                arc=self.arc,
            )
        )

    def flush_play_voice(self) -> None:
        if not self.play_voice_id:
            return
        comment = normalize_source_text("".join(self.play_voice_comments))
        self._add("playvoice" if comment else "playvoice_notext", comment, voice_id=self.play_voice_id)
        self.play_voice_id = ""
        self.play_voice_comments = []

    def flush_talk(self) -> None:
        text = normalize_text("".join(self.talk_lines))
        if not text:
            return
        entry_type = "talk" if self.talk_voice_id else "narration"
        self._add(entry_type, text, voice_id=self.talk_voice_id, role=self.talk_role)

    def _leave_play_voice(self) -> None:
        if self.state is _State.IN_PLAY_VOICE:
            self.flush_play_voice()
            self.state = _State.IDLE

    def feed(self, s: str) -> None:
        if _RE_CHOICES_SET.match(s):
            self._leave_play_voice()
            text = normalize_source_text(parse_tag_attributes(s).get("text", ""))
            if text:
                self._add("choice", text)
            return

        if _RE_CALL_DIALOG.match(s):
            self._leave_play_voice()
            text = normalize_text(parse_tag_attributes(s).get("text", ""))
            if text:
                self._add("calldialog", text)
            return

        if _RE_SUBTITLE.match(s):
            self._leave_play_voice()
            attrs = parse_tag_attributes(s)
            text = normalize_source_text(attrs.get("text", ""))
            if text:
                self._add("subtitle", text, voice_id=attrs.get("voice", ""))
            return

        if _RE_TALK.match(s):
            if self.state is _State.IN_PLAY_VOICE:
                self.flush_play_voice()
            attrs = parse_tag_attributes(s)
            self.talk_voice_id = attrs.get("voice", "")
            self.talk_role = attrs.get("name", "")
            self.talk_lines = []
            self.state = _State.IN_TALK
            return

        if _RE_PLAY_VOICE.match(s):
            if self.state is _State.IN_PLAY_VOICE:
                self.flush_play_voice()
            self.play_voice_id = parse_tag_attributes(s).get("voice", "")
            self.play_voice_comments = []
            self.state = _State.IN_PLAY_VOICE
            return

        if _RE_HITRET.match(s):
            if self.state is _State.IN_TALK:
                self.flush_talk()
            self.state = _State.IDLE
            self.talk_voice_id = ""
            self.talk_role = ""
            self.talk_lines = []
            return

        if self.state is _State.IN_TALK:
            if s and s[0] not in ";@*":
                self.talk_lines.append(s)
            return

        if self.state is _State.IN_PLAY_VOICE:
            if s.startswith(";"):
                comment = s[1:].strip()
                if comment and not comment.startswith("@"):
                    self.play_voice_comments.append(comment)
                return
            if s and s[0] in "@*":
                self.flush_play_voice()
                self.state = _State.IDLE

    def finish(self) -> list[KagEntry]:
        if self.state is _State.IN_PLAY_VOICE:
            self.flush_play_voice()
        return self.entries


def parse_ks_text(text: str, source_file: str, arc: str) -> list[KagEntry]:
    """Parse decoded script text into entries, in the order they appear."""
    parser = _Parser(source_file, arc)
    for line in text.split("\n"):
        parser.feed(line.strip())
    return parser.finish()


def detect_arc_name(path: str) -> str:
    """Return the arc name from a ``*.arc_extracted`` directory in ``path``."""
    absolute = os.path.abspath(path).replace(os.sep, "/")
    for part in absolute.split("/"):
        if part.lower().endswith(".arc" + _EXTRACTED_SUFFIX):
            return part[: -len(_EXTRACTED_SUFFIX)]
    return ""


def normalize_text(value: str) -> str:
    """Normalise dialogue text, turning ``|`` line breaks into newlines."""
    value = value.rstrip(" \u3000|")
    value = value.replace("|", "\n")
    return normalize_source_text(value)


def parse_tag_attributes(tag_line: str) -> dict[str, str]:
    """Return the ``key=value`` attributes of a tag line."""
    attrs: dict[str, str] = {}
    match = _RE_TAG_NAME.match(tag_line.strip())
    if match is None:
        return attrs

    rest = match.group(1)
    pos = 0
    length = len(rest)
    while pos < length:
        while pos < length and rest[pos] in " \t":
            pos += 1
        if pos >= length:
            break

        key_match = _RE_ATTR_KEY.match(rest, pos)
        if key_match is None:
            pos += 1
            continue
        key = key_match.group(0)
        pos = key_match.end()

        if pos < length and rest[pos] == "=":
            pos += 1
            if pos < length and rest[pos] in "\"'":
                quote = rest[pos]
                end = rest.find(quote, pos + 1)
                if end == -1:
                    end = length
                attrs[key] = rest[pos + 1 : end]
                pos = end + 1
                continue

            end = pos
            while end < length and rest[end] not in " \t":
                end += 1
            attrs[key] = rest[pos:end]
            pos = end
            continue

        attrs[key] = ""

    return attrs


def has_cjk(value: str, limit: int) -> bool:
    """Return True if a kana, CJK ideograph or full-width form appears early enough."""
    checked = 0
    for char in value:
        if checked >= limit:
            break
        if (
            "\u3040" <= char <= "\u309f"
            or "\u30a0" <= char <= "\u30ff"
            or "\u4e00" <= char <= "\u9fff"
            or "\uff00" <= char <= "\uffef"
        ):
            return True
        checked += 1
    return False


def _decode_utf16(raw: bytes, codec: str) -> str:
    if len(raw) % 2:
        raw = raw[:-1]
    return raw.decode(codec, errors="replace")


def _strict_utf8(raw: bytes) -> str | None:
    try:
        text = raw.decode("utf-8")
    except UnicodeDecodeError:
        return None
    return None if "\ufffd" in text else text


def detect_and_decode(raw: bytes) -> str:
    """Decode script bytes, guessing between UTF-8, UTF-16 and Shift_JIS."""
    if raw.startswith(b"\xef\xbb\xbf"):
        return raw[3:].decode("utf-8", errors="replace")
    if raw.startswith(b"\xff\xfe"):
        return _decode_utf16(raw[2:], "utf-16-le")
    if raw.startswith(b"\xfe\xff"):
        return _decode_utf16(raw[2:], "utf-16-be")

    utf8 = _strict_utf8(raw)
    if utf8 is not None and has_cjk(utf8, _CJK_SCAN_LIMIT):
        return utf8

    shift_jis = raw.decode("cp932", errors="replace")
    if has_cjk(shift_jis, _CJK_SCAN_LIMIT):
        return shift_jis

    if utf8 is not None:
        return utf8
    return shift_jis