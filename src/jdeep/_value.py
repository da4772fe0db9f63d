"""JSON value / path model shared by the decode and inverse engines."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Iterator, Union

# json.loads 결과 그대로 사용 (dict는 삽입 순서 유지)
JsonValue = Union[None, bool, int, float, str, list, dict]


@dataclass(frozen=True)
class Key:
    """Object member segment."""

    name: str


@dataclass(frozen=True)
class Index:
    """Array element segment."""

    position: int


PathSegment = Union[Key, Index]
Path = tuple  # tuple[PathSegment, ...]

ROOT: Path = ()

_PLAIN_KEY = re.compile(r"^[A-Za-z_$][A-Za-z0-9_$]*$")


def format_path(path: Path) -> str:
    """Render a path as ``$.a[0]["odd.key"]`` for display."""
    parts = ["$"]
    for seg in path:
        if isinstance(seg, Index):
            parts.append(f"[{seg.position}]")
        elif _PLAIN_KEY.match(seg.name):
            parts.append(f".{seg.name}")
        else:
            parts.append(f"[{json.dumps(seg.name, ensure_ascii=False)}]")
    return "".join(parts)


def parse_path(text: str) -> Path:
    """Parse the output of :func:`format_path` back into segments."""
    if not text.startswith("$"):
        raise ValueError("path must start with $")
    segments: list[PathSegment] = []
    i = 1
    while i < len(text):
        ch = text[i]
        if ch == ".":
            m = _PLAIN_KEY.match(text[i + 1 :].split(".")[0].split("[")[0])
            if m is None:
                raise ValueError(f"bad key at {i}")
            segments.append(Key(m.group(0)))
            i += 1 + len(m.group(0))
        elif ch == "[":
            i, seg = _parse_bracket(text, i)
            segments.append(seg)
        else:
            raise ValueError(f"unexpected {ch!r} at {i}")
    return tuple(segments)


def _parse_bracket(text: str, start: int) -> tuple[int, PathSegment]:
    inner = start + 1
    if inner < len(text) and text[inner] == '"':
        try:
            name, end = json.JSONDecoder().raw_decode(text, inner)
        except json.JSONDecodeError as exc:
            raise ValueError(f"bad quoted key at {inner}") from exc
        if end >= len(text) or text[end] != "]":
            raise ValueError("unclosed bracket")
        return end + 1, Key(name)
    if inner < len(text) and text[inner] == "'":
        close = text.find("'", inner + 1)
        if close == -1 or text[close + 1 : close + 2] != "]":
            raise ValueError("unclosed bracket")
        return close + 2, Key(text[inner + 1 : close])
    close = text.find("]", inner)
    if close == -1:
        raise ValueError("unclosed bracket")
    raw = text[inner:close]
    if not raw.isdigit():
        raise ValueError(f"bad index {raw!r}")
    return close + 1, Index(int(raw))


def walk(value: JsonValue, path: Path = ROOT) -> Iterator[tuple[Path, JsonValue]]:
    """Yield ``(path, node)`` for every node, parents before children."""
    yield path, value
    if isinstance(value, dict):
        for k, v in value.items():
            yield from walk(v, path + (Key(k),))
    elif isinstance(value, list):
        for i, v in enumerate(value):
            yield from walk(v, path + (Index(i),))


# -- Serialization ---------------------------------------------------------


def dump_json(value: JsonValue, indent: int | str = 0) -> str:
    """Serialize without sorting keys. ``indent=0`` means compact."""
    if not indent:
        return json.dumps(value, ensure_ascii=False, separators=(",", ":"))
    return json.dumps(value, ensure_ascii=False, indent=indent)


def loads_container(text: str) -> dict | list | None:
    """Parse text that is entirely a JSON object or array, else ``None``."""
    stripped = text.strip()
    if len(stripped) < 2 or stripped[0] + stripped[-1] not in ("{}", "[]"):
        return None
    try:
        parsed = json.loads(stripped)
    except (json.JSONDecodeError, ValueError, RecursionError):
        return None
    if isinstance(parsed, (dict, list)):
        return parsed
    return None


@dataclass(frozen=True)
class TextLayout:
    """Whitespace conventions of a JSON document."""

    indent: int | str = 0
    newline: str = "\n"
    trailing: str = ""
    # 한 줄 문서의 구분자 (예: json.dumps 기본값 ", " / ": ")
    separators: tuple[str, str] | None = None


def detect_indentation(text: str) -> int | str:
    """Leading whitespace of the first indented line.

    Single-line text is compact (0); multi-line text with no indented line
    falls back to 2 spaces.
    """
    lines = text.split("\n")
    if len(lines) <= 1:
        return 0
    for line in lines:
        if line.strip():
            m = re.match(r"^[ \t]+", line)
            if m:
                return m.group(0)
    return 2


def sniff_layout(text: str, value: JsonValue = None) -> TextLayout:
    """Layout of ``text``; ``value`` is its parsed form, when known."""
    body = text.rstrip()
    trailing = text[len(body):]
    newline = "\r\n" if "\r\n" in text else "\n"
    indent = detect_indentation(body.replace("\r\n", "\n"))
    separators = None
    if not indent and value is not None and json.dumps(value, ensure_ascii=False) == body:
        separators = (", ", ": ")
    return TextLayout(indent=indent, newline=newline, trailing=trailing, separators=separators)


def serialize(value: JsonValue, layout: TextLayout) -> str:
    if layout.separators and not layout.indent:
        text = json.dumps(value, ensure_ascii=False, separators=layout.separators)
    else:
        text = dump_json(value, layout.indent)
    if layout.newline != "\n":
        text = text.replace("\n", layout.newline)
    return text + layout.trailing
