"""Reversible transform steps and the string codecs behind them."""

from __future__ import annotations

import base64
import binascii
import json
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Collection, Mapping
from urllib.parse import quote, unquote

from ._value import JsonValue, detect_indentation, dump_json
from .errors import InversionMismatch, ParseFailure


class StepKind(Enum):
    JSON_DECODE = "json_decode"
    JSON_ENCODE = "json_encode"
    UNICODE_DECODE = "unicode_decode"
    UNICODE_ENCODE = "unicode_encode"
    URL_DECODE = "url_decode"
    URL_ENCODE = "url_encode"
    BASE64_DECODE = "base64_decode"
    BASE64_ENCODE = "base64_encode"
    ESCAPE = "escape"
    UNESCAPE = "unescape"


@dataclass(frozen=True)
class TransformStep:
    """One recorded operation, in forward order."""

    kind: StepKind
    metadata: Mapping[str, object] = field(default_factory=dict)


# -- Unicode escapes ------------------------------------------------------

_UNICODE_ESCAPE = re.compile(r"\\u([0-9a-fA-F]{4})")
# 서로게이트 쌍은 한 글자로 합친다
_UNICODE_ESCAPE_PAIR = re.compile(
    r"\\u([dD][89abAB][0-9a-fA-F]{2})\\u([dD][c-fC-F][0-9a-fA-F]{2})"
    r"|\\u([0-9a-fA-F]{4})"
)


def has_unicode_escape(text: str) -> bool:
    return _UNICODE_ESCAPE.search(text) is not None


def _join_pair(m: re.Match) -> str:
    if m.group(3) is not None:
        return chr(int(m.group(3), 16))
    high = int(m.group(1), 16)
    low = int(m.group(2), 16)
    return chr(0x10000 + ((high - 0xD800) << 10) + (low - 0xDC00))


def unicode_decode(text: str) -> str:
    """Replace ``\\uXXXX`` sequences with the characters they name."""
    return _UNICODE_ESCAPE_PAIR.sub(_join_pair, text)


def unicode_escape_style(text: str) -> dict:
    """Metadata that lets the decode be undone.

    ``before`` is the text as it was, ``escaped`` the code points that were
    written as escapes and ``upper`` the hex case. ``above`` widens edits to
    the non-ASCII range the escapes came from.
    """
    matches = list(_UNICODE_ESCAPE_PAIR.finditer(text))
    hex_digits = "".join(m.group(0)[2:] for m in matches)
    escaped = sorted({ord(_join_pair(m)) for m in matches})
    if any(0x80 <= c <= 0xFF for c in escaped):
        above: int | None = 0x7F
    elif any(c > 0xFF for c in escaped):
        above = 0xFF
    else:
        above = None
    return {
        "before": text,
        "upper": any(c in "ABCDEF" for c in hex_digits) and not any(c in "abcdef" for c in hex_digits),
        "escaped": escaped,
        "above": above,
    }


def unicode_encode(
    text: str,
    upper: bool = False,
    codepoints: Collection[int] = (),
    above: int | None = 0xFF,
) -> str:
    """Escape characters above ``above`` or listed in ``codepoints`` as ``\\uXXXX``."""
    fmt = "\\u{:04X}" if upper else "\\u{:04x}"
    out: list[str] = []
    for ch in text:
        code = ord(ch)
        if code not in codepoints and (above is None or code <= above):
            out.append(ch)
        elif code > 0xFFFF:
            code -= 0x10000
            out.append(fmt.format(0xD800 + (code >> 10)))
            out.append(fmt.format(0xDC00 + (code & 0x3FF)))
        else:
            out.append(fmt.format(code))
    return "".join(out)


# -- Percent encoding -----------------------------------------------------

# encodeURIComponent 과 같은 안전 문자 집합
_URI_COMPONENT_SAFE = "-_.!~*'()"


def url_encode(text: str) -> str:
    return quote(text, safe=_URI_COMPONENT_SAFE)


def url_decode(text: str) -> str:
    """Percent-decode; malformed UTF-8 sequences leave the text unchanged."""
    try:
        return unquote(text, errors="strict")
    except UnicodeDecodeError:
        return text


# -- Base64 ---------------------------------------------------------------


def base64_decode(text: str) -> str:
    """Decode standard or url-safe Base64 (padding optional) to UTF-8 text.

    Raises ParseFailure when the input is not Base64 or not UTF-8.
    """
    normalized = text.strip().replace("-", "+").replace("_", "/")
    normalized += "=" * (-len(normalized) % 4)
    try:
        return base64.b64decode(normalized, validate=True).decode("utf-8")
    except (binascii.Error, ValueError) as exc:
        raise ParseFailure(f"not base64: {exc}") from exc


def base64_encode(text: str, padded: bool = True, urlsafe: bool = False) -> str:
    raw = text.encode("utf-8")
    encoded = (base64.urlsafe_b64encode(raw) if urlsafe else base64.b64encode(raw)).decode("ascii")
    return encoded if padded else encoded.rstrip("=")


def base64_style(text: str) -> dict:
    stripped = text.strip()
    return {
        "padded": stripped.endswith("=") or len(stripped) % 4 == 0,
        "urlsafe": "-" in stripped or "_" in stripped,
    }


# -- String escaping ------------------------------------------------------


def escape(text: str) -> str:
    """JSON-escape ``text`` without the surrounding quotes."""
    return json.dumps(text, ensure_ascii=False)[1:-1]


def unescape(text: str) -> str:
    try:
        return json.loads(f'"{text}"')
    except json.JSONDecodeError as exc:
        raise ParseFailure(f"cannot unescape: {exc.msg}") from exc


# -- JSON -----------------------------------------------------------------


def json_layout(text: str, parsed: JsonValue) -> dict:
    """Metadata that lets :func:`json_encode` reproduce ``text`` exactly."""
    if dump_json(parsed) == text:
        return {}
    if json.dumps(parsed, ensure_ascii=False) == text:
        return {"separators": [", ", ": "]}
    indent = detect_indentation(text)
    if indent and dump_json(parsed, indent) == text:
        return {"indent": indent}
    return {}


def json_encode(value: JsonValue, metadata: Mapping[str, object] | None = None) -> str:
    metadata = metadata or {}
    if "indent" in metadata:
        return dump_json(value, metadata["indent"])
    if "separators" in metadata:
        return json.dumps(value, ensure_ascii=False, separators=tuple(metadata["separators"]))
    return dump_json(value)


# -- Inverses -------------------------------------------------------------


def _require_str(value: JsonValue, step: TransformStep) -> str:
    if not isinstance(value, str):
        raise InversionMismatch(f"{step.kind.value} expects a string, got {type(value).__name__}")
    return value


def _invert_json_decode(value: JsonValue, step: TransformStep) -> JsonValue:
    if not isinstance(value, (dict, list)):
        raise InversionMismatch(f"json_decode expects an object or array, got {type(value).__name__}")
    # 값이 그대로면 원래 텍스트 (이스케이프 표기 포함) 를 돌려준다
    source = step.metadata.get("source")
    if isinstance(source, str) and _same_json(source, value):
        return source
    return json_encode(value, step.metadata)


def _same_json(text: str, value: JsonValue) -> bool:
    try:
        return dump_json(json.loads(text)) == dump_json(value)
    except (json.JSONDecodeError, ValueError, RecursionError):
        return False


def _invert_json_encode(value: JsonValue, step: TransformStep) -> JsonValue:
    text = _require_str(value, step)
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise InversionMismatch(f"json_encode inverse: {exc.msg}") from exc


def _invert_unicode_decode(value: JsonValue, step: TransformStep) -> JsonValue:
    text = _require_str(value, step)
    before = step.metadata.get("before")
    if isinstance(before, str) and unicode_decode(before) == text:
        return before
    return unicode_encode(
        text,
        upper=bool(step.metadata.get("upper", False)),
        codepoints=frozenset(step.metadata.get("escaped", ())),
        above=step.metadata.get("above", 0xFF),
    )


def _invert_base64_decode(value: JsonValue, step: TransformStep) -> JsonValue:
    return base64_encode(
        _require_str(value, step),
        padded=bool(step.metadata.get("padded", True)),
        urlsafe=bool(step.metadata.get("urlsafe", False)),
    )


def _invert_base64_encode(value: JsonValue, step: TransformStep) -> JsonValue:
    try:
        return base64_decode(_require_str(value, step))
    except ParseFailure as exc:
        raise InversionMismatch(str(exc)) from exc


def _invert_unescape(value: JsonValue, step: TransformStep) -> JsonValue:
    return escape(_require_str(value, step))


def _invert_escape(value: JsonValue, step: TransformStep) -> JsonValue:
    try:
        return unescape(_require_str(value, step))
    except ParseFailure as exc:
        raise InversionMismatch(str(exc)) from exc


_INVERSES: dict[StepKind, Callable[[JsonValue, TransformStep], JsonValue]] = {
    StepKind.JSON_DECODE: _invert_json_decode,
    StepKind.JSON_ENCODE: _invert_json_encode,
    StepKind.UNICODE_DECODE: _invert_unicode_decode,
    StepKind.UNICODE_ENCODE: lambda v, s: unicode_decode(_require_str(v, s)),
    StepKind.URL_DECODE: lambda v, s: url_encode(_require_str(v, s)),
    StepKind.URL_ENCODE: lambda v, s: url_decode(_require_str(v, s)),
    StepKind.BASE64_DECODE: _invert_base64_decode,
    StepKind.BASE64_ENCODE: _invert_base64_encode,
    StepKind.ESCAPE: _invert_escape,
    StepKind.UNESCAPE: _invert_unescape,
}


def apply_inverse(value: JsonValue, step: TransformStep) -> JsonValue:
    """Undo one step. Raises InversionMismatch when ``value`` does not fit."""
    return _INVERSES[step.kind](value, step)
