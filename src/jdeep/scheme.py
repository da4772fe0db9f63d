"""Scheme detection and layered decode/encode of single string values.

Recognizes JWTs, URLs with a payload parameter, percent-encoding, Base64 and
JSON. ``detect_and_decode`` peels layers until plain text or JSON remains and
``reencode`` wraps edited content back through the same layers.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

import jwt

from ._value import Key, Path, format_path, loads_container, walk
from .errors import IrreversibleLayer, ParseFailure
from .steps import base64_decode, base64_encode, base64_style, url_decode, url_encode

logger = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH = 5

# 우선 탐색하는 URL 파라미터 이름
DATA_PARAMS = ("data", "params", "payload", "body", "json", "config")


class SchemeType(Enum):
    JWT = "jwt"
    URL = "url"
    URL_ENCODED = "url-encoded"
    BASE64 = "base64"
    JSON = "json"
    PLAIN = "plain"


@dataclass(frozen=True)
class DecodeLayer:
    type: SchemeType
    before_text: str
    description: str
    param: str | None = None  # URL layers: the parameter that was followed


@dataclass
class SchemeInfo:
    protocol: str
    host: str | None = None
    path: str | None = None
    params: dict[str, str] | None = None


@dataclass
class SchemeDecodeResult:
    original: str
    decoded: str
    layers: list[DecodeLayer] = field(default_factory=list)
    is_json: bool = False
    scheme_info: SchemeInfo | None = None

    @property
    def pretty(self) -> str:
        """``decoded`` re-indented for display when it is JSON."""
        if self.is_json:
            parsed = loads_container(self.decoded)
            if parsed is not None:
                return json.dumps(parsed, indent=2, ensure_ascii=False)
        return self.decoded


# -- Predicates -----------------------------------------------------------

_URL = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.-]*://.+", re.DOTALL)
_URL_PREFIX = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.-]*://")
_QUERY_KEY = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_-]*=")
_PERCENT = re.compile(r"%[0-9A-Fa-f]{2}")
_B64_STD = re.compile(r"^[A-Za-z0-9+/]+=*$")
_B64_URL = re.compile(r"^[A-Za-z0-9_-]+=*$")
_B64URL_SEGMENT = re.compile(r"^[A-Za-z0-9_-]+$")


def is_jwt(text: str) -> bool:
    parts = text.strip().split(".")
    return len(parts) == 3 and all(_B64URL_SEGMENT.match(p) for p in parts)


def is_url(text: str) -> bool:
    return _URL.match(text.strip()) is not None


def is_query_string(text: str) -> bool:
    """``key=value&key=value`` form, which is not treated as an encoding."""
    trimmed = text.strip()
    if _URL_PREFIX.match(trimmed):
        return False
    return _QUERY_KEY.match(trimmed) is not None and "&" in trimmed


def has_url_encoding(text: str) -> bool:
    return _PERCENT.search(text) is not None and not is_query_string(text)


def is_base64(text: str) -> bool:
    """Base64 charset, at least 20 chars, ``=`` only as trailing padding,
    and decodes to printable text."""
    trimmed = text.strip()
    if len(trimmed) < 20:
        return False
    if not (_B64_STD.match(trimmed) or _B64_URL.match(trimmed)):
        return False
    try:
        decoded = base64_decode(trimmed)
    except ParseFailure:
        return False
    return bool(decoded) and all(ch.isprintable() or ch.isspace() for ch in decoded)


def is_json_string(text: str) -> bool:
    return loads_container(text) is not None


# 우선순위 순서가 곧 판정 순서
_DETECTORS: list[tuple[SchemeType, Callable[[str], bool]]] = [
    (SchemeType.JWT, is_jwt),
    (SchemeType.URL, is_url),
    (SchemeType.URL_ENCODED, has_url_encoding),
    (SchemeType.BASE64, is_base64),
    (SchemeType.JSON, is_json_string),
]


def detect(text: str) -> SchemeType:
    """Classify ``text`` by the first matching detector."""
    if not text or not isinstance(text, str):
        return SchemeType.PLAIN
    trimmed = text.strip()
    for scheme_type, predicate in _DETECTORS:
        if predicate(trimmed):
            return scheme_type
    return SchemeType.PLAIN


def has_scheme(text: str) -> bool:
    return detect(text) not in (SchemeType.PLAIN, SchemeType.JSON)


# -- Decoders -------------------------------------------------------------


def decode_jwt(token: str) -> dict:
    """Payload of ``token`` without verifying its signature."""
    try:
        return jwt.decode(token.strip(), options={"verify_signature": False})
    except jwt.PyJWTError as exc:
        raise ParseFailure(f"not a JWT: {exc}") from exc


def parse_url(text: str) -> SchemeInfo | None:
    try:
        parts = urlsplit(text.strip())
    except ValueError:
        return None
    if not parts.scheme:
        return None
    params = dict(parse_qsl(parts.query, keep_blank_values=True))
    return SchemeInfo(
        protocol=f"{parts.scheme}:",
        host=parts.netloc or None,
        path=parts.path or None,
        params=params or None,
    )


def pick_param(info: SchemeInfo) -> str | None:
    """Parameter most likely to carry an encoded payload."""
    if not info.params:
        return None
    for name in DATA_PARAMS:
        if info.params.get(name):
            return name
    for name, value in info.params.items():
        if has_url_encoding(value) or is_base64(value) or is_json_string(value):
            return name
    return None


def _decode_jwt_layer(text: str) -> str:
    return json.dumps(decode_jwt(text), indent=2, ensure_ascii=False)


_DECODERS: dict[SchemeType, tuple[Callable[[str], str], str]] = {
    SchemeType.JWT: (_decode_jwt_layer, "JWT Decode (Payload)"),
    SchemeType.URL_ENCODED: (url_decode, "URL Decode"),
    SchemeType.BASE64: (base64_decode, "Base64 Decode"),
}


def detect_and_decode(value: str, max_depth: int = DEFAULT_MAX_DEPTH) -> SchemeDecodeResult:
    """Peel encoding layers off ``value`` until plain text or JSON remains."""
    layers: list[DecodeLayer] = []
    scheme_info: SchemeInfo | None = None
    current = value if isinstance(value, str) else ""

    for _ in range(max_depth):
        scheme_type = detect(current)
        if scheme_type in (SchemeType.PLAIN, SchemeType.JSON):
            break

        before = current
        if scheme_type is SchemeType.URL:
            info = parse_url(current)
            if info is None:
                break
            scheme_info = info
            param = pick_param(info)
            if param is None or info.params[param] == before:
                logger.debug("url without payload parameter, stopping")
                break
            current = info.params[param]
            layers.append(DecodeLayer(SchemeType.URL, before, f"URL parameter ({param})", param))
            continue

        decoder, description = _DECODERS[scheme_type]
        try:
            decoded = decoder(current)
        except ParseFailure as exc:
            logger.debug("%s decode failed: %s", scheme_type.value, exc)
            break
        if not decoded or decoded == current:
            break
        layers.append(DecodeLayer(scheme_type, before, description))
        current = decoded

    return SchemeDecodeResult(
        original=value,
        decoded=current,
        layers=layers,
        is_json=is_json_string(current),
        scheme_info=scheme_info,
    )


# -- Encoders -------------------------------------------------------------


def _encode_base64(content: str, layer: DecodeLayer) -> str:
    return base64_encode(content, **base64_style(layer.before_text))


def _encode_jwt(content: str, layer: DecodeLayer) -> str:
    raise IrreversibleLayer("JWT cannot be re-encoded without its signing key")


def _encode_url(content: str, layer: DecodeLayer) -> str:
    if layer.param is None:
        raise IrreversibleLayer("URL layer has no parameter name")
    try:
        parts = urlsplit(layer.before_text.strip())
    except ValueError as exc:
        raise IrreversibleLayer(f"stored URL no longer parses: {exc}") from exc
    pairs: list[tuple[str, str]] = []
    placed = False
    for name, val in parse_qsl(parts.query, keep_blank_values=True):
        if name == layer.param:
            if placed:
                continue
            val = content
            placed = True
        pairs.append((name, val))
    if not placed:
        pairs.append((layer.param, content))
    return urlunsplit(parts._replace(query=urlencode(pairs)))


_ENCODERS: dict[SchemeType, Callable[[str, DecodeLayer], str]] = {
    SchemeType.JWT: _encode_jwt,
    SchemeType.URL: _encode_url,
    SchemeType.URL_ENCODED: lambda content, layer: url_encode(content),
    SchemeType.BASE64: _encode_base64,
}


def reencode(edited_content: str, layers: list[DecodeLayer]) -> str:
    """Wrap ``edited_content`` back through ``layers``, innermost first.

    JWT layers are skipped: without the signing key the token cannot be
    rebuilt, so the edited payload passes through unchanged.
    """
    result = edited_content
    for layer in reversed(layers):
        encoder = _ENCODERS.get(layer.type)
        if encoder is None:
            continue
        try:
            result = encoder(result, layer)
        except IrreversibleLayer as exc:
            logger.info("skipping %s layer: %s", layer.type.value, exc)
    return result


# -- Document scan --------------------------------------------------------


@dataclass
class SchemeLocation:
    path: Path
    line: int  # 1-based
    value: str
    scheme_type: SchemeType

    @property
    def path_text(self) -> str:
        return format_path(self.path)


def _escape_variants(prefix: str) -> list[str]:
    # 문서 안에서는 JSON 이스케이프된 형태로 나타난다
    escaped = json.dumps(prefix, ensure_ascii=False)[1:-1]
    variants = [escaped]
    if "/" in escaped:
        variants.append(escaped.replace("/", "\\/"))
    return variants


def find_schemes(json_text: str) -> list[SchemeLocation]:
    """Every string value in ``json_text`` that carries a URL/Base64/JWT/percent scheme."""
    try:
        parsed = json.loads(json_text)
    except (json.JSONDecodeError, ValueError, RecursionError):
        return []

    lines = json_text.split("\n")
    results: list[SchemeLocation] = []
    for path, node in walk(parsed):
        if not isinstance(node, str):
            continue
        scheme_type = detect(node)
        if scheme_type in (SchemeType.PLAIN, SchemeType.JSON):
            continue
        # 버전 문자열이나 호스트명 (a.b.c) 은 JWT 로 풀리지 않는다
        if scheme_type is SchemeType.JWT and not _is_decodable_jwt(node):
            continue
        results.append(SchemeLocation(path, _locate_line(lines, path, node), node, scheme_type))
    return results


def _is_decodable_jwt(value: str) -> bool:
    try:
        decode_jwt(value)
    except ParseFailure:
        return False
    return True


def _locate_line(lines: list[str], path: Path, value: str) -> int:
    variants = _escape_variants(value[:30])
    last = path[-1] if path else None
    key_token = (
        json.dumps(last.name, ensure_ascii=False) if isinstance(last, Key) else None
    )
    for i, line in enumerate(lines):
        if key_token is not None and key_token not in line:
            continue
        if any(v in line for v in variants):
            return i + 1
    return 1

