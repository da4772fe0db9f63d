"""Editor transform modes: forward view of a source and its inverse."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from enum import Enum

from ._value import dump_json, serialize, sniff_layout
from .context import TransformContext
from .errors import ParseFailure
from .inverter import invert
from .merge import merge
from .steps import escape, unescape, unicode_decode, unicode_encode
from .walker import DEFAULT_MAX_DEPTH, decode

logger = logging.getLogger(__name__)


class TransformMode(Enum):
    NONE = "none"
    FORMAT = "format"
    DEEP_FORMAT = "deep_format"
    MINIFY = "minify"
    ESCAPE = "escape"
    UNESCAPE = "unescape"
    UNICODE_TO_CN = "unicode_to_cn"
    CN_TO_UNICODE = "cn_to_unicode"


@dataclass(frozen=True)
class TransformResult:
    output: str
    context: TransformContext | None = None


@dataclass(frozen=True)
class ValidationResult:
    is_valid: bool
    error: str = ""


def validate_json(text: str) -> ValidationResult:
    """Blank input counts as valid; otherwise report the first parse error."""
    if not text.strip():
        return ValidationResult(True)
    try:
        json.loads(text)
        return ValidationResult(True)
    except json.JSONDecodeError as e:
        return ValidationResult(False, f"{e.msg} (line {e.lineno}, column {e.colno})")
    except RecursionError:
        return ValidationResult(False, "nesting too deep")


def format_json(text: str, indent: int = 2) -> str:
    try:
        return dump_json(json.loads(text), indent)
    except (json.JSONDecodeError, ValueError, RecursionError):
        return text


def minify_json(text: str) -> str:
    try:
        return dump_json(json.loads(text))
    except (json.JSONDecodeError, ValueError, RecursionError):
        return text


def unescape_text(text: str) -> str:
    """Unescape a JSON string literal, with or without its quotes."""
    body = text[1:-1] if len(text) >= 2 and text[0] == text[-1] == '"' else text
    try:
        return unescape(body)
    except ParseFailure:
        return text


def perform_transform(
    text: str, mode: TransformMode, max_depth: int = DEFAULT_MAX_DEPTH
) -> TransformResult:
    """Forward view of ``text``. Only DEEP_FORMAT produces a context."""
    if not text:
        return TransformResult("")
    if mode is TransformMode.DEEP_FORMAT:
        output, context = decode(text, max_depth)
        return TransformResult(output, context)
    if mode is TransformMode.FORMAT:
        return TransformResult(format_json(text))
    if mode is TransformMode.MINIFY:
        return TransformResult(minify_json(text))
    if mode is TransformMode.ESCAPE:
        return TransformResult(escape(text))
    if mode is TransformMode.UNESCAPE:
        return TransformResult(unescape_text(text))
    if mode is TransformMode.UNICODE_TO_CN:
        return TransformResult(unicode_decode(text))
    if mode is TransformMode.CN_TO_UNICODE:
        return TransformResult(unicode_encode(text))
    return TransformResult(text)


def perform_inverse_transform(
    output: str,
    mode: TransformMode,
    original_input: str | None = None,
    context: TransformContext | None = None,
) -> str:
    """Map an edited view back to source form.

    DEEP_FORMAT prefers the recorded context, then a structural merge against
    ``original_input``, then plain minification. FORMAT and MINIFY keep the
    whitespace of ``original_input`` when it parses.
    """
    if not output:
        return ""
    if mode is TransformMode.DEEP_FORMAT:
        if context is not None:
            return invert(output, context)
        if original_input:
            logger.debug("no transform context, merging against original input")
            return merge(output, original_input)
        return minify_json(output)
    if mode is TransformMode.FORMAT or mode is TransformMode.MINIFY:
        if original_input:
            return _restore_layout(output, original_input)
        return minify_json(output) if mode is TransformMode.FORMAT else output
    if mode is TransformMode.ESCAPE:
        return unescape_text(output)
    if mode is TransformMode.UNESCAPE:
        return escape(output)
    if mode is TransformMode.UNICODE_TO_CN:
        return unicode_encode(output)
    if mode is TransformMode.CN_TO_UNICODE:
        return unicode_decode(output)
    return output


def _restore_layout(output: str, original_input: str) -> str:
    """Re-serialize ``output`` with the whitespace of ``original_input``."""
    try:
        value = json.loads(output)
        original = json.loads(original_input)
    except (json.JSONDecodeError, ValueError, RecursionError):
        return minify_json(output)
    return serialize(value, sniff_layout(original_input, original))
