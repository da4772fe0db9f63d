"""Structural merge: re-stringify expanded values without recorded provenance."""

from __future__ import annotations

import json
import logging

from ._value import JsonValue, dump_json, loads_container, serialize, sniff_layout

logger = logging.getLogger(__name__)


def merge(edited_text: str, original_text: str) -> str:
    """Fold ``edited_text`` back onto the shape of ``original_text``.

    Wherever the original held a string and the edit holds an object/array,
    the edit is re-encoded as a compact JSON string. Layout follows the
    original source.
    """
    try:
        edited = json.loads(edited_text)
        original = json.loads(original_text)
    except (json.JSONDecodeError, ValueError, RecursionError) as exc:
        logger.debug("merge: parse failed (%s), re-indenting edited text", exc)
        return _reindent(edited_text)

    try:
        merged = _merge(edited, original)
    except RecursionError:
        return _reindent(edited_text)
    return serialize(merged, sniff_layout(original_text, original))


def _merge(edited: JsonValue, original: JsonValue) -> JsonValue:
    # 원본이 문자열이었는데 객체/배열로 펼쳐진 경우 → 다시 문자열화
    if isinstance(original, str) and isinstance(edited, (dict, list)):
        inner = loads_container(original)
        if inner is not None:
            edited = _merge(edited, inner)
        return dump_json(edited)

    if isinstance(edited, list) and isinstance(original, list):
        return [
            _merge(item, original[i]) if i < len(original) else item
            for i, item in enumerate(edited)
        ]

    if isinstance(edited, dict) and isinstance(original, dict):
        return {
            k: _merge(v, original[k]) if k in original else v
            for k, v in edited.items()
        }

    return edited


def _reindent(text: str) -> str:
    """파싱 가능하면 2칸 들여쓰기, 아니면 원본 그대로."""
    try:
        return dump_json(json.loads(text), 2)
    except (json.JSONDecodeError, ValueError, RecursionError):
        return text
