"""Rebuild the encoded source from an edited expanded document."""

from __future__ import annotations

import json
import logging
from typing import Mapping

from ._value import ROOT, Index, JsonValue, Key, Path, format_path, serialize
from .context import PathTransformRecord, TransformContext
from .errors import InversionMismatch
from .steps import apply_inverse

logger = logging.getLogger(__name__)


def invert(edited_text: str, context: TransformContext) -> str:
    """Re-apply the recorded steps of ``context`` in reverse.

    Only path naming has to match the decoded tree. Nodes the user reshaped
    are encoded best-effort; unparseable input is returned as-is.
    """
    try:
        edited = json.loads(edited_text)
    except (json.JSONDecodeError, ValueError, RecursionError) as exc:
        logger.debug("invert: edited text is not JSON (%s)", exc)
        return edited_text

    try:
        rebuilt = _restore(edited, ROOT, context.records)
    except RecursionError:
        logger.debug("invert: nesting too deep, returning edited text")
        return edited_text
    return serialize(rebuilt, context.layout)


def _restore(value: JsonValue, path: Path, records: Mapping[Path, PathTransformRecord]) -> JsonValue:
    # 자식 먼저 복원 (bottom-up)
    if isinstance(value, list):
        value = [_restore(item, path + (Index(i),), records) for i, item in enumerate(value)]
    elif isinstance(value, dict):
        value = {k: _restore(v, path + (Key(k),), records) for k, v in value.items()}

    record = records.get(path)
    if record is None:
        return value

    for step in reversed(record.steps):
        try:
            value = apply_inverse(value, step)
        except InversionMismatch as exc:
            logger.debug("invert: %s at %s, keeping value", exc, format_path(path))
    return value
