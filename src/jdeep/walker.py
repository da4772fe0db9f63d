"""Deep decode of JSON documents with per-path provenance."""

from __future__ import annotations

import json
import logging

from ._value import ROOT, Index, JsonValue, Key, Path, dump_json, loads_container, sniff_layout
from .context import PathTransformRecord, TransformContext
from .steps import (
    StepKind,
    TransformStep,
    has_unicode_escape,
    json_layout,
    unicode_decode,
    unicode_escape_style,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH = 10
EXPANDED_INDENT = 2


def decode(raw_text: str, max_depth: int = DEFAULT_MAX_DEPTH) -> tuple[str, TransformContext]:
    """Expand every nested JSON string in ``raw_text``.

    Returns ``(expanded_text, context)``. Text that is not JSON comes back
    unchanged with an empty context.
    """
    try:
        parsed = json.loads(raw_text)
    except (json.JSONDecodeError, ValueError, RecursionError) as exc:
        logger.debug("decode: input is not JSON (%s)", exc)
        return raw_text, TransformContext.from_layout(sniff_layout(raw_text))

    layout = sniff_layout(raw_text, parsed)

    walker = _TreeWalker(max_depth)
    try:
        expanded = walker.visit(parsed, ROOT, 0)
    except RecursionError:
        logger.debug("decode: nesting too deep, returning input")
        return raw_text, TransformContext.from_layout(layout)

    logger.debug("decode: %d path(s) transformed", len(walker.records))
    return (
        dump_json(expanded, EXPANDED_INDENT),
        TransformContext.from_layout(layout, walker.records),
    )


class _TreeWalker:
    def __init__(self, max_depth: int) -> None:
        self.max_depth = max_depth
        self.records: dict[Path, PathTransformRecord] = {}

    def visit(self, value: JsonValue, path: Path, depth: int) -> JsonValue:
        if isinstance(value, str):
            return self._visit_string(value, path, depth)
        if isinstance(value, list):
            return [self.visit(item, path + (Index(i),), depth) for i, item in enumerate(value)]
        if isinstance(value, dict):
            return {k: self.visit(v, path + (Key(k),), depth) for k, v in value.items()}
        return value

    def _visit_string(self, value: str, path: Path, depth: int) -> JsonValue:
        if depth > self.max_depth:
            return value

        steps: list[TransformStep] = []
        current = value
        for _ in range(self.max_depth):
            changed = False
            parsed = loads_container(current)

            if has_unicode_escape(current):
                decoded = unicode_decode(current)
                # 이미 컨테이너로 읽히는 문자열은 디코드 후에도 읽혀야 한다
                decoded_parsed = loads_container(decoded)
                if decoded != current and (parsed is None or decoded_parsed is not None):
                    steps.append(
                        TransformStep(StepKind.UNICODE_DECODE, unicode_escape_style(current))
                    )
                    current, parsed = decoded, decoded_parsed
                    changed = True

            if parsed is not None:
                metadata = {**json_layout(current, parsed), "source": current}
                steps.append(TransformStep(StepKind.JSON_DECODE, metadata))
                self.records[path] = PathTransformRecord(path, tuple(steps), value)
                return self.visit(parsed, path, depth + 1)

            if not changed:
                break

        if steps:
            self.records[path] = PathTransformRecord(path, tuple(steps), value)
        return current
