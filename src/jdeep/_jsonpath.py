"""JSONPath queries over decoded documents.

A query is ``$`` followed by selectors: ``.key``, ``['key']`` / ``["key"]``,
``[n]`` (negative counts from the end), ``*`` / ``[*]``, and ``..`` before any
of them for recursive descent. An optional filter ``<op><value>`` keeps only
matches whose value compares true; ops are ``= != > < >= <= ~`` (regex).
"""

from __future__ import annotations

import json
import operator
import re
from dataclasses import dataclass
from typing import Iterable, Iterator

from ._value import ROOT, Index, JsonValue, Key, Path, PathSegment, _parse_bracket, dump_json, walk

_NAME = re.compile(r"[^.\[\]=!<>~]+")
_NEGATIVE_INDEX = re.compile(r"\[(-\d+)\]")
_OPERATOR = re.compile(r"!=|>=|<=|=|>|<|~")

_COMPARISONS = {
    "=": operator.eq,
    "!=": operator.ne,
    ">": operator.gt,
    "<": operator.lt,
    ">=": operator.ge,
    "<=": operator.le,
}


@dataclass(frozen=True)
class Selector:
    """One compiled step. ``target`` None is the wildcard."""

    target: PathSegment | None
    deep: bool = False


def compile_path(expression: str) -> tuple[Selector, ...]:
    """Compile ``$.a[0]..b`` into selectors. Raises ValueError when malformed."""
    if not expression.startswith("$"):
        raise ValueError("JSONPath must start with $")
    selectors: list[Selector] = []
    i = 1
    while i < len(expression):
        if expression.startswith("..", i):
            deep, i = True, i + 2
        elif expression[i] == ".":
            deep, i = False, i + 1
        elif expression[i] == "[":
            deep = False
        else:
            raise ValueError(f"unexpected {expression[i]!r} at {i}")
        if i >= len(expression):
            raise ValueError("JSONPath ends after a separator")

        if expression[i] == "[":
            if expression.startswith("[*]", i):
                selectors.append(Selector(None, deep))
                i += 3
                continue
            m = _NEGATIVE_INDEX.match(expression, i)
            if m:
                selectors.append(Selector(Index(int(m.group(1))), deep))
                i = m.end()
                continue
            i, segment = _parse_bracket(expression, i)
            selectors.append(Selector(segment, deep))
            continue

        m = _NAME.match(expression, i)
        if m is None:
            raise ValueError(f"expected a member name at {i}")
        name = m.group(0)
        selectors.append(Selector(None if name == "*" else Key(name), deep))
        i = m.end()
    return tuple(selectors)


def _children(target: PathSegment | None, path: Path, node: JsonValue) -> Iterator[tuple[Path, JsonValue]]:
    if isinstance(node, dict):
        if target is None:
            for k, v in node.items():
                yield path + (Key(k),), v
        elif isinstance(target, Key) and target.name in node:
            yield path + (target,), node[target.name]
    elif isinstance(node, list):
        if target is None:
            for i, v in enumerate(node):
                yield path + (Index(i),), v
        elif isinstance(target, Index) and -len(node) <= target.position < len(node):
            position = target.position % len(node)
            yield path + (Index(position),), node[position]


def _select(selector: Selector, nodes: Iterable[tuple[Path, JsonValue]]) -> list[tuple[Path, JsonValue]]:
    hits: list[tuple[Path, JsonValue]] = []
    for path, node in nodes:
        bases = walk(node, path) if selector.deep else ((path, node),)
        for base_path, base in bases:
            hits.extend(_children(selector.target, base_path, base))
    return hits


def find(data: JsonValue, expression: str) -> list[tuple[Path, JsonValue]]:
    """All ``(path, value)`` pairs the path expression selects, in document order."""
    nodes: list[tuple[Path, JsonValue]] = [(ROOT, data)]
    for selector in compile_path(expression):
        nodes = _select(selector, nodes)
    return nodes


def split_filter(expression: str) -> tuple[str, str, JsonValue]:
    """Split ``$.path<op>value`` into ``(path, op, value)``; op is "" without a filter.

    Operators inside brackets or quotes belong to the path.
    """
    depth = 0
    quote = None
    for i, ch in enumerate(expression):
        if quote:
            if ch == quote:
                quote = None
        elif ch in "'\"":
            quote = ch
        elif ch == "[":
            depth += 1
        elif ch == "]":
            depth -= 1
        elif depth == 0:
            m = _OPERATOR.match(expression, i)
            if m:
                return expression[:i], m.group(0), parse_literal(expression[m.end():])
    return expression, "", None


def parse_literal(text: str) -> JsonValue:
    """JSON literal, else a single-quoted string, else the bare text."""
    text = text.strip()
    if not text:
        return None
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass
    if len(text) >= 2 and text[0] == text[-1] == "'":
        return text[1:-1]
    return text


def value_matches(actual: JsonValue, op: str, expected: JsonValue) -> bool:
    if op == "~":
        subject = actual if isinstance(actual, str) else dump_json(actual)
        try:
            return re.search(str(expected), subject) is not None
        except re.error as exc:
            raise ValueError(f"bad pattern {expected!r}: {exc}") from exc
    # true == 1 is not a match
    if isinstance(actual, bool) is not isinstance(expected, bool):
        return op == "!="
    try:
        return _COMPARISONS[op](actual, expected)
    except TypeError:
        return False


def query(data: JsonValue, expression: str) -> list[tuple[Path, JsonValue]]:
    """Run ``$.path`` or ``$.path<op>value`` and return matching (path, value) pairs.

    Raises ValueError for malformed expressions.
    """
    path_expr, op, expected = split_filter(expression.strip())
    hits = find(data, path_expr)
    if not op:
        return hits
    return [(path, value) for path, value in hits if value_matches(value, op, expected)]
