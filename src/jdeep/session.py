"""Per-document editing session.

Ties the engine together for one open document: the raw source, the view the
user edits, the current TransformContext and the saved baseline used for diff
markers. State changes are explicit so an inverse write-back can never
re-trigger a decode of its own output.
"""

from __future__ import annotations

import json
import logging
from enum import Enum, auto

from ._jsonpath import query
from ._value import Index, JsonValue, Key, Path, serialize, sniff_layout
from .context import TransformContext
from .diff import DiffRange, diff_lines
from .scheme import DEFAULT_MAX_DEPTH as SCHEME_MAX_DEPTH
from .scheme import SchemeDecodeResult, detect_and_decode
from .transforms import TransformMode, perform_inverse_transform, perform_transform
from .walker import DEFAULT_MAX_DEPTH

logger = logging.getLogger(__name__)


class SessionState(Enum):
    IDLE = auto()  # 원본 그대로 표시
    DECODING = auto()
    AWAITING_INVERSE = auto()  # 펼친 뷰 편집 중


class DocumentSession:
    def __init__(
        self,
        text: str = "",
        *,
        max_depth: int = DEFAULT_MAX_DEPTH,
        scheme_max_depth: int = SCHEME_MAX_DEPTH,
    ) -> None:
        self.max_depth = max_depth
        self.scheme_max_depth = scheme_max_depth
        self.load(text)

    # -- Lifecycle ---------------------------------------------------------

    def load(self, text: str) -> None:
        """Start over with freshly opened ``text``."""
        self.source: str = text
        self.saved_text: str = text
        self.view: str = text
        self.mode: TransformMode = TransformMode.NONE
        self.context: TransformContext | None = None
        self.state: SessionState = SessionState.IDLE
        self._baseline: str = text
        # 모드 전환 시점의 (뷰, 원본); 뷰가 그대로면 원본도 그대로
        self._produced: tuple[str, str] = (text, text)

    @property
    def expanded(self) -> bool:
        return self.mode is TransformMode.DEEP_FORMAT

    @property
    def is_dirty(self) -> bool:
        return self.source != self.saved_text

    def set_mode(self, mode: TransformMode) -> str:
        """Show the source through ``mode``, replacing any old context.

        Returns the new view. NONE shows the source itself.
        """
        self.state = SessionState.DECODING
        result = perform_transform(self.source, mode, self.max_depth)
        self.mode = mode
        self.context = result.context
        self.view = result.output
        self._produced = (result.output, self.source)
        if self.source == self.saved_text:
            self._baseline = result.output
        else:
            self._baseline = perform_transform(self.saved_text, mode, self.max_depth).output
        self.state = SessionState.IDLE if mode is TransformMode.NONE else SessionState.AWAITING_INVERSE
        logger.debug("mode %s: %d record(s)", mode.value, len(self.context.records) if self.context else 0)
        return self.view

    def expand(self) -> str:
        """Decode the source into the expanded view."""
        return self.set_mode(TransformMode.DEEP_FORMAT)

    def adopt_view(self, view: str) -> None:
        """Treat ``view`` as an expanded view of the current source with no context.

        Later edits are folded back with a structural merge.
        """
        self.mode = TransformMode.DEEP_FORMAT
        self.context = None
        self.view = view
        self._baseline = view
        self._produced = (view, self.source)
        self.state = SessionState.AWAITING_INVERSE

    def collapse(self) -> str:
        """Leave the transformed view; the reconstructed source becomes the view."""
        return self.set_mode(TransformMode.NONE)

    def apply_edit(self, view: str) -> str:
        """Record an edit of the view and return the reconstructed source."""
        if self.state is SessionState.DECODING:
            logger.debug("edit ignored while decoding")
            return self.source
        self.view = view
        if self.state is SessionState.IDLE:
            self.source = view
        elif view == self._produced[0]:
            self.source = self._produced[1]
        else:
            self.source = perform_inverse_transform(
                view, self.mode, original_input=self._produced[1], context=self.context
            )
        return self.source

    def mark_saved(self) -> None:
        self.saved_text = self.source
        self._baseline = self.view

    # -- Presentation ------------------------------------------------------

    def gutter(self, view: str | None = None) -> list[DiffRange]:
        """Changed line ranges of the view against its saved baseline."""
        return diff_lines(self._baseline, self.view if view is None else view)

    def inspect(self, value: str) -> SchemeDecodeResult:
        return detect_and_decode(value, self.scheme_max_depth)

    def query(self, expression: str) -> list[tuple[Path, JsonValue]]:
        """JSONPath over the current view. Raises ValueError on bad input."""
        try:
            data = json.loads(self.view)
        except json.JSONDecodeError as e:
            raise ValueError(f"view is not valid JSON: {e.msg} (line {e.lineno})") from e
        return query(data, expression)

    def replace_value(self, view: str, path: Path, new_value: JsonValue) -> str:
        """Set the node at ``path`` in ``view`` and feed the result through apply_edit.

        Returns the new view text. Raises ValueError when the view does not
        parse or the path does not exist.
        """
        try:
            data = json.loads(view)
        except json.JSONDecodeError as e:
            raise ValueError(f"view is not valid JSON: {e.msg} (line {e.lineno})") from e
        if not path:
            data = new_value
        else:
            parent = data
            for seg in path[:-1]:
                parent = _child(parent, seg)
            _child(parent, path[-1])
            if isinstance(path[-1], Key):
                parent[path[-1].name] = new_value
            else:
                parent[path[-1].position] = new_value
        new_view = serialize(data, sniff_layout(view))
        self.apply_edit(new_view)
        return new_view


def _child(node: JsonValue, seg: Key | Index) -> JsonValue:
    if isinstance(seg, Key) and isinstance(node, dict) and seg.name in node:
        return node[seg.name]
    if isinstance(seg, Index) and isinstance(node, list) and 0 <= seg.position < len(node):
        return node[seg.position]
    raise ValueError(f"no such member: {seg}")
