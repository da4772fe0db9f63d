"""Provenance recorded by the tree decoder."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping

from ._value import Path, TextLayout, parse_path
from .steps import TransformStep


@dataclass(frozen=True)
class PathTransformRecord:
    """Steps that turned the string at ``path`` into its expanded form."""

    path: Path
    steps: tuple[TransformStep, ...]
    original_value: str


@dataclass(frozen=True)
class TransformContext:
    """Everything needed to invert one decode of one document.

    Immutable: a new decode produces a new context instead of updating this one.
    """

    records: Mapping[Path, PathTransformRecord] = field(default_factory=dict)
    original_indentation: int | str = 0
    newline: str = "\n"
    trailing: str = ""
    separators: tuple[str, str] | None = None
    timestamp: float = field(default_factory=time.time)

    def __post_init__(self) -> None:
        object.__setattr__(self, "records", MappingProxyType(dict(self.records)))

    @classmethod
    def from_layout(
        cls, layout: TextLayout, records: Mapping[Path, PathTransformRecord] | None = None
    ) -> TransformContext:
        return cls(
            records=records or {},
            original_indentation=layout.indent,
            newline=layout.newline,
            trailing=layout.trailing,
            separators=layout.separators,
        )

    @property
    def layout(self) -> TextLayout:
        return TextLayout(self.original_indentation, self.newline, self.trailing, self.separators)

    def record_at(self, path: Path | str) -> PathTransformRecord | None:
        """Look up a record by Path or by its ``$.a[0]`` display form."""
        if isinstance(path, str):
            path = parse_path(path)
        return self.records.get(path)
