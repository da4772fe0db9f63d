"""Line diff classification for gutter markers."""

from __future__ import annotations

import re
from dataclasses import dataclass
from difflib import SequenceMatcher
from enum import Enum


class DiffType(Enum):
    ADD = "add"  # 현재 텍스트에만 존재
    DELETE = "delete"  # 이전 텍스트에만 존재 (폭 0 마커)
    MODIFY = "modify"  # 삭제 직후 추가 → 수정


@dataclass(frozen=True)
class DiffRange:
    """현재 텍스트 기준 변경 범위 (1-based, 양끝 포함)."""

    type: DiffType
    start_line: int
    end_line: int


_LINE_SPLIT = re.compile(r"\r\n|\r|\n")

_FULL_DIFF_LIMIT = 50_000


def split_lines(text: str) -> list[str]:
    return _LINE_SPLIT.split(text)


def diff_lines(previous_text: str, current_text: str) -> list[DiffRange]:
    """이전 저장본과 현재 텍스트의 라인 diff를 add/delete/modify 범위로 분류."""
    old = split_lines(previous_text)
    new = split_lines(current_text)
    if old == new:
        return []

    # 대용량 폴백: 전체를 단일 MODIFY로 처리
    if len(old) + len(new) > _FULL_DIFF_LIMIT:
        return [DiffRange(DiffType.MODIFY, 1, max(len(new), 1))]

    matcher = SequenceMatcher(None, old, new, autojunk=False)
    ranges: list[DiffRange] = []
    for tag, i1, i2, j1, j2 in matcher.get_opcodes():
        if tag == "equal":
            continue
        if tag == "replace":
            ranges.append(DiffRange(DiffType.MODIFY, j1 + 1, j2))
        elif tag == "insert":
            ranges.append(DiffRange(DiffType.ADD, j1 + 1, j2))
        elif tag == "delete":
            # 다음에 보이는 라인에 고정, 파일 끝이면 마지막 라인
            anchor = j1 + 1 if j1 < len(new) else max(len(new), 1)
            last = ranges[-1] if ranges else None
            if last is None or last.type != DiffType.DELETE or last.start_line != anchor:
                ranges.append(DiffRange(DiffType.DELETE, anchor, anchor))
    return ranges


def summarize(ranges: list[DiffRange]) -> dict[DiffType, int]:
    """타입별 변경 범위 개수."""
    counts = {t: 0 for t in DiffType}
    for r in ranges:
        counts[r.type] += 1
    return counts
