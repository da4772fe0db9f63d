"""Runtime configuration for the jdeep editor."""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace

from .scheme import DEFAULT_MAX_DEPTH as SCHEME_MAX_DEPTH
from .walker import DEFAULT_MAX_DEPTH


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, str(default))
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name, str(default))
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None


@dataclass(frozen=True)
class EditorConfig:
    """Settings read from the environment, overridable from the command line."""

    max_depth: int = field(default_factory=lambda: _env_int("JDEEP_MAX_DEPTH", DEFAULT_MAX_DEPTH))
    scheme_max_depth: int = field(
        default_factory=lambda: _env_int("JDEEP_SCHEME_DEPTH", SCHEME_MAX_DEPTH)
    )
    # 연속 입력을 한 번의 디코드로 묶는 대기 시간 (초)
    debounce: float = field(default_factory=lambda: _env_float("JDEEP_DEBOUNCE", 0.4))
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "WARNING"))

    def validate(self) -> None:
        """Raise ValueError for settings the engine cannot run with."""
        errors = []
        if self.max_depth < 1:
            errors.append("max_depth must be >= 1")
        if self.scheme_max_depth < 1:
            errors.append("scheme_max_depth must be >= 1")
        if self.debounce < 0:
            errors.append("debounce must be >= 0")
        if self.log_level.upper() not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            errors.append(f"unknown log level: {self.log_level}")
        if errors:
            raise ValueError("Invalid configuration: " + "; ".join(errors))

    def with_overrides(self, **overrides: object) -> EditorConfig:
        """Copy with every non-None override applied."""
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})
