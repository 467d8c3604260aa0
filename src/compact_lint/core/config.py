"""Analyzer configuration dataclasses."""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Optional

from compact_lint.core.scanner import DEFAULT_MAX_BYTES


@dataclass(frozen=True)
class AnalyzerConfig:
    """Immutable, process-wide analyzer configuration.

    Environment variables override defaults through :meth:`from_env`:

    ``COMPACT_LINT_MAX_BYTES``   input size cap in bytes
    ``COMPACT_LINT_RULE_TABLE``  path to a JSON/YAML rule table
    """

    max_bytes: int = DEFAULT_MAX_BYTES
    rule_table_path: Optional[Path] = None

    def __post_init__(self) -> None:
        if self.max_bytes <= 0:
            raise ValueError(f"max_bytes must be positive, got {self.max_bytes}")

    @classmethod
    def from_env(cls, **overrides) -> "AnalyzerConfig":
        config = cls()
        max_bytes = os.getenv("COMPACT_LINT_MAX_BYTES")
        if max_bytes:
            config = replace(config, max_bytes=int(max_bytes))
        table = os.getenv("COMPACT_LINT_RULE_TABLE")
        if table:
            config = replace(config, rule_table_path=Path(table))
        overrides = {k: v for k, v in overrides.items() if v is not None}
        return replace(config, **overrides) if overrides else config


@dataclass(frozen=True)
class AnalyzeOptions:
    """Per-call options.

    ``require_pragma`` reports a missing pragma; ``check_security`` enables
    the privacy and access-control heuristics, which are noisier than the
    compile-error rules and therefore off by default.
    """

    require_pragma: bool = False
    check_security: bool = False
