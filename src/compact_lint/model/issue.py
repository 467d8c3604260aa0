"""Issue: the normalized engine output for a single detected problem."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from . import Severity


@dataclass(frozen=True, slots=True)
class Issue:
    """Immutable, schema-aligned lint finding.

    Corresponds to ``potentialIssues[]`` in ``analysis_result.schema.json``.
    ``line_number`` is ``None`` only for file-level findings such as a
    missing pragma.
    """

    rule_id: str
    severity: Severity
    message: str
    suggested_fix: str
    line_number: Optional[int] = None

    @property
    def key(self) -> tuple[str, Optional[int]]:
        """Deduplication key."""
        return (self.rule_id, self.line_number)

    # ── serialisation ───────────────────────────────────────────────

    def to_dict(self) -> dict:
        d: dict = {
            "ruleId": self.rule_id,
            "severity": self.severity.value,
            "message": self.message,
            "suggestedFix": self.suggested_fix,
        }
        if self.line_number is not None:
            d["lineNumber"] = self.line_number
        return d
