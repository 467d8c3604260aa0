"""AnalysisResult: the immutable, schema-aligned analysis artifact."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from compact_lint.model import FailureReason, Severity
from compact_lint.model.issue import Issue
from compact_lint.model.structure import ImportDecl, PragmaInfo, Structure


@dataclass(frozen=True, slots=True)
class Stats:
    """Counts derived from a ``Structure`` and its issues.

    ``AnalysisResult.stats`` rebuilds this on every access through
    :meth:`from_structure`, so the counts never disagree with the structure
    they describe.
    """

    line_count: int
    circuit_count: int
    witness_count: int
    ledger_item_count: int
    enum_count: int
    struct_count: int
    type_alias_count: int
    exported_circuit_count: int
    exported_witness_count: int
    exported_ledger_item_count: int
    issue_counts: dict[str, int] = field(default_factory=dict)

    @classmethod
    def from_structure(
        cls, structure: Structure, issues: tuple[Issue, ...], *, line_count: int
    ) -> "Stats":
        counts = {s.value: 0 for s in Severity}
        for issue in issues:
            counts[issue.severity.value] += 1
        return cls(
            line_count=line_count,
            circuit_count=len(structure.circuits),
            witness_count=len(structure.witnesses),
            ledger_item_count=len(structure.ledger_items),
            enum_count=len(structure.enums),
            struct_count=len(structure.structs),
            type_alias_count=len(structure.type_aliases),
            exported_circuit_count=sum(1 for c in structure.circuits if c.exported),
            exported_witness_count=sum(1 for w in structure.witnesses if w.exported),
            exported_ledger_item_count=sum(1 for i in structure.ledger_items if i.exported),
            issue_counts=counts,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "lineCount": self.line_count,
            "circuitCount": self.circuit_count,
            "witnessCount": self.witness_count,
            "ledgerItemCount": self.ledger_item_count,
            "enumCount": self.enum_count,
            "structCount": self.struct_count,
            "typeAliasCount": self.type_alias_count,
            "exportedCircuitCount": self.exported_circuit_count,
            "exportedWitnessCount": self.exported_witness_count,
            "exportedLedgerItemCount": self.exported_ledger_item_count,
            "issueCounts": dict(self.issue_counts),
        }


@dataclass(frozen=True, slots=True)
class AnalysisResult:
    """Assembled result matching ``analysis_result.schema.json``.

    A failed result carries only ``failure_reason``; every other field is
    left at its empty default and omitted from :meth:`to_dict`.
    """

    success: bool
    language_version: Optional[str] = None
    pragma: Optional[PragmaInfo] = None
    imports: tuple[ImportDecl, ...] = ()
    structure: Optional[Structure] = None
    potential_issues: tuple[Issue, ...] = ()
    line_count: int = 0
    summary: str = ""
    failure_reason: Optional[FailureReason] = None

    @classmethod
    def failure(cls, reason: FailureReason) -> "AnalysisResult":
        return cls(success=False, failure_reason=reason)

    @property
    def stats(self) -> Optional[Stats]:
        if not self.success or self.structure is None:
            return None
        return Stats.from_structure(
            self.structure, self.potential_issues, line_count=self.line_count
        )

    def issues_at_or_above(self, severity: Severity) -> list[Issue]:
        return [i for i in self.potential_issues if i.severity.rank >= severity.rank]

    # ── serialisation ───────────────────────────────────────────────

    def to_dict(self) -> dict[str, Any]:
        if not self.success:
            reason = self.failure_reason.value if self.failure_reason else None
            return {"success": False, "failureReason": reason}

        structure = self.structure or Structure()
        stats = Stats.from_structure(
            structure, self.potential_issues, line_count=self.line_count
        )
        return {
            "success": True,
            "languageVersion": self.language_version,
            "pragma": self.pragma.to_dict() if self.pragma else None,
            "imports": [i.to_dict() for i in self.imports],
            "structure": structure.to_dict(),
            "stats": stats.to_dict(),
            "potentialIssues": [i.to_dict() for i in self.potential_issues],
            "summary": self.summary,
        }
