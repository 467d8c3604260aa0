"""Stats & result assembly: the last pipeline stage."""

from __future__ import annotations

from typing import Optional, Sequence

from compact_lint.core.scanner import ScanResult
from compact_lint.model.analysis_result import AnalysisResult
from compact_lint.model.issue import Issue
from compact_lint.model.structure import Header, PragmaInfo, Structure, format_version


def language_version(pragma: Optional[PragmaInfo]) -> Optional[str]:
    """``"MAJOR.MINOR"`` of the declared lower bound, else the upper bound."""
    if pragma is None:
        return None
    bound = pragma.declared_min or pragma.declared_max
    return format_version(bound) if bound is not None else None


def _plural(count: int, noun: str) -> str:
    return f"{count} {noun}(s)"


def summarize(structure: Structure, issues: Sequence[Issue]) -> str:
    """One-line, human-readable description of a contract.

    >>> summarize(Structure(), [])
    'Contract contains: no definitions found'
    """
    if structure.is_empty:
        text = "Contract contains: no definitions found"
    else:
        text = "Contract contains: " + ", ".join(_parts(structure))
    if issues:
        text += f"; {_plural(len(issues), 'potential issue')}"
    return text


def _parts(structure: Structure) -> list[str]:
    parts: list[str] = []
    if structure.circuits:
        parts.append(_plural(len(structure.circuits), "circuit"))
    if structure.witnesses:
        parts.append(_plural(len(structure.witnesses), "witness"))
    if structure.ledger_items:
        parts.append(_plural(len(structure.ledger_items), "ledger item"))
    if structure.enums:
        parts.append(_plural(len(structure.enums), "enum"))
    if structure.structs:
        parts.append(_plural(len(structure.structs), "struct"))
    if structure.type_aliases:
        parts.append(_plural(len(structure.type_aliases), "type alias"))
    if structure.has_constructor:
        parts.append("a constructor")
    return parts


def assemble(
    scanned: ScanResult,
    header: Header,
    structure: Structure,
    issues: Sequence[Issue],
) -> AnalysisResult:
    """Build the successful ``AnalysisResult``; stats derive from *structure*."""
    issues = tuple(issues)
    return AnalysisResult(
        success=True,
        language_version=language_version(header.pragma),
        pragma=header.pragma,
        imports=header.imports,
        structure=structure,
        potential_issues=issues,
        line_count=scanned.line_count,
        summary=summarize(structure, issues),
    )
