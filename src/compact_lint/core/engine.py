"""Rule engine: applies ``line`` and ``block`` rules to scanned source.

Patterns only ever see masked code (see ``core.scanner``), so comment and
string-literal text cannot produce an issue.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Iterable, Mapping, Optional

from compact_lint.core.scanner import ScanResult
from compact_lint.model import RuleKind
from compact_lint.model.issue import Issue

if TYPE_CHECKING:
    from compact_lint.core.rule_table import Rule, RuleTable

_logger = logging.getLogger(__name__)

TOP_LEVEL = "top_level"


class IssueCollector:
    """Accumulates issues, keeping the first per ``(rule_id, line)``.

    :meth:`issues` returns them ordered by line, then by the rule's
    position in the table. File-level issues (no line) sort first.
    """

    def __init__(self, rule_table: RuleTable) -> None:
        self._table = rule_table
        self._issues: dict[tuple[str, Optional[int]], Issue] = {}

    def __len__(self) -> int:
        return len(self._issues)

    def add(
        self,
        rule: Rule,
        line: Optional[int],
        fields: Optional[Mapping[str, Any]] = None,
    ) -> None:
        key = (rule.id, line)
        if key in self._issues:
            return
        values = dict(self._table.template_fields)
        if fields:
            values.update({k: v for k, v in fields.items() if v is not None})
        message, fix = rule.render(values)
        self._issues[key] = Issue(
            rule_id=rule.id,
            severity=rule.severity,
            message=message,
            suggested_fix=fix,
            line_number=line,
        )

    def extend(self, issues: Iterable[Issue]) -> None:
        for issue in issues:
            self._issues.setdefault(issue.key, issue)

    def issues(self) -> list[Issue]:
        return sorted(
            self._issues.values(),
            key=lambda i: (i.line_number or 0, self._table.order(i.rule_id)),
        )


def _apply_line_rule(rule: Rule, scanned: ScanResult, out: IssueCollector) -> None:
    assert rule.pattern is not None
    for line in scanned.lines:
        if rule.scope == TOP_LEVEL and line.depth != 0:
            continue
        m = rule.pattern.search(line.code)
        if m:
            out.add(rule, line.number, m.groupdict())


def _apply_block_rule(rule: Rule, scanned: ScanResult, out: IssueCollector) -> None:
    assert rule.pattern is not None
    for m in rule.pattern.finditer(scanned.code):
        number = scanned.line_of(m.start())
        if rule.scope == TOP_LEVEL and scanned.line(number).depth != 0:
            continue
        out.add(rule, number, m.groupdict())


def apply_rules(scanned: ScanResult, rule_table: RuleTable) -> list[Issue]:
    """Run every pattern rule in *rule_table* over *scanned*."""
    if not scanned.ok:
        return []

    out = IssueCollector(rule_table)
    for rule in rule_table.rules:
        if rule.kind == RuleKind.LINE:
            _apply_line_rule(rule, scanned, out)
        elif rule.kind == RuleKind.BLOCK:
            _apply_block_rule(rule, scanned, out)

    _logger.debug("pattern rules produced %d issue(s)", len(out))
    return out.issues()
