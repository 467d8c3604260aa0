"""Analyzer: wires scanner → extractors → rules → assembler.

This is the only place the pipeline stages are composed. Everything it
holds (rule table, config) is immutable, so one ``Analyzer`` may serve
any number of threads.
"""

from __future__ import annotations

import logging
from typing import Optional

from compact_lint.core.assembler import assemble
from compact_lint.core.checks import CheckContext, run_checks
from compact_lint.core.config import AnalyzeOptions, AnalyzerConfig
from compact_lint.core.engine import IssueCollector, apply_rules
from compact_lint.core.header import extract_header
from compact_lint.core.rule_table import RuleTable, VersionRange, load_rule_table
from compact_lint.core.scanner import scan
from compact_lint.core.structure import extract_structure
from compact_lint.model.analysis_result import AnalysisResult

_logger = logging.getLogger(__name__)


class Analyzer:
    """Static analyzer bound to one rule table and one configuration.

    When *rule_table* is omitted it is loaded from
    ``config.rule_table_path``, or the bundled table when that is unset.
    Loading raises ``RuleTableError``; analysis itself never raises on
    bad input.
    """

    def __init__(
        self,
        rule_table: Optional[RuleTable] = None,
        config: Optional[AnalyzerConfig] = None,
    ) -> None:
        self.config = config or AnalyzerConfig()
        self.rule_table = rule_table or load_rule_table(self.config.rule_table_path)

    @property
    def version_range(self) -> VersionRange:
        return self.rule_table.version_range

    def analyze(
        self, source: str, options: Optional[AnalyzeOptions] = None
    ) -> AnalysisResult:
        options = options or AnalyzeOptions()

        # ── 1. scan ─────────────────────────────────────────────────
        scanned = scan(source, max_bytes=self.config.max_bytes)
        if not scanned.ok:
            _logger.debug("input rejected: %s", scanned.failure.value)
            return AnalysisResult.failure(scanned.failure)
        _logger.debug("scanned %d line(s)", scanned.line_count)

        # ── 2. extract ──────────────────────────────────────────────
        header = extract_header(scanned.lines)
        structure = extract_structure(scanned)
        _logger.debug(
            "extracted %d ledger item(s), %d circuit(s), %d witness(es)",
            len(structure.ledger_items),
            len(structure.circuits),
            len(structure.witnesses),
        )

        # ── 3. rules ────────────────────────────────────────────────
        context = CheckContext(
            scanned=scanned,
            header=header,
            structure=structure,
            version_range=self.rule_table.version_range,
            stdlib=self.rule_table.stdlib,
            options=options,
        )
        issues = IssueCollector(self.rule_table)
        issues.extend(apply_rules(scanned, self.rule_table))
        issues.extend(run_checks(context, self.rule_table))

        # ── 4. assemble ─────────────────────────────────────────────
        result = assemble(scanned, header, structure, issues.issues())
        _logger.debug("analysis complete: %s", result.summary)
        return result
