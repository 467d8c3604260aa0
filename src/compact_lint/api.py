"""
compact_lint.api
================

Programmatic entrypoints for embedding the analyzer in other tools.

Goals:
  - No argparse / CLI dependencies
  - Pure: the only I/O is :func:`analyze_file` reading its argument
  - Stable, JSON-friendly outputs that match ``analysis_result.schema.json``

Usage::

    from compact_lint.api import analyze, analyze_dict, validate_result

    result = analyze(source)
    if result.success:
        for issue in result.potential_issues:
            print(issue.line_number, issue.rule_id, issue.message)

    payload = analyze_dict(source)
    validate_result(payload)
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Optional

from compact_lint.contracts.load import validate_instance
from compact_lint.core.analyzer import Analyzer
from compact_lint.core.config import AnalyzeOptions, AnalyzerConfig
from compact_lint.core.rule_table import RuleTable
from compact_lint.model.analysis_result import AnalysisResult

RESULT_SCHEMA = "analysis_result.schema.json"


def _to_path(p: str | Path) -> Path:
    return p if isinstance(p, Path) else Path(p)


def analyze(
    source: str,
    *,
    options: Optional[AnalyzeOptions] = None,
    rule_table: Optional[RuleTable] = None,
    config: Optional[AnalyzerConfig] = None,
) -> AnalysisResult:
    """Analyze contract *source* text.

    *config* defaults to :meth:`AnalyzerConfig.from_env`; *rule_table*
    defaults to the table that config points at (the bundled one unless
    ``COMPACT_LINT_RULE_TABLE`` is set).

    Empty or oversized input yields a failed result, never an exception.
    Raises ``RuleTableError`` only while loading a rule table.
    """
    analyzer = Analyzer(rule_table=rule_table, config=config or AnalyzerConfig.from_env())
    return analyzer.analyze(source, options)


def analyze_dict(
    source: str,
    *,
    options: Optional[AnalyzeOptions] = None,
    rule_table: Optional[RuleTable] = None,
    config: Optional[AnalyzerConfig] = None,
) -> dict[str, Any]:
    """Like :func:`analyze` but returns the JSON-ready dict."""
    return analyze(source, options=options, rule_table=rule_table, config=config).to_dict()


def analyze_file(
    path: str | Path,
    *,
    options: Optional[AnalyzeOptions] = None,
    rule_table: Optional[RuleTable] = None,
    config: Optional[AnalyzerConfig] = None,
) -> AnalysisResult:
    """Read *path* as UTF-8 and analyze it.

    Raises ``OSError`` if the file cannot be read.
    """
    source = _to_path(path).read_text(encoding="utf-8", errors="replace")
    return analyze(source, options=options, rule_table=rule_table, config=config)


def validate_result(result: dict[str, Any]) -> None:
    """Validate a result dict against ``analysis_result.schema.json``.

    Raises ``jsonschema.ValidationError`` on failure.
    """
    validate_instance(result, RESULT_SCHEMA)
