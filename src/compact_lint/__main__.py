"""CLI entry-point for compact_lint.

Usage:
    python -m compact_lint analyze <file|-> [--json] [--rules FILE] [--require-pragma] [--security]
                                            [--fail-on error|warning|info|never]
                                            [--max-bytes N] [--verbose]
    python -m compact_lint rules [--rules FILE] [--json]
    python -m compact_lint validate <result.json>
    python -m compact_lint version
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from compact_lint import __version__
from compact_lint.contracts.load import schema_errors
from compact_lint.core.analyzer import Analyzer
from compact_lint.core.config import AnalyzeOptions, AnalyzerConfig
from compact_lint.core.rule_table import RuleTable, RuleTableError, load_rule_table
from compact_lint.model import Severity
from compact_lint.model.analysis_result import AnalysisResult
from compact_lint.rules import stability
from compact_lint.utils.exit_codes import ExitCode
from compact_lint.utils.json_norm import stable_json_dump

_FAIL_ON_CHOICES = ("error", "warning", "info", "never")
_RESULT_SCHEMA = "analysis_result.schema.json"


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="compact-lint",
        description="Static analysis for Compact smart-contract sources.",
    )
    p.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    sub = p.add_subparsers(dest="command")

    # ── analyze ─────────────────────────────────────────────────────
    an = sub.add_parser("analyze", help="Analyze one contract source.")
    an.add_argument("path", help="Source file to analyze, or '-' for stdin.")
    an.add_argument(
        "--json",
        dest="json_out",
        action="store_true",
        default=False,
        help="Print the full AnalysisResult JSON to stdout.",
    )
    an.add_argument(
        "--rules",
        type=Path,
        default=None,
        help="Rule table (JSON or YAML) to use instead of the bundled one.",
    )
    an.add_argument(
        "--require-pragma",
        action="store_true",
        default=False,
        help="Report a missing 'pragma language_version' declaration.",
    )
    an.add_argument(
        "--security",
        dest="check_security",
        action="store_true",
        default=False,
        help="Also run the privacy and access-control heuristics.",
    )
    an.add_argument(
        "--fail-on",
        choices=_FAIL_ON_CHOICES,
        default="error",
        help="Lowest severity that makes the command exit 1 (default: error).",
    )
    an.add_argument(
        "--max-bytes",
        type=int,
        default=None,
        help="Reject input larger than N bytes.",
    )
    an.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        default=False,
        help="Log pipeline progress to stderr.",
    )

    # ── rules ───────────────────────────────────────────────────────
    ru = sub.add_parser("rules", help="List the rules of a rule table.")
    ru.add_argument("--rules", type=Path, default=None)
    ru.add_argument("--json", dest="json_out", action="store_true", default=False)

    # ── validate ────────────────────────────────────────────────────
    va = sub.add_parser(
        "validate", help="Validate an emitted result against its JSON schema."
    )
    va.add_argument("instance", type=Path, help="Path to a result JSON file.")

    # ── version ─────────────────────────────────────────────────────
    sub.add_parser("version", help="Print tool version and supported language range.")

    return p


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def _read_source(path: str) -> str:
    if path == "-":
        return sys.stdin.read()
    return Path(path).read_text(encoding="utf-8", errors="replace")


# ── human output ────────────────────────────────────────────────────


def _print_report(result: AnalysisResult, *, source_name: str) -> None:
    print(f"{source_name}: {result.summary}")
    if result.language_version:
        print(f"  language version: {result.language_version}")
    for issue in result.potential_issues:
        where = f"line {issue.line_number}" if issue.line_number else "file"
        print(f"  {where} [{issue.severity.value}] {issue.rule_id}: {issue.message}")
        print(f"      fix: {issue.suggested_fix}")


# ── handlers ────────────────────────────────────────────────────────


def _handle_analyze(args: argparse.Namespace) -> int:
    _configure_logging(args.verbose)
    try:
        config = AnalyzerConfig.from_env(
            max_bytes=args.max_bytes, rule_table_path=args.rules
        )
        analyzer = Analyzer(config=config)
    except (RuleTableError, FileNotFoundError, ValueError) as e:
        print(f"error: {e}", file=sys.stderr)
        return ExitCode.ERROR

    try:
        source = _read_source(args.path)
    except OSError as e:
        print(f"error: cannot read {args.path}: {e}", file=sys.stderr)
        return ExitCode.ERROR

    options = AnalyzeOptions(
        require_pragma=args.require_pragma, check_security=args.check_security
    )
    result = analyzer.analyze(source, options)

    if args.json_out:
        stable_json_dump(result, sys.stdout)

    if not result.success:
        print(f"error: {args.path}: {result.failure_reason.value}", file=sys.stderr)
        return ExitCode.ERROR

    if not args.json_out:
        _print_report(result, source_name="<stdin>" if args.path == "-" else args.path)

    if args.fail_on == "never":
        return ExitCode.SUCCESS
    if result.issues_at_or_above(Severity(args.fail_on)):
        return ExitCode.VIOLATION
    return ExitCode.SUCCESS


def _rules_payload(table: RuleTable) -> dict:
    return {
        "versionRange": {
            "min": table.template_fields["min_version"],
            "max": table.template_fields["max_version"],
        },
        "lastUpdated": table.last_updated,
        "referenceSource": table.reference_source,
        "recommendedPragma": table.recommended_pragma,
        "rules": [dict(rule.to_dict(), stability=stability(rule.id)) for rule in table.rules],
    }


def _handle_rules(args: argparse.Namespace) -> int:
    try:
        table = load_rule_table(args.rules)
    except (RuleTableError, FileNotFoundError) as e:
        print(f"error: {e}", file=sys.stderr)
        return ExitCode.ERROR

    if args.json_out:
        stable_json_dump(_rules_payload(table), sys.stdout)
        return ExitCode.SUCCESS

    print(table.describe())
    for rule in table.rules:
        print(
            f"  {rule.id:<32} {rule.kind.value:<10} {rule.severity.value:<8} "
            f"{stability(rule.id):<12} {rule.description}"
        )
    return ExitCode.SUCCESS


def _handle_validate(args: argparse.Namespace) -> int:
    # Exit code contract:
    #   1 = schema violation
    #   2 = unreadable file / not JSON
    try:
        instance = json.loads(args.instance.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return ExitCode.ERROR

    errors = schema_errors(instance, _RESULT_SCHEMA)
    if errors:
        for err in errors:
            print(f"FAIL: {err}", file=sys.stderr)
        return ExitCode.VIOLATION
    print("OK")
    return ExitCode.SUCCESS


def _handle_version() -> int:
    table = load_rule_table()
    print(f"compact-lint {__version__} (Compact {table.version_range.label})")
    return ExitCode.SUCCESS


def main(argv: list[str] | None = None) -> int:
    """Entry-point: returns an ``ExitCode``."""
    parser = _build_parser()
    args = parser.parse_args(list(argv) if argv is not None else sys.argv[1:])

    if args.command == "analyze":
        return _handle_analyze(args)
    if args.command == "rules":
        return _handle_rules(args)
    if args.command == "validate":
        return _handle_validate(args)
    if args.command == "version":
        return _handle_version()

    parser.print_help(sys.stderr)
    return ExitCode.ERROR


if __name__ == "__main__":
    raise SystemExit(main())
