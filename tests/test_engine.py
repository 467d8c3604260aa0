"""Unit tests for the pattern rule engine: one class per bundled rule."""

from __future__ import annotations

import textwrap

import pytest

from compact_lint.core.engine import IssueCollector, apply_rules
from compact_lint.core.rule_table import RuleTable, default_rule_table
from compact_lint.core.scanner import scan
from compact_lint.model import Severity
from compact_lint.model.issue import Issue

PRAGMA = "pragma language_version >= 0.16 && <= 0.18;\n"


@pytest.fixture()
def table() -> RuleTable:
    return default_rule_table()


def _issues(code: str, table: RuleTable) -> list[Issue]:
    return apply_rules(scan(textwrap.dedent(code)), table)


def _of(code: str, table: RuleTable, rule_id: str) -> list[Issue]:
    return [i for i in _issues(code, table) if i.rule_id == rule_id]


# ── deprecated_ledger_block ──────────────────────────────────────────


class TestDeprecatedLedgerBlock:
    def test_block_form_reported_once_at_keyword_line(self, table: RuleTable) -> None:
        code = PRAGMA + "ledger {\n  counter: Counter;\n}\n"
        found = _of(code, table, "deprecated_ledger_block")
        assert len(found) == 1
        assert found[0].severity == Severity.ERROR
        assert found[0].line_number == 2

    def test_no_space_before_brace(self, table: RuleTable) -> None:
        assert len(_of("ledger{\n  x: Field;\n}\n", table, "deprecated_ledger_block")) == 1

    def test_individual_statements_clean(self, table: RuleTable) -> None:
        code = PRAGMA + "export ledger counter: Counter;\nexport ledger owner: Bytes<32>;\n"
        assert _of(code, table, "deprecated_ledger_block") == []

    def test_inside_comment_ignored(self, table: RuleTable) -> None:
        assert _of("// ledger { old }\n/* ledger {\n} */\n", table, "deprecated_ledger_block") == []

    def test_identifier_containing_ledger_ignored(self, table: RuleTable) -> None:
        assert _of("circuit f(): [] { myledger {}; }\n", table, "deprecated_ledger_block") == []


# ── deprecated_cell_wrapper ──────────────────────────────────────────


class TestDeprecatedCellWrapper:
    def test_cell_type(self, table: RuleTable) -> None:
        found = _of("export ledger value: Cell<Field>;\n", table, "deprecated_cell_wrapper")
        assert len(found) == 1
        assert found[0].line_number == 1
        assert found[0].severity == Severity.ERROR

    def test_deduplicated_per_line(self, table: RuleTable) -> None:
        code = "export ledger m: Map<Cell<Field>, Cell<Field>>;\n"
        assert len(_of(code, table, "deprecated_cell_wrapper")) == 1

    def test_one_issue_per_occurrence_line(self, table: RuleTable) -> None:
        code = "ledger a: Cell<Field>;\nledger b: Cell<Boolean>;\n"
        assert [i.line_number for i in _of(code, table, "deprecated_cell_wrapper")] == [1, 2]

    def test_in_string_ignored(self, table: RuleTable) -> None:
        assert _of('const s = "Cell<Field>";\n', table, "deprecated_cell_wrapper") == []


# ── invalid_void_type ────────────────────────────────────────────────


class TestInvalidVoidType:
    def test_void_return(self, table: RuleTable) -> None:
        found = _of("export circuit f(): Void {\n}\n", table, "invalid_void_type")
        assert len(found) == 1
        assert "[]" in found[0].suggested_fix

    def test_empty_tuple_return_clean(self, table: RuleTable) -> None:
        assert _of("export circuit f(): [] {\n}\n", table, "invalid_void_type") == []

    def test_word_boundary(self, table: RuleTable) -> None:
        assert _of("export circuit f(): VoidLike {\n}\n", table, "invalid_void_type") == []


# ── invalid_pragma_format ────────────────────────────────────────────


class TestInvalidPragmaFormat:
    def test_patch_version(self, table: RuleTable) -> None:
        found = _of("pragma language_version >= 0.16.0;\n", table, "invalid_pragma_format")
        assert len(found) == 1
        assert found[0].severity == Severity.ERROR
        assert "pragma language_version >= 0.16 && <= 0.18;" in found[0].suggested_fix

    def test_patch_version_in_upper_bound(self, table: RuleTable) -> None:
        code = "pragma language_version >= 0.16 && <= 0.18.1;\n"
        assert len(_of(code, table, "invalid_pragma_format")) == 1

    def test_missing_operator(self, table: RuleTable) -> None:
        assert len(_of("pragma language_version 0.16;\n", table, "invalid_pragma_format")) == 1

    def test_second_bound_missing_operator(self, table: RuleTable) -> None:
        code = "pragma language_version >= 0.16 && 0.18;\n"
        assert len(_of(code, table, "invalid_pragma_format")) == 1

    def test_oversized_version_component(self, table: RuleTable) -> None:
        code = "pragma language_version >= 0." + "1" * 5000 + ";\n"
        assert len(_of(code, table, "invalid_pragma_format")) == 1

    @pytest.mark.parametrize(
        "pragma",
        [
            "pragma language_version >= 0.16 && <= 0.18;",
            "pragma language_version >= 0.16;",
            "pragma language_version == 0.17;",
            "pragma language_version ~ 0.16;",
            "pragma language_version >=0.16&&<=0.18;",
            "pragma language_version >= 0.16 && <= 0.18; // pinned",
        ],
    )
    def test_two_component_bounds_clean(self, table: RuleTable, pragma: str) -> None:
        assert _of(pragma + "\n", table, "invalid_pragma_format") == []


# ── unexported_enum ──────────────────────────────────────────────────


class TestUnexportedEnum:
    def test_unexported(self, table: RuleTable) -> None:
        found = _of("enum State { Active, Inactive }\n", table, "unexported_enum")
        assert len(found) == 1
        assert found[0].severity == Severity.WARNING
        assert "State" in found[0].message
        assert "export enum State" in found[0].suggested_fix

    def test_exported_clean(self, table: RuleTable) -> None:
        assert _of("export enum State { Active, Inactive }\n", table, "unexported_enum") == []

    def test_nested_enum_not_top_level(self, table: RuleTable) -> None:
        code = """\
            module M {
              enum Inner { A }
            }
        """
        assert _of(code, table, "unexported_enum") == []


# ── module_level_const ───────────────────────────────────────────────


class TestModuleLevelConst:
    def test_top_level_const(self, table: RuleTable) -> None:
        code = PRAGMA + "\nconst MAX_VALUE: Uint<128> = 1000;\n"
        found = _of(code, table, "module_level_const")
        assert len(found) == 1
        assert found[0].line_number == 3
        assert found[0].severity == Severity.ERROR
        assert "MAX_VALUE" in found[0].message
        assert "pure circuit" in found[0].suggested_fix

    def test_const_inside_circuit_clean(self, table: RuleTable) -> None:
        code = """\
            export circuit getValue(): Uint<128> {
              const MAX_VALUE: Uint<128> = 1000;
              return MAX_VALUE;
            }
        """
        assert _of(code, table, "module_level_const") == []


# ── unsupported_division ─────────────────────────────────────────────


class TestUnsupportedDivision:
    def test_division(self, table: RuleTable) -> None:
        code = """\
            export circuit divide(a: Uint<64>, b: Uint<64>): Uint<64> {
              return a / b;
            }
        """
        found = _of(code, table, "unsupported_division")
        assert len(found) == 1
        assert found[0].line_number == 2
        assert "not supported" in found[0].message
        assert "witness" in found[0].suggested_fix

    def test_division_in_comments_ignored(self, table: RuleTable) -> None:
        code = """\
            // This is a comment about a / b division
            /* and (x) / (y) here */
            export circuit add(a: Uint<64>, b: Uint<64>): Uint<64> {
              return a + b;
            }
        """
        assert _of(code, table, "unsupported_division") == []

    def test_slash_in_import_path_ignored(self, table: RuleTable) -> None:
        assert _of('import "lib/math" prefix M_;\n', table, "unsupported_division") == []


# ── ordering & dedup ─────────────────────────────────────────────────


class TestOrdering:
    def test_sorted_by_line_then_table_order(self, table: RuleTable) -> None:
        code = """\
            enum E { A }
            export circuit f(x: Cell<Field>): Void {
            }
        """
        found = _issues(code, table)
        assert [(i.line_number, i.rule_id) for i in found] == [
            (1, "unexported_enum"),
            (2, "deprecated_cell_wrapper"),
            (2, "invalid_void_type"),
        ]

    def test_failed_scan_yields_nothing(self, table: RuleTable) -> None:
        assert apply_rules(scan(""), table) == []


class TestIssueCollector:
    def test_first_issue_per_rule_and_line_kept(self, table: RuleTable) -> None:
        rule = table.get("unexported_enum")
        out = IssueCollector(table)
        out.add(rule, 3, {"name": "First"})
        out.add(rule, 3, {"name": "Second"})
        out.add(rule, 4, {"name": "Third"})
        issues = out.issues()
        assert len(issues) == 2
        assert "First" in issues[0].message

    def test_file_level_issues_sort_first(self, table: RuleTable) -> None:
        out = IssueCollector(table)
        out.add(table.get("unexported_enum"), 2, {"name": "E"})
        out.add(table.get("missing_pragma"), None)
        assert [i.line_number for i in out.issues()] == [None, 2]
