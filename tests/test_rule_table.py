"""Tests for rule-table loading and load-time validation."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
import yaml

from compact_lint.core.rule_table import (
    Rule,
    RuleTableError,
    VersionRange,
    default_rule_table,
    has_nested_unbounded_quantifier,
    has_overlapping_unbounded_run,
    load_rule_table,
    parse_rule_table,
    recommended_pragma,
)
from compact_lint.model import RuleKind, Severity
from compact_lint.rules import ALL_RULE_IDS


def _rule(**overrides) -> dict:
    rule = {
        "id": "sample_rule",
        "kind": "line",
        "pattern": r"\bfoo\b",
        "severity": "error",
        "message": "found {name}",
        "fix": "remove it",
    }
    rule.update(overrides)
    return rule


def _table(*rules: dict, min_: str = "0.16", max_: str = "0.18") -> dict:
    return {"version_range": {"min": min_, "max": max_}, "rules": list(rules)}


def _problems(data: dict) -> list[str]:
    with pytest.raises(RuleTableError) as exc_info:
        parse_rule_table(data)
    return exc_info.value.problems


# ── bundled table ────────────────────────────────────────────────────


class TestDefaultTable:
    def test_loads_and_is_cached(self) -> None:
        assert default_rule_table() is default_rule_table()
        assert load_rule_table() is default_rule_table()

    def test_version_range(self) -> None:
        table = default_rule_table()
        assert table.version_range == VersionRange(min=(0, 16), max=(0, 18))
        assert table.version_range.label == "0.16-0.18"
        assert table.recommended_pragma == "pragma language_version >= 0.16 && <= 0.18;"
        assert table.last_updated == "2025-01-26"

    def test_rule_ids_match_registry(self) -> None:
        ids = [r.id for r in default_rule_table().rules]
        assert len(ids) == len(set(ids))
        assert sorted(ids) == ALL_RULE_IDS

    @pytest.mark.parametrize(
        "rule_id, kind, severity",
        [
            ("deprecated_ledger_block", RuleKind.BLOCK, Severity.ERROR),
            ("deprecated_cell_wrapper", RuleKind.LINE, Severity.ERROR),
            ("invalid_void_type", RuleKind.LINE, Severity.ERROR),
            ("invalid_pragma_format", RuleKind.LINE, Severity.ERROR),
            ("unexported_enum", RuleKind.LINE, Severity.WARNING),
            ("module_level_const", RuleKind.LINE, Severity.ERROR),
            ("unsupported_division", RuleKind.LINE, Severity.ERROR),
            ("sealed_export_conflict", RuleKind.STRUCTURAL, Severity.ERROR),
            ("missing_constructor", RuleKind.STRUCTURAL, Severity.WARNING),
            ("undisclosed_constructor_param", RuleKind.STRUCTURAL, Severity.ERROR),
            ("invalid_counter_access", RuleKind.STRUCTURAL, Severity.ERROR),
            ("undisclosed_witness_conditional", RuleKind.STRUCTURAL, Severity.WARNING),
            ("potential_overflow", RuleKind.STRUCTURAL, Severity.WARNING),
            ("stdlib_name_collision", RuleKind.STRUCTURAL, Severity.ERROR),
            ("private_field_exposure", RuleKind.STRUCTURAL, Severity.WARNING),
            ("unguarded_state_change", RuleKind.STRUCTURAL, Severity.INFO),
            ("unused_witness", RuleKind.STRUCTURAL, Severity.INFO),
            ("unsupported_language_version", RuleKind.STRUCTURAL, Severity.WARNING),
            ("missing_pragma", RuleKind.STRUCTURAL, Severity.WARNING),
        ],
    )
    def test_kind_and_severity(self, rule_id: str, kind: RuleKind, severity: Severity) -> None:
        rule = default_rule_table().get(rule_id)
        assert rule is not None
        assert rule.kind == kind
        assert rule.severity == severity

    def test_scoped_rules(self) -> None:
        table = default_rule_table()
        assert table.get("unexported_enum").scope == "top_level"
        assert table.get("module_level_const").scope == "top_level"

    def test_stdlib_table(self) -> None:
        stdlib = default_rule_table().stdlib
        assert stdlib.library == "CompactStandardLibrary"
        assert "burnAddress" in stdlib.exports
        assert "increment" not in stdlib.exports

    def test_unknown_rule(self) -> None:
        table = default_rule_table()
        assert table.get("no_such_rule") is None
        assert table.order("no_such_rule") == len(table.rules)


# ── file loading ─────────────────────────────────────────────────────


class TestLoadFromFile:
    def test_json_file(self, tmp_path: Path) -> None:
        path = tmp_path / "table.json"
        path.write_text(json.dumps(_table(_rule())), encoding="utf-8")
        table = load_rule_table(path)
        assert [r.id for r in table.rules] == ["sample_rule"]
        assert table.source == str(path)

    def test_yaml_file(self, tmp_path: Path) -> None:
        path = tmp_path / "table.yaml"
        path.write_text(yaml.safe_dump(_table(_rule(), min_="0.17")), encoding="utf-8")
        table = load_rule_table(path)
        assert table.version_range.min == (0, 17)
        assert table.get("sample_rule").pattern.search("a foo b")

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_rule_table(tmp_path / "absent.json")

    def test_unparseable_json(self, tmp_path: Path) -> None:
        path = tmp_path / "broken.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(RuleTableError) as exc_info:
            load_rule_table(path)
        assert "cannot parse" in exc_info.value.problems[0]

    def test_unparseable_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "broken.yml"
        path.write_text("rules: [unclosed\n", encoding="utf-8")
        with pytest.raises(RuleTableError):
            load_rule_table(path)


# ── validation ───────────────────────────────────────────────────────


class TestValidation:
    def test_error_is_value_error(self) -> None:
        with pytest.raises(ValueError):
            parse_rule_table(_table(_rule(severity="fatal")))

    def test_schema_violation(self) -> None:
        problems = _problems(_table(_rule(severity="fatal")))
        assert any("fatal" in p for p in problems)

    def test_bad_rule_id(self) -> None:
        assert _problems(_table(_rule(id="Bad-Id")))

    def test_not_an_object(self) -> None:
        assert _problems(["not", "a", "table"])

    def test_duplicate_id(self) -> None:
        problems = _problems(_table(_rule(), _rule()))
        assert problems == ["sample_rule: duplicate rule id"]

    def test_pattern_does_not_compile(self) -> None:
        problems = _problems(_table(_rule(pattern="(unclosed")))
        assert any("does not compile" in p for p in problems)

    def test_nested_unbounded_quantifier(self) -> None:
        problems = _problems(_table(_rule(pattern="(a+)+b")))
        assert any("nested unbounded quantifier" in p for p in problems)

    def test_overlapping_unbounded_run(self) -> None:
        problems = _problems(_table(_rule(pattern=r"^pragma[^;]*?\d+\.\d+")))
        assert problems == [
            "sample_rule: unbounded run followed by another unbounded quantifier "
            "(quadratic backtracking)"
        ]

    def test_backreference(self) -> None:
        problems = _problems(_table(_rule(pattern=r"(a)\1")))
        assert any("backreference" in p for p in problems)

    def test_pattern_too_long(self) -> None:
        problems = _problems(_table(_rule(pattern="a" * 513)))
        assert any("longer than 512" in p for p in problems)

    def test_line_rule_without_pattern(self) -> None:
        rule = _rule()
        del rule["pattern"]
        problems = _problems(_table(rule))
        assert any("needs a 'pattern'" in p for p in problems)

    def test_structural_rule_without_check(self) -> None:
        problems = _problems(_table(_rule(kind="structural")))
        assert any("needs a 'check'" in p for p in problems)

    def test_unknown_check(self) -> None:
        problems = _problems(_table(_rule(kind="structural", check="no_such_check")))
        assert any("unknown check" in p for p in problems)

    def test_min_above_max(self) -> None:
        problems = _problems(_table(_rule(), min_="0.18", max_="0.16"))
        assert any("exceeds max" in p for p in problems)

    def test_all_problems_reported_together(self) -> None:
        data = _table(
            _rule(id="first_rule", pattern="(a*)*"),
            _rule(id="second_rule", kind="structural", check="nope"),
        )
        problems = _problems(data)
        assert len(problems) == 2
        assert problems[0].startswith("first_rule")
        assert problems[1].startswith("second_rule")

    def test_valid_minimal_table(self) -> None:
        table = parse_rule_table(_table(_rule()))
        assert table.stdlib.exports == frozenset()
        assert table.get("sample_rule").kind == RuleKind.LINE


@pytest.mark.parametrize(
    "pattern, nested",
    [
        ("(a+)+", True),
        ("(a*)*", True),
        (r"(?:\w*\s)*", True),
        ("(?P<x>a+)+", True),
        ("(a+){2,}", True),
        ("((a+)b)+", True),
        ("(?:ab)+", False),
        ("(a+){2}", False),
        ("(a+){1,3}", False),
        ("(a+)?", False),
        ("[(+]*", False),
        (r"\(a+\)+", False),
        (r"^\s*enum\s+(?P<name>[A-Za-z_]\w*)", False),
        ("(a++)+", False),
        ("(?:a+)*+", False),
        ("(?>a+)+", False),
        ("(?>(a+)+)", True),
        ("(a+?)+", True),
    ],
)
def test_has_nested_unbounded_quantifier(pattern: str, nested: bool) -> None:
    assert has_nested_unbounded_quantifier(pattern) is nested


@pytest.mark.parametrize(
    "pattern, overlapping",
    [
        (r"[^;]*?\d+", True),
        (r".*\d+", True),
        (r"\S+\s*\w+", True),
        (r".*foo(?:bar)+", True),
        (r"[^;]*+\d+", False),
        (r"[^;]*;\s*", False),
        (r"\w+\s*=\s*\d+", False),
        (r".*a|b+", False),
        (r"[^;]{0,256}+\d+", False),
        (r"\[^;]*\d+", False),
    ],
)
def test_has_overlapping_unbounded_run(pattern: str, overlapping: bool) -> None:
    assert has_overlapping_unbounded_run(pattern) is overlapping


def test_bundled_patterns_pass_backtracking_guard() -> None:
    for rule in default_rule_table().rules:
        if rule.pattern is not None:
            assert not has_nested_unbounded_quantifier(rule.pattern.pattern)
            assert not has_overlapping_unbounded_run(rule.pattern.pattern)


# ── templates & ranges ───────────────────────────────────────────────


class TestRender:
    def _rule(self, message: str, fix: str = "fix") -> Rule:
        return Rule(
            id="r",
            kind=RuleKind.LINE,
            severity=Severity.INFO,
            message=message,
            fix=fix,
        )

    def test_known_placeholders_filled(self) -> None:
        message, fix = self._rule("enum {name}", "export enum {name}").render({"name": "State"})
        assert message == "enum State"
        assert fix == "export enum State"

    def test_unknown_placeholders_left_as_is(self) -> None:
        message, _ = self._rule("{missing} and {name}").render({"name": "x"})
        assert message == "{missing} and x"

    def test_literal_braces_untouched(self) -> None:
        message, _ = self._rule("use 'export enum {name} { ... }'").render({"name": "E"})
        assert message == "use 'export enum E { ... }'"


class TestVersionRange:
    def test_contains_inclusive(self) -> None:
        vr = VersionRange.parse("0.16", "0.18")
        assert vr.contains((0, 16))
        assert vr.contains((0, 18))
        assert not vr.contains((0, 15))
        assert not vr.contains((0, 19))
        assert not vr.contains((1, 16))

    def test_recommended_pragma(self) -> None:
        vr = VersionRange(min=(0, 17), max=(1, 0))
        assert recommended_pragma(vr) == "pragma language_version >= 0.17 && <= 1.0;"
