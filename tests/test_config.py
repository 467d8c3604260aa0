"""Tests for AnalyzerConfig / AnalyzeOptions."""

from __future__ import annotations

from pathlib import Path

import pytest

from compact_lint.core.config import AnalyzeOptions, AnalyzerConfig
from compact_lint.core.scanner import DEFAULT_MAX_BYTES


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("COMPACT_LINT_MAX_BYTES", raising=False)
    monkeypatch.delenv("COMPACT_LINT_RULE_TABLE", raising=False)


def test_defaults() -> None:
    config = AnalyzerConfig.from_env()
    assert config == AnalyzerConfig()
    assert config.max_bytes == DEFAULT_MAX_BYTES
    assert config.rule_table_path is None


def test_env_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("COMPACT_LINT_MAX_BYTES", "2048")
    monkeypatch.setenv("COMPACT_LINT_RULE_TABLE", "rules/custom.yaml")
    config = AnalyzerConfig.from_env()
    assert config.max_bytes == 2048
    assert config.rule_table_path == Path("rules/custom.yaml")


def test_explicit_overrides_beat_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("COMPACT_LINT_MAX_BYTES", "2048")
    assert AnalyzerConfig.from_env(max_bytes=64).max_bytes == 64


def test_none_overrides_ignored(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("COMPACT_LINT_MAX_BYTES", "2048")
    config = AnalyzerConfig.from_env(max_bytes=None, rule_table_path=None)
    assert config.max_bytes == 2048


@pytest.mark.parametrize("value", [0, -1])
def test_non_positive_max_bytes(value: int) -> None:
    with pytest.raises(ValueError):
        AnalyzerConfig(max_bytes=value)


def test_bad_env_value(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("COMPACT_LINT_MAX_BYTES", "lots")
    with pytest.raises(ValueError):
        AnalyzerConfig.from_env()


def test_options_default() -> None:
    assert AnalyzeOptions().require_pragma is False
    assert AnalyzeOptions().check_security is False
