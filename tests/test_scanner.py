"""Unit tests for the line scanner: masking, depth and input failures."""

from __future__ import annotations

import textwrap

import pytest

from compact_lint.core.scanner import DEFAULT_MAX_BYTES, scan
from compact_lint.model import FailureReason


def _scan(code: str):
    return scan(textwrap.dedent(code))


# ── line splitting ───────────────────────────────────────────────────


class TestLineSplitting:
    def test_numbers_lines_from_one(self) -> None:
        result = scan("a;\nb;\nc;")
        assert [ln.number for ln in result.lines] == [1, 2, 3]
        assert result.line(2).text == "b;"

    def test_trailing_newline_yields_final_empty_line(self) -> None:
        result = scan("a;\nb;\n")
        assert result.line_count == 3
        assert result.line(3).text == ""

    def test_crlf_is_stripped(self) -> None:
        result = scan("a;\r\nb;\r\n")
        assert result.line(1).text == "a;"
        assert result.line(2).text == "b;"

    def test_line_of_maps_offsets(self) -> None:
        result = scan("ab\ncd")
        assert result.line_of(0) == 1
        assert result.line_of(2) == 1
        assert result.line_of(3) == 2
        assert result.offset_of(2) == 3


# ── masking ──────────────────────────────────────────────────────────


class TestMasking:
    def test_line_comment_masked_and_flagged(self) -> None:
        line = scan("x = 1; // ledger {").line(1)
        assert "ledger" not in line.code
        assert line.code.startswith("x = 1;")
        assert line.in_line_comment is True
        assert len(line.code) == len(line.text)

    def test_block_comment_spans_lines(self) -> None:
        result = _scan("""\
            /* start
            ledger {
            */ x;
        """)
        assert result.line(1).code.strip() == ""
        assert result.line(2).in_block_comment is True
        assert result.line(2).code.strip() == ""
        assert result.line(3).code.strip() == "x;"
        assert result.line(3).in_block_comment is True

    def test_inline_block_comment(self) -> None:
        line = scan("a /* Cell<Field> */ b").line(1)
        assert "Cell" not in line.code
        assert line.code.startswith("a ")
        assert line.code.endswith(" b")

    def test_string_contents_masked_quotes_kept(self) -> None:
        line = scan('import "lib/a.compact";').line(1)
        assert "/" not in line.code
        assert line.code.count('"') == 2
        assert line.code.startswith('import "')
        assert line.code.endswith('";')

    def test_escaped_quote_stays_inside_string(self) -> None:
        line = scan('x = "a\\"b" / c;').line(1)
        assert line.code.count('"') == 2
        assert line.code.endswith(" / c;")

    def test_comment_marker_inside_string_is_not_a_comment(self) -> None:
        line = scan('x = "http://example"; y;').line(1)
        assert line.in_line_comment is False
        assert line.code.endswith("; y;")

    def test_string_carries_across_lines(self) -> None:
        result = scan('x = "first\nsecond" ; y;')
        assert result.line(2).in_string_literal is True
        assert "second" not in result.line(2).code
        assert result.line(2).code.endswith("; y;")


# ── depth ────────────────────────────────────────────────────────────


class TestDepth:
    def test_depth_is_brace_depth_at_line_start(self) -> None:
        result = _scan("""\
            circuit f(): [] {
              x;
              if (y) {
                z;
              }
            }
            w;
        """)
        assert [ln.depth for ln in result.lines[:7]] == [0, 1, 1, 2, 2, 1, 0]

    def test_braces_in_comments_do_not_count(self) -> None:
        result = scan("// {{{\nx;")
        assert result.line(2).depth == 0

    def test_depth_never_negative(self) -> None:
        result = scan("}\n}\nx;")
        assert all(ln.depth == 0 for ln in result.lines)


# ── failures ─────────────────────────────────────────────────────────


class TestFailures:
    @pytest.mark.parametrize("source", ["", "   ", "\n\n\t\n"])
    def test_empty_input(self, source: str) -> None:
        result = scan(source)
        assert not result.ok
        assert result.failure == FailureReason.EMPTY_INPUT
        assert result.lines == ()

    def test_too_large(self) -> None:
        result = scan("a" * 11, max_bytes=10)
        assert result.failure == FailureReason.INPUT_TOO_LARGE

    def test_size_checked_before_emptiness(self) -> None:
        assert scan(" " * 20, max_bytes=10).failure == FailureReason.INPUT_TOO_LARGE

    def test_size_counts_utf8_bytes(self) -> None:
        # six characters, twelve bytes
        assert scan("é" * 6, max_bytes=10).failure == FailureReason.INPUT_TOO_LARGE
        assert scan("é" * 5, max_bytes=10).ok

    def test_default_cap(self) -> None:
        assert DEFAULT_MAX_BYTES == 262144
        assert scan("a" * DEFAULT_MAX_BYTES).ok
