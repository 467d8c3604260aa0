"""Line scanner: splits source into lines and tracks lexical context.

Every later stage works on ``LineContext.code``: the raw line with comment
text and string-literal contents blanked out (column positions preserved),
so a pattern can never match inside a comment or a string.
"""

from __future__ import annotations

import bisect
from dataclasses import dataclass, field
from typing import Optional

from compact_lint.model import FailureReason

DEFAULT_MAX_BYTES = 256 * 1024

_QUOTE = '"'


@dataclass(frozen=True, slots=True)
class SourceDocument:
    """Raw text plus its 1-based line view."""

    text: str
    lines: tuple[str, ...]

    @classmethod
    def from_text(cls, text: str) -> "SourceDocument":
        return cls(text=text, lines=tuple(ln.rstrip("\r") for ln in text.split("\n")))

    @property
    def line_count(self) -> int:
        return len(self.lines)


@dataclass(frozen=True, slots=True)
class LineContext:
    """One scanned line.

    ``in_block_comment`` / ``in_string_literal`` describe the state at the
    *start* of the line (carried over from the previous one);
    ``in_line_comment`` is set when the line contains a ``//`` comment.
    ``depth`` is the brace depth at the start of the line.
    """

    number: int
    text: str
    code: str
    depth: int
    in_block_comment: bool = False
    in_line_comment: bool = False
    in_string_literal: bool = False

    @property
    def is_blank(self) -> bool:
        return not self.code.strip()


@dataclass(frozen=True, slots=True)
class ScanResult:
    document: Optional[SourceDocument]
    lines: tuple[LineContext, ...] = ()
    failure: Optional[FailureReason] = None
    _offsets: tuple[int, ...] = field(default=(), repr=False, compare=False)

    @property
    def ok(self) -> bool:
        return self.failure is None

    @property
    def line_count(self) -> int:
        return len(self.lines)

    @property
    def code(self) -> str:
        """All masked lines joined with ``\\n``; offsets match ``raw``."""
        return "\n".join(ln.code for ln in self.lines)

    @property
    def raw(self) -> str:
        return "\n".join(ln.text for ln in self.lines)

    def line_of(self, offset: int) -> int:
        """1-based line number for a character offset into :attr:`code`."""
        return bisect.bisect_right(self._offsets, offset)

    def line(self, number: int) -> LineContext:
        return self.lines[number - 1]

    def offset_of(self, number: int) -> int:
        """Offset into :attr:`code` of the first character of line *number*."""
        return self._offsets[number - 1]


def _line_offsets(lines: tuple[LineContext, ...]) -> tuple[int, ...]:
    offsets: list[int] = []
    pos = 0
    for ln in lines:
        offsets.append(pos)
        pos += len(ln.code) + 1
    return tuple(offsets)


def scan(source: str, *, max_bytes: int = DEFAULT_MAX_BYTES) -> ScanResult:
    """Scan *source* into ``LineContext`` records.

    Returns a failed ``ScanResult`` (never raises) for input over
    *max_bytes* or input with no non-whitespace content.
    """
    if len(source.encode("utf-8")) > max_bytes:
        return ScanResult(document=None, failure=FailureReason.INPUT_TOO_LARGE)
    if not source.strip():
        return ScanResult(document=None, failure=FailureReason.EMPTY_INPUT)

    document = SourceDocument.from_text(source)
    contexts: list[LineContext] = []

    in_block = False
    in_string = False
    depth = 0

    for number, raw in enumerate(document.lines, start=1):
        starts_in_block = in_block
        starts_in_string = in_string
        has_line_comment = False
        out: list[str] = []
        n = len(raw)
        i = 0

        while i < n:
            ch = raw[i]
            nxt = raw[i + 1] if i + 1 < n else ""

            if in_block:
                if ch == "*" and nxt == "/":
                    in_block = False
                    out.append("  ")
                    i += 2
                else:
                    out.append(" ")
                    i += 1
                continue

            if in_string:
                if ch == "\\" and nxt:
                    out.append("  ")
                    i += 2
                elif ch == _QUOTE:
                    in_string = False
                    out.append(ch)
                    i += 1
                else:
                    out.append(" ")
                    i += 1
                continue

            if ch == "/" and nxt == "/":
                has_line_comment = True
                out.append(" " * (n - i))
                break
            if ch == "/" and nxt == "*":
                in_block = True
                out.append("  ")
                i += 2
                continue
            if ch == _QUOTE:
                in_string = True
            out.append(ch)
            i += 1

        code = "".join(out)
        contexts.append(
            LineContext(
                number=number,
                text=raw,
                code=code,
                depth=depth,
                in_block_comment=starts_in_block,
                in_line_comment=has_line_comment,
                in_string_literal=starts_in_string,
            )
        )

        for ch in code:
            if ch == "{":
                depth += 1
            elif ch == "}":
                depth = max(0, depth - 1)

    lines = tuple(contexts)
    return ScanResult(document=document, lines=lines, _offsets=_line_offsets(lines))
