"""Structural extractor: top-level declarations of a contract.

The contract language's top level is one declaration per statement, so a
bracket-aware statement splitter over the masked code is enough; no AST is
built. A statement ends at a ``;`` outside any brackets or at the ``}`` that
closes a top-level block. Annotations such as ``@private`` have no
terminator and therefore travel with the statement that follows them.

Statements that cannot be classified are skipped.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Iterator, Optional

from compact_lint.core.scanner import ScanResult
from compact_lint.model.structure import (
    Circuit,
    Constructor,
    EnumDecl,
    LedgerItem,
    Parameter,
    Structure,
    StructDecl,
    TypeAlias,
    Witness,
)

_logger = logging.getLogger(__name__)

_DECL_RE = re.compile(
    r"(?P<annotations>(?:@[A-Za-z_]\w*\s*)*)"
    r"(?P<modifiers>(?:(?:export|sealed|pure)\s+)*)"
    r"(?P<keyword>ledger|circuit|witness|enum|struct|type|constructor)\b"
)
_NAME = r"(?P<name>[A-Za-z_]\w*)"
_GENERICS = r"(?:<[^<>(){};]*(?:<[^<>(){};]*>[^<>(){};]*)*>\s*)?"

_LEDGER_RE = re.compile(r"ledger\s+" + _NAME + r"\s*:\s*(?P<type>[^;]+)", re.S)
_CALLABLE_RE = re.compile(r"(?:circuit|witness)\s+" + _NAME + r"\s*" + _GENERICS + r"\(")
_WITNESS_VALUE_RE = re.compile(r"witness\s+" + _NAME + r"\s*:\s*(?P<type>[^;{]+)", re.S)
_ENUM_RE = re.compile(r"enum\s+" + _NAME + r"\s*\{")
_STRUCT_RE = re.compile(r"struct\s+" + _NAME + r"\s*" + _GENERICS + r"\{")
_TYPE_RE = re.compile(r"type\s+" + _NAME + r"\s*" + _GENERICS + r"=\s*(?P<definition>[^;]+)", re.S)
_CONSTRUCTOR_RE = re.compile(r"constructor\s*\(")
_RETURN_RE = re.compile(r"\s*:\s*(?P<type>[^{;]+)")

_OPENERS = {"<": ">", "[": "]", "(": ")", "{": "}"}
_CLOSERS = {v: k for k, v in _OPENERS.items()}


@dataclass(frozen=True, slots=True)
class _Statement:
    start: int  # offset of first non-space char
    end: int    # offset one past the terminator
    text: str   # masked code for [start, end)


def _squash(text: str) -> str:
    return " ".join(text.split())


def split_params(text: str, separators: str = ",") -> list[str]:
    """Split on top-level *separators*, tracking ``<>``, ``[]``, ``()``, ``{}``
    depth and double-quoted strings.

    ``Map<A, B>``, ``[Field, Boolean]`` and ``(x: Field) => Boolean`` stay in
    one piece.
    """
    parts: list[str] = []
    depth = {opener: 0 for opener in _OPENERS}
    in_string = False
    current: list[str] = []

    for i, ch in enumerate(text):
        if ch == '"' and (i == 0 or text[i - 1] != "\\"):
            in_string = not in_string
        if not in_string:
            if ch in _OPENERS:
                depth[ch] += 1
            elif ch in _CLOSERS:
                opener = _CLOSERS[ch]
                depth[opener] = max(0, depth[opener] - 1)
            elif ch in separators and not any(depth.values()):
                piece = "".join(current).strip()
                if piece:
                    parts.append(piece)
                current = []
                continue
        current.append(ch)

    piece = "".join(current).strip()
    if piece:
        parts.append(piece)
    return parts


def parse_parameter(text: str) -> Parameter:
    name, sep, type_ = text.partition(":")
    if not sep:
        return Parameter(name=_squash(text), type="")
    return Parameter(name=_squash(name), type=_squash(type_))


class _Extractor:
    """Single-use walker over one ``ScanResult``."""

    def __init__(self, scanned: ScanResult) -> None:
        self.scanned = scanned
        self.code = scanned.code
        self.raw = scanned.raw

        self.ledger_items: list[LedgerItem] = []
        self.circuits: list[Circuit] = []
        self.witnesses: list[Witness] = []
        self.enums: list[EnumDecl] = []
        self.structs: list[StructDecl] = []
        self.type_aliases: list[TypeAlias] = []
        self.constructor: Optional[Constructor] = None

    # ── helpers ─────────────────────────────────────────────────────

    def _text(self, start: int, end: int) -> str:
        """Squashed source text; raw text where a string literal was masked."""
        masked = self.code[start:end]
        if '"' in masked:
            return _squash(self.raw[start:end])
        return _squash(masked)

    def _matching(self, open_pos: int, limit: int) -> int:
        """Offset of the bracket closing the one at *open_pos* (or *limit*)."""
        opener = self.code[open_pos]
        closer = _OPENERS[opener]
        depth = 0
        for pos in range(open_pos, limit):
            ch = self.code[pos]
            if ch == opener:
                depth += 1
            elif ch == closer:
                depth -= 1
                if depth == 0:
                    return pos
        return limit

    def _statements(self) -> Iterator[_Statement]:
        code = self.code
        brace = paren = 0
        start: Optional[int] = None

        for pos, ch in enumerate(code):
            if start is None:
                if ch.isspace() or (ch == ";" and brace == 0):
                    continue
                start = pos
            if ch == "(" or ch == "[":
                paren += 1
            elif ch == ")" or ch == "]":
                paren = max(0, paren - 1)
            elif ch == "{":
                brace += 1
            elif ch == "}":
                brace = max(0, brace - 1)
                if brace == 0:
                    yield _Statement(start, pos + 1, code[start:pos + 1])
                    start = None
                    paren = 0
            elif ch == ";" and brace == 0 and paren == 0:
                yield _Statement(start, pos + 1, code[start:pos + 1])
                start = None

        if start is not None and code[start:].strip():
            yield _Statement(start, len(code), code[start:])

    def _params(self, open_pos: int, limit: int) -> tuple[tuple[Parameter, ...], int]:
        close = self._matching(open_pos, limit)
        inner = self._text(open_pos + 1, close)
        return tuple(parse_parameter(p) for p in split_params(inner)), close

    def _end_line(self, stmt: _Statement) -> int:
        return self.scanned.line_of(stmt.end - 1)

    # ── per-keyword handlers ────────────────────────────────────────

    def _ledger(self, stmt: _Statement, base: int, flags: set[str], private: bool, line: int) -> None:
        m = _LEDGER_RE.match(self.code, base, stmt.end)
        if not m:
            # ``ledger { ... }`` block form; reported by the rule engine.
            _logger.debug("line %d: unclassified ledger statement skipped", line)
            return
        self.ledger_items.append(
            LedgerItem(
                name=m.group("name"),
                declared_type=self._text(m.start("type"), m.end("type")),
                exported="export" in flags,
                sealed="sealed" in flags,
                private=private,
                line_number=line,
            )
        )

    def _callable(self, stmt: _Statement, base: int, flags: set[str], keyword: str, line: int) -> None:
        m = _CALLABLE_RE.match(self.code, base, stmt.end)
        if not m:
            if keyword == "witness":
                self._witness_value(stmt, base, flags, line)
            else:
                _logger.debug("line %d: unclassified circuit statement skipped", line)
            return

        params, close = self._params(m.end() - 1, stmt.end)
        ret = _RETURN_RE.match(self.code, close + 1, stmt.end)
        return_type = self._text(ret.start("type"), ret.end("type")) if ret else "[]"
        end_line = self._end_line(stmt)

        if keyword == "circuit":
            self.circuits.append(
                Circuit(
                    name=m.group("name"),
                    parameters=params,
                    return_type=return_type,
                    exported="export" in flags,
                    pure="pure" in flags,
                    line_number=line,
                    end_line=end_line,
                )
            )
        else:
            self.witnesses.append(
                Witness(
                    name=m.group("name"),
                    parameters=params,
                    return_type=return_type,
                    exported="export" in flags,
                    line_number=line,
                    end_line=end_line,
                )
            )

    def _witness_value(self, stmt: _Statement, base: int, flags: set[str], line: int) -> None:
        m = _WITNESS_VALUE_RE.match(self.code, base, stmt.end)
        if not m:
            _logger.debug("line %d: unclassified witness statement skipped", line)
            return
        self.witnesses.append(
            Witness(
                name=m.group("name"),
                parameters=(),
                return_type=self._text(m.start("type"), m.end("type")),
                exported="export" in flags,
                line_number=line,
                end_line=self._end_line(stmt),
            )
        )

    def _enum(self, stmt: _Statement, base: int, flags: set[str], line: int) -> None:
        m = _ENUM_RE.match(self.code, base, stmt.end)
        if not m:
            _logger.debug("line %d: unclassified enum statement skipped", line)
            return
        close = self._matching(m.end() - 1, stmt.end)
        variants = tuple(_squash(v) for v in split_params(self.code[m.end():close]))
        self.enums.append(
            EnumDecl(
                name=m.group("name"),
                variants=variants,
                exported="export" in flags,
                line_number=line,
            )
        )

    def _struct(self, stmt: _Statement, base: int, flags: set[str], line: int) -> None:
        m = _STRUCT_RE.match(self.code, base, stmt.end)
        if not m:
            _logger.debug("line %d: unclassified struct statement skipped", line)
            return
        close = self._matching(m.end() - 1, stmt.end)
        body = self._text(m.end(), close)
        fields = tuple(parse_parameter(f) for f in split_params(body, separators=",;"))
        self.structs.append(
            StructDecl(
                name=m.group("name"),
                fields=fields,
                exported="export" in flags,
                line_number=line,
            )
        )

    def _type_alias(self, stmt: _Statement, base: int, line: int) -> None:
        m = _TYPE_RE.match(self.code, base, stmt.end)
        if not m:
            _logger.debug("line %d: unclassified type statement skipped", line)
            return
        self.type_aliases.append(
            TypeAlias(
                name=m.group("name"),
                definition=self._text(m.start("definition"), m.end("definition")),
                line_number=line,
            )
        )

    def _constructor(self, stmt: _Statement, base: int, line: int) -> None:
        m = _CONSTRUCTOR_RE.match(self.code, base, stmt.end)
        if not m:
            return
        if self.constructor is not None:
            _logger.debug("line %d: additional constructor ignored", line)
            return
        params, _ = self._params(m.end() - 1, stmt.end)
        self.constructor = Constructor(
            parameters=params,
            line_number=line,
            end_line=self._end_line(stmt),
        )

    def _resync(self, stmt: _Statement) -> Optional[re.Match[str]]:
        """Find a declaration starting a later line of *stmt*.

        Recovers declarations that follow an unterminated statement, such
        as a pragma missing its ``;``.
        """
        first = self.scanned.line_of(stmt.start)
        last = self.scanned.line_of(stmt.end - 1)
        for number in range(first + 1, last + 1):
            ctx = self.scanned.line(number)
            if ctx.depth != 0 or ctx.is_blank:
                continue
            offset = self.scanned.offset_of(number) + len(ctx.code) - len(ctx.code.lstrip())
            m = _DECL_RE.match(self.code, offset, stmt.end)
            if m:
                return m
        return None

    # ── driver ──────────────────────────────────────────────────────

    def run(self) -> Structure:
        for stmt in self._statements():
            m = _DECL_RE.match(self.code, stmt.start, stmt.end) or self._resync(stmt)
            if not m:
                continue
            keyword = m.group("keyword")
            base = m.start("keyword")
            line = self.scanned.line_of(m.start("modifiers"))
            flags = set(m.group("modifiers").split())
            private = "@private" in m.group("annotations").split()

            if keyword == "ledger":
                self._ledger(stmt, base, flags, private, line)
            elif keyword in ("circuit", "witness"):
                self._callable(stmt, base, flags, keyword, line)
            elif keyword == "enum":
                self._enum(stmt, base, flags, line)
            elif keyword == "struct":
                self._struct(stmt, base, flags, line)
            elif keyword == "type":
                self._type_alias(stmt, base, line)
            else:
                self._constructor(stmt, base, line)

        return Structure(
            ledger_items=tuple(self.ledger_items),
            circuits=tuple(self.circuits),
            witnesses=tuple(self.witnesses),
            enums=tuple(self.enums),
            structs=tuple(self.structs),
            type_aliases=tuple(self.type_aliases),
            constructor=self.constructor,
        )


def extract_structure(scanned: ScanResult) -> Structure:
    """Extract top-level declarations from a successful scan."""
    if not scanned.ok:
        return Structure()
    return _Extractor(scanned).run()
