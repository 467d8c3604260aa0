"""Structural checks: rules that need more than one line to decide.

Each check is a plain function ``(CheckContext) -> Iterator[CheckMatch]``
registered under a stable name. A ``structural`` rule in the rule table
names the check it runs; the table supplies severity and message/fix
templates, the check supplies the line and the template fields.

Checks are lexical heuristics over masked code plus the extracted
``Structure``. They never raise on odd input; a shape they do not
recognise simply produces no match.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Iterator, Optional

from compact_lint.core.config import AnalyzeOptions
from compact_lint.core.engine import IssueCollector
from compact_lint.core.scanner import LineContext, ScanResult
from compact_lint.model import RuleKind
from compact_lint.model.issue import Issue
from compact_lint.model.structure import Header, Structure, format_version

if TYPE_CHECKING:
    from compact_lint.core.rule_table import RuleTable, StdlibTable, VersionRange

_logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CheckMatch:
    """One hit: the line to report (``None`` for file-level) and the
    values for the rule's ``{placeholders}``."""

    line: Optional[int]
    fields: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class CheckContext:
    """Everything a check may look at, for one analysis."""

    scanned: ScanResult
    header: Header
    structure: Structure
    version_range: VersionRange
    stdlib: StdlibTable
    options: AnalyzeOptions = AnalyzeOptions()

    def body_lines(self, start: int, end: int) -> tuple[LineContext, ...]:
        """Scanned lines ``start..end`` inclusive (1-based)."""
        return self.scanned.lines[start - 1:end]


CheckFn = Callable[[CheckContext], Iterator[CheckMatch]]

CHECKS: dict[str, CheckFn] = {}


def register(name: str) -> Callable[[CheckFn], CheckFn]:
    def _decorator(fn: CheckFn) -> CheckFn:
        if name in CHECKS:
            raise ValueError(f"check {name!r} registered twice")
        CHECKS[name] = fn
        return fn

    return _decorator


# ── helpers ─────────────────────────────────────────────────────────

# ``target = rhs`` / ``target += rhs``; not ``==``, ``<=``, ``>=``, ``!=``.
_ASSIGN_RE = re.compile(
    r"(?<![\w.])(?P<target>[A-Za-z_]\w*)\s*[+-]?=(?!=)(?P<rhs>[^;]*)"
)
_IF_RE = re.compile(r"\bif\s*\(")
_CONST_RE = re.compile(
    r"\bconst\s+(?P<name>[A-Za-z_]\w*)\s*+(?::(?P<type>[^=;]{0,256}+))?=(?!=)(?P<init>[^;]*)"
)
_CALL_RE = re.compile(r"\b(?P<name>[A-Za-z_]\w*)\s*\(")
_MUL_RE = re.compile(r"\b(?P<left>[A-Za-z_]\w*)\s*\*(?!=)\s*(?P<right>[A-Za-z_]\w*)")
# A bare identifier; ``x`` in ``x.y`` counts, ``y`` does not.
_IDENT_RE = re.compile(r"(?<![\w.])[A-Za-z_]\w*")
_COUNTER_VALUE_RE = re.compile(r"(?<![\w.])(?P<name>[A-Za-z_]\w*)\s*\.\s*value\b")
_DISCLOSURE_RE = re.compile(r"\b(?:disclose|commit|persistentCommit|transientCommit)\s*[<(]")
_ASSERT_RE = re.compile(r"\bassert\b")
_MUTATOR_RE = re.compile(
    r"(?<![\w.])(?P<target>[A-Za-z_]\w*)\s*\.\s*"
    r"(?:insert\w*|increment|decrement|remove\w*|write\w*|resetToDefault|push\w*|pop\w*)\s*\("
)


def _is_uint(type_text: Optional[str]) -> bool:
    return bool(type_text) and type_text.strip().startswith("Uint")


def _condition(code: str, open_paren: int) -> str:
    """Text between the ``(`` at *open_paren* and its match (or line end)."""
    depth = 0
    for pos in range(open_paren, len(code)):
        ch = code[pos]
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
            if depth == 0:
                return code[open_paren + 1:pos]
    return code[open_paren + 1:]


def _first_named(text: str, order: dict[str, int]) -> Optional[str]:
    """The identifier in *text* that comes first in *order*, if any."""
    hits = {name for name in _IDENT_RE.findall(text) if name in order}
    return min(hits, key=order.__getitem__) if hits else None


def _sealed_fields(structure: Structure) -> list[str]:
    return [item.name for item in structure.ledger_items if item.sealed]


def _body_code(ctx: CheckContext, start: int, end: int) -> str:
    return "\n".join(line.code for line in ctx.body_lines(start, end))


# ── checks ──────────────────────────────────────────────────────────


@register("sealed_field_written_in_circuit")
def sealed_field_written_in_circuit(ctx: CheckContext) -> Iterator[CheckMatch]:
    """An exported circuit assigns a ``sealed`` ledger field."""
    sealed = set(_sealed_fields(ctx.structure))
    if not sealed:
        return
    for circuit in ctx.structure.circuits:
        if not circuit.exported:
            continue
        for line in ctx.body_lines(circuit.line_number, circuit.end_line):
            for m in _ASSIGN_RE.finditer(line.code):
                if m.group("target") in sealed:
                    yield CheckMatch(
                        line.number,
                        {"circuit": circuit.name, "field": m.group("target")},
                    )


@register("sealed_fields_without_constructor")
def sealed_fields_without_constructor(ctx: CheckContext) -> Iterator[CheckMatch]:
    if ctx.structure.has_constructor:
        return
    sealed = [item for item in ctx.structure.ledger_items if item.sealed]
    if sealed:
        yield CheckMatch(
            sealed[0].line_number,
            {"field": sealed[0].name, "count": len(sealed)},
        )


@register("constructor_param_without_disclose")
def constructor_param_without_disclose(ctx: CheckContext) -> Iterator[CheckMatch]:
    """A constructor parameter flows into a ledger field undisclosed."""
    ctor = ctx.structure.constructor
    if ctor is None or not ctor.parameters:
        return
    ledger_names = {item.name for item in ctx.structure.ledger_items}
    order: dict[str, int] = {}
    for p in ctor.parameters:
        if p.name:
            order.setdefault(p.name, len(order))

    for line in ctx.body_lines(ctor.line_number, ctor.end_line):
        for m in _ASSIGN_RE.finditer(line.code):
            target, rhs = m.group("target"), m.group("rhs")
            if target not in ledger_names or "disclose" in rhs:
                continue
            name = _first_named(rhs, order)
            if name is not None:
                yield CheckMatch(line.number, {"param": name, "field": target})


@register("counter_value_read")
def counter_value_read(ctx: CheckContext) -> Iterator[CheckMatch]:
    counters = {
        item.name
        for item in ctx.structure.ledger_items
        if re.match(r"Counter\b", item.declared_type)
    }
    if not counters:
        return
    for line in ctx.scanned.lines:
        reported: set[str] = set()
        for m in _COUNTER_VALUE_RE.finditer(line.code):
            name = m.group("name")
            if name in counters and name not in reported:
                reported.add(name)
                yield CheckMatch(line.number, {"field": name})


@register("witness_in_conditional")
def witness_in_conditional(ctx: CheckContext) -> Iterator[CheckMatch]:
    """A witness value decides an ``if`` without passing through ``disclose``."""
    order: dict[str, int] = {}
    for w in ctx.structure.witnesses:
        order.setdefault(w.name, len(order))
    if not order:
        return
    for circuit in ctx.structure.circuits:
        for line in ctx.body_lines(circuit.line_number, circuit.end_line):
            covered = -1
            for m in _IF_RE.finditer(line.code):
                open_paren = m.end() - 1
                if open_paren < covered:
                    continue  # inside a condition already examined
                cond = _condition(line.code, open_paren)
                covered = open_paren + 1 + len(cond)
                if "disclose" in cond:
                    continue
                name = _first_named(cond, order)
                if name is not None:
                    yield CheckMatch(line.number, {"witness": name, "circuit": circuit.name})


@register("uint_multiplication")
def uint_multiplication(ctx: CheckContext) -> Iterator[CheckMatch]:
    """``a * b`` where an operand is known to be a ``Uint``.

    Operands are resolved from circuit parameters, ledger fields and
    ``const`` locals typed ``Uint`` or initialised from a witness call
    returning ``Uint``.
    """
    uint_witnesses = {w.name for w in ctx.structure.witnesses if _is_uint(w.return_type)}
    uint_ledger = {i.name for i in ctx.structure.ledger_items if _is_uint(i.declared_type)}

    for circuit in ctx.structure.circuits:
        uints = set(uint_ledger)
        uints.update(p.name for p in circuit.parameters if _is_uint(p.type))

        for line in ctx.body_lines(circuit.line_number, circuit.end_line):
            for m in _CONST_RE.finditer(line.code):
                call = _CALL_RE.search(m.group("init"))
                if _is_uint(m.group("type")) or (call and call.group("name") in uint_witnesses):
                    uints.add(m.group("name"))
            for m in _MUL_RE.finditer(line.code):
                if m.group("left") in uints or m.group("right") in uints:
                    yield CheckMatch(
                        line.number,
                        {
                            "circuit": circuit.name,
                            "left": m.group("left"),
                            "right": m.group("right"),
                        },
                    )
                    break


@register("stdlib_name_redefined")
def stdlib_name_redefined(ctx: CheckContext) -> Iterator[CheckMatch]:
    """A circuit or witness shadows a name the imported standard library exports."""
    if not ctx.header.imports_name(ctx.stdlib.library):
        return
    for decl in (*ctx.structure.circuits, *ctx.structure.witnesses):
        if decl.name in ctx.stdlib.exports:
            yield CheckMatch(decl.line_number, {"name": decl.name})


# ── security checks (opt-in through ``AnalyzeOptions.check_security``) ──


@register("private_field_in_exported_circuit")
def private_field_in_exported_circuit(ctx: CheckContext) -> Iterator[CheckMatch]:
    """An exported circuit touches a ``@private`` ledger field and never
    discloses or commits anything."""
    if not ctx.options.check_security:
        return
    private = {item.name for item in ctx.structure.ledger_items if item.private}
    if not private:
        return
    for circuit in ctx.structure.circuits:
        if not circuit.exported:
            continue
        lines = ctx.body_lines(circuit.line_number, circuit.end_line)
        if any(_DISCLOSURE_RE.search(line.code) for line in lines):
            continue
        seen: set[str] = set()
        for line in lines:
            for name in _IDENT_RE.findall(line.code):
                if name in private and name not in seen:
                    seen.add(name)
                    yield CheckMatch(line.number, {"field": name, "circuit": circuit.name})


@register("state_change_without_assert")
def state_change_without_assert(ctx: CheckContext) -> Iterator[CheckMatch]:
    """An exported circuit writes ledger state without a single ``assert``."""
    if not ctx.options.check_security:
        return
    ledger_names = {item.name for item in ctx.structure.ledger_items}
    if not ledger_names:
        return
    for circuit in ctx.structure.circuits:
        if not circuit.exported:
            continue
        body = _body_code(ctx, circuit.line_number, circuit.end_line)
        if _ASSERT_RE.search(body):
            continue
        writes = (
            m.group("target")
            for regex in (_ASSIGN_RE, _MUTATOR_RE)
            for m in regex.finditer(body)
        )
        if any(target in ledger_names for target in writes):
            yield CheckMatch(circuit.line_number, {"circuit": circuit.name})


@register("witness_never_used")
def witness_never_used(ctx: CheckContext) -> Iterator[CheckMatch]:
    """A declared witness is called from no circuit or constructor."""
    if not ctx.options.check_security or not ctx.structure.witnesses:
        return
    bodies = [(c.line_number, c.end_line) for c in ctx.structure.circuits]
    ctor = ctx.structure.constructor
    if ctor is not None:
        bodies.append((ctor.line_number, ctor.end_line))
    used: set[str] = set()
    for start, end in bodies:
        used.update(_IDENT_RE.findall(_body_code(ctx, start, end)))
    for witness in ctx.structure.witnesses:
        if witness.name not in used:
            yield CheckMatch(witness.line_number, {"witness": witness.name})


@register("pragma_outside_supported_range")
def pragma_outside_supported_range(ctx: CheckContext) -> Iterator[CheckMatch]:
    pragma = ctx.header.pragma
    if pragma is None:
        return
    bound = pragma.declared_min or pragma.declared_max
    if bound is not None and not ctx.version_range.contains(bound):
        yield CheckMatch(pragma.line_number, {"declared": format_version(bound)})


@register("pragma_missing")
def pragma_missing(ctx: CheckContext) -> Iterator[CheckMatch]:
    if ctx.options.require_pragma and ctx.header.pragma is None:
        yield CheckMatch(None)


# ── driver ──────────────────────────────────────────────────────────


def run_checks(context: CheckContext, rule_table: RuleTable) -> list[Issue]:
    """Run the check behind every ``structural`` rule in *rule_table*."""
    out = IssueCollector(rule_table)
    for rule in rule_table.of_kind(RuleKind.STRUCTURAL):
        check = CHECKS[rule.check]
        for match in check(context):
            out.add(rule, match.line, match.fields)
    _logger.debug("structural checks produced %d issue(s)", len(out))
    return out.issues()
