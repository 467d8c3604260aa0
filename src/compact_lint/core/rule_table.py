"""Rule table: the versioned, data-driven set of lint rules.

A rule table is plain data (JSON, or YAML for hand-written overrides)
validated once at load time. Any problem rejects the whole table with a
``RuleTableError``; the analyzer never runs with a partially valid table.

Validation, in order:

1. JSON schema (``rule_table.schema.json``)
2. unique rule IDs
3. every ``line``/``block`` pattern compiles
4. no pattern can backtrack catastrophically or quadratically (nested
   unbounded quantifiers, a wide unbounded run followed by another
   unbounded quantifier, backreferences, oversized patterns)
5. every ``structural`` rule names a registered check
6. ``version_range.min <= version_range.max``
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from functools import lru_cache
from importlib import resources
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml

from compact_lint.contracts.load import schema_errors
from compact_lint.core.checks import CHECKS
from compact_lint.model import RuleKind, Severity
from compact_lint.model.structure import Version, format_version, version_key

_logger = logging.getLogger(__name__)

DEFAULT_TABLE = "compact_0.16-0.18.json"
RULE_TABLE_DIR = "data/rule_tables"
RULE_TABLE_SCHEMA = "rule_table.schema.json"

MAX_PATTERN_LENGTH = 512

_PLACEHOLDER_RE = re.compile(r"\{([A-Za-z_]\w*)\}")
_BACKREF_RE = re.compile(r"\\[1-9]|\(\?P=")
_BRACES_RE = re.compile(r"\{(\d*)(,?)(\d*)\}")


class RuleTableError(ValueError):
    """A rule table failed validation; carries every problem found."""

    def __init__(self, problems: list[str], *, source: str = "<rule table>") -> None:
        self.problems = list(problems)
        self.source = source
        detail = "; ".join(self.problems)
        super().__init__(f"invalid rule table {source}: {detail}")


# ── model ───────────────────────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class VersionRange:
    """Language versions this rule table understands (inclusive)."""

    min: Version
    max: Version

    @classmethod
    def parse(cls, min_text: str, max_text: str) -> "VersionRange":
        return cls(min=_parse_version(min_text), max=_parse_version(max_text))

    def contains(self, version: Version) -> bool:
        return version_key(self.min) <= version_key(version) <= version_key(self.max)

    @property
    def label(self) -> str:
        return f"{format_version(self.min)}-{format_version(self.max)}"


@dataclass(frozen=True, slots=True)
class StdlibTable:
    """Names exported by the standard library; a static lookup table."""

    library: str
    exports: frozenset[str]


@dataclass(frozen=True, slots=True)
class Rule:
    """One rule definition.

    ``kind`` selects the matcher: ``line`` and ``block`` rules carry a
    compiled ``pattern``; ``structural`` rules name a registered ``check``.
    """

    id: str
    kind: RuleKind
    severity: Severity
    message: str
    fix: str
    pattern: Optional[re.Pattern[str]] = None
    check: Optional[str] = None
    scope: str = "any"
    since: str = "always"
    description: str = ""

    def render(self, fields: Mapping[str, Any]) -> tuple[str, str]:
        """Fill ``{name}`` placeholders in message and fix.

        Unknown placeholders and any other braces are left untouched.
        """

        def _sub(m: re.Match[str]) -> str:
            value = fields.get(m.group(1))
            return m.group(0) if value is None else str(value)

        return (
            _PLACEHOLDER_RE.sub(_sub, self.message),
            _PLACEHOLDER_RE.sub(_sub, self.fix),
        )

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "id": self.id,
            "kind": self.kind.value,
            "severity": self.severity.value,
            "message": self.message,
            "fix": self.fix,
            "scope": self.scope,
            "since": self.since,
        }
        if self.pattern is not None:
            d["pattern"] = self.pattern.pattern
        if self.check is not None:
            d["check"] = self.check
        if self.description:
            d["description"] = self.description
        return d


@dataclass(frozen=True, slots=True)
class RuleTable:
    """Immutable, validated rule table. Safe to share across threads."""

    version_range: VersionRange
    rules: tuple[Rule, ...]
    stdlib: StdlibTable
    last_updated: str = ""
    reference_source: str = ""
    source: str = "<rule table>"

    def get(self, rule_id: str) -> Optional[Rule]:
        for rule in self.rules:
            if rule.id == rule_id:
                return rule
        return None

    def of_kind(self, kind: RuleKind) -> tuple[Rule, ...]:
        return tuple(r for r in self.rules if r.kind == kind)

    def order(self, rule_id: str) -> int:
        for i, rule in enumerate(self.rules):
            if rule.id == rule_id:
                return i
        return len(self.rules)

    @property
    def recommended_pragma(self) -> str:
        return recommended_pragma(self.version_range)

    @property
    def template_fields(self) -> dict[str, str]:
        """Fields every rule's message/fix may reference."""
        return {
            "min_version": format_version(self.version_range.min),
            "max_version": format_version(self.version_range.max),
            "recommended_pragma": self.recommended_pragma,
            "stdlib": self.stdlib.library,
        }

    def describe(self) -> str:
        return (
            f"Compact {self.version_range.label} "
            f"({len(self.rules)} rules, updated {self.last_updated or 'unknown'})"
        )


def recommended_pragma(version_range: VersionRange) -> str:
    return (
        "pragma language_version >= "
        f"{format_version(version_range.min)} && <= {format_version(version_range.max)};"
    )


# ── validation ──────────────────────────────────────────────────────


def _parse_version(text: str) -> Version:
    major, minor = text.split(".")
    return int(major), int(minor)


def _skip_class(pattern: str, i: int) -> int:
    """Index just past the ``]`` closing the character class at *i*."""
    n = len(pattern)
    j = i + 1
    if j < n and pattern[j] == "^":
        j += 1
    if j < n and pattern[j] == "]":
        j += 1
    while j < n and pattern[j] != "]":
        j += 2 if pattern[j] == "\\" else 1
    return j + 1


def _quantifier_at(pattern: str, i: int) -> tuple[bool, int, bool]:
    """``(unbounded, length, possessive)`` of the quantifier at *i*, if any.

    A trailing ``?`` (lazy) or ``+`` (possessive) is part of the length.
    """
    n = len(pattern)
    if i >= n:
        return False, 0, False
    ch = pattern[i]
    if ch in "*+":
        unbounded, length = True, 1
    elif ch == "?":
        unbounded, length = False, 1
    elif ch == "{":
        m = _BRACES_RE.match(pattern, i)
        if not m or not (m.group(1) or m.group(3)):
            return False, 0, False
        unbounded, length = bool(m.group(2)) and not m.group(3), m.end() - i
    else:
        return False, 0, False
    suffix = pattern[i + length] if i + length < n else ""
    if suffix == "+":
        return unbounded, length + 1, True
    if suffix == "?":
        return unbounded, length + 1, False
    return unbounded, length, False


def has_nested_unbounded_quantifier(pattern: str) -> bool:
    """True if an unboundedly repeated group itself contains an unbounded
    quantifier, e.g. ``(a+)+`` or ``(?:\\w*\\s)*``.

    Such patterns backtrack exponentially on adversarial input. Bounded
    repetition (``?``, ``{n}``, ``{n,m}``) of such a group is allowed, and
    so are possessive quantifiers and atomic groups, which never give back
    what they matched.
    """
    # one [contains_unbounded, atomic] entry per open group
    stack: list[list[bool]] = [[False, False]]
    i = 0
    n = len(pattern)
    while i < n:
        ch = pattern[i]
        if ch == "\\":
            i += 2
            continue
        if ch == "[":
            i = _skip_class(pattern, i)
            continue
        if ch == "(":
            atomic = pattern.startswith("(?>", i)
            stack.append([False, atomic])
            i += 1
            if i < n and pattern[i] == "?":
                i += 1  # group flags, not a quantifier
            continue
        if ch == ")" and len(stack) > 1:
            inner, atomic = stack.pop()
            inner = inner and not atomic
            unbounded, length, possessive = _quantifier_at(pattern, i + 1)
            if not possessive:
                if unbounded and inner:
                    return True
                if unbounded or inner:
                    stack[-1][0] = True
            i += 1 + length
            continue
        unbounded, length, possessive = _quantifier_at(pattern, i)
        if length:
            if unbounded and not possessive:
                stack[-1][0] = True
            i += length
            continue
        i += 1
    return False


def _class_literals(body: str) -> frozenset[str]:
    """Literal characters listed in a character-class body."""
    chars: set[str] = set()
    i = 0
    while i < len(body):
        if body[i] == "\\":
            nxt = body[i + 1 : i + 2]
            if nxt and not nxt.isalnum():
                chars.add(nxt)
            i += 2
            continue
        chars.add(body[i])
        i += 1
    return frozenset(chars)


def has_overlapping_unbounded_run(pattern: str) -> bool:
    """True if a backtracking run over a wide atom (``.``, ``[^...]``,
    ``\\D``, ``\\S``, ``\\W``) is followed by another backtracking unbounded
    quantifier, e.g. ``[^;]*?\\d+`` or ``.*\\d+``.

    The engine tries every split of the text between the two runs at each
    start position, which is quadratic in the line length. A literal the
    run cannot consume (the ``;`` in ``[^;]*;\\s*``) ends the run.
    """
    run_stops: Optional[frozenset[str]] = None
    i = 0
    n = len(pattern)
    while i < n:
        ch = pattern[i]
        literal: Optional[str] = None
        stops: Optional[frozenset[str]] = None
        if ch == "\\":
            nxt = pattern[i + 1 : i + 2]
            if nxt in ("D", "S", "W"):
                stops = frozenset()
            elif nxt and not nxt.isalnum():
                literal = nxt
            i += 2
        elif ch == "[":
            end = _skip_class(pattern, i)
            if pattern.startswith("[^", i):
                stops = _class_literals(pattern[i + 2 : end - 1])
            i = end
        elif ch == "(":
            i += 1
            continue
        elif ch == "|":
            run_stops = None
            i += 1
            continue
        else:
            if ch == ".":
                stops = frozenset("\n")
            elif ch not in "^$)":
                literal = ch
            i += 1
        unbounded, length, possessive = _quantifier_at(pattern, i)
        i += length
        if unbounded and not possessive:
            if run_stops is not None:
                return True
            if stops is not None:
                run_stops = stops
        elif not length and literal is not None and run_stops is not None:
            if literal in run_stops:
                run_stops = None
    return False


def _pattern_problems(rule_id: str, pattern: str) -> list[str]:
    problems: list[str] = []
    if len(pattern) > MAX_PATTERN_LENGTH:
        problems.append(f"{rule_id}: pattern longer than {MAX_PATTERN_LENGTH} characters")
    if _BACKREF_RE.search(pattern):
        problems.append(f"{rule_id}: backreferences are not allowed")
    if has_nested_unbounded_quantifier(pattern):
        problems.append(f"{rule_id}: nested unbounded quantifier (catastrophic backtracking)")
    if has_overlapping_unbounded_run(pattern):
        problems.append(
            f"{rule_id}: unbounded run followed by another unbounded quantifier "
            "(quadratic backtracking)"
        )
    return problems


def parse_rule_table(data: Any, *, source: str = "<rule table>") -> RuleTable:
    """Validate raw table data and build an immutable ``RuleTable``."""
    problems = schema_errors(data, RULE_TABLE_SCHEMA)
    if problems:
        raise RuleTableError(problems, source=source)

    rules: list[Rule] = []
    seen: set[str] = set()

    for raw in data["rules"]:
        rule_id = raw["id"]
        if rule_id in seen:
            problems.append(f"{rule_id}: duplicate rule id")
            continue
        seen.add(rule_id)

        kind = RuleKind(raw["kind"])
        compiled: Optional[re.Pattern[str]] = None
        check: Optional[str] = None

        if kind == RuleKind.STRUCTURAL:
            check = raw.get("check")
            if not check:
                problems.append(f"{rule_id}: structural rule needs a 'check'")
            elif check not in CHECKS:
                problems.append(f"{rule_id}: unknown check {check!r}")
        else:
            pattern = raw.get("pattern")
            if not pattern:
                problems.append(f"{rule_id}: {kind.value} rule needs a 'pattern'")
            else:
                try:
                    compiled = re.compile(pattern, re.MULTILINE if kind == RuleKind.BLOCK else 0)
                except re.error as exc:
                    problems.append(f"{rule_id}: pattern does not compile: {exc}")
                problems.extend(_pattern_problems(rule_id, pattern))

        rules.append(
            Rule(
                id=rule_id,
                kind=kind,
                severity=Severity(raw["severity"]),
                message=raw["message"],
                fix=raw["fix"],
                pattern=compiled,
                check=check,
                scope=raw.get("scope", "any"),
                since=raw.get("since", "always"),
                description=raw.get("description", ""),
            )
        )

    version_range = VersionRange.parse(
        data["version_range"]["min"], data["version_range"]["max"]
    )
    if version_key(version_range.min) > version_key(version_range.max):
        problems.append(f"version_range: min {version_range.label} exceeds max")

    if problems:
        raise RuleTableError(problems, source=source)

    stdlib_raw = data.get("stdlib", {})
    return RuleTable(
        version_range=version_range,
        rules=tuple(rules),
        stdlib=StdlibTable(
            library=stdlib_raw.get("library", "CompactStandardLibrary"),
            exports=frozenset(stdlib_raw.get("exports", [])),
        ),
        last_updated=data.get("last_updated", ""),
        reference_source=data.get("reference_source", ""),
        source=source,
    )


# ── loading ─────────────────────────────────────────────────────────


def _read_table_file(path: Path) -> Any:
    text = path.read_text(encoding="utf-8")
    try:
        if path.suffix.lower() in (".yaml", ".yml"):
            return yaml.safe_load(text)
        return json.loads(text)
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        raise RuleTableError([f"cannot parse: {exc}"], source=str(path)) from exc


def _bundled_table_text(name: str) -> str:
    return (
        resources.files("compact_lint")
        .joinpath(RULE_TABLE_DIR, name)
        .read_text(encoding="utf-8")
    )


def load_rule_table(path: Path | str | None = None) -> RuleTable:
    """Load and validate a rule table; the bundled default when *path* is None.

    Raises ``RuleTableError`` on any problem and ``FileNotFoundError`` when
    *path* does not exist.
    """
    if path is None:
        return default_rule_table()

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"rule table not found: {path}")
    table = parse_rule_table(_read_table_file(path), source=str(path))
    _logger.info("Loaded rule table %s: %s", path, table.describe())
    return table


@lru_cache(maxsize=1)
def default_rule_table() -> RuleTable:
    """The bundled rule table, loaded and validated once per process."""
    data = json.loads(_bundled_table_text(DEFAULT_TABLE))
    table = parse_rule_table(data, source=DEFAULT_TABLE)
    _logger.debug("Loaded bundled rule table: %s", table.describe())
    return table
