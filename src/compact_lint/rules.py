"""Canonical rule ID registry.

Single source of truth for the rule IDs shipped in the bundled rule table.
Downstream consumers (review tools, generation validators, drift tests)
filter ``potentialIssues`` on these IDs.

Structure:
  PUBLIC_RULE_IDS       - stable, supported, safe for downstream consumption
  EXPERIMENTAL_RULE_IDS - heuristic checks, may change or be removed
  DEPRECATED_RULE_IDS   - scheduled for removal, do not add new usage
  ALL_RULE_IDS          - union of all buckets (internal use only)
"""

from __future__ import annotations

# ── Deprecated syntax (public) ──────────────────────────────────────
DEPRECATED_LEDGER_BLOCK = "deprecated_ledger_block"
DEPRECATED_CELL_WRAPPER = "deprecated_cell_wrapper"

# ── Invalid syntax (public) ─────────────────────────────────────────
INVALID_VOID_TYPE = "invalid_void_type"
INVALID_PRAGMA_FORMAT = "invalid_pragma_format"
MODULE_LEVEL_CONST = "module_level_const"
UNSUPPORTED_DIVISION = "unsupported_division"
UNEXPORTED_ENUM = "unexported_enum"

# ── Version (public) ────────────────────────────────────────────────
UNSUPPORTED_LANGUAGE_VERSION = "unsupported_language_version"
MISSING_PRAGMA = "missing_pragma"

# ── Cross-declaration checks (experimental) ─────────────────────────
SEALED_EXPORT_CONFLICT = "sealed_export_conflict"
MISSING_CONSTRUCTOR = "missing_constructor"
UNDISCLOSED_CONSTRUCTOR_PARAM = "undisclosed_constructor_param"
INVALID_COUNTER_ACCESS = "invalid_counter_access"
UNDISCLOSED_WITNESS_CONDITIONAL = "undisclosed_witness_conditional"
POTENTIAL_OVERFLOW = "potential_overflow"
STDLIB_NAME_COLLISION = "stdlib_name_collision"

# ── Security heuristics, opt-in (experimental) ──────────────────────
PRIVATE_FIELD_EXPOSURE = "private_field_exposure"
UNGUARDED_STATE_CHANGE = "unguarded_state_change"
UNUSED_WITNESS = "unused_witness"

# ── Buckets ─────────────────────────────────────────────────────────

PUBLIC_RULE_IDS: list[str] = sorted([
    DEPRECATED_LEDGER_BLOCK,
    DEPRECATED_CELL_WRAPPER,
    INVALID_VOID_TYPE,
    INVALID_PRAGMA_FORMAT,
    MODULE_LEVEL_CONST,
    UNSUPPORTED_DIVISION,
    UNEXPORTED_ENUM,
    UNSUPPORTED_LANGUAGE_VERSION,
    MISSING_PRAGMA,
])

EXPERIMENTAL_RULE_IDS: list[str] = sorted([
    SEALED_EXPORT_CONFLICT,
    MISSING_CONSTRUCTOR,
    UNDISCLOSED_CONSTRUCTOR_PARAM,
    INVALID_COUNTER_ACCESS,
    UNDISCLOSED_WITNESS_CONDITIONAL,
    POTENTIAL_OVERFLOW,
    STDLIB_NAME_COLLISION,
    PRIVATE_FIELD_EXPOSURE,
    UNGUARDED_STATE_CHANGE,
    UNUSED_WITNESS,
])

DEPRECATED_RULE_IDS: list[str] = sorted([
    # Add deprecated rules here before removal
])

# Union of all buckets (internal use only)
ALL_RULE_IDS: list[str] = sorted(set(
    PUBLIC_RULE_IDS
    + EXPERIMENTAL_RULE_IDS
    + DEPRECATED_RULE_IDS
))

# Errors that mean "this will not compile on a supported compiler".
# Generated examples and embedded templates must never trip these.
P0_RULE_IDS: frozenset[str] = frozenset({
    DEPRECATED_LEDGER_BLOCK,
    INVALID_VOID_TYPE,
    INVALID_PRAGMA_FORMAT,
    DEPRECATED_CELL_WRAPPER,
})

RULE_ID_PATTERN = r"^[a-z][a-z0-9_]*$"


def stability(rule_id: str) -> str:
    """Return ``public``, ``experimental``, ``deprecated`` or ``custom``."""
    if rule_id in PUBLIC_RULE_IDS:
        return "public"
    if rule_id in EXPERIMENTAL_RULE_IDS:
        return "experimental"
    if rule_id in DEPRECATED_RULE_IDS:
        return "deprecated"
    return "custom"


def _assert_rule_registry_invariants() -> None:
    """Fail fast on invariant violations.

    Called at import time so CI and local runs catch issues immediately.
    """
    import re

    rule_re = re.compile(RULE_ID_PATTERN)

    def _check_bucket(name: str, ids: list[str]) -> None:
        if ids != sorted(ids):
            raise AssertionError(f"{name} must be sorted")
        if len(ids) != len(set(ids)):
            raise AssertionError(f"{name} must contain unique IDs")
        bad = [x for x in ids if not rule_re.match(x)]
        if bad:
            raise AssertionError(f"{name} contains invalid rule IDs: {bad}")

    _check_bucket("PUBLIC_RULE_IDS", PUBLIC_RULE_IDS)
    _check_bucket("EXPERIMENTAL_RULE_IDS", EXPERIMENTAL_RULE_IDS)
    _check_bucket("DEPRECATED_RULE_IDS", DEPRECATED_RULE_IDS)
    _check_bucket("ALL_RULE_IDS", ALL_RULE_IDS)

    # Buckets must be disjoint.
    pub = set(PUBLIC_RULE_IDS)
    exp = set(EXPERIMENTAL_RULE_IDS)
    dep = set(DEPRECATED_RULE_IDS)
    overlap = (pub & exp) | (pub & dep) | (exp & dep)
    if overlap:
        raise AssertionError(
            f"Rule ID buckets must be disjoint; overlaps: {sorted(overlap)}"
        )

    if not P0_RULE_IDS <= pub:
        raise AssertionError("P0_RULE_IDS must be public rules")


_assert_rule_registry_invariants()
