"""Enums shared across the scanner, rule engine and result layers."""

from __future__ import annotations

from enum import Enum


class Severity(str, Enum):
    """Issue severity: fixed per rule, never computed."""

    ERROR = "error"
    WARNING = "warning"
    INFO = "info"

    @property
    def rank(self) -> int:
        """Higher is more severe (``error`` > ``warning`` > ``info``)."""
        return _SEVERITY_RANK[self]


_SEVERITY_RANK = {
    Severity.INFO: 0,
    Severity.WARNING: 1,
    Severity.ERROR: 2,
}


class RuleKind(str, Enum):
    """How a rule is matched against the scanned source."""

    LINE = "line"              # regex per line of masked code
    BLOCK = "block"            # regex over the joined masked code
    STRUCTURAL = "structural"  # registered check over extracted structure


class FailureReason(str, Enum):
    """Why the input could not be minimally tokenized."""

    EMPTY_INPUT = "EmptyInput"
    INPUT_TOO_LARGE = "InputTooLarge"
