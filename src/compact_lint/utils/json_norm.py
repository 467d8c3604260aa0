"""Canonical JSON serialization: the single dump path for results.

Guarantees:
  - Stable key ordering (``sort_keys=True``)
  - Trailing newline at EOF
  - Objects with ``to_dict()`` (results, issues, rules) → their dict form
  - Enums → their value, ``Path`` → POSIX string, tuples/sets → lists

Two calls on equal inputs return identical strings; ``analyze`` relies on
this for its idempotence guarantee.
"""

from __future__ import annotations

import json
from enum import Enum
from pathlib import Path
from typing import Any, IO, Mapping


def _to_builtin(obj: Any) -> Any:
    """Convert model objects and common non-JSON types into builtins."""
    if obj is None or isinstance(obj, (bool, int, float)):
        return obj
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, str):
        return obj
    if isinstance(obj, Path):
        return obj.as_posix()
    to_dict = getattr(obj, "to_dict", None)
    if callable(to_dict):
        return _to_builtin(to_dict())
    if isinstance(obj, Mapping):
        return {str(k): _to_builtin(v) for k, v in obj.items()}
    if isinstance(obj, (set, frozenset)):
        return sorted(_to_builtin(v) for v in obj)
    if isinstance(obj, (list, tuple)):
        return [_to_builtin(v) for v in obj]
    raise TypeError(f"cannot serialise {type(obj).__name__} to JSON")


def stable_json_dumps(obj: Any, *, indent: int | None = 2) -> str:
    """Canonical JSON text for *obj*, newline-terminated."""
    s = json.dumps(
        _to_builtin(obj),
        indent=indent,
        sort_keys=True,
        ensure_ascii=False,
    )
    return s + "\n"


def stable_json_dump(obj: Any, fp: IO[str], *, indent: int | None = 2) -> None:
    fp.write(stable_json_dumps(obj, indent=indent))
