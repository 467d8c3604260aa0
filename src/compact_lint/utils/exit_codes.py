"""Exit-code contract for every CLI command.

Code  Meaning
----  -------
  0   Success: no issue at or above the ``--fail-on`` threshold
  1   Violation: at least one issue at or above the threshold,
      or a result that fails schema validation
  2   Error: usage error, unreadable input, invalid rule table,
      or input the scanner rejected (empty / too large)
"""

from __future__ import annotations

from enum import IntEnum


class ExitCode(IntEnum):
    SUCCESS = 0
    VIOLATION = 1
    ERROR = 2
