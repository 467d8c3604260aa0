"""Pragma & import extraction."""

from __future__ import annotations

import re
from typing import Optional, Sequence

from compact_lint.core.scanner import LineContext
from compact_lint.model.structure import Header, ImportDecl, PragmaInfo, Version

_PRAGMA_RE = re.compile(r"^\s*pragma\s+language_version\b(?P<body>[^;]*)")
_BOUND_RE = re.compile(r"(?P<op>>=|<=|==|>|<|~)\s*(?P<ver>\d+(?:\.\d+)*)")
_VERSION_RE = re.compile(r"(?<![\d.])\d+(?:\.\d+)*")

_LOWER_OPS = frozenset({">=", ">", "==", "~"})
_UPPER_OPS = frozenset({"<=", "<", "=="})

# Longer components cannot name a real release.
_MAX_COMPONENT_DIGITS = 9

_IMPORT_START_RE = re.compile(r"^\s*(?:import|include)\b")
# Matched against masked code; string contents are blanked there, so paths
# are sliced back out of the raw text by offset.
_IMPORT_RE = re.compile(
    r'^\s*import\s+(?:(?P<ident>[A-Za-z_]\w*)|"(?P<path>[^"]*)")'
    r"(?:\s+prefix\s+(?P<prefix>[A-Za-z_]\w*))?\s*;"
)
_INCLUDE_RE = re.compile(r'^\s*include\s+"(?P<path>[^"]*)"\s*;')


def _parse_version(text: str) -> Optional[tuple[Version, bool]]:
    """Return ``((major, minor), two_component)`` for a dotted version.

    ``None`` when a component is too long to be a version number.
    """
    pieces = text.split(".")
    if any(len(p) > _MAX_COMPONENT_DIGITS for p in pieces):
        return None
    parts = [int(p) for p in pieces]
    if len(parts) == 1:
        return (parts[0], 0), False
    return (parts[0], parts[1]), len(parts) == 2


def parse_pragma(line: LineContext) -> Optional[PragmaInfo]:
    """Parse a pragma from one scanned line, or ``None`` if it is not one.

    The pragma is well formed only when every version in it follows a
    comparison operator and has exactly two components.
    """
    m = _PRAGMA_RE.match(line.code)
    if not m:
        return None

    body = m.group("body")
    declared_min: Optional[Version] = None
    declared_max: Optional[Version] = None

    bounds = list(_BOUND_RE.finditer(body))
    versions = list(_VERSION_RE.finditer(body))
    bound_starts = {b.start("ver") for b in bounds}
    well_formed = bool(versions) and all(v.start() in bound_starts for v in versions)

    if not bounds and versions:
        # ``pragma language_version 0.16;``: no operator
        parsed = _parse_version(versions[0].group(0))
        if parsed is not None:
            declared_min = parsed[0]

    for b in bounds:
        parsed = _parse_version(b.group("ver"))
        if parsed is None:
            well_formed = False
            continue
        version, two_component = parsed
        if not two_component:
            well_formed = False
        op = b.group("op")
        if op in _LOWER_OPS and declared_min is None:
            declared_min = version
        if op in _UPPER_OPS and declared_max is None:
            declared_max = version

    return PragmaInfo(
        declared_min=declared_min,
        declared_max=declared_max,
        raw_text=line.text.strip(),
        line_number=line.number,
        well_formed=well_formed,
    )


def parse_import(line: LineContext) -> Optional[ImportDecl]:
    if line.depth != 0 or not _IMPORT_START_RE.match(line.code):
        return None
    m = _IMPORT_RE.match(line.code)
    if m:
        ident = m.group("ident")
        path = line.text[m.start("path"):m.end("path")] if m.group("path") is not None else None
        return ImportDecl(
            name=ident if ident is not None else path,
            line_number=line.number,
            path=path,
            prefix=m.group("prefix"),
        )
    m = _INCLUDE_RE.match(line.code)
    if m:
        path = line.text[m.start("path"):m.end("path")]
        return ImportDecl(name=path, line_number=line.number, path=path)
    return None


def extract_header(lines: Sequence[LineContext]) -> Header:
    """Locate the first pragma and every import, in source order."""
    pragma: Optional[PragmaInfo] = None
    imports: list[ImportDecl] = []

    for line in lines:
        if line.is_blank:
            continue
        if pragma is None:
            pragma = parse_pragma(line)
            if pragma is not None:
                continue
        decl = parse_import(line)
        if decl is not None:
            imports.append(decl)

    return Header(pragma=pragma, imports=tuple(imports))
