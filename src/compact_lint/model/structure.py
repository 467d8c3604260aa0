"""Declarations extracted from a contract source."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

# (major, minor)
Version = tuple[int, int]


def version_key(version: Version) -> int:
    """Comparable integer key: ``major * 100 + minor``."""
    major, minor = version
    return major * 100 + minor


def format_version(version: Version) -> str:
    return f"{version[0]}.{version[1]}"


# ── header ──────────────────────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class PragmaInfo:
    """The ``pragma language_version`` declaration.

    ``well_formed`` is False when a bound carries a patch component or the
    pragma has no comparison operator at all.
    """

    declared_min: Optional[Version]
    declared_max: Optional[Version]
    raw_text: str
    line_number: int
    well_formed: bool = True

    def to_dict(self) -> dict:
        return {
            "declaredMin": format_version(self.declared_min) if self.declared_min else None,
            "declaredMax": format_version(self.declared_max) if self.declared_max else None,
            "rawText": self.raw_text,
            "lineNumber": self.line_number,
            "wellFormed": self.well_formed,
        }


@dataclass(frozen=True, slots=True)
class ImportDecl:
    """``import Name;`` or ``import "path" prefix Name;``."""

    name: str
    line_number: int
    path: Optional[str] = None
    prefix: Optional[str] = None

    def to_dict(self) -> dict:
        d: dict = {"name": self.name, "lineNumber": self.line_number}
        if self.path is not None:
            d["path"] = self.path
        if self.prefix is not None:
            d["prefix"] = self.prefix
        return d


@dataclass(frozen=True, slots=True)
class Header:
    pragma: Optional[PragmaInfo]
    imports: tuple[ImportDecl, ...] = ()

    def imports_name(self, name: str) -> bool:
        return any(i.name == name for i in self.imports)


# ── declarations ────────────────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class Parameter:
    name: str
    type: str

    def to_dict(self) -> dict:
        return {"name": self.name, "type": self.type}


@dataclass(frozen=True, slots=True)
class LedgerItem:
    name: str
    declared_type: str
    exported: bool
    sealed: bool
    private: bool
    line_number: int

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "type": self.declared_type,
            "exported": self.exported,
            "sealed": self.sealed,
            "private": self.private,
            "lineNumber": self.line_number,
        }


@dataclass(frozen=True, slots=True)
class Circuit:
    """A circuit declaration; ``end_line`` is the line of the closing brace."""

    name: str
    parameters: tuple[Parameter, ...]
    return_type: str
    exported: bool
    line_number: int
    end_line: int
    pure: bool = False

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "parameters": [p.to_dict() for p in self.parameters],
            "returnType": self.return_type,
            "exported": self.exported,
            "pure": self.pure,
            "lineNumber": self.line_number,
        }


@dataclass(frozen=True, slots=True)
class Witness:
    name: str
    parameters: tuple[Parameter, ...]
    return_type: str
    line_number: int
    end_line: int
    exported: bool = False

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "parameters": [p.to_dict() for p in self.parameters],
            "returnType": self.return_type,
            "exported": self.exported,
            "lineNumber": self.line_number,
        }


@dataclass(frozen=True, slots=True)
class EnumDecl:
    name: str
    variants: tuple[str, ...]
    exported: bool
    line_number: int

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "variants": list(self.variants),
            "exported": self.exported,
            "lineNumber": self.line_number,
        }


@dataclass(frozen=True, slots=True)
class StructDecl:
    name: str
    fields: tuple[Parameter, ...]
    exported: bool
    line_number: int

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "fields": [f.to_dict() for f in self.fields],
            "exported": self.exported,
            "lineNumber": self.line_number,
        }


@dataclass(frozen=True, slots=True)
class TypeAlias:
    name: str
    definition: str
    line_number: int

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "definition": self.definition,
            "lineNumber": self.line_number,
        }


@dataclass(frozen=True, slots=True)
class Constructor:
    parameters: tuple[Parameter, ...]
    line_number: int
    end_line: int

    def to_dict(self) -> dict:
        return {
            "parameters": [p.to_dict() for p in self.parameters],
            "lineNumber": self.line_number,
        }


@dataclass(frozen=True, slots=True)
class Structure:
    """Top-level declarations of one contract, in source order."""

    ledger_items: tuple[LedgerItem, ...] = ()
    circuits: tuple[Circuit, ...] = ()
    witnesses: tuple[Witness, ...] = ()
    enums: tuple[EnumDecl, ...] = ()
    structs: tuple[StructDecl, ...] = ()
    type_aliases: tuple[TypeAlias, ...] = ()
    constructor: Optional[Constructor] = None

    @property
    def has_constructor(self) -> bool:
        return self.constructor is not None

    @property
    def is_empty(self) -> bool:
        return not (
            self.ledger_items
            or self.circuits
            or self.witnesses
            or self.enums
            or self.structs
            or self.type_aliases
            or self.constructor
        )

    def to_dict(self) -> dict:
        d: dict = {
            "ledgerItems": [i.to_dict() for i in self.ledger_items],
            "circuits": [c.to_dict() for c in self.circuits],
            "witnesses": [w.to_dict() for w in self.witnesses],
            "enums": [e.to_dict() for e in self.enums],
            "structs": [s.to_dict() for s in self.structs],
            "typeAliases": [t.to_dict() for t in self.type_aliases],
            "hasConstructor": self.has_constructor,
        }
        if self.constructor is not None:
            d["constructor"] = self.constructor.to_dict()
        return d
