"""Catalog records shared by the reader, parser and emitter."""
from __future__ import annotations
from dataclasses import dataclass, field


@dataclass
class ProcedureInfo:
    """A stored procedure as found in the catalog."""
    name: str
    parameters: list[str] = field(default_factory=list)
    definition: str = ""


@dataclass
class SchemaCatalog:
    """Procedures and tables discovered in one schema during one run."""
    schema: str
    procedures: list[ProcedureInfo] = field(default_factory=list)
    tables: list[str] = field(default_factory=list)
