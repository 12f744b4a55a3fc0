"""Procedure catalog introspection.

Provides catalog access for Postgres stored procedures, parameter-list
parsing of procedure definitions and identifier conversion for generated
wrapper names.
"""

from procwrap.introspect.models import ProcedureInfo, SchemaCatalog
from procwrap.introspect.catalog import CatalogReader, close, connect
from procwrap.introspect.signature import annotate_parameters, parameter_clause, parse_parameters
from procwrap.introspect.naming import safe_identifier, to_identifier

__all__ = [
    "ProcedureInfo",
    "SchemaCatalog",
    "CatalogReader",
    "close",
    "connect",
    "annotate_parameters",
    "parameter_clause",
    "parse_parameters",
    "safe_identifier",
    "to_identifier",
]
