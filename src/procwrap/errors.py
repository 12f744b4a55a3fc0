"""Exception hierarchy for procwrap.

Per-schema failures are raised as one of these and caught by the pipeline so
that other schemas in the same run keep going.
"""
from __future__ import annotations


class ProcwrapError(Exception):
    """Base class for all procwrap errors."""


class ConfigError(ProcwrapError):
    """Configuration is missing, invalid, or names an unknown target."""


class DatabaseConnectionError(ProcwrapError):
    """The database could not be reached or refused authentication."""


class CatalogQueryError(ProcwrapError):
    """A catalog query failed (bad query, permission denied, ...)."""


class ProcedureNotFoundError(CatalogQueryError):
    """No procedure with the requested name exists in the schema."""

    def __init__(self, schema: str, name: str) -> None:
        super().__init__(f"Procedure not found: {schema}.{name}")
        self.schema = schema
        self.name = name


class PersistError(ProcwrapError):
    """The generated artifact could not be written."""
