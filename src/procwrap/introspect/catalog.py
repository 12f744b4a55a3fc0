"""Stored procedure catalog access for Postgres.

Reads procedure names and definitions, table names and schema names from
pg_catalog / information_schema. Every query is read-only.
"""
from __future__ import annotations
import asyncio
import logging
from typing import Any

import asyncpg

from procwrap.config.settings import redact_dsn
from procwrap.errors import CatalogQueryError, ConfigError, DatabaseConnectionError, ProcedureNotFoundError
from procwrap.introspect.models import ProcedureInfo

logger = logging.getLogger(__name__)

_CONNECTION_ERRORS = (
    asyncpg.exceptions.PostgresConnectionError,
    asyncpg.exceptions.InterfaceError,
    OSError,
)

_LIST_PROCEDURES = """
    SELECT
        p.proname as name,
        COALESCE(pg_catalog.pg_get_functiondef(p.oid), '') as definition
    FROM pg_catalog.pg_proc p
    JOIN pg_catalog.pg_namespace n ON n.oid = p.pronamespace
    WHERE n.nspname = $1
    AND p.prokind = 'p'
    ORDER BY p.proname COLLATE "C", p.oid
"""

_GET_PROCEDURE = """
    SELECT
        p.proname as name,
        COALESCE(pg_catalog.pg_get_functiondef(p.oid), '') as definition
    FROM pg_catalog.pg_proc p
    JOIN pg_catalog.pg_namespace n ON n.oid = p.pronamespace
    WHERE n.nspname = $1
    AND p.proname = $2
    AND p.prokind = 'p'
    ORDER BY p.oid
    LIMIT 1
"""

_LIST_TABLES = """
    SELECT table_name as name
    FROM information_schema.tables
    WHERE table_schema = $1
    AND table_type = 'BASE TABLE'
    ORDER BY table_name COLLATE "C"
"""

_LIST_SCHEMAS = """
    SELECT nspname as name
    FROM pg_namespace
    WHERE nspname NOT IN ('pg_catalog', 'information_schema', 'pg_toast')
    AND nspname NOT LIKE 'pg_temp_%'
    AND nspname NOT LIKE 'pg_toast_temp_%'
    ORDER BY nspname COLLATE "C"
"""

_COUNT_PROCEDURES = """
    SELECT COUNT(*)
    FROM pg_catalog.pg_proc p
    JOIN pg_catalog.pg_namespace n ON n.oid = p.pronamespace
    WHERE n.nspname = $1 AND p.prokind = 'p'
"""


async def connect(dsn: str, timeout: float | None = None) -> asyncpg.Connection:
    """Open a connection to the target database.

    Raises:
        ConfigError: If asyncpg cannot parse the connection string
        DatabaseConnectionError: If the server is unreachable or rejects the login
    """
    kwargs = {"timeout": timeout} if timeout else {}
    try:
        return await asyncpg.connect(dsn=dsn, **kwargs)
    except ValueError as e:
        # Includes asyncpg.ClientConfigurationError
        raise ConfigError(f"Invalid connection string {redact_dsn(dsn)}: {e}") from e
    except (OSError, asyncio.TimeoutError, asyncpg.PostgresError, asyncpg.exceptions.InterfaceError) as e:
        raise DatabaseConnectionError(
            f"Failed to connect to database {redact_dsn(dsn)}: {e}"
        ) from e


async def close(conn: asyncpg.Connection) -> None:
    """Close a connection, logging instead of raising if the close fails."""
    try:
        await conn.close()
    except _CONNECTION_ERRORS + (asyncpg.PostgresError,) as e:
        logger.warning(f"Error while closing connection: {e}")


class CatalogReader:
    """Reads procedure metadata through one open connection."""

    def __init__(self, conn: asyncpg.Connection) -> None:
        self.conn = conn

    async def list_procedures(self, schema: str) -> list[ProcedureInfo]:
        """List the procedures of a schema, ordered by name.

        Rows that cannot be read are logged and skipped, as are overloads
        of an already listed name.

        Args:
            schema: Schema name

        Returns:
            ProcedureInfo records with definitions and no parameters yet
        """
        rows = await self._query("fetch", _LIST_PROCEDURES, schema)

        procedures = []
        seen = set()
        for row in rows:
            try:
                proc = _procedure_from_row(row)
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping unreadable procedure row in schema {schema}: {e}")
                continue

            if proc.name in seen:
                logger.warning(f"Skipping overload of {schema}.{proc.name}; only the first signature is wrapped")
                continue
            seen.add(proc.name)
            procedures.append(proc)

        logger.info(f"Found {len(procedures)} procedures in schema {schema}")
        return procedures

    async def get_procedure(self, schema: str, name: str) -> ProcedureInfo:
        """Look up a single procedure.

        Raises:
            ProcedureNotFoundError: If the schema has no procedure with that name
        """
        row = await self._query("fetchrow", _GET_PROCEDURE, schema, name)
        if row is None:
            raise ProcedureNotFoundError(schema, name)
        return _procedure_from_row(row)

    async def list_tables(self, schema: str) -> list[str]:
        """List base table names of a schema."""
        rows = await self._query("fetch", _LIST_TABLES, schema)
        return [r["name"] for r in rows]

    async def list_schemas(self) -> list[str]:
        """List non-system schema names."""
        rows = await self._query("fetch", _LIST_SCHEMAS)
        return [r["name"] for r in rows]

    async def count_procedures(self, schema: str) -> int:
        """Count procedures in a schema, overloads included."""
        return await self._query("fetchval", _COUNT_PROCEDURES, schema)

    async def server_version(self) -> str:
        return await self._query("fetchval", "SELECT version()")

    async def _query(self, method: str, query: str, *args: Any) -> Any:
        """Run a catalog query through conn.fetch / fetchrow / fetchval."""
        try:
            return await getattr(self.conn, method)(query, *args)
        except _CONNECTION_ERRORS as e:
            raise DatabaseConnectionError(f"Lost connection while reading catalog: {e}") from e
        except asyncpg.PostgresError as e:
            raise CatalogQueryError(f"Catalog query failed: {e}") from e


def _procedure_from_row(row: Any) -> ProcedureInfo:
    name = row["name"]
    if not isinstance(name, str) or not name:
        raise ValueError(f"invalid procedure name {name!r}")
    return ProcedureInfo(name=name, definition=row["definition"] or "")
