"""Server-wide catalog scan.

Lists every non-system schema of a database with its tables and procedures
and renders a report that ends with ready-to-use configuration.
"""
from __future__ import annotations

import logging
import re
from urllib.parse import quote

import yaml

from procwrap.config.settings import ENV_DSN_PREFIX
from procwrap.errors import CatalogQueryError
from procwrap.introspect.catalog import CatalogReader, close, connect
from procwrap.introspect.models import SchemaCatalog
from procwrap.introspect.signature import annotate_parameters

logger = logging.getLogger(__name__)

TABLE_PREVIEW = 10
PROCEDURE_PREVIEW = 5


def build_dsn(host: str, port: str | int, user: str, password: str, database: str) -> str:
    """Build a postgresql:// URL, quoting the user, password and database."""
    auth = quote(user, safe="")
    if password:
        auth += ":" + quote(password, safe="")
    return f"postgresql://{auth}@{host}:{port}/{quote(database, safe='')}"


async def scan_server(dsn: str, timeout: float | None = None) -> list[SchemaCatalog]:
    """Read tables and procedures of every non-system schema.

    A schema whose tables cannot be read is skipped; a schema whose
    procedures cannot be read is kept without procedures.

    Raises:
        DatabaseConnectionError: If the server cannot be reached
        CatalogQueryError: If the schema list itself cannot be read
    """
    conn = await connect(dsn, timeout=timeout)
    try:
        reader = CatalogReader(conn)
        schemas = await reader.list_schemas()

        catalogs = []
        for schema in schemas:
            try:
                tables = await reader.list_tables(schema)
            except CatalogQueryError as e:
                logger.warning(f"Cannot read tables of schema {schema}: {e}")
                continue

            catalog = SchemaCatalog(schema=schema, tables=tables)
            try:
                catalog.procedures = await reader.list_procedures(schema)
            except CatalogQueryError as e:
                logger.warning(f"Cannot read procedures of schema {schema}: {e}")

            annotate_parameters(catalog.procedures)
            catalogs.append(catalog)
    finally:
        await close(conn)

    return catalogs


def env_suffix(schema: str) -> str:
    """Upper-case a schema name for use in DB_DSN_<NAME> variables."""
    return re.sub(r"\W", "_", schema).upper()


def render_scan_report(catalogs: list[SchemaCatalog], dsn: str) -> str:
    """Render the scan results plus suggested env exports and YAML config."""
    lines = [f"Found {len(catalogs)} schemas:", ""]

    for i, catalog in enumerate(catalogs, start=1):
        lines.append(f"{i}. Schema: {catalog.schema}")

        if catalog.tables:
            lines.append(f"   Tables: {len(catalog.tables)}")
            shown = ", ".join(catalog.tables[:TABLE_PREVIEW])
            hidden = len(catalog.tables) - TABLE_PREVIEW
            if hidden > 0:
                lines.append(f"   Table names: {shown} ... ({hidden} more)")
            else:
                lines.append(f"   Table names: {shown}")
        else:
            lines.append("   Tables: 0 (empty schema)")

        lines.append(f"   Procedures: {len(catalog.procedures)}")
        for proc in catalog.procedures[:PROCEDURE_PREVIEW]:
            if proc.parameters:
                lines.append(f"   Procedure: {proc.name} (parameters: {', '.join(proc.parameters)})")
            else:
                lines.append(f"   Procedure: {proc.name}")
        hidden = len(catalog.procedures) - PROCEDURE_PREVIEW
        if hidden > 0:
            lines.append(f"   ... ({hidden} more procedures)")
        lines.append("")

    candidates = [c for c in catalogs if c.tables or c.procedures]

    lines.append("Environment variables:")
    lines.append("```bash")
    for catalog in candidates:
        suffix = env_suffix(catalog.schema)
        lines.append(f'export {ENV_DSN_PREFIX}{suffix}="{dsn}"')
        if suffix.lower() != catalog.schema:
            lines.append(f'export DB_SCHEMA_{suffix}="{catalog.schema}"')
    lines.append("```")
    lines.append("")

    lines.append("databases.yml:")
    lines.append("```yaml")
    lines.append(render_config_yaml(candidates, dsn).rstrip("\n"))
    lines.append("```")

    return "\n".join(lines) + "\n"


def render_config_yaml(catalogs: list[SchemaCatalog], dsn: str) -> str:
    """Render a databases.yml document covering the given schemas."""
    config = {
        "databases": [
            {
                "name": catalog.schema,
                "dsn": dsn,
                "schema": catalog.schema,
                "out_path": f"./models/{catalog.schema.lower()}",
                "procedures": [],
            }
            for catalog in catalogs
        ],
        "logging": {"level": "INFO"},
    }
    return yaml.safe_dump(config, sort_keys=False, default_flow_style=False)
