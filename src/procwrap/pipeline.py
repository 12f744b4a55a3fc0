"""Per-schema generation pipeline.

Each target runs read catalog -> parse signatures -> emit -> persist on its
own connection. Targets run one after another; a failing target is logged
and recorded without stopping the rest.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable

from procwrap.codegen.emitter import emit_procedures, write_artifact
from procwrap.config.settings import SchemaTarget
from procwrap.errors import CatalogQueryError, ProcwrapError
from procwrap.introspect.catalog import CatalogReader, close, connect
from procwrap.introspect.models import SchemaCatalog
from procwrap.introspect.signature import annotate_parameters

logger = logging.getLogger(__name__)


@dataclass
class SchemaResult:
    """Outcome of one target's pipeline run."""
    name: str
    schema: str
    procedures: int = 0
    path: Path | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


async def read_catalog(
    reader: CatalogReader,
    schema: str,
    procedures: list[str] | None = None
) -> SchemaCatalog:
    """Build the catalog for one schema with parameters parsed.

    Args:
        reader: Catalog reader on an open connection
        schema: Schema name
        procedures: Optional explicit procedure names; missing or unreadable
            ones are logged and skipped. Default: every procedure in the schema.

    Returns:
        SchemaCatalog for this run
    """
    catalog = SchemaCatalog(schema=schema)
    catalog.tables = await reader.list_tables(schema)

    if procedures:
        logger.info(f"Using configured procedures for schema {schema}: {procedures}")
        for name in dict.fromkeys(procedures):
            try:
                catalog.procedures.append(await reader.get_procedure(schema, name))
            except CatalogQueryError as e:
                logger.warning(f"{e}; skipping")
    else:
        catalog.procedures = await reader.list_procedures(schema)

    annotate_parameters(catalog.procedures)
    return catalog


async def generate_schema(
    target: SchemaTarget,
    connect_timeout: float | None = None
) -> SchemaResult:
    """Run the whole pipeline for one target.

    Raises:
        ProcwrapError: Connection, catalog or persist failure for this target
    """
    schema = target.schema_name
    logger.info(f"Scanning schema {schema} ({target.redacted_dsn()})")

    conn = await connect(target.dsn, timeout=connect_timeout)
    try:
        catalog = await read_catalog(CatalogReader(conn), schema, target.procedures)
    finally:
        await close(conn)

    result = SchemaResult(name=target.name, schema=schema, procedures=len(catalog.procedures))

    if not catalog.procedures:
        logger.info(f"No procedures found in schema {schema}; nothing written")
        return result

    artifact = emit_procedures(catalog)
    result.path = write_artifact(artifact, target.output_dir)
    return result


async def generate_all(
    targets: Iterable[SchemaTarget],
    connect_timeout: float | None = None
) -> list[SchemaResult]:
    """Run the pipeline for each target in turn.

    Returns:
        One SchemaResult per target, in input order
    """
    results = []
    for target in targets:
        try:
            result = await generate_schema(target, connect_timeout=connect_timeout)
        except ProcwrapError as e:
            logger.error(f"Generation failed for {target.name}: {e}")
            result = SchemaResult(name=target.name, schema=target.schema_name, error=str(e))
        else:
            logger.info(f"Finished {target.name}: {result.procedures} procedures")
        results.append(result)

    failed = sum(1 for r in results if not r.ok)
    logger.info(f"Processed {len(results)} targets, {failed} failed")
    return results


async def ping(dsn: str, schema: str, timeout: float | None = None) -> dict[str, Any]:
    """Check connectivity and count the procedures of a schema.

    Returns:
        Dict with "version" and "procedures"
    """
    conn = await connect(dsn, timeout=timeout)
    try:
        reader = CatalogReader(conn)
        count = await reader.count_procedures(schema)
        version = await reader.server_version()
    finally:
        await close(conn)

    return {"version": version, "procedures": count}
