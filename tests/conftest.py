"""Shared pytest fixtures for all tests."""
import pytest
from unittest.mock import AsyncMock, MagicMock


ADD_USER_DEF = """CREATE OR REPLACE PROCEDURE sales.add_user(IN p_name text, IN p_age integer)
 LANGUAGE plpgsql
AS $procedure$
BEGIN
    INSERT INTO sales.users(name, age) VALUES (p_name, p_age);
END;
$procedure$
"""

NOOP_DEF = """CREATE OR REPLACE PROCEDURE sales.noop()
 LANGUAGE sql
AS $procedure$ SELECT 1 $procedure$
"""


def make_catalog_conn(procedures=None, tables=None, schemas=None):
    """Build a mocked asyncpg connection answering catalog queries.

    Args:
        procedures: List of {"name", "definition"} rows for pg_proc queries
        tables: Table names for information_schema.tables queries
        schemas: Schema names for pg_namespace queries
    """
    procedures = procedures or []
    tables = tables or []
    schemas = schemas or []

    async def fetch(query, *args):
        if "information_schema.tables" in query:
            return [{"name": t} for t in tables]
        if "pg_proc" in query:
            return list(procedures)
        if "pg_namespace" in query:
            return [{"name": s} for s in schemas]
        raise AssertionError(f"unexpected query: {query}")

    async def fetchrow(query, schema, name):
        for row in procedures:
            if row["name"] == name:
                return row
        return None

    conn = MagicMock()
    conn.fetch = AsyncMock(side_effect=fetch)
    conn.fetchrow = AsyncMock(side_effect=fetchrow)
    conn.fetchval = AsyncMock(return_value=len(procedures))
    conn.close = AsyncMock()
    return conn


@pytest.fixture
def catalog_conn():
    """Factory fixture for mocked catalog connections."""
    return make_catalog_conn


@pytest.fixture
def sales_procedures():
    return [
        {"name": "add_user", "definition": ADD_USER_DEF},
        {"name": "noop", "definition": NOOP_DEF},
    ]
