"""Wrapper module generation.

Turns a SchemaCatalog into the source of a `procedures.py` module with one
`ProcedureCaller` class. Layout of the emitted module, in this order:

- marker, imports and the class preamble (constructor, private helpers)
- per procedure, in catalog order: `<Name>` and `<Name>WithResult`
- shared helpers: `transaction` and `with_timeout`

The output depends only on the catalog contents, so regenerating from the
same catalog gives byte-identical files.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from procwrap.errors import PersistError
from procwrap.introspect.models import ProcedureInfo, SchemaCatalog
from procwrap.introspect.naming import safe_identifier, to_identifier

logger = logging.getLogger(__name__)

GENERATED_MARKER = "# Code generated by procwrap. DO NOT EDIT."
ARTIFACT_FILENAME = "procedures.py"
CALLER_CLASS = "ProcedureCaller"
RESULT_SUFFIX = "WithResult"

INDENT = "    "

# Names already taken inside the generated class
_RESERVED_MEMBERS = frozenset({"db", "timeout", "transaction", "with_timeout", "_acquire", "_timeout"})
_RESERVED_ARGS = frozenset({"self", "timeout"})


@dataclass
class GeneratedArtifact:
    """Generated source for one schema."""
    schema: str
    content: str
    filename: str = ARTIFACT_FILENAME

    def path_in(self, out_dir: str | Path) -> Path:
        return Path(out_dir) / self.filename


@dataclass
class _Wrapper:
    procedure: str
    method: str
    args: list[str]
    statement: str

    @property
    def result_method(self) -> str:
        return f"{self.method}{RESULT_SUFFIX}"


def emit_procedures(catalog: SchemaCatalog) -> GeneratedArtifact:
    """Generate the wrapper module for a schema catalog."""
    content = render_procedures_module(catalog.schema, catalog.procedures)
    logger.debug(f"Rendered {len(catalog.procedures)} procedure wrappers for schema {catalog.schema}")
    return GeneratedArtifact(schema=catalog.schema, content=content)


def render_procedures_module(schema: str, procedures: list[ProcedureInfo]) -> str:
    """Render the source of the wrapper module.

    Args:
        schema: Schema the procedures live in
        procedures: Procedures in catalog order, parameters already parsed

    Returns:
        Module source text ending with a single newline
    """
    lines: list[str] = []
    _emit_preamble(lines, schema)

    for wrapper in _plan_wrappers(schema, procedures):
        lines.append("")
        _emit_invoke(lines, schema, wrapper)
        lines.append("")
        _emit_invoke_with_result(lines, schema, wrapper)

    lines.append("")
    _emit_helpers(lines)

    return "\n".join(lines) + "\n"


def write_artifact(artifact: GeneratedArtifact, out_dir: str | Path) -> Path:
    """Write an artifact into `out_dir`, replacing any previous file.

    Raises:
        PersistError: If the directory or file cannot be written
    """
    path = artifact.path_in(out_dir)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(artifact.content, encoding="utf-8")
    except OSError as e:
        raise PersistError(f"Failed to write {path}: {e}") from e

    logger.info(f"Wrote {path}")
    return path


def call_statement(schema: str, procedure: str, param_count: int) -> str:
    """Build the CALL statement with one $n placeholder per parameter."""
    placeholders = ", ".join(f"${i}" for i in range(1, param_count + 1))
    return f"CALL {_quote_ident(schema)}.{_quote_ident(procedure)}({placeholders})"


def _plan_wrappers(schema: str, procedures: list[ProcedureInfo]) -> list[_Wrapper]:
    """Assign unique method and argument names to each procedure."""
    used = set(_RESERVED_MEMBERS)
    wrappers = []

    for index, proc in enumerate(procedures, start=1):
        base = safe_identifier(to_identifier(proc.name), fallback=f"Procedure{index}")
        method = base
        suffix = 2
        while method in used or f"{method}{RESULT_SUFFIX}" in used:
            method = f"{base}_{suffix}"
            suffix += 1
        used.add(method)
        used.add(f"{method}{RESULT_SUFFIX}")

        args = _argument_names(proc.parameters)
        wrappers.append(_Wrapper(
            procedure=proc.name,
            method=method,
            args=args,
            statement=call_statement(schema, proc.name, len(args)),
        ))

    return wrappers


def _argument_names(parameters: list[str]) -> list[str]:
    names = []
    used = set(_RESERVED_ARGS)
    for index, param in enumerate(parameters, start=1):
        base = safe_identifier(to_identifier(param), fallback=f"Arg{index}")
        name = base
        suffix = 2
        while name in used:
            name = f"{base}_{suffix}"
            suffix += 1
        used.add(name)
        names.append(name)
    return names


def _emit_preamble(lines: list[str], schema: str) -> None:
    lines.extend([
        GENERATED_MARKER,
        f'"""Stored procedure wrappers for schema {_doc_text(schema)}."""',
        "from __future__ import annotations",
        "",
        "import contextlib",
        "from typing import Any, AsyncIterator, Awaitable, Callable, TypeVar",
        "",
        "import asyncpg",
        "",
        f"SCHEMA = {schema!r}",
        "",
        'T = TypeVar("T")',
        "",
        "",
        f"class {CALLER_CLASS}:",
        f'{INDENT}"""Calls the stored procedures of schema {_doc_text(schema)}.',
        "",
        f"{INDENT}`db` is an asyncpg Connection or Pool. Every wrapper takes the",
        f"{INDENT}procedure arguments positionally plus a keyword-only `timeout` that",
        f"{INDENT}overrides the timeout bound to the caller.",
        f'{INDENT}"""',
        "",
        f"{INDENT}def __init__(self, db: asyncpg.Connection | asyncpg.Pool, timeout: float | None = None) -> None:",
        f"{INDENT * 2}self.db = db",
        f"{INDENT * 2}self.timeout = timeout",
        "",
        f"{INDENT}@contextlib.asynccontextmanager",
        f"{INDENT}async def _acquire(self) -> AsyncIterator[asyncpg.Connection]:",
        f"{INDENT * 2}if isinstance(self.db, asyncpg.Pool):",
        f"{INDENT * 3}async with self.db.acquire() as conn:",
        f"{INDENT * 4}yield conn",
        f"{INDENT * 2}else:",
        f"{INDENT * 3}yield self.db",
        "",
        f"{INDENT}def _timeout(self, timeout: float | None) -> float | None:",
        f"{INDENT * 2}return self.timeout if timeout is None else timeout",
    ])


def _signature(method: str, args: list[str], returns: str) -> str:
    params = "".join(f", {arg}: Any" for arg in args)
    return f"{INDENT}async def {method}(self{params}, *, timeout: float | None = None) -> {returns}:"


def _call_args(wrapper: _Wrapper) -> str:
    args = "".join(f", {arg}" for arg in wrapper.args)
    return f"{wrapper.statement!r}{args}, timeout=self._timeout(timeout)"


def _emit_invoke(lines: list[str], schema: str, wrapper: _Wrapper) -> None:
    qualified = _doc_text(f"{schema}.{wrapper.procedure}")
    lines.extend([
        _signature(wrapper.method, wrapper.args, "None"),
        f'{INDENT * 2}"""Call stored procedure {qualified}."""',
        f"{INDENT * 2}async with self._acquire() as conn:",
        f"{INDENT * 3}await conn.execute({_call_args(wrapper)})",
    ])


def _emit_invoke_with_result(lines: list[str], schema: str, wrapper: _Wrapper) -> None:
    qualified = _doc_text(f"{schema}.{wrapper.procedure}")
    lines.extend([
        _signature(wrapper.result_method, wrapper.args, "list[dict[str, Any]]"),
        f'{INDENT * 2}"""Call stored procedure {qualified} and return its result rows."""',
        f"{INDENT * 2}results: list[dict[str, Any]] = []",
        f"{INDENT * 2}async with self._acquire() as conn:",
        f"{INDENT * 3}rows = await conn.fetch({_call_args(wrapper)})",
        f"{INDENT * 2}for row in rows:",
        f"{INDENT * 3}results.append(dict(row))",
        f"{INDENT * 2}return results",
    ])


def _emit_helpers(lines: list[str]) -> None:
    lines.extend([
        f"{INDENT}async def transaction(",
        f"{INDENT * 2}self,",
        f"{INDENT * 2}fn: Callable[[{CALLER_CLASS}], Awaitable[T]],",
        f"{INDENT * 2}*,",
        f"{INDENT * 2}isolation: str | None = None,",
        f"{INDENT * 2}readonly: bool = False,",
        f"{INDENT * 2}deferrable: bool = False,",
        f"{INDENT}) -> T:",
        f'{INDENT * 2}"""Run fn with a caller bound to a single transaction.',
        "",
        f"{INDENT * 2}The transaction commits when fn returns and rolls back when it raises.",
        f'{INDENT * 2}"""',
        f"{INDENT * 2}async with self._acquire() as conn:",
        f"{INDENT * 3}async with conn.transaction(isolation=isolation, readonly=readonly, deferrable=deferrable):",
        f"{INDENT * 4}return await fn({CALLER_CLASS}(conn, timeout=self.timeout))",
        "",
        f"{INDENT}def with_timeout(self, timeout: float | None) -> {CALLER_CLASS}:",
        f'{INDENT * 2}"""Return a new caller bound to another timeout; this caller is unchanged."""',
        f"{INDENT * 2}return {CALLER_CLASS}(self.db, timeout=timeout)",
    ])


def _quote_ident(name: str) -> str:
    return '"' + name.replace('"', '""') + '"'


def _doc_text(text: str) -> str:
    """Make catalog text safe to embed in a generated docstring."""
    text = " ".join(text.split())
    return text.replace("\\", "\\\\").replace('"', '\\"')
