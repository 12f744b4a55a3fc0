"""procwrap command line: generate, scan and ping."""
from __future__ import annotations
import argparse
import asyncio
import logging
import os
import sys
from dotenv import load_dotenv

from procwrap.config.settings import ALL_TARGETS, load_generator_config, redact_dsn, select_targets
from procwrap.errors import ConfigError, ProcwrapError
from procwrap.pipeline import SchemaResult, generate_all, ping
from procwrap.scanner import build_dsn, render_scan_report, scan_server

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="procwrap",
        description="procwrap - Generate Python wrappers for PostgreSQL stored procedures"
    )
    parser.add_argument("--log-level", choices=LOG_LEVELS, type=str.upper,
                        help="Log level (default: from config or INFO)")
    sub = parser.add_subparsers(dest="cmd", required=True)

    # Generate command
    gen = sub.add_parser("generate", help="Generate procedures.py for configured schemas")
    gen.add_argument("target", nargs="?", default=ALL_TARGETS,
                     help="Configured target name, or 'all' (default: all)")
    gen.add_argument("--config", help="Path to databases.yml (default: $PROCWRAP_CONFIG, "
                                      "./databases.yml, then DB_DSN_<NAME> variables)")

    # Scan command
    scan = sub.add_parser("scan", help="List schemas, tables and procedures of a server")
    scan.add_argument("--dsn", help="Connection string (overrides the host options)")
    scan.add_argument("--host", default=os.getenv("DB_HOST", "127.0.0.1"))
    scan.add_argument("--port", default=os.getenv("DB_PORT", "5432"))
    scan.add_argument("--user", default=os.getenv("DB_USER", "postgres"))
    scan.add_argument("--password", default=os.getenv("DB_PASSWORD", ""))
    scan.add_argument("--database", default=os.getenv("DB_NAME", "postgres"))
    scan.add_argument("--timeout", type=float, help="Connect timeout in seconds")

    # Ping command
    png = sub.add_parser("ping", help="Test database connection")
    png.add_argument("--dsn", default=os.getenv("DATABASE_URL"),
                     help="Connection string (default: $DATABASE_URL)")
    png.add_argument("--schema", default="public", help="Schema to count procedures in")
    png.add_argument("--timeout", type=float, help="Connect timeout in seconds")

    return parser


def run() -> None:
    """Main CLI entry point."""
    # Load environment variables before parser defaults read them
    load_dotenv()

    parser = build_parser()
    args = parser.parse_args()

    try:
        if args.cmd == "generate":
            results = generate(args.target, args.config, args.log_level)
            if any(not r.ok for r in results):
                sys.exit(1)
        elif args.cmd == "scan":
            configure_logging(args.log_level or "INFO")
            dsn = args.dsn or build_dsn(args.host, args.port, args.user, args.password, args.database)
            asyncio.run(scan(dsn, args.timeout))
        elif args.cmd == "ping":
            configure_logging(args.log_level or "INFO")
            if not args.dsn:
                raise ConfigError("No connection string. Pass --dsn or set DATABASE_URL")
            asyncio.run(db_ping(args.dsn, args.schema, args.timeout))
    except KeyboardInterrupt:
        print("\nInterrupted by user", file=sys.stderr)
        sys.exit(130)
    except ProcwrapError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


def configure_logging(level: str, fmt: str | None = None) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format=fmt or "%(asctime)s %(levelname)s %(name)s: %(message)s",
        handlers=[logging.StreamHandler(sys.stderr)],
        force=True,
    )


def generate(target: str, config_path: str | None, log_level: str | None = None) -> list[SchemaResult]:
    """Generate wrappers for the selected targets and print a summary.

    Args:
        target: Configured target name or "all"
        config_path: Optional path to databases.yml
        log_level: Overrides the configured log level

    Returns:
        One SchemaResult per selected target
    """
    config = load_generator_config(config_path)
    configure_logging(log_level or config.logging.level, config.logging.format)

    targets = select_targets(config, target)
    print(f"Loaded {len(config.databases)} database targets, generating {len(targets)}")

    results = asyncio.run(generate_all(targets, connect_timeout=config.connect_timeout))

    for result in results:
        if not result.ok:
            print(f"✗ {result.name}: {result.error}")
        elif result.path is None:
            print(f"- {result.name}: no procedures in schema {result.schema}")
        else:
            print(f"✓ {result.name}: {result.procedures} procedures -> {result.path}")

    return results


async def scan(dsn: str, timeout: float | None = None) -> None:
    """Scan a server and print the report.

    Args:
        dsn: PostgreSQL connection string
        timeout: Optional connect timeout in seconds
    """
    catalogs = await scan_server(dsn, timeout=timeout)
    print(f"Connected to {redact_dsn(dsn)}")
    print(render_scan_report(catalogs, dsn))


async def db_ping(dsn: str, schema: str, timeout: float | None = None) -> None:
    """Test database connection and count a schema's procedures."""
    info = await ping(dsn, schema, timeout=timeout)
    print("✓ Database connection successful")
    print(f"  Postgres: {info['version']}")
    print(f"  Procedures in {schema}: {info['procedures']}")
