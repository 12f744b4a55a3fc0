"""Generator configuration loading and validation.

Targets come from a YAML file (`databases:` list) or, when no file is
available, from `DB_DSN_<NAME>` style environment variables.
"""
from __future__ import annotations
import os
import yaml
from pathlib import Path
from typing import Literal, Mapping
from pydantic import BaseModel, Field, field_validator

from procwrap.errors import ConfigError

ALL_TARGETS = "all"
DEFAULT_CONFIG_PATH = Path("databases.yml")

ENV_DSN_PREFIX = "DB_DSN_"
ENV_SCHEMA_PREFIX = "DB_SCHEMA_"
ENV_PROCEDURES_PREFIX = "DB_PROCEDURES_"
ENV_OUT_PREFIX = "DB_OUT_"


def redact_dsn(dsn: str) -> str:
    """Replace the password part of a DSN with ***."""
    if "@" not in dsn:
        return dsn
    credentials, host = dsn.rsplit("@", 1)
    scheme, sep, user_pass = credentials.partition("://")
    if not sep:
        scheme, user_pass = "", credentials
    if ":" not in user_pass:
        return dsn
    user = user_pass.split(":", 1)[0]
    prefix = f"{scheme}://" if sep else ""
    return f"{prefix}{user}:***@{host}"


class SchemaTarget(BaseModel):
    """One schema to generate wrappers for."""
    name: str = Field(..., description="Target name used on the command line")
    dsn: str = Field(..., description="PostgreSQL connection string")
    schema_: str | None = Field(None, alias="schema", description="Schema to scan (default: name)")
    out_path: str | None = Field(None, description="Output directory (default: ./models/<name>)")
    procedures: list[str] = Field(default_factory=list, description="Procedures to wrap (empty = all)")

    model_config = {"populate_by_name": True}

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("name must not be empty")
        return v.strip()

    @field_validator("dsn")
    @classmethod
    def validate_dsn(cls, v: str) -> str:
        """Validate database URL format."""
        if not v:
            raise ValueError("dsn must not be empty")
        if not v.startswith(("postgresql://", "postgres://")):
            raise ValueError("dsn must start with 'postgresql://' or 'postgres://'")
        return v

    @field_validator("procedures")
    @classmethod
    def strip_procedures(cls, v: list[str]) -> list[str]:
        return [p.strip() for p in v if p and p.strip()]

    @property
    def schema_name(self) -> str:
        return self.schema_ or self.name

    @property
    def output_dir(self) -> Path:
        if self.out_path:
            return Path(self.out_path)
        return Path("models") / self.name.lower()

    def redacted_dsn(self) -> str:
        return redact_dsn(self.dsn)


class LoggingConfig(BaseModel):
    """Logging configuration."""
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field("INFO", description="Log level")
    format: str = Field(
        "%(asctime)s %(levelname)s %(name)s: %(message)s",
        description="logging.Formatter format string"
    )

    @field_validator("level", mode="before")
    @classmethod
    def upper_level(cls, v):
        return v.upper() if isinstance(v, str) else v


class GeneratorConfig(BaseModel):
    """Complete generator configuration."""
    databases: list[SchemaTarget] = Field(default_factory=list)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    connect_timeout: float | None = Field(None, gt=0, description="Connect timeout (seconds)")

    @classmethod
    def from_yaml(cls, path: str | Path) -> GeneratorConfig:
        """Load configuration from YAML file.

        Args:
            path: Path to YAML configuration file

        Returns:
            Validated GeneratorConfig instance

        Raises:
            FileNotFoundError: If config file doesn't exist
            ConfigError: If configuration is empty or invalid
        """
        config_path = Path(path)

        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")

        with open(config_path, 'r') as f:
            try:
                data = yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise ConfigError(f"Invalid YAML in {config_path}: {e}") from e

        if not data:
            raise ConfigError(f"Empty configuration file: {config_path}")

        try:
            return cls.model_validate(data)
        except ValueError as e:
            raise ConfigError(f"Invalid configuration in {config_path}: {e}") from e

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> GeneratorConfig:
        """Build configuration from DB_DSN_<NAME> environment variables.

        For each DB_DSN_<NAME>, the optional DB_SCHEMA_<NAME>,
        DB_PROCEDURES_<NAME> (comma separated) and DB_OUT_<NAME> refine the
        target. The schema defaults to the lower-cased NAME.
        """
        env = os.environ if environ is None else environ
        databases = []

        for key in sorted(env):
            if not key.startswith(ENV_DSN_PREFIX) or not env[key]:
                continue
            suffix = key[len(ENV_DSN_PREFIX):]
            if not suffix:
                continue

            procedures = env.get(f"{ENV_PROCEDURES_PREFIX}{suffix}", "")
            try:
                databases.append(SchemaTarget(
                    name=suffix.lower(),
                    dsn=env[key],
                    schema=env.get(f"{ENV_SCHEMA_PREFIX}{suffix}") or suffix.lower(),
                    out_path=env.get(f"{ENV_OUT_PREFIX}{suffix}") or None,
                    procedures=procedures.split(",") if procedures else [],
                ))
            except ValueError as e:
                raise ConfigError(f"Invalid configuration in {key}: {e}") from e

        log_level = env.get("PROCWRAP_LOG_LEVEL")
        try:
            logging_config = LoggingConfig(level=log_level) if log_level else LoggingConfig()
        except ValueError as e:
            raise ConfigError(f"Invalid PROCWRAP_LOG_LEVEL: {e}") from e

        return cls(databases=databases, logging=logging_config)

    def log_redacted(self) -> dict:
        """Get configuration dict with passwords redacted for logging."""
        config_dict = self.model_dump(by_alias=True)
        for db in config_dict.get("databases", []):
            db["dsn"] = redact_dsn(db["dsn"])
        return config_dict


def load_generator_config(
    config_path: str | Path | None = None,
    environ: Mapping[str, str] | None = None
) -> GeneratorConfig:
    """Load generator configuration from file or environment.

    Resolution order: explicit path, PROCWRAP_CONFIG, ./databases.yml,
    then DB_DSN_<NAME> environment variables.

    Raises:
        ConfigError: If no database is configured or configuration is invalid
    """
    env = os.environ if environ is None else environ

    if not config_path:
        config_path = env.get("PROCWRAP_CONFIG")
    if not config_path and DEFAULT_CONFIG_PATH.exists():
        config_path = DEFAULT_CONFIG_PATH

    if config_path:
        try:
            config = GeneratorConfig.from_yaml(config_path)
        except FileNotFoundError as e:
            raise ConfigError(str(e)) from e
    else:
        config = GeneratorConfig.from_env(env)

    if not config.databases:
        raise ConfigError(
            "No databases configured. Provide a databases.yml file or set "
            f"{ENV_DSN_PREFIX}<NAME> environment variables"
        )

    return config


def select_targets(config: GeneratorConfig, target: str | None) -> list[SchemaTarget]:
    """Pick the targets named on the command line.

    Args:
        config: Loaded configuration
        target: A configured target name, or "all" (case-insensitive)

    Raises:
        ConfigError: If the name matches no configured target
    """
    if not target or target.lower() == ALL_TARGETS:
        return list(config.databases)

    wanted = target.lower()
    matches = [db for db in config.databases if db.name.lower() == wanted]
    if not matches:
        known = ", ".join(db.name for db in config.databases)
        raise ConfigError(f"Unknown target '{target}'. Configured targets: {known}")
    return matches
