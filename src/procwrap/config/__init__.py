"""Configuration management for procwrap."""
from .settings import (
    ALL_TARGETS,
    GeneratorConfig,
    LoggingConfig,
    SchemaTarget,
    load_generator_config,
    redact_dsn,
    select_targets,
)

__all__ = [
    "ALL_TARGETS",
    "GeneratorConfig",
    "LoggingConfig",
    "SchemaTarget",
    "load_generator_config",
    "redact_dsn",
    "select_targets",
]
