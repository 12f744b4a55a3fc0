"""Generation of stored procedure wrapper modules."""

from procwrap.codegen.emitter import (
    ARTIFACT_FILENAME,
    GENERATED_MARKER,
    GeneratedArtifact,
    call_statement,
    emit_procedures,
    render_procedures_module,
    write_artifact,
)

__all__ = [
    "ARTIFACT_FILENAME",
    "GENERATED_MARKER",
    "GeneratedArtifact",
    "call_statement",
    "emit_procedures",
    "render_procedures_module",
    "write_artifact",
]
