"""Migration generation: synthesis, live schema inspection and storage."""

from .command import AutoCreateCommand, Diagnostic
from .inspector import SchemaInspector
from .store import MigrationStore
from .synthesizer import MigrationArtifact, synthesize_incremental, synthesize_initial

__all__ = [
    "AutoCreateCommand",
    "Diagnostic",
    "MigrationArtifact",
    "MigrationStore",
    "SchemaInspector",
    "synthesize_incremental",
    "synthesize_initial",
]
