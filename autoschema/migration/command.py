"""
Batch migration command.

For every model it is given, the command decides between creating and
altering the model's table and writes at most one revision script. Each
model gets a diagnostic; a model that fails is reported and the batch moves
on to the next one.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, Iterable, List, Optional

import structlog

from ..db.base import Database
from ..exceptions import MetadataError
from ..schema.reflector import Reflector, reflector as default_reflector
from ..schema.resolver import ColumnResolver
from .inspector import SchemaInspector
from .store import MigrationStore
from .synthesizer import MigrationArtifact, synthesize_incremental, synthesize_initial

logger = structlog.get_logger()

CREATED = "created"
UPDATED = "updated"
NO_CHANGES = "no_changes"
SKIPPED = "skipped"
ERROR = "error"


@dataclass
class Diagnostic:
    """Outcome of the command for one model."""

    model: str
    status: str
    message: str
    table: Optional[str] = None
    filename: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class AutoCreateCommand:
    """Generates create/alter migrations for models from their declarations."""

    def __init__(
        self,
        database: Database,
        store: MigrationStore,
        reflector: Optional[Reflector] = None,
        batch_recreate: str = "auto",
    ):
        self.database = database
        self.store = store
        self.reflector = reflector or default_reflector
        self.resolver = ColumnResolver(self.reflector)
        self.inspector = SchemaInspector(database)
        self.batch_recreate = batch_recreate

    def run(self, models: Iterable[type]) -> List[Diagnostic]:
        diagnostics = [self.process(model) for model in models]
        logger.info(
            "auto_create_finished",
            models=len(diagnostics),
            written=sum(d.status in (CREATED, UPDATED) for d in diagnostics),
            errors=sum(d.status == ERROR for d in diagnostics),
        )
        return diagnostics

    def process(self, model: type) -> Diagnostic:
        name = model.__name__
        log = logger.bind(model=name)

        table = self.reflector.declared_table(model)
        if table is None:
            log.info("model_skipped", reason="no table declaration")
            return Diagnostic(name, SKIPPED, f"Model [{name}] declares no table.")

        try:
            artifact = self._synthesize(model, table.table)
            if artifact is None:
                return Diagnostic(
                    name, NO_CHANGES, f"No changes detected for table [{table.table}].", table.table
                )
            self.store.write(artifact)
        except Exception as e:
            log.error("migration_failed", table=table.table, error=str(e))
            return Diagnostic(name, ERROR, str(e), table.table)

        log.info("migration_written", table=table.table, filename=artifact.filename, kind=artifact.kind)
        return Diagnostic(
            name,
            CREATED if artifact.kind == "create" else UPDATED,
            f"Created migration: {artifact.filename}",
            table.table,
            artifact.filename,
        )

    def _synthesize(self, model: type, table: str) -> Optional[MigrationArtifact]:
        columns = self.resolver.resolve(model)
        if not columns:
            raise MetadataError(f"Model [{model.__name__}] declares no columns")

        if not self.inspector.table_exists(table):
            return synthesize_initial(
                model,
                columns,
                timestamp=self.store.next_timestamp(),
                down_revision=self.store.head(),
            )

        return synthesize_incremental(
            model,
            columns,
            self.inspector.list_columns(table),
            timestamp=self.store.next_timestamp(),
            down_revision=self.store.head(),
            recreate=self.batch_recreate,
        )
