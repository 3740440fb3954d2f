"""
Migration synthesizer.

Builds Alembic revision scripts from effective column sets:

- ``synthesize_initial`` creates a table that does not exist yet;
- ``synthesize_incremental`` diffs the effective columns against the live
  columns of an existing table and adds/drops the difference, positioning
  every added column after its nearest preceding column.

Both return an immutable ``MigrationArtifact``; writing it is the store's job.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Literal, Optional, Sequence, Tuple

from alembic.util import rev_id
from pydantic import BaseModel, ConfigDict

from ..schema.fields import FieldDirective, field_directives, render
from ..schema.reflector import reflector
from ..schema.resolver import EffectiveColumnSet

CREATE = "create"
UPDATE = "update"

SCRIPT_TEMPLATE = '''"""{message}

Revision ID: {revision}
Revises: {revises}
Create Date: {create_date}

"""
import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision = "{revision}"
down_revision = {down_revision}
branch_labels = None
depends_on = None


def upgrade() -> None:
{upgrade}


def downgrade() -> None:
{downgrade}
'''


class MigrationArtifact(BaseModel):
    """One generated revision script."""

    model_config = ConfigDict(frozen=True)

    filename: str
    table: str
    kind: Literal["create", "update"]
    revision: str
    down_revision: Optional[str] = None
    message: str
    upgrade_body: str
    downgrade_body: str
    created: datetime

    @property
    def content(self) -> str:
        return SCRIPT_TEMPLATE.format(
            message=self.message,
            revision=self.revision,
            revises=self.down_revision or "",
            create_date=self.created.strftime("%Y-%m-%d %H:%M:%S"),
            down_revision=f'"{self.down_revision}"' if self.down_revision else "None",
            upgrade=self.upgrade_body,
            downgrade=self.downgrade_body,
        )


def migration_filename(timestamp: datetime, kind: str, table: str) -> str:
    return f"{timestamp:%Y%m%d%H%M%S}_{kind}_{table}_table.py"


def produced_columns(columns: EffectiveColumnSet) -> List[Tuple[str, FieldDirective]]:
    """
    Physical column names the effective columns produce, in order.

    A timestamps directive produces two names; a suppressed ``updated_at``
    produces none on its own.
    """
    produced: List[Tuple[str, FieldDirective]] = []
    seen = set()
    for directive in field_directives(columns):
        for name in directive.column_names():
            if name not in seen:
                seen.add(name)
                produced.append((name, directive))
    return produced


def _indent(lines: Sequence[str], depth: int = 1) -> str:
    pad = "    " * depth
    return "\n".join(f"{pad}{line}" for line in lines)


def _artifact(
    table: str,
    kind: str,
    message: str,
    upgrade_body: str,
    downgrade_body: str,
    timestamp: Optional[datetime],
    down_revision: Optional[str],
    revision: Optional[str],
) -> MigrationArtifact:
    created = (timestamp or datetime.now(timezone.utc)).replace(microsecond=0)
    return MigrationArtifact(
        filename=migration_filename(created, kind, table),
        table=table,
        kind=kind,
        revision=revision or rev_id(),
        down_revision=down_revision,
        message=message,
        upgrade_body=upgrade_body,
        downgrade_body=downgrade_body,
        created=created,
    )


def synthesize_initial(
    model: type,
    columns: EffectiveColumnSet,
    timestamp: Optional[datetime] = None,
    down_revision: Optional[str] = None,
    revision: Optional[str] = None,
) -> MigrationArtifact:
    """Revision script creating ``model``'s table with every effective column."""
    table = reflector.describe_table(model).table

    lines = [f'"{table}",']
    for directive in field_directives(columns):
        lines.extend(f"{line}," for line in render(directive))

    upgrade_body = "\n".join(["    op.create_table(", _indent(lines, 2), "    )"])
    downgrade_body = f'    op.drop_table("{table}")'

    return _artifact(
        table, CREATE, f"create {table} table", upgrade_body, downgrade_body,
        timestamp, down_revision, revision,
    )


def synthesize_incremental(
    model: type,
    columns: EffectiveColumnSet,
    live: Sequence[str],
    timestamp: Optional[datetime] = None,
    down_revision: Optional[str] = None,
    revision: Optional[str] = None,
    recreate: str = "auto",
) -> Optional[MigrationArtifact]:
    """
    Revision script bringing ``model``'s live table in line with ``columns``.

    An added column is placed after the nearest preceding kept live column.
    Columns added between two kept live columns carry both ``insert_after``
    and ``insert_before``, chained in declaration order; columns past the last
    kept live column are appended without positioning. Positioned columns need
    a table rebuild, so ``recreate`` is forced to ``"always"`` for them.

    Returns ``None`` when nothing is added or removed.
    """
    table = reflector.describe_table(model).table
    live_names = set(live)
    produced = produced_columns(columns)
    produced_names = {name for name, _ in produced}

    added = [name for name, _ in produced if name not in live_names]
    removed = [name for name in live if name not in produced_names]
    if not added and not removed:
        return None

    kept = [name for name in live if name in produced_names]
    # drops first, so appended columns follow the last kept column
    operations: List[str] = [f'batch_op.drop_column("{name}")' for name in removed]
    positioned = False
    anchor: Optional[str] = None
    previous: Optional[str] = None
    for name, directive in produced:
        if name in live_names:
            anchor = previous = name
            continue
        others = tuple(n for n in directive.column_names() if n != name)
        column = render(directive, skip=others)[0]
        if anchor is None:
            before: Optional[str] = kept[0] if kept else None
        else:
            index = kept.index(anchor) + 1
            before = kept[index] if index < len(kept) else None

        if before is None:
            operations.append(f"batch_op.add_column({column})")
        elif previous is None:
            operations.append(f'batch_op.add_column({column}, insert_before="{before}")')
            positioned = True
        else:
            operations.append(
                f'batch_op.add_column({column}, insert_after="{previous}", insert_before="{before}")'
            )
            positioned = True
        previous = name

    mode = "always" if positioned else recreate
    upgrade_body = "\n".join(
        [
            f'    with op.batch_alter_table("{table}", recreate="{mode}") as batch_op:',
            _indent(operations, 2),
        ]
    )
    downgrade_body = "    # Incremental revisions are not reverted automatically.\n    pass"

    return _artifact(
        table, UPDATE, f"update {table} table", upgrade_body, downgrade_body,
        timestamp, down_revision, revision,
    )
