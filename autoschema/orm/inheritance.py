"""
Inheritance persistence protocol.

A model declared with ``parent=`` (child role) keeps its own columns in its
own table and the parent's columns in the parent table; the two rows are
joined by the parent-link column (``<parent>_id``) on the child table. A
model with concrete subclasses (parent role) carries a ``type``
discriminator naming the subclass a row belongs to.

- Load, parent role: a row whose discriminator names a direct subclass is
  re-instantiated as that subclass with the subclass row merged over it.
- Load, child role: the parent row is the base, the own row is overlaid and
  the parent-link is kept privately as the instance's parent key.
- Save and delete, child role: both tables are written inside one
  transaction, so either both writes land or neither does.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Dict, Mapping, Optional

import sqlalchemy as sa
import structlog

from ..db.base import Database
from ..exceptions import MissingRelatedRow
from ..schema.fields import CREATED_AT, UPDATED_AT
from ..schema.registry import discriminator_for
from ..schema.resolver import DISCRIMINATOR_COLUMN
from .initializer import initializer

if TYPE_CHECKING:
    from .model import Model

logger = structlog.get_logger()


def current_time() -> datetime:
    return datetime.now(timezone.utc)


def timestamps(
    table: sa.Table, now: datetime, values: Optional[Mapping[str, Any]] = None
) -> Dict[str, Any]:
    """``created_at`` / ``updated_at`` stamps for ``table`` not already in ``values``."""
    values = values or {}
    return {
        name: now
        for name in (CREATED_AT, UPDATED_AT)
        if name in table.c and values.get(name) is None
    }


def _direct_subclass(model: type, tag: Any) -> Optional[type]:
    """Concrete subclass named by ``tag`` whose declared parent is ``model``."""
    if not isinstance(tag, str) or not tag:
        return None
    subclass = initializer.registry.discriminated(model, tag)
    if subclass is None or subclass.metadata().parent is not model:
        return None
    return subclass


# Load


def hydrate(model: type, row: Mapping[str, Any], database: Database, discriminate: bool = True) -> "Model":
    """Turn a row of ``model``'s table into an instance."""
    meta = model.metadata()

    if discriminate and meta.children:
        subclass = _direct_subclass(model, row.get(DISCRIMINATOR_COLUMN))
        if subclass is not None:
            return _load_as_subclass(model, subclass, row, database)

    if meta.parent is not None:
        return _load_child(model, row, database)

    return model.new_from_row(row)


def _load_as_subclass(model: type, subclass: type, row: Mapping[str, Any], database: Database) -> "Model":
    meta = model.metadata()
    sub_meta = subclass.metadata()

    key = row.get(meta.primary_key)
    if key is None:
        return model.new_from_row(row)

    attributes = dict(row)
    child_row = database.tables().first(sub_meta.table, {sub_meta.parent_link: key})
    if child_row is None:
        logger.warning(
            "subclass_row_missing",
            model=subclass.__name__,
            table=sub_meta.table_name,
            parent_key=key,
        )
    else:
        child_row.pop(sub_meta.parent_link, None)
        attributes.update(child_row)

    return subclass.new_from_row(attributes, parent_key=key)


def _load_child(model: type, row: Mapping[str, Any], database: Database) -> "Model":
    meta = model.metadata()
    parent_meta = meta.parent.metadata()

    attributes = dict(row)
    key = attributes.pop(meta.parent_link, None)
    parent_row = None
    if key is not None:
        parent_row = database.tables().first(parent_meta.table, {parent_meta.primary_key: key})
    if parent_row is None:
        raise MissingRelatedRow(parent_meta.table_name, key)

    return model.new_from_row({**parent_row, **attributes}, parent_key=key)


# Save


def save_child(instance: "Model", database: Database) -> bool:
    """Write a child-role instance to its own table and its parent's table."""
    if not instance.exists:
        return _insert_child(instance, database)

    meta = instance._meta
    parent_meta = meta.parent.metadata()
    parent_columns = set(parent_meta.columns)
    own_columns = set(meta.columns) - {meta.parent_link}

    dirty = instance.get_dirty()
    dirty.pop(meta.primary_key, None)
    parent_attributes = {k: v for k, v in dirty.items() if k in parent_columns}
    child_attributes = {
        k: v for k, v in dirty.items() if k not in parent_columns and k in own_columns
    }

    key = instance.parent_key
    tables = database.tables()
    log = logger.bind(model=type(instance).__name__, parent_key=key)

    with database.transaction():
        if child_attributes:
            predicate = {meta.parent_link: key}
            if tables.exists(meta.table, predicate):
                tables.update(meta.table, predicate, child_attributes)
            else:
                row = {**child_attributes, **timestamps(meta.table, current_time()), meta.parent_link: key}
                instance._attributes[meta.primary_key] = tables.insert(meta.table, row)
                log.info("child_row_inserted", table=meta.table_name)
        if parent_attributes:
            tables.update(parent_meta.table, {parent_meta.primary_key: key}, parent_attributes)

    log.debug(
        "child_saved",
        parent_columns=sorted(parent_attributes),
        child_columns=sorted(child_attributes),
    )
    instance.sync_original()
    return True


def _insert_child(instance: "Model", database: Database) -> bool:
    meta = instance._meta
    model = type(instance)
    parent_meta = meta.parent.metadata()
    parent_columns = set(parent_meta.columns)
    own_columns = set(meta.columns) - {meta.parent_link}

    attributes = dict(instance._attributes)
    attributes.pop(meta.primary_key, None)
    now = current_time()

    parent_attributes = {k: v for k, v in attributes.items() if k in parent_columns}
    parent_attributes.pop(parent_meta.primary_key, None)
    if DISCRIMINATOR_COLUMN in parent_meta.table.c:
        parent_attributes[DISCRIMINATOR_COLUMN] = discriminator_for(model)
    parent_attributes.update(timestamps(parent_meta.table, now, parent_attributes))

    child_attributes = {
        k: v for k, v in attributes.items() if k not in parent_columns and k in own_columns
    }
    child_attributes.update(timestamps(meta.table, now, child_attributes))

    tables = database.tables()
    with database.transaction():
        key = tables.insert(parent_meta.table, parent_attributes)
        own_key = tables.insert(meta.table, {**child_attributes, meta.parent_link: key})

    instance._attributes.update(parent_attributes)
    instance._attributes.update(child_attributes)
    instance._attributes[meta.primary_key] = own_key
    instance._parent_key = key
    instance._exists = True
    instance.sync_original()

    logger.info("child_created", model=model.__name__, parent_key=key, key=own_key)
    return True


# Delete


def subclass_instance(instance: "Model", database: Database) -> Optional["Model"]:
    """The subclass instance a parent-role instance's discriminator points at, if any."""
    model = type(instance)
    subclass = _direct_subclass(model, instance.get_raw(DISCRIMINATOR_COLUMN))
    if subclass is None or isinstance(instance, subclass):
        return None
    sub_meta = subclass.metadata()
    key = instance.get_raw(model.metadata().primary_key)
    return subclass.query(database).with_trashed().where(sub_meta.parent_link, key).first()


def delete_child(instance: "Model", database: Database) -> bool:
    """Delete a child-role instance's own row and its parent row together."""
    meta = instance._meta
    parent_meta = meta.parent.metadata()
    key = instance.parent_key
    tables = database.tables()

    with database.transaction():
        tables.delete(meta.table, {meta.parent_link: key})
        tables.delete(parent_meta.table, {parent_meta.primary_key: key})

    instance._exists = False
    logger.info("child_deleted", model=type(instance).__name__, parent_key=key)
    return True
