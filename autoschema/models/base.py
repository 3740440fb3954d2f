"""Standard model base with an id, timestamps and soft deletes."""

from datetime import datetime
from typing import Annotated, Optional

from ..orm.model import Model
from ..schema.attributes import Column


class BaseModel(Model, abstract=True):
    """
    Base class for application models.

    Subclasses get an auto-increment ``id``, ``created_at``/``updated_at``
    timestamps and a ``deleted_at`` soft-delete column. It is also the point
    column inheritance is measured from: a child model repeats the columns
    declared here in its own table and leaves its parent's other columns to
    the parent table.
    """

    id: Annotated[int, Column(name="id", type="id", hidden=True)]
    created_at: Annotated[
        Optional[datetime], Column(name="created_at", type="timestamp", cast="datetime", nullable=True)
    ]
    updated_at: Annotated[
        Optional[datetime], Column(name="updated_at", type="timestamp", cast="datetime", nullable=True)
    ]
    deleted_at: Annotated[
        Optional[datetime],
        Column(name="deleted_at", type="timestamp", hidden=True, cast="datetime", nullable=True),
    ]
