"""Todo repository."""

from __future__ import annotations

from typing import ClassVar

from txharness.models.todo import Todo
from txharness.repositories.base import BaseRepository


class TodoRepository(BaseRepository[Todo]):
    """Transaction-scoped access to the ``todos`` table.

    :meth:`get_all` returns rows strictly descending by id.
    """

    model = Todo
    default_sort: ClassVar[tuple[str, ...]] = ("-id",)

    def _sortable_fields(self):
        """Expose sortable fields for safe public sorting."""
        return {
            "id": Todo.id,
            "description": Todo.description,
        }
