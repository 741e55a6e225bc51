"""User repository."""

from __future__ import annotations

from typing import ClassVar

from txharness.models.user import User
from txharness.repositories.base import BaseRepository


class UserRepository(BaseRepository[User]):
    """Transaction-scoped access to the ``users`` table.

    :meth:`get_all` returns rows strictly ascending by id.
    """

    model = User
    default_sort: ClassVar[tuple[str, ...]] = ("id",)

    def _sortable_fields(self):
        """Expose sortable fields for safe public sorting."""
        return {
            "id": User.id,
            "name": User.name,
        }
