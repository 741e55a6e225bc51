"""User entity written by harness workers."""

from __future__ import annotations

from sqlalchemy import Text
from sqlalchemy.orm import Mapped, mapped_column

from txharness.core.extensions import db

from .base import AssignedPKMixin, ReprMixin


class User(AssignedPKMixin, ReprMixin, db.Model):
    """
    A user row.

    The id space is independent from :class:`~txharness.models.todo.Todo`;
    equal ids in both tables do not conflict.

    Fields
    ------
    id : int
        Caller-assigned primary key, unique across all workers.
    name : str
        Workers write ``"name:<id>"``.
    """

    __tablename__ = "users"

    name: Mapped[str] = mapped_column(Text, nullable=False)
