"""Todo entity written by harness workers."""

from __future__ import annotations

from sqlalchemy import Text
from sqlalchemy.orm import Mapped, mapped_column

from txharness.core.extensions import db

from .base import AssignedPKMixin, ReprMixin


class Todo(AssignedPKMixin, ReprMixin, db.Model):
    """
    A todo row.

    Fields
    ------
    id : int
        Caller-assigned primary key, unique across all workers.
    description : str
        Free text. Workers write ``"test <id> inside <worker>"``.
    """

    __tablename__ = "todos"

    description: Mapped[str] = mapped_column(Text, nullable=False)
