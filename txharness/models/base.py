"""Reusable SQLAlchemy mixins shared by harness entities (typed 2.0)."""

from __future__ import annotations

from sqlalchemy import BigInteger
from sqlalchemy.orm import Mapped, mapped_column


class AssignedPKMixin:
    """Expose a caller-assigned signed 64-bit primary key named ``id``.

    Attributes
    ----------
    id:
        Primary key chosen by the caller; the database never generates it.
        Workers derive it from their id partition.
    """

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)


class ReprMixin:
    """Provide a concise ``__repr__`` including the class name and id."""

    def __repr__(self) -> str:
        """Return a short and useful string representation.

        :returns: Debug-friendly ``<ClassName id=...>``.
        :rtype: str
        """
        cls = self.__class__.__name__
        key = getattr(self, "id", None)
        return f"<{cls} id={key}>"
