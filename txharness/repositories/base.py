"""Generic transaction-scoped repository for SQLAlchemy 2.x.

This module centralizes persistence-only concerns shared by all repositories:
- Binding to one open Unit of Work and borrowing its session per call.
- Safe sorting with a whitelist mapping (prevents SQL injection).
- Deterministic ordering (declared sort key plus primary-key tiebreaker).
- Translation of driver errors into harness errors.
- No commit/rollback: the Unit of Work owns the transaction.

Design decisions
----------------
* Repositories MUST remain thin and persistence-focused:
  - They never open, commit or roll back transactions.
  - They never outlive the Unit of Work they were built with; every call goes
    through ``uow.session``, which refuses access once the Unit of Work left
    the ``OPEN`` state.
* Each subclass fixes its table through ``model`` and its ordering through
  ``default_sort``; there is no switching on entity kind.
* Inserts are explicit parameterized ``INSERT`` statements over every mapped
  column, executed immediately so the row is visible to later reads in the
  same transaction.

"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any, ClassVar, Generic, TypeVar, cast

from sqlalchemy import Select, delete, func, insert, inspect, select
from sqlalchemy.orm import InstrumentedAttribute, Session

from txharness.core.errors import NotFound, translate_db_errors
from txharness.uow.base import UnitOfWork

E = TypeVar("E")  # SQLAlchemy mapped entity type

log = logging.getLogger(__name__)


# ----------------------------- Sorting utilities -----------------------------


def parse_sort_tokens(raw: Iterable[str]) -> list[tuple[str, bool]]:
    """Parse public sort tokens into ``(field, is_desc)`` tuples.

    :param raw: Public tokens like ``["-id", "name"]``.
    :type raw: Iterable[str]
    :returns: List of ``(field_name, is_desc)`` tokens.
    :rtype: list[tuple[str, bool]]
    """
    parsed: list[tuple[str, bool]] = []
    for token in raw:
        is_desc = token.startswith("-")
        field = token[1:] if is_desc else token
        field = field.strip()
        if field:
            parsed.append((field, is_desc))
    return parsed


def _apply_sorting(
    stmt: Select[Any],
    sortable_fields: Mapping[str, InstrumentedAttribute[Any]],
    tokens: Iterable[str],
    *,
    pk_attr: InstrumentedAttribute[Any] | None,
) -> Select[Any]:
    """Apply safe ``ORDER BY`` clauses based on a whitelist mapping.

    Unknown sort tokens are ignored silently. The model's primary key is always
    appended as a final ascending tiebreaker so the order is total.

    :param stmt: Base selectable.
    :type stmt: :class:`sqlalchemy.sql.Select`
    :param sortable_fields: Public field → SQLAlchemy attribute mapping.
    :type sortable_fields: Mapping[str, InstrumentedAttribute]
    :param tokens: Public sort tokens (e.g., ``["-id"]``).
    :type tokens: Iterable[str]
    :param pk_attr: Primary-key attribute used as a tiebreaker.
    :type pk_attr: InstrumentedAttribute | None
    :returns: Modified select with ``ORDER BY`` clauses.
    :rtype: :class:`sqlalchemy.sql.Select`
    """
    orders: list[Any] = []
    for field, is_desc in parse_sort_tokens(tokens):
        col = sortable_fields.get(field)
        if isinstance(col, InstrumentedAttribute):
            orders.append(col.desc() if is_desc else col.asc())

    if orders:
        stmt = stmt.order_by(*orders)

    if pk_attr is not None:
        stmt = stmt.order_by(pk_attr.asc())

    return stmt


# ------------------------------ Base repository ------------------------------


class BaseRepository(Generic[E]):
    """Generic, persistence-only repository for a single table.

    Subclasses MUST define:

    * ``model``: the SQLAlchemy mapped class (fixes table and columns).
    * ``default_sort``: sort tokens used by :meth:`get_all`.

    Subclasses MAY override:

    * ``_sortable_fields`` to expose more safe sort keys.

    This class NEVER opens/commits/rolls back transactions. It borrows the
    session of the Unit of Work it is bound to.
    """

    #: SQLAlchemy mapped model (must be set by subclasses)
    model: type[E]

    #: Declared ordering of :meth:`get_all`
    default_sort: ClassVar[tuple[str, ...]] = ("id",)

    def __init__(self, uow: UnitOfWork) -> None:
        """Bind the repository to an already-open Unit of Work.

        :param uow: Unit of Work whose transaction every call runs in.
        :type uow: :class:`txharness.uow.base.UnitOfWork`
        :raises UnitOfWorkClosedError: If ``uow`` is not open.
        """
        uow.ensure_open("bind a repository to")
        self._uow = uow

    # ------------------------------ Session access ---------------------------

    @property
    def uow(self) -> UnitOfWork:
        return self._uow

    @property
    def session(self) -> Session:
        """Return the session borrowed from the bound Unit of Work.

        :returns: Active session of the bound Unit of Work.
        :rtype: :class:`sqlalchemy.orm.Session`
        :raises UnitOfWorkClosedError: Once the Unit of Work is committed or aborted.
        """
        return cast(Session, self._uow.session)

    @property
    def entity_name(self) -> str:
        return self.model.__name__

    # ------------------------------ Extensibility ----------------------------

    def _pk_attr(self) -> InstrumentedAttribute[Any]:
        """Return the model's primary-key ``InstrumentedAttribute`` (``model.id``).

        :rtype: :class:`sqlalchemy.orm.InstrumentedAttribute`
        """
        return cast(InstrumentedAttribute[Any], getattr(self.model, "id"))

    def _sortable_fields(self) -> Mapping[str, InstrumentedAttribute[Any]]:
        """Whitelist mapping of public sort keys to model attributes.

        :returns: Public key → ORM attribute mapping.
        :rtype: Mapping[str, InstrumentedAttribute]
        """
        return {"id": self._pk_attr()}

    def _column_values(self, entity: E) -> dict[str, Any]:
        """Return every mapped column value of ``entity`` keyed by attribute name."""
        mapper = inspect(self.model)
        return {attr.key: getattr(entity, attr.key) for attr in mapper.column_attrs}

    # --------------------------------- CRUD ----------------------------------

    def insert(self, entity: E) -> E:
        """Insert ``entity`` within the bound transaction.

        The ``INSERT`` is executed immediately: the row is visible to later
        reads through any repository bound to the same Unit of Work and
        invisible to other transactions until commit.

        :param entity: New entity carrying its caller-assigned ``id``.
        :type entity: E
        :returns: The same instance.
        :rtype: E
        :raises ConstraintViolation: If the id already exists.
        :raises ConnectivityError: If the session lost its connection.
        """
        values = self._column_values(entity)
        key = values.get("id")
        with translate_db_errors(self.entity_name, key):
            self.session.execute(insert(self.model).values(**values))
        log.debug("insert(): %r", entity, extra={"entity": self.entity_name})
        return entity

    def get(self, entity_id: int) -> E:
        """Retrieve a single entity by primary key within the bound transaction.

        :param entity_id: Primary-key value.
        :type entity_id: int
        :returns: Entity (including rows written but not yet committed by this
            transaction).
        :rtype: E
        :raises NotFound: If no row has that id.
        """
        stmt = select(self.model).where(self._pk_attr() == entity_id)
        with translate_db_errors(self.entity_name, entity_id):
            result = self.session.execute(stmt).scalars().first()
        if result is None:
            raise NotFound(entity=self.entity_name, key=entity_id)
        return cast(E, result)

    def exists(self, entity_id: int) -> bool:
        """Return ``True`` when a row with ``entity_id`` is visible to this transaction."""
        stmt = select(func.count()).select_from(self.model).where(self._pk_attr() == entity_id)
        with translate_db_errors(self.entity_name, entity_id):
            return bool(self.session.execute(stmt).scalar_one())

    def get_all(self) -> list[E]:
        """Full-table scan ordered by the repository's declared sort key.

        :returns: Every row visible to this transaction.
        :rtype: list[E]
        """
        return self.list(sort=self.default_sort)

    def list(
        self,
        *,
        sort: Iterable[str] | None = None,
        limit: int | None = None,
        offset: int | None = None,
    ) -> list[E]:
        """List entities with optional sorting and slicing.

        :param sort: Public sort tokens (e.g., ``["-id"]``).
        :type sort: Iterable[str] | None
        :param limit: Optional limit.
        :type limit: int | None
        :param offset: Optional offset.
        :type offset: int | None
        :returns: List of entities.
        :rtype: list[E]
        """
        stmt: Select[Any] = select(self.model)
        stmt = _apply_sorting(stmt, self._sortable_fields(), sort or [], pk_attr=self._pk_attr())

        if limit is not None:
            stmt = stmt.limit(int(limit))
        if offset is not None:
            stmt = stmt.offset(int(offset))

        with translate_db_errors(self.entity_name):
            results = self.session.execute(stmt).scalars().all()
        return cast(list[E], list(results))

    def count(self) -> int:
        """Return the number of rows visible to this transaction."""
        stmt = select(func.count()).select_from(self.model)
        with translate_db_errors(self.entity_name):
            return int(self.session.execute(stmt).scalar_one())

    def ids(self) -> list[int]:
        """Return every visible primary key in ascending order."""
        stmt = select(self._pk_attr()).order_by(self._pk_attr().asc())
        with translate_db_errors(self.entity_name):
            return [int(row) for row in self.session.execute(stmt).scalars().all()]

    def delete_all(self) -> int:
        """Delete every row of the table within the bound transaction.

        :returns: Number of deleted rows as reported by the driver.
        :rtype: int
        """
        with translate_db_errors(self.entity_name):
            result = self.session.execute(delete(self.model))
        return int(result.rowcount or 0)
