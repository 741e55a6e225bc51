"""
SQLAlchemy implementation of UnitOfWork for Flask-SQLAlchemy sessions.
"""

from __future__ import annotations

import logging
from contextlib import suppress

from sqlalchemy import event, text
from sqlalchemy.engine import Connection
from sqlalchemy.exc import InvalidRequestError, SQLAlchemyError
from sqlalchemy.orm import Session, SessionTransaction

from txharness.core.errors import CommitError, UnitOfWorkClosedError, translate_db_errors
from txharness.core.extensions import db
from txharness.uow.base import UnitOfWork, UnitOfWorkState

log = logging.getLogger(__name__)


class SQLAlchemySessionHolder:
    """Own a SQLAlchemy session and lend it while the unit of work is open."""

    state: UnitOfWorkState

    def __init__(self, *, session: Session | None = None) -> None:
        # The Flask-SQLAlchemy scoped session resolves per app context, so every
        # worker thread that pushes its own context gets a distinct session.
        self._session: Session = session if session is not None else db.session()
        self.state = UnitOfWorkState.NEW

    @property
    def session(self) -> Session:
        """Return the owned session; only valid while the unit of work is open."""
        self.ensure_open()  # type: ignore[attr-defined]
        return self._session


class SQLAlchemyUnitOfWork(SQLAlchemySessionHolder, UnitOfWork):
    """
    Read-write unit of work over one SQLAlchemy session.

    Repositories constructed with this unit of work share its session and
    therefore its transaction. The transaction ends with exactly one of
    :meth:`commit` or :meth:`rollback`; leaving the ``with`` block while still
    open rolls back.
    """

    def __init__(self, session: Session | None = None) -> None:
        """Initialise the Unit of Work with the session it will own.

        :param session: Explicit session; defaults to the app-context session.
        :type session: :class:`sqlalchemy.orm.Session` | None
        """
        super().__init__(session=session)

    def begin(self) -> SQLAlchemyUnitOfWork:
        """Check out a pooled connection and start the transaction.

        Blocks until the engine's pool has capacity (bounded by
        ``pool_timeout``).

        :returns: ``self`` in the ``OPEN`` state.
        :raises UnitOfWorkClosedError: If the unit of work was already begun.
        :raises ConnectivityError: If the store cannot be reached.
        """
        if self.state is not UnitOfWorkState.NEW:
            raise UnitOfWorkClosedError(state=self.state.value, action="begin")
        with translate_db_errors("UnitOfWork"):
            self._session.connection()
        self.state = UnitOfWorkState.OPEN
        return self

    def __enter__(self) -> SQLAlchemyUnitOfWork:
        return self.begin()

    def __exit__(self, exc_type, exc, tb) -> None:
        if self.state is not UnitOfWorkState.OPEN:
            return
        if exc_type is None:
            log.warning("Unit of work left without commit; rolling back.")
            self.rollback()
            return
        # Keep the original exception; a failed rollback on a dead connection adds nothing.
        with suppress(SQLAlchemyError):
            self.rollback()

    def commit(self) -> None:
        """Make every write issued through bound repositories durable.

        :raises UnitOfWorkClosedError: If the unit of work is not open.
        :raises CommitError: If the store rejects the commit; writes are discarded.
        """
        self.ensure_open("commit")
        try:
            self._session.commit()
        except SQLAlchemyError as exc:
            log.error("Commit failed; rolling back.", exc_info=True)
            with suppress(SQLAlchemyError):
                self._session.rollback()
            self.state = UnitOfWorkState.ABORTED
            raise CommitError(detail=str(getattr(exc, "orig", None) or exc)) from exc
        self.state = UnitOfWorkState.COMMITTED
        log.debug("Transaction committed.")

    def rollback(self) -> None:
        """Discard every write of this unit of work. No-op once terminal."""
        if self.state is not UnitOfWorkState.OPEN:
            return
        try:
            self._session.rollback()
        finally:
            self.state = UnitOfWorkState.ABORTED


class SQLAlchemyReadOnlyUnitOfWork(SQLAlchemySessionHolder, UnitOfWork):
    """
    Read-only Unit of Work backed by the app-context SQLAlchemy session.

    This UoW:
    - Optionally sets the transaction isolation level via
      ``SET TRANSACTION ISOLATION LEVEL <...>`` (PostgreSQL/MySQL).
    - Applies database-level READ ONLY when enabled (``SET TRANSACTION READ ONLY``).
    - Installs portable write-guards and always rolls back on exit.
    - Disallows ``commit()``.

    Parameters
    ----------
    isolation_level:
        Optional transaction isolation level hint. Common values:
        ``"READ COMMITTED"`` (default) or ``"REPEATABLE READ"``.
        If ``None``, the connection's default is used.
    enforce_db_readonly:
        If ``True`` (default), applies ``SET TRANSACTION READ ONLY`` when supported.

    Notes
    -----
    *PostgreSQL*: fully supported (read-only + isolation).
    *MySQL/MariaDB*: ``SET TRANSACTION READ ONLY`` supported on modern versions.
    *SQLite*: no ``SET TRANSACTION``; write-guards still prevent writes.
    """

    # Guard patterns for portable "no write" at driver level
    _WRITE_PREFIXES = (
        "insert",
        "update",
        "delete",
        "merge",
        "alter",
        "drop",
        "truncate",
        "create",
        "replace",
        "grant",
        "revoke",
    )
    _ISOLATION_LEVELS = (
        "READ COMMITTED",
        "REPEATABLE READ",
        "SERIALIZABLE",
        "READ UNCOMMITTED",
    )
    _SET_TRANSACTION_DIALECTS = ("postgresql", "mysql", "mariadb")

    def __init__(
        self,
        *,
        session: Session | None = None,
        isolation_level: str | None = "READ COMMITTED",
        enforce_db_readonly: bool = True,
    ) -> None:
        super().__init__(session=session)
        self.isolation_level = isolation_level
        self.enforce_db_readonly = enforce_db_readonly

        # Internal state for listener lifecycle and transaction scope
        self._conn: Connection | None = None
        self._txn: SessionTransaction | None = None
        self._listeners_installed = False

    # ----------------------------- Context Manager -----------------------------

    def __enter__(self) -> SQLAlchemyReadOnlyUnitOfWork:
        """Enter a transactional scope that enforces read protections when possible.

        The unit of work first tries to own a fresh transaction so it can issue
        dialect-specific ``SET TRANSACTION`` directives. If SQLAlchemy reports
        that a transaction is already running (``InvalidRequestError``), the
        scope attaches to that outer transaction instead. In that path the
        guards still intercept ORM flushes and raw DML, but isolation follows
        the parent transaction.
        """
        if self.state is not UnitOfWorkState.NEW:
            raise UnitOfWorkClosedError(state=self.state.value, action="enter")

        try:
            self._txn = self._session.begin()
        except InvalidRequestError:
            # Autobegun by an earlier statement on this session: attach to it.
            self._txn = None

        try:
            with translate_db_errors("UnitOfWork"):
                self._conn = self._session.connection()
        except Exception:
            self._end_owned_transaction()
            raise
        dialect = self._conn.dialect.name

        self._install_listeners()
        self.state = UnitOfWorkState.OPEN

        # Apply SET TRANSACTION only if we own the top-level transaction
        if self._txn is not None and dialect in self._SET_TRANSACTION_DIALECTS:
            try:
                if self.isolation_level:
                    iso = self.isolation_level.upper().strip()
                    if iso not in self._ISOLATION_LEVELS:
                        log.warning("Unknown isolation_level '%s'; attempting as-is.", iso)
                    self._session.execute(text(f"SET TRANSACTION ISOLATION LEVEL {iso}"))

                if self.enforce_db_readonly:
                    self._session.execute(text("SET TRANSACTION READ ONLY"))
            except SQLAlchemyError as exc:
                log.warning(
                    "SET TRANSACTION directives failed (%s). Falling back to guards-only.", exc
                )

        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        """
        Always remove guards. Roll back only if we own the transaction.
        """
        try:
            self._end_owned_transaction()
        finally:
            self._remove_listeners()
            self._conn = None
            self.state = UnitOfWorkState.ABORTED

    def _end_owned_transaction(self) -> None:
        if self._txn is None:
            return
        try:
            with suppress(SQLAlchemyError):
                self._session.rollback()
        finally:
            self._txn = None

    # ----------------------------- Public API ---------------------------------

    def commit(self) -> None:
        """
        Disallow commit in read-only Unit of Work.

        :raises RuntimeError: always, to prevent accidental writes.
        """
        raise RuntimeError("Read-only UnitOfWork does not allow commit().")

    def rollback(self) -> None:
        """Rollback the current transaction if active."""
        if self.state is UnitOfWorkState.OPEN:
            self._session.rollback()

    # ----------------------------- Guards & Listeners --------------------------

    def _install_listeners(self) -> None:
        """Install ORM/db-level listeners to prevent any write attempt."""
        if self._listeners_installed:
            return

        # 1) Block ORM flushes that would emit DML.
        def _before_flush(session, flush_context, instances):
            if session.new or session.dirty or session.deleted:
                raise RuntimeError(
                    "Read-only UnitOfWork: ORM flush blocked (new/dirty/deleted objects present)."
                )

        event.listen(self._session, "before_flush", _before_flush)

        # 2) Block raw DML/DDL at cursor level (covers text() / core emits).
        def _before_cursor_execute(conn, cursor, statement, parameters, context, executemany):
            first_token = statement.lstrip().split(None, 1)[0].lower() if statement else ""
            if first_token.startswith(self._WRITE_PREFIXES):
                raise RuntimeError(
                    f"Read-only UnitOfWork: SQL statement blocked: {first_token.upper()}"
                )

        target = self._conn if self._conn is not None else self._session.get_bind()
        event.listen(target, "before_cursor_execute", _before_cursor_execute)

        # Keep refs for removal
        self._ro__before_flush = _before_flush
        self._ro__before_cursor_execute = _before_cursor_execute
        self._ro__target = target
        self._listeners_installed = True

    def _remove_listeners(self) -> None:
        """Detach previously installed listeners."""
        if not self._listeners_installed:
            return

        with suppress(InvalidRequestError):
            event.remove(self._session, "before_flush", self._ro__before_flush)

        with suppress(InvalidRequestError):
            event.remove(self._ro__target, "before_cursor_execute", self._ro__before_cursor_execute)

        self._listeners_installed = False
