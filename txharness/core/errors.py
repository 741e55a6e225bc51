"""
Harness-level exceptions and SQLAlchemy error translation.

The exceptions are stable contracts between repositories, units of work, the
worker orchestrator and the CLI. Only :func:`translate_db_errors` knows about
SQLAlchemy; everything above it deals in :class:`HarnessError` subclasses.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from sqlalchemy.exc import (
    DBAPIError,
    IntegrityError,
    InterfaceError,
    OperationalError,
    SQLAlchemyError,
)

if TYPE_CHECKING:  # pragma: no cover
    from txharness.services.worker import WorkerResult

log = logging.getLogger(__name__)


# --------------------------------------------------------------------------- #
# Base type
# --------------------------------------------------------------------------- #


class HarnessError(Exception):
    """
    Base class for all harness errors.

    Notes
    -----
    - None of these are recovered locally; every one of them fails the run.
    - The CLI turns them into a non-zero exit with the error message.
    """

    pass


# --------------------------------------------------------------------------- #
# Store-level errors
# --------------------------------------------------------------------------- #


@dataclass(slots=True)
class ConnectivityError(HarnessError):
    """
    Raised when the pool or the session cannot reach the store.

    :param detail: Driver message or short explanation.
    :type detail: str
    """

    detail: str

    def __str__(self) -> str:
        return f"Store unreachable: {self.detail}"


@dataclass(slots=True)
class ConstraintViolation(HarnessError):
    """
    Raised when an insert collides with an existing primary key.

    :param entity: Entity name (e.g., "Todo").
    :type entity: str
    :param key: Colliding identifier, when known.
    :type key: int | None
    :param detail: Driver message.
    :type detail: str
    """

    entity: str
    key: int | None
    detail: str = ""

    def __str__(self) -> str:
        return f"Constraint violation on {self.entity} id={self.key}: {self.detail}"


@dataclass(slots=True)
class CommitError(HarnessError):
    """
    Raised when a commit fails; the unit of work's writes are discarded.

    :param detail: Driver message.
    :type detail: str
    """

    detail: str

    def __str__(self) -> str:
        return f"Commit failed, batch discarded: {self.detail}"


@dataclass(slots=True)
class NotFound(HarnessError):
    """
    Raised when a point lookup finds no row.

    :param entity: Entity name (e.g., "User").
    :type entity: str
    :param key: Identifier searched for.
    :type key: int
    """

    entity: str
    key: int

    def __str__(self) -> str:
        return f"{self.entity} not found: {self.key}"


# --------------------------------------------------------------------------- #
# Lifecycle and run-level errors
# --------------------------------------------------------------------------- #


@dataclass(slots=True)
class UnitOfWorkClosedError(HarnessError):
    """
    Raised when a unit of work is used outside its ``OPEN`` state.

    :param state: Current state name.
    :type state: str
    :param action: Operation that was attempted.
    :type action: str
    """

    state: str
    action: str = "use"

    def __str__(self) -> str:
        return f"Cannot {self.action} a unit of work in state {self.state}"


@dataclass(slots=True)
class VerificationError(HarnessError):
    """
    Raised when the committed result set does not match the expected one.

    :param table: Table name.
    :type table: str
    :param detail: Human-readable mismatch summary.
    :type detail: str
    """

    table: str
    detail: str

    def __str__(self) -> str:
        return f"Verification failed for {self.table}: {self.detail}"


@dataclass(slots=True)
class WorkerFailed(HarnessError):
    """
    Raised by the orchestrator when one or more workers failed.

    The exception is chained (``__cause__``) from the error of the failed
    worker with the lowest index.

    :param failures: Results of the failed workers, ordered by index.
    :type failures: Sequence[WorkerResult]
    :param total: Number of workers in the run.
    :type total: int
    """

    failures: Sequence[WorkerResult] = field(default_factory=list)
    total: int = 0

    @property
    def first(self) -> WorkerResult | None:
        return self.failures[0] if self.failures else None

    def __str__(self) -> str:
        first = self.first
        if first is None:
            return "Worker failure"
        return (
            f"{len(self.failures)} of {self.total} workers failed; "
            f"worker {first.worker_index}: {first.error}"
        )


# --------------------------------------------------------------------------- #
# Translation
# --------------------------------------------------------------------------- #


def is_disconnect(exc: BaseException) -> bool:
    """Return ``True`` when ``exc`` means the session lost its connection."""
    if isinstance(exc, (OperationalError, InterfaceError)):
        return True
    return isinstance(exc, DBAPIError) and bool(exc.connection_invalidated)


@contextmanager
def translate_db_errors(entity: str, key: Any = None) -> Iterator[None]:
    """
    Map SQLAlchemy exceptions raised inside the block to harness errors.

    - ``IntegrityError`` becomes :class:`ConstraintViolation`.
    - Connection loss becomes :class:`ConnectivityError`.
    - Other SQLAlchemy errors propagate unchanged.

    :param entity: Entity name used in error messages.
    :type entity: str
    :param key: Identifier involved in the statement, when any.
    :type key: Any
    """
    try:
        yield
    except IntegrityError as exc:
        log.error("IntegrityError: entity=%s key=%s", entity, key)
        raise ConstraintViolation(entity=entity, key=key, detail=str(exc.orig)) from exc
    except SQLAlchemyError as exc:
        if is_disconnect(exc):
            log.error("Connectivity lost: entity=%s key=%s", entity, key, exc_info=True)
            raise ConnectivityError(detail=str(getattr(exc, "orig", exc))) from exc
        raise
