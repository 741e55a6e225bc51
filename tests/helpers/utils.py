"""Tiny helpers shared across test modules."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy.orm import Session

from txharness.core.extensions import db


@contextmanager
def not_raises(exception: type[BaseException]):
    """Context manager asserting that an exception is *not* raised.

    Parameters
    ----------
    exception: type[BaseException]
        Exception type that should not be raised within the context.

    Yields
    ------
    None
        Control enters the managed block when the exception is absent.
    """
    try:
        yield
    except exception as exc:  # pragma: no cover
        raise AssertionError(f"Did raise {exception}: {exc}") from exc


@contextmanager
def other_session() -> Iterator[Session]:
    """Yield a session on its own pooled connection, closed on exit.

    Reads through it observe only what other transactions committed.
    """
    session = Session(db.engine)
    try:
        yield session
    finally:
        session.close()
