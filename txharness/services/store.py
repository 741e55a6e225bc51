"""Store-level helpers run outside any worker: connectivity, schema, truncation."""

from __future__ import annotations

import logging

from sqlalchemy import text

from txharness.core.errors import translate_db_errors
from txharness.core.extensions import db
from txharness.repositories import TodoRepository, UserRepository
from txharness.uow import SQLAlchemyUnitOfWork

log = logging.getLogger(__name__)

HARNESS_REPOSITORIES = (TodoRepository, UserRepository)


def ping_store() -> None:
    """Round-trip ``SELECT 1`` on a pooled connection.

    :raises ConnectivityError: If the store is unreachable.
    """
    with translate_db_errors("Store"), db.engine.connect() as conn:
        conn.execute(text("SELECT 1"))
    log.info("Connection established")


def create_schema() -> None:
    """Create the ``todos`` and ``users`` tables when missing."""
    with translate_db_errors("Store"):
        db.create_all()


def truncate_tables() -> dict[str, int]:
    """Empty every harness table in one committed unit of work.

    :returns: Deleted row count per table.
    :rtype: dict[str, int]
    """
    deleted: dict[str, int] = {}
    with SQLAlchemyUnitOfWork() as uow:
        for repo_cls in HARNESS_REPOSITORIES:
            deleted[repo_cls.model.__tablename__] = repo_cls(uow).delete_all()
        uow.commit()
    log.info("Tables truncated: %s", deleted)
    return deleted
