"""One harness worker: a single unit of work inserting a deterministic batch."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any

from flask import Flask

from txharness.core.logger import log_context
from txharness.models import Todo, User
from txharness.repositories import BaseRepository, TodoRepository, UserRepository
from txharness.services.partitioning import partition_ids
from txharness.uow import SQLAlchemyUnitOfWork

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class EntityBatch:
    """Repository and row builder for one entity type of a worker's batch.

    :param repository: Repository class bound to the worker's unit of work.
    :param build: ``(row_id, worker_index) -> entity`` factory.
    """

    repository: type[BaseRepository[Any]]
    build: Callable[[int, int], Any]


def build_todo(row_id: int, worker_index: int) -> Todo:
    return Todo(id=row_id, description=f"test {row_id} inside {worker_index}")


def build_user(row_id: int, worker_index: int) -> User:
    return User(id=row_id, name=f"name:{row_id}")


# Fixed insertion order inside every unit of work
ENTITY_BATCHES: tuple[EntityBatch, ...] = (
    EntityBatch(repository=TodoRepository, build=build_todo),
    EntityBatch(repository=UserRepository, build=build_user),
)


@dataclass(slots=True)
class WorkerResult:
    """Outcome of one worker.

    :param worker_index: 1-based worker index.
    :param ids: Id partition the worker inserted (or attempted to insert).
    :param error: Exception that ended the worker, ``None`` on success.
    :param elapsed_ms: Wall time spent by the worker.
    """

    worker_index: int
    ids: range
    error: BaseException | None = None
    elapsed_ms: float = 0.0

    @property
    def ok(self) -> bool:
        return self.error is None


def insert_batch(
    app: Flask,
    worker_index: int,
    batch_size: int,
    *,
    run_id: str | None = None,
    batches: Sequence[EntityBatch] = ENTITY_BATCHES,
) -> WorkerResult:
    """Run one worker to completion in the calling thread.

    Pushes an app context (hence a session of its own), opens a unit of work,
    inserts ``batch_size`` rows per entity type from the worker's id partition,
    and commits. Any error propagates; the unit of work then rolls back and
    none of the worker's rows become visible.

    :param app: Application providing the engine and the scoped session.
    :type app: :class:`flask.Flask`
    :param worker_index: 1-based worker index.
    :type worker_index: int
    :param batch_size: Rows per entity type.
    :type batch_size: int
    :param run_id: Correlation id stamped on log records.
    :type run_id: str | None
    :param batches: Entity types to insert, in order.
    :type batches: Sequence[EntityBatch]
    :returns: Successful :class:`WorkerResult`.
    :raises HarnessError: On insert, connectivity or commit failure.
    """
    ids = partition_ids(worker_index, batch_size)
    started = time.perf_counter()
    with log_context(run_id=run_id, worker=worker_index), app.app_context():
        log.debug("after spawn: %s", worker_index)
        with SQLAlchemyUnitOfWork() as uow:
            log.debug("inside worker: %s", worker_index)
            for batch in batches:
                repo = batch.repository(uow)
                for row_id in ids:
                    repo.insert(batch.build(row_id, worker_index))
            uow.commit()
        elapsed_ms = (time.perf_counter() - started) * 1000
        log.info(
            "Transaction committed",
            extra={"rows": len(ids) * len(batches), "elapsed_ms": round(elapsed_ms, 2)},
        )
    return WorkerResult(worker_index=worker_index, ids=ids, elapsed_ms=elapsed_ms)
