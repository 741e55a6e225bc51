"""Concurrent worker orchestration and the end-to-end harness run."""

from __future__ import annotations

import logging
import time
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field

from flask import Flask

from txharness.core.errors import WorkerFailed
from txharness.core.logger import current_run_id, log_context, new_run_id
from txharness.services.partitioning import partition_ids
from txharness.services.store import ping_store, truncate_tables
from txharness.services.verification import TableReport, verify_run
from txharness.services.worker import WorkerResult, insert_batch

log = logging.getLogger(__name__)


@dataclass(slots=True)
class RunReport:
    """Summary of a successful harness run.

    :param run_id: Correlation id shared by every log record of the run.
    :param workers: Number of workers launched.
    :param batch_size: Rows per entity type per worker.
    :param results: Worker results ordered by index.
    :param tables: Verification report per table.
    :param elapsed_ms: Wall time of the whole run.
    """

    run_id: str
    workers: int
    batch_size: int
    results: list[WorkerResult] = field(default_factory=list)
    tables: list[TableReport] = field(default_factory=list)
    elapsed_ms: float = 0.0

    @property
    def rows_per_table(self) -> int:
        return self.workers * self.batch_size


def run_workers(
    app: Flask,
    workers: int,
    batch_size: int,
    *,
    max_threads: int | None = None,
    run_id: str | None = None,
) -> list[WorkerResult]:
    """Launch ``workers`` concurrent workers and join all of them.

    Every worker runs to completion; none is cancelled when another fails.
    Failures are then reduced into a single :class:`WorkerFailed` so that any
    failed worker fails the whole run.

    :param app: Application handed to every worker.
    :type app: :class:`flask.Flask`
    :param workers: Number of workers (``N``).
    :type workers: int
    :param batch_size: Rows per entity type per worker (``M``).
    :type batch_size: int
    :param max_threads: Thread pool size; defaults to one thread per worker.
    :type max_threads: int | None
    :param run_id: Correlation id; a new one is generated when missing.
    :type run_id: str | None
    :returns: Results ordered by worker index.
    :rtype: list[WorkerResult]
    :raises ValueError: If ``workers`` or ``batch_size`` is lower than 1.
    :raises WorkerFailed: If at least one worker failed, chained from the
        error of the lowest-indexed failed worker.
    """
    if workers < 1:
        raise ValueError(f"workers must be >= 1, got {workers}")
    if batch_size < 1:
        raise ValueError(f"batch_size must be >= 1, got {batch_size}")

    run_id = run_id or current_run_id() or new_run_id()
    threads = max(1, min(max_threads or workers, workers))
    results: list[WorkerResult] = []

    with ThreadPoolExecutor(max_workers=threads, thread_name_prefix="harness-worker") as executor:
        futures: dict[Future[WorkerResult], int] = {
            executor.submit(insert_batch, app, index, batch_size, run_id=run_id): index
            for index in range(1, workers + 1)
        }
        for future in as_completed(futures):
            index = futures[future]
            try:
                results.append(future.result())
            except Exception as exc:
                log.error("Worker %d failed: %s", index, exc)
                results.append(
                    WorkerResult(
                        worker_index=index,
                        ids=partition_ids(index, batch_size),
                        error=exc,
                    )
                )

    results.sort(key=lambda r: r.worker_index)
    failures = [r for r in results if not r.ok]
    if failures:
        raise WorkerFailed(failures=failures, total=workers) from failures[0].error
    log.info("All %d workers committed", workers)
    return results


def run_harness(
    app: Flask,
    workers: int,
    batch_size: int,
    *,
    max_threads: int | None = None,
    truncate: bool = True,
    probe_id: int = 1,
) -> RunReport:
    """Run the full harness: connectivity check, truncation, workers, verification.

    Must be called inside an app context of ``app``; verification and
    truncation use that context's session.

    :returns: :class:`RunReport` when every worker committed and both
        verification checks passed.
    :raises HarnessError: On the first failing stage.
    """
    run_id = new_run_id()
    started = time.perf_counter()
    with log_context(run_id=run_id):
        ping_store()
        if truncate:
            truncate_tables()
        results = run_workers(app, workers, batch_size, max_threads=max_threads, run_id=run_id)
        tables = verify_run(workers, batch_size, probe_id=probe_id)
    return RunReport(
        run_id=run_id,
        workers=workers,
        batch_size=batch_size,
        results=results,
        tables=tables,
        elapsed_ms=(time.perf_counter() - started) * 1000,
    )
