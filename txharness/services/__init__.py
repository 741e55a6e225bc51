"""Harness services: id partitioning, workers, orchestration and verification."""

from txharness.services.orchestrator import RunReport, run_harness, run_workers
from txharness.services.partitioning import expected_ids, partition_ids
from txharness.services.store import create_schema, ping_store, truncate_tables
from txharness.services.verification import TableReport, check_ids, verify_run, verify_table
from txharness.services.worker import (
    ENTITY_BATCHES,
    EntityBatch,
    WorkerResult,
    build_todo,
    build_user,
    insert_batch,
)

__all__ = [
    "ENTITY_BATCHES",
    "EntityBatch",
    "RunReport",
    "TableReport",
    "WorkerResult",
    "build_todo",
    "build_user",
    "check_ids",
    "create_schema",
    "expected_ids",
    "insert_batch",
    "partition_ids",
    "ping_store",
    "run_harness",
    "run_workers",
    "truncate_tables",
    "verify_run",
    "verify_table",
]
