"""Unit tests for concurrent worker orchestration."""

from __future__ import annotations

import pytest

from tests.helpers.utils import other_session
from txharness.core.errors import ConstraintViolation, WorkerFailed
from txharness.models import Todo, User
from txharness.services.orchestrator import run_harness, run_workers


class TestRunWorkers:
    def test_all_workers_commit(self, app):
        results = run_workers(app, 3, 2)

        assert [r.worker_index for r in results] == [1, 2, 3]
        assert all(r.ok for r in results)
        with other_session() as session:
            assert sorted(t.id for t in session.query(Todo)) == [1, 2, 3, 4, 5, 6]

    def test_bounded_thread_pool_runs_every_worker(self, app):
        results = run_workers(app, 5, 1, max_threads=2)

        assert [list(r.ids) for r in results] == [[1], [2], [3], [4], [5]]

    def test_one_failure_fails_the_run_after_all_workers_joined(self, app, seed_rows):
        seed_rows(Todo(id=4, description="pre-existing"))

        with pytest.raises(WorkerFailed) as info:
            run_workers(app, 3, 2)

        failed = info.value
        assert [r.worker_index for r in failed.failures] == [2]
        assert failed.total == 3
        assert isinstance(failed.__cause__, ConstraintViolation)
        assert str(failed).startswith("1 of 3 workers failed; worker 2:")

        with other_session() as session:
            # Worker 2 rolled back entirely; workers 1 and 3 committed.
            assert sorted(u.id for u in session.query(User)) == [1, 2, 5, 6]
            assert sorted(t.id for t in session.query(Todo)) == [1, 2, 4, 5, 6]

    @pytest.mark.parametrize(("workers", "batch_size"), [(0, 1), (1, 0), (-2, 3)])
    def test_rejects_empty_runs(self, app, workers, batch_size):
        with pytest.raises(ValueError):
            run_workers(app, workers, batch_size)


class TestRunHarness:
    def test_truncates_then_verifies(self, app, seed_rows):
        seed_rows(Todo(id=99, description="stale"), User(id=99, name="stale"))

        report = run_harness(app, 3, 2)

        assert report.rows_per_table == 6
        todos, users = report.tables
        assert todos.scan_ids == (6, 5, 4, 3, 2, 1)
        assert users.scan_ids == (1, 2, 3, 4, 5, 6)
        assert len(report.run_id) == 12

    def test_failure_skips_verification(self, app, seed_rows, monkeypatch):
        seed_rows(Todo(id=4, description="pre-existing"))
        calls: list[int] = []
        monkeypatch.setattr(
            "txharness.services.orchestrator.verify_run",
            lambda *a, **k: calls.append(1),
        )

        with pytest.raises(WorkerFailed):
            run_harness(app, 3, 2, truncate=False)

        assert calls == []
