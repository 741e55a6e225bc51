"""End-to-end harness runs through the service layer and the CLI."""

from __future__ import annotations

import pytest

from tests.helpers.utils import other_session
from txharness.models import Todo, User
from txharness.services import run_harness


@pytest.fixture()
def runner(app):
    return app.test_cli_runner()


class TestHarnessRun:
    def test_three_workers_two_rows(self, app):
        report = run_harness(app, 3, 2)

        assert [t.row_count for t in report.tables] == [6, 6]
        with other_session() as session:
            descriptions = {t.id: t.description for t in session.query(Todo)}
            names = {u.id: u.name for u in session.query(User)}

        assert descriptions == {
            1: "test 1 inside 1",
            2: "test 2 inside 1",
            3: "test 3 inside 2",
            4: "test 4 inside 2",
            5: "test 5 inside 3",
            6: "test 6 inside 3",
        }
        assert names == {i: f"name:{i}" for i in range(1, 7)}

    def test_three_hundred_workers(self, app):
        """300 concurrent transactions of 10 rows per table commit disjoint ids."""
        report = run_harness(app, 300, 10, max_threads=10)

        todos, users = report.tables
        assert todos.row_count == users.row_count == 3000
        assert todos.scan_ids == tuple(range(3000, 0, -1))
        assert users.scan_ids == tuple(range(1, 3001))
        assert len(report.results) == 300

    def test_rerun_after_truncate_is_identical(self, app):
        first = run_harness(app, 2, 3)
        second = run_harness(app, 2, 3)

        assert [t.scan_ids for t in first.tables] == [t.scan_ids for t in second.tables]
        assert first.run_id != second.run_id


class TestHarnessCli:
    def test_run_prints_summary_and_ids(self, runner):
        result = runner.invoke(args=["harness", "run", "-n", "3", "-m", "2", "--show-ids"])

        assert result.exit_code == 0, result.output
        assert "3 workers x 2 rows" in result.output
        assert "rows=     6" in result.output
        assert result.output.rstrip().splitlines()[-1] == "6,5,4,3,2,1"

    def test_run_uses_configured_defaults(self, runner):
        result = runner.invoke(args=["harness", "run"])

        assert result.exit_code == 0, result.output
        assert "3 workers x 2 rows" in result.output

    def test_run_failure_exits_non_zero(self, runner, seed_rows):
        seed_rows(User(id=3, name="taken"))

        result = runner.invoke(args=["harness", "run", "-n", "3", "-m", "2", "--no-truncate"])

        assert result.exit_code == 1
        assert "Harness run failed: 1 of 3 workers failed; worker 2" in result.output

    def test_run_rejects_zero_workers(self, runner):
        result = runner.invoke(args=["harness", "run", "-n", "0"])

        assert result.exit_code == 2

    def test_init_db_is_idempotent(self, runner):
        assert runner.invoke(args=["harness", "init-db"]).exit_code == 0
        result = runner.invoke(args=["harness", "init-db"])

        assert result.exit_code == 0
        assert "Schema ready." in result.output

    def test_truncate_reports_deleted_rows(self, runner, seed_rows):
        seed_rows(Todo(id=1, description="a"), Todo(id=2, description="b"))

        result = runner.invoke(args=["harness", "truncate"])

        assert result.exit_code == 0
        assert "todos: deleted 2" in result.output
        assert "users: deleted 0" in result.output
        with other_session() as session:
            assert session.query(Todo).count() == 0
