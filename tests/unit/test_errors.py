"""Unit tests for harness errors and SQLAlchemy translation."""

from __future__ import annotations

import pytest
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError, ProgrammingError

from txharness.core.errors import (
    CommitError,
    ConnectivityError,
    ConstraintViolation,
    HarnessError,
    NotFound,
    WorkerFailed,
    is_disconnect,
    translate_db_errors,
)
from txharness.services.worker import WorkerResult


class TestTranslateDbErrors:
    def test_integrity_error_becomes_constraint_violation(self):
        orig = Exception("UNIQUE constraint failed: todos.id")
        with pytest.raises(ConstraintViolation) as info, translate_db_errors("Todo", 7):
            raise IntegrityError("INSERT INTO todos ...", {"id": 7}, orig)

        assert info.value.entity == "Todo"
        assert info.value.key == 7
        assert "UNIQUE constraint failed" in info.value.detail
        assert isinstance(info.value.__cause__, IntegrityError)

    def test_operational_error_becomes_connectivity_error(self):
        with pytest.raises(ConnectivityError) as info, translate_db_errors("Store"):
            raise OperationalError("SELECT 1", {}, Exception("server closed the connection"))

        assert "server closed the connection" in str(info.value)

    def test_invalidated_connection_becomes_connectivity_error(self):
        exc = DBAPIError("SELECT 1", {}, Exception("gone"), connection_invalidated=True)
        with pytest.raises(ConnectivityError), translate_db_errors("Store"):
            raise exc

    def test_other_sqlalchemy_errors_propagate_unchanged(self):
        with pytest.raises(ProgrammingError), translate_db_errors("Todo"):
            raise ProgrammingError("SELEC 1", {}, Exception("syntax error"))

    def test_non_database_errors_pass_through(self):
        with pytest.raises(KeyError), translate_db_errors("Todo"):
            raise KeyError("x")


class TestErrorTypes:
    def test_every_error_is_a_harness_error(self):
        for exc in (
            ConnectivityError("down"),
            ConstraintViolation("Todo", 1),
            CommitError("conflict"),
            NotFound("User", 1),
        ):
            assert isinstance(exc, HarnessError)

    def test_messages(self):
        assert str(NotFound("User", 42)) == "User not found: 42"
        assert "batch discarded" in str(CommitError("conflict"))

    def test_is_disconnect(self):
        assert is_disconnect(OperationalError("x", {}, Exception("down")))
        assert not is_disconnect(ProgrammingError("x", {}, Exception("bad")))

    def test_worker_failed_names_first_failure(self):
        failures = [
            WorkerResult(worker_index=2, ids=range(3, 5), error=ConstraintViolation("Todo", 4)),
            WorkerResult(worker_index=3, ids=range(5, 7), error=CommitError("lost")),
        ]
        exc = WorkerFailed(failures=failures, total=3)

        assert exc.first is failures[0]
        assert str(exc).startswith("2 of 3 workers failed; worker 2:")
