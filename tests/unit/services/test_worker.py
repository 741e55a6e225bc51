"""Unit tests for a single harness worker."""

from __future__ import annotations

import pytest

from tests.helpers.utils import other_session
from txharness.core.errors import ConstraintViolation
from txharness.models import Todo, User
from txharness.services.worker import build_todo, build_user, insert_batch


class TestBuilders:
    def test_todo_description_names_id_and_worker(self):
        todo = build_todo(11, 2)
        assert (todo.id, todo.description) == (11, "test 11 inside 2")

    def test_user_name_names_id(self):
        user = build_user(7, 1)
        assert (user.id, user.name) == (7, "name:7")


class TestInsertBatch:
    def test_commits_the_worker_partition(self, app):
        result = insert_batch(app, 2, 3, run_id="run-1")

        assert result.ok
        assert result.worker_index == 2
        assert list(result.ids) == [4, 5, 6]

        with other_session() as session:
            todos = session.query(Todo).order_by(Todo.id).all()
            users = session.query(User).order_by(User.id).all()

        assert [(t.id, t.description) for t in todos] == [
            (4, "test 4 inside 2"),
            (5, "test 5 inside 2"),
            (6, "test 6 inside 2"),
        ]
        assert [(u.id, u.name) for u in users] == [(4, "name:4"), (5, "name:5"), (6, "name:6")]

    def test_conflict_discards_the_whole_batch(self, app, seed_rows):
        """A clash on the second entity type also discards the todos already inserted."""
        seed_rows(User(id=5, name="taken"))

        with pytest.raises(ConstraintViolation) as info:
            insert_batch(app, 2, 3)

        assert info.value.entity == "User"
        assert info.value.key == 5
        with other_session() as session:
            assert session.query(Todo).count() == 0
            assert [u.name for u in session.query(User).all()] == ["taken"]
