"""Pytest fixtures configuring a shared, file-backed database for the harness.

Workers commit on their own pooled connections, so tests run against a real
database file (or ``TEST_DATABASE_URL``) rather than a SAVEPOINT-wrapped
in-memory connection. Tables are emptied before and after every test.
"""

from __future__ import annotations

import os
from collections.abc import Generator
from typing import Any

import factory.random
import pytest
from flask import Flask
from sqlalchemy import delete

from txharness.core.config import engine_options
from txharness.core.extensions import db as _db
from txharness.factory import create_app
from txharness.models import Todo, User


@pytest.fixture(scope="session")
def database_uri(tmp_path_factory: pytest.TempPathFactory) -> str:
    """Return ``TEST_DATABASE_URL`` or a fresh SQLite file for the session."""
    url = os.getenv("TEST_DATABASE_URL")
    if url:
        return url
    return f"sqlite:///{tmp_path_factory.mktemp('db') / 'harness.db'}"


@pytest.fixture(scope="session")
def app(database_uri: str) -> Flask:
    """Create a Flask application configured for testing.

    Returns
    -------
    flask.Flask
        Application bound to :func:`database_uri` with small run defaults.
    """

    class TestConfig:
        TESTING = True
        DEBUG = False
        LOG_LEVEL = "WARNING"
        SQLALCHEMY_DATABASE_URI = database_uri
        SQLALCHEMY_ENGINE_OPTIONS = engine_options(database_uri, busy_timeout=30)
        SQLALCHEMY_TRACK_MODIFICATIONS = False
        HARNESS_WORKERS = 3
        HARNESS_ROWS = 2
        HARNESS_THREADS = None
        HARNESS_PROBE_ID = 1

    # Ensure env-based config does not leak into tests
    os.environ.pop("DATABASE_URL", None)
    return create_app(TestConfig, instance_relative_config=False)


@pytest.fixture(scope="session")
def db(app: Flask) -> Generator[Any, None, None]:
    """Create the harness tables once per test session.

    The app context stays pushed for the whole session; worker threads push
    their own.
    """
    with app.app_context():
        _db.create_all()
        yield _db
        _db.session.remove()
        _db.drop_all()


def _empty_tables() -> None:
    _db.session.remove()
    _db.session.execute(delete(Todo))
    _db.session.execute(delete(User))
    _db.session.commit()
    _db.session.remove()


@pytest.fixture(autouse=True)
def _clean_tables(db: Any) -> Generator[None, None, None]:
    """Start and finish every test with empty tables and a fresh session."""
    _empty_tables()
    yield
    _empty_tables()


@pytest.fixture(scope="session", autouse=True)
def _seed_factories() -> None:
    """Seed Factory Boy's Faker so generated payloads are deterministic."""
    factory.random.reseed_random(1337)


@pytest.fixture()
def seed_rows(db: Any):
    """Commit rows outside any unit of work under test.

    Returns a callable ``seed(*entities)``.
    """

    def _seed(*entities: Any) -> None:
        _db.session.add_all(entities)
        _db.session.commit()
        _db.session.remove()

    return _seed
