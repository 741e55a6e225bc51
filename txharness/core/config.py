"""Harness settings with environment-based simple classes."""

from __future__ import annotations

import os
from collections.abc import Mapping
from typing import Any, Final

from dotenv import load_dotenv

# Public selector env var (keep neutral name to avoid collisions)
ENV_VAR: Final[str] = "APP_ENV"  # 'development' | 'testing' | 'production'


# Loads .env in development (no-op when missing)
load_dotenv()


def env_bool(name: str, default: bool = False) -> bool:
    """Parse a boolean flag from an environment variable.

    Parameters
    ----------
    name: str
        Environment variable to inspect.
    default: bool, optional
        Value returned when the variable is unset. Defaults to ``False``.

    Returns
    -------
    bool
        ``True`` if the value resembles ``{"1", "true", "yes", "y", "on"}``
        ignoring case; otherwise ``False`` or ``default`` when missing.
    """
    val = os.getenv(name)
    if val is None:
        return default
    return str(val).strip().lower() in {"1", "true", "yes", "y", "on"}


def env_int(name: str, default: int | None) -> int | None:
    """Parse an integer from an environment variable, ``default`` when unset."""
    val = os.getenv(name)
    if val is None or not val.strip():
        return default
    return int(val)


def engine_options(database_uri: str, *, busy_timeout: float) -> dict[str, Any]:
    """Return ``SQLALCHEMY_ENGINE_OPTIONS`` suited to ``database_uri``.

    SQLite serializes writers; the driver busy timeout makes concurrent
    transactions wait for the write lock instead of failing immediately.

    :param database_uri: SQLAlchemy URL.
    :type database_uri: str
    :param busy_timeout: Seconds the SQLite driver waits on a locked database.
    :type busy_timeout: float
    :returns: Engine keyword arguments.
    :rtype: dict[str, Any]
    """
    options: dict[str, Any] = {"pool_pre_ping": True}
    if database_uri.startswith("sqlite"):
        options["connect_args"] = {"timeout": busy_timeout, "check_same_thread": False}
    return options


class BaseConfig:
    """Base configuration shared across environments.

    Attributes
    ----------
    SQLALCHEMY_DATABASE_URI: str
        Database connection string consumed by SQLAlchemy.
    SQLALCHEMY_ENGINE_OPTIONS: dict
        Engine keyword arguments derived from the URI.
    SQLALCHEMY_ECHO: bool
        When ``True`` SQLAlchemy logs SQL statements for debugging.
    LOG_LEVEL: str
        Root logging verbosity (``INFO`` by default).
    HARNESS_WORKERS: int
        Number of concurrent workers for ``flask harness run``.
    HARNESS_ROWS: int
        Rows inserted per entity type by each worker.
    HARNESS_THREADS: int | None
        Thread pool size; ``None`` means one thread per worker.
    HARNESS_PROBE_ID: int
        Id looked up in every table during verification.

    Notes
    -----
    Values are primarily sourced from environment variables, enabling
    configuration without code changes.
    """

    # DB
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", "sqlite:///./harness.db")
    SQLITE_BUSY_TIMEOUT = float(os.getenv("SQLITE_BUSY_TIMEOUT", "30"))
    SQLALCHEMY_ENGINE_OPTIONS = engine_options(
        SQLALCHEMY_DATABASE_URI, busy_timeout=SQLITE_BUSY_TIMEOUT
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ECHO = env_bool("SQLALCHEMY_ECHO", False)

    # Logging
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # Harness run defaults
    HARNESS_WORKERS = env_int("HARNESS_WORKERS", 300)
    HARNESS_ROWS = env_int("HARNESS_ROWS", 10)
    HARNESS_THREADS = env_int("HARNESS_THREADS", None)
    HARNESS_PROBE_ID = env_int("HARNESS_PROBE_ID", 1)

    DEBUG = False
    TESTING = False


class DevelopmentConfig(BaseConfig):
    """Configuration tailored for local runs against a developer database."""

    DEBUG = env_bool("FLASK_DEBUG", True)
    SQLALCHEMY_ECHO = env_bool("SQLALCHEMY_ECHO", False)


class TestingConfig(BaseConfig):
    """Configuration for automated test runs.

    Notes
    -----
    - Forces ``TESTING`` mode.
    - Uses a file-backed SQLite database unless ``TEST_DATABASE_URL`` is set;
      workers commit on separate connections, so an in-memory database would
      not be shared between them.
    - Keeps the worker count small by default.
    """

    TESTING = True
    DEBUG = False
    SQLALCHEMY_DATABASE_URI = os.getenv("TEST_DATABASE_URL", "sqlite:///./harness-test.db")
    SQLALCHEMY_ENGINE_OPTIONS = engine_options(
        SQLALCHEMY_DATABASE_URI, busy_timeout=BaseConfig.SQLITE_BUSY_TIMEOUT
    )
    SQLALCHEMY_ECHO = env_bool("SQLALCHEMY_ECHO", False)
    HARNESS_WORKERS = 3
    HARNESS_ROWS = 2


class ProductionConfig(BaseConfig):
    """Configuration defaults for runs against a shared database.

    Notes
    -----
    Keeps debug and SQL echoing disabled.
    """

    DEBUG = False
    SQLALCHEMY_ECHO = False


# Map names -> classes (simple, explicit)
CONFIG_MAP: Mapping[str, type[BaseConfig]] = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
}


def get_config() -> type[BaseConfig]:
    """Return the configuration class inferred from ``APP_ENV``.

    Returns
    -------
    type[BaseConfig]
        Class to pass to :meth:`flask.Config.from_object`.

    Notes
    -----
    Falls back to :class:`DevelopmentConfig` when ``APP_ENV`` is unset or
    unknown.
    """
    name = os.getenv(ENV_VAR, "development").strip().lower()
    return CONFIG_MAP.get(name, DevelopmentConfig)
