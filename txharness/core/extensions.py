"""Global Flask extension instances and initialization helpers."""

from __future__ import annotations

from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import MetaData

# Global naming convention for all constraints
convention = {
    "ix": "ix_%(table_name)s_%(column_0_name)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

metadata = MetaData(naming_convention=convention)

# Global singleton (import-safe). Repositories execute statements directly; no autoflush.
db: SQLAlchemy = SQLAlchemy(session_options={"autoflush": False}, metadata=metadata)


def init_app(app: Flask) -> None:
    """Bind the SQLAlchemy extension to ``app``.

    Parameters
    ----------
    app: flask.Flask
        Application used to bind extension instances. This call imports the
        :mod:`txharness.models` package so the ``todos`` and ``users`` tables
        are registered on the shared metadata.
    """
    db.init_app(app)

    # Ensure models are imported so create_all sees the tables
    from txharness import models as _models  # noqa: F401
