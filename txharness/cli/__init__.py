"""Command-line interface registration for the Flask application."""

from __future__ import annotations

from flask import Flask

from .harness import harness_cli


def init_app(app: Flask) -> None:
    """Register the ``harness`` command group on the app's CLI.

    Parameters
    ----------
    app:
        Flask application instance whose CLI registry receives the group.
    """
    app.cli.add_command(harness_cli)
