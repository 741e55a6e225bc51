"""Expose the application factory at package level.

Provide convenient access to :func:`txharness.factory.create_app` so callers can
``from txharness import create_app`` and ``flask --app txharness`` finds it.
"""

from __future__ import annotations

from .factory import create_app

__all__ = ["create_app"]
