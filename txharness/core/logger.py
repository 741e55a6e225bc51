"""Structured logging configuration with run/worker correlation."""

from __future__ import annotations

import json
import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

_run_id: ContextVar[str | None] = ContextVar("harness_run_id", default=None)
_worker: ContextVar[int | None] = ContextVar("harness_worker", default=None)


class JSONFormatter(logging.Formatter):
    """Render log records as JSON objects."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "time": datetime.now(timezone.utc).isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "name": record.name,
            "message": record.getMessage(),
            "run_id": getattr(record, "run_id", None),
            "worker": getattr(record, "worker", None),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        extra_keys = {"entity", "elapsed_ms", "rows"}
        for key in extra_keys:
            if hasattr(record, key):
                payload[key] = getattr(record, key)
        return json.dumps(payload, default=str)


class RunContextFilter(logging.Filter):
    """Ensure ``run_id`` and ``worker`` attributes are present on log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.run_id = _run_id.get()
        record.worker = _worker.get()
        return True


def new_run_id() -> str:
    """Return a fresh correlation identifier for a harness run."""
    return uuid4().hex[:12]


def current_run_id() -> str | None:
    return _run_id.get()


@contextmanager
def log_context(*, run_id: str | None = None, worker: int | None = None) -> Iterator[None]:
    """Bind ``run_id``/``worker`` to log records emitted inside the block.

    Context variables are not inherited by pool threads, so every worker
    enters its own ``log_context`` when it starts.
    """
    run_token = _run_id.set(run_id) if run_id is not None else None
    worker_token = _worker.set(worker) if worker is not None else None
    try:
        yield
    finally:
        if worker_token is not None:
            _worker.reset(worker_token)
        if run_token is not None:
            _run_id.reset(run_token)


def configure_logging(level: str | int = "INFO") -> None:
    """Configure the root logger with JSON-formatted stdout output."""

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter())
    handler.addFilter(RunContextFilter())
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    level_value: int | str = level
    if isinstance(level, str):
        resolved = logging.getLevelName(level.upper())
        level_value = resolved if isinstance(resolved, int) else level.upper()
    root.setLevel(level_value)


__all__ = [
    "JSONFormatter",
    "RunContextFilter",
    "configure_logging",
    "current_run_id",
    "log_context",
    "new_run_id",
]
