"""
Abstract Unit of Work contracts.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any

from txharness.core.errors import UnitOfWorkClosedError


class UnitOfWorkState(str, Enum):
    """Lifecycle of a unit of work. ``COMMITTED`` and ``ABORTED`` are terminal."""

    NEW = "new"
    OPEN = "open"
    COMMITTED = "committed"
    ABORTED = "aborted"


class UnitOfWork(ABC):
    """
    Coordinates a transactional boundary for one worker.

    Responsibilities:
    - Own exactly one session/transaction from begin to its terminal action.
    - Lend that session to repositories while ``OPEN``.
    - Commit explicitly on success; roll back on error or when left uncommitted.
    """

    state: UnitOfWorkState = UnitOfWorkState.NEW

    @property
    @abstractmethod
    def session(self) -> Any: ...

    @abstractmethod
    def __enter__(self) -> UnitOfWork: ...
    @abstractmethod
    def __exit__(self, exc_type, exc, tb) -> None: ...
    @abstractmethod
    def commit(self) -> None: ...
    @abstractmethod
    def rollback(self) -> None: ...

    @property
    def is_open(self) -> bool:
        return self.state is UnitOfWorkState.OPEN

    def ensure_open(self, action: str = "use") -> None:
        """Raise :class:`UnitOfWorkClosedError` unless the unit of work is open."""
        if self.state is not UnitOfWorkState.OPEN:
            raise UnitOfWorkClosedError(state=self.state.value, action=action)
