"""Repository package exposing transaction-scoped access for every entity type."""

from __future__ import annotations

from txharness.repositories import base as base_module
from txharness.repositories.base import BaseRepository, parse_sort_tokens
from txharness.repositories.todo import TodoRepository
from txharness.repositories.user import UserRepository

# Re-export expected by tests
apply_sorting = base_module._apply_sorting

__all__ = [
    # Base
    "BaseRepository",
    "parse_sort_tokens",
    "apply_sorting",
    # Domain
    "TodoRepository",
    "UserRepository",
]
