from txharness.models.todo import Todo
from txharness.models.user import User

__all__ = [
    "Todo",
    "User",
]
