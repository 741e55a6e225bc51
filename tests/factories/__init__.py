"""Factory Boy helpers building harness entities."""

from __future__ import annotations

import factory


class BaseFactory(factory.Factory):
    """Base class for entity factories.

    Entities are only built here: repositories under test perform the
    inserts, so factories never touch a session.
    """

    class Meta:
        abstract = True
