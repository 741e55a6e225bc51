"""Factory Boy definition for :class:`txharness.models.user.User`."""

from __future__ import annotations

import factory

from tests.factories import BaseFactory
from txharness.models.user import User


class UserFactory(BaseFactory):
    """Build transient :class:`txharness.models.user.User` instances."""

    class Meta:
        model = User

    id = factory.Sequence(lambda n: n + 1)
    name = factory.Faker("name")
