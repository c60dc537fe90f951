"""
User test factory.

Generates realistic document owners for authentication and ownership tests.
"""

import factory
from faker import Faker

from docsign.api.deps import get_password_hash
from docsign.models.user import User

fake = Faker()

TEST_PASSWORD = "testpassword123"  # noqa: S105
_TEST_PASSWORD_HASH = get_password_hash(TEST_PASSWORD)


class UserFactory(factory.Factory):
    """
    Factory for generating User instances.

    Usage:
        user = UserFactory()
        user = UserFactory(email="custom@example.com")
    """

    class Meta:
        model = User

    email = factory.LazyFunction(lambda: fake.unique.email().lower())
    name = factory.LazyFunction(fake.name)
    hashed_password = _TEST_PASSWORD_HASH
    is_active = True


class InactiveUserFactory(UserFactory):
    """Factory for disabled accounts."""

    is_active = False
