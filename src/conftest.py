"""
This conftest.py provides the user fixtures shared by all apps.
"""

import secrets
import string
import typing as t

import faker
import pytest
from django.contrib.auth import get_user_model
from django.contrib.auth.models import AbstractUser

User = get_user_model()


class UserFactory:
    """Factory for creating users for testing."""

    fake = faker.Faker()

    def create_user(self, **kwargs: t.Any) -> AbstractUser:
        username = kwargs.pop("username", "".join(secrets.choice(string.ascii_lowercase) for _ in range(8)))
        email = kwargs.pop("email", f"{username}@user.test")
        password = kwargs.pop("password", "password")
        first_name = kwargs.pop("first_name", self.fake.first_name())
        last_name = kwargs.pop("last_name", self.fake.last_name())
        return User.objects.create_user(  # type: ignore[no-any-return]
            username=username,
            email=email,
            password=password,
            first_name=first_name,
            last_name=last_name,
            **kwargs,
        )

    def __call__(self, **kwargs: t.Any) -> AbstractUser:
        return self.create_user(**kwargs)


@pytest.fixture
def user_factory() -> UserFactory:
    return UserFactory()


@pytest.fixture
def user(user_factory: UserFactory) -> AbstractUser:
    """A proposer."""
    return user_factory()


@pytest.fixture
def other_user(user_factory: UserFactory) -> AbstractUser:
    """Another proposer, with no access to the first one's questionaries."""
    return user_factory()


@pytest.fixture
def staff_user(user_factory: UserFactory) -> AbstractUser:
    """A user office officer."""
    return user_factory(is_staff=True)
