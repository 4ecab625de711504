# tests/conftest.py
"""
Shared fixtures: controllable clocks, in-memory repositories, users and
API test clients.
"""
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from contracthub.core.config import Settings
from contracthub.main import create_app
from contracthub.models.user import User, default_payment
from contracthub.services.storage import Repositories


class FakeClock:
    """Clock returning a fixed instant until advanced"""

    def __init__(self, start):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds: float):
        if isinstance(self.now, datetime):
            self.now = self.now + timedelta(seconds=seconds)
        else:
            self.now = self.now + seconds


@pytest.fixture
def datetime_clock():
    return FakeClock(datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def epoch_clock():
    return FakeClock(1_700_000_000.0)


@pytest.fixture
def repositories():
    return Repositories()


def make_user(email: str = "alice@example.com", full_name: str = "Alice Example") -> User:
    return User(
        username=email.split("@")[0],
        email=email,
        full_name=full_name,
        payment=default_payment(email)
    )


@pytest.fixture
async def alice(repositories):
    user = make_user()
    await repositories.users.add(user)
    return user


@pytest.fixture
async def bob(repositories):
    user = make_user("bob@example.com", "Bob Example")
    await repositories.users.add(user)
    return user


@pytest.fixture
def user_factory(repositories):
    async def create(email: str, full_name: str = "Test User") -> User:
        user = make_user(email, full_name)
        await repositories.users.add(user)
        return user
    return create


def api_settings(**overrides) -> Settings:
    values = dict(
        ENVIRONMENT="test",
        OPENAI_API_KEY="test-key",
        GOOGLE_CLIENT_ID="client-id",
        GOOGLE_CLIENT_SECRET="client-secret",
        GOOGLE_REDIRECT_URI="http://testserver/auth/google/callback",
        CLIENT_URL="http://localhost:5173",
    )
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def app():
    return create_app(api_settings())


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def app_factory():
    def build(**overrides):
        return create_app(api_settings(**overrides))
    return build
