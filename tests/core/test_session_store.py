# tests/core/test_session_store.py
"""
Tests for the session store: sliding expiry, revocation and the sweep.
"""
from datetime import timedelta

import pytest

from contracthub.core.exceptions import AuthError, AuthFailure
from contracthub.core.security.session_security import SessionStore


@pytest.fixture
def store(datetime_clock):
    return SessionStore(
        session_duration=timedelta(hours=24),
        inactivity_timeout=timedelta(minutes=30),
        clock=datetime_clock
    )


class TestSessionStore:

    async def test_create_session_returns_random_hex_token(self, store):
        first = await store.create_session("user-1")
        second = await store.create_session("user-1")

        assert len(first) == 64
        int(first, 16)
        assert first != second

    async def test_create_session_sets_expiry(self, store, datetime_clock):
        token = await store.create_session("user-1", user_agent="pytest", client_address="10.0.0.1")
        session = await store.get(token)

        assert session.user_id == "user-1"
        assert session.expires_at == datetime_clock.now + timedelta(hours=24)
        assert session.user_agent == "pytest"
        assert session.client_address == "10.0.0.1"

    async def test_validate_unknown_token_is_unauthenticated(self, store):
        with pytest.raises(AuthError) as exc_info:
            await store.validate("f" * 64)

        assert exc_info.value.kind == AuthFailure.UNAUTHENTICATED
        assert exc_info.value.status_code == 401

    async def test_validate_slides_expiry_forward(self, store, datetime_clock):
        token = await store.create_session("user-1")
        previous = (await store.get(token)).expires_at

        for _ in range(3):
            datetime_clock.advance(10 * 60)
            session = await store.validate(token)
            assert session.expires_at > previous
            assert session.expires_at == datetime_clock.now + timedelta(hours=24)
            assert session.last_activity == datetime_clock.now
            previous = session.expires_at

    async def test_validate_expired_session_removes_it(self, datetime_clock):
        store = SessionStore(
            session_duration=timedelta(minutes=5),
            inactivity_timeout=timedelta(hours=1),
            clock=datetime_clock
        )
        token = await store.create_session("user-1")

        datetime_clock.advance(5 * 60)

        with pytest.raises(AuthError) as exc_info:
            await store.validate(token)

        assert exc_info.value.kind == AuthFailure.EXPIRED
        assert await store.get(token) is None

    async def test_revoke_is_idempotent(self, store):
        token = await store.create_session("user-1")

        await store.revoke(token)
        await store.revoke(token)
        await store.revoke("never-issued")

        with pytest.raises(AuthError):
            await store.validate(token)

    async def test_sweep_removes_idle_session_before_expiry(self, store, datetime_clock):
        idle = await store.create_session("user-1")
        active = await store.create_session("user-2")

        datetime_clock.advance(20 * 60)
        await store.validate(active)
        datetime_clock.advance(15 * 60)

        removed = await store.sweep()

        assert removed == 1
        assert await store.get(idle) is None
        assert await store.get(active) is not None

    async def test_sweep_removes_expired_sessions(self, datetime_clock):
        store = SessionStore(
            session_duration=timedelta(minutes=10),
            inactivity_timeout=timedelta(hours=1),
            clock=datetime_clock
        )
        token = await store.create_session("user-1")

        datetime_clock.advance(11 * 60)

        assert await store.sweep() == 1
        assert await store.get(token) is None

    async def test_metrics(self, store):
        token = await store.create_session("user-1")
        await store.revoke(token)
        with pytest.raises(AuthError):
            await store.validate(token)

        metrics = await store.get_metrics()

        assert metrics["active_sessions"] == 0
        assert metrics["total_created"] == 1
        assert metrics["validation_failures"] == 1
