"""
Session security module.

Issues, validates, refreshes and revokes opaque session tokens:
- Sliding expiration on every validated use
- Separate inactivity timeout enforced by the periodic sweep
- Pluggable record backend (memory or Redis)
"""

from typing import Callable, Dict, Optional
from datetime import datetime, timedelta, timezone
import asyncio
import logging

from pydantic import BaseModel

from contracthub.core.exceptions import AuthError, AuthFailure
from contracthub.core.security.backends import InMemoryBackend, RecordBackend
from contracthub.core.security.credentials import generate_secure_token

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Session(BaseModel):
    """
    Server-held record binding a token to a user.

    The token doubles as the record id; it is never derived from user data.
    """
    id: str
    user_id: str
    created_at: datetime
    expires_at: datetime
    last_activity: datetime
    user_agent: Optional[str] = None
    client_address: Optional[str] = None

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at

    def is_idle(self, now: datetime, inactivity_timeout: timedelta) -> bool:
        return self.last_activity + inactivity_timeout < now


class SessionStore:
    """
    Token-based session store.

    Design decisions:
    1. Fail-secure - unknown tokens are never auto-created
    2. Validation raises AuthError, the auth dependency maps it to 401
    3. One asyncio.Lock guards request handlers and the sweep alike
    """

    def __init__(
        self,
        backend: Optional[RecordBackend[Session]] = None,
        session_duration: timedelta = timedelta(hours=24),
        inactivity_timeout: timedelta = timedelta(minutes=30),
        clock: Clock = utc_now
    ):
        self._backend: RecordBackend[Session] = backend or InMemoryBackend()
        self.session_duration = session_duration
        self.inactivity_timeout = inactivity_timeout
        self._clock = clock
        self._lock = asyncio.Lock()

        # Metrics for monitoring
        self._creation_count = 0
        self._validation_failures = 0
        self._swept_count = 0

    @property
    def _ttl(self) -> int:
        return int(self.session_duration.total_seconds())

    async def create_session(
        self,
        user_id: str,
        user_agent: Optional[str] = None,
        client_address: Optional[str] = None
    ) -> str:
        """
        Create a session for ``user_id`` and return its token.

        The token is 32 random bytes, hex encoded.
        """
        now = self._clock()
        session = Session(
            id=generate_secure_token(32),
            user_id=user_id,
            created_at=now,
            expires_at=now + self.session_duration,
            last_activity=now,
            user_agent=user_agent,
            client_address=client_address
        )

        async with self._lock:
            await self._backend.set(session.id, session, ttl=self._ttl)

        self._creation_count += 1
        logger.info(f"🔐 Created session {session.id[:8]}... for user {user_id[:8]}...")
        return session.id

    async def validate(self, session_id: str) -> Session:
        """
        Validate a token and slide its expiry forward.

        Raises:
            AuthError: UNAUTHENTICATED for unknown tokens, EXPIRED when the
                absolute expiry has passed (the record is removed)
        """
        async with self._lock:
            session = await self._backend.get(session_id)
            if session is None:
                self._validation_failures += 1
                logger.debug(f"Session {session_id[:8]}... not found")
                raise AuthError("Invalid session", kind=AuthFailure.UNAUTHENTICATED)

            now = self._clock()
            if session.is_expired(now):
                await self._backend.delete(session_id)
                self._validation_failures += 1
                logger.info(f"⏰ Session {session_id[:8]}... expired")
                raise AuthError("Session expired", kind=AuthFailure.EXPIRED)

            session.last_activity = now
            session.expires_at = now + self.session_duration
            await self._backend.set(session_id, session, ttl=self._ttl)

        return session

    async def get(self, session_id: str) -> Optional[Session]:
        """Read a session without refreshing it"""
        return await self._backend.get(session_id)

    async def revoke(self, session_id: str) -> None:
        """Remove a session; unknown ids are ignored"""
        async with self._lock:
            await self._backend.delete(session_id)
        logger.debug(f"🗑️ Revoked session {session_id[:8]}...")

    async def sweep(self) -> int:
        """Drop sessions that are expired or idle past the inactivity timeout"""
        async with self._lock:
            now = self._clock()
            removed = await self._backend.sweep(
                lambda s: s.expires_at < now or s.is_idle(now, self.inactivity_timeout)
            )

        self._swept_count += removed
        if removed:
            logger.info(f"🧹 Cleaned up {removed} expired sessions")
        return removed

    async def get_metrics(self) -> Dict[str, int]:
        return {
            "active_sessions": await self._backend.count(),
            "total_created": self._creation_count,
            "validation_failures": self._validation_failures,
            "swept": self._swept_count
        }
