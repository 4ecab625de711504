"""
Fixed-window rate limiter with a cooldown penalty, keyed by client address.
"""

from dataclasses import dataclass
from typing import Callable, Optional
import asyncio
import logging
import math
import time

from pydantic import BaseModel

from contracthub.core.exceptions import RateLimitError
from contracthub.core.rate_limit_config import get_rate_limit_message
from contracthub.core.security.backends import InMemoryBackend, RecordBackend

logger = logging.getLogger(__name__)


class RateLimitRecord(BaseModel):
    count: int = 0
    window_start: float
    blocked_until: Optional[float] = None


@dataclass(frozen=True)
class RateLimitPolicy:
    """Request ceiling per window and the cooldown applied on breach"""
    max_requests: int = 60
    window_seconds: float = 60.0
    block_seconds: float = 300.0


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    remaining: int
    retry_after: int = 0


class FixedWindowRateLimiter:
    """
    Per-client request counter.

    A record counts requests from ``window_start``. Once the count passes
    the ceiling the client is blocked for ``block_seconds``; when the block
    ends the record is replaced on the next request, so counting restarts
    at 1.
    """

    def __init__(
        self,
        policy: Optional[RateLimitPolicy] = None,
        backend: Optional[RecordBackend[RateLimitRecord]] = None,
        clock: Callable[[], float] = time.time
    ):
        self.policy = policy or RateLimitPolicy()
        self._backend: RecordBackend[RateLimitRecord] = backend or InMemoryBackend()
        self._clock = clock
        self._lock = asyncio.Lock()
        self.violations = 0

    @property
    def _ttl(self) -> int:
        return int(max(self.policy.window_seconds, self.policy.block_seconds)) + 1

    async def hit(self, client_address: str) -> RateLimitDecision:
        """Count one request from ``client_address`` and decide on it"""
        async with self._lock:
            now = self._clock()
            record = await self._backend.get(client_address) or RateLimitRecord(window_start=now)

            if record.blocked_until is not None and now < record.blocked_until:
                return RateLimitDecision(
                    allowed=False,
                    remaining=0,
                    retry_after=math.ceil(record.blocked_until - now)
                )

            # A served block always starts a fresh window
            if record.blocked_until is not None or now - record.window_start > self.policy.window_seconds:
                record = RateLimitRecord(window_start=now)

            record.count += 1

            if record.count > self.policy.max_requests:
                record.blocked_until = now + self.policy.block_seconds
                await self._backend.set(client_address, record, ttl=self._ttl)
                self.violations += 1
                logger.warning(f"🚦 Rate limit exceeded by {client_address}, blocked for {self.policy.block_seconds:.0f}s")
                return RateLimitDecision(
                    allowed=False,
                    remaining=0,
                    retry_after=math.ceil(self.policy.block_seconds)
                )

            await self._backend.set(client_address, record, ttl=self._ttl)
            return RateLimitDecision(allowed=True, remaining=self.policy.max_requests - record.count)

    async def check(self, client_address: str, endpoint: str = "default") -> RateLimitDecision:
        """Like :meth:`hit` but raises RateLimitError on rejection"""
        decision = await self.hit(client_address)
        if not decision.allowed:
            raise RateLimitError(get_rate_limit_message(endpoint), retry_after=decision.retry_after)
        return decision

    async def sweep(self) -> int:
        """Forget clients whose window has elapsed and who are not blocked"""
        async with self._lock:
            now = self._clock()
            return await self._backend.sweep(
                lambda r: (r.blocked_until is None or r.blocked_until <= now)
                and now - r.window_start > self.policy.window_seconds
            )
