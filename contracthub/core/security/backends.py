"""
Keyed record storage for security state.

Session and rate-limit bookkeeping go through a ``RecordBackend`` so the
process-local dictionary can be swapped for Redis in multi-process
deployments without touching the stores built on top of it.
"""

from abc import ABC, abstractmethod
from typing import Callable, Dict, Generic, List, Optional, Type, TypeVar
import logging

from pydantic import BaseModel, ValidationError as PydanticValidationError

from contracthub.services.redis_service import RedisService

logger = logging.getLogger(__name__)

RecordType = TypeVar("RecordType", bound=BaseModel)


class RecordBackend(ABC, Generic[RecordType]):
    """get/set/delete/sweep over pydantic records keyed by string"""

    @abstractmethod
    async def get(self, key: str) -> Optional[RecordType]:
        ...

    @abstractmethod
    async def set(self, key: str, record: RecordType, ttl: Optional[int] = None) -> None:
        ...

    @abstractmethod
    async def delete(self, key: str) -> None:
        ...

    @abstractmethod
    async def sweep(self, is_stale: Callable[[RecordType], bool]) -> int:
        """Remove every record for which ``is_stale`` is true; return the count"""
        ...

    @abstractmethod
    async def count(self) -> int:
        ...


class InMemoryBackend(RecordBackend[RecordType]):
    """Process-local dictionary backend"""

    def __init__(self):
        self._records: Dict[str, RecordType] = {}

    async def get(self, key: str) -> Optional[RecordType]:
        return self._records.get(key)

    async def set(self, key: str, record: RecordType, ttl: Optional[int] = None) -> None:
        self._records[key] = record

    async def delete(self, key: str) -> None:
        self._records.pop(key, None)

    async def sweep(self, is_stale: Callable[[RecordType], bool]) -> int:
        stale: List[str] = [key for key, record in self._records.items() if is_stale(record)]
        for key in stale:
            del self._records[key]
        return len(stale)

    async def count(self) -> int:
        return len(self._records)


class RedisBackend(RecordBackend[RecordType]):
    """
    Redis-backed records stored as JSON under ``{prefix}{key}``.

    TTLs passed to ``set`` are applied as Redis expirations, so Redis
    also drops abandoned records on its own.
    """

    def __init__(self, redis_service: RedisService, model: Type[RecordType], prefix: str):
        self.redis = redis_service
        self.model = model
        self.prefix = prefix

    def _key(self, key: str) -> str:
        return f"{self.prefix}{key}"

    async def get(self, key: str) -> Optional[RecordType]:
        raw = await self.redis.get(self._key(key), deserialize_json=False)
        if raw is None:
            return None
        try:
            return self.model.model_validate_json(raw)
        except PydanticValidationError:
            logger.warning(f"Discarding unreadable record {self._key(key)[:24]}...")
            await self.redis.delete(self._key(key))
            return None

    async def set(self, key: str, record: RecordType, ttl: Optional[int] = None) -> None:
        await self.redis.set(self._key(key), record.model_dump_json(), ttl=ttl, serialize_json=False)

    async def delete(self, key: str) -> None:
        await self.redis.delete(self._key(key))

    async def sweep(self, is_stale: Callable[[RecordType], bool]) -> int:
        removed = 0
        for full_key in await self.redis.keys(f"{self.prefix}*"):
            record = await self.get(full_key[len(self.prefix):])
            if record is not None and is_stale(record):
                await self.redis.delete(full_key)
                removed += 1
        return removed

    async def count(self) -> int:
        return len(await self.redis.keys(f"{self.prefix}*"))
