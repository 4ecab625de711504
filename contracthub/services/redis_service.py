# contracthub/services/redis_service.py
"""
Redis Service for ContractHub.

Async wrapper around Redis used as the shared backend for sessions and
rate-limit counters when the API runs as several processes:
- Configuration from REDIS_URL
- Automatic JSON serialization/deserialization
- TTL support
- Health checks
"""
import os
import json
import redis.asyncio as redis
from typing import Optional, Dict, Any, List
from dataclasses import dataclass
import logging

from contracthub.core.service_base import BaseService, ServiceConfig
from contracthub.core.exceptions import RedisServiceError

logger = logging.getLogger(__name__)


@dataclass
class RedisConfig(ServiceConfig):
    """Configuration for Redis Service"""
    url: Optional[str] = None
    decode_responses: bool = True
    socket_timeout: float = 5.0
    max_connections: int = 10
    retry_on_timeout: bool = True
    health_check_interval: int = 30


class RedisService(BaseService[RedisConfig]):
    """
    Async-only Redis service.

    Read operations degrade to defaults on connection problems; writes
    raise RedisServiceError so lost session state is never silent.
    """

    def __init__(self, config: Optional[RedisConfig] = None):
        if config is None:
            config = RedisConfig(url=os.environ.get("REDIS_URL"))

        super().__init__(config, logger)

    @property
    def is_configured(self) -> bool:
        return bool(self.config.url)

    def _validate_config(self) -> None:
        super()._validate_config()

        if not self.config.url:
            self.logger.warning("No Redis URL found. Set REDIS_URL to enable the Redis backend.")

    async def _initialize_client(self) -> Optional[redis.Redis]:
        if not self.config.url:
            self.logger.warning("Redis disabled - no URL configured")
            return None

        client = redis.from_url(
            self.config.url,
            decode_responses=self.config.decode_responses,
            socket_timeout=self.config.socket_timeout,
            max_connections=self.config.max_connections,
            retry_on_timeout=self.config.retry_on_timeout,
            health_check_interval=self.config.health_check_interval
        )

        try:
            await client.ping()
        except Exception as e:
            raise RedisServiceError(f"Failed to connect to Redis: {e}", operation="ping") from e

        self.logger.info("Redis connection successful")
        return client

    async def get(
        self,
        key: str,
        default: Any = None,
        deserialize_json: bool = True
    ) -> Any:
        """
        Get a value from Redis.

        Args:
            key: The key to retrieve
            default: Default value if key doesn't exist
            deserialize_json: Whether to deserialize JSON strings
        """
        await self.ensure_initialized()
        if not self._client:
            return default

        try:
            value = await self._client.get(key)
        except Exception as e:
            self.logger.warning(f"Redis get failed for key '{key[:24]}': {e}")
            return default

        if value is None:
            return default

        if deserialize_json and isinstance(value, str):
            try:
                return json.loads(value)
            except json.JSONDecodeError:
                pass

        return value

    async def set(
        self,
        key: str,
        value: Any,
        ttl: Optional[int] = None,
        serialize_json: bool = True
    ) -> None:
        """
        Set a value in Redis.

        Args:
            key: The key to set
            value: The value to store
            ttl: Time to live in seconds
            serialize_json: Whether to serialize non-string values as JSON

        Raises:
            RedisServiceError: If the write fails or Redis is not configured
        """
        await self.ensure_initialized()
        if not self._client:
            raise RedisServiceError("Redis is not configured", key=key, operation="set")

        if serialize_json and not isinstance(value, (str, bytes)):
            value = json.dumps(value)

        try:
            if ttl:
                await self._client.setex(key, ttl, value)
            else:
                await self._client.set(key, value)
        except Exception as e:
            self.logger.error(f"Redis set failed for key '{key[:24]}': {e}")
            raise RedisServiceError(f"Redis set failed: {e}", key=key, operation="set") from e

    async def delete(self, *keys: str) -> int:
        """Delete keys, returning how many existed"""
        await self.ensure_initialized()
        if not self._client or not keys:
            return 0

        try:
            return await self._client.delete(*keys)
        except Exception as e:
            self.logger.error(f"Redis delete failed: {e}")
            raise RedisServiceError(f"Redis delete failed: {e}", operation="delete") from e

    async def keys(self, pattern: str = "*") -> List[str]:
        """Keys matching ``pattern``, collected with SCAN"""
        await self.ensure_initialized()
        if not self._client:
            return []

        try:
            found = [k async for k in self._client.scan_iter(match=pattern)]
        except Exception as e:
            self.logger.warning(f"Redis scan failed: {e}")
            return []
        return [k.decode() if isinstance(k, bytes) else k for k in found]

    async def health_check(self) -> Dict[str, Any]:
        if not self.config.url:
            return {
                "healthy": True,
                "status": "disabled",
                "details": {"message": "Redis not configured"}
            }

        try:
            await self.ensure_initialized()
            await self._client.ping()
            info = await self._client.info()
            return {
                "healthy": True,
                "status": "connected",
                "details": {
                    "redis_version": info.get("redis_version", "unknown"),
                    "connected_clients": info.get("connected_clients", 0),
                }
            }
        except Exception as e:
            return {
                "healthy": False,
                "status": "error",
                "details": {"error": str(e)}
            }

    async def _cleanup(self) -> None:
        if self._client:
            await self._client.aclose()

    def is_connected(self) -> bool:
        return self._client is not None
