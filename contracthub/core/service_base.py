# contracthub/core/service_base.py
"""
Base class for the clients ContractHub talks to: OpenAI (contract drafting),
Google (sign-in) and Redis (shared session and rate-limit state).

Clients are created on first use, never at import or startup, so the API
boots without any of them configured; a missing key only fails the request
that needs it. Creation runs under a lock because concurrent requests can
all hit the first use at once.
"""
from abc import ABC, abstractmethod
from typing import Optional, Dict, Any, TypeVar, Generic
import asyncio
import logging

from contracthub.core.exceptions import ServiceError, ConfigurationError

ConfigType = TypeVar('ConfigType')


class ServiceConfig:
    """Base configuration class for services"""
    pass


class BaseService(ABC, Generic[ConfigType]):

    def __init__(
        self,
        config: Optional[ConfigType] = None,
        logger: Optional[logging.Logger] = None
    ):
        self.config = config
        self.logger = logger or logging.getLogger(self.__class__.__name__)
        self.service_name = self.__class__.__name__

        self._client = None
        self._initialized = False
        self._init_lock = asyncio.Lock()
        self._init_failures = 0

    @abstractmethod
    async def _initialize_client(self) -> Any:
        """Create the underlying client; config has already been validated"""

    @abstractmethod
    async def health_check(self) -> Dict[str, Any]:
        """
        Returns:
            Dict with ``healthy`` (bool), ``status`` (str) and optional ``details``
        """

    @property
    def is_configured(self) -> bool:
        """Whether the settings this client needs are present"""
        return self.config is not None

    def _validate_config(self) -> None:
        """
        Raises:
            ConfigurationError: the client cannot be created from this config
        """
        if self.config is None:
            raise ConfigurationError(f"{self.service_name} has no configuration", component=self.service_name)

    async def initialize(self) -> None:
        """
        Create the client once. Concurrent callers wait for the first one.

        Raises:
            ConfigurationError: settings are missing or invalid
            ServiceError: the client could not be created
        """
        async with self._init_lock:
            if self._initialized:
                return

            try:
                self._validate_config()
                self._client = await self._initialize_client()
            except ConfigurationError:
                self._init_failures += 1
                self.logger.warning(f"⚙️ {self.service_name} is not configured")
                raise
            except ServiceError:
                self._init_failures += 1
                raise
            except Exception as e:
                self._init_failures += 1
                self.logger.error(f"❌ Failed to initialize {self.service_name}", exc_info=True)
                raise ServiceError(
                    message=f"Failed to initialize {self.service_name}",
                    service_name=self.service_name,
                    details={'error_type': type(e).__name__}
                ) from e

            self._initialized = True
            self.logger.info(f"🔌 {self.service_name} ready")

    async def ensure_initialized(self) -> None:
        if not self._initialized:
            await self.initialize()

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    @property
    def client(self) -> Any:
        if not self._initialized or self._client is None:
            raise ServiceError(
                message=f"{self.service_name} is not initialized",
                service_name=self.service_name
            )
        return self._client

    def status(self) -> Dict[str, Any]:
        """Configuration state for /health; never touches the network"""
        return {
            "configured": self.is_configured,
            "connected": self._initialized,
        }

    async def shutdown(self) -> None:
        """Release the client; errors are logged, never raised"""
        if not self._initialized:
            return

        try:
            await self._cleanup()
        except Exception:
            self.logger.error(f"Error during {self.service_name} shutdown", exc_info=True)
        finally:
            self._client = None
            self._initialized = False
            self.logger.info(f"🔌 {self.service_name} closed")

    async def _cleanup(self) -> None:
        pass

    def get_metrics(self) -> Dict[str, Any]:
        return {
            "service_name": self.service_name,
            "initialized": self._initialized,
            "init_failures": self._init_failures,
        }
