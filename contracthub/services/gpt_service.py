# contracthub/services/gpt_service.py
"""
GPT Service for ContractHub.

Async wrapper around the OpenAI chat API used to draft smart contracts.
Prompts live in ``contracthub.prompts``; this module only talks to the API.
"""
import os
import time
from typing import Optional, Dict, Any
from dataclasses import dataclass
import logging
from openai import AsyncOpenAI
from openai.types.chat import ChatCompletion

from contracthub.core.service_base import BaseService, ServiceConfig
from contracthub.core.exceptions import (
    GPTServiceError,
    ConfigurationError,
    ValidationError
)

logger = logging.getLogger(__name__)


@dataclass
class GPTConfig(ServiceConfig):
    """Configuration for GPT Service"""
    api_key: Optional[str] = None
    model: str = "gpt-4o-mini"
    max_tokens: Optional[int] = None
    temperature: float = 0.2
    timeout: int = 60
    max_retries: int = 0


class GPTService(BaseService[GPTConfig]):
    """
    Async-only GPT service for contract drafting.

    Failed calls surface as GPTServiceError (503); nothing is retried.
    """

    def __init__(self, config: Optional[GPTConfig] = None):
        if config is None:
            config = GPTConfig(
                api_key=os.getenv("OPENAI_API_KEY") or os.getenv("OPENAI_APIKEY"),
                model=os.getenv("GPT_MODEL", "gpt-4o-mini"),
                temperature=float(os.getenv("GPT_TEMPERATURE", "0.2"))
            )

        super().__init__(config, logger)

    @property
    def is_configured(self) -> bool:
        return bool(self.config.api_key)

    def _validate_config(self) -> None:
        super()._validate_config()

        if not self.config.api_key:
            raise ConfigurationError(
                "OpenAI API key is required. Set OPENAI_API_KEY environment variable.",
                component="api_key"
            )

        if self.config.temperature < 0 or self.config.temperature > 2:
            raise ConfigurationError(
                "Temperature must be between 0 and 2",
                component="temperature"
            )

    async def _initialize_client(self) -> AsyncOpenAI:
        return AsyncOpenAI(
            api_key=self.config.api_key,
            timeout=self.config.timeout,
            max_retries=self.config.max_retries
        )

    async def complete(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None
    ) -> str:
        """
        Generate a completion for the given prompt.

        Args:
            prompt: The user prompt
            system_prompt: Optional system prompt to set context
            temperature: Override default temperature
            max_tokens: Override default max tokens

        Returns:
            Generated text completion

        Raises:
            GPTServiceError: If generation fails
            ValidationError: If the prompt is empty
        """
        await self.ensure_initialized()

        if not prompt or not prompt.strip():
            raise ValidationError("Prompt cannot be empty", field="prompt")

        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        params = {
            "model": self.config.model,
            "messages": messages,
            "temperature": self.config.temperature if temperature is None else temperature,
        }

        if max_tokens or self.config.max_tokens:
            params["max_tokens"] = max_tokens or self.config.max_tokens

        try:
            self.logger.debug(f"Generating completion with model {params['model']}")

            response: ChatCompletion = await self.client.chat.completions.create(**params)

            if not response.choices:
                raise GPTServiceError("No completion choices returned from API", model=self.config.model)

            content = response.choices[0].message.content

            if not content:
                raise GPTServiceError("Empty completion returned from API", model=self.config.model)

            self.logger.debug(f"Generated completion: {len(content)} characters")
            return content.strip()

        except (GPTServiceError, ValidationError):
            raise
        except Exception as e:
            self.logger.error(f"Failed to generate completion: {e}", exc_info=True)
            raise GPTServiceError(
                "Failed to generate completion",
                model=self.config.model,
                details={"error_type": type(e).__name__}
            ) from e

    async def health_check(self) -> Dict[str, Any]:
        try:
            start_time = time.time()

            await self.complete("Respond with OK", temperature=0, max_tokens=5)

            response_time_ms = int((time.time() - start_time) * 1000)

            return {
                "healthy": True,
                "status": "connected",
                "details": {
                    "model": self.config.model,
                    "response_time_ms": response_time_ms,
                    "api_key_set": bool(self.config.api_key)
                }
            }

        except Exception as e:
            return {
                "healthy": False,
                "status": "error",
                "details": {
                    "error": str(e),
                    "model": self.config.model
                }
            }

    def get_metrics(self) -> Dict[str, Any]:
        metrics = super().get_metrics()
        metrics.update({
            "model": self.config.model,
            "temperature": self.config.temperature,
            "timeout": self.config.timeout
        })
        return metrics
