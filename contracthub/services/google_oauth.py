# contracthub/services/google_oauth.py
"""
Google OAuth client.

Builds the consent URL, exchanges authorization codes for tokens and reads
the signed-in user's profile. Only the authorization-code flow is used.
"""
from dataclasses import dataclass
from typing import Any, Dict, Optional
from urllib.parse import urlencode
import logging

import httpx
from pydantic import BaseModel

from contracthub.core.exceptions import ConfigurationError, OAuthServiceError
from contracthub.core.service_base import BaseService, ServiceConfig

logger = logging.getLogger(__name__)

AUTH_ENDPOINT = "https://accounts.google.com/o/oauth2/v2/auth"
TOKEN_ENDPOINT = "https://oauth2.googleapis.com/token"
USERINFO_ENDPOINT = "https://openidconnect.googleapis.com/v1/userinfo"
SCOPES = ("openid", "email", "profile")


@dataclass
class GoogleOAuthConfig(ServiceConfig):
    client_id: Optional[str] = None
    client_secret: Optional[str] = None
    redirect_uri: Optional[str] = None
    timeout: float = 10.0


class GoogleProfile(BaseModel):
    email: str
    name: str
    email_verified: bool = False


class GoogleOAuthService(BaseService[GoogleOAuthConfig]):

    def __init__(self, config: Optional[GoogleOAuthConfig] = None):
        super().__init__(config or GoogleOAuthConfig(), logger)

    @property
    def is_configured(self) -> bool:
        return all([self.config.client_id, self.config.client_secret, self.config.redirect_uri])

    def _validate_config(self) -> None:
        super()._validate_config()
        if not self.is_configured:
            raise ConfigurationError(
                "Google OAuth requires GOOGLE_CLIENT_ID, GOOGLE_CLIENT_SECRET and GOOGLE_REDIRECT_URI",
                component="google_oauth"
            )

    async def _initialize_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.config.timeout)

    def authorization_url(self, state: str) -> str:
        """Consent screen URL carrying ``state`` for the callback check"""
        self._validate_config()
        query = urlencode({
            "client_id": self.config.client_id,
            "redirect_uri": self.config.redirect_uri,
            "response_type": "code",
            "scope": " ".join(SCOPES),
            "access_type": "offline",
            "prompt": "select_account",
            "state": state,
        })
        return f"{AUTH_ENDPOINT}?{query}"

    async def exchange_code(self, code: str) -> Dict[str, Any]:
        """
        Trade an authorization code for tokens.

        Raises:
            OAuthServiceError: Google rejected the code or could not be reached
        """
        await self.ensure_initialized()
        try:
            response = await self.client.post(TOKEN_ENDPOINT, data={
                "code": code,
                "client_id": self.config.client_id,
                "client_secret": self.config.client_secret,
                "redirect_uri": self.config.redirect_uri,
                "grant_type": "authorization_code",
            })
            response.raise_for_status()
        except httpx.HTTPError as e:
            self.logger.error(f"Token exchange failed: {e}")
            raise OAuthServiceError("Failed to retrieve tokens from Google", operation="exchange_code") from e

        tokens = response.json()
        if not tokens.get("access_token"):
            raise OAuthServiceError("Failed to retrieve tokens from Google", operation="exchange_code")
        return tokens

    async def fetch_profile(self, access_token: str) -> GoogleProfile:
        await self.ensure_initialized()
        try:
            response = await self.client.get(
                USERINFO_ENDPOINT,
                headers={"Authorization": f"Bearer {access_token}"}
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            self.logger.error(f"Profile request failed: {e}")
            raise OAuthServiceError("Failed to read Google profile", operation="fetch_profile") from e

        data = response.json()
        if not data.get("email") or not data.get("name"):
            raise OAuthServiceError("Invalid user data in Google profile", operation="fetch_profile")
        return GoogleProfile(
            email=data["email"],
            name=data["name"],
            email_verified=bool(data.get("email_verified", False))
        )

    async def authenticate(self, code: str) -> GoogleProfile:
        tokens = await self.exchange_code(code)
        return await self.fetch_profile(tokens["access_token"])

    async def health_check(self) -> Dict[str, Any]:
        return {
            "healthy": self.is_configured,
            "status": "configured" if self.is_configured else "not_configured",
        }

    async def _cleanup(self) -> None:
        if self._client is not None:
            await self._client.aclose()
