# contracthub/services/auth_service.py
"""
Auth workflow: password registration and login, Google sign-in, logout.

Every successful sign-in returns the user together with a fresh session
token; cookies and headers are the route layer's concern.
"""
from dataclasses import dataclass
from typing import Optional, Tuple
import logging

from contracthub.core.exceptions import AuthError, AuthFailure, ConflictError
from contracthub.core.security.credentials import hash_password, sanitize_input, verify_password
from contracthub.core.security.session_security import SessionStore
from contracthub.models.user import LoginRequest, RegisterRequest, User, default_payment
from contracthub.services.google_oauth import GoogleOAuthService, GoogleProfile
from contracthub.services.organization_service import protect_payment
from contracthub.services.storage import Repositories, persistence_boundary

logger = logging.getLogger(__name__)


@dataclass
class ClientInfo:
    user_agent: Optional[str] = None
    client_address: Optional[str] = None


class AuthService:

    def __init__(self, repositories: Repositories, sessions: SessionStore, oauth: GoogleOAuthService):
        self.repos = repositories
        self.sessions = sessions
        self.oauth = oauth

    async def _start_session(self, user: User, client: Optional[ClientInfo]) -> str:
        client = client or ClientInfo()
        return await self.sessions.create_session(
            user.id,
            user_agent=client.user_agent,
            client_address=client.client_address
        )

    async def register(self, data: RegisterRequest, client: Optional[ClientInfo] = None) -> Tuple[User, str]:
        """
        Raises:
            ConflictError: the email is already registered
        """
        email = str(data.email).lower()

        async with persistence_boundary("register"):
            if await self.repos.users.get_by_email(email):
                raise ConflictError("Email already registered")

            user = User(
                username=email.split("@")[0],
                email=email,
                full_name=sanitize_input(data.full_name),
                payment=protect_payment(data.payment, "payment") if data.payment else default_payment(email),
                password_hash=hash_password(data.password)
            )
            await self.repos.users.add(user)

        logger.info(f"👤 Registered user {user.id[:8]}...")
        return user, await self._start_session(user, client)

    async def login(self, data: LoginRequest, client: Optional[ClientInfo] = None) -> Tuple[User, str]:
        """
        Raises:
            AuthError: unknown email or wrong password; both read the same
        """
        async with persistence_boundary("login"):
            user = await self.repos.users.get_by_email(str(data.email))

        if user is None or not verify_password(data.password, user.password_hash):
            logger.info("Failed login attempt")
            raise AuthError("Invalid email or password", kind=AuthFailure.INVALID)

        return user, await self._start_session(user, client)

    async def google_sign_in(self, code: str, client: Optional[ClientInfo] = None) -> Tuple[User, str]:
        """
        Exchange a Google authorization code and find or create the user.

        Raises:
            AuthError: Google has not verified the account's email, so it
                cannot be matched to an account
        """
        profile = await self.oauth.authenticate(code)
        if not profile.email_verified:
            logger.warning("Google sign-in rejected: email not verified")
            raise AuthError("Google account email is not verified", kind=AuthFailure.INVALID)
        user = await self._find_or_create_google_user(profile)
        return user, await self._start_session(user, client)

    async def _find_or_create_google_user(self, profile: GoogleProfile) -> User:
        email = sanitize_input(profile.email).lower()

        async with persistence_boundary("google_sign_in"):
            user = await self.repos.users.get_by_email(email)
            if user is not None:
                return user

            user = User(
                username=email.split("@")[0],
                email=email,
                full_name=sanitize_input(profile.name),
                payment=default_payment(email)
            )
            await self.repos.users.add(user)

        logger.info(f"👤 Created user {user.id[:8]}... from Google sign-in")
        return user

    async def logout(self, session_id: Optional[str]) -> None:
        if session_id:
            await self.sessions.revoke(session_id)
