"""
Session authentication dependency.

Resolves the session token from the ``session-id`` cookie or the
``x-session-id`` header, validates it and attaches the user to
``request.state.user``.
"""
import re
import logging
from typing import Optional

from fastapi import Depends, Request, Response

from contracthub.core.exceptions import AuthError, AuthFailure
from contracthub.models.user import User
from contracthub.services.container import Services, get_services

logger = logging.getLogger(__name__)

# generate_secure_token(32) output
SESSION_TOKEN_PATTERN = re.compile(r"^[0-9a-f]{64}$")


def read_session_token(request: Request, services: Services) -> Optional[str]:
    settings = services.settings
    return request.cookies.get(settings.SESSION_COOKIE_NAME) or request.headers.get(settings.SESSION_HEADER_NAME)


def set_session_cookie(response: Response, session_id: str, services: Services) -> None:
    """Write the session token to the HTTP-only cookie and the response header"""
    settings = services.settings
    response.set_cookie(
        settings.SESSION_COOKIE_NAME,
        session_id,
        max_age=settings.SESSION_DURATION_SECONDS,
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
        path="/"
    )
    response.headers[settings.SESSION_HEADER_NAME] = session_id


def clear_session_cookie(response: Response, services: Services) -> None:
    response.delete_cookie(services.settings.SESSION_COOKIE_NAME, path="/", httponly=True)


async def get_current_user(
    request: Request,
    response: Response,
    services: Services = Depends(get_services)
) -> User:
    """
    Raises:
        AuthError: UNAUTHENTICATED without a token, INVALID for a malformed
            token or a session whose user no longer exists, EXPIRED for an
            expired session
    """
    token = read_session_token(request, services)
    if not token:
        raise AuthError("Authentication required", kind=AuthFailure.UNAUTHENTICATED)

    if not SESSION_TOKEN_PATTERN.match(token):
        logger.warning("Malformed session token rejected")
        raise AuthError("Invalid session", kind=AuthFailure.INVALID)

    session = await services.sessions.validate(token)

    user = await services.repositories.users.get(session.user_id)
    if user is None:
        logger.warning(f"Session {token[:8]}... points to a missing user, revoking")
        await services.sessions.revoke(token)
        raise AuthError("Invalid session", kind=AuthFailure.INVALID)

    set_session_cookie(response, token, services)
    request.state.user = user
    request.state.session_id = token
    return user
