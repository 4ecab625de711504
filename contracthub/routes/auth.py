from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.responses import HTMLResponse
from typing import Optional
import json
import logging

from contracthub.core.exceptions import ForbiddenError, ValidationError
from contracthub.core.rate_limit_config import get_real_ip
from contracthub.core.security.credentials import generate_secure_token
from contracthub.middleware.auth import (
    clear_session_cookie,
    get_current_user,
    read_session_token,
    set_session_cookie
)
from contracthub.models.user import LoginRequest, RegisterRequest, User, UserPublic
from contracthub.services.auth_service import ClientInfo
from contracthub.services.container import Services, get_services

logger = logging.getLogger(__name__)

OAUTH_STATE_COOKIE = "oauth-state"

router = APIRouter(prefix="/auth", tags=["Auth"])


def client_info(request: Request, services: Services) -> ClientInfo:
    return ClientInfo(
        user_agent=request.headers.get("user-agent"),
        client_address=get_real_ip(request, services.settings.TRUSTED_PROXIES)
    )


@router.get("/csrf")
async def issue_csrf_token(response: Response, services: Services = Depends(get_services)):
    """Issue a fresh double-submit token as cookie and header"""
    return {"csrf_token": services.csrf_guard.issue(response)}


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(
    body: RegisterRequest,
    request: Request,
    response: Response,
    services: Services = Depends(get_services)
):
    user, session_id = await services.auth.register(body, client_info(request, services))
    set_session_cookie(response, session_id, services)
    return {"user": UserPublic.from_user(user), "session_id": session_id}


@router.post("/login")
async def login(
    body: LoginRequest,
    request: Request,
    response: Response,
    services: Services = Depends(get_services)
):
    user, session_id = await services.auth.login(body, client_info(request, services))
    set_session_cookie(response, session_id, services)
    return {"user": UserPublic.from_user(user), "session_id": session_id}


@router.get("/verify")
async def verify(user: User = Depends(get_current_user)):
    return {"user": UserPublic.from_user(user)}


@router.post("/logout")
async def logout(request: Request, response: Response, services: Services = Depends(get_services)):
    await services.auth.logout(read_session_token(request, services))
    clear_session_cookie(response, services)
    return {"message": "Logged out successfully"}


@router.get("/google/url")
async def google_auth_url(response: Response, services: Services = Depends(get_services)):
    state = generate_secure_token(16)
    url = services.oauth.authorization_url(state)
    response.set_cookie(
        OAUTH_STATE_COOKIE,
        state,
        max_age=10 * 60,
        httponly=True,
        secure=services.settings.is_production,
        samesite="lax",
        path="/auth/google"
    )
    return {"url": url}


@router.get("/google/callback", response_class=HTMLResponse)
async def google_callback(
    request: Request,
    code: Optional[str] = None,
    state: Optional[str] = None,
    services: Services = Depends(get_services)
):
    """
    Finish the popup sign-in: exchange the code, open a session and hand the
    session to the opener window.
    """
    if not code or not state:
        raise ValidationError("Invalid authorization code or state")

    expected_state = request.cookies.get(OAUTH_STATE_COOKIE)
    if not expected_state or expected_state != state:
        logger.warning("OAuth state mismatch on Google callback")
        raise ForbiddenError("Invalid OAuth state")

    user, session_id = await services.auth.google_sign_in(code, client_info(request, services))

    response = HTMLResponse(content=render_popup_page(user, session_id, services.settings.CLIENT_URL))
    response.headers["Content-Security-Policy"] = "default-src 'none'; script-src 'unsafe-inline'"
    response.delete_cookie(OAUTH_STATE_COOKIE, path="/auth/google")
    set_session_cookie(response, session_id, services)
    return response


def _js(value: str) -> str:
    # JSON string literal, safe inside a <script> block
    return json.dumps(value).replace("</", "<\\/")


def render_popup_page(user: User, session_id: str, client_url: str) -> str:
    return f"""<!DOCTYPE html>
<html>
  <head>
    <title>Authentication Successful</title>
    <script>
      if (window.opener) {{
        try {{
          window.opener.postMessage({{
            type: 'google-auth',
            email: {_js(user.email or "")},
            fullName: {_js(user.full_name)},
            sessionId: {_js(session_id)}
          }}, {_js(client_url)});
        }} finally {{
          window.close();
        }}
      }}
    </script>
  </head>
  <body>
    <p>Authentication successful. This window will close automatically.</p>
  </body>
</html>
"""
