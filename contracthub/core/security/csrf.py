"""
Double-submit CSRF protection.

The token lives in a script-readable cookie; clients echo it in a request
header on every state-changing call. A forged cross-site request carries
the cookie but cannot read it to fill the header.
"""

from dataclasses import dataclass, field
from typing import Optional, Set
import logging
import secrets

from starlette.responses import Response

from contracthub.core.exceptions import ForbiddenError
from contracthub.core.security.credentials import generate_secure_token

logger = logging.getLogger(__name__)


@dataclass
class CSRFGuard:
    cookie_name: str = "csrf-token"
    header_name: str = "x-csrf-token"
    safe_methods: Set[str] = field(default_factory=lambda: {"GET", "HEAD", "OPTIONS"})
    exempt_paths: Set[str] = field(default_factory=set)
    secure_cookie: bool = False

    def __post_init__(self):
        self.safe_methods = {m.upper() for m in self.safe_methods}
        self.exempt_paths = set(self.exempt_paths)

    def requires_check(self, method: str, path: str) -> bool:
        return method.upper() not in self.safe_methods and path not in self.exempt_paths

    def verify(self, method: str, path: str, header_token: Optional[str], cookie_token: Optional[str]) -> None:
        """
        Raise ForbiddenError unless the request is safe or both tokens match.
        """
        if not self.requires_check(method, path):
            return

        if not header_token or not cookie_token:
            logger.warning(f"🛡️ CSRF token missing on {method} {path}")
            raise ForbiddenError("Invalid CSRF token")

        if not secrets.compare_digest(header_token.encode("utf-8"), cookie_token.encode("utf-8")):
            logger.warning(f"🛡️ CSRF token mismatch on {method} {path}")
            raise ForbiddenError("Invalid CSRF token")

    def issue(self, response: Response) -> str:
        """Mint a token, set the cookie and expose it in the response header"""
        token = generate_secure_token(32)
        # Not HTTP-only: client script must read it to echo it back
        response.set_cookie(
            self.cookie_name,
            token,
            httponly=False,
            secure=self.secure_cookie,
            samesite="strict",
            path="/"
        )
        response.headers[self.header_name] = token
        return token
