"""
Security middleware for ContractHub API
Handles rate limiting, CSRF verification and security headers
"""

from fastapi import Request, Response
from fastapi.responses import JSONResponse
import time
import logging
from typing import Callable, Collection

from contracthub.core.exceptions import ContractHubError, RateLimitError
from contracthub.core.rate_limit_config import get_real_ip, is_rate_limit_exempt
from contracthub.core.security.csrf import CSRFGuard
from contracthub.core.security.rate_limiter import FixedWindowRateLimiter

logger = logging.getLogger(__name__)

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "X-XSS-Protection": "1; mode=block",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "Content-Security-Policy": "default-src 'self'; frame-ancestors 'none'",
}


def error_response(error: ContractHubError) -> JSONResponse:
    response = JSONResponse(status_code=error.status_code, content=error.to_dict())
    if isinstance(error, RateLimitError):
        response.headers["Retry-After"] = str(error.retry_after)
    return response


class SecurityMiddleware:
    """
    Rate limiter, then CSRF guard, then the route.

    Errors raised inside http middleware bypass FastAPI's exception
    handlers, so rejections are rendered here.
    """

    def __init__(
        self,
        rate_limiter: FixedWindowRateLimiter,
        csrf_guard: CSRFGuard,
        is_production: bool = False,
        trusted_proxies: Collection[str] = ()
    ):
        self.rate_limiter = rate_limiter
        self.csrf_guard = csrf_guard
        self.is_production = is_production
        self.trusted_proxies = set(trusted_proxies)

    async def __call__(self, request: Request, call_next: Callable) -> Response:
        path = request.url.path
        client_ip = get_real_ip(request, self.trusted_proxies)

        try:
            if not is_rate_limit_exempt(path):
                endpoint = "auth" if path.startswith("/auth/") else "default"
                await self.rate_limiter.check(client_ip, endpoint)

            self.csrf_guard.verify(
                request.method,
                path,
                request.headers.get(self.csrf_guard.header_name),
                request.cookies.get(self.csrf_guard.cookie_name)
            )
        except RateLimitError as e:
            logger.warning(f"🚦 Rate limit exceeded for {client_ip} on {path}")
            return self._secure(error_response(e))
        except ContractHubError as e:
            log = logger.error if e.status_code >= 500 else logger.warning
            log(f"🛡️ {type(e).__name__} rejected {request.method} {path} from {client_ip}: {e.message}")
            return self._secure(error_response(e))

        start_time = time.time()
        response = await call_next(request)
        process_time = time.time() - start_time

        response.headers["X-Process-Time"] = str(process_time)

        if process_time > 1.0:
            logger.warning(f"⏱️ Slow request: {path} took {process_time:.2f}s")

        return self._secure(response)

    def _secure(self, response: Response) -> Response:
        for name, value in SECURITY_HEADERS.items():
            response.headers.setdefault(name, value)
        if self.is_production:
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        return response
