"""
Rate limiting configuration for the ContractHub API
"""

from typing import Collection

from fastapi import Request
from slowapi.util import get_remote_address


def get_real_ip(request: Request, trusted_proxies: Collection[str] = ()) -> str:
    """
    Get the real client address, considering proxy headers.

    Forwarding headers are honored only when the socket peer is one of
    ``trusted_proxies``; any other client could set them to anything.
    """
    peer = get_remote_address(request)
    if peer not in trusted_proxies:
        return peer

    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        # X-Forwarded-For can contain multiple IPs, take the first
        return forwarded_for.split(",")[0].strip()

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip.strip()

    return peer


# Paths that are never counted (load balancer health checks)
RATE_LIMIT_EXEMPT_PATHS = {"/", "/health", "/healthz"}

RATE_LIMIT_MESSAGES = {
    "default": "Too many requests. Please wait a moment and try again.",
    "auth": "Too many sign-in attempts. Please wait before trying again.",
}


def get_rate_limit_message(endpoint: str = "default") -> str:
    """Get the error message for a rate limited endpoint"""
    return RATE_LIMIT_MESSAGES.get(endpoint, RATE_LIMIT_MESSAGES["default"])


def is_rate_limit_exempt(path: str) -> bool:
    return path in RATE_LIMIT_EXEMPT_PATHS
