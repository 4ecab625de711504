"""
Security layer.

Centralizes session management, rate limiting, CSRF protection and the
credential utilities. Route handlers only see the stores through the
auth dependency and the security middleware.
"""

from .session_security import Session, SessionStore
from .rate_limiter import FixedWindowRateLimiter, RateLimitDecision, RateLimitPolicy, RateLimitRecord
from .csrf import CSRFGuard
from .backends import InMemoryBackend, RecordBackend, RedisBackend

__all__ = [
    'Session',
    'SessionStore',
    'FixedWindowRateLimiter',
    'RateLimitDecision',
    'RateLimitPolicy',
    'RateLimitRecord',
    'CSRFGuard',
    'InMemoryBackend',
    'RecordBackend',
    'RedisBackend'
]
