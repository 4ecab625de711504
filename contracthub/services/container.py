# contracthub/services/container.py
"""Per-application service wiring, stored on ``app.state.services``"""
from dataclasses import dataclass
from typing import Optional

from fastapi import Request

from contracthub.core.config import Settings
from contracthub.core.security.csrf import CSRFGuard
from contracthub.core.security.rate_limiter import FixedWindowRateLimiter
from contracthub.core.security.session_security import SessionStore
from contracthub.services.auth_service import AuthService
from contracthub.services.contract_service import ContractService
from contracthub.services.google_oauth import GoogleOAuthService
from contracthub.services.gpt_service import GPTService
from contracthub.services.organization_service import OrganizationService
from contracthub.services.redis_service import RedisService
from contracthub.services.storage import Repositories


@dataclass
class Services:
    settings: Settings
    repositories: Repositories
    sessions: SessionStore
    rate_limiter: FixedWindowRateLimiter
    csrf_guard: CSRFGuard
    gpt: GPTService
    oauth: GoogleOAuthService
    auth: AuthService
    organizations: OrganizationService
    contracts: ContractService
    redis: Optional[RedisService] = None


def get_services(request: Request) -> Services:
    return request.app.state.services
