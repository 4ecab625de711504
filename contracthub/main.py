# contracthub/main.py
"""
ContractHub FastAPI application.

``create_app`` wires the security layer, workflow services and routers for
one application instance; ``app`` is the instance uvicorn serves.
"""

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from typing import Optional
import asyncio
import logging

from contracthub.core.config import Settings, settings as default_settings, validate_required_settings
from contracthub.core.exceptions import ContractHubError, InternalError, ServiceError
from contracthub.core.logging_config import setup_logging
from contracthub.core.security import (
    CSRFGuard,
    FixedWindowRateLimiter,
    RateLimitPolicy,
    RateLimitRecord,
    RedisBackend,
    Session,
    SessionStore
)
from contracthub.middleware.security_middleware import SecurityMiddleware, error_response
from contracthub.routes import auth as auth_routes
from contracthub.routes import contracts as contract_routes
from contracthub.routes import organizations as organization_routes
from contracthub.services.auth_service import AuthService
from contracthub.services.container import Services
from contracthub.services.contract_service import ContractService
from contracthub.services.google_oauth import GoogleOAuthConfig, GoogleOAuthService
from contracthub.services.gpt_service import GPTConfig, GPTService
from contracthub.services.organization_service import OrganizationService
from contracthub.services.redis_service import RedisConfig, RedisService
from contracthub.services.storage import Repositories

# Setup logging
logger = setup_logging()

VERSION = "1.0.0"


def get_safe_error_message(error: Exception, context: str = "") -> str:
    """Return a message that doesn't expose internal details"""
    logger.error(f"Error in {context}: {type(error).__name__}: {str(error)}")

    if isinstance(error, ContractHubError):
        if error.status_code < 500 or isinstance(error, ServiceError) or type(error) is InternalError:
            return error.message

    return "Internal server error"


def build_services(config: Settings, repositories: Optional[Repositories] = None) -> Services:
    """Create the security layer and workflow services for one app"""
    repositories = repositories or Repositories()

    redis_service = None
    session_backend = None
    rate_limit_backend = None
    if config.SESSION_BACKEND == "redis":
        redis_service = RedisService(RedisConfig(url=config.REDIS_URL))
        session_backend = RedisBackend(redis_service, Session, prefix="session:")
        rate_limit_backend = RedisBackend(redis_service, RateLimitRecord, prefix="ratelimit:")

    sessions = SessionStore(
        backend=session_backend,
        session_duration=timedelta(seconds=config.SESSION_DURATION_SECONDS),
        inactivity_timeout=timedelta(seconds=config.SESSION_INACTIVITY_TIMEOUT_SECONDS)
    )
    rate_limiter = FixedWindowRateLimiter(
        policy=RateLimitPolicy(
            max_requests=config.RATE_LIMIT_MAX_REQUESTS,
            window_seconds=config.RATE_LIMIT_WINDOW_SECONDS,
            block_seconds=config.RATE_LIMIT_BLOCK_SECONDS
        ),
        backend=rate_limit_backend
    )
    csrf_guard = CSRFGuard(
        cookie_name=config.CSRF_COOKIE_NAME,
        header_name=config.CSRF_HEADER_NAME,
        safe_methods=set(config.CSRF_SAFE_METHODS),
        exempt_paths=set(config.CSRF_EXEMPT_PATHS),
        secure_cookie=config.is_production
    )

    gpt = GPTService(GPTConfig(
        api_key=config.OPENAI_API_KEY,
        model=config.GPT_MODEL,
        temperature=config.GPT_TEMPERATURE
    ))
    oauth = GoogleOAuthService(GoogleOAuthConfig(
        client_id=config.GOOGLE_CLIENT_ID,
        client_secret=config.GOOGLE_CLIENT_SECRET,
        redirect_uri=config.GOOGLE_REDIRECT_URI
    ))

    return Services(
        settings=config,
        repositories=repositories,
        sessions=sessions,
        rate_limiter=rate_limiter,
        csrf_guard=csrf_guard,
        gpt=gpt,
        oauth=oauth,
        auth=AuthService(repositories, sessions, oauth),
        organizations=OrganizationService(repositories),
        contracts=ContractService(repositories, gpt),
        redis=redis_service
    )


async def sweep_periodically(services: Services, interval: float) -> None:
    """Drop stale sessions and rate-limit records every ``interval`` seconds"""
    while True:
        await asyncio.sleep(interval)
        try:
            await services.sessions.sweep()
            await services.rate_limiter.sweep()
        except Exception:
            logger.error("🧹 Sweep failed, retrying next interval", exc_info=True)


def create_app(config: Optional[Settings] = None, repositories: Optional[Repositories] = None) -> FastAPI:
    config = config or default_settings
    services = build_services(config, repositories)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Startup validation and the sweeper task"""
        logger.info("=" * 60)
        logger.info(f"🚀 {config.APP_NAME} API Starting...")
        logger.info("=" * 60)

        # Warn but don't fail
        if not validate_required_settings(config):
            logger.warning("⚠️ Some environment variables are missing - integrations may fail on first use")

        logger.info("📋 Configuration:")
        logger.info(f"  - Environment: {config.ENVIRONMENT}")
        logger.info(f"  - Session backend: {config.SESSION_BACKEND}")
        logger.info(f"  - Rate limit: {config.RATE_LIMIT_MAX_REQUESTS}/{config.RATE_LIMIT_WINDOW_SECONDS}s")

        sweeper = asyncio.create_task(sweep_periodically(services, config.SESSION_SWEEP_INTERVAL_SECONDS))
        logger.info("🟢 Server is ready to accept connections")

        yield

        logger.info(f"🛑 {config.APP_NAME} API Shutting down...")
        sweeper.cancel()
        try:
            await sweeper
        except asyncio.CancelledError:
            pass

        for service in (services.gpt, services.oauth, services.redis):
            if service is not None:
                await service.shutdown()
        logger.info("👋 Goodbye!")

    app = FastAPI(
        title=f"{config.APP_NAME} API",
        description="Contract management with organization approvals and AI-drafted contracts",
        version=VERSION,
        lifespan=lifespan,
        docs_url="/docs" if config.DEBUG else None,
        redoc_url=None
    )
    app.state.services = services

    # CORS is added last so it wraps SecurityMiddleware
    app.middleware("http")(SecurityMiddleware(
        services.rate_limiter,
        services.csrf_guard,
        is_production=config.is_production,
        trusted_proxies=config.TRUSTED_PROXIES
    ))
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=[config.SESSION_HEADER_NAME, config.CSRF_HEADER_NAME, "Retry-After"],
    )

    @app.exception_handler(ContractHubError)
    async def handle_app_error(request: Request, exc: ContractHubError):
        if exc.status_code >= 500:
            logger.error(f"❌ {type(exc).__name__} on {request.method} {request.url.path}: {exc}", exc_info=exc)
            if not isinstance(exc, ServiceError) and type(exc) is not InternalError:
                return JSONResponse(
                    status_code=exc.status_code,
                    content={"error": get_safe_error_message(exc, request.url.path)}
                )
        return error_response(exc)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        fields = [
            {"field": ".".join(str(part) for part in err.get("loc", ())), "message": err.get("msg", "")}
            for err in exc.errors()
        ]
        return JSONResponse(status_code=400, content={"error": "Invalid request", "details": {"fields": fields}})

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception):
        logger.error(f"❌ Unhandled error on {request.method} {request.url.path}", exc_info=exc)
        return JSONResponse(status_code=500, content={"error": get_safe_error_message(exc, request.url.path)})

    @app.get("/", status_code=200)
    def read_root():
        return {"status": "ok", "version": VERSION, "service": "contracthub"}

    @app.head("/", status_code=200)
    def head_root():
        return None

    @app.get("/health", status_code=200)
    async def health():
        body = {
            "status": "healthy",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "sessions": await services.sessions.get_metrics(),
            "rate_limit_violations": services.rate_limiter.violations,
            "integrations": {
                "openai": services.gpt.status(),
                "google_oauth": services.oauth.status(),
            },
        }
        if services.redis is not None:
            body["redis"] = await services.redis.health_check()
        return body

    @app.get("/healthz", response_class=PlainTextResponse, status_code=200)
    def healthz():
        return "OK"

    app.include_router(auth_routes.router)
    app.include_router(organization_routes.router)
    app.include_router(contract_routes.router)

    return app


app = create_app()
