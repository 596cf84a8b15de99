# weconnect/main.py
import logging
import sys
from contextlib import asynccontextmanager
from typing import Optional

import structlog
import uvicorn
from cryptography.fernet import Fernet
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pydantic import ValidationError as SettingsError
from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncEngine

from .config import Settings, get_settings
from .errors import register_exception_handlers
from .infrastructure.database import build_engine, init_db
from .infrastructure.n8n_client import N8nClient
from .infrastructure.redis_cache import build_redis
from .infrastructure.storage import SupabaseStorage
from .middleware.logging import RequestIdMiddleware
from .middleware.security import RateLimitMiddleware, SanitizeBodyMiddleware, SecurityHeadersMiddleware
from .middleware.webhook_signature import WebhookSignatureVerifier
from .routers.analytics_router import router as analytics_router
from .routers.auth_router import router as auth_router
from .routers.connections_router import router as connections_router
from .routers.health_router import router as health_router
from .routers.post_router import router as post_router
from .routers.upload_router import router as upload_router
from .routers.webhook_router import router as webhook_router
from .UAA.utils import build_fernet

logger = structlog.get_logger()


def configure_structlog(settings: Settings) -> None:
    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]
    if settings.is_production:
        processors += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)
    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    state = app.state
    await init_db(state.engine)
    logger.info("app_startup", environment=state.settings.ENVIRONMENT)
    try:
        yield
    finally:
        await state.n8n_client.aclose()
        await state.redis.aclose()
        await state.engine.dispose()
        logger.info("app_shutdown")


def create_app(
    settings: Optional[Settings] = None,
    engine: Optional[AsyncEngine] = None,
    redis: Optional[Redis] = None,
    storage: Optional[SupabaseStorage] = None,
    n8n_client: Optional[N8nClient] = None,
    fernet: Optional[Fernet] = None,
) -> FastAPI:
    """
    Build the application and every client it talks to. Anything passed in is
    used as-is, which is how tests swap in SQLite, fakeredis and mock HTTP.
    """
    settings = settings or get_settings()
    configure_structlog(settings)

    app = FastAPI(title="WeConnect Scheduler API", lifespan=lifespan)
    app.state.settings = settings
    app.state.engine = engine or build_engine(settings)
    app.state.redis = redis or build_redis(settings.REDIS_URL)
    app.state.storage = storage or SupabaseStorage.from_settings(settings)
    app.state.n8n_client = n8n_client or N8nClient(settings.N8N_WEBHOOK_URL, timeout=settings.N8N_TIMEOUT_SECONDS)
    app.state.fernet = fernet or build_fernet(settings.TOKEN_ENCRYPTION_KEY)
    app.state.webhook_verifier = WebhookSignatureVerifier(settings.WEBHOOK_SECRET)

    register_exception_handlers(app)

    # last added runs first
    app.add_middleware(SanitizeBodyMiddleware)
    if settings.RATE_LIMIT_ENABLED:
        app.add_middleware(
            RateLimitMiddleware,
            redis_client=app.state.redis,
            window_seconds=settings.RATE_LIMIT_WINDOW_SECONDS,
            max_requests=settings.RATE_LIMIT_MAX_REQUESTS,
            auth_max_attempts=settings.AUTH_RATE_LIMIT_MAX_ATTEMPTS,
        )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestIdMiddleware)

    app.include_router(health_router)
    app.include_router(auth_router)
    app.include_router(post_router)
    app.include_router(connections_router)
    app.include_router(analytics_router)
    app.include_router(upload_router)
    app.include_router(webhook_router)
    return app


def run() -> None:
    try:
        settings = Settings()
    except SettingsError as exc:
        missing = [".".join(str(p) for p in e["loc"]) for e in exc.errors()]
        logger.error("missing_required_configuration", fields=missing)
        sys.exit(1)

    app = create_app(settings)
    uvicorn.run(app, host=settings.HOST, port=settings.PORT, log_level=settings.LOG_LEVEL.lower())


if __name__ == "__main__":
    run()
