"""Application factory for FastAPI app.

Centralizes app construction (metadata, middleware, handlers, routers) and
owns the lifecycle of the stateful collaborators: the structured logger, the
rate limiter, the AI client, the auth client and the resume repository are
built here, stored on ``app.state`` and released by the lifespan.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from victry.adapters.auth.base import AbstractAuthClient
from victry.adapters.auth.factory import create_auth_client
from victry.adapters.llm.base import AbstractLLMClient
from victry.adapters.llm.factory import create_llm_client
from victry.adapters.log_transport.factory import build_logger
from victry.adapters.rate_limit.base import AbstractRateLimiter
from victry.adapters.rate_limit.in_memory import InMemoryFixedWindowRateLimiter
from victry.adapters.storage.base import AbstractResumeRepository
from victry.adapters.storage.factory import create_resume_repository
from victry.api.routes import ai_router, auth_router, health_router, resumes_router
from victry.core.config import settings
from victry.core.exception_handlers import setup_exception_handlers
from victry.core.logger import Logger
from victry.core.logging import configure_logging
from victry.core.middleware import request_id_middleware
from victry.core.openapi import apply_openapi_customizations
from victry.core.retry import RetryOptions
from victry.services.ai_service import AnalysisService
from victry.services.password_reset_service import PasswordResetService
from victry.services.resume_service import ResumeService

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Start background maintenance and release resources at shutdown."""
    state = app.state
    state.rate_limiter.start(settings.app.rate_limit_sweep_interval_seconds)
    logger.info("app.started", extra={"app_env": settings.app_env})
    try:
        yield
    finally:
        await state.rate_limiter.destroy()
        await state.auth_client.aclose()
        await state.resume_repository.aclose()
        await state.logger.aclose()
        logger.info("app.stopped")


def create_app(
    *,
    app_logger: Logger | None = None,
    rate_limiter: AbstractRateLimiter | None = None,
    llm_client: AbstractLLMClient | None = None,
    auth_client: AbstractAuthClient | None = None,
    resume_repository: AbstractResumeRepository | None = None,
    retry_options: RetryOptions | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Collaborators default to the ones selected by settings; tests pass fakes.

    Returns:
        Configured FastAPI app with middleware, handlers, routers and docs.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    app = FastAPI(
        title="Victry API",
        description=(
            "Backend for the Victry AI resume builder: resume storage, AI job "
            "description analysis and account recovery. Every /api route "
            "requires X-API-Key; errors use a single JSON envelope with "
            "machine-readable codes."
        ),
        version="0.1.0",
        lifespan=lifespan,
    )

    root_logger = app_logger if app_logger is not None else build_logger(settings.log)
    retry = retry_options if retry_options is not None else RetryOptions.from_settings(settings.app)
    limiter = rate_limiter if rate_limiter is not None else InMemoryFixedWindowRateLimiter()
    auth = auth_client if auth_client is not None else create_auth_client(settings.supabase)
    repository = resume_repository if resume_repository is not None else create_resume_repository(settings)
    llm = llm_client if llm_client is not None else create_llm_client(settings.llm)

    app.state.logger = root_logger
    app.state.rate_limiter = limiter
    app.state.auth_client = auth
    app.state.resume_repository = repository
    app.state.analysis_service = AnalysisService(
        llm,
        logger=root_logger.child("ai"),
        retry_options=retry,
    )
    app.state.resume_service = ResumeService(
        repository,
        logger=root_logger.child("resumes"),
        retry_options=retry,
    )
    app.state.password_reset_service = PasswordResetService(
        auth,
        limiter,
        logger=root_logger.child("password-reset"),
        retry_options=retry,
        app_settings=settings.app,
    )

    # Middleware
    app.middleware("http")(request_id_middleware)

    # Exception handlers
    setup_exception_handlers(app)

    # Routers
    app.include_router(auth_router, prefix="/api")
    app.include_router(ai_router, prefix="/api")
    app.include_router(resumes_router, prefix="/api")
    app.include_router(health_router)

    # OpenAPI customizations (security scheme, tags, exemptions)
    apply_openapi_customizations(app, settings.log.request_id_header)

    return app
