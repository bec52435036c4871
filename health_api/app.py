"""Application factory wiring stores, services and routers."""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from health_api.core.config import get_settings
from health_api.core.log_config import configure_logging
from health_api.core.rate_limiter import RateLimitExceeded
from health_api.db.create_tables import create_all
from health_api.repositories.kv_store import KVStore, build_kv_store
from health_api.routers import auth as auth_router
from health_api.routers import cache as cache_router
from health_api.routers import profile as profile_router
from health_api.services.password_reset_service import CredentialResetService
from health_api.services.user_directory import UserDirectory
from health_api.services.verification_service import VerificationCodeStore

logger = logging.getLogger(__name__)


def create_app(
    *,
    kv_store: Optional[KVStore] = None,
    user_directory: Optional[UserDirectory] = None,
    create_tables: bool = True,
) -> FastAPI:
    """Build the API. Stores may be injected; otherwise they come from Settings."""
    configure_logging()
    settings = get_settings()

    if create_tables:
        create_all()
    kv = kv_store or build_kv_store(settings.kv_url, socket_timeout=settings.kv_socket_timeout)
    directory = user_directory or UserDirectory()
    codes = VerificationCodeStore(kv, ttl_seconds=settings.verification_code_ttl_seconds)

    app = FastAPI(title="Health Data API")
    app.state.kv_store = kv
    app.state.user_directory = directory
    app.state.verification_codes = codes
    app.state.reset_service = CredentialResetService(codes, directory)

    if settings.app_env != "prod":
        app.add_middleware(
            CORSMiddleware,
            allow_origins=["http://localhost:3000", "http://127.0.0.1:3000"],
            allow_credentials=True,
            allow_methods=["GET", "POST", "PUT", "OPTIONS"],
            allow_headers=["*"],
        )

    @app.exception_handler(RateLimitExceeded)
    async def _rate_limited(request: Request, exc: RateLimitExceeded):
        logger.warning("Rate limit exceeded: %s", exc)
        return JSONResponse({"error": "Too many requests. Try again shortly."}, status_code=429)

    app.include_router(auth_router.router)
    app.include_router(cache_router.router)
    app.include_router(profile_router.router)
    return app
