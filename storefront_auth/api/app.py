"""Application factory wiring the auth core into a FastAPI app."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

from fastapi import APIRouter, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from storefront_auth.api.contracts import HealthResponse
from storefront_auth.api.http_setup import register_exception_handlers, register_http_middleware
from storefront_auth.auth.csrf import CSRF_HEADER, CsrfTokenIssuer
from storefront_auth.auth.middleware import create_auth_middleware, create_csrf_middleware
from storefront_auth.auth.rate_limiter import LoginRateLimiter
from storefront_auth.auth.repository import AuthRepository, CredentialStore
from storefront_auth.auth.router import create_auth_router
from storefront_auth.auth.service import AuthService, bootstrap_admin
from storefront_auth.auth.tokens import TokenService
from storefront_auth.core.config import AppConfig
from storefront_auth.core.mongo_migrations import apply_mongo_migrations
from storefront_auth.core.stores import Clock, system_clock
from storefront_auth.core.sweeper import PeriodicSweeper

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthComponents:
    """Long-lived auth objects owned by one app instance."""

    service: AuthService
    tokens: TokenService
    csrf: CsrfTokenIssuer
    rate_limiter: LoginRateLimiter
    sweepers: tuple[PeriodicSweeper, ...]


def build_auth_components(
    config: AppConfig, repo: CredentialStore, *, clock: Clock = system_clock
) -> AuthComponents:
    tokens = TokenService(repo, config.auth, clock=clock)
    csrf = CsrfTokenIssuer(ttl_seconds=config.security.csrf_token_ttl_seconds, clock=clock)
    rate_limiter = LoginRateLimiter(
        max_attempts=config.security.login_rate_limit_max_attempts,
        window_seconds=config.security.login_rate_limit_window_seconds,
        block_seconds=config.security.login_rate_limit_block_seconds,
        clock=clock,
    )
    sweepers = (
        PeriodicSweeper(
            name="refresh_tokens",
            interval_seconds=config.sweeps.refresh_tokens_seconds,
            sweep_fn=tokens.sweep_expired,
        ),
        PeriodicSweeper(
            name="csrf_tokens",
            interval_seconds=config.sweeps.csrf_tokens_seconds,
            sweep_fn=csrf.sweep,
        ),
        PeriodicSweeper(
            name="login_rate_limit",
            interval_seconds=config.sweeps.rate_limit_seconds,
            sweep_fn=rate_limiter.sweep,
        ),
    )
    return AuthComponents(
        service=AuthService(repo, tokens, csrf),
        tokens=tokens,
        csrf=csrf,
        rate_limiter=rate_limiter,
        sweepers=sweepers,
    )


def create_app(
    config: AppConfig,
    *,
    repo: CredentialStore | None = None,
    clock: Clock = system_clock,
    app_root: Path | None = None,
    routers: Iterable[APIRouter] = (),
) -> FastAPI:
    """Build the API. ``routers`` are mounted behind the access-token and CSRF gates."""
    app = FastAPI(title="Storefront Auth API", version="1.0.0")

    if repo is None:
        apply_mongo_migrations(config.storage)
        auth_repo = AuthRepository(config.storage, app_root=app_root)
        bootstrap_admin(auth_repo, config.auth.admin_email, config.auth.admin_password)
        repo = auth_repo

    components = build_auth_components(config, repo, clock=clock)
    app.state.auth = components

    # Registered last runs first: the access-token gate must reject a request
    # before the CSRF gate consumes its token, and CORS headers must wrap
    # every response including gate rejections.
    app.middleware("http")(create_csrf_middleware(components.csrf))
    app.middleware("http")(create_auth_middleware(components.tokens))
    register_http_middleware(app, config=config, logger=LOGGER)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.security.cors_allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", CSRF_HEADER],
        expose_headers=[CSRF_HEADER],
    )
    register_exception_handlers(app, logger=LOGGER)

    @app.get("/api/health", response_model=HealthResponse)
    def health() -> HealthResponse:
        return HealthResponse(status="ok")

    app.include_router(
        create_auth_router(components.service, components.rate_limiter, config.auth)
    )
    for router in routers:
        app.include_router(router)

    @app.on_event("startup")
    async def start_sweepers() -> None:
        for sweeper in components.sweepers:
            await sweeper.start()

    @app.on_event("shutdown")
    async def stop_sweepers() -> None:
        for sweeper in components.sweepers:
            await sweeper.stop()

    return app
