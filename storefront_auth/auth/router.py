"""Authentication API router."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse

from storefront_auth.api.contracts import (
    AdminClaimsResponse,
    ApiErrorResponse,
    AuthMeResponse,
    AuthSessionResponse,
    AuthStatusResponse,
    CsrfTokenResponse,
    LogoutResponse,
    RateLimitedResponse,
    RevokeAllResponse,
)
from storefront_auth.api.errors import (
    InternalError,
    InvalidCredentials,
    MissingToken,
    RefreshTokenInvalid,
    to_error_payload,
)
from storefront_auth.auth.cookies import (
    clear_refresh_token_cookie,
    client_ip_from_request,
    read_refresh_token_cookie,
    set_refresh_token_cookie,
    user_agent_from_request,
)
from storefront_auth.auth.middleware import extract_bearer_token
from storefront_auth.auth.models import AccessClaims, IssuedSession, LoginRequest
from storefront_auth.auth.rate_limiter import LoginRateLimiter
from storefront_auth.auth.service import AuthService
from storefront_auth.core.config import AuthConfig

LOGGER = logging.getLogger(__name__)


def _session_response(session: IssuedSession) -> AuthSessionResponse:
    return AuthSessionResponse(
        access_token=session.access_token,
        csrf_token=session.csrf_token,
        expires_in=session.expires_in,
    )


def create_auth_router(
    service: AuthService, rate_limiter: LoginRateLimiter, config: AuthConfig
) -> APIRouter:
    """Build router with login/refresh/logout/status/csrf and session endpoints."""
    router = APIRouter(prefix="/api/auth", tags=["auth"])

    def login_gate(request: Request) -> str:
        """Refuse blocked IPs before the login handler runs."""
        client_ip = client_ip_from_request(
            request, trust_forwarded_for=config.trust_forwarded_for
        )
        rate_limiter.assert_allowed(client_ip)
        return client_ip

    def current_admin(request: Request) -> AccessClaims:
        claims = getattr(request.state, "admin", None)
        if isinstance(claims, AccessClaims):
            return claims
        token = extract_bearer_token(request.headers.get("authorization", ""))
        if not token:
            raise MissingToken()
        return service.verify_access_token(token)

    @router.post(
        "/login",
        response_model=AuthSessionResponse,
        responses={401: {"model": ApiErrorResponse}, 429: {"model": RateLimitedResponse}},
    )
    def login(
        req: LoginRequest,
        request: Request,
        response: Response,
        client_ip: str = Depends(login_gate),
    ) -> AuthSessionResponse:
        """Authenticate admin, set refresh cookie and return access + CSRF tokens."""
        try:
            session = service.login(
                req.email,
                req.password,
                client_ip=client_ip,
                user_agent=user_agent_from_request(request),
            )
        except InvalidCredentials:
            rate_limiter.record_failure(client_ip)
            raise
        rate_limiter.clear(client_ip)
        set_refresh_token_cookie(response, session.refresh_token, config)
        return _session_response(session)

    @router.post(
        "/refresh",
        response_model=AuthSessionResponse,
        responses={401: {"model": ApiErrorResponse}},
    )
    def refresh(request: Request, response: Response):
        """Rotate the refresh cookie and issue new access + CSRF tokens."""
        client_ip = client_ip_from_request(
            request, trust_forwarded_for=config.trust_forwarded_for
        )
        try:
            session = service.refresh(
                read_refresh_token_cookie(request, config),
                client_ip=client_ip,
                user_agent=user_agent_from_request(request),
            )
        except RefreshTokenInvalid as exc:
            failed = JSONResponse(
                status_code=exc.status_code,
                content=to_error_payload(exc.detail, exc.status_code),
            )
            if not exc.missing:
                clear_refresh_token_cookie(failed, config)
            return failed
        except Exception:
            LOGGER.exception("refresh_failed", extra={"client_ip": client_ip})
            error = InternalError()
            failed = JSONResponse(
                status_code=error.status_code,
                content=to_error_payload(error.detail, error.status_code),
            )
            clear_refresh_token_cookie(failed, config)
            return failed

        set_refresh_token_cookie(response, session.refresh_token, config)
        return _session_response(session)

    @router.post("/logout", response_model=LogoutResponse)
    def logout(request: Request, response: Response) -> LogoutResponse:
        """Revoke the refresh cookie if possible; always succeeds."""
        service.logout(read_refresh_token_cookie(request, config))
        clear_refresh_token_cookie(response, config)
        return LogoutResponse()

    @router.get("/status", response_model=AuthStatusResponse, response_model_exclude_none=True)
    def status(request: Request) -> AuthStatusResponse:
        result = service.status(read_refresh_token_cookie(request, config))
        return AuthStatusResponse(authenticated=result.authenticated, email=result.email)

    @router.get("/csrf", response_model=CsrfTokenResponse)
    def csrf_token() -> CsrfTokenResponse:
        return CsrfTokenResponse(csrf_token=service.issue_csrf_token())

    @router.get(
        "/me",
        response_model=AuthMeResponse,
        responses={401: {"model": ApiErrorResponse}},
    )
    def me(claims: AccessClaims = Depends(current_admin)) -> AuthMeResponse:
        """Return the admin asserted by the bearer access token."""
        return AuthMeResponse(
            admin=AdminClaimsResponse(admin_id=claims.admin_id, email=claims.email)
        )

    @router.post(
        "/revoke-all",
        response_model=RevokeAllResponse,
        responses={401: {"model": ApiErrorResponse}},
    )
    def revoke_all(
        response: Response, claims: AccessClaims = Depends(current_admin)
    ) -> RevokeAllResponse:
        """Revoke every refresh token of the calling admin, on all devices."""
        revoked = service.revoke_all_sessions(claims.admin_id)
        clear_refresh_token_cookie(response, config)
        return RevokeAllResponse(revoked=revoked)

    return router
