"""HTTP middleware that guards protected API routes."""

from __future__ import annotations

from typing import Callable, Iterable

from fastapi import Request
from fastapi.responses import JSONResponse

from storefront_auth.api.errors import ApiError, CsrfTokenInvalid, MissingToken, to_error_payload
from storefront_auth.auth.csrf import CSRF_HEADER, SAFE_METHODS, CsrfTokenIssuer
from storefront_auth.auth.tokens import TokenService
from storefront_auth.core.logging import set_admin_id

PUBLIC_PATHS = frozenset(
    {
        "/api/health",
        "/api/auth/login",
        "/api/auth/refresh",
        "/api/auth/logout",
        "/api/auth/status",
        "/api/auth/csrf",
    }
)


def extract_bearer_token(authorization: str) -> str:
    """Extract bearer token from authorization header value."""
    parts = (authorization or "").strip().split(" ", 1)
    if len(parts) != 2 or parts[0].lower() != "bearer":
        return ""
    return parts[1].strip()


def _error_response(exc: ApiError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=to_error_payload(exc.detail, exc.status_code),
        headers=exc.headers,
    )


def is_protected_path(path: str, public_paths: Iterable[str] = PUBLIC_PATHS) -> bool:
    return path.startswith("/api/") and path not in public_paths


def create_auth_middleware(
    tokens: TokenService, *, public_paths: Iterable[str] = PUBLIC_PATHS
) -> Callable:
    """Create middleware that requires a valid bearer access token."""
    public = frozenset(public_paths)

    async def auth_middleware(request: Request, call_next: Callable):
        """Validate auth for protected API paths and attach claims to request state."""
        if request.method == "OPTIONS" or not is_protected_path(request.url.path, public):
            return await call_next(request)

        token = extract_bearer_token(request.headers.get("authorization", ""))
        if not token:
            return _error_response(MissingToken())

        try:
            claims = tokens.verify_access_token(token)
        except ApiError as exc:
            return _error_response(exc)

        request.state.admin = claims
        set_admin_id(claims.admin_id)
        return await call_next(request)

    return auth_middleware


def create_csrf_middleware(
    issuer: CsrfTokenIssuer, *, public_paths: Iterable[str] = PUBLIC_PATHS
) -> Callable:
    """Create middleware that consumes a CSRF token on every protected mutation.

    A replacement token is returned in the ``X-CSRF-Token`` response header.
    """
    public = frozenset(public_paths)

    async def csrf_middleware(request: Request, call_next: Callable):
        if request.method in SAFE_METHODS or not is_protected_path(request.url.path, public):
            return await call_next(request)

        if not issuer.validate(request.headers.get(CSRF_HEADER, "")):
            return _error_response(CsrfTokenInvalid())

        response = await call_next(request)
        response.headers[CSRF_HEADER] = issuer.issue()
        return response

    return csrf_middleware
