"""Public API response contracts."""

from storefront_auth.api.contracts.models import (
    AdminClaimsResponse,
    ApiErrorResponse,
    AuthMeResponse,
    AuthSessionResponse,
    AuthStatusResponse,
    CsrfTokenResponse,
    HealthResponse,
    LogoutResponse,
    RateLimitedResponse,
    RevokeAllResponse,
)

__all__ = [
    "AdminClaimsResponse",
    "ApiErrorResponse",
    "AuthMeResponse",
    "AuthSessionResponse",
    "AuthStatusResponse",
    "CsrfTokenResponse",
    "HealthResponse",
    "LogoutResponse",
    "RateLimitedResponse",
    "RevokeAllResponse",
]
