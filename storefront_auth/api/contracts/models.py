"""Pydantic API response models used in OpenAPI contracts.

Field names are snake_case in Python and camelCase on the wire, matching
what the storefront front-end reads.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ApiErrorResponse(_WireModel):
    """Stable error envelope for API responses."""

    error: str = Field(description="Human-readable error message")
    code: str = Field(description="Machine-readable error code")


class RateLimitedResponse(ApiErrorResponse):
    """429 payload with retry guidance."""

    blocked_for: int = Field(description="Minutes until login is allowed again")
    message: str


class HealthResponse(_WireModel):
    """Health check response payload."""

    status: Literal["ok"]


class AuthSessionResponse(_WireModel):
    """Tokens returned by login and refresh; the refresh token travels as a cookie."""

    access_token: str
    csrf_token: str
    expires_in: int


class AuthStatusResponse(_WireModel):
    authenticated: bool
    email: str | None = None


class CsrfTokenResponse(_WireModel):
    csrf_token: str


class LogoutResponse(_WireModel):
    success: Literal[True] = True


class RevokeAllResponse(_WireModel):
    success: Literal[True] = True
    revoked: int


class AdminClaimsResponse(_WireModel):
    admin_id: str
    email: str


class AuthMeResponse(_WireModel):
    """Current admin endpoint response payload."""

    admin: AdminClaimsResponse
