"""Models for the authentication domain."""

from __future__ import annotations

from dataclasses import dataclass

from pydantic import BaseModel, Field


class Admin(BaseModel):
    """Persisted admin identity. Created out of band, read-only to the auth flow."""

    admin_id: str
    email: str
    password_hash: str


class RefreshTokenRecord(BaseModel):
    """One issued refresh token; only the sha256 of the raw value is kept."""

    token_id: str
    admin_id: str
    token_hash: str
    issued_at: int
    expires_at: int
    revoked: bool = False
    ip_address: str = "unknown"
    user_agent: str = "unknown"

    def is_active(self, now: float) -> bool:
        return not self.revoked and self.expires_at > now


class LoginRequest(BaseModel):
    """Login request payload."""

    email: str = Field(min_length=3)
    password: str = Field(min_length=1)


@dataclass(frozen=True)
class AccessClaims:
    """Identity asserted by a verified access token."""

    admin_id: str
    email: str


@dataclass(frozen=True)
class RedeemedRefreshToken:
    admin: Admin
    token_id: str


@dataclass(frozen=True)
class IssuedSession:
    """Everything a successful login or refresh hands back to the router."""

    access_token: str
    refresh_token: str
    csrf_token: str
    expires_in: int
    admin: Admin


@dataclass(frozen=True)
class AuthStatus:
    authenticated: bool
    email: str | None = None


@dataclass
class RateLimitEntry:
    """Failed-login tracking for one client IP."""

    attempts: int
    first_attempt_at: float
    blocked_until: float | None = None


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    remaining_attempts: int
    blocked_for_minutes: int | None = None


@dataclass(frozen=True)
class CsrfEntry:
    token: str
    expires_at: float
