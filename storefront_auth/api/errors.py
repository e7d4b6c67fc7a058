"""Shared API error types and helpers."""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from fastapi import HTTPException


class ApiErrorCode(StrEnum):
    """Machine-readable API error codes."""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    AUTH_MISSING_TOKEN = "AUTH_MISSING_TOKEN"
    AUTH_INVALID_CREDENTIALS = "AUTH_INVALID_CREDENTIALS"
    AUTH_TOKEN_INVALID = "AUTH_TOKEN_INVALID"
    TOKEN_EXPIRED = "TOKEN_EXPIRED"
    AUTH_RATE_LIMITED = "AUTH_RATE_LIMITED"
    CSRF_TOKEN_INVALID = "CSRF_TOKEN_INVALID"
    REFRESH_TOKEN_MISSING = "REFRESH_TOKEN_MISSING"
    REFRESH_TOKEN_INVALID = "REFRESH_TOKEN_INVALID"
    REQUEST_TOO_LARGE = "REQUEST_TOO_LARGE"
    INTERNAL_SERVER_ERROR = "INTERNAL_SERVER_ERROR"


class ApiError(HTTPException):
    """HTTP exception carrying stable API error envelope."""

    def __init__(
        self,
        *,
        status_code: int,
        error_code: ApiErrorCode,
        message: str,
        extra: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        """Build an HTTP exception with standard detail structure."""
        detail: dict[str, Any] = {"error": message, "code": str(error_code)}
        if extra:
            detail.update(extra)
        super().__init__(status_code=status_code, detail=detail, headers=headers)
        self.error_code = error_code


class InvalidCredentials(ApiError):
    """Unknown email or wrong password; both surface identically."""

    def __init__(self) -> None:
        super().__init__(
            status_code=401,
            error_code=ApiErrorCode.AUTH_INVALID_CREDENTIALS,
            message="Credenciais inválidas",
        )


class RateLimited(ApiError):
    """Too many failed logins from one client IP."""

    def __init__(self, blocked_for_minutes: int) -> None:
        super().__init__(
            status_code=429,
            error_code=ApiErrorCode.AUTH_RATE_LIMITED,
            message="Muitas tentativas de login",
            extra={
                "blockedFor": blocked_for_minutes,
                "message": f"Tente novamente em {blocked_for_minutes} minutos",
            },
            headers={"Retry-After": str(blocked_for_minutes * 60)},
        )
        self.blocked_for_minutes = blocked_for_minutes


class MissingToken(ApiError):
    def __init__(self) -> None:
        super().__init__(
            status_code=401,
            error_code=ApiErrorCode.AUTH_MISSING_TOKEN,
            message="Token não fornecido",
        )


class TokenExpired(ApiError):
    """Access token aged out; a refresh may recover the session."""

    def __init__(self) -> None:
        super().__init__(
            status_code=401,
            error_code=ApiErrorCode.TOKEN_EXPIRED,
            message="Token expirado",
        )


class TokenInvalid(ApiError):
    """Malformed or forged token; terminal for the request."""

    def __init__(
        self,
        *,
        status_code: int = 401,
        error_code: ApiErrorCode = ApiErrorCode.AUTH_TOKEN_INVALID,
        message: str = "Token inválido",
    ) -> None:
        super().__init__(status_code=status_code, error_code=error_code, message=message)


class CsrfTokenInvalid(TokenInvalid):
    def __init__(self) -> None:
        super().__init__(
            status_code=403,
            error_code=ApiErrorCode.CSRF_TOKEN_INVALID,
            message="Token CSRF inválido",
        )


class RefreshTokenInvalid(ApiError):
    """Refresh cookie absent, expired or revoked; forces a full login."""

    def __init__(self, *, missing: bool = False) -> None:
        if missing:
            super().__init__(
                status_code=401,
                error_code=ApiErrorCode.REFRESH_TOKEN_MISSING,
                message="Refresh token não encontrado",
            )
        else:
            super().__init__(
                status_code=401,
                error_code=ApiErrorCode.REFRESH_TOKEN_INVALID,
                message="Refresh token inválido ou expirado",
            )
        self.missing = missing


class InternalError(ApiError):
    """Generic failure; details stay in the server log."""

    def __init__(self) -> None:
        super().__init__(
            status_code=500,
            error_code=ApiErrorCode.INTERNAL_SERVER_ERROR,
            message="Erro interno no servidor",
        )


def to_error_payload(detail: Any, status_code: int) -> dict[str, Any]:
    """Normalize HTTP exception detail into stable error payload."""
    if isinstance(detail, dict):
        payload = dict(detail)
        payload["error"] = str(
            detail.get("error") or detail.get("message") or detail.get("detail") or "HTTP error"
        )
        payload["code"] = str(detail.get("code") or f"HTTP_{status_code}")
        return payload
    return {
        "error": str(detail or "HTTP error"),
        "code": f"HTTP_{status_code}",
    }
