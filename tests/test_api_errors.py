from __future__ import annotations

from storefront_auth.api.errors import (
    CsrfTokenInvalid,
    InvalidCredentials,
    RateLimited,
    RefreshTokenInvalid,
    TokenInvalid,
    to_error_payload,
)


def test_to_error_payload_preserves_structured_detail() -> None:
    payload = to_error_payload({"error": "Token inválido", "code": "AUTH_TOKEN_INVALID"}, 401)

    assert payload == {"error": "Token inválido", "code": "AUTH_TOKEN_INVALID"}


def test_to_error_payload_normalizes_plain_string() -> None:
    payload = to_error_payload("boom", 500)

    assert payload == {"error": "boom", "code": "HTTP_500"}


def test_rate_limited_payload_carries_retry_guidance() -> None:
    exc = RateLimited(12)

    assert exc.status_code == 429
    assert exc.detail == {
        "error": "Muitas tentativas de login",
        "code": "AUTH_RATE_LIMITED",
        "blockedFor": 12,
        "message": "Tente novamente em 12 minutos",
    }
    assert exc.headers == {"Retry-After": "720"}


def test_error_statuses_and_codes() -> None:
    assert InvalidCredentials().detail["error"] == "Credenciais inválidas"
    assert CsrfTokenInvalid().status_code == 403
    assert isinstance(CsrfTokenInvalid(), TokenInvalid)
    assert RefreshTokenInvalid().detail["code"] == "REFRESH_TOKEN_INVALID"
    assert RefreshTokenInvalid(missing=True).detail["error"] == "Refresh token não encontrado"
