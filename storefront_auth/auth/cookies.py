"""Refresh-token cookie handling and client address resolution."""

from __future__ import annotations

from fastapi import Request, Response

from storefront_auth.core.config import AuthConfig


def set_refresh_token_cookie(response: Response, token: str, config: AuthConfig) -> None:
    """Attach the refresh token as an http-only, same-site strict cookie."""
    response.set_cookie(
        key=config.cookie_name,
        value=token,
        max_age=config.refresh_token_ttl_seconds,
        path=config.cookie_path,
        secure=config.cookie_secure,
        httponly=True,
        samesite="strict",
    )


def clear_refresh_token_cookie(response: Response, config: AuthConfig) -> None:
    response.set_cookie(
        key=config.cookie_name,
        value="",
        max_age=0,
        path=config.cookie_path,
        secure=config.cookie_secure,
        httponly=True,
        samesite="strict",
    )


def read_refresh_token_cookie(request: Request, config: AuthConfig) -> str | None:
    return request.cookies.get(config.cookie_name) or None


def client_ip_from_request(request: Request, *, trust_forwarded_for: bool = True) -> str:
    """First ``X-Forwarded-For`` hop behind a trusted proxy, else the peer address."""
    if trust_forwarded_for:
        forwarded = request.headers.get("x-forwarded-for", "")
        first_hop = forwarded.split(",")[0].strip()
        if first_hop:
            return first_hop
    return (request.client.host if request.client else "") or "unknown"


def user_agent_from_request(request: Request) -> str:
    return request.headers.get("user-agent", "") or "unknown"
