"""Application configuration loaded from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass

_TRUTHY = {"1", "true", "yes", "on"}


def _env_str(name: str, default: str) -> str:
    """Stripped value; blank counts as unset."""
    return os.getenv(name, "").strip() or default


def _env_int(name: str, default: int) -> int:
    return int(_env_str(name, str(default)))


def _env_float(name: str, default: float) -> float:
    return float(_env_str(name, str(default)))


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name, "").strip().lower()
    if not raw:
        return default
    return raw in _TRUTHY


def _env_list(name: str, default: str) -> list[str]:
    return [item.strip() for item in _env_str(name, default).split(",") if item.strip()]


@dataclass(frozen=True)
class AuthConfig:
    """Token, cookie and bootstrap-admin configuration."""

    secret_key: str
    issuer: str
    access_token_ttl_seconds: int
    refresh_token_ttl_seconds: int
    cookie_name: str
    cookie_path: str
    cookie_secure: bool
    trust_forwarded_for: bool
    admin_email: str
    admin_password: str


@dataclass(frozen=True)
class SecurityConfig:
    """API perimeter security settings."""

    cors_allowed_origins: list[str]
    request_max_bytes: int
    csrf_token_ttl_seconds: int
    login_rate_limit_max_attempts: int
    login_rate_limit_window_seconds: int
    login_rate_limit_block_seconds: int


@dataclass(frozen=True)
class SweepConfig:
    """Intervals of the background cleanup tasks."""

    refresh_tokens_seconds: float
    csrf_tokens_seconds: float
    rate_limit_seconds: float


@dataclass(frozen=True)
class StorageConfig:
    """Credential store location."""

    auth_store_dir: str
    mongodb_uri: str
    mongodb_db: str


@dataclass(frozen=True)
class LoggingConfig:
    """Structured logging configuration."""

    level: str


@dataclass(frozen=True)
class AppConfig:
    """Top-level application configuration."""

    environment: str
    auth: AuthConfig
    security: SecurityConfig
    sweeps: SweepConfig
    storage: StorageConfig
    logging: LoggingConfig

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @staticmethod
    def from_env() -> "AppConfig":
        """Build app config from process environment."""
        environment = _env_str("APP_ENV", "development").lower()
        return AppConfig(
            environment=environment,
            auth=AuthConfig(
                secret_key=_env_str("AUTH_SECRET_KEY", "dev-insecure-secret-change-me"),
                issuer=_env_str("AUTH_ISSUER", "storefront"),
                access_token_ttl_seconds=_env_int("AUTH_ACCESS_TOKEN_TTL_SECONDS", 15 * 60),
                refresh_token_ttl_seconds=_env_int(
                    "AUTH_REFRESH_TOKEN_TTL_SECONDS", 7 * 24 * 60 * 60
                ),
                cookie_name="refreshToken",
                cookie_path=_env_str("AUTH_COOKIE_PATH", "/api/auth"),
                cookie_secure=environment == "production",
                trust_forwarded_for=_env_bool("AUTH_TRUST_FORWARDED_FOR", True),
                admin_email=_env_str("AUTH_ADMIN_EMAIL", "").lower(),
                admin_password=_env_str("AUTH_ADMIN_PASSWORD", ""),
            ),
            security=SecurityConfig(
                cors_allowed_origins=_env_list(
                    "CORS_ALLOWED_ORIGINS", "http://localhost:5173,http://localhost:2923"
                ),
                request_max_bytes=_env_int("REQUEST_MAX_BYTES", 1024 * 1024),
                csrf_token_ttl_seconds=_env_int("CSRF_TOKEN_TTL_SECONDS", 60 * 60),
                login_rate_limit_max_attempts=_env_int("LOGIN_RATE_LIMIT_MAX_ATTEMPTS", 5),
                login_rate_limit_window_seconds=_env_int(
                    "LOGIN_RATE_LIMIT_WINDOW_SECONDS", 15 * 60
                ),
                login_rate_limit_block_seconds=_env_int(
                    "LOGIN_RATE_LIMIT_BLOCK_SECONDS", 30 * 60
                ),
            ),
            sweeps=SweepConfig(
                refresh_tokens_seconds=_env_float("SWEEP_REFRESH_TOKENS_SECONDS", 60 * 60),
                csrf_tokens_seconds=_env_float("SWEEP_CSRF_TOKENS_SECONDS", 10 * 60),
                rate_limit_seconds=_env_float("SWEEP_RATE_LIMIT_SECONDS", 5 * 60),
            ),
            storage=StorageConfig(
                auth_store_dir=_env_str("AUTH_STORE_DIR", "runtime/auth_store"),
                mongodb_uri=_env_str("MONGODB_URI", ""),
                mongodb_db=_env_str("MONGODB_DB", "storefront"),
            ),
            logging=LoggingConfig(level=_env_str("LOG_LEVEL", "INFO")),
        )
