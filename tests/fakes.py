from __future__ import annotations

from dataclasses import dataclass, field
from functools import lru_cache

from storefront_auth.auth.models import Admin, RefreshTokenRecord
from storefront_auth.core.config import (
    AppConfig,
    AuthConfig,
    LoggingConfig,
    SecurityConfig,
    StorageConfig,
    SweepConfig,
)
from storefront_auth.core.security import hash_password

ADMIN_EMAIL = "admin@sabor.test"
ADMIN_PASSWORD = "bolo-de-cenoura"
START_TIME = 1_760_000_000.0


@dataclass
class FakeClock:
    now: float = START_TIME

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@lru_cache(maxsize=None)
def password_hash(password: str = ADMIN_PASSWORD) -> str:
    return hash_password(password)


@dataclass
class InMemoryCredentialStore:
    admins: dict[str, Admin] = field(default_factory=dict)
    refresh_tokens: dict[str, RefreshTokenRecord] = field(default_factory=dict)
    created: int = 0

    def add_admin(self, admin_id: str = "admin-1", email: str = ADMIN_EMAIL) -> Admin:
        admin = Admin(admin_id=admin_id, email=email, password_hash=password_hash())
        self.admins[admin_id] = admin
        return admin

    def find_admin_by_email(self, email: str) -> Admin | None:
        for admin in self.admins.values():
            if admin.email == email:
                return admin
        return None

    def find_admin_by_id(self, admin_id: str) -> Admin | None:
        return self.admins.get(admin_id)

    def create_refresh_token(self, record: RefreshTokenRecord) -> None:
        self.created += 1
        self.refresh_tokens[record.token_id] = record

    def find_active_refresh_token_by_hash(
        self, token_hash: str, now: float
    ) -> RefreshTokenRecord | None:
        for record in self.refresh_tokens.values():
            if record.token_hash == token_hash and record.is_active(now):
                return record
        return None

    def mark_refresh_token_revoked(self, token_id: str) -> bool:
        record = self.refresh_tokens.get(token_id)
        if record is None or record.revoked:
            return False
        record.revoked = True
        return True

    def revoke_all_for_admin(self, admin_id: str) -> int:
        revoked = 0
        for record in self.refresh_tokens.values():
            if record.admin_id == admin_id and not record.revoked:
                record.revoked = True
                revoked += 1
        return revoked

    def delete_expired_or_revoked_refresh_tokens(self, now: float) -> int:
        stale = [
            token_id
            for token_id, record in self.refresh_tokens.items()
            if record.revoked or record.expires_at < now
        ]
        for token_id in stale:
            del self.refresh_tokens[token_id]
        return len(stale)


def build_config(**auth_overrides: object) -> AppConfig:
    auth_values: dict[str, object] = {
        "secret_key": "test-secret",
        "issuer": "storefront-test",
        "access_token_ttl_seconds": 900,
        "refresh_token_ttl_seconds": 7 * 24 * 60 * 60,
        "cookie_name": "refreshToken",
        "cookie_path": "/api/auth",
        "cookie_secure": False,
        "trust_forwarded_for": True,
        "admin_email": "",
        "admin_password": "",
    }
    auth_values.update(auth_overrides)
    return AppConfig(
        environment="test",
        auth=AuthConfig(**auth_values),  # type: ignore[arg-type]
        security=SecurityConfig(
            cors_allowed_origins=["http://localhost:5173"],
            request_max_bytes=1024,
            csrf_token_ttl_seconds=3600,
            login_rate_limit_max_attempts=5,
            login_rate_limit_window_seconds=900,
            login_rate_limit_block_seconds=1800,
        ),
        sweeps=SweepConfig(
            refresh_tokens_seconds=3600,
            csrf_tokens_seconds=600,
            rate_limit_seconds=300,
        ),
        storage=StorageConfig(auth_store_dir="", mongodb_uri="", mongodb_db="test"),
        logging=LoggingConfig(level="INFO"),
    )
