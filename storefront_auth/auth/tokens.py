"""Access and refresh token issuance, verification, rotation and revocation."""

from __future__ import annotations

import logging
import uuid

from storefront_auth.api.errors import TokenExpired, TokenInvalid
from storefront_auth.auth.models import AccessClaims, RedeemedRefreshToken, RefreshTokenRecord
from storefront_auth.auth.repository import CredentialStore
from storefront_auth.core.config import AuthConfig
from storefront_auth.core.security import (
    TokenExpiredError,
    TokenInvalidError,
    build_signed_token,
    decode_signed_token,
    generate_opaque_token,
    sha256_hex,
)
from storefront_auth.core.stores import Clock, system_clock

LOGGER = logging.getLogger(__name__)

USER_AGENT_MAX_LENGTH = 500
REFRESH_TOKEN_BYTES = 64


class TokenService:
    """Stateless access tokens plus hashed, rotating refresh tokens."""

    def __init__(
        self, repo: CredentialStore, config: AuthConfig, *, clock: Clock = system_clock
    ) -> None:
        self._repo = repo
        self._config = config
        self._clock = clock

    @property
    def access_token_ttl_seconds(self) -> int:
        return self._config.access_token_ttl_seconds

    def issue_access_token(self, admin_id: str, email: str) -> str:
        now_ts = int(self._clock())
        payload = {
            "iss": self._config.issuer,
            "sub": admin_id,
            "email": email,
            "type": "access",
            "iat": now_ts,
            "exp": now_ts + self._config.access_token_ttl_seconds,
            "jti": uuid.uuid4().hex,
        }
        return build_signed_token(payload, self._config.secret_key)

    def verify_access_token(self, token: str) -> AccessClaims:
        """Return claims or raise ``TokenExpired`` / ``TokenInvalid``."""
        try:
            payload = decode_signed_token(token, self._config.secret_key, now=self._clock())
        except TokenExpiredError as exc:
            raise TokenExpired() from exc
        except TokenInvalidError as exc:
            raise TokenInvalid() from exc

        if str(payload.get("iss") or "") != self._config.issuer:
            raise TokenInvalid()
        if str(payload.get("type") or "") != "access":
            raise TokenInvalid()
        admin_id = str(payload.get("sub") or "")
        if not admin_id:
            raise TokenInvalid()
        return AccessClaims(admin_id=admin_id, email=str(payload.get("email") or ""))

    @staticmethod
    def issue_refresh_token() -> str:
        return generate_opaque_token(REFRESH_TOKEN_BYTES)

    @staticmethod
    def hash_refresh_token(raw_token: str) -> str:
        return sha256_hex(raw_token)

    def persist_refresh_token(
        self, admin_id: str, raw_token: str, ip: str, user_agent: str
    ) -> RefreshTokenRecord:
        now_ts = int(self._clock())
        record = RefreshTokenRecord(
            token_id=uuid.uuid4().hex,
            admin_id=admin_id,
            token_hash=self.hash_refresh_token(raw_token),
            issued_at=now_ts,
            expires_at=now_ts + self._config.refresh_token_ttl_seconds,
            revoked=False,
            ip_address=ip or "unknown",
            user_agent=(user_agent or "unknown")[:USER_AGENT_MAX_LENGTH],
        )
        self._repo.create_refresh_token(record)
        return record

    def redeem_refresh_token(self, raw_token: str) -> RedeemedRefreshToken | None:
        """Look up an active record for ``raw_token``.

        Unknown, revoked and expired tokens all yield ``None`` so callers
        cannot tell them apart.
        """
        if not raw_token:
            return None
        record = self._repo.find_active_refresh_token_by_hash(
            self.hash_refresh_token(raw_token), self._clock()
        )
        if record is None:
            return None
        admin = self._repo.find_admin_by_id(record.admin_id)
        if admin is None:
            return None
        return RedeemedRefreshToken(admin=admin, token_id=record.token_id)

    def revoke(self, token_id: str) -> bool:
        """True only for the caller that actually flipped the record."""
        return self._repo.mark_refresh_token_revoked(token_id)

    def revoke_all(self, admin_id: str) -> int:
        revoked = self._repo.revoke_all_for_admin(admin_id)
        LOGGER.info("refresh_tokens_revoked_for_admin", extra={"admin_id": admin_id})
        return revoked

    def sweep_expired(self) -> int:
        """Delete expired or revoked records; safe to run next to issuance."""
        return self._repo.delete_expired_or_revoked_refresh_tokens(self._clock())
