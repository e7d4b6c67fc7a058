"""Authentication service: login, refresh rotation, logout and status."""

from __future__ import annotations

import logging
import secrets
import uuid
from functools import lru_cache

from storefront_auth.api.errors import InvalidCredentials, RefreshTokenInvalid
from storefront_auth.auth.csrf import CsrfTokenIssuer
from storefront_auth.auth.models import AccessClaims, Admin, AuthStatus, IssuedSession
from storefront_auth.auth.repository import AuthRepository, CredentialStore
from storefront_auth.auth.tokens import TokenService
from storefront_auth.core.security import hash_password, verify_password

LOGGER = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def _unknown_admin_hash() -> str:
    """Hash checked for unknown emails so both failures cost one bcrypt round."""
    return hash_password(secrets.token_hex(16))


class AuthService:
    """Composes the credential store, token service and CSRF issuer."""

    def __init__(
        self,
        repo: CredentialStore,
        tokens: TokenService,
        csrf: CsrfTokenIssuer,
    ) -> None:
        """Initialize service dependencies."""
        self._repo = repo
        self._tokens = tokens
        self._csrf = csrf
        _unknown_admin_hash()

    def login(
        self, email: str, password: str, *, client_ip: str, user_agent: str
    ) -> IssuedSession:
        """Check credentials and open a new session.

        Unknown email and wrong password raise the same ``InvalidCredentials``.
        """
        admin = self._repo.find_admin_by_email(email.strip().lower())
        stored_hash = admin.password_hash if admin is not None else _unknown_admin_hash()
        if not verify_password(password, stored_hash) or admin is None:
            LOGGER.info("login_failed", extra={"client_ip": client_ip})
            raise InvalidCredentials()

        session = self._open_session(admin, client_ip=client_ip, user_agent=user_agent)
        LOGGER.info("login_succeeded", extra={"client_ip": client_ip, "admin_id": admin.admin_id})
        return session

    def refresh(
        self, raw_refresh_token: str | None, *, client_ip: str, user_agent: str
    ) -> IssuedSession:
        """Rotate the refresh token: redeem old, revoke old, issue and persist new.

        A crash between revoke and persist leaves the caller without a valid
        refresh token and forces a new login.
        """
        if not raw_refresh_token:
            raise RefreshTokenInvalid(missing=True)

        redeemed = self._tokens.redeem_refresh_token(raw_refresh_token)
        if redeemed is None:
            LOGGER.info("refresh_rejected", extra={"client_ip": client_ip})
            raise RefreshTokenInvalid()

        if not self._tokens.revoke(redeemed.token_id):
            # A concurrent refresh with the same cookie won the rotation.
            LOGGER.warning("refresh_replayed", extra={"client_ip": client_ip})
            raise RefreshTokenInvalid()
        session = self._open_session(
            redeemed.admin, client_ip=client_ip, user_agent=user_agent
        )
        LOGGER.info(
            "refresh_rotated",
            extra={"client_ip": client_ip, "admin_id": redeemed.admin.admin_id},
        )
        return session

    def logout(self, raw_refresh_token: str | None) -> None:
        """Revoke the presented refresh token; failures are logged, never raised."""
        if not raw_refresh_token:
            return
        try:
            redeemed = self._tokens.redeem_refresh_token(raw_refresh_token)
            if redeemed is not None:
                self._tokens.revoke(redeemed.token_id)
                LOGGER.info("logout", extra={"admin_id": redeemed.admin.admin_id})
        except Exception:
            LOGGER.exception("logout_revocation_failed")

    def status(self, raw_refresh_token: str | None) -> AuthStatus:
        """Read-only probe of the refresh cookie."""
        if not raw_refresh_token:
            return AuthStatus(authenticated=False)
        try:
            redeemed = self._tokens.redeem_refresh_token(raw_refresh_token)
        except Exception:
            LOGGER.exception("status_lookup_failed")
            return AuthStatus(authenticated=False)
        if redeemed is None:
            return AuthStatus(authenticated=False)
        return AuthStatus(authenticated=True, email=redeemed.admin.email)

    def verify_access_token(self, token: str) -> AccessClaims:
        return self._tokens.verify_access_token(token)

    def issue_csrf_token(self) -> str:
        return self._csrf.issue()

    def revoke_all_sessions(self, admin_id: str) -> int:
        return self._tokens.revoke_all(admin_id)

    def _open_session(self, admin: Admin, *, client_ip: str, user_agent: str) -> IssuedSession:
        access_token = self._tokens.issue_access_token(admin.admin_id, admin.email)
        refresh_token = self._tokens.issue_refresh_token()
        self._tokens.persist_refresh_token(admin.admin_id, refresh_token, client_ip, user_agent)
        return IssuedSession(
            access_token=access_token,
            refresh_token=refresh_token,
            csrf_token=self._csrf.issue(),
            expires_in=self._tokens.access_token_ttl_seconds,
            admin=admin,
        )


def bootstrap_admin(repo: AuthRepository, email: str, password: str) -> Admin | None:
    """Ensure an admin exists for the configured bootstrap credentials."""
    if not email or not password:
        return None
    existing = repo.find_admin_by_email(email)
    if existing is not None:
        return existing
    admin = Admin(
        admin_id=uuid.uuid4().hex,
        email=email.strip().lower(),
        password_hash=hash_password(password),
    )
    repo.upsert_admin(admin)
    LOGGER.info("bootstrap_admin_created", extra={"admin_id": admin.admin_id})
    return admin
