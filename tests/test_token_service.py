from __future__ import annotations

import pytest

from storefront_auth.api.errors import TokenExpired, TokenInvalid
from storefront_auth.auth.tokens import TokenService
from storefront_auth.core.security import sha256_hex
from tests.fakes import FakeClock, InMemoryCredentialStore, build_config


def _service() -> tuple[TokenService, InMemoryCredentialStore, FakeClock]:
    store = InMemoryCredentialStore()
    store.add_admin()
    clock = FakeClock()
    return TokenService(store, build_config().auth, clock=clock), store, clock


def test_access_token_verifies_until_expiry() -> None:
    tokens, _, clock = _service()
    token = tokens.issue_access_token("admin-1", "admin@sabor.test")

    claims = tokens.verify_access_token(token)
    assert claims.admin_id == "admin-1"
    assert claims.email == "admin@sabor.test"

    clock.advance(900)
    with pytest.raises(TokenExpired) as exc:
        tokens.verify_access_token(token)
    assert exc.value.detail["code"] == "TOKEN_EXPIRED"


def test_access_token_from_other_issuer_or_secret_is_invalid() -> None:
    tokens, store, clock = _service()
    foreign = TokenService(store, build_config(issuer="elsewhere").auth, clock=clock)
    other_secret = TokenService(store, build_config(secret_key="nope").auth, clock=clock)

    with pytest.raises(TokenInvalid):
        tokens.verify_access_token(foreign.issue_access_token("admin-1", "a@b.com"))
    with pytest.raises(TokenInvalid):
        tokens.verify_access_token(other_secret.issue_access_token("admin-1", "a@b.com"))
    with pytest.raises(TokenInvalid):
        tokens.verify_access_token("garbage")


def test_refresh_token_is_stored_only_as_hash() -> None:
    tokens, store, clock = _service()
    raw = tokens.issue_refresh_token()

    record = tokens.persist_refresh_token("admin-1", raw, "10.0.0.1", "x" * 900)

    assert len(raw) == 128
    assert record.token_hash == sha256_hex(raw)
    assert raw not in record.model_dump_json()
    assert len(record.user_agent) == 500
    assert record.expires_at == int(clock.now) + 7 * 24 * 60 * 60
    assert store.refresh_tokens[record.token_id].ip_address == "10.0.0.1"


def test_redeem_returns_admin_and_record_id() -> None:
    tokens, _, _ = _service()
    raw = tokens.issue_refresh_token()
    record = tokens.persist_refresh_token("admin-1", raw, "ip", "ua")

    redeemed = tokens.redeem_refresh_token(raw)

    assert redeemed is not None
    assert redeemed.token_id == record.token_id
    assert redeemed.admin.email == "admin@sabor.test"


def test_revoked_expired_and_unknown_tokens_are_indistinguishable() -> None:
    tokens, _, clock = _service()
    revoked_raw = tokens.issue_refresh_token()
    revoked = tokens.persist_refresh_token("admin-1", revoked_raw, "ip", "ua")
    tokens.revoke(revoked.token_id)
    expiring_raw = tokens.issue_refresh_token()
    tokens.persist_refresh_token("admin-1", expiring_raw, "ip", "ua")

    clock.advance(7 * 24 * 60 * 60 + 1)

    assert tokens.redeem_refresh_token(revoked_raw) is None
    assert tokens.redeem_refresh_token(expiring_raw) is None
    assert tokens.redeem_refresh_token("unknown") is None
    assert tokens.redeem_refresh_token("") is None


def test_redeem_fails_when_admin_no_longer_exists() -> None:
    tokens, store, _ = _service()
    raw = tokens.issue_refresh_token()
    tokens.persist_refresh_token("admin-1", raw, "ip", "ua")
    store.admins.clear()

    assert tokens.redeem_refresh_token(raw) is None


def test_revoke_all_marks_every_token_of_admin() -> None:
    tokens, store, _ = _service()
    store.add_admin(admin_id="admin-2", email="other@sabor.test")
    first = tokens.issue_refresh_token()
    second = tokens.issue_refresh_token()
    other = tokens.issue_refresh_token()
    tokens.persist_refresh_token("admin-1", first, "ip", "ua")
    tokens.persist_refresh_token("admin-1", second, "ip", "ua")
    tokens.persist_refresh_token("admin-2", other, "ip", "ua")

    assert tokens.revoke_all("admin-1") == 2
    assert tokens.redeem_refresh_token(first) is None
    assert tokens.redeem_refresh_token(second) is None
    assert tokens.redeem_refresh_token(other) is not None


def test_sweep_deletes_expired_and_revoked_records() -> None:
    tokens, store, clock = _service()
    live = tokens.issue_refresh_token()
    tokens.persist_refresh_token("admin-1", live, "ip", "ua")
    revoked = tokens.persist_refresh_token("admin-1", tokens.issue_refresh_token(), "ip", "ua")
    tokens.revoke(revoked.token_id)

    assert tokens.sweep_expired() == 1
    assert tokens.sweep_expired() == 0
    assert tokens.redeem_refresh_token(live) is not None

    clock.advance(7 * 24 * 60 * 60 + 1)
    assert tokens.sweep_expired() == 1
    assert store.refresh_tokens == {}
