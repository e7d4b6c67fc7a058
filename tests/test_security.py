from __future__ import annotations

import pytest

from storefront_auth.core.security import (
    TokenExpiredError,
    TokenInvalidError,
    build_signed_token,
    decode_signed_token,
    generate_opaque_token,
    hash_password,
    sha256_hex,
    verify_password,
)


def test_password_hash_verifies_only_the_original_password() -> None:
    hashed = hash_password("pão de queijo")

    assert hashed.startswith("$2b$12$")
    assert verify_password("pão de queijo", hashed) is True
    assert verify_password("pao de queijo", hashed) is False


def test_password_hashes_are_salted() -> None:
    assert hash_password("same") != hash_password("same")


def test_verify_password_rejects_malformed_hash() -> None:
    assert verify_password("secret", "not-a-bcrypt-hash") is False


def test_signed_token_round_trips_payload() -> None:
    token = build_signed_token({"sub": "a1", "exp": 2_000}, "key")

    assert token.count(".") == 2
    assert decode_signed_token(token, "key", now=1_000)["sub"] == "a1"


def test_expired_token_is_distinguished_from_invalid() -> None:
    token = build_signed_token({"sub": "a1", "exp": 2_000}, "key")

    with pytest.raises(TokenExpiredError):
        decode_signed_token(token, "key", now=2_000)
    with pytest.raises(TokenInvalidError):
        decode_signed_token(token, "other-key", now=2_000)


@pytest.mark.parametrize(
    "token",
    ["", "abc", "a.b", "a..c", "header.payload.signature"],
)
def test_malformed_tokens_are_invalid(token: str) -> None:
    with pytest.raises(TokenInvalidError):
        decode_signed_token(token, "key", now=0)


def test_tampered_payload_is_invalid() -> None:
    token = build_signed_token({"sub": "a1", "exp": 2_000}, "key")
    forged = build_signed_token({"sub": "root", "exp": 2_000}, "key")
    header, _, signature = token.split(".")
    mixed = ".".join([header, forged.split(".")[1], signature])

    with pytest.raises(TokenInvalidError):
        decode_signed_token(mixed, "key", now=1_000)


def test_token_without_expiry_is_invalid() -> None:
    token = build_signed_token({"sub": "a1"}, "key")

    with pytest.raises(TokenInvalidError):
        decode_signed_token(token, "key", now=0)


def test_opaque_token_and_hash_shapes() -> None:
    token = generate_opaque_token(64)

    assert len(token) == 128
    assert len(sha256_hex(token)) == 64
    assert sha256_hex(token) == sha256_hex(token)
