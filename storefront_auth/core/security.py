"""Security primitives: password hashing, token signing and random tokens."""

from __future__ import annotations

import base64
import hashlib
import hmac
import json
import secrets
import time
from typing import Any

import bcrypt

BCRYPT_COST = 12
# bcrypt ignores everything past 72 bytes; truncate explicitly so that
# hashing and verifying always see the same input.
BCRYPT_MAX_BYTES = 72


class TokenError(ValueError):
    """Signed token could not be accepted."""


class TokenExpiredError(TokenError):
    """Signature is valid but the ``exp`` claim is in the past."""


class TokenInvalidError(TokenError):
    """Token is malformed or its signature does not match."""


def _b64url_encode(raw: bytes) -> str:
    """Return URL-safe base64 string without padding."""
    return base64.urlsafe_b64encode(raw).decode("utf-8").rstrip("=")


def _b64url_decode(value: str) -> bytes:
    """Decode URL-safe base64 string with optional missing padding."""
    padding = "=" * (-len(value) % 4)
    return base64.urlsafe_b64decode((value + padding).encode("utf-8"))


def _prepare_password(password: str) -> bytes:
    return password.encode("utf-8")[:BCRYPT_MAX_BYTES]


def hash_password(password: str) -> str:
    """Hash password with bcrypt using a fresh random salt."""
    salt = bcrypt.gensalt(rounds=BCRYPT_COST)
    return bcrypt.hashpw(_prepare_password(password), salt).decode("utf-8")


def verify_password(password: str, stored_hash: str) -> bool:
    """Check password against a stored bcrypt hash; malformed hashes never match."""
    try:
        return bcrypt.checkpw(_prepare_password(password), stored_hash.encode("utf-8"))
    except ValueError:
        return False


def build_signed_token(payload: dict[str, Any], secret_key: str) -> str:
    """Create compact HS256 token using the JWT three-part structure."""
    header = {"alg": "HS256", "typ": "JWT"}
    header_part = _b64url_encode(json.dumps(header, separators=(",", ":")).encode("utf-8"))
    payload_part = _b64url_encode(json.dumps(payload, separators=(",", ":")).encode("utf-8"))
    signing_input = f"{header_part}.{payload_part}".encode("utf-8")
    signature = hmac.new(secret_key.encode("utf-8"), signing_input, hashlib.sha256).digest()
    return f"{header_part}.{payload_part}.{_b64url_encode(signature)}"


def decode_signed_token(
    token: str, secret_key: str, *, now: float | None = None
) -> dict[str, Any]:
    """Verify signature and expiry of a compact token and return its payload.

    Raises ``TokenExpiredError`` only after the signature checked out, so an
    expired token is never confused with a forged one.
    """
    parts = token.split(".")
    if len(parts) != 3 or not all(parts):
        raise TokenInvalidError("Malformed token")
    header_part, payload_part, signature_part = parts

    signing_input = f"{header_part}.{payload_part}".encode("utf-8")
    expected_sig = hmac.new(secret_key.encode("utf-8"), signing_input, hashlib.sha256).digest()
    try:
        got_sig = _b64url_decode(signature_part)
        header = json.loads(_b64url_decode(header_part).decode("utf-8"))
    except (ValueError, UnicodeDecodeError) as exc:
        raise TokenInvalidError("Malformed token") from exc
    if not isinstance(header, dict) or header.get("alg") != "HS256":
        raise TokenInvalidError("Unsupported token algorithm")
    if not hmac.compare_digest(expected_sig, got_sig):
        raise TokenInvalidError("Invalid token signature")

    try:
        payload = json.loads(_b64url_decode(payload_part).decode("utf-8"))
    except (ValueError, UnicodeDecodeError) as exc:
        raise TokenInvalidError("Invalid token payload") from exc
    if not isinstance(payload, dict):
        raise TokenInvalidError("Invalid token payload")

    try:
        exp = int(payload.get("exp") or 0)
    except (TypeError, ValueError) as exc:
        raise TokenInvalidError("Invalid token expiry") from exc
    if not exp:
        raise TokenInvalidError("Missing token expiry")
    current = time.time() if now is None else now
    if exp <= int(current):
        raise TokenExpiredError("Token expired")

    return payload


def generate_opaque_token(num_bytes: int = 64) -> str:
    """Return a random hex token carrying no payload."""
    return secrets.token_hex(num_bytes)


def sha256_hex(value: str) -> str:
    """Hash raw token for storage and lookup."""
    return hashlib.sha256(value.encode("utf-8")).hexdigest()
