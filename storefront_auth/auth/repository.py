"""Credential store: admin identities and refresh token records."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from threading import Lock
from typing import Any, Protocol

from pymongo import MongoClient
from pymongo.errors import PyMongoError

from storefront_auth.auth.models import Admin, RefreshTokenRecord
from storefront_auth.core.config import StorageConfig

LOGGER = logging.getLogger(__name__)


class CredentialStore(Protocol):
    """Narrow persistence interface consumed by the token service."""

    def find_admin_by_email(self, email: str) -> Admin | None: ...

    def find_admin_by_id(self, admin_id: str) -> Admin | None: ...

    def create_refresh_token(self, record: RefreshTokenRecord) -> None: ...

    def find_active_refresh_token_by_hash(
        self, token_hash: str, now: float
    ) -> RefreshTokenRecord | None: ...

    def mark_refresh_token_revoked(self, token_id: str) -> bool: ...

    def revoke_all_for_admin(self, admin_id: str) -> int: ...

    def delete_expired_or_revoked_refresh_tokens(self, now: float) -> int: ...


class AuthRepository:
    """Credential store with MongoDB primary and JSON file fallback."""

    def __init__(self, config: StorageConfig, *, app_root: Path | None = None) -> None:
        """Initialize repository storage backends."""
        store_dir = Path(config.auth_store_dir)
        if not store_dir.is_absolute() and app_root is not None:
            store_dir = app_root / store_dir
        self._fallback_dir = store_dir
        self._fallback_dir.mkdir(parents=True, exist_ok=True)
        self._admins_file = self._fallback_dir / "admins.json"
        self._refresh_file = self._fallback_dir / "refresh_tokens.json"
        self._file_lock = Lock()

        self._mongo_admins = None
        self._mongo_refresh = None

        if config.mongodb_uri:
            try:
                client: MongoClient[dict[str, Any]] = MongoClient(
                    config.mongodb_uri, serverSelectionTimeoutMS=3000
                )
                client.admin.command("ping")
                db = client[config.mongodb_db]
                self._mongo_admins = db["auth_admins"]
                self._mongo_refresh = db["auth_refresh_tokens"]
            except PyMongoError:
                LOGGER.warning("mongo_unavailable_using_file_store", exc_info=True)
                self._mongo_admins = None
                self._mongo_refresh = None

    @property
    def backend(self) -> str:
        return "mongo" if self._mongo_refresh is not None else "file"

    def _read_json_file(self, path: Path) -> list[dict[str, Any]]:
        """Read list payload from JSON file with empty fallback."""
        if not path.exists():
            return []
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            LOGGER.warning("auth_store_unreadable", extra={"path": str(path)})
            return []
        return payload if isinstance(payload, list) else []

    def _write_json_file(self, path: Path, items: list[dict[str, Any]]) -> None:
        """Persist list payload atomically via a temp file."""
        tmp_path = path.with_suffix(path.suffix + ".tmp")
        tmp_path.write_text(json.dumps(items, ensure_ascii=False, indent=2), encoding="utf-8")
        tmp_path.replace(path)

    # Admins

    def find_admin_by_email(self, email: str) -> Admin | None:
        key = email.strip().lower()
        if self._mongo_admins is not None:
            doc = self._mongo_admins.find_one({"email": key}, {"_id": 0})
            return Admin.model_validate(doc) if doc else None

        for row in self._read_json_file(self._admins_file):
            if str(row.get("email", "")).strip().lower() == key:
                return Admin.model_validate(row)
        return None

    def find_admin_by_id(self, admin_id: str) -> Admin | None:
        if self._mongo_admins is not None:
            doc = self._mongo_admins.find_one({"admin_id": admin_id}, {"_id": 0})
            return Admin.model_validate(doc) if doc else None

        for row in self._read_json_file(self._admins_file):
            if str(row.get("admin_id", "")) == admin_id:
                return Admin.model_validate(row)
        return None

    def upsert_admin(self, admin: Admin) -> None:
        """Create or replace an admin by email. Used by seeding only."""
        doc = admin.model_copy(update={"email": admin.email.strip().lower()}).model_dump()
        if self._mongo_admins is not None:
            self._mongo_admins.update_one({"email": doc["email"]}, {"$set": doc}, upsert=True)
            return

        with self._file_lock:
            items = self._read_json_file(self._admins_file)
            next_items = [
                row
                for row in items
                if str(row.get("email", "")).strip().lower() != doc["email"]
            ]
            next_items.append(doc)
            self._write_json_file(self._admins_file, next_items)

    # Refresh tokens

    def create_refresh_token(self, record: RefreshTokenRecord) -> None:
        doc = record.model_dump()
        if self._mongo_refresh is not None:
            self._mongo_refresh.insert_one(dict(doc))
            return

        with self._file_lock:
            items = self._read_json_file(self._refresh_file)
            items.append(doc)
            self._write_json_file(self._refresh_file, items)

    def find_active_refresh_token_by_hash(
        self, token_hash: str, now: float
    ) -> RefreshTokenRecord | None:
        """Return the record only when it is unrevoked and unexpired in one read."""
        if self._mongo_refresh is not None:
            doc = self._mongo_refresh.find_one(
                {"token_hash": token_hash, "revoked": False, "expires_at": {"$gt": now}},
                {"_id": 0},
            )
            return RefreshTokenRecord.model_validate(doc) if doc else None

        with self._file_lock:
            rows = self._read_json_file(self._refresh_file)
        for row in rows:
            if str(row.get("token_hash", "")) != token_hash:
                continue
            record = RefreshTokenRecord.model_validate(row)
            if record.is_active(now):
                return record
        return None

    def get_refresh_token(self, token_id: str) -> RefreshTokenRecord | None:
        if self._mongo_refresh is not None:
            doc = self._mongo_refresh.find_one({"token_id": token_id}, {"_id": 0})
            return RefreshTokenRecord.model_validate(doc) if doc else None

        for row in self._read_json_file(self._refresh_file):
            if str(row.get("token_id", "")) == token_id:
                return RefreshTokenRecord.model_validate(row)
        return None

    def mark_refresh_token_revoked(self, token_id: str) -> bool:
        """Revoke one unrevoked token; False when it was already revoked or gone."""
        if self._mongo_refresh is not None:
            result = self._mongo_refresh.update_one(
                {"token_id": token_id, "revoked": False}, {"$set": {"revoked": True}}
            )
            return result.modified_count == 1

        with self._file_lock:
            items = self._read_json_file(self._refresh_file)
            for row in items:
                if str(row.get("token_id", "")) == token_id and not row.get("revoked"):
                    row["revoked"] = True
                    self._write_json_file(self._refresh_file, items)
                    return True
            return False

    def revoke_all_for_admin(self, admin_id: str) -> int:
        """Revoke every still-unrevoked token of one admin and return how many."""
        if self._mongo_refresh is not None:
            result = self._mongo_refresh.update_many(
                {"admin_id": admin_id, "revoked": False}, {"$set": {"revoked": True}}
            )
            return int(result.modified_count)

        revoked = 0
        with self._file_lock:
            items = self._read_json_file(self._refresh_file)
            for row in items:
                if str(row.get("admin_id", "")) == admin_id and not row.get("revoked"):
                    row["revoked"] = True
                    revoked += 1
            self._write_json_file(self._refresh_file, items)
        return revoked

    def delete_expired_or_revoked_refresh_tokens(self, now: float) -> int:
        if self._mongo_refresh is not None:
            result = self._mongo_refresh.delete_many(
                {"$or": [{"expires_at": {"$lt": now}}, {"revoked": True}]}
            )
            return int(result.deleted_count)

        with self._file_lock:
            items = self._read_json_file(self._refresh_file)
            kept = [
                row
                for row in items
                if not row.get("revoked") and int(row.get("expires_at") or 0) >= now
            ]
            self._write_json_file(self._refresh_file, kept)
        return len(items) - len(kept)

    def count_refresh_tokens(self) -> int:
        if self._mongo_refresh is not None:
            return int(self._mongo_refresh.count_documents({}))
        return len(self._read_json_file(self._refresh_file))
