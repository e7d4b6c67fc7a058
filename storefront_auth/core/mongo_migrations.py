"""Versioned MongoDB index migrations for the credential store."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable

import pymongo
from pymongo.errors import PyMongoError

from storefront_auth.core.config import StorageConfig
from storefront_auth.core.logging import CORRELATION_ID_CTX

MigrationFn = Callable[[Any], None]

LOGGER = logging.getLogger(__name__)


def _migration_01_auth_indexes(db: Any) -> None:
    db["auth_admins"].create_index("email", unique=True)
    db["auth_admins"].create_index("admin_id", unique=True)
    db["auth_refresh_tokens"].create_index("token_id", unique=True)
    db["auth_refresh_tokens"].create_index("token_hash", unique=True)
    db["auth_refresh_tokens"].create_index("admin_id")


def _migration_02_refresh_token_cleanup_index(db: Any) -> None:
    db["auth_refresh_tokens"].create_index(
        [("revoked", pymongo.ASCENDING), ("expires_at", pymongo.ASCENDING)],
        name="idx_auth_refresh_tokens_revoked_expires_at",
    )


MIGRATIONS: list[tuple[str, MigrationFn]] = [
    ("01_auth_indexes", _migration_01_auth_indexes),
    ("02_refresh_token_cleanup_index", _migration_02_refresh_token_cleanup_index),
]


def apply_mongo_migrations(config: StorageConfig) -> list[str]:
    """Apply pending migrations when a Mongo URI is configured; return applied ids."""
    if not config.mongodb_uri:
        return []

    applied: list[str] = []
    client: Any = pymongo.MongoClient(config.mongodb_uri, serverSelectionTimeoutMS=3000)
    try:
        client.admin.command("ping")
        db = client[config.mongodb_db]
        migration_collection = db["schema_migrations"]
        migration_collection.create_index("migration_id", unique=True)

        for migration_id, migration_fn in MIGRATIONS:
            if migration_collection.find_one({"migration_id": migration_id}):
                continue
            migration_fn(db)
            migration_collection.insert_one(
                {
                    "migration_id": migration_id,
                    "applied_at": datetime.now(timezone.utc),
                    "correlation_id": CORRELATION_ID_CTX.get(),
                }
            )
            applied.append(migration_id)
    except PyMongoError:
        LOGGER.warning("mongo_migrations_skipped", exc_info=True)
    finally:
        client.close()
    return applied
