"""Durable storage for the client-side access token."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Protocol

LOGGER = logging.getLogger(__name__)


class TokenStorage(Protocol):
    def load(self) -> str | None: ...

    def save(self, access_token: str) -> None: ...

    def clear(self) -> None: ...


class MemoryTokenStorage:
    """Keeps the token for the lifetime of the process only."""

    def __init__(self, access_token: str | None = None) -> None:
        self._access_token = access_token

    def load(self) -> str | None:
        return self._access_token

    def save(self, access_token: str) -> None:
        self._access_token = access_token

    def clear(self) -> None:
        self._access_token = None


class FileTokenStorage:
    """JSON file mirror of the access token so it survives restarts."""

    def __init__(self, path: Path) -> None:
        self._path = path

    def load(self) -> str | None:
        if not self._path.exists():
            return None
        try:
            payload = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            LOGGER.warning("token_storage_unreadable", extra={"path": str(self._path)})
            return None
        if not isinstance(payload, dict):
            return None
        token = payload.get("access_token")
        return token if isinstance(token, str) and token else None

    def save(self, access_token: str) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(json.dumps({"access_token": access_token}), encoding="utf-8")

    def clear(self) -> None:
        self._path.unlink(missing_ok=True)
