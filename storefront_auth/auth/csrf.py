"""Single-use CSRF tokens handed out in response bodies and echoed in a header."""

from __future__ import annotations

import secrets

from storefront_auth.auth.models import CsrfEntry
from storefront_auth.core.stores import Clock, ExpiringStore, InMemoryStore, system_clock

CSRF_HEADER = "X-CSRF-Token"
SAFE_METHODS = frozenset({"GET", "HEAD", "OPTIONS"})
DEFAULT_TTL_SECONDS = 60 * 60


class CsrfTokenIssuer:
    """Issue and consume CSRF tokens; a token validates at most once."""

    def __init__(
        self,
        *,
        store: ExpiringStore[CsrfEntry] | None = None,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        clock: Clock = system_clock,
    ) -> None:
        self._store: ExpiringStore[CsrfEntry] = store if store is not None else InMemoryStore()
        self._ttl_seconds = max(1, int(ttl_seconds))
        self._clock = clock

    def issue(self) -> str:
        token = secrets.token_hex(32)
        self._store.set(token, CsrfEntry(token=token, expires_at=self._clock() + self._ttl_seconds))
        return token

    def validate(self, token: str) -> bool:
        """Consume ``token``; expired or unknown tokens are rejected."""
        if not token:
            return False
        entry = self._store.delete(token)
        if entry is None:
            return False
        return self._clock() <= entry.expires_at

    def sweep(self) -> int:
        now = self._clock()
        return self._store.sweep(lambda entry: now > entry.expires_at)
