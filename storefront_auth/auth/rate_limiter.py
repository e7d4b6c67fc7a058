"""Login brute-force protection keyed by client IP.

State is per process. A deployment with several instances needs a shared
store behind ``ExpiringStore``; a distributed attacker rotating IPs is not
stopped by this limiter.
"""

from __future__ import annotations

import logging
import math

from storefront_auth.api.errors import RateLimited
from storefront_auth.auth.models import RateLimitDecision, RateLimitEntry
from storefront_auth.core.stores import Clock, ExpiringStore, InMemoryStore, system_clock

LOGGER = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 5
DEFAULT_WINDOW_SECONDS = 15 * 60
DEFAULT_BLOCK_SECONDS = 30 * 60


class LoginRateLimiter:
    """Clean / tracking / blocked state machine over failed logins per IP."""

    def __init__(
        self,
        *,
        store: ExpiringStore[RateLimitEntry] | None = None,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        window_seconds: int = DEFAULT_WINDOW_SECONDS,
        block_seconds: int = DEFAULT_BLOCK_SECONDS,
        clock: Clock = system_clock,
    ) -> None:
        """Initialize limiter storage and policy parameters."""
        self._store: ExpiringStore[RateLimitEntry] = (
            store if store is not None else InMemoryStore()
        )
        self._max_attempts = max(1, int(max_attempts))
        self._window_seconds = max(1, int(window_seconds))
        self._block_seconds = max(1, int(block_seconds))
        self._clock = clock

    def check(self, ip: str) -> RateLimitDecision:
        now = self._clock()
        entry = self._store.get(ip)
        if entry is None:
            return RateLimitDecision(allowed=True, remaining_attempts=self._max_attempts)

        if entry.blocked_until is not None:
            if now < entry.blocked_until:
                return RateLimitDecision(
                    allowed=False,
                    remaining_attempts=0,
                    blocked_for_minutes=math.ceil((entry.blocked_until - now) / 60),
                )
            self._store.delete(ip)
            return RateLimitDecision(allowed=True, remaining_attempts=self._max_attempts)

        if now - entry.first_attempt_at > self._window_seconds:
            self._store.delete(ip)
            return RateLimitDecision(allowed=True, remaining_attempts=self._max_attempts)

        remaining = self._max_attempts - entry.attempts
        return RateLimitDecision(allowed=remaining > 0, remaining_attempts=max(0, remaining))

    def assert_allowed(self, ip: str) -> RateLimitDecision:
        """Raise 429 while the IP is blocked, otherwise return the decision."""
        decision = self.check(ip)
        if not decision.allowed:
            LOGGER.warning("login_blocked", extra={"client_ip": ip})
            # A tracking entry that ran out of attempts without a block time
            # reports the full block duration.
            minutes = decision.blocked_for_minutes or math.ceil(self._block_seconds / 60)
            raise RateLimited(minutes)
        return decision

    def record_failure(self, ip: str) -> None:
        now = self._clock()
        newly_blocked = False

        def count_failure(entry: RateLimitEntry | None) -> RateLimitEntry:
            nonlocal newly_blocked
            if entry is None or self._is_stale(entry, now):
                entry = RateLimitEntry(attempts=1, first_attempt_at=now)
            else:
                entry.attempts += 1
            if entry.attempts >= self._max_attempts and entry.blocked_until is None:
                entry.blocked_until = now + self._block_seconds
                newly_blocked = True
            return entry

        entry = self._store.update(ip, count_failure)
        if newly_blocked:
            LOGGER.warning(
                "login_ip_blocked attempts=%s block_minutes=%s",
                entry.attempts,
                self._block_seconds // 60,
                extra={"client_ip": ip},
            )

    def _is_stale(self, entry: RateLimitEntry, now: float) -> bool:
        if entry.blocked_until is not None:
            return now >= entry.blocked_until
        return now - entry.first_attempt_at > self._window_seconds

    def clear(self, ip: str) -> None:
        """Forget all failures of ``ip``; called after a successful login."""
        self._store.delete(ip)

    def sweep(self) -> int:
        """Drop entries whose window elapsed and that are not currently blocked."""
        now = self._clock()
        return self._store.sweep(
            lambda entry: now - entry.first_attempt_at > self._window_seconds
            and (entry.blocked_until is None or now > entry.blocked_until)
        )
