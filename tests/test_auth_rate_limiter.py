from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor

import pytest

from storefront_auth.api.errors import RateLimited
from storefront_auth.auth.rate_limiter import LoginRateLimiter
from storefront_auth.core.stores import InMemoryStore
from tests.fakes import FakeClock


def _limiter(clock: FakeClock) -> LoginRateLimiter:
    return LoginRateLimiter(
        store=InMemoryStore(),
        max_attempts=5,
        window_seconds=15 * 60,
        block_seconds=30 * 60,
        clock=clock,
    )


def test_rate_limiter_blocks_after_five_failures_and_recovers() -> None:
    clock = FakeClock()
    limiter = _limiter(clock)

    for _ in range(5):
        assert limiter.check("10.0.0.1").allowed is True
        limiter.record_failure("10.0.0.1")

    blocked = limiter.check("10.0.0.1")
    assert blocked.allowed is False
    assert blocked.remaining_attempts == 0
    assert blocked.blocked_for_minutes == 30

    clock.advance(29 * 60 + 1)
    assert limiter.check("10.0.0.1").blocked_for_minutes == 1

    clock.advance(60)
    recovered = limiter.check("10.0.0.1")
    assert recovered.allowed is True
    assert recovered.remaining_attempts == 5


def test_rate_limiter_counts_remaining_attempts() -> None:
    limiter = _limiter(FakeClock())

    limiter.record_failure("10.0.0.2")
    limiter.record_failure("10.0.0.2")

    decision = limiter.check("10.0.0.2")
    assert decision.allowed is True
    assert decision.remaining_attempts == 3
    assert decision.blocked_for_minutes is None


def test_rate_limiter_window_expiry_resets_counter() -> None:
    clock = FakeClock()
    limiter = _limiter(clock)
    for _ in range(4):
        limiter.record_failure("10.0.0.3")

    clock.advance(15 * 60 + 1)
    limiter.record_failure("10.0.0.3")

    assert limiter.check("10.0.0.3").remaining_attempts == 4


def test_rate_limiter_clear_resets_after_success() -> None:
    limiter = _limiter(FakeClock())
    for _ in range(3):
        limiter.record_failure("10.0.0.4")

    limiter.clear("10.0.0.4")

    assert limiter.check("10.0.0.4").remaining_attempts == 5


def test_rate_limiter_tracks_ips_independently() -> None:
    limiter = _limiter(FakeClock())
    for _ in range(5):
        limiter.record_failure("10.0.0.5")

    assert limiter.check("10.0.0.5").allowed is False
    assert limiter.check("10.0.0.6").allowed is True


def test_assert_allowed_raises_rate_limited_with_minutes() -> None:
    limiter = _limiter(FakeClock())
    for _ in range(5):
        limiter.record_failure("10.0.0.7")

    with pytest.raises(RateLimited) as exc:
        limiter.assert_allowed("10.0.0.7")

    assert exc.value.status_code == 429
    assert exc.value.detail["blockedFor"] == 30
    assert exc.value.detail["error"] == "Muitas tentativas de login"


def test_sweep_removes_stale_entries_but_keeps_blocked_ones() -> None:
    clock = FakeClock()
    store: InMemoryStore = InMemoryStore()
    limiter = LoginRateLimiter(store=store, clock=clock)
    limiter.record_failure("stale")
    for _ in range(5):
        limiter.record_failure("blocked")

    clock.advance(16 * 60)
    removed = limiter.sweep()

    assert removed == 1
    assert "stale" not in store
    assert "blocked" in store

    clock.advance(15 * 60)
    assert limiter.sweep() == 1
    assert len(store) == 0


def test_concurrent_failures_from_one_ip_are_all_counted() -> None:
    store: InMemoryStore = InMemoryStore()
    limiter = LoginRateLimiter(store=store, max_attempts=1000, clock=FakeClock())

    with ThreadPoolExecutor(max_workers=8) as pool:
        list(pool.map(limiter.record_failure, ["10.0.0.9"] * 200))

    entry = store.get("10.0.0.9")
    assert entry is not None
    assert entry.attempts == 200
    assert limiter.check("10.0.0.9").remaining_attempts == 800


def test_in_memory_store_update_passes_current_value() -> None:
    store: InMemoryStore = InMemoryStore()

    assert store.update("k", lambda current: (current or 0) + 1) == 1
    assert store.update("k", lambda current: (current or 0) + 1) == 2
    assert store.get("k") == 2
