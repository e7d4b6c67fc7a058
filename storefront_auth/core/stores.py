"""Injectable in-process key/value stores for short-lived auth state."""

from __future__ import annotations

import time
from threading import Lock
from typing import Callable, Generic, Protocol, TypeVar

V = TypeVar("V")

Clock = Callable[[], float]


def system_clock() -> float:
    return time.time()


class ExpiringStore(Protocol[V]):
    """Minimal store contract used by the rate limiter and CSRF issuer."""

    def get(self, key: str) -> V | None: ...

    def set(self, key: str, value: V) -> None: ...

    def update(self, key: str, change: Callable[[V | None], V]) -> V: ...

    def delete(self, key: str) -> V | None: ...

    def sweep(self, should_remove: Callable[[V], bool]) -> int: ...


class InMemoryStore(Generic[V]):
    """Thread-safe dict wrapper; one instance per app (or per test)."""

    def __init__(self) -> None:
        self._items: dict[str, V] = {}
        self._lock = Lock()

    def get(self, key: str) -> V | None:
        with self._lock:
            return self._items.get(key)

    def set(self, key: str, value: V) -> None:
        with self._lock:
            self._items[key] = value

    def update(self, key: str, change: Callable[[V | None], V]) -> V:
        """Replace the value with ``change(current)`` under one lock hold."""
        with self._lock:
            value = change(self._items.get(key))
            self._items[key] = value
            return value

    def delete(self, key: str) -> V | None:
        """Remove key and return the removed value, if any."""
        with self._lock:
            return self._items.pop(key, None)

    def sweep(self, should_remove: Callable[[V], bool]) -> int:
        """Delete every entry matching ``should_remove``; iterates over a key snapshot."""
        removed = 0
        with self._lock:
            for key in list(self._items.keys()):
                value = self._items.get(key)
                if value is not None and should_remove(value):
                    del self._items[key]
                    removed += 1
        return removed

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._items
