from __future__ import annotations

# family_chores/ratelimit.py
import threading
import time
from typing import Callable, Optional, Protocol

from fastapi import Request

from .errors import RateLimited


class RateLimitStore(Protocol):
    def get(self, key: str) -> Optional[int]: ...
    def set(self, key: str, value: int, ttl_seconds: float) -> None: ...
    def increment(self, key: str, ttl_seconds: float) -> tuple[int, float]: ...
    def sweep(self) -> int: ...


class InMemoryRateLimitStore:
    """Counter store backed by a dict; each key expires ttl seconds after it was first counted."""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._data: dict[str, tuple[int, float]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[int]:
        with self._lock:
            item = self._data.get(key)
            if item is None or item[1] <= self._clock():
                return None
            return item[0]

    def set(self, key: str, value: int, ttl_seconds: float) -> None:
        with self._lock:
            self._data[key] = (value, self._clock() + ttl_seconds)

    def increment(self, key: str, ttl_seconds: float) -> tuple[int, float]:
        """Bump the counter; returns (count, seconds until reset)."""
        now = self._clock()
        with self._lock:
            item = self._data.get(key)
            if item is None or item[1] <= now:
                item = (0, now + ttl_seconds)
            item = (item[0] + 1, item[1])
            self._data[key] = item
            return item[0], item[1] - now

    def sweep(self) -> int:
        now = self._clock()
        with self._lock:
            expired = [k for k, (_, exp) in self._data.items() if exp <= now]
            for k in expired:
                del self._data[k]
            return len(expired)


class RateLimiter:
    def __init__(self, store: RateLimitStore, limit: int, window_seconds: float, prefix: str = "auth",
                 message: str = "Too many authentication attempts, please try again later."):
        self.store = store
        self.limit = limit
        self.window_seconds = window_seconds
        self.prefix = prefix
        self.message = message

    def hit(self, client_key: str) -> None:
        count, reset_in = self.store.increment(f"{self.prefix}:{client_key}", self.window_seconds)
        if count > self.limit:
            raise RateLimited(
                self.message,
                retryAfter=max(1, int(reset_in)),
            )


def _hit(request: Request, attr: str) -> None:
    limiter: RateLimiter | None = getattr(request.app.state, attr, None)
    if limiter is None:
        return
    client = request.client.host if request.client else "unknown"
    limiter.hit(client)


def limit_auth(request: Request) -> None:
    """FastAPI dependency: count the request against app.state.auth_limiter."""
    _hit(request, "auth_limiter")


def limit_uploads(request: Request) -> None:
    _hit(request, "upload_limiter")
