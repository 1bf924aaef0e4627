# utils/rate_limiter.py
"""Fixed-window request counters guarding the API from brute force.

Counters live behind a ``RateLimitStore`` so a shared backend can replace the
in-process map when the API runs as several workers. Expired windows are
evicted by ``RateLimitSweeper``, a background task owned by the application
lifespan.
"""
import asyncio
import logging
import math
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, Optional

from fastapi import Request

from config import settings
from utils.errors import TooManyRequests

logger = logging.getLogger(__name__)

FIFTEEN_MINUTES_MS = 15 * 60 * 1000


def now_ms() -> float:
    return time.time() * 1000


@dataclass
class RateLimitEntry:
    count: int
    expires_at: float


class RateLimitStore(ABC):
    @abstractmethod
    def hit(self, key: str, window_ms: int, now: float) -> RateLimitEntry:
        """Count one request for ``key`` and return the updated window."""

    @abstractmethod
    def sweep(self, now: float) -> int:
        """Drop expired windows, returning how many were removed."""

    @abstractmethod
    def clear(self) -> None:
        ...


class InMemoryRateLimitStore(RateLimitStore):
    """Single-process store, not shared between workers and lost on restart."""

    def __init__(self):
        self._entries: Dict[str, RateLimitEntry] = {}

    def hit(self, key, window_ms, now):
        entry = self._entries.get(key)
        if entry is None or entry.expires_at < now:
            entry = RateLimitEntry(count=1, expires_at=now + window_ms)
            self._entries[key] = entry
            return entry
        entry.count += 1
        return entry

    def sweep(self, now):
        expired = [key for key, entry in self._entries.items() if entry.expires_at < now]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def clear(self):
        self._entries.clear()

    def __len__(self):
        return len(self._entries)


rate_limit_store = InMemoryRateLimitStore()


class RateLimiter:
    def __init__(
        self,
        window_ms: int = FIFTEEN_MINUTES_MS,
        max_requests: int = 5,
        message: str = "Too many requests, please try again later",
        store: Optional[RateLimitStore] = None,
        enabled=True,
    ):
        self.window_ms = window_ms
        self.max_requests = max_requests
        self.message = message
        self.store = store if store is not None else rate_limit_store
        # A callable lets the policy follow settings changed after import
        self._enabled = enabled

    @property
    def enabled(self) -> bool:
        return bool(self._enabled() if callable(self._enabled) else self._enabled)

    def check(self, key: str, now: Optional[float] = None) -> None:
        if now is None:
            now = now_ms()
        entry = self.store.hit(key, self.window_ms, now)
        if entry.count > self.max_requests:
            retry_after = math.ceil((entry.expires_at - now) / 1000)
            logger.warning("🚫 Rate limit exceeded for %s (retry in %ss)", key, retry_after)
            raise TooManyRequests(self.message, retry_after=retry_after)

    async def __call__(self, request: Request):
        if not self.enabled:
            return
        identifier = request.client.host if request.client else "unknown"
        self.check(f"{request.url.path}:{identifier}")


class RateLimitSweeper:
    """Periodically evicts expired windows independent of request traffic."""

    def __init__(self, store: RateLimitStore, interval_seconds: float):
        self.store = store
        self.interval_seconds = interval_seconds
        self._task: Optional[asyncio.Task] = None

    async def _run(self):
        while True:
            await asyncio.sleep(self.interval_seconds)
            removed = self.store.sweep(now_ms())
            if removed:
                logger.debug("Swept %d expired rate limit windows", removed)

    def start(self) -> None:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None


auth_rate_limiter = RateLimiter(
    window_ms=FIFTEEN_MINUTES_MS,
    max_requests=5,
    message="Too many authentication attempts, please try again later",
    enabled=lambda: settings.AUTH_RATE_LIMIT_ENABLED,
)

api_rate_limiter = RateLimiter(
    window_ms=FIFTEEN_MINUTES_MS,
    max_requests=100,
    message="Too many requests, please slow down",
)
