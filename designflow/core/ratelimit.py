"""Per-user fixed-window quota for AI-invoking endpoints.

Counters live in a ``limits`` storage (``memory://`` for a single process,
``redis://`` when several instances share one quota). ``hit`` is an atomic
increment-with-expiry, so two concurrent requests can never both take the last
slot. The in-memory backend reads its counter back outside its own lock, so
hits against it are also serialized here. The window opens on the first
request and expires ``window_seconds`` later; the next request after that
opens a fresh window.
"""
from __future__ import annotations

import logging
import threading
import time
from contextlib import nullcontext
from dataclasses import dataclass
from functools import lru_cache

from limits import RateLimitItemPerSecond
from limits.storage import MemoryStorage, Storage, storage_from_string
from limits.strategies import FixedWindowRateLimiter

from designflow.core.config import settings
from designflow.core.errors import Throttled

logger = logging.getLogger(__name__)

AI_ENDPOINTS = "ai"


@dataclass(frozen=True)
class RateLimitConfig:
    window_seconds: int
    max_requests: int


@dataclass(frozen=True)
class QuotaStatus:
    limit: int
    remaining: int
    reset: float  # epoch seconds at which the current window closes


def default_ai_config() -> RateLimitConfig:
    return RateLimitConfig(window_seconds=settings.AI_RATE_WINDOW_SECONDS, max_requests=settings.AI_RATE_LIMIT)


class QuotaLimiter:
    def __init__(self, storage: Storage | str = "memory://", namespace: str = "designflow"):
        if isinstance(storage, str):
            storage = storage_from_string(storage)
        self.storage = storage
        self.namespace = namespace
        self._strategy = FixedWindowRateLimiter(storage)
        self._hit_lock = threading.Lock() if isinstance(storage, MemoryStorage) else nullcontext()

    @staticmethod
    def _item(config: RateLimitConfig) -> RateLimitItemPerSecond:
        if config.max_requests < 1 or config.window_seconds < 1:
            raise ValueError("max_requests and window_seconds must be positive")
        return RateLimitItemPerSecond(config.max_requests, config.window_seconds)

    def check_and_consume(self, user_id: str, config: RateLimitConfig, endpoint_class: str = AI_ENDPOINTS) -> int:
        """Take one slot and return how many remain; raise Throttled when none are left."""
        item = self._item(config)
        with self._hit_lock:
            allowed = self._strategy.hit(item, self.namespace, endpoint_class, user_id)
        if not allowed:
            status = self.status(user_id, config, endpoint_class)
            retry_after = max(0, int(status.reset - time.time()))
            logger.info("Quota exhausted for user %s (%s); resets in %ss", user_id, endpoint_class, retry_after)
            raise Throttled(headers={"X-RateLimit-Remaining": "0", "Retry-After": str(retry_after)})
        return self.get_remaining(user_id, config, endpoint_class)

    def get_remaining(self, user_id: str, config: RateLimitConfig, endpoint_class: str = AI_ENDPOINTS) -> int:
        """Pure read: does not consume quota."""
        return self.status(user_id, config, endpoint_class).remaining

    def status(self, user_id: str, config: RateLimitConfig, endpoint_class: str = AI_ENDPOINTS) -> QuotaStatus:
        item = self._item(config)
        stats = self._strategy.get_window_stats(item, self.namespace, endpoint_class, user_id)
        remaining = max(0, min(config.max_requests, stats.remaining))
        reset = stats.reset_time
        if remaining == config.max_requests or reset <= time.time():
            # no open window: it would start with the next request
            reset = time.time() + config.window_seconds
        return QuotaStatus(limit=config.max_requests, remaining=remaining, reset=reset)

    def clear(self, user_id: str, config: RateLimitConfig, endpoint_class: str = AI_ENDPOINTS) -> None:
        self._strategy.clear(self._item(config), self.namespace, endpoint_class, user_id)


@lru_cache
def get_quota_limiter() -> QuotaLimiter:
    return QuotaLimiter(settings.RATE_LIMIT_STORAGE_URI)
