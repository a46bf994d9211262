"""Per-provider TTL cache with a fixed-window call budget.

Every external data source (weather, product tiers) goes through one shared
RateLimitedCache instance. A live cache hit never counts against the budget;
a miss counts one call whether the fetch succeeds or raises.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Generic, Optional, Tuple, TypeVar

from barback.errors import RateLimitExceeded
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="rate_limited_cache")

T = TypeVar("T")


def _wall_clock_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class CacheEntry(Generic[T]):
    """Cached value with the epoch-millisecond time it was fetched."""
    value: T
    fetched_at_ms: int

    def is_live(self, now_ms: int, ttl_ms: int) -> bool:
        return now_ms - self.fetched_at_ms < ttl_ms


@dataclass
class RateLimitState:
    """Fixed-window call counter for one provider."""
    window_start_ms: int
    call_count: int
    window_ms: int
    max_calls: int

    def window_elapsed(self, now_ms: int) -> bool:
        return now_ms - self.window_start_ms >= self.window_ms


class RateLimitedCache:
    """In-process cache and rate limiter keyed by (provider, cache key).

    The lock guards the dictionaries only; `fetch_fn` runs unlocked, so two
    concurrent misses on the same key both fetch and both count.
    """

    def __init__(self, clock: Optional[Callable[[], int]] = None) -> None:
        self._clock = clock or _wall_clock_ms
        self._entries: Dict[Tuple[str, str], CacheEntry[Any]] = {}
        self._limits: Dict[str, RateLimitState] = {}
        self._lock = threading.Lock()

    def get_or_fetch(
        self,
        provider: str,
        key: str,
        ttl_ms: int,
        max_calls_per_window: int,
        window_ms: int,
        fetch_fn: Callable[[], T],
    ) -> T:
        """Return a live cached value or fetch, count, and cache a fresh one.

        Raises RateLimitExceeded without calling `fetch_fn` when the provider
        has used `max_calls_per_window` calls in the current window. Any
        exception from `fetch_fn` propagates and leaves the cache untouched.
        """
        with self._lock:
            now = self._clock()
            entry = self._entries.get((provider, key))
            if entry is not None and entry.is_live(now, ttl_ms):
                logger.debug("Cache hit", extra={"provider": provider, "key": key})
                return entry.value

            state = self._limits.get(provider)
            if state is None or state.window_elapsed(now):
                state = RateLimitState(
                    window_start_ms=now,
                    call_count=0,
                    window_ms=window_ms,
                    max_calls=max_calls_per_window,
                )
                self._limits[provider] = state
            else:
                state.window_ms = window_ms
                state.max_calls = max_calls_per_window

            if state.call_count >= state.max_calls:
                retry_after = state.window_start_ms + state.window_ms - now
                logger.warning(
                    "Rate limit exceeded",
                    extra={"provider": provider, "calls": state.call_count, "retry_after_ms": retry_after},
                )
                raise RateLimitExceeded(provider, retry_after)

            # counted before the fetch so failures still consume budget
            state.call_count += 1

        logger.debug("Cache miss; fetching", extra={"provider": provider, "key": key})
        value = fetch_fn()

        with self._lock:
            self._entries[(provider, key)] = CacheEntry(value=value, fetched_at_ms=self._clock())
        return value

    def peek(self, provider: str, key: str, ttl_ms: int) -> Optional[Any]:
        """Return the live cached value for (provider, key) or None."""
        with self._lock:
            entry = self._entries.get((provider, key))
            if entry is None or not entry.is_live(self._clock(), ttl_ms):
                return None
            return entry.value

    def rate_limit_state(self, provider: str) -> Optional[RateLimitState]:
        """Return a copy of the provider's current window state, if any."""
        with self._lock:
            state = self._limits.get(provider)
            if state is None:
                return None
            return RateLimitState(
                window_start_ms=state.window_start_ms,
                call_count=state.call_count,
                window_ms=state.window_ms,
                max_calls=state.max_calls,
            )

    def clear(self) -> None:
        """Drop all cached entries and rate-limit windows."""
        with self._lock:
            self._entries.clear()
            self._limits.clear()


__all__ = ["CacheEntry", "RateLimitState", "RateLimitedCache"]
