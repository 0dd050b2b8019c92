"""Small in-process TTL cache for administrative configuration.

Lifecycle: populate on miss, invalidate on admin write, expire after TTL.
One instance per configuration key; safe to share between request threads.
"""

import logging
import threading
import time
from typing import Callable, Generic, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class TTLCache(Generic[T]):
    """Single-value cache with a time-to-live and an explicit invalidation hook."""

    def __init__(
        self,
        name: str,
        ttl_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize cache.

        Args:
            name: Label used in log messages
            ttl_seconds: How long a loaded value stays fresh
            clock: Monotonic time source (injectable for tests)
        """
        self.name = name
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._value: Optional[T] = None
        self._loaded_at: Optional[float] = None
        self._generation = 0

    def _is_fresh(self) -> bool:
        return self._loaded_at is not None and self._clock() - self._loaded_at < self.ttl_seconds

    def get(self, loader: Callable[[], T]) -> T:
        """Return the cached value, calling loader on miss or expiry."""
        with self._lock:
            if self._is_fresh():
                return self._value
            generation = self._generation
        value = loader()
        with self._lock:
            # An invalidate() during the load makes this value stale
            if generation != self._generation:
                logger.debug("Cache %s invalidated during load; not storing", self.name)
                return value
            self._value = value
            self._loaded_at = self._clock()
        logger.debug("Cache %s refreshed", self.name)
        return value

    def invalidate(self) -> None:
        """Drop the cached value; the next get() reloads."""
        with self._lock:
            self._generation += 1
            self._value = None
            self._loaded_at = None
        logger.info("Cache %s invalidated", self.name)


__all__ = ["TTLCache"]
