"""In-memory cache with TTL support."""

import logging
import threading
import time
from typing import Any


logger = logging.getLogger(__name__)


class InMemoryCache:
    """Thread-safe in-memory cache with TTL support.

    Values are strings; callers serialize structured values themselves.
    """

    def __init__(self) -> None:
        self._data: dict[str, str] = {}
        self._expiry: dict[str, float] = {}
        self._lock = threading.Lock()

        # Health tracking
        self._last_successful_operation: float | None = None
        self._total_operations = 0

    def get_health_status(self) -> dict[str, Any]:
        """Get cache health status."""
        return {
            "enabled": True,
            "connected": True,
            "last_successful_operation": self._last_successful_operation,
            "total_operations": self._total_operations,
            "entries": len(self._data),
        }

    def _record_success(self) -> None:
        self._last_successful_operation = time.time()
        self._total_operations += 1

    def _cleanup_expired(self, keys: list[str] | None = None) -> None:
        """Drop expired entries (all of them when ``keys`` is None)."""
        now = time.time()
        keys_to_check = list(self._expiry.keys()) if keys is None else keys

        for key in keys_to_check:
            expiry = self._expiry.get(key)
            if expiry and expiry <= now:
                self._data.pop(key, None)
                self._expiry.pop(key, None)

    async def get(self, key: str) -> str | None:
        """Get value from cache, or None if missing or expired."""
        with self._lock:
            self._cleanup_expired([key])

            value = self._data.get(key)
            if value is not None:
                self._record_success()
                logger.debug("Cache hit for key: %s", key)
            return value

    async def set(self, key: str, value: str, ttl_seconds: int) -> bool:
        """Set value in cache with TTL (no expiry when ``ttl_seconds`` <= 0)."""
        with self._lock:
            self._data[key] = value
            if ttl_seconds > 0:
                self._expiry[key] = time.time() + ttl_seconds
            else:
                self._expiry.pop(key, None)
            self._record_success()
            logger.debug("Cached key: %s (TTL: %ds)", key, ttl_seconds)
            return True

    async def delete(self, *keys: str) -> bool:
        """Delete one or more keys from cache."""
        if not keys:
            return False

        with self._lock:
            for key in keys:
                self._data.pop(key, None)
                self._expiry.pop(key, None)
            self._record_success()
            logger.debug("Deleted %d cache key(s)", len(keys))
            return True

    async def close(self) -> None:
        """Drop all entries."""
        with self._lock:
            self._data.clear()
            self._expiry.clear()
        logger.info("In-memory cache closed")


# Global cache client instance
cache_client = InMemoryCache()
