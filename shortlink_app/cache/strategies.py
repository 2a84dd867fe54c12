"""
Cache strategies using Strategy Pattern.
Allows switching between different cache backends (Redis, In-Memory, Null).

Backends report failures by raising CacheError. They never decide what a
failure means - the URL cache engine downgrades it to a miss.
"""

from abc import ABC, abstractmethod
from typing import Optional, Dict, Tuple
import time

import redis

from shortlink_app.exceptions import CacheError


class CacheStrategy(ABC):
    """
    Abstract base class for cache strategies.

    This is the Strategy Pattern interface - allows multiple cache implementations
    without changing the service layer code.

    All methods are async because cache operations involve I/O (network for Redis).
    No durability or consistency is assumed: any entry may vanish at any time.
    """

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        """
        Get value from cache.

        Args:
            key: Cache key

        Returns:
            Cached value or None if not found
        """
        pass

    @abstractmethod
    async def set(self, key: str, value: str, ttl: int = 3600) -> bool:
        """
        Set value in cache with TTL (Time To Live), overwriting any current value.

        Args:
            key: Cache key
            value: Value to cache
            ttl: Time to live in seconds (default: 1 hour)

        Returns:
            True if successful, False otherwise
        """
        pass

    @abstractmethod
    async def delete(self, *keys: str) -> int:
        """
        Delete keys from cache.

        Args:
            keys: Cache keys

        Returns:
            Number of keys that existed and were deleted
        """
        pass

    @abstractmethod
    async def increment(self, key: str, delta: int = 1, ttl: Optional[int] = None) -> int:
        """
        Atomically add delta to an integer value (missing keys start at 0).

        Args:
            key: Cache key
            delta: Amount to add
            ttl: Expiry applied when the key is created by this call

        Returns:
            The new value
        """
        pass

    @abstractmethod
    async def exists(self, key: str) -> bool:
        """
        Check if key exists in cache.

        Args:
            key: Cache key

        Returns:
            True if exists, False otherwise
        """
        pass

    @abstractmethod
    async def clear(self) -> bool:
        """
        Clear all cache entries.

        Returns:
            True if successful
        """
        pass


class RedisCache(CacheStrategy):
    """
    Redis cache implementation.

    Production cache with:
    - Distributed caching (multiple servers can share cache)
    - Atomic INCRBY for the click counter
    - TTL support

    The client is created with a short socket timeout, so a hung Redis turns
    into a CacheError instead of blocking the request.
    """

    def __init__(self, redis_client):
        """
        Initialize Redis cache.

        Args:
            redis_client: Redis client instance (redis.Redis)
        """
        self.redis = redis_client

    async def get(self, key: str) -> Optional[str]:
        try:
            value = self.redis.get(key)
        except redis.RedisError as e:
            raise CacheError(f"Redis get failed for {key}: {e}") from e
        if value is None:
            return None
        return value.decode("utf-8") if isinstance(value, bytes) else value

    async def set(self, key: str, value: str, ttl: int = 3600) -> bool:
        try:
            return bool(self.redis.setex(key, ttl, value))
        except redis.RedisError as e:
            raise CacheError(f"Redis set failed for {key}: {e}") from e

    async def delete(self, *keys: str) -> int:
        if not keys:
            return 0
        try:
            return int(self.redis.delete(*keys))
        except redis.RedisError as e:
            raise CacheError(f"Redis delete failed for {keys}: {e}") from e

    async def increment(self, key: str, delta: int = 1, ttl: Optional[int] = None) -> int:
        try:
            value = int(self.redis.incrby(key, delta))
            # First increment created the key
            if ttl and value == delta:
                self.redis.expire(key, ttl)
            return value
        except redis.RedisError as e:
            raise CacheError(f"Redis increment failed for {key}: {e}") from e

    async def exists(self, key: str) -> bool:
        try:
            return bool(self.redis.exists(key))
        except redis.RedisError as e:
            raise CacheError(f"Redis exists failed for {key}: {e}") from e

    async def clear(self) -> bool:
        """Clear all Redis keys (use with caution!)"""
        try:
            self.redis.flushdb()
            return True
        except redis.RedisError as e:
            raise CacheError(f"Redis clear failed: {e}") from e


class InMemoryCache(CacheStrategy):
    """
    In-memory cache implementation using Python dict.

    Pros:
    - Very fast (no network overhead)
    - Simple (no external dependencies)
    - Good for development and testing

    Cons:
    - Not distributed (each server has its own cache)
    - Lost on restart

    Expired entries are dropped when read, and swept out every
    purge_every writes so keys that are never read again do not pile up.
    Note: Async for interface consistency, but operations are instant.
    """

    def __init__(self, clock=time.monotonic, purge_every: int = 1000):
        """
        Args:
            clock: Returns the current time in seconds (injectable for tests)
            purge_every: Number of writes between sweeps of expired entries
        """
        self._cache: Dict[str, Tuple[str, Optional[float]]] = {}
        self._clock = clock
        self._purge_every = max(1, purge_every)
        self._writes = 0

    def _live(self, key: str) -> Optional[str]:
        entry = self._cache.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if expires_at is not None and expires_at <= self._clock():
            del self._cache[key]
            return None
        return value

    def _write(self, key: str, value: str, expires_at: Optional[float]) -> None:
        self._cache[key] = (value, expires_at)
        self._writes += 1
        if self._writes >= self._purge_every:
            self._writes = 0
            self.purge_expired()

    def purge_expired(self) -> int:
        """Drop every expired entry; returns how many were removed"""
        now = self._clock()
        expired = [
            key for key, (_, expires_at) in self._cache.items()
            if expires_at is not None and expires_at <= now
        ]
        for key in expired:
            del self._cache[key]
        return len(expired)

    def _expiry(self, ttl: Optional[int]) -> Optional[float]:
        return self._clock() + ttl if ttl else None

    async def get(self, key: str) -> Optional[str]:
        return self._live(key)

    async def set(self, key: str, value: str, ttl: int = 3600) -> bool:
        self._write(key, value, self._expiry(ttl))
        return True

    async def delete(self, *keys: str) -> int:
        deleted = 0
        for key in keys:
            if self._live(key) is not None:
                deleted += 1
            self._cache.pop(key, None)
        return deleted

    async def increment(self, key: str, delta: int = 1, ttl: Optional[int] = None) -> int:
        current = self._live(key)
        if current is None:
            value, expires_at = delta, self._expiry(ttl)
        else:
            try:
                value = int(current) + delta
            except ValueError as e:
                raise CacheError(f"Value at {key} is not an integer") from e
            expires_at = self._cache[key][1]
        self._write(key, str(value), expires_at)
        return value

    async def exists(self, key: str) -> bool:
        return self._live(key) is not None

    async def clear(self) -> bool:
        self._cache.clear()
        return True


class NullCache(CacheStrategy):
    """
    Null Object Pattern - cache that does nothing.

    Used for:
    - Testing (when you want to test without cache)
    - Disabling cache in certain environments

    Every read is a miss, so the engine always consults the store.
    Note: Async for interface consistency.
    """

    async def get(self, key: str) -> Optional[str]:
        """Always returns None (cache miss)"""
        return None

    async def set(self, key: str, value: str, ttl: int = 3600) -> bool:
        """Pretends to set but does nothing"""
        return True

    async def delete(self, *keys: str) -> int:
        return 0

    async def increment(self, key: str, delta: int = 1, ttl: Optional[int] = None) -> int:
        return delta

    async def exists(self, key: str) -> bool:
        """Always returns False"""
        return False

    async def clear(self) -> bool:
        """Pretends to clear but does nothing"""
        return True
