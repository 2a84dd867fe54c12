"""
Cache module for the shortlink service.

Backends follow the Strategy Pattern; UrlCacheManager keeps the cached URL
key spaces consistent with the database.
"""

from .strategies import CacheStrategy, RedisCache, InMemoryCache, NullCache
from .factory import CacheFactory, CacheBackend
from .keys import UrlCacheKeys
from .url_cache import UrlCacheManager

__all__ = [
    "CacheStrategy",
    "RedisCache",
    "InMemoryCache",
    "NullCache",
    "CacheFactory",
    "CacheBackend",
    "UrlCacheKeys",
    "UrlCacheManager",
]
