"""
Builds the process-wide cache backend from settings.

Redis is preferred; when it can't be reached at startup the service keeps
running on a per-process InMemoryCache instead of failing to boot.
"""

import logging
from enum import Enum

import redis

from .strategies import CacheStrategy, RedisCache, InMemoryCache, NullCache
from shortlink_app.config import Settings, settings as default_settings

logger = logging.getLogger(__name__)


class CacheBackend(Enum):
    REDIS = "redis"
    MEMORY = "memory"
    NULL = "null"


def build_redis_client(config: Settings) -> redis.Redis:
    """Redis client whose socket timeouts match the cache timeout, so a hung server fails fast"""
    return redis.from_url(
        config.redis_url,
        decode_responses=False,
        socket_connect_timeout=config.cache_timeout_seconds,
        socket_timeout=config.cache_timeout_seconds,
    )


class CacheFactory:
    """
    Hands out one shared CacheStrategy per process.

    The first call decides the backend; later calls return the same
    instance whatever backend they ask for. clear_instance() resets it.
    """

    _instance: CacheStrategy = None

    @classmethod
    def create(cls, backend: CacheBackend, config: Settings = None) -> CacheStrategy:
        if cls._instance is not None:
            return cls._instance

        config = config or default_settings

        if backend == CacheBackend.REDIS:
            cls._instance = cls._connect_redis(config)
        elif backend == CacheBackend.MEMORY:
            cls._instance = InMemoryCache()
            logger.info("Using in-memory cache")
        elif backend == CacheBackend.NULL:
            cls._instance = NullCache()
            logger.info("Caching disabled (null cache)")
        else:
            raise ValueError(f"Unknown cache backend: {backend}")

        return cls._instance

    @staticmethod
    def _connect_redis(config: Settings) -> CacheStrategy:
        client = build_redis_client(config)
        try:
            client.ping()
        except redis.RedisError as e:
            logger.warning("Redis at %s unreachable (%s); using in-memory cache", config.redis_url, e)
            return InMemoryCache()
        logger.info("Using Redis cache at %s", config.redis_url)
        return RedisCache(client)

    @classmethod
    def clear_instance(cls):
        cls._instance = None
