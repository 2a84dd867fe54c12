"""
FastAPI dependencies for dependency injection.

This module provides the singleton cache instance and the per-request
URLService injected into routes.

Pattern: Dependency Injection
- Loose coupling between components
- Easy to test (override get_db / get_cache)
- Flexible (swap implementations via config)
"""

from functools import lru_cache
from typing import Optional

from fastapi import Depends, Header
from sqlalchemy.orm import Session

from shortlink_app.cache.factory import CacheFactory, CacheBackend
from shortlink_app.cache.strategies import CacheStrategy
from shortlink_app.database.connection import get_db
from shortlink_app.config import settings
from shortlink_app.services.url_service import URLService


@lru_cache()
def get_cache() -> CacheStrategy:
    """
    Get cache instance (singleton).

    Factory gets config from settings internally.
    @lru_cache ensures this is called only once.

    Returns:
        CacheStrategy instance based on settings
    """
    backend = CacheBackend(settings.cache_backend)
    return CacheFactory.create(backend)


def get_current_user_id(x_user_id: Optional[str] = Header(default=None)) -> Optional[str]:
    """
    Caller identity as resolved by the upstream auth layer.

    Authentication itself is handled outside this service; the gateway
    forwards the authenticated user id in X-User-Id (absent = anonymous).
    """
    return x_user_id or None


def get_url_service(
    db: Session = Depends(get_db),
    cache: CacheStrategy = Depends(get_cache)
) -> URLService:
    """
    Get URLService with all dependencies injected.

    - Controller depends on service
    - Service depends on infrastructure (db, cache)
    """
    return URLService(db=db, cache=cache)
