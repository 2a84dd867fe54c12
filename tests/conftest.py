"""
Test configuration and fixtures for the shortlink service.
This centralizes all test setup, making individual tests clean.
"""

import asyncio
from collections import Counter
from typing import Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from main import app
from shortlink_app.cache.strategies import CacheStrategy, InMemoryCache
from shortlink_app.database.connection import Base, get_db
from shortlink_app.dependencies import get_cache
from shortlink_app.exceptions import CacheError
from shortlink_app.storage.strategies import SQLAlchemyUrlStore

# Test database configuration
SQLALCHEMY_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(SQLALCHEMY_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class CountingStore:
    """Wraps a store and counts calls per method name"""

    def __init__(self, inner):
        self.inner = inner
        self.calls = Counter()

    def __getattr__(self, name):
        attr = getattr(self.inner, name)
        if not callable(attr):
            return attr

        def counted(*args, **kwargs):
            self.calls[name] += 1
            return attr(*args, **kwargs)

        return counted


class FailingCache(CacheStrategy):
    """Cache whose every operation fails, like an unreachable Redis"""

    def __init__(self):
        self.attempts = 0

    def _fail(self):
        self.attempts += 1
        raise CacheError("cache unavailable")

    async def get(self, key: str) -> Optional[str]:
        self._fail()

    async def set(self, key: str, value: str, ttl: int = 3600) -> bool:
        self._fail()

    async def delete(self, *keys: str) -> int:
        self._fail()

    async def increment(self, key: str, delta: int = 1, ttl: Optional[int] = None) -> int:
        self._fail()

    async def exists(self, key: str) -> bool:
        self._fail()

    async def clear(self) -> bool:
        self._fail()


class SlowCache(InMemoryCache):
    """In-memory cache whose reads hang for a while"""

    def __init__(self, delay: float = 1.0):
        super().__init__()
        self.delay = delay

    async def get(self, key: str) -> Optional[str]:
        await asyncio.sleep(self.delay)
        return await super().get(key)


@pytest.fixture(scope="function")
def db_session():
    """
    Create a fresh database session for each test.
    This ensures tests are isolated and don't affect each other.
    """
    # Create tables
    Base.metadata.create_all(bind=engine)

    # Create session
    db = TestingSessionLocal()

    try:
        yield db
    finally:
        # Cleanup
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def cache():
    """Fresh in-memory cache per test"""
    return InMemoryCache()


@pytest.fixture(scope="function")
def store(db_session):
    """SQLAlchemy store wrapped in a call counter"""
    return CountingStore(SQLAlchemyUrlStore(db_session))


@pytest.fixture(scope="function")
def client(db_session, cache):
    """
    Create a test client with database and cache dependencies overridden.
    This is the main fixture that tests will use.
    """
    def override_get_db():
        yield db_session

    # Override the database and cache dependencies
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_cache] = lambda: cache

    # Create test client
    with TestClient(app) as test_client:
        yield test_client

    # Clean up overrides
    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
def failing_cache():
    """Cache that raises CacheError on every call"""
    return FailingCache()


@pytest.fixture(scope="function")
def slow_cache():
    """Cache whose reads take a second"""
    return SlowCache(delay=1.0)
