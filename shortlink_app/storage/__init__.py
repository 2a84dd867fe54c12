"""
Durable storage module for URL records.

Implements the Strategy Pattern so the cache engine and the service depend on
the store contract, not on SQLAlchemy directly.
"""

from .strategies import UrlStoreStrategy, SQLAlchemyUrlStore

__all__ = [
    "UrlStoreStrategy",
    "SQLAlchemyUrlStore",
]
