"""
Database models for the shortlink service.
"""

from .url import URL, UrlStatus

__all__ = ["URL", "UrlStatus"]
