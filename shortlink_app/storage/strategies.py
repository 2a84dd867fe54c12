"""
Durable URL store strategies using Strategy Pattern.

The store is the single source of truth for URL records. The cache engine
trusts a cache write only after the matching store write has committed, so
every mutating method here commits before it returns.
"""

import logging
from abc import ABC, abstractmethod
from typing import List, Optional

from sqlalchemy import update, delete
from sqlalchemy.orm import Session
from sqlalchemy.sql import func

from shortlink_app.config import settings
from shortlink_app.exceptions import NotFoundError
from shortlink_app.models.url import URL, UrlStatus
from shortlink_app.schemas.url import URLRecord
from shortlink_app.services import base62

logger = logging.getLogger(__name__)

# Largest value an INTEGER primary key can hold (signed 64-bit)
MAX_ROW_ID = 2 ** 63 - 1


class UrlStoreStrategy(ABC):
    """
    Abstract base class for the durable URL store.

    Reads return URLRecord snapshots (or None when nothing matches).
    Writes are atomic and committed before returning.
    """

    @abstractmethod
    def find_by_id(self, url_id: int) -> Optional[URLRecord]:
        pass

    @abstractmethod
    def find_by_short_code(
        self,
        short_code: str,
        status: Optional[UrlStatus] = None
    ) -> Optional[URLRecord]:
        """
        Find a URL by short code.

        Args:
            short_code: Public short code
            status: Only match records in this status (None matches any)
        """
        pass

    @abstractmethod
    def find_by_owner_and_url(self, owner_id: Optional[str], original_url: str) -> Optional[URLRecord]:
        """De-duplication lookup. owner_id=None only matches anonymous records."""
        pass

    @abstractmethod
    def list_by_owner(self, owner_id: str) -> List[URLRecord]:
        pass

    @abstractmethod
    def insert(self, original_url: str, owner_id: Optional[str]) -> URLRecord:
        """Create a record: assigns id, derives short_code, clicks=0, created_at=now."""
        pass

    @abstractmethod
    def increment_clicks_by_id(self, url_id: int) -> None:
        """Atomic clicks += 1. Raises NotFoundError if no row matched."""
        pass

    @abstractmethod
    def set_status_by_id(self, url_id: int, status: UrlStatus) -> None:
        """Atomic status write. Raises NotFoundError if no row matched."""
        pass

    @abstractmethod
    def update_fields(self, url_id: int, original_url: str) -> URLRecord:
        pass

    @abstractmethod
    def delete_by_id(self, url_id: int) -> None:
        pass


class SQLAlchemyUrlStore(UrlStoreStrategy):
    """
    SQLAlchemy implementation of the URL store.

    Works with any database SQLAlchemy supports (SQLite for development and
    tests, PostgreSQL in production). Counter and status writes are single
    UPDATE statements, so concurrent requests never lose increments.
    """

    def __init__(self, db: Session, short_code_offset: int = None):
        """
        Args:
            db: Database session (one per request)
            short_code_offset: Added to the id before encoding
        """
        self.db = db
        self.short_code_offset = (
            settings.short_code_offset if short_code_offset is None else short_code_offset
        )

    def short_code_for(self, url_id: int) -> str:
        """Short code is a pure function of the id"""
        return base62.encode(url_id + self.short_code_offset)

    def find_by_id(self, url_id: int) -> Optional[URLRecord]:
        if not self._in_range(url_id):
            return None
        url = self.db.get(URL, url_id, populate_existing=True)
        return self._snapshot(url)

    def find_by_short_code(
        self,
        short_code: str,
        status: Optional[UrlStatus] = None
    ) -> Optional[URLRecord]:
        query = self.db.query(URL).filter(URL.short_code == short_code)
        if status is not None:
            query = query.filter(URL.status == status)
        return self._snapshot(query.populate_existing().first())

    def find_by_owner_and_url(self, owner_id: Optional[str], original_url: str) -> Optional[URLRecord]:
        query = self.db.query(URL).filter(URL.original_url == original_url)
        if owner_id is None:
            query = query.filter(URL.owner_id.is_(None))
        else:
            query = query.filter(URL.owner_id == owner_id)
        return self._snapshot(query.order_by(URL.id).populate_existing().first())

    def list_by_owner(self, owner_id: str) -> List[URLRecord]:
        urls = (
            self.db.query(URL)
            .filter(URL.owner_id == owner_id)
            .order_by(URL.created_at, URL.id)
            .populate_existing()
            .all()
        )
        return [URLRecord.model_validate(url) for url in urls]

    def insert(self, original_url: str, owner_id: Optional[str]) -> URLRecord:
        # Create with placeholder short_code to get the auto-increment ID
        url = URL(original_url=original_url, owner_id=owner_id, clicks=0, status=UrlStatus.ACTIVE)
        self.db.add(url)
        try:
            self.db.flush()
            url.short_code = self.short_code_for(url.id)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(url)
        logger.info("Inserted URL id=%s short_code=%s owner=%s", url.id, url.short_code, owner_id)
        return URLRecord.model_validate(url)

    def increment_clicks_by_id(self, url_id: int) -> None:
        stmt = (
            update(URL)
            .where(URL.id == url_id)
            .values(clicks=URL.clicks + 1, updated_at=func.now())
            .execution_options(synchronize_session=False)
        )
        self._execute_and_commit(stmt, url_id)

    def set_status_by_id(self, url_id: int, status: UrlStatus) -> None:
        stmt = (
            update(URL)
            .where(URL.id == url_id)
            .values(status=status, updated_at=func.now())
            .execution_options(synchronize_session=False)
        )
        self._execute_and_commit(stmt, url_id)

    def update_fields(self, url_id: int, original_url: str) -> URLRecord:
        stmt = (
            update(URL)
            .where(URL.id == url_id)
            .values(original_url=original_url, updated_at=func.now())
            .execution_options(synchronize_session=False)
        )
        self._execute_and_commit(stmt, url_id)
        record = self.find_by_id(url_id)
        if record is None:
            raise NotFoundError("URL", url_id)
        return record

    def delete_by_id(self, url_id: int) -> None:
        stmt = delete(URL).where(URL.id == url_id).execution_options(synchronize_session=False)
        self._execute_and_commit(stmt, url_id)
        # Drop any instance still held by the identity map
        self.db.expunge_all()

    def _execute_and_commit(self, stmt, url_id: int) -> None:
        """Run one atomic write; commit before returning"""
        if not self._in_range(url_id):
            raise NotFoundError("URL", url_id)
        try:
            result = self.db.execute(stmt)
            if result.rowcount == 0:
                self.db.rollback()
                raise NotFoundError("URL", url_id)
            self.db.commit()
        except NotFoundError:
            raise
        except Exception:
            self.db.rollback()
            raise

    @staticmethod
    def _in_range(url_id: int) -> bool:
        return 0 <= url_id <= MAX_ROW_ID

    @staticmethod
    def _snapshot(url: Optional[URL]) -> Optional[URLRecord]:
        if url is None:
            return None
        return URLRecord.model_validate(url)
