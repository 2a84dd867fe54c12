import logging
from typing import List, Optional

from sqlalchemy.orm import Session
from shortlink_app.cache.strategies import CacheStrategy
from shortlink_app.cache.url_cache import UrlCacheManager
from shortlink_app.config import Settings, settings as default_settings
from shortlink_app.exceptions import InvalidArgumentError, NotFoundError, UnauthorizedError
from shortlink_app.models.url import UrlStatus
from shortlink_app.schemas.url import URLRecord, URLStats, validate_original_url
from shortlink_app.services import base62
from shortlink_app.services.ownership import Owner, check_access, owner_from, owner_id_of, Anonymous
from shortlink_app.storage.strategies import SQLAlchemyUrlStore, UrlStoreStrategy

logger = logging.getLogger(__name__)


class URLService:
    """
    URL Service with dependency injection for cache and store.

    This follows the Dependency Injection pattern:
    - Cache and store are injected (not created internally)
    - Easy to test (inject an in-memory cache, a failing cache, a counting store)
    - Flexible (swap implementations without changing code)

    All caching goes through UrlCacheManager; this layer adds URL validation,
    de-duplication and ownership checks. Callers are identified by an optional
    user id (None = anonymous), as handed over by the auth layer.
    """

    def __init__(
        self,
        db: Session,
        cache: Optional[CacheStrategy] = None,
        store: Optional[UrlStoreStrategy] = None,
        config: Optional[Settings] = None
    ):
        """
        Initialize URL service with dependencies.

        Args:
            db: Database session
            cache: Cache strategy (optional, for performance)
            store: Durable store override (defaults to SQLAlchemy on db)
            config: Settings override (defaults to the global settings)
        """
        self.db = db
        self.settings = config or default_settings
        self.store = store if store is not None else SQLAlchemyUrlStore(db, self.settings.short_code_offset)
        self.urls = UrlCacheManager(cache, self.store, self.settings)

    async def create_url(self, original_url: str, user_id: Optional[str] = None) -> URLRecord:
        """Create a short URL, or return the caller's existing one for the same URL.

        De-duplication is per owner: anonymous callers share anonymous records,
        signed-in users only see their own.
        """
        validate_original_url(original_url)
        owner_id = owner_id_of(owner_from(user_id))

        existing = self.store.find_by_owner_and_url(owner_id, original_url)
        if existing is not None:
            logger.debug("Found existing URL %s for owner %s", existing.id, owner_id)
            return existing

        record = self.store.insert(original_url, owner_id)

        # The owner's list is rebuilt lazily on next read
        if owner_id is not None:
            await self.urls.invalidate_user(owner_id)
        return record

    async def get_by_id(self, url_id: int, user_id: Optional[str] = None) -> URLRecord:
        record = await self.urls.get_url(url_id)
        self._check_ownership(record, user_id)
        return record

    async def get_by_short_code(self, short_code: str, user_id: Optional[str] = None) -> URLRecord:
        self._require_valid_code(short_code)
        record = await self.urls.resolve_short_code(short_code)
        self._check_ownership(record, user_id)
        return record

    async def get_by_user(self, user_id: Optional[str]) -> List[URLRecord]:
        """All URLs owned by a signed-in user"""
        owner = owner_from(user_id)
        if isinstance(owner, Anonymous):
            raise UnauthorizedError("Sign in to list your URLs")
        return await self.urls.get_user_urls(owner.user_id)

    async def delete_by_id(self, url_id: int, user_id: Optional[str] = None) -> None:
        record = await self.get_by_id(url_id, user_id)
        await self._delete(record)

    async def delete_by_short_code(self, short_code: str, user_id: Optional[str] = None) -> None:
        record = await self.get_by_short_code(short_code, user_id)
        await self._delete(record)

    async def update_by_id(self, url_id: int, original_url: str, user_id: Optional[str] = None) -> URLRecord:
        """Point an existing short code at a new URL.

        Structural change: every cached key for the record is dropped, so the
        old URL can't be served from cache afterwards.
        """
        validate_original_url(original_url)
        record = await self.get_by_id(url_id, user_id)

        updated = self.store.update_fields(record.id, original_url)
        await self.urls.invalidate(record)
        logger.info("Updated URL %s (%s)", record.id, record.short_code)
        return updated

    async def increment_clicks(self, url_id: int, user_id: Optional[str] = None) -> URLRecord:
        await self.get_by_id(url_id, user_id)
        return await self.urls.increment_clicks(url_id)

    async def set_status(self, url_id: int, status: UrlStatus, user_id: Optional[str] = None) -> URLRecord:
        await self.get_by_id(url_id, user_id)
        return await self.urls.set_status(url_id, status)

    async def resolve_and_increment(self, short_code: str) -> str:
        """
        Public redirect: no ownership check.

        Malformed, unknown and inactive codes all raise NotFoundError.
        """
        if not base62.is_valid(short_code):
            raise NotFoundError("URL", short_code)
        return await self.urls.resolve_and_increment(short_code)

    async def get_stats(self, short_code: str, user_id: Optional[str] = None) -> URLStats:
        """Statistics for a short URL.

        clicks is authoritative; recent_clicks comes from the best-effort
        cache counter and may be lower or missing.
        """
        record = await self.get_by_short_code(short_code, user_id)
        return URLStats(
            short_code=record.short_code,
            clicks=record.clicks,
            recent_clicks=await self.urls.get_click_counter(record.short_code),
            status=record.status,
            created_at=record.created_at,
            updated_at=record.updated_at,
        )

    async def refresh_cache(self, url_id: int, user_id: Optional[str] = None) -> URLRecord:
        """Re-read a URL from the store and overwrite its cache entries"""
        await self.get_by_id(url_id, user_id)
        return await self.urls.refresh(url_id)

    async def _delete(self, record: URLRecord) -> None:
        self.store.delete_by_id(record.id)
        await self.urls.invalidate(record)
        logger.info("Deleted URL %s (%s)", record.id, record.short_code)

    def _check_ownership(self, record: URLRecord, user_id: Optional[str]) -> None:
        record_owner: Owner = owner_from(record.owner_id)
        check_access(record_owner, owner_from(user_id), self.settings.strict_anonymous_ownership)

    @staticmethod
    def _require_valid_code(short_code: str) -> None:
        if not base62.is_valid(short_code):
            raise InvalidArgumentError(f"Invalid short code: {short_code!r}")
