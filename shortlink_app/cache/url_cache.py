"""
Cache-consistency engine for URL records.

Keeps three derived key spaces in line with the durable store:

    id:<id>                     -> URLRecord JSON      (read-through, TTL url_cache_ttl)
    shortcode_mapping:<code>    -> id                  (read-through, TTL short_code_mapping_ttl)
    user:<owner_id>             -> [URLRecord] JSON    (read-through, TTL user_urls_cache_ttl)
    clicks:<code>               -> int                 (best-effort analytics counter)

The store is always authoritative. Mutations are handled two ways:

- Structural (delete, field update): drop every key derived from the record.
  The next read rebuilds them lazily.
- Counter/status (click increment, status toggle): run the atomic store
  update, read the record back from the store, and overwrite id:<id> and
  shortcode_mapping:<code> with that fresh snapshot. The owner's list is only
  invalidated. The old cached snapshot is never patched in place, so a
  field changed concurrently by another request is not lost.

No locks are taken here. Cross-request ordering comes from the store's
atomic UPDATEs; whichever refresh runs last decides the cached snapshot, and
both refreshes read from the store.

Cache errors and timeouts never fail an operation: reads become misses and
writes become no-ops, both logged. Store errors propagate.
"""

import asyncio
import logging
from typing import Any, Awaitable, List, Optional

from pydantic import TypeAdapter, ValidationError

from shortlink_app.cache.keys import UrlCacheKeys
from shortlink_app.cache.strategies import CacheStrategy, NullCache
from shortlink_app.config import Settings, settings as default_settings
from shortlink_app.exceptions import CacheError, NotFoundError
from shortlink_app.models.url import UrlStatus
from shortlink_app.schemas.url import URLRecord
from shortlink_app.storage.strategies import UrlStoreStrategy

logger = logging.getLogger(__name__)

_RECORD_LIST = TypeAdapter(List[URLRecord])


class UrlCacheManager:
    """Read-through / force-refresh cache in front of a UrlStoreStrategy."""

    def __init__(
        self,
        cache: Optional[CacheStrategy],
        store: UrlStoreStrategy,
        config: Settings = None
    ):
        """
        Args:
            cache: Cache backend (None disables caching)
            store: Durable store, the source of truth
            config: Settings for TTLs, timeouts and key prefix
        """
        self.cache = cache if cache is not None else NullCache()
        self.store = store
        self.settings = config or default_settings
        self.keys = UrlCacheKeys(self.settings.cache_key_prefix)

    # ------------------------------------------------------------------
    # Read-through
    # ------------------------------------------------------------------

    async def get_url(self, url_id: int) -> URLRecord:
        """
        Get a URL by id: cache first, then store (populating the cache).

        Raises:
            NotFoundError: if the store has no such record
        """
        key = self.keys.url_key(url_id)
        cached = await self._read_record(key)
        if cached is not None:
            return cached

        record = self.store.find_by_id(url_id)
        if record is None:
            raise NotFoundError("URL", url_id)

        await self._cache_set(key, record.model_dump_json(), self.settings.url_cache_ttl)
        return record

    async def resolve_short_code(self, short_code: str) -> URLRecord:
        """
        Resolve a short code through shortcode_mapping:<code> and then id:<id>.

        Raises:
            NotFoundError: if no record has this short code
        """
        mapping_key = self.keys.short_code_key(short_code)
        raw_id = await self._cache_get(mapping_key)

        if raw_id is not None:
            try:
                url_id = int(raw_id)
            except ValueError:
                logger.warning("Dropping corrupt short code mapping %s=%r", mapping_key, raw_id)
                await self._cache_delete(mapping_key)
            else:
                try:
                    return await self.get_url(url_id)
                except NotFoundError:
                    # Mapping outlived its record
                    await self._cache_delete(mapping_key)
                    raise NotFoundError("URL", short_code)

        record = self.store.find_by_short_code(short_code)
        if record is None:
            raise NotFoundError("URL", short_code)

        await self._write_record(record)
        return record

    async def get_user_urls(self, owner_id: str) -> List[URLRecord]:
        """All URLs of an owner, cached as one list under user:<owner_id>"""
        key = self.keys.user_urls_key(owner_id)
        raw = await self._cache_get(key)
        if raw is not None:
            try:
                return _RECORD_LIST.validate_json(raw)
            except ValidationError:
                logger.warning("Dropping undecodable URL list for user %s", owner_id)
                await self._cache_delete(key)

        records = self.store.list_by_owner(owner_id)
        await self._cache_set(
            key,
            _RECORD_LIST.dump_json(records).decode("utf-8"),
            self.settings.user_urls_cache_ttl,
        )
        return records

    async def get_click_counter(self, short_code: str) -> Optional[int]:
        """Best-effort click counter; None when unknown. Not the system of record."""
        raw = await self._cache_get(self.keys.clicks_key(short_code))
        if raw is None:
            return None
        try:
            return int(raw)
        except ValueError:
            return None

    # ------------------------------------------------------------------
    # Counter / status mutations (atomic store write + force refresh)
    # ------------------------------------------------------------------

    async def increment_clicks(self, url_id: int) -> URLRecord:
        """Atomically add one click, then refresh the cached snapshot from the store"""
        self.store.increment_clicks_by_id(url_id)
        record = await self.refresh(url_id)
        await self._cache_increment(self.keys.clicks_key(record.short_code), self.settings.clicks_cache_ttl)
        return record

    async def set_status(self, url_id: int, status: UrlStatus) -> URLRecord:
        """Atomically write the status, then refresh the cached snapshot from the store"""
        self.store.set_status_by_id(url_id, status)
        record = await self.refresh(url_id)
        logger.info("URL %s status set to %s", url_id, record.status.value)
        return record

    async def resolve_and_increment(self, short_code: str) -> str:
        """
        Redirect hot path: resolve, require ACTIVE, count the click.

        Missing and inactive codes raise the same NotFoundError so callers
        cannot tell a deactivated link from one that never existed.

        Returns:
            The original URL
        """
        record = await self.resolve_short_code(short_code)
        if not record.is_active:
            logger.debug("Short code %s is inactive", short_code)
            raise NotFoundError("URL", short_code)

        record = await self.increment_clicks(record.id)
        return record.original_url

    async def refresh(self, url_id: int) -> URLRecord:
        """
        Force-refresh: read the record from the store and overwrite its
        id/short-code entries (not set-if-absent). The owner list is invalidated.
        """
        record = self.store.find_by_id(url_id)
        if record is None:
            raise NotFoundError("URL", url_id)

        await self._write_record(record)
        if record.owner_id is not None:
            await self.invalidate_user(record.owner_id)
        logger.debug("Force refreshed cache for URL %s (clicks=%s)", url_id, record.clicks)
        return record

    # ------------------------------------------------------------------
    # Structural invalidation
    # ------------------------------------------------------------------

    async def invalidate(self, record: URLRecord) -> None:
        """Drop every key derived from record (after delete or field update)"""
        keys = [
            self.keys.url_key(record.id),
            self.keys.short_code_key(record.short_code),
            self.keys.clicks_key(record.short_code),
        ]
        if record.owner_id is not None:
            keys.append(self.keys.user_urls_key(record.owner_id))
        await self._cache_delete(*keys)
        logger.debug("Invalidated cache for URL %s (%s)", record.id, record.short_code)

    async def invalidate_user(self, owner_id: str) -> None:
        await self._cache_delete(self.keys.user_urls_key(owner_id))

    # ------------------------------------------------------------------
    # Guarded cache access
    # ------------------------------------------------------------------

    async def _write_record(self, record: URLRecord) -> None:
        await self._cache_set(
            self.keys.short_code_key(record.short_code),
            str(record.id),
            self.settings.short_code_mapping_ttl,
        )
        await self._cache_set(
            self.keys.url_key(record.id),
            record.model_dump_json(),
            self.settings.url_cache_ttl,
        )

    async def _read_record(self, key: str) -> Optional[URLRecord]:
        raw = await self._cache_get(key)
        if raw is None:
            return None
        try:
            return URLRecord.model_validate_json(raw)
        except ValidationError:
            logger.warning("Dropping undecodable cache entry %s", key)
            await self._cache_delete(key)
            return None

    async def _cache_get(self, key: str) -> Optional[str]:
        value = await self._guarded("get", key, self.cache.get(key), default=None)
        logger.debug("Cache %s: %s", "hit" if value is not None else "miss", key)
        return value

    async def _cache_set(self, key: str, value: str, ttl: int) -> None:
        await self._guarded("set", key, self.cache.set(key, value, ttl=ttl), default=False)

    async def _cache_delete(self, *keys: str) -> None:
        await self._guarded("delete", keys, self.cache.delete(*keys), default=0)

    async def _cache_increment(self, key: str, ttl: int) -> Optional[int]:
        return await self._guarded("increment", key, self.cache.increment(key, 1, ttl=ttl), default=None)

    async def _guarded(self, action: str, key: Any, operation: Awaitable, default: Any) -> Any:
        """Await a cache call with a short timeout; any failure yields default"""
        try:
            return await asyncio.wait_for(operation, timeout=self.settings.cache_timeout_seconds)
        except asyncio.TimeoutError:
            logger.warning("Cache %s timed out for %s", action, key)
        except CacheError as e:
            logger.warning("Cache %s failed for %s: %s", action, key, e)
        except Exception:
            logger.exception("Unexpected cache error during %s for %s", action, key)
        return default
