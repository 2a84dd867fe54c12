"""
Tests for URLService: creation and de-duplication, ownership checks,
status gating on the redirect path, updates and statistics.
"""
import asyncio

import pytest

from shortlink_app.config import Settings
from shortlink_app.exceptions import InvalidArgumentError, NotFoundError, UnauthorizedError
from shortlink_app.models.url import UrlStatus
from shortlink_app.services import base62
from shortlink_app.services.ownership import ANONYMOUS, Owned, check_access, owner_from
from shortlink_app.services.url_service import URLService


@pytest.fixture
def service(db_session, cache):
    return URLService(db=db_session, cache=cache, config=Settings())


class TestCreate:
    """Test URL creation"""

    def test_create_assigns_short_code(self, service):
        record = asyncio.run(service.create_url("https://example.com/"))

        assert record.id is not None
        assert record.short_code == base62.encode(record.id + 3844)
        assert len(record.short_code) >= 3
        assert record.clicks == 0
        assert record.status == UrlStatus.ACTIVE
        assert record.owner_id is None

    def test_create_rejects_invalid_urls(self, service):
        for bad in ["", "not-a-url", "ftp://example.com/file", "https://", "https://exa mple.com/"]:
            with pytest.raises(InvalidArgumentError):
                asyncio.run(service.create_url(bad))

    def test_create_rejects_too_long_url(self, service):
        with pytest.raises(InvalidArgumentError):
            asyncio.run(service.create_url("https://example.com/" + "a" * 2048))

    def test_same_owner_gets_same_record(self, service):
        async def scenario():
            first = await service.create_url("https://example.com/", "alice")
            second = await service.create_url("https://example.com/", "alice")
            return first, second

        first, second = asyncio.run(scenario())
        assert first.id == second.id

    def test_anonymous_callers_share_record(self, service):
        async def scenario():
            first = await service.create_url("https://example.com/")
            second = await service.create_url("https://example.com/", "")
            return first, second

        first, second = asyncio.run(scenario())
        assert first.id == second.id

    def test_different_owners_get_different_records(self, service):
        async def scenario():
            anonymous = await service.create_url("https://example.com/")
            alice = await service.create_url("https://example.com/", "alice")
            bob = await service.create_url("https://example.com/", "bob")
            return anonymous, alice, bob

        anonymous, alice, bob = asyncio.run(scenario())
        assert len({anonymous.id, alice.id, bob.id}) == 3
        assert len({anonymous.short_code, alice.short_code, bob.short_code}) == 3

    def test_create_invalidates_owner_list(self, service):
        async def scenario():
            await service.create_url("https://example.com/1", "alice")
            assert len(await service.get_by_user("alice")) == 1
            await service.create_url("https://example.com/2", "alice")
            return await service.get_by_user("alice")

        assert len(asyncio.run(scenario())) == 2


class TestOwnership:
    """Only the owner may read or change a record"""

    def test_owner_can_read(self, service):
        async def scenario():
            record = await service.create_url("https://example.com/", "alice")
            return record, await service.get_by_id(record.id, "alice")

        record, fetched = asyncio.run(scenario())
        assert fetched == record

    def test_other_user_rejected(self, service):
        record = asyncio.run(service.create_url("https://example.com/", "alice"))

        with pytest.raises(UnauthorizedError):
            asyncio.run(service.get_by_id(record.id, "bob"))
        with pytest.raises(UnauthorizedError):
            asyncio.run(service.get_by_short_code(record.short_code, "bob"))

    def test_anonymous_caller_rejected_for_owned_record(self, service):
        record = asyncio.run(service.create_url("https://example.com/", "alice"))

        with pytest.raises(UnauthorizedError):
            asyncio.run(service.get_by_id(record.id, None))

    def test_signed_in_caller_rejected_for_anonymous_record(self, service):
        record = asyncio.run(service.create_url("https://example.com/"))

        with pytest.raises(UnauthorizedError):
            asyncio.run(service.delete_by_id(record.id, "alice"))

    def test_relaxed_policy_allows_anonymous_records(self, db_session, cache):
        service = URLService(db=db_session, cache=cache, config=Settings(strict_anonymous_ownership=False))

        async def scenario():
            record = await service.create_url("https://example.com/")
            return record, await service.get_by_id(record.id, "alice")

        record, fetched = asyncio.run(scenario())
        assert fetched.id == record.id

    def test_mutations_require_ownership(self, service):
        record = asyncio.run(service.create_url("https://example.com/", "alice"))

        with pytest.raises(UnauthorizedError):
            asyncio.run(service.increment_clicks(record.id, "bob"))
        with pytest.raises(UnauthorizedError):
            asyncio.run(service.set_status(record.id, UrlStatus.INACTIVE, "bob"))
        with pytest.raises(UnauthorizedError):
            asyncio.run(service.update_by_id(record.id, "https://evil.example/", "bob"))

        assert asyncio.run(service.get_by_id(record.id, "alice")).clicks == 0

    @pytest.mark.parametrize("caller", ["bob", None])
    def test_delete_and_update_require_owner(self, service, caller):
        record = asyncio.run(service.create_url("https://example.com/mine", "alice"))

        with pytest.raises(UnauthorizedError):
            asyncio.run(service.delete_by_id(record.id, caller))
        with pytest.raises(UnauthorizedError):
            asyncio.run(service.delete_by_short_code(record.short_code, caller))
        with pytest.raises(UnauthorizedError):
            asyncio.run(service.update_by_id(record.id, "https://example.com/theirs", caller))

        # Still there, untouched
        assert service.store.find_by_id(record.id) == record
        assert asyncio.run(service.get_by_id(record.id, "alice")) == record
        assert asyncio.run(service.resolve_and_increment(record.short_code)) == "https://example.com/mine"

    def test_anonymous_cannot_list(self, service):
        with pytest.raises(UnauthorizedError):
            asyncio.run(service.get_by_user(None))

    def test_check_access_unknown_owner_type(self):
        with pytest.raises(TypeError):
            check_access(object(), ANONYMOUS)

    def test_owner_from(self):
        assert owner_from(None) is ANONYMOUS
        assert owner_from("") is ANONYMOUS
        assert owner_from("alice") == Owned("alice")


class TestRedirectPath:
    """resolve_and_increment is public and honours status"""

    def test_counts_clicks(self, service):
        async def scenario():
            record = await service.create_url("https://example.com/", "alice")
            for _ in range(3):
                assert await service.resolve_and_increment(record.short_code) == "https://example.com/"
            return await service.get_by_id(record.id, "alice")

        assert asyncio.run(scenario()).clicks == 3

    def test_inactive_then_reactivated(self, service):
        record = asyncio.run(service.create_url("https://example.com/"))

        asyncio.run(service.resolve_and_increment(record.short_code))
        asyncio.run(service.set_status(record.id, UrlStatus.INACTIVE))

        with pytest.raises(NotFoundError):
            asyncio.run(service.resolve_and_increment(record.short_code))

        asyncio.run(service.set_status(record.id, UrlStatus.ACTIVE))
        assert asyncio.run(service.resolve_and_increment(record.short_code)) == "https://example.com/"
        assert asyncio.run(service.get_by_id(record.id)).clicks == 2

    def test_malformed_code_is_not_found(self, service):
        with pytest.raises(NotFoundError):
            asyncio.run(service.resolve_and_increment("bad$code"))

    def test_unknown_code_is_not_found(self, service):
        with pytest.raises(NotFoundError):
            asyncio.run(service.resolve_and_increment("zzzzz"))

    def test_lookup_rejects_malformed_code(self, service):
        with pytest.raises(InvalidArgumentError):
            asyncio.run(service.get_by_short_code("bad$code"))


class TestUpdateAndDelete:
    """Structural changes are never served stale from cache"""

    def test_update_visible_through_short_code(self, service):
        async def scenario():
            record = await service.create_url("https://example.com/old", "alice")
            await service.get_by_short_code(record.short_code, "alice")
            await service.update_by_id(record.id, "https://example.com/new", "alice")
            return record, await service.get_by_short_code(record.short_code, "alice")

        record, fetched = asyncio.run(scenario())

        assert fetched.id == record.id
        assert fetched.short_code == record.short_code
        assert fetched.original_url == "https://example.com/new"

    def test_update_redirects_to_new_url(self, service):
        async def scenario():
            record = await service.create_url("https://example.com/old")
            await service.resolve_and_increment(record.short_code)
            await service.update_by_id(record.id, "https://example.com/new")
            return await service.resolve_and_increment(record.short_code)

        assert asyncio.run(scenario()) == "https://example.com/new"

    def test_update_rejects_invalid_url(self, service):
        record = asyncio.run(service.create_url("https://example.com/"))

        with pytest.raises(InvalidArgumentError):
            asyncio.run(service.update_by_id(record.id, "javascript:alert(1)"))

    def test_delete_by_id(self, service):
        async def scenario():
            record = await service.create_url("https://example.com/", "alice")
            await service.get_by_id(record.id, "alice")
            await service.delete_by_id(record.id, "alice")
            return record

        record = asyncio.run(scenario())

        with pytest.raises(NotFoundError):
            asyncio.run(service.get_by_id(record.id, "alice"))
        with pytest.raises(NotFoundError):
            asyncio.run(service.resolve_and_increment(record.short_code))
        assert asyncio.run(service.get_by_user("alice")) == []

    def test_delete_by_short_code(self, service):
        async def scenario():
            record = await service.create_url("https://example.com/")
            await service.resolve_and_increment(record.short_code)
            await service.delete_by_short_code(record.short_code)
            return record

        record = asyncio.run(scenario())

        with pytest.raises(NotFoundError):
            asyncio.run(service.get_by_short_code(record.short_code))

    def test_delete_missing(self, service):
        with pytest.raises(NotFoundError):
            asyncio.run(service.delete_by_id(404))


class TestStats:
    """Stats combine the stored count with the cache counter"""

    def test_stats_after_clicks(self, service):
        async def scenario():
            record = await service.create_url("https://example.com/", "alice")
            await service.resolve_and_increment(record.short_code)
            await service.resolve_and_increment(record.short_code)
            return record, await service.get_stats(record.short_code, "alice")

        record, stats = asyncio.run(scenario())

        assert stats.short_code == record.short_code
        assert stats.clicks == 2
        assert stats.recent_clicks == 2
        assert stats.status == UrlStatus.ACTIVE
        assert stats.updated_at is not None

    def test_stats_without_clicks(self, service):
        async def scenario():
            record = await service.create_url("https://example.com/")
            return await service.get_stats(record.short_code)

        stats = asyncio.run(scenario())
        assert stats.clicks == 0
        assert stats.recent_clicks is None

    def test_refresh_cache(self, service, cache):
        async def scenario():
            record = await service.create_url("https://example.com/")
            await service.get_by_id(record.id)
            await cache.clear()
            refreshed = await service.refresh_cache(record.id)
            return record, refreshed, await cache.get(f"shortcode_mapping:{record.short_code}")

        record, refreshed, mapping = asyncio.run(scenario())
        assert refreshed.id == record.id
        assert mapping == str(record.id)
