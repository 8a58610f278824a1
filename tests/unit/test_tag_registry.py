"""
Unit tests for TagRegistry and InvalidationChecker.
"""

import pytest
from unittest.mock import AsyncMock

from shared.errors import InvalidKeyError, StoreUnavailableError
from tagcache.tags import InvalidationChecker, TagRegistry


class TestTagRegistry:
    """Test cases for TagRegistry."""

    @pytest.fixture
    def tags(self, store, clock, metrics):
        """Registry over the in-memory store."""
        return TagRegistry(store, clock=clock, metrics=metrics)

    @pytest.mark.asyncio
    async def test_get_timestamp_missing(self, tags):
        """An unknown tag has no timestamp."""
        assert await tags.get_timestamp("users") is None

    @pytest.mark.asyncio
    async def test_new_tag_writes_current_second(self, tags, store, clock):
        """new_tag stores the wall clock truncated to seconds under t_<name>."""
        clock.advance(0.75)

        timestamp = await tags.new_tag("users")

        assert timestamp == "1700000000"
        assert await store.get("t_users") == b"1700000000"

    @pytest.mark.asyncio
    async def test_new_tag_overwrites_existing(self, tags, clock):
        """new_tag does not check for an existing version."""
        await tags.set_timestamp("users", "123")
        clock.advance(5)

        assert await tags.new_tag("users") == "1700000005"
        assert await tags.get_timestamp("users") == "1700000005"

    @pytest.mark.asyncio
    async def test_set_timestamp_explicit(self, tags):
        """An explicit timestamp is written as given."""
        assert await tags.set_timestamp("users", "999") == "999"
        assert await tags.get_timestamp("users") == "999"

    @pytest.mark.asyncio
    async def test_set_timestamp_defaults_to_now(self, tags, clock):
        """Without a timestamp the tag is bumped to the current time."""
        clock.advance(10)

        assert await tags.set_timestamp("users") == "1700000010"

    @pytest.mark.asyncio
    async def test_set_timestamp_with_ttl(self, tags, clock):
        """A tag written with a TTL disappears once it elapses."""
        await tags.set_timestamp("users", "1", ttl=2)
        clock.advance(3)

        assert await tags.get_timestamp("users") is None

    @pytest.mark.asyncio
    async def test_set_timestamp_rejected_write(self, clock):
        """A write the store does not apply is reported as a store failure."""
        store = AsyncMock()
        store.set.return_value = False
        tags = TagRegistry(store, clock=clock)

        with pytest.raises(StoreUnavailableError):
            await tags.set_timestamp("users", "1")

    @pytest.mark.asyncio
    async def test_delete_tag(self, tags):
        """delete_tag removes the tag and reports whether it existed."""
        await tags.new_tag("users")

        assert await tags.delete_tag("users") is True
        assert await tags.get_timestamp("users") is None
        assert await tags.delete_tag("users") is False

    @pytest.mark.asyncio
    async def test_resolve_creates_missing_tags(self, tags, registry):
        """Missing tags get a baseline timestamp; present ones are read."""
        await tags.set_timestamp("site", "100")

        resolved = await tags.resolve_timestamps(["site", "users"])

        assert resolved == {"site": "100", "users": "1700000000"}
        assert await tags.get_timestamp("users") == "1700000000"
        assert registry.get_sample_value("tagcache_tags_created_total") == 1

    @pytest.mark.asyncio
    async def test_resolve_is_idempotent(self, tags, clock):
        """A second resolution sees the tag created by the first."""
        first = await tags.resolve_timestamps(["fresh"])
        clock.advance(30)
        second = await tags.resolve_timestamps(["fresh"])

        assert first == second == {"fresh": "1700000000"}

    @pytest.mark.asyncio
    async def test_resolve_collapses_duplicates(self, tags):
        """Each name appears once, in order of first appearance."""
        resolved = await tags.resolve_timestamps(["b", "a", "b", "a"])

        assert list(resolved) == ["b", "a"]

    @pytest.mark.asyncio
    async def test_resolve_uses_one_batched_fetch(self, clock):
        """All present tags are read with a single get_many."""
        store = AsyncMock()
        store.get_many.return_value = {"t_a": b"1", "t_b": b"2"}
        tags = TagRegistry(store, clock=clock)

        resolved = await tags.resolve_timestamps(["a", "b"])

        assert resolved == {"a": "1", "b": "2"}
        store.get_many.assert_awaited_once()
        assert list(store.get_many.await_args.args[0]) == ["t_a", "t_b"]
        store.set.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_resolve_empty(self, clock):
        """No names means no store traffic."""
        store = AsyncMock()
        tags = TagRegistry(store, clock=clock)

        assert await tags.resolve_timestamps([]) == {}
        store.get_many.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_resolve_propagates_store_failure(self, clock):
        """An outage is raised, not turned into fresh tags."""
        store = AsyncMock()
        store.get_many.side_effect = StoreUnavailableError("get_many")
        tags = TagRegistry(store, clock=clock)

        with pytest.raises(StoreUnavailableError):
            await tags.resolve_timestamps(["users"])
        store.set.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_custom_prefix(self, store, clock):
        """The tag namespace prefix is configurable."""
        tags = TagRegistry(store, prefix="tag:", clock=clock)

        await tags.new_tag("users")

        assert await store.get("tag:users") == b"1700000000"

    @pytest.mark.asyncio
    async def test_empty_tag_name_rejected(self, tags):
        """Tag names must be non-empty strings."""
        with pytest.raises(InvalidKeyError):
            await tags.resolve_timestamps([""])


class TestInvalidationChecker:
    """Test cases for InvalidationChecker."""

    @pytest.fixture
    def tags(self, store, clock):
        """Registry over the in-memory store."""
        return TagRegistry(store, clock=clock)

    @pytest.fixture
    def checker(self, tags):
        """Checker bound to the registry."""
        return InvalidationChecker(tags)

    @pytest.mark.asyncio
    async def test_empty_snapshot_never_invalidated(self, clock):
        """An untagged entry is valid without touching the store."""
        store = AsyncMock()
        checker = InvalidationChecker(TagRegistry(store, clock=clock))

        assert await checker.is_invalidated({}) is False
        store.get_many.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unchanged_tags_are_valid(self, tags, checker):
        """A snapshot matching current versions is valid."""
        snapshot = await tags.resolve_timestamps(["users", "site"])

        assert await checker.is_invalidated(snapshot) is False

    @pytest.mark.asyncio
    async def test_bumped_tag_invalidates(self, tags, checker):
        """Any differing timestamp invalidates the snapshot."""
        snapshot = await tags.resolve_timestamps(["users", "site"])
        await tags.set_timestamp("site", "42")

        assert await checker.is_invalidated(snapshot) is True

    @pytest.mark.asyncio
    async def test_deleted_tag_recreated_later_invalidates(self, tags, checker, clock):
        """A deleted tag comes back with a new timestamp that no longer matches."""
        snapshot = await tags.resolve_timestamps(["site"])
        await tags.delete_tag("site")
        clock.advance(1)

        assert await checker.is_invalidated(snapshot) is True
        assert await tags.get_timestamp("site") == "1700000001"

    @pytest.mark.asyncio
    async def test_deleted_tag_recreated_same_second_collides(self, tags, checker):
        """Recreation within the same second yields the same version."""
        snapshot = await tags.resolve_timestamps(["site"])
        await tags.delete_tag("site")

        assert await checker.is_invalidated(snapshot) is False

    @pytest.mark.asyncio
    async def test_store_failure_propagates(self, clock):
        """The checker does not guess when tags cannot be read."""
        store = AsyncMock()
        store.get_many.side_effect = StoreUnavailableError("get_many")
        checker = InvalidationChecker(TagRegistry(store, clock=clock))

        with pytest.raises(StoreUnavailableError):
            await checker.is_invalidated({"users": "1"})
