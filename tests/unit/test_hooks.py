"""Tests for CMS write-path hooks."""

from types import SimpleNamespace

import pytest

from foliocache import InMemoryTagStore, InvalidationDispatcher
from foliocache.core.entities import InvalidationEvent, MutationOperation
from foliocache.hooks import collection_hooks, global_hooks, should_skip


class TestShouldSkip:
    """Tests for the revalidation bypass flag."""

    @pytest.mark.parametrize(
        ("req", "expected"),
        [
            (None, False),
            ({}, False),
            ({"user": {"bypass_revalidation": True}}, True),
            ({"user": {"email": "editor@example.com"}}, False),
            (SimpleNamespace(user=SimpleNamespace(bypass_revalidation=True)), True),
            (SimpleNamespace(user=None), False),
        ],
    )
    def test_should_skip(self, req: object, expected: bool) -> None:
        """Test mapping and attribute style requests."""
        assert should_skip(req) is expected


class TestCollectionHooks:
    """Tests for collection hooks."""

    @pytest.mark.asyncio
    async def test_after_change_dispatches(
        self, dispatcher: InvalidationDispatcher, store: InMemoryTagStore
    ) -> None:
        """Test a saved gallery invalidates its cached views."""
        await store.put("gallery", "g", tags=["gallery_yosemite"])
        hooks = collection_hooks(dispatcher, "galleries")
        doc = {"slug": "yosemite"}

        returned = await hooks["after_change"][0](doc=doc, req={}, operation="update")
        await dispatcher.drain()

        assert returned is doc
        assert await store.get("gallery") is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("operation", "expected"),
        [
            ("create", MutationOperation.CREATE),
            ("update", MutationOperation.UPDATE),
            (None, MutationOperation.UPDATE),
        ],
    )
    async def test_after_change_records_operation(
        self,
        dispatcher: InvalidationDispatcher,
        monkeypatch: pytest.MonkeyPatch,
        operation: str | None,
        expected: MutationOperation,
    ) -> None:
        """Test the CMS operation kwarg reaches the dispatched event."""
        events: list[InvalidationEvent] = []
        dispatch_nowait = dispatcher.dispatch_nowait

        def record(event: InvalidationEvent) -> object:
            events.append(event)
            return dispatch_nowait(event)

        monkeypatch.setattr(dispatcher, "dispatch_nowait", record)
        hooks = collection_hooks(dispatcher, "galleries")

        await hooks["after_change"][0](doc={"slug": "y"}, req={}, operation=operation)
        await hooks["after_delete"][0](doc={"slug": "y"}, req={}, operation=operation)
        await dispatcher.drain()

        assert [e.operation for e in events] == [expected, MutationOperation.DELETE]

    @pytest.mark.asyncio
    async def test_after_delete_dispatches(
        self, dispatcher: InvalidationDispatcher, store: InMemoryTagStore
    ) -> None:
        """Test a deleted post invalidates its listings."""
        await store.put("posts", "p", tags=["blog-posts-list"])
        hooks = collection_hooks(dispatcher, "blog-posts")

        await hooks["after_delete"][0](doc={"slug": "first-light"}, req=None)
        await dispatcher.drain()

        assert await store.get("posts") is None

    @pytest.mark.asyncio
    async def test_bypass_skips_dispatch(
        self, dispatcher: InvalidationDispatcher, store: InMemoryTagStore
    ) -> None:
        """Test seed users do not trigger revalidation."""
        await store.put("gallery", "g", tags=["galleries"])
        hooks = collection_hooks(dispatcher, "galleries")

        await hooks["after_change"][0](
            doc={"slug": "x"}, req={"user": {"bypass_revalidation": True}}
        )
        await dispatcher.drain()

        assert await store.get("gallery") is not None


class TestGlobalHooks:
    """Tests for global hooks."""

    @pytest.mark.asyncio
    async def test_after_change_dispatches(
        self, dispatcher: InvalidationDispatcher, store: InMemoryTagStore
    ) -> None:
        """Test a global edit invalidates the home page."""
        await store.put("home", "h", tags=["global_home"])
        hooks = global_hooks(dispatcher, "about")

        await hooks["after_change"][0](doc={"title": "About"})
        await dispatcher.drain()

        assert await store.get("home") is None
        assert "after_delete" not in hooks
