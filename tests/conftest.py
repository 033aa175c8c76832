"""Pytest configuration for foliocache tests."""

from datetime import datetime, timedelta, timezone

import pytest

from foliocache import CacheConfig, CacheService, InMemoryTagStore, InvalidationDispatcher


class FakeClock:
    """Manually advanced UTC clock."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


@pytest.fixture
def clock() -> FakeClock:
    """Create a fake clock starting at a fixed instant."""
    return FakeClock()


@pytest.fixture
def store(clock: FakeClock) -> InMemoryTagStore:
    """Create an in-memory tag store on the fake clock."""
    return InMemoryTagStore(maxsize=100, clock=clock)


@pytest.fixture
def cache_service(store: InMemoryTagStore, clock: FakeClock) -> CacheService:
    """Create a cache service on the fake clock."""
    return CacheService(store, config=CacheConfig(max_entries=100), clock=clock)


@pytest.fixture
def dispatcher(store: InMemoryTagStore) -> InvalidationDispatcher:
    """Create a dispatcher over the shared store."""
    return InvalidationDispatcher(store)
