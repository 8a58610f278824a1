"""
Shared fixtures for the tagged cache tests.
"""

import pytest

from shared.config import CacheSettings
from shared.metrics import MetricsCollector
from prometheus_client import CollectorRegistry
from tagcache import MemoryStore, TaggedCache


class FakeClock:
    """Manually advanced clock used for both wall-clock and monotonic time."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    """Fake clock starting at a fixed epoch."""
    return FakeClock()


@pytest.fixture
def store(clock):
    """In-memory store driven by the fake clock."""
    return MemoryStore(clock=clock)


@pytest.fixture
def settings():
    """Settings with short waits so lock tests stay fast."""
    return CacheSettings(wait_time_ms=300, wait_interval_ms=50)


@pytest.fixture
def registry():
    """Isolated Prometheus registry."""
    return CollectorRegistry()


@pytest.fixture
def metrics(registry):
    """Metrics collector bound to the isolated registry."""
    return MetricsCollector("tagcache-test", registry)


@pytest.fixture
def cache(store, settings, metrics, clock):
    """Tagged cache over the in-memory store."""
    return TaggedCache(store, settings, metrics=metrics, clock=clock)
