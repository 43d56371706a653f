"""
Pytest configuration and shared fixtures for org_resolver tests.
"""

import pytest

from org_resolver.cache import TTLCache
from org_resolver.resolution.fuzzy import FuzzyMatcher
from org_resolver.resolution.knowledge_base import CompanyKnowledgeBase
from org_resolver.resolution.normalizer import CompanyNormalizer
from org_resolver.resolution.resolver import EntityResolver


class FakeClock:
    """Manually advanced clock for TTL and deadline tests."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class SteppingClock(FakeClock):
    """Clock that moves forward by a fixed step every time it is read."""

    def __init__(self, step: float, start: float = 0.0):
        super().__init__(start)
        self.step = step

    def __call__(self) -> float:
        self.now += self.step
        return self.now


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def normalizer():
    return CompanyNormalizer()


@pytest.fixture
def matcher():
    return FuzzyMatcher()


@pytest.fixture
def knowledge_base(normalizer, matcher):
    """Fresh knowledge base seeded with the default organizations."""
    return CompanyKnowledgeBase(normalizer=normalizer, matcher=matcher)


@pytest.fixture
def resolver(knowledge_base, fake_clock):
    """Resolver over the seeded knowledge base with a controllable result cache clock."""
    return EntityResolver(
        normalizer=knowledge_base.normalizer,
        knowledge_base=knowledge_base,
        cache=TTLCache(capacity=100, ttl_seconds=300.0, clock=fake_clock, name="results"),
    )


@pytest.fixture
def stepping_clock():
    """Factory for clocks that advance on every read."""
    return SteppingClock
