"""Shared fixtures."""

import pytest

from deptree.resolution.cache import ResolutionCache
from deptree.resolution.engine import ResolutionEngine
from tests.fakes import DIAMOND, FakeRegistry


@pytest.fixture
def diamond_registry():
    return FakeRegistry(DIAMOND)


@pytest.fixture
def engine_factory():
    """Build engines and shut their pools down after the test."""
    engines = []

    def _make(registry, max_workers=8):
        engine = ResolutionEngine(registry, max_workers=max_workers)
        engines.append(engine)
        return engine

    yield _make
    for engine in engines:
        engine.close()


@pytest.fixture
def cache():
    """Create a fresh cache for each test."""
    return ResolutionCache(max_entries=10)
