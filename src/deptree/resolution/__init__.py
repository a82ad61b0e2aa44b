"""Dependency tree resolution: the concurrent engine and the tree cache."""

from .cache import ResolutionCache, get_default_cache
from .engine import ResolutionEngine, TaskGroup

__all__ = [
    "ResolutionCache",
    "ResolutionEngine",
    "TaskGroup",
    "get_default_cache",
]
