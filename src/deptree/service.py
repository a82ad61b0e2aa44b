"""Cache-then-engine lookup shared by the HTTP handler and the CLI."""

from __future__ import annotations

import logging
from typing import Any, Optional, Tuple

from deptree.cli_config import Settings
from deptree.registry.npm import NpmRegistryClient
from deptree.resolution.cache import ResolutionCache, get_default_cache
from deptree.resolution.engine import ResolutionEngine
from deptree.versioning.models import PackageNode
from deptree.versioning.resolver import parse_constraint

logger = logging.getLogger(__name__)


class TreeService:
    """Answers tree requests from the cache, resolving on a miss."""

    def __init__(
        self,
        engine: ResolutionEngine,
        cache: Optional[ResolutionCache] = None,
    ):
        self.engine = engine
        self.cache = cache if cache is not None else get_default_cache()

    @classmethod
    def from_settings(cls, settings: Settings, cache: Optional[ResolutionCache] = None) -> "TreeService":
        client = NpmRegistryClient(
            base_url=settings.registry_url,
            timeout=settings.request_timeout,
            retries=settings.http_retries,
        )
        engine = ResolutionEngine(client, max_workers=settings.max_workers)
        if cache is None:
            cache = ResolutionCache(max_entries=settings.cache_max_entries, ttl=settings.cache_ttl)
        return cls(engine, cache)

    def get_tree(self, name: str, constraint: str) -> Tuple[PackageNode, bool]:
        """Return (tree, served_from_cache).

        Raises:
            ValueError: empty package name.
            InvalidConstraint: malformed root constraint; nothing is fetched.
        """
        if not name or not name.strip():
            raise ValueError("Package name must be non-empty")
        name = name.strip()
        parse_constraint(constraint)

        cached = self.cache.lookup(name, constraint)
        if cached is not None:
            return cached, True

        tree = self.engine.resolve(name, constraint)
        self.cache.store(tree)
        return tree, False

    def close(self) -> None:
        self.engine.close()

    def __enter__(self) -> "TreeService":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()
