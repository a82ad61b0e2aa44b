"""Process-wide cache of resolved dependency trees."""

from __future__ import annotations

import logging
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from deptree.constants import Constants
from deptree.versioning.models import CacheKey, PackageNode
from deptree.versioning.resolver import exact_version

logger = logging.getLogger(__name__)


@dataclass
class CacheEntry:
    """A stored tree; ``expires_at`` of None never expires."""

    tree: PackageNode
    expires_at: Optional[float] = None
    created_at: float = field(default_factory=time.time)

    def is_expired(self, now: Optional[float] = None) -> bool:
        """Check if this entry has expired."""
        if self.expires_at is None:
            return False
        return (now if now is not None else time.time()) > self.expires_at


class ResolutionCache:
    """Bounded LRU store of resolved trees keyed by (name, resolved version).

    The lock is held only while the store is read or written; resolution
    itself happens outside it.
    """

    def __init__(
        self,
        max_entries: int = Constants.CACHE_MAX_ENTRIES,
        ttl: int = Constants.CACHE_TTL_SEC,
    ):
        """Initialize the cache.

        Args:
            max_entries: Entries kept before least-recently-used eviction.
            ttl: Seconds an entry stays valid; 0 keeps entries until evicted.
        """
        self._max_entries = max(1, max_entries)
        self._ttl = ttl
        self._entries: "OrderedDict[CacheKey, CacheEntry]" = OrderedDict()
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    @staticmethod
    def make_key(name: str, version: str) -> CacheKey:
        return name, version

    def lookup(self, name: str, version_or_constraint: str) -> Optional[PackageNode]:
        """Return a cached tree when the request names a cached concrete version.

        Ranges never hit: they cannot be mapped to a version without asking
        the registry.
        """
        version = exact_version(version_or_constraint)
        if version is None:
            with self._lock:
                self._misses += 1
            return None

        key = self.make_key(name, version)
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._misses += 1
                return None
            if entry.is_expired():
                del self._entries[key]
                self._misses += 1
                return None
            self._entries.move_to_end(key)
            self._hits += 1

        logger.info("Found in cache: %s@%s", name, version)
        return entry.tree

    def store(self, tree: PackageNode) -> bool:
        """Store a fully resolved tree; returns False when the tree was not cacheable."""
        if not tree.is_complete():
            logger.debug("Not caching %s@%s: tree has unresolved nodes", tree.name, tree.constraint)
            return False

        tree.freeze()
        key = self.make_key(tree.name, tree.version)
        expires_at = time.time() + self._ttl if self._ttl > 0 else None
        with self._lock:
            self._entries[key] = CacheEntry(tree=tree, expires_at=expires_at)
            self._entries.move_to_end(key)
            while len(self._entries) > self._max_entries:
                self._entries.popitem(last=False)
                self._evictions += 1

        logger.info("Putting tree in cache: %s@%s", tree.name, tree.version)
        return True

    def invalidate(self, name: str, version: Optional[str] = None) -> None:
        """Drop one version of a package, or every version when ``version`` is None."""
        with self._lock:
            if version is not None:
                self._entries.pop(self.make_key(name, version), None)
                return
            for key in [k for k in self._entries if k[0] == name]:
                del self._entries[key]

    def clear(self) -> None:
        """Clear all cached entries."""
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def stats(self) -> Dict[str, Any]:
        """Get cache statistics."""
        now = time.time()
        with self._lock:
            expired_count = sum(1 for e in self._entries.values() if e.is_expired(now))
            return {
                "total_entries": len(self._entries),
                "expired_entries": expired_count,
                "active_entries": len(self._entries) - expired_count,
                "max_entries": self._max_entries,
                "default_ttl": self._ttl,
                "hits": self._hits,
                "misses": self._misses,
                "evictions": self._evictions,
            }


_default_cache: Optional[ResolutionCache] = None
_default_cache_lock = threading.Lock()


def get_default_cache() -> ResolutionCache:
    """Return the process-wide cache, creating it on first use."""
    global _default_cache  # pylint: disable=global-statement
    with _default_cache_lock:
        if _default_cache is None:
            _default_cache = ResolutionCache()
        return _default_cache
