"""Data models for versioning and package resolution."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, FrozenSet, Mapping, Optional, Tuple

import semantic_version


class ResolutionStatus(Enum):
    """Terminal (or pending) state of a single tree node."""
    PENDING = "pending"
    RESOLVED = "resolved"
    FAILED = "failed"
    CYCLE = "cycle"


@dataclass
class RegistryMetadata:
    """Versions a registry currently publishes for one package."""
    name: str
    versions: FrozenSet[semantic_version.Version]


@dataclass
class RegistryManifest:
    """Dependency constraints declared by one published version."""
    name: str
    version: str
    dependencies: Dict[str, str] = field(default_factory=dict)


@dataclass
class PackageNode:
    """One node of a resolved dependency tree.

    ``version`` stays empty and ``dependencies`` stays empty until the node
    is resolved. Children are owned exclusively by their parent.
    """
    name: str
    constraint: str = ""
    version: str = ""
    dependencies: Mapping[str, "PackageNode"] = field(default_factory=dict)
    status: ResolutionStatus = ResolutionStatus.PENDING
    error: Optional[str] = None

    @property
    def key(self) -> Tuple[str, str]:
        """Cycle-guard key: (name, requested constraint)."""
        return self.name, self.constraint

    @property
    def is_resolved(self) -> bool:
        return self.status is ResolutionStatus.RESOLVED

    def mark_failed(self, reason: str, status: ResolutionStatus = ResolutionStatus.FAILED) -> None:
        """Record a node-local failure; version and dependencies are cleared."""
        self.version = ""
        self.dependencies = {}
        self.status = status
        self.error = reason

    def walk(self):
        """Yield this node and every descendant, depth first."""
        yield self
        for child in self.dependencies.values():
            yield from child.walk()

    def is_complete(self) -> bool:
        """True when every node in the tree resolved successfully."""
        return all(node.is_resolved for node in self.walk())

    def unresolved(self):
        """Return every node that failed or was cut at a cycle."""
        return [node for node in self.walk() if not node.is_resolved]

    def freeze(self) -> "PackageNode":
        """Make every dependency map in the tree read-only."""
        for node in self.walk():
            if not isinstance(node.dependencies, MappingProxyType):
                node.dependencies = MappingProxyType(dict(node.dependencies))
        return self

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the JSON shape served by the HTTP handler."""
        data: Dict[str, Any] = {
            "name": self.name,
            "version": self.version,
            "status": self.status.value,
            "dependencies": {
                dep_name: child.to_dict()
                for dep_name, child in sorted(self.dependencies.items())
            },
        }
        if self.error:
            data["error"] = self.error
        return data


# Stable key for cache lookups.
CacheKey = Tuple[str, str]
