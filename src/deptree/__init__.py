"""deptree: resolve a package's full dependency tree against an npm registry."""

from deptree.exceptions import DeptreeError, FetchError, InvalidConstraint, NoCompatibleVersion
from deptree.resolution import ResolutionCache, ResolutionEngine
from deptree.versioning import PackageNode, ResolutionStatus, resolve_constraint

__version__ = "0.1.0"

__all__ = [
    "DeptreeError",
    "FetchError",
    "InvalidConstraint",
    "NoCompatibleVersion",
    "PackageNode",
    "ResolutionCache",
    "ResolutionEngine",
    "ResolutionStatus",
    "resolve_constraint",
]
