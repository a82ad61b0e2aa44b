"""Version models and npm range constraint resolution."""

from .models import (
    PackageNode,
    RegistryManifest,
    RegistryMetadata,
    ResolutionStatus,
)
from .resolver import parse_constraint, resolve_constraint

__all__ = [
    "PackageNode",
    "RegistryManifest",
    "RegistryMetadata",
    "ResolutionStatus",
    "parse_constraint",
    "resolve_constraint",
]
