"""Registry clients."""

from .npm import NpmRegistryClient, encode_package_name

__all__ = ["NpmRegistryClient", "encode_package_name"]
