"""In-memory registry standing in for the npm client."""

import threading
from typing import Dict, List, Tuple

import semantic_version

from deptree.exceptions import FetchError
from deptree.versioning.models import RegistryManifest, RegistryMetadata


class FakeRegistry:
    """Serves metadata/manifests from a dict and records every call.

    ``packages`` maps name -> version -> {dependency name: constraint}.
    """

    def __init__(self, packages: Dict[str, Dict[str, Dict[str, str]]]):
        self.packages = packages
        self.calls: List[Tuple[str, ...]] = []
        self._lock = threading.Lock()

    def _record(self, *call):
        with self._lock:
            self.calls.append(call)

    def get_metadata(self, name):
        self._record("metadata", name)
        if name not in self.packages:
            raise FetchError(f"Registry returned HTTP 404 for {name}", status_code=404)
        versions = frozenset(semantic_version.Version(v) for v in self.packages[name])
        return RegistryMetadata(name=name, versions=versions)

    def get_manifest(self, name, version):
        self._record("manifest", name, version)
        try:
            deps = self.packages[name][version]
        except KeyError as exc:
            raise FetchError(f"Registry returned HTTP 404 for {name}/{version}", status_code=404) from exc
        return RegistryManifest(name=name, version=version, dependencies=dict(deps))

    @property
    def fetch_count(self):
        with self._lock:
            return len(self.calls)


# a -> b, c ; b -> d ; c -> d  (d appears twice)
DIAMOND = {
    "a": {"1.0.0": {"b": "^1.0.0"}, "1.2.0": {"b": "^1.0.0", "c": "~2.1.0"}, "2.0.0": {}},
    "b": {"1.0.0": {}, "1.4.2": {"d": ">=0.5.0 <1.0.0"}},
    "c": {"2.1.0": {"d": "0.x"}, "2.1.7": {"d": "0.x"}, "2.2.0": {}},
    "d": {"0.4.0": {}, "0.9.1": {}, "1.0.0": {}},
}
