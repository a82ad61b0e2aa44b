"""NPM registry client: package metadata and per-version manifests."""

from __future__ import annotations

import logging
from typing import Any, Optional
from urllib.parse import quote

from deptree.constants import Constants
from deptree.common.http_client import get_json
from deptree.common.logging_utils import extra_context, is_debug_enabled, safe_url, Timer
from deptree.exceptions import FetchError
from deptree.versioning.models import RegistryManifest, RegistryMetadata
from deptree.versioning.resolver import parse_versions

logger = logging.getLogger(__name__)


def encode_package_name(name: str) -> str:
    """URL-encode a package name; scoped names keep their leading '@'."""
    return quote(name, safe="@")


class NpmRegistryClient:
    """Reads package metadata from an npm-compatible registry.

    Both operations raise FetchError on any transport failure, non-200
    status, or undecodable body.
    """

    def __init__(
        self,
        base_url: str = Constants.REGISTRY_URL_NPM,
        timeout: Optional[float] = None,
        retries: Optional[int] = None,
    ):
        self.base_url = base_url if base_url.endswith("/") else base_url + "/"
        self.timeout = timeout if timeout is not None else Constants.REQUEST_TIMEOUT
        self.retries = retries if retries is not None else Constants.HTTP_RETRY_MAX

    def _fetch(self, url: str, *, action: str, headers=None) -> Any:
        with Timer() as timer:
            status_code, _, data = get_json(
                url, headers=headers, timeout=self.timeout, retries=self.retries
            )

        if status_code == 0:
            raise FetchError(f"Registry unreachable: {safe_url(url)}", url=safe_url(url))
        if status_code != 200:
            logger.warning(
                "HTTP non-200 from registry",
                extra=extra_context(
                    event="http_response",
                    component="registry",
                    action=action,
                    outcome="handled_non_2xx",
                    status_code=status_code,
                    duration_ms=timer.duration_ms(),
                    target=safe_url(url),
                ),
            )
            raise FetchError(
                f"Registry returned HTTP {status_code} for {safe_url(url)}",
                url=safe_url(url),
                status_code=status_code,
            )
        if not isinstance(data, dict):
            raise FetchError(
                f"Couldn't decode JSON from {safe_url(url)}",
                url=safe_url(url),
                status_code=status_code,
            )
        if is_debug_enabled(logger):
            logger.debug(
                "Registry fetch ok",
                extra=extra_context(
                    event="function_exit",
                    component="registry",
                    action=action,
                    outcome="success",
                    duration_ms=timer.duration_ms(),
                    target=safe_url(url),
                ),
            )
        return data

    def get_metadata(self, name: str) -> RegistryMetadata:
        """Fetch the set of versions the registry publishes for ``name``."""
        url = f"{self.base_url}{encode_package_name(name)}"
        data = self._fetch(
            url,
            action="get_metadata",
            headers={"Accept": Constants.NPM_METADATA_ACCEPT},
        )
        versions = data.get("versions") or {}
        if not isinstance(versions, dict):
            raise FetchError(f"Malformed versions map for {name}", url=safe_url(url))
        return RegistryMetadata(name=name, versions=frozenset(parse_versions(versions.keys())))

    def get_manifest(self, name: str, version: str) -> RegistryManifest:
        """Fetch the dependency constraints declared by ``name@version``."""
        url = f"{self.base_url}{encode_package_name(name)}/{quote(version, safe='')}"
        data = self._fetch(url, action="get_manifest")
        dependencies = data.get("dependencies") or {}
        if not isinstance(dependencies, dict):
            raise FetchError(f"Malformed dependencies for {name}@{version}", url=safe_url(url))
        return RegistryManifest(
            name=data.get("name") or name,
            version=data.get("version") or version,
            dependencies={str(k): str(v) for k, v in dependencies.items()},
        )
