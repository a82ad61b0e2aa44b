"""Runtime settings: defaults, config file, environment, then CLI flags.

Later layers win. The config file is YAML (JSON is accepted as a YAML
subset) and may keep its keys under a top-level ``deptree`` section.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, fields
from typing import Any, Dict, Optional

import yaml

from deptree.constants import Constants

logger = logging.getLogger(__name__)

# Environment variable -> settings field
ENV_OVERRIDES = {
    "DEPTREE_REGISTRY_URL": "registry_url",
    "DEPTREE_REQUEST_TIMEOUT": "request_timeout",
    "DEPTREE_HTTP_RETRIES": "http_retries",
    "DEPTREE_MAX_WORKERS": "max_workers",
    "DEPTREE_CACHE_MAX_ENTRIES": "cache_max_entries",
    "DEPTREE_CACHE_TTL": "cache_ttl",
    "DEPTREE_HOST": "host",
    "DEPTREE_PORT": "port",
}

# argparse dest -> settings field
ARG_OVERRIDES = {
    "REGISTRY_URL": "registry_url",
    "TIMEOUT": "request_timeout",
    "HTTP_RETRIES": "http_retries",
    "MAX_WORKERS": "max_workers",
    "CACHE_MAX_ENTRIES": "cache_max_entries",
    "CACHE_TTL": "cache_ttl",
    "HOST": "host",
    "PORT": "port",
}


class ConfigError(ValueError):
    """Raised when a configuration file or value is unusable."""


@dataclass
class Settings:
    """Effective configuration for one process."""

    registry_url: str = Constants.REGISTRY_URL_NPM
    request_timeout: float = float(Constants.REQUEST_TIMEOUT)
    http_retries: int = Constants.HTTP_RETRY_MAX
    max_workers: int = Constants.MAX_WORKERS
    cache_max_entries: int = Constants.CACHE_MAX_ENTRIES
    cache_ttl: int = Constants.CACHE_TTL_SEC
    host: str = Constants.SERVER_HOST
    port: int = Constants.SERVER_PORT

    def apply(self, overrides: Dict[str, Any], source: str) -> None:
        """Coerce and set known fields; unknown keys are logged and ignored."""
        types = {f.name: f.type for f in fields(self)}
        for key, value in overrides.items():
            if value is None:
                continue
            if key not in types:
                logger.warning("Ignoring unknown setting '%s' from %s", key, source)
                continue
            current = getattr(self, key)
            try:
                coerced = type(current)(value)
            except (TypeError, ValueError) as exc:
                raise ConfigError(f"Invalid value for {key} from {source}: {value!r}") from exc
            setattr(self, key, coerced)


def load_config_file(path: Optional[str]) -> Dict[str, Any]:
    """Load settings from a YAML/JSON file.

    Raises:
        ConfigError: if the file is missing or not a mapping.
    """
    if not path:
        return {}
    if not os.path.isfile(path):
        raise ConfigError(f"Config file not found: {path}")
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse config file {path}: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")
    section = data.get("deptree", data)
    if not isinstance(section, dict):
        raise ConfigError(f"'deptree' section in {path} must be a mapping")
    return section


def load_settings(args: Any = None, environ: Optional[Dict[str, str]] = None) -> Settings:
    """Build Settings from defaults, config file, environment and CLI args."""
    settings = Settings()
    env = os.environ if environ is None else environ

    settings.apply(load_config_file(getattr(args, "CONFIG", None)), "config file")
    settings.apply(
        {field_name: env.get(var) for var, field_name in ENV_OVERRIDES.items()},
        "environment",
    )
    if args is not None:
        settings.apply(
            {field_name: getattr(args, dest, None) for dest, field_name in ARG_OVERRIDES.items()},
            "command line",
        )
    return settings
