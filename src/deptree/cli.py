"""CLI entry point for deptree."""

from __future__ import annotations

import ipaddress
import json
import logging
import os
import sys
from typing import Any, Optional, Sequence

from deptree.args import parse_args
from deptree.cli_config import ConfigError, Settings, load_settings
from deptree.common.logging_utils import (
    add_file_handler,
    configure_logging,
    extra_context,
    is_debug_enabled,
)
from deptree.constants import Constants, ExitCodes
from deptree.exceptions import InvalidConstraint
from deptree.resolution.cache import ResolutionCache
from deptree.service import TreeService

logger = logging.getLogger(__name__)


def _is_local_bind_host(host: str) -> bool:
    """Return True if host is a loopback/local bind target."""
    if not host:
        return False
    host_lower = host.strip().lower()
    if host_lower in ("localhost",):
        return True
    try:
        return ipaddress.ip_address(host_lower).is_loopback
    except ValueError:
        # Non-IP hostnames are treated as non-local unless explicitly allowed.
        return False


def _setup_logging(args: Any) -> None:
    """Configure logging based on CLI arguments."""
    if getattr(args, "LOG_LEVEL", None):
        os.environ[Constants.LOG_LEVEL_ENV] = str(args.LOG_LEVEL).upper()
    configure_logging()

    log_file = getattr(args, "LOG_FILE", None)
    if log_file:
        add_file_handler(log_file)
        logger.info("Logging to file: %s", log_file)


def _write_output(payload: str, path: Optional[str]) -> int:
    if not path:
        sys.stdout.write(payload + "\n")
        return ExitCodes.SUCCESS.value
    try:
        with open(path, "w", encoding="utf-8") as f:
            f.write(payload + "\n")
    except OSError as e:
        logger.error("JSON file couldn't be written to disk: %s", e)
        return ExitCodes.FILE_ERROR.value
    logger.info("JSON file has been successfully exported at: %s", path)
    return ExitCodes.SUCCESS.value


def run_resolve(args: Any, settings: Settings) -> int:
    """Resolve one tree and print it."""
    # A one-shot run has nothing to share a cache with.
    with TreeService.from_settings(settings, cache=ResolutionCache(max_entries=1)) as service:
        try:
            tree, _ = service.get_tree(args.PACKAGE, args.CONSTRAINT)
        except (InvalidConstraint, ValueError) as e:
            logger.error("%s", e)
            return ExitCodes.INPUT_ERROR.value

    exit_code = _write_output(json.dumps(tree.to_dict(), indent=2), getattr(args, "OUTPUT", None))
    if exit_code != ExitCodes.SUCCESS.value:
        return exit_code

    unresolved = tree.unresolved()
    if unresolved:
        logger.warning("%d node(s) could not be resolved.", len(unresolved))
        for node in unresolved:
            logger.warning("  %s@%s: %s", node.name, node.constraint, node.error)
        if getattr(args, "ERROR_ON_UNRESOLVED", False):
            logger.error("Unresolved nodes present, exiting with non-zero status code.")
            return ExitCodes.UNRESOLVED_NODES.value
    return ExitCodes.SUCCESS.value


def run_serve(args: Any, settings: Settings) -> int:
    """Run the HTTP service until interrupted."""
    from deptree.server import ServerConfig, run_server_sync  # pylint: disable=import-outside-toplevel

    config = ServerConfig.from_args(args, settings)
    if not _is_local_bind_host(config.host):
        if not config.allow_external:
            logger.error("Non-local bindings require --allow-external.")
            return ExitCodes.CONNECTION_ERROR.value
        logger.warning(
            "Binding server to non-local address (%s). Ensure network controls are in place.",
            config.host,
        )

    logger.info("Registry: %s", settings.registry_url)
    logger.info("Max workers: %s", settings.max_workers)
    try:
        run_server_sync(config, TreeService.from_settings(settings))
    except OSError as e:
        logger.error("Server failed: %s", e)
        return ExitCodes.CONNECTION_ERROR.value
    return ExitCodes.SUCCESS.value


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main function of the program."""
    args = parse_args(argv)
    _setup_logging(args)

    if is_debug_enabled(logger):
        logger.debug(
            "CLI start",
            extra=extra_context(event="function_entry", component="cli", action=args.COMMAND)
        )

    try:
        settings = load_settings(args)
    except ConfigError as e:
        logger.error("%s", e)
        return ExitCodes.FILE_ERROR.value

    if args.COMMAND == "serve":
        return run_serve(args, settings)
    return run_resolve(args, settings)


if __name__ == "__main__":
    sys.exit(main())
