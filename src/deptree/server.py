"""Dependency tree HTTP service using aiohttp."""

from __future__ import annotations

import asyncio
import json
import logging
import signal
from dataclasses import dataclass
from typing import Any, Optional

from aiohttp import web

from deptree.cli_config import Settings
from deptree.constants import Constants
from deptree.exceptions import InvalidConstraint
from deptree.service import TreeService

logger = logging.getLogger(__name__)


@dataclass
class ServerConfig:
    """Configuration for the HTTP service."""

    host: str = Constants.SERVER_HOST
    port: int = Constants.SERVER_PORT
    allow_external: bool = False

    @classmethod
    def from_args(cls, args: Any, settings: Optional[Settings] = None) -> "ServerConfig":
        """Create config from CLI arguments and resolved settings.

        Args:
            args: Parsed CLI arguments namespace.
            settings: Effective settings; host/port come from here when given.

        Returns:
            ServerConfig instance.
        """
        if settings is not None:
            host, port = settings.host, settings.port
        else:
            host = getattr(args, "HOST", None) or Constants.SERVER_HOST
            port = getattr(args, "PORT", None) or Constants.SERVER_PORT
        return cls(
            host=host,
            port=int(port),
            allow_external=bool(getattr(args, "ALLOW_EXTERNAL", False)),
        )


class DependencyTreeServer:
    """Serves resolved dependency trees over HTTP.

    ``GET /package/{package}/{version}`` answers from the cache when the
    request names a cached concrete version, otherwise resolves the tree on
    a worker thread so the event loop keeps serving other requests.
    """

    def __init__(self, config: ServerConfig, service: TreeService):
        self._config = config
        self._service = service
        self._app: Optional[web.Application] = None
        self._runner: Optional[web.AppRunner] = None
        self._stop_event: Optional[asyncio.Event] = None

    def _create_app(self) -> web.Application:
        """Create the aiohttp application."""
        app = web.Application()
        app.router.add_get(Constants.HEALTH_PATH, self._health_check)
        # Scoped packages carry a slash, so the version is the last segment.
        app.router.add_get("/package/{package:.+}/{version}", self._handle_package)
        app.on_cleanup.append(self._on_cleanup)
        return app

    async def _health_check(self, request: web.Request) -> web.Response:
        """Health check endpoint."""
        return web.json_response({
            "status": "ok",
            "cache": self._service.cache.stats(),
        })

    async def _on_cleanup(self, app: web.Application) -> None:
        """Called when the server stops."""
        logger.info("Dependency tree server stopped")

    async def _handle_package(self, request: web.Request) -> web.Response:
        """Resolve and serialize the tree for one package request."""
        name = request.match_info.get("package", "").strip()
        constraint = request.match_info.get("version", "")

        if not name:
            return self._error_response(400, "Package name must be non-empty")

        logger.info("Request: %s@%s", name, constraint)
        loop = asyncio.get_running_loop()
        try:
            tree, from_cache = await loop.run_in_executor(
                None, self._service.get_tree, name, constraint
            )
        except InvalidConstraint as exc:
            return self._error_response(400, str(exc))
        except ValueError as exc:
            return self._error_response(400, str(exc))
        except Exception:  # pylint: disable=broad-exception-caught
            logger.exception("Failed to resolve %s@%s", name, constraint)
            return web.Response(status=500)

        try:
            body = json.dumps(tree.to_dict(), indent=2)
        except (TypeError, ValueError):
            logger.exception("Failed to serialize tree for %s@%s", name, constraint)
            return web.Response(status=500)

        return web.Response(
            status=200,
            content_type="application/json",
            text=body,
            headers={"X-Deptree-Cache": "hit" if from_cache else "miss"},
        )

    @staticmethod
    def _error_response(status: int, message: str) -> web.Response:
        return web.Response(
            status=status,
            content_type="application/json",
            text=json.dumps({"error": message}),
        )

    async def start(self) -> None:
        """Start the server."""
        self._app = self._create_app()
        self._runner = web.AppRunner(self._app)
        await self._runner.setup()

        site = web.TCPSite(self._runner, self._config.host, self._config.port)
        await site.start()

        logger.info(
            "Dependency tree server listening on http://%s:%s",
            self._config.host, self._config.port,
        )

    async def run_forever(self) -> None:
        """Start the server and run until stopped."""
        await self.start()
        self._stop_event = asyncio.Event()
        try:
            await self._stop_event.wait()
        finally:
            await self.stop()

    async def stop(self) -> None:
        """Stop the server."""
        if self._stop_event is not None:
            self._stop_event.set()
        if self._runner:
            await self._runner.cleanup()
            self._runner = None
            self._app = None


def run_server_sync(config: ServerConfig, service: TreeService) -> None:
    """Run the server synchronously.

    Installs signal handlers for SIGTERM and SIGINT for clean shutdown.

    Args:
        config: Server configuration.
        service: Tree service backing the handler.
    """
    server = DependencyTreeServer(config, service)
    loop = asyncio.new_event_loop()

    async def run():
        await server.start()
        stop_event = asyncio.Event()
        running_loop = asyncio.get_running_loop()
        for sig in (signal.SIGTERM, signal.SIGINT):
            running_loop.add_signal_handler(sig, stop_event.set)
        await stop_event.wait()
        logger.info("Shutdown signal received, stopping...")
        await server.stop()

    try:
        loop.run_until_complete(run())
    except KeyboardInterrupt:
        # Fallback for platforms where signal handlers don't work (Windows)
        loop.run_until_complete(server.stop())
    finally:
        loop.close()
        service.close()
        logger.info("Server shutdown complete")
