"""Tests for the HTTP service."""

import asyncio
import json
from argparse import Namespace
from unittest.mock import MagicMock

import aiohttp
import aiohttp.test_utils
import pytest

from deptree.cli_config import Settings
from deptree.server import DependencyTreeServer, ServerConfig
from deptree.service import TreeService
from tests.fakes import FakeRegistry

PACKAGES = {
    "express": {"4.18.2": {"accepts": "~1.3.8"}},
    "accepts": {"1.3.8": {}, "1.4.0": {}},
    "@types/node": {"20.1.0": {}},
}


def _fetch_all(server, paths):
    """Issue GETs in order against a live test server; returns [(status, headers, body)]."""

    async def _run():
        app = server._create_app()
        results = []
        async with aiohttp.test_utils.TestServer(app) as ts:
            async with aiohttp.ClientSession() as session:
                for path in paths:
                    async with session.get(f"http://{ts.host}:{ts.port}{path}") as resp:
                        results.append((resp.status, dict(resp.headers), await resp.read()))
        return results

    return asyncio.run(_run())


@pytest.fixture
def registry():
    return FakeRegistry(PACKAGES)


@pytest.fixture
def server(registry, engine_factory, cache):
    service = TreeService(engine_factory(registry), cache)
    return DependencyTreeServer(ServerConfig(port=0), service)


class TestServerConfig:
    """Tests for ServerConfig."""

    def test_default_config(self):
        config = ServerConfig()
        assert config.host == "127.0.0.1"
        assert config.port == 8080
        assert config.allow_external is False

    def test_config_from_settings(self):
        args = Namespace(ALLOW_EXTERNAL=True)
        config = ServerConfig.from_args(args, Settings(host="0.0.0.0", port=9000))
        assert config.host == "0.0.0.0"
        assert config.port == 9000
        assert config.allow_external is True

    def test_config_from_args_only(self):
        args = Namespace(HOST="localhost", PORT=9100, ALLOW_EXTERNAL=False)
        config = ServerConfig.from_args(args)
        assert config.host == "localhost"
        assert config.port == 9100


class TestPackageEndpoint:
    """GET /package/{package}/{version}."""

    def test_resolves_tree(self, server, registry):
        [(status, headers, body)] = _fetch_all(server, ["/package/express/4.18.2"])

        assert status == 200
        assert headers["Content-Type"].startswith("application/json")
        assert headers["X-Deptree-Cache"] == "miss"
        data = json.loads(body)
        assert data["name"] == "express"
        assert data["version"] == "4.18.2"
        assert data["status"] == "resolved"
        assert data["dependencies"]["accepts"]["version"] == "1.3.8"
        assert data["dependencies"]["accepts"]["dependencies"] == {}
        assert registry.fetch_count == 4

    def test_second_request_served_from_cache(self, server, registry):
        results = _fetch_all(server, ["/package/express/4.18.2", "/package/express/4.18.2"])

        assert [r[0] for r in results] == [200, 200]
        assert results[1][1]["X-Deptree-Cache"] == "hit"
        assert json.loads(results[0][2]) == json.loads(results[1][2])
        assert registry.fetch_count == 4

    def test_scoped_package(self, server):
        [(status, _, body)] = _fetch_all(server, ["/package/@types/node/20.x"])
        assert status == 200
        assert json.loads(body)["name"] == "@types/node"
        assert json.loads(body)["version"] == "20.1.0"

    def test_unresolved_nodes_still_200(self, server):
        [(status, _, body)] = _fetch_all(server, ["/package/missing/1.0.0"])
        data = json.loads(body)
        assert status == 200
        assert data["status"] == "failed"
        assert data["version"] == ""
        assert "error" in data

    def test_invalid_constraint_returns_400(self, server, registry):
        [(status, _, body)] = _fetch_all(server, ["/package/express/nonsense!!"])
        assert status == 400
        assert "Invalid version constraint" in json.loads(body)["error"]
        assert registry.fetch_count == 0

    def test_internal_error_returns_500_without_body(self, cache):
        service = MagicMock(spec=TreeService)
        service.cache = cache
        service.get_tree.side_effect = RuntimeError("boom")
        server = DependencyTreeServer(ServerConfig(port=0), service)

        [(status, _, body)] = _fetch_all(server, ["/package/express/4.18.2"])
        assert status == 500
        assert body == b""


class TestHealthCheck:
    """Tests for health check endpoint."""

    def test_health_check_endpoint(self, server):
        [(status, _, body)] = _fetch_all(server, ["/_deptree/health"])
        data = json.loads(body)
        assert status == 200
        assert data["status"] == "ok"
        assert "total_entries" in data["cache"]

    def test_server_has_required_methods(self, server):
        assert callable(server.start)
        assert callable(server.stop)
        assert callable(server.run_forever)
