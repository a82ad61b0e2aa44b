"""Tests for argument parsing, settings layering and the CLI entry point."""

import json
from argparse import Namespace
from unittest.mock import patch

import pytest

from deptree import cli
from deptree.args import parse_args
from deptree.cli_config import ConfigError, Settings, load_config_file, load_settings
from deptree.constants import Constants, ExitCodes
from tests.fakes import FakeRegistry

PACKAGES = {
    "app": {"1.0.0": {"lib": "^2.0.0"}, "1.1.0": {"lib": "^2.0.0", "gone": "*"}},
    "lib": {"2.0.0": {}, "2.3.1": {}},
}


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch):
    """Keep env-driven settings and the log level from leaking between tests."""
    monkeypatch.setenv(Constants.LOG_LEVEL_ENV, "INFO")
    for var in ("DEPTREE_REGISTRY_URL", "DEPTREE_MAX_WORKERS", "DEPTREE_HOST", "DEPTREE_PORT"):
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def fake_registry():
    registry = FakeRegistry(PACKAGES)
    with patch("deptree.service.NpmRegistryClient", return_value=registry):
        yield registry


class TestArgs:
    """Argument parsing."""

    def test_resolve_defaults(self):
        args = parse_args(["resolve", "express"])
        assert args.COMMAND == "resolve"
        assert args.PACKAGE == "express"
        assert args.CONSTRAINT == "latest"
        assert args.LOG_LEVEL == "INFO"
        assert args.ERROR_ON_UNRESOLVED is False

    def test_resolve_with_options(self):
        args = parse_args([
            "resolve", "@babel/core", "^7.0.0",
            "--registry", "http://localhost:4873",
            "--max-workers", "4", "--timeout", "2.5", "--loglevel", "debug",
        ])
        assert args.CONSTRAINT == "^7.0.0"
        assert args.REGISTRY_URL == "http://localhost:4873"
        assert args.MAX_WORKERS == 4
        assert args.TIMEOUT == 2.5
        assert args.LOG_LEVEL == "DEBUG"

    def test_serve_options(self):
        args = parse_args(["serve", "--host", "0.0.0.0", "--port", "9000", "--allow-external"])
        assert args.COMMAND == "serve"
        assert args.HOST == "0.0.0.0"
        assert args.PORT == 9000
        assert args.ALLOW_EXTERNAL is True

    def test_command_required(self):
        with pytest.raises(SystemExit):
            parse_args([])


class TestSettings:
    """Defaults, config file, environment, CLI precedence."""

    def test_defaults(self):
        settings = load_settings(None, environ={})
        assert settings == Settings()
        assert settings.registry_url == Constants.REGISTRY_URL_NPM

    def test_layering(self, tmp_path):
        config = tmp_path / "deptree.yml"
        config.write_text(
            "deptree:\n"
            "  registry_url: http://from-file/\n"
            "  max_workers: 2\n"
            "  cache_ttl: 60\n"
        )
        args = Namespace(CONFIG=str(config), MAX_WORKERS=8, REGISTRY_URL=None)
        environ = {"DEPTREE_MAX_WORKERS": "4", "DEPTREE_CACHE_TTL": "120"}

        settings = load_settings(args, environ=environ)

        assert settings.registry_url == "http://from-file/"
        assert settings.cache_ttl == 120
        assert settings.max_workers == 8

    def test_json_config_without_section(self, tmp_path):
        config = tmp_path / "deptree.json"
        config.write_text(json.dumps({"request_timeout": 2.5, "port": 9001}))
        data = load_config_file(str(config))
        settings = Settings()
        settings.apply(data, "test")
        assert settings.request_timeout == 2.5
        assert settings.port == 9001

    def test_missing_config_file(self, tmp_path):
        with pytest.raises(ConfigError):
            load_config_file(str(tmp_path / "nope.yml"))

    def test_non_mapping_config(self, tmp_path):
        config = tmp_path / "list.yml"
        config.write_text("- a\n- b\n")
        with pytest.raises(ConfigError):
            load_config_file(str(config))

    def test_invalid_value(self):
        with pytest.raises(ConfigError):
            load_settings(None, environ={"DEPTREE_MAX_WORKERS": "many"})

    def test_unknown_key_ignored(self):
        settings = Settings()
        settings.apply({"colour": "blue"}, "test")
        assert not hasattr(settings, "colour")


class TestMain:
    """End-to-end CLI runs against a fake registry."""

    def test_resolve_prints_tree(self, fake_registry, capsys):
        code = cli.main(["resolve", "app", "1.0.0"])

        assert code == ExitCodes.SUCCESS.value
        data = json.loads(capsys.readouterr().out)
        assert data["name"] == "app"
        assert data["version"] == "1.0.0"
        assert data["dependencies"]["lib"]["version"] == "2.3.1"
        assert fake_registry.fetch_count == 4

    def test_resolve_writes_file(self, fake_registry, tmp_path):
        out = tmp_path / "tree.json"
        code = cli.main(["resolve", "app", "^1.0.0", "-o", str(out)])

        assert code == ExitCodes.SUCCESS.value
        data = json.loads(out.read_text())
        assert data["version"] == "1.1.0"
        assert data["dependencies"]["gone"]["status"] == "failed"

    def test_unresolved_nodes_exit_code(self, fake_registry):
        assert cli.main(["resolve", "app", "^1.0.0"]) == ExitCodes.SUCCESS.value
        code = cli.main(["resolve", "app", "^1.0.0", "--error-on-unresolved"])
        assert code == ExitCodes.UNRESOLVED_NODES.value

    def test_invalid_constraint(self, fake_registry):
        code = cli.main(["resolve", "app", "nonsense!!"])
        assert code == ExitCodes.INPUT_ERROR.value
        assert fake_registry.fetch_count == 0

    def test_empty_package_name(self, fake_registry):
        code = cli.main(["resolve", " ", "^1.0.0"])
        assert code == ExitCodes.INPUT_ERROR.value
        assert fake_registry.fetch_count == 0

    def test_bad_config_file(self, fake_registry, tmp_path):
        code = cli.main(["resolve", "app", "-c", str(tmp_path / "missing.yml")])
        assert code == ExitCodes.FILE_ERROR.value

    def test_serve_refuses_external_bind(self):
        with patch("deptree.server.run_server_sync") as mock_run:
            code = cli.main(["serve", "--host", "0.0.0.0"])
        assert code == ExitCodes.CONNECTION_ERROR.value
        mock_run.assert_not_called()

    def test_serve_starts_server(self):
        with patch("deptree.server.run_server_sync") as mock_run:
            code = cli.main(["serve", "--port", "9123", "--max-workers", "3"])
        assert code == ExitCodes.SUCCESS.value
        config, service = mock_run.call_args[0]
        assert config.port == 9123
        assert config.host == "127.0.0.1"
        service.close()

    @pytest.mark.parametrize("host,expected", [
        ("127.0.0.1", True),
        ("localhost", True),
        ("::1", True),
        ("0.0.0.0", False),
        ("example.com", False),
        ("", False),
    ])
    def test_is_local_bind_host(self, host, expected):
        assert cli._is_local_bind_host(host) is expected
