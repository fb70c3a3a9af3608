"""Tests for the check-influxdb-q CLI.

Uses typer.testing.CliRunner; the backend is patched, events go to stdout (--dryrun).
"""

from __future__ import annotations

import json
from unittest.mock import AsyncMock, patch

import httpx
import pytest
from loguru import logger
from typer.testing import CliRunner

from src.config import AppConfig
from src.probe.cli import app, build_config
from src.probe.domain.exceptions import BackendError, ConfigurationError
from src.probe.domain.models import RunMode
from src.probe.infrastructure.influxdb_backend import InfluxDBBackend

runner = CliRunner()

RealAsyncClient = httpx.AsyncClient

BASE_ARGS = [
    "--query",
    "SELECT value FROM load WHERE time > now() - 5m GROUP BY host",
    "--json-path",
    "$.values[0].value",
    "--check-name",
    "load-%{tags.host}",
    "--msg",
    "Load on %{tags.host}",
    "--mode",
    "single-query",
    "--dryrun",
]

RECORDS = [
    {"name": "load", "tags": {"host": "a"}, "columns": ["time", "value"], "values": [{"time": "t", "value": 12}]},
]


@pytest.fixture(autouse=True)
def _reset_logger():
    yield
    logger.remove()


def _events(output: str) -> list[dict]:
    return [json.loads(line) for line in output.splitlines() if line.startswith("{")]


class TestConfigurationErrors:
    def test_missing_required_options(self):
        result = runner.invoke(app, ["--dryrun"])
        assert result.exit_code == 3
        assert "CheckInfluxDbQ UNKNOWN: Missing required option(s): --query, --json-path, --msg" in result.output

    def test_invalid_expression(self):
        result = runner.invoke(app, [*BASE_ARGS, "--crit", "value >"])
        assert result.exit_code == 3
        assert "Invalid threshold expression 'value >'" in result.output

    def test_invalid_timeout(self):
        result = runner.invoke(app, [*BASE_ARGS, "--timeout", "0"])
        assert result.exit_code == 3
        assert "Invalid configuration" in result.output

    def test_required_clients_without_directory(self):
        result = runner.invoke(app, [*BASE_ARGS, "--require-clients"])
        assert result.exit_code == 3
        assert "Client directory is required but not configured" in result.output


class TestRun:
    def test_events_are_printed_and_run_is_ok(self):
        with patch.object(InfluxDBBackend, "query", new=AsyncMock(return_value=RECORDS)):
            result = runner.invoke(app, [*BASE_ARGS, "--crit", "value >= 10", "--handler", "default"])

        assert result.exit_code == 0
        assert _events(result.output) == [
            {
                "name": "influxdb-q-load-a",
                "source": "a",
                "status": 2,
                "output": "CRITICAL: Load on a - Value: 12 (value >= 10)",
                "handlers": ["default"],
            }
        ]
        assert "CheckInfluxDbQ OK: Query executed successfully (1 records)" in result.output

    def test_no_results(self):
        with patch.object(InfluxDBBackend, "query", new=AsyncMock(return_value=[])):
            result = runner.invoke(app, BASE_ARGS)
        assert result.exit_code == 3
        assert "CheckInfluxDbQ UNKNOWN: Query held no results" in result.output

    @pytest.mark.parametrize("extra,exit_code", [([], 1), (["--crit", "value > 1"], 2)])
    def test_backend_failure(self, extra, exit_code):
        with patch.object(InfluxDBBackend, "query", new=AsyncMock(side_effect=BackendError("connection refused"))):
            result = runner.invoke(app, [*BASE_ARGS, *extra])
        assert result.exit_code == exit_code
        assert "Failed to run query" in result.output

    def test_per_host_mode_uses_sensu_clients(self):
        async def list_clients(self):
            return ["a", "b"]

        backend = AsyncMock(return_value=RECORDS)
        args = [a if a != "single-query" else "per-host" for a in BASE_ARGS]
        with patch.object(InfluxDBBackend, "query", new=backend), patch(
            "src.probe.infrastructure.client_directory.SensuApiClient.list_clients", new=list_clients
        ):
            result = runner.invoke(app, [*args, "--sensu-api-url", "http://sensu:4567"])

        assert result.exit_code == 0
        assert [call.args[0] for call in backend.await_args_list] == [
            "SELECT value FROM load WHERE host = 'a' AND time > now() - 5m GROUP BY host",
            "SELECT value FROM load WHERE host = 'b' AND time > now() - 5m GROUP BY host",
        ]
        assert [event["source"] for event in _events(result.output)] == ["a", "b"]
        assert "Query executed successfully for 2 clients (2 records)" in result.output

    def test_per_host_mode_finds_sensu_api_in_conf_d(self, isolated_sensu_settings):
        conf_d = isolated_sensu_settings / "conf.d"
        conf_d.mkdir(parents=True)
        (conf_d / "api.json").write_text(json.dumps({"api": {"host": "sensu", "port": 4567}}))
        seen_urls = []

        async def list_clients(self):
            seen_urls.append(self.api_url)
            return ["a"]

        args = [a if a != "single-query" else "per-host" for a in BASE_ARGS]
        with patch.object(InfluxDBBackend, "query", new=AsyncMock(return_value=RECORDS)), patch(
            "src.probe.infrastructure.client_directory.SensuApiClient.list_clients", new=list_clients
        ):
            result = runner.invoke(app, args)

        assert result.exit_code == 0
        assert seen_urls == ["http://sensu:4567"]
        assert "Query executed successfully for 1 clients (1 records)" in result.output

    def test_unreachable_sensu_api_degrades(self):
        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with patch.object(InfluxDBBackend, "query", new=AsyncMock(return_value=RECORDS)), patch(
            "src.probe.infrastructure.client_directory.httpx.AsyncClient",
            side_effect=lambda **kwargs: RealAsyncClient(transport=httpx.MockTransport(refuse)),
        ):
            result = runner.invoke(
                app, [*BASE_ARGS, "--filter-clients", "--sensu-api-url", "http://sensu:4567"]
            )

        assert result.exit_code == 0
        assert len(_events(result.output)) == 1


class TestBuildConfig:
    def test_cli_values_override_environment(self, monkeypatch):
        monkeypatch.setenv("INFLUXDB_HOST", "influx.example")
        monkeypatch.setenv("CHECK_TIMEOUT", "12")
        monkeypatch.setenv("CHECK_MODE", "single-query")

        config = build_config(influxdb={"port": 9999}, sensu={}, check={"timeout": 4})

        assert isinstance(config, AppConfig)
        assert config.influxdb.host == "influx.example"
        assert config.influxdb.port == 9999
        assert config.check.timeout == 4
        assert config.check.mode == RunMode.SINGLE_QUERY

    def test_sensu_settings_file(self, tmp_path):
        settings = tmp_path / "api.json"
        settings.write_text(json.dumps({"api": {"host": "sensu", "port": 4567, "user": "u", "password": "p"}}))

        config = build_config(influxdb={}, sensu={"settings_file": str(settings)}, check={})

        assert config.sensu.api_url == "http://sensu:4567"
        assert config.sensu.api_user == "u"
        assert config.container_config()["sink"] == "udp"

    def test_sensu_settings_discovered_from_conf_d(self, isolated_sensu_settings):
        conf_d = isolated_sensu_settings / "conf.d"
        conf_d.mkdir(parents=True)
        (isolated_sensu_settings / "config.json").write_text(json.dumps({"api": {"host": "old", "user": "u"}}))
        (conf_d / "api.json").write_text(json.dumps({"api": {"host": "sensu", "password": "p"}}))

        config = build_config(influxdb={}, sensu={}, check={})

        assert config.sensu.api_url == "http://sensu:4567"
        assert config.sensu.api_user == "u"
        assert config.sensu.api_password == "p"

    def test_explicit_api_url_skips_discovery(self, isolated_sensu_settings):
        isolated_sensu_settings.mkdir()
        (isolated_sensu_settings / "config.json").write_text(json.dumps({"api": {"host": "sensu"}}))

        config = build_config(influxdb={}, sensu={"api_url": "http://other:4567"}, check={})

        assert config.sensu.api_url == "http://other:4567"

    def test_no_sensu_settings_leaves_api_unset(self):
        config = build_config(influxdb={}, sensu={}, check={})
        assert config.sensu.api_url is None

    def test_validation_errors_are_configuration_errors(self):
        with pytest.raises(ConfigurationError):
            build_config(influxdb={"port": 0}, sensu={}, check={})
