"""Shared fixtures for probe tests."""

from __future__ import annotations

import inspect

import pytest

from src.probe.application.query_check import CheckerConfig, QueryCheck
from src.probe.application.record_evaluator import RecordEvaluator
from src.probe.domain.models import RunMode
from src.probe.domain.template import Template
from src.probe.domain.threshold import ThresholdExpression
from src.probe.domain.value_path import ValuePath
from src.probe.infrastructure.event_sink import InMemoryEventSink


@pytest.fixture(autouse=True)
def isolated_sensu_settings(tmp_path, monkeypatch):
    """Point Sensu settings discovery at an empty temporary directory."""
    monkeypatch.delenv("SENSU_CONFIG_FILES", raising=False)
    monkeypatch.setenv("SENSU_CONFIG_FILE", str(tmp_path / "sensu" / "config.json"))
    monkeypatch.setenv("SENSU_CONFIG_DIR", str(tmp_path / "sensu" / "conf.d"))
    return tmp_path / "sensu"


class FakeBackend:
    """QueryBackend answering through a handler; records every query it receives."""

    def __init__(self, handler):
        self.handler = handler
        self.queries: list[str] = []

    async def query(self, query: str):
        self.queries.append(query)
        result = self.handler(query)
        if inspect.isawaitable(result):
            result = await result
        return result


class FakeLister:
    def __init__(self, clients=None, error: Exception | None = None):
        self.clients = clients or []
        self.error = error

    async def list_clients(self):
        if self.error:
            raise self.error
        return list(self.clients)


def make_evaluator(
    json_path: str = "$.value",
    check_name: str = "%{host}",
    msg: str = "Load on %{host}",
    crit: str | None = None,
    warn: str | None = None,
    handlers: list[str] | None = None,
) -> RecordEvaluator:
    return RecordEvaluator(
        value_path=ValuePath(json_path),
        check_name=Template(check_name),
        message=Template(msg),
        critical=ThresholdExpression(crit) if crit else None,
        warning=ThresholdExpression(warn) if warn else None,
        handlers=handlers,
    )


def make_check(
    handler,
    mode: RunMode = RunMode.SINGLE_QUERY,
    query: str = "SELECT value FROM load WHERE time > now() - 5m",
    timeout: float = 5.0,
    filter_clients: bool = False,
    **evaluator_options,
) -> tuple[QueryCheck, FakeBackend, InMemoryEventSink]:
    backend = FakeBackend(handler)
    sink = InMemoryEventSink()
    check = QueryCheck(
        backend=backend,
        evaluator=make_evaluator(**evaluator_options),
        event_sink=sink,
        config=CheckerConfig(query=query, mode=mode, timeout=timeout, filter_clients=filter_clients),
    )
    return check, backend, sink


@pytest.fixture
def influx_record():
    """A record shaped like one InfluxDB series."""
    return {
        "name": "interface_rx",
        "tags": {"instance": "eth0", "type": "if_errors", "host": "db01"},
        "columns": ["time", "value"],
        "values": [{"time": "2024-05-01T10:00:00Z", "value": 12}],
    }
