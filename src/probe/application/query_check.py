"""Main QueryCheck application service: one evaluation pass per invocation."""

import asyncio
import re
from dataclasses import dataclass

from loguru import logger

from src.config import CheckConfig
from src.probe.application.record_evaluator import RecordEvaluator
from src.probe.domain.exceptions import (
    BackendError,
    ConfigurationError,
    DirectoryError,
    InterpolationError,
    QueryTimeoutError,
)
from src.probe.domain.models import ClientDirectory, Record, RunMode, RunOutcome, Severity
from src.probe.domain.protocols import ClientLister, EventSink, QueryBackend
from src.probe.domain.template import Template, format_scalar, resolve_path
from src.probe.domain.threshold import ThresholdExpression
from src.probe.domain.value_path import ValuePath
from src.probe.infrastructure.logging import LoggingContext

_WHERE = re.compile(r"\bWHERE\b", re.IGNORECASE)
_TRAILING_CLAUSE = re.compile(r"\s+(?:GROUP\s+BY|ORDER\s+BY|SLIMIT|LIMIT|SOFFSET|OFFSET|TZ\s*\()", re.IGNORECASE)
_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def inject_host_filter(query: str, host_field: str, client: str) -> str:
    """
    Restrict an InfluxQL query to a single client.

    The condition is prepended to every WHERE clause; a query without one gets
    a WHERE clause before its GROUP BY / ORDER BY / LIMIT, or at the end.
    """
    field = host_field if _IDENTIFIER.match(host_field) else '"' + host_field.replace('"', '\\"') + '"'
    literal = client.replace("\\", "\\\\").replace("'", "\\'")
    condition = f"{field} = '{literal}'"

    if _WHERE.search(query):
        return _WHERE.sub(lambda _: f"WHERE {condition} AND", query)

    match = _TRAILING_CLAUSE.search(query)
    if match:
        return f"{query[:match.start()]} WHERE {condition}{query[match.start():]}"

    stripped = query.rstrip().rstrip(";").rstrip()
    return f"{stripped} WHERE {condition}"


async def load_client_directory(lister: ClientLister | None, required: bool = False) -> ClientDirectory:
    """
    Fetch the known clients once, before the run.

    An unconfigured or failing directory disables client filtering, unless
    clients are required.

    Raises:
        DirectoryError: If the directory is required but unavailable
    """
    if lister is None:
        if required:
            raise DirectoryError("Client directory is required but not configured")
        logger.info("No client directory configured, client filtering disabled")
        return ClientDirectory.unavailable()

    try:
        clients = await lister.list_clients()
    except DirectoryError as e:
        if required:
            raise
        logger.warning(f"{e.message}; client filtering disabled")
        return ClientDirectory.unavailable()

    logger.info(f"Loaded {len(clients)} clients from directory")
    return ClientDirectory(clients=tuple(clients), available=True)


@dataclass
class CheckerConfig:
    """Configuration for QueryCheck."""

    query: str
    mode: RunMode = RunMode.PER_HOST
    host_field: str = "host"
    timeout: float = 10.0  # Seconds allowed for each backend call
    filter_clients: bool = False  # Single-query mode: drop records from unknown clients


class QueryCheck:
    """
    Runs the configured query and emits one event per result record.

    Per-host mode issues one query per known client, isolating failures per
    client. Single-query mode issues the query once and reads each record's
    source from the host field.
    """

    def __init__(
        self,
        backend: QueryBackend,
        evaluator: RecordEvaluator,
        event_sink: EventSink,
        config: CheckerConfig,
    ):
        """
        Initialize query check.

        Args:
            backend: Time-series backend to query
            evaluator: Turns each record into an event
            event_sink: Where events are delivered
            config: Query and run-mode configuration
        """
        self.backend = backend
        self.evaluator = evaluator
        self.event_sink = event_sink
        self.config = config

    async def run(self, directory: ClientDirectory) -> RunOutcome:
        """Run one evaluation pass and compute the process-level outcome."""
        outcome = RunOutcome(clients=len(directory))

        with LoggingContext(mode=self.config.mode.value):
            try:
                if self.config.mode == RunMode.PER_HOST:
                    await self._run_per_host(directory, outcome)
                else:
                    await self._run_single_query(directory, outcome)
            except QueryTimeoutError as e:
                logger.error(e.message)
                outcome.timed_out = True

        self._finalize(outcome)
        logger.info(
            f"Run finished: {outcome.severity.name}, {outcome.records} records, "
            f"{outcome.failures} failures, {len(outcome.events)} events"
        )
        return outcome

    async def _run_per_host(self, directory: ClientDirectory, outcome: RunOutcome) -> None:
        for client in directory.clients:
            with LoggingContext(client=client):
                query = inject_host_filter(self.config.query, self.config.host_field, client)
                try:
                    records = await self._query(query)
                except BackendError as e:
                    logger.error(f"Failed to run query for {client}: {e.message}")
                    outcome.failures += 1
                    continue

                for record in records:
                    self._dispatch(record, client, outcome)

    async def _run_single_query(self, directory: ClientDirectory, outcome: RunOutcome) -> None:
        filtering = self.config.filter_clients and directory.available
        if self.config.filter_clients and not directory.available:
            logger.warning("Client directory unavailable, records are not filtered")

        try:
            records = await self._query(self.config.query)
        except BackendError as e:
            logger.error(f"Failed to run query: {e.message}")
            outcome.failures += 1
            return

        for record in records:
            source = self._infer_source(record)
            if filtering and source not in directory:
                logger.debug(f"Skipping record from unknown client {source!r}")
                continue
            self._dispatch(record, source, outcome)

    async def _query(self, query: str) -> list[Record]:
        logger.debug(f"Running query: {query}")
        try:
            return await asyncio.wait_for(self.backend.query(query), timeout=self.config.timeout)
        except asyncio.TimeoutError:
            raise QueryTimeoutError(query, self.config.timeout) from None

    def _infer_source(self, record: Record) -> str | None:
        for path in (self.config.host_field, f"tags.{self.config.host_field}"):
            try:
                return format_scalar(resolve_path(record, path))
            except InterpolationError:
                continue
        return None

    def _dispatch(self, record: Record, source: str | None, outcome: RunOutcome) -> None:
        event = self.evaluator.evaluate(record, source)
        self.event_sink.write_event(event)
        outcome.events.append(event)
        outcome.records += 1

    def _finalize(self, outcome: RunOutcome) -> None:
        if outcome.timed_out:
            outcome.severity = Severity.UNKNOWN
            outcome.message = f"Query timed out after {self.config.timeout:g} seconds"
        elif outcome.failures > 0:
            outcome.severity = Severity.CRITICAL if self.evaluator.critical is not None else Severity.WARNING
            if self.config.mode == RunMode.PER_HOST:
                outcome.message = f"Failed to run query for {outcome.failures} of {outcome.clients} clients"
            else:
                outcome.message = f"Failed to run query ({outcome.failures} failure)"
        elif self.config.mode == RunMode.PER_HOST and outcome.clients == 0:
            outcome.severity = Severity.UNKNOWN
            outcome.message = "No clients to query"
        elif outcome.records == 0:
            outcome.severity = Severity.UNKNOWN
            outcome.message = "Query held no results"
        elif self.config.mode == RunMode.PER_HOST:
            outcome.severity = Severity.OK
            outcome.message = (
                f"Query executed successfully for {outcome.clients} clients ({outcome.records} records)"
            )
        else:
            outcome.severity = Severity.OK
            outcome.message = f"Query executed successfully ({outcome.records} records)"


def create_query_check(config: CheckConfig, backend: QueryBackend, event_sink: EventSink) -> QueryCheck:
    """
    Build a QueryCheck from configuration.

    Every path, template and expression is compiled here, so configuration
    mistakes surface before any query runs.

    Raises:
        ConfigurationError: On missing options or invalid path/template/expression syntax
    """
    missing = [f"--{name.replace('_', '-')}" for name in ("query", "json_path", "msg") if not getattr(config, name)]
    if missing:
        raise ConfigurationError(f"Missing required option(s): {', '.join(missing)}")

    evaluator = RecordEvaluator(
        value_path=ValuePath(config.json_path),
        check_name=Template(config.check_name),
        message=Template(config.msg),
        critical=ThresholdExpression(config.crit) if config.crit else None,
        warning=ThresholdExpression(config.warn) if config.warn else None,
        handlers=config.handlers,
        name_prefix=config.name_prefix,
    )

    checker_config = CheckerConfig(
        query=config.query,
        mode=config.mode,
        host_field=config.host_field,
        timeout=config.timeout,
        filter_clients=config.filter_clients,
    )

    logger.info(f"Built {config.mode.value} check for query: {config.query}")
    return QueryCheck(backend=backend, evaluator=evaluator, event_sink=event_sink, config=checker_config)
