"""InfluxDB 1.x HTTP query backend."""

from typing import Any

import httpx
from loguru import logger

from src.probe.domain.exceptions import BackendError
from src.probe.domain.models import Record
from src.probe.domain.protocols import QueryBackend


def series_to_records(payload: dict[str, Any], query: str | None = None) -> list[Record]:
    """
    Flatten an InfluxDB /query response into records.

    Each series becomes ``{"name", "tags", "columns", "values"}`` where
    ``values`` holds one ``{column: value}`` mapping per point.

    Raises:
        BackendError: If the response or any statement carries an error
    """
    if "error" in payload:
        raise BackendError(f"InfluxDB error: {payload['error']}", query=query)

    records: list[Record] = []
    for result in payload.get("results", []):
        if "error" in result:
            raise BackendError(f"InfluxDB statement error: {result['error']}", query=query)

        for series in result.get("series", []):
            columns = list(series.get("columns", []))
            records.append(
                {
                    "name": series.get("name"),
                    "tags": dict(series.get("tags") or {}),
                    "columns": columns,
                    "values": [dict(zip(columns, row)) for row in series.get("values", [])],
                }
            )

    return records


class InfluxDBBackend(QueryBackend):
    """Runs InfluxQL queries through the InfluxDB HTTP API."""

    def __init__(
        self,
        host: str = "localhost",
        port: int = 8086,
        database: str = "collectd",
        username: str | None = None,
        password: str | None = None,
        use_ssl: bool = False,
        verify_ssl: bool = True,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Initialize InfluxDB backend.

        Args:
            host: InfluxDB host
            port: InfluxDB HTTP port
            database: Database queried
            username: Optional basic-auth user
            password: Optional basic-auth password
            use_ssl: Use https instead of http
            verify_ssl: Verify the server certificate when using https
            transport: Optional httpx transport (for testing)
        """
        self.database = database
        self.base_url = f"{'https' if use_ssl else 'http'}://{host}:{port}"
        self.auth = (username, password or "") if username else None
        self.verify_ssl = verify_ssl
        self.transport = transport

    async def query(self, query: str) -> list[Record]:
        """Run a query and return its records."""
        # No client-side timeout: the caller bounds the call and cancels it.
        async with httpx.AsyncClient(
            base_url=self.base_url,
            auth=self.auth,
            verify=self.verify_ssl,
            timeout=None,
            transport=self.transport,
        ) as client:
            try:
                response = await client.get("/query", params={"db": self.database, "q": query})
            except httpx.HTTPError as e:
                raise BackendError(f"Failed to reach InfluxDB at {self.base_url}: {e}", query, e) from e

        try:
            payload = response.json()
        except ValueError as e:
            raise BackendError(
                f"InfluxDB answered {response.status_code} with a non-JSON body", query, e
            ) from e

        if response.is_error:
            reason = payload.get("error", response.reason_phrase) if isinstance(payload, dict) else response.reason_phrase
            raise BackendError(f"InfluxDB answered {response.status_code}: {reason}", query)

        records = series_to_records(payload, query)
        logger.debug(f"Query returned {len(records)} series")
        return records
