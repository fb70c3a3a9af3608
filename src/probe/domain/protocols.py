"""Protocols (interfaces) for probe collaborators."""

from typing import Protocol

from src.probe.domain.models import Event, Record


class QueryBackend(Protocol):
    """Interface for the time-series backend."""

    async def query(self, query: str) -> list[Record]:
        """
        Run a query.

        Args:
            query: Query string in the backend's language

        Returns:
            Ordered result records

        Raises:
            BackendError: On connection, authentication or query failure
        """
        ...


class ClientLister(Protocol):
    """Interface for the host/client directory service."""

    async def list_clients(self) -> list[str]:
        """
        List known client names.

        Raises:
            DirectoryError: When the directory cannot be reached or answers non-2xx
        """
        ...


class EventSink(Protocol):
    """Interface for delivering alert events."""

    def write_event(self, event: Event) -> None:
        """Write a single event. Never raises on delivery failure."""
        ...
