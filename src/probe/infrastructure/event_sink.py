"""Event sinks for delivering alert events."""

import json
import socket

from loguru import logger

from src.probe.domain.exceptions import DeliveryError
from src.probe.domain.models import Event
from src.probe.domain.protocols import EventSink


def serialize_event(event: Event) -> str:
    """Serialize an event to the newline-terminated JSON the client socket reads."""
    return json.dumps(event.to_dict()) + "\n"


class UdpEventSink(EventSink):
    """Fire-and-forget delivery to the Sensu client socket."""

    def __init__(self, host: str = "127.0.0.1", port: int = 3030):
        self.host = host
        self.port = port
        self.sent = 0
        self.failed = 0

    def write_event(self, event: Event) -> None:
        """Send one datagram; delivery failures are logged, never raised."""
        try:
            self._send(serialize_event(event).encode("utf-8"))
        except DeliveryError as e:
            self.failed += 1
            logger.warning(f"{e.message} (event {event.name})")
            return
        self.sent += 1

    def _send(self, payload: bytes) -> None:
        try:
            with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
                sock.sendto(payload, (self.host, self.port))
        except OSError as e:
            raise DeliveryError(
                f"Failed to send event to {self.host}:{self.port}: {e}",
                details={"host": self.host, "port": self.port},
            ) from e


class StdoutEventSink(EventSink):
    """Dry-run sink printing events instead of sending them."""

    def write_event(self, event: Event) -> None:
        """Print the serialized event."""
        print(serialize_event(event), end="")


class InMemoryEventSink(EventSink):
    """Simple in-memory event storage for testing."""

    def __init__(self):
        self.events: list[Event] = []

    def write_event(self, event: Event) -> None:
        """Write a single event."""
        self.events.append(event)

    def clear(self):
        """Clear all stored events."""
        self.events.clear()

    def __len__(self):
        return len(self.events)
