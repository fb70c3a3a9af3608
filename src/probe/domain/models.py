"""Domain models for the InfluxDB query probe."""

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any

Scalar = str | int | float | bool
Record = dict[str, Any]

CHECK_NAME = "CheckInfluxDbQ"


class Severity(IntEnum):
    """Check status following the four-level check convention."""

    OK = 0
    WARNING = 1
    CRITICAL = 2
    UNKNOWN = 3


class RunMode(str, Enum):
    """How the run loop issues its queries."""

    PER_HOST = "per-host"
    SINGLE_QUERY = "single-query"


@dataclass(frozen=True)
class ClientDirectory:
    """Known client names, fetched once per run."""

    clients: tuple[str, ...] = ()
    available: bool = False

    def __contains__(self, client: object) -> bool:
        return client in self.clients

    def __len__(self) -> int:
        return len(self.clients)

    @classmethod
    def unavailable(cls) -> "ClientDirectory":
        return cls(clients=(), available=False)


@dataclass
class Classification:
    """Outcome of classifying one record."""

    severity: Severity
    value: Scalar | None = None
    expression: str | None = None  # threshold that fired, if any
    reason: str | None = None  # why the record is UNKNOWN despite a value


@dataclass
class Event:
    """Represents one alert event for the Sensu client socket."""

    name: str
    source: str | None
    severity: Severity
    message: str
    handlers: list[str] = field(default_factory=list)

    @property
    def output(self) -> str:
        return f"{self.severity.name}: {self.message}"

    def to_dict(self) -> dict:
        """Convert to the JSON document accepted by the client socket."""
        data: dict[str, Any] = {"name": self.name}
        if self.source:
            data["source"] = self.source
        data["status"] = int(self.severity)
        data["output"] = self.output
        if self.handlers:
            data["handlers"] = list(self.handlers)
        return data


@dataclass
class RunOutcome:
    """Process-level result of one probe run."""

    failures: int = 0
    records: int = 0
    clients: int = 0
    timed_out: bool = False
    severity: Severity = Severity.UNKNOWN
    message: str = ""
    events: list[Event] = field(default_factory=list)

    @property
    def output(self) -> str:
        return f"{CHECK_NAME} {self.severity.name}: {self.message}"
