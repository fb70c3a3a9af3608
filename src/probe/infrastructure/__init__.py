"""Infrastructure layer for the probe."""

from src.probe.infrastructure.client_directory import (
    SensuApiClient,
    discover_settings_files,
    load_api_settings,
    read_api_settings,
)
from src.probe.infrastructure.container import ProbeContainer, init_container
from src.probe.infrastructure.event_sink import (
    InMemoryEventSink,
    StdoutEventSink,
    UdpEventSink,
    serialize_event,
)
from src.probe.infrastructure.influxdb_backend import InfluxDBBackend, series_to_records
from src.probe.infrastructure.logging import LoggingContext, configure_logging

__all__ = [
    "SensuApiClient",
    "read_api_settings",
    "discover_settings_files",
    "load_api_settings",
    "ProbeContainer",
    "init_container",
    "InMemoryEventSink",
    "StdoutEventSink",
    "UdpEventSink",
    "serialize_event",
    "InfluxDBBackend",
    "series_to_records",
    "LoggingContext",
    "configure_logging",
]
