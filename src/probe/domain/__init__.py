"""Domain layer for the probe."""

from src.probe.domain.models import (
    Classification,
    ClientDirectory,
    Event,
    Record,
    RunMode,
    RunOutcome,
    Scalar,
    Severity,
)
from src.probe.domain.protocols import ClientLister, EventSink, QueryBackend
from src.probe.domain.template import Template, interpolate
from src.probe.domain.threshold import ThresholdExpression
from src.probe.domain.value_path import ValuePath

__all__ = [
    "Classification",
    "ClientDirectory",
    "Event",
    "Record",
    "RunMode",
    "RunOutcome",
    "Scalar",
    "Severity",
    "ClientLister",
    "EventSink",
    "QueryBackend",
    "Template",
    "interpolate",
    "ThresholdExpression",
    "ValuePath",
]
