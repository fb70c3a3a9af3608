"""Application layer for the probe."""

from src.probe.application.query_check import (
    CheckerConfig,
    QueryCheck,
    create_query_check,
    inject_host_filter,
    load_client_directory,
)
from src.probe.application.record_evaluator import RecordEvaluator, build_event, classify

__all__ = [
    "CheckerConfig",
    "QueryCheck",
    "create_query_check",
    "inject_host_filter",
    "load_client_directory",
    "RecordEvaluator",
    "build_event",
    "classify",
]
