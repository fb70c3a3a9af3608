"""Turns one query result record into one alert event."""

import re

from loguru import logger

from src.probe.domain.exceptions import EvaluationError, InterpolationError
from src.probe.domain.models import Classification, Event, Record, Scalar, Severity
from src.probe.domain.template import Template, format_scalar
from src.probe.domain.threshold import ThresholdExpression
from src.probe.domain.value_path import ValuePath

_INVALID_NAME_CHARS = re.compile(r"[^A-Za-z0-9_.\-]")


def classify(
    value: Scalar | None,
    critical: ThresholdExpression | None = None,
    warning: ThresholdExpression | None = None,
) -> Classification:
    """
    Decide the severity of one extracted value.

    Critical is evaluated before warning, so a value matching both is CRITICAL.
    An absent value is UNKNOWN whatever the thresholds; a value that cannot be
    evaluated is UNKNOWN with the evaluation error as reason.
    """
    if value is None:
        return Classification(severity=Severity.UNKNOWN)

    try:
        if critical is not None and critical.evaluate(value):
            return Classification(severity=Severity.CRITICAL, value=value, expression=str(critical))
        if warning is not None and warning.evaluate(value):
            return Classification(severity=Severity.WARNING, value=value, expression=str(warning))
    except EvaluationError as e:
        logger.warning(e.message)
        return Classification(severity=Severity.UNKNOWN, value=value, reason=e.message)

    return Classification(severity=Severity.OK, value=value)


def sanitize_check_name(name: str) -> str:
    """Replace characters the client socket rejects in check names."""
    return _INVALID_NAME_CHARS.sub("_", name)


def format_message(message: str, classification: Classification) -> str:
    """Append the value (and the matching threshold or failure) to the message."""
    if classification.value is None:
        return f"{message} - Value: N/A"

    shown = format_scalar(classification.value)
    if classification.reason:
        return f"{message} - Value: {shown} ({classification.reason})"
    if classification.expression:
        return f"{message} - Value: {shown} ({classification.expression})"
    return f"{message} - Value: {shown}"


def build_event(
    name: str,
    source: str | None,
    classification: Classification,
    message: str,
    handlers: list[str] | None = None,
) -> Event:
    """Build the event for a classified record."""
    return Event(
        name=sanitize_check_name(name),
        source=source,
        severity=classification.severity,
        message=format_message(message, classification),
        handlers=list(handlers or []),
    )


class RecordEvaluator:
    """Extract, classify and describe one record at a time."""

    def __init__(
        self,
        value_path: ValuePath,
        check_name: Template,
        message: Template,
        critical: ThresholdExpression | None = None,
        warning: ThresholdExpression | None = None,
        handlers: list[str] | None = None,
        name_prefix: str = "influxdb-q-",
    ):
        """
        Initialize record evaluator.

        Args:
            value_path: Compiled JSON path selecting the checked value
            check_name: Template for the event name (prefixed with name_prefix)
            message: Template for the event output
            critical: Critical threshold, evaluated first
            warning: Warning threshold
            handlers: Sensu handlers attached to every event
            name_prefix: Prefix prepended to every rendered check name
        """
        self.value_path = value_path
        self.check_name = check_name
        self.message = message
        self.critical = critical
        self.warning = warning
        self.handlers = list(handlers or [])
        self.name_prefix = name_prefix

    def evaluate(self, record: Record, source: str | None) -> Event:
        """Build the event for one record; placeholder failures yield UNKNOWN."""
        value = self.value_path.extract(record)

        try:
            name = self.name_prefix + self.check_name.render(record)
            message = self.message.render(record)
        except InterpolationError as e:
            logger.warning(f"Record from {source or 'unknown source'}: {e.message}")
            shown = "N/A" if value is None else format_scalar(value)
            return Event(
                name=sanitize_check_name(self.name_prefix + self.check_name.render_partial(record)),
                source=source,
                severity=Severity.UNKNOWN,
                message=f"Unable to resolve %{{{e.path}}} - Value: {shown}",
                handlers=list(self.handlers),
            )

        classification = classify(value, self.critical, self.warning)
        logger.debug(f"{name}: {classification.severity.name} (value={value!r})")

        return build_event(name, source, classification, message, self.handlers)
