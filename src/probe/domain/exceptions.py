"""Custom exceptions for the probe."""


class ProbeException(Exception):
    """Base exception for all probe errors."""

    def __init__(self, message: str, details: dict | None = None):
        """
        Initialize probe exception.

        Args:
            message: Human-readable error message
            details: Optional dict with additional error context
        """
        self.message = message
        self.details = details or {}
        super().__init__(message)


class ConfigurationError(ProbeException):
    """Raised when the check cannot be built from its configuration."""

    pass


class ExpressionError(ConfigurationError):
    """Raised when a threshold expression does not compile."""

    def __init__(self, expression: str, reason: str):
        super().__init__(
            message=f"Invalid threshold expression '{expression}': {reason}",
            details={"expression": expression, "reason": reason},
        )


class TemplateError(ConfigurationError):
    """Raised when an interpolation template is malformed."""

    def __init__(self, template: str, reason: str):
        super().__init__(
            message=f"Invalid template '{template}': {reason}",
            details={"template": template, "reason": reason},
        )


class ValuePathError(ConfigurationError):
    """Raised when a JSON path does not compile."""

    def __init__(self, path: str, parse_error: Exception | None = None):
        details = {"path": path}
        if parse_error:
            details["parse_error"] = str(parse_error)
            details["parse_error_type"] = type(parse_error).__name__
        super().__init__(message=f"Invalid JSON path '{path}'", details=details)


class EvaluationError(ProbeException):
    """Raised when a threshold expression cannot be evaluated against a value."""

    def __init__(self, expression: str, value, reason: str):
        super().__init__(
            message=f"Cannot evaluate '{expression}' with value {value!r}: {reason}",
            details={"expression": expression, "value": value, "reason": reason},
        )


class InterpolationError(ProbeException):
    """Raised when a template placeholder does not resolve against a record."""

    def __init__(self, path: str, reason: str):
        self.path = path
        super().__init__(
            message=f"Unable to resolve %{{{path}}}: {reason}",
            details={"path": path, "reason": reason},
        )


class BackendError(ProbeException):
    """Raised when the time-series backend fails to answer a query."""

    def __init__(self, message: str, query: str | None = None, original_error: Exception | None = None):
        details = {}
        if query:
            details["query"] = query
        if original_error:
            details["original_error"] = str(original_error)
            details["original_error_type"] = type(original_error).__name__
        super().__init__(message, details)


class QueryTimeoutError(ProbeException):
    """Raised when a backend query does not return within the configured timeout."""

    def __init__(self, query: str, timeout: float):
        self.timeout = timeout
        super().__init__(
            message=f"Query timed out after {timeout:g} seconds",
            details={"query": query, "timeout": timeout},
        )


class DirectoryError(ProbeException):
    """Raised when the client directory cannot be listed."""

    pass


class DeliveryError(ProbeException):
    """Raised when an event cannot be handed to the event sink."""

    pass
