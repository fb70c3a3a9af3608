"""JSON path value extraction from result records."""

from collections.abc import Mapping

from jsonpath_ng.ext import parse as parse_jsonpath

from src.probe.domain.exceptions import ValuePathError
from src.probe.domain.models import Record, Scalar


class ValuePath:
    """A compiled JSON path selecting the checked value from a record."""

    def __init__(self, path: str) -> None:
        self.path = path
        try:
            self._expression = parse_jsonpath(path)
        except Exception as e:
            raise ValuePathError(path, e) from e

    def __repr__(self) -> str:
        return f"ValuePath({self.path!r})"

    def extract(self, record: Record) -> Scalar | None:
        """Return the first scalar the path selects, or None when it selects none."""
        for match in self._expression.find(record):
            value = match.value
            if value is None or isinstance(value, (Mapping, list, tuple)):
                continue
            return value
        return None
