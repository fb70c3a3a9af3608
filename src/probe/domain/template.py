"""%{path.to.field} interpolation against result records."""

import re
from collections.abc import Mapping, Sequence
from typing import Any

from src.probe.domain.exceptions import InterpolationError, TemplateError
from src.probe.domain.models import Record, Scalar


def format_scalar(value: Scalar) -> str:
    """Render a scalar the way it reads in JSON (true/false, not True/False)."""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def resolve_path(record: Record, path: str) -> Scalar:
    """
    Walk a dotted attribute path through a record.

    Mappings are indexed by the segment as a string key, sequences by the
    segment as a non-negative integer. The leaf must be a non-null scalar.

    Raises:
        InterpolationError: If any segment does not resolve
    """
    node: Any = record
    for segment in path.split("."):
        if isinstance(node, Mapping):
            if segment not in node:
                raise InterpolationError(path, f"no key '{segment}'")
            node = node[segment]
        elif isinstance(node, Sequence) and not isinstance(node, str):
            if not (segment.isascii() and segment.isdigit()):
                raise InterpolationError(path, f"'{segment}' is not a sequence index")
            index = int(segment)
            if index >= len(node):
                raise InterpolationError(path, f"index {index} out of range")
            node = node[index]
        else:
            raise InterpolationError(path, f"cannot descend into {type(node).__name__} with '{segment}'")

    if node is None:
        raise InterpolationError(path, "value is null")
    if isinstance(node, (Mapping, list, tuple)):
        raise InterpolationError(path, f"{type(node).__name__} is not a scalar")
    return node


class Template:
    """A string with %{a.b.c} placeholders, validated once at startup."""

    __PLACEHOLDER = re.compile(r"%\{([^}]*)\}")

    def __init__(self, text: str) -> None:
        self.text = text
        self.paths: list[str] = []

        for match in self.__PLACEHOLDER.finditer(text):
            path = match.group(1).strip()
            if not path:
                raise TemplateError(text, "empty placeholder")
            if any(not segment for segment in path.split(".")):
                raise TemplateError(text, f"empty segment in %{{{path}}}")
            self.paths.append(path)

        if "%{" in self.__PLACEHOLDER.sub("", text):
            raise TemplateError(text, "unterminated placeholder")

    def __repr__(self) -> str:
        return f"Template({self.text!r})"

    def render(self, record: Record) -> str:
        """
        Substitute every placeholder.

        Raises:
            InterpolationError: On the first placeholder that does not resolve
        """
        if not self.paths:
            return self.text
        return self.__PLACEHOLDER.sub(
            lambda match: format_scalar(resolve_path(record, match.group(1).strip())), self.text
        )

    def render_partial(self, record: Record) -> str:
        """Substitute what resolves, keep the path of what does not."""

        def substitute(match: re.Match) -> str:
            path = match.group(1).strip()
            try:
                return format_scalar(resolve_path(record, path))
            except InterpolationError:
                return path

        return self.__PLACEHOLDER.sub(substitute, self.text)


def interpolate(template: str, record: Record) -> str:
    """Interpolate a template string against a record."""
    return Template(template).render(record)
