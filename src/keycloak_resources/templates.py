"""URL templates made of literal and placeholder segments.

A template looks like ``{+baseurl}/admin/realms/{realm}/users/{user%2Did}``:
an optional reserved base placeholder followed by ``/``-separated segments.
Each segment is either a literal or exactly one ``{name}`` placeholder.
Placeholder names are percent-decoded, so ``{user%2Did}`` binds ``user-id``.
"""

import re
from collections.abc import Mapping
from enum import Enum
from typing import Any
from urllib.parse import quote, unquote

from pydantic import BaseModel, ConfigDict

from keycloak_resources.exceptions import TemplateError, UnresolvedPathError

_TEMPLATE_RE = re.compile(r"^(?:\{\+(?P<base>[^{}/]+)\})?(?P<path>(?:/[^/]*)*)$")
_PLACEHOLDER_RE = re.compile(r"^\{(?P<name>[^{}+]+)\}$")


class SegmentKind(str, Enum):
    LITERAL = "literal"
    PLACEHOLDER = "placeholder"


class Segment(BaseModel):
    """One path segment: a literal string or a named placeholder."""

    model_config = ConfigDict(frozen=True)

    value: str
    kind: SegmentKind = SegmentKind.LITERAL

    @classmethod
    def literal(cls, value: str) -> "Segment":
        if not value:
            raise TemplateError("Literal segments cannot be empty")
        if "/" in value or "{" in value or "}" in value:
            raise TemplateError(f"Invalid literal segment: {value!r}")
        return cls(value=value, kind=SegmentKind.LITERAL)

    @classmethod
    def placeholder(cls, name: str) -> "Segment":
        if not name:
            raise TemplateError("Placeholder names cannot be empty")
        return cls(value=name, kind=SegmentKind.PLACEHOLDER)

    @property
    def is_placeholder(self) -> bool:
        return self.kind is SegmentKind.PLACEHOLDER

    def __str__(self) -> str:
        if self.is_placeholder:
            return "{" + quote(self.value, safe="") + "}"
        return self.value


class PathTemplate(BaseModel):
    """An immutable, ordered sequence of path segments.

    Attributes:
        base: Name of the reserved base placeholder (``baseurl``), if any.
            Its value is inserted verbatim, without percent-encoding.
        segments: Path segments, in order.
    """

    model_config = ConfigDict(frozen=True)

    base: str | None = None
    segments: tuple[Segment, ...] = ()

    @classmethod
    def parse(cls, template: str) -> "PathTemplate":
        """Parse a template string.

        Raises:
            TemplateError: If the string does not follow the template grammar
        """
        match = _TEMPLATE_RE.match(template)
        if match is None:
            raise TemplateError(f"Malformed URL template: {template!r}")

        base = match.group("base")
        path = match.group("path")
        segments = []
        if path:
            for raw in path[1:].split("/"):
                placeholder = _PLACEHOLDER_RE.match(raw)
                if placeholder:
                    segments.append(Segment.placeholder(unquote(placeholder.group("name"))))
                else:
                    segments.append(Segment.literal(raw))

        return cls(base=unquote(base) if base else None, segments=tuple(segments))._checked()

    @property
    def placeholders(self) -> list[str]:
        """Placeholder names in template order, the base placeholder first."""
        names = [self.base] if self.base else []
        names.extend(segment.value for segment in self.segments if segment.is_placeholder)
        return names

    def extend(self, literal: str) -> "PathTemplate":
        return PathTemplate(base=self.base, segments=self.segments + (Segment.literal(literal),))

    def extend_placeholder(self, name: str) -> "PathTemplate":
        return PathTemplate(base=self.base, segments=self.segments + (Segment.placeholder(name),))._checked()

    def _checked(self) -> "PathTemplate":
        names = self.placeholders
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            raise TemplateError(f"Duplicate placeholder names in template: {', '.join(duplicates)}")
        return self

    def render(self, bindings: Mapping[str, Any]) -> str:
        """Substitute every placeholder with its bound value.

        Raises:
            UnresolvedPathError: If a placeholder is unbound or bound to ""
        """
        parts = []
        if self.base:
            parts.append(str(self._lookup(bindings, self.base)).rstrip("/"))
        for segment in self.segments:
            if segment.is_placeholder:
                value = str(self._lookup(bindings, segment.value))
                parts.append("/" + quote(value, safe=""))
            else:
                parts.append("/" + segment.value)
        return "".join(parts)

    def _lookup(self, bindings: Mapping[str, Any], name: str) -> Any:
        value = bindings.get(name)
        if value is None or value == "":
            raise UnresolvedPathError(name, str(self))
        return value

    def __str__(self) -> str:
        prefix = "{+" + quote(self.base, safe="") + "}" if self.base else ""
        return prefix + "".join("/" + str(segment) for segment in self.segments)
