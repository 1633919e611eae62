from __future__ import annotations

import datetime as _dt
from abc import ABC, abstractmethod
from typing import Any, Iterable, List, Mapping, Sequence, Tuple

from chunky.models.configs import HeaderField
from chunky.models.frontmatter import FrontMatterView, serialize_front_matter

_SCALARS = (str, bool, int, float, _dt.date, _dt.datetime, _dt.time)
_MISSING = object()


class ChunkHeader(ABC):
    """Renders the metadata block prepended to every chunk of a document."""

    @abstractmethod
    def render(self, front_matter: FrontMatterView) -> str:
        """Return the header text for ``front_matter``; raise on invalid metadata."""


class YamlFrontMatterHeader(ChunkHeader):
    """``---`` delimited YAML dump of the whole front matter (empty when there is none)."""

    def render(self, front_matter: FrontMatterView) -> str:
        return serialize_front_matter(front_matter.as_dict())


def lookup_field(front_matter: Mapping[str, Any], path: str) -> Any:
    """Resolve ``path`` as a top-level key, falling back to a dotted walk into nested maps."""

    if path in front_matter:
        return front_matter[path]
    current: Any = front_matter
    for part in path.split("."):
        if not isinstance(current, Mapping) or part not in current:
            return _MISSING
        current = current[part]
    return current


def _is_scalar(value: Any) -> bool:
    return value is None or isinstance(value, _SCALARS)


def _validate_value(value: Any) -> None:
    if _is_scalar(value):
        return
    if isinstance(value, Mapping):
        raise ValueError("maps are not supported in key-value headers")
    if isinstance(value, (list, tuple)):
        for index, item in enumerate(value):
            if not _is_scalar(item):
                raise ValueError(
                    f"element {index} is {type(item).__name__}; only scalars are allowed in lists"
                )
        return
    raise ValueError(f"unsupported value type {type(value).__name__}")


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple)):
        return len(value) == 0
    return False


def _scalar_string(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (_dt.date, _dt.datetime, _dt.time)):
        return value.isoformat()
    return str(value)


def render_value(value: Any) -> str:
    if isinstance(value, (list, tuple)):
        return ", ".join(_scalar_string(item) for item in value)
    return _scalar_string(value)


class KeyValueHeader(ChunkHeader):
    """One ``Label: value`` line per configured field, followed by a blank line.

    Required fields that are missing or empty raise ``ValueError``; optional
    ones are skipped.  Values must be scalars or flat lists of scalars.
    """

    def __init__(self, fields: Iterable[HeaderField]) -> None:
        self.fields: Tuple[HeaderField, ...] = tuple(fields)

    def render(self, front_matter: FrontMatterView) -> str:
        data = front_matter.as_dict()
        lines: List[str] = []
        for spec in self.fields:
            value = lookup_field(data, spec.path)
            present = value is not _MISSING
            if present:
                try:
                    _validate_value(value)
                except ValueError as exc:
                    raise ValueError(f"field {spec.path!r}: {exc}") from exc

            if not present or _is_empty(value):
                if spec.required:
                    raise ValueError(f"required field missing or empty: {spec.path}")
                continue

            lines.append(f"{spec.display_label}: {render_value(value)}\n")

        return "".join(lines) + "\n"


def create_header(fields: Sequence[HeaderField] | None = None) -> ChunkHeader:
    """Key-value header when fields are configured, otherwise the YAML block."""

    if fields:
        return KeyValueHeader(fields)
    return YamlFrontMatterHeader()


__all__ = [
    "ChunkHeader",
    "KeyValueHeader",
    "YamlFrontMatterHeader",
    "create_header",
    "lookup_field",
    "render_value",
]
