from __future__ import annotations

import copy
from typing import Any, Dict, Iterator, Mapping, Optional

import yaml


class FrontMatter(dict):
    """Mutable document metadata extracted from the front-matter block."""

    @classmethod
    def from_mapping(cls, data: Optional[Mapping[str, Any]]) -> "FrontMatter":
        return cls(copy.deepcopy(dict(data or {})))

    def clone(self) -> "FrontMatter":
        return FrontMatter(copy.deepcopy(dict(self)))

    def view(self) -> "FrontMatterView":
        return FrontMatterView(self)


class FrontMatterView(Mapping[str, Any]):
    """Read-only snapshot of front matter.

    The snapshot is deep-copied when the view is created and every value handed
    out is copied again, so callers can never mutate the source map.
    """

    __slots__ = ("_data",)

    def __init__(self, data: Optional[Mapping[str, Any]] = None) -> None:
        self._data: Dict[str, Any] = copy.deepcopy(dict(data or {}))

    def __getitem__(self, key: str) -> Any:
        return copy.deepcopy(self._data[key])

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._data))

    def __len__(self) -> int:
        return len(self._data)

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def __repr__(self) -> str:
        return f"FrontMatterView({self._data!r})"

    def get(self, key: str, default: Any = None) -> Any:
        if key not in self._data:
            return default
        return copy.deepcopy(self._data[key])

    def as_dict(self) -> Dict[str, Any]:
        return copy.deepcopy(self._data)


def serialize_front_matter(data: Mapping[str, Any]) -> str:
    """Render metadata as a ``---`` delimited YAML block (empty string when empty)."""

    if not data:
        return ""
    body = yaml.safe_dump(
        dict(data),
        sort_keys=True,
        allow_unicode=True,
        default_flow_style=False,
    )
    if not body.endswith("\n"):
        body += "\n"
    return f"---\n{body}---\n"


__all__ = ["FrontMatter", "FrontMatterView", "serialize_front_matter"]
