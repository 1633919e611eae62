from __future__ import annotations

import weakref
from dataclasses import dataclass, field
from typing import Iterator, List, Optional


@dataclass(slots=True, weakref_slot=True, eq=False)
class Section:
    """A heading (or the synthetic document root) and the text it directly owns."""

    title: str
    level: int = 0
    content: str = ""
    children: List["Section"] = field(default_factory=list)
    _parent: Optional["weakref.ReferenceType[Section]"] = field(default=None, repr=False)

    @classmethod
    def root(cls, title: str) -> "Section":
        return cls(title=title, level=0)

    @property
    def parent(self) -> Optional["Section"]:
        if self._parent is None:
            return None
        return self._parent()

    @property
    def is_root(self) -> bool:
        return self._parent is None

    def create_child(self, title: str, level: int, content: str = "") -> "Section":
        """Append a new child section, keeping children in document order."""

        if level <= self.level:
            raise ValueError(
                f"child level {level} must be greater than parent level {self.level} ({self.title!r})"
            )
        child = Section(title=title, level=level, content=content)
        child._parent = weakref.ref(self)
        self.children.append(child)
        return child

    def set_content(self, text: str) -> None:
        self.content = text

    def reset_content(self) -> None:
        self.content = ""

    def append_content(self, fragment: str) -> None:
        self.content += fragment

    def prepend_content(self, fragment: str) -> None:
        self.content = fragment + self.content

    def iter_preorder(self) -> Iterator["Section"]:
        yield self
        for child in self.children:
            yield from child.iter_preorder()

    def title_path(self) -> List[str]:
        """Titles from the root down to this section."""

        parts: List[str] = []
        current: Optional[Section] = self
        while current is not None:
            parts.append(current.title)
            current = current.parent
        parts.reverse()
        return parts

    def render(self) -> str:
        return "".join(node.content for node in self.iter_preorder())


__all__ = ["Section"]
