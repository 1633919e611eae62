"""Front-matter and section transforms.

A front-matter transform mutates the document metadata in place and receives
the :class:`DocumentContext` of the document being processed.  A section
transform receives a read-only :class:`FrontMatterView` and one
:class:`Section`, and may rewrite that section's own content.  Both signal
failure by raising.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, List, Mapping, Optional, Sequence

from chunky.ingest.blocks import code_ranges, paragraph_blocks
from chunky.models.frontmatter import FrontMatter, FrontMatterView
from chunky.models.section import Section

logger = logging.getLogger(__name__)

_BLANK_RUN = re.compile(r"\n(?:[ \t]*\n){2,}")
_PATH_COMMENT_PREFIX = "<!-- path:"


@dataclass(frozen=True, slots=True)
class DocumentContext:
    """Identity of the document a transform is running against."""

    path: str
    title: str


FrontMatterTransform = Callable[[DocumentContext, FrontMatter], None]
SectionTransform = Callable[[FrontMatterView, Section], None]


class TransformFailure(Exception):
    """Carries the position of the transform that raised."""

    def __init__(self, index: int, error: Exception, section: Optional[Section] = None) -> None:
        self.index = index
        self.error = error
        self.section = section
        where = f" on section {section.title!r}" if section is not None else ""
        super().__init__(f"transform {index} failed{where}: {error}")


def apply_front_matter_transforms(
    context: DocumentContext,
    front_matter: FrontMatter,
    transforms: Sequence[FrontMatterTransform],
    before_each: Optional[Callable[[int], None]] = None,
) -> None:
    """Run ``transforms`` in order; each sees the effect of the previous ones.

    ``before_each`` is called with the transform index before every step and
    may raise to stop the run; its exceptions are not wrapped.
    """

    for index, transform in enumerate(transforms):
        if before_each is not None:
            before_each(index)
        try:
            transform(context, front_matter)
        except Exception as exc:
            raise TransformFailure(index, exc) from exc


def apply_section_transforms(
    view: FrontMatterView,
    root: Section,
    transforms: Sequence[SectionTransform],
) -> None:
    """Apply every transform to a node before descending into its children.

    The walk is pre-order, children left to right.  The first failure stops
    the walk; edits already made are kept.
    """

    stack: List[Section] = [root]
    while stack:
        node = stack.pop()
        for index, transform in enumerate(transforms):
            try:
                transform(view, node)
            except Exception as exc:
                raise TransformFailure(index, exc, node) from exc
        stack.extend(reversed(node.children))


# --- front-matter transforms -------------------------------------------------


def inject_file_path(key: str = "file_path") -> FrontMatterTransform:
    """Record the document path under ``key`` unless the key is already set."""

    key = key or "file_path"

    def transform(context: DocumentContext, front_matter: FrontMatter) -> None:
        if key in front_matter:
            logger.debug("front matter already has %r, not injecting file path", key)
            return
        if not context.path:
            raise ValueError("inject_file_path: document path is not available")
        front_matter[key] = context.path

    return transform


def merge_front_matter(data: Mapping[str, Any]) -> FrontMatterTransform:
    """Add keys from ``data`` that the document does not define itself."""

    defaults = FrontMatter.from_mapping(data)

    def transform(context: DocumentContext, front_matter: FrontMatter) -> None:
        merged = 0
        for key, value in defaults.clone().items():
            if key not in front_matter:
                front_matter[key] = value
                merged += 1
        logger.debug("merged %d of %d default front matter key(s) into %s", merged, len(defaults), context.path)

    return transform


def require_summary() -> FrontMatterTransform:
    def transform(context: DocumentContext, front_matter: FrontMatter) -> None:
        if "summary" not in front_matter:
            raise ValueError("require_summary: front matter is missing the 'summary' field")
        summary = front_matter["summary"]
        if not isinstance(summary, str):
            raise ValueError(
                f"require_summary: 'summary' must be a string, got {type(summary).__name__}"
            )
        if not summary.strip():
            raise ValueError("require_summary: 'summary' cannot be empty")

    return transform


# --- section transforms ------------------------------------------------------


def normalize_newlines() -> SectionTransform:
    """Convert CRLF and lone CR line endings to LF."""

    def transform(view: FrontMatterView, section: Section) -> None:
        section.set_content(section.content.replace("\r\n", "\n").replace("\r", "\n"))

    return transform


def _join_wrapped(lines: Sequence[str]) -> str:
    joined = lines[0]
    for line in lines[1:]:
        continuation = line.lstrip(" \t")
        joined += continuation if joined.endswith(" ") else " " + continuation
    return joined


def normalize_hard_wraps() -> SectionTransform:
    """Merge single newlines inside paragraphs and list items into spaces.

    Blank-line paragraph breaks and every non-paragraph block (headings, code,
    block quotes, HTML comments, tables) are left as they are.
    """

    def transform(view: FrontMatterView, section: Section) -> None:
        content = section.content
        if not content:
            return
        edits = [
            (block.start, block.end, _join_wrapped([line.text for line in block.lines]))
            for block in paragraph_blocks(content)
            if len(block.lines) > 1
        ]
        if not edits:
            return
        for start, end, replacement in reversed(edits):
            content = content[:start] + replacement + content[end:]
        section.set_content(content)

    return transform


def prune_leading_blank_lines(max_keep: int = 0) -> SectionTransform:
    def transform(view: FrontMatterView, section: Section) -> None:
        content = section.content
        if not content:
            return
        lines = content.split("\n")
        leading = 0
        for line in lines:
            if line.strip():
                break
            leading += 1
        to_remove = leading - max_keep
        if to_remove > 0:
            section.set_content("\n".join(lines[to_remove:]))

    return transform


def prune_trailing_blank_lines(max_keep: int = 0) -> SectionTransform:
    """Drop whitespace-only lines at the end of the content beyond ``max_keep``.

    The newline terminating the last line is not a blank line and is kept.
    """

    def transform(view: FrontMatterView, section: Section) -> None:
        content = section.content
        if not content:
            return
        lines = content.split("\n")
        if content.endswith("\n"):
            lines.pop()
        trailing = 0
        for line in reversed(lines):
            if line.strip():
                break
            trailing += 1
        to_remove = trailing - max_keep
        if to_remove <= 0:
            return
        kept = lines[: len(lines) - to_remove]
        if not kept:
            section.reset_content()
            return
        section.set_content("\n".join(kept) + "\n")

    return transform


def collapse_blank_lines() -> SectionTransform:
    """Collapse three or more consecutive line breaks into two outside code blocks."""

    def transform(view: FrontMatterView, section: Section) -> None:
        content = section.content
        if not content:
            return
        pieces: List[str] = []
        cursor = 0
        for start, end in code_ranges(content):
            pieces.append(_BLANK_RUN.sub("\n\n", content[cursor:start]))
            pieces.append(content[start:end])
            cursor = end
        pieces.append(_BLANK_RUN.sub("\n\n", content[cursor:]))
        collapsed = "".join(pieces)
        if collapsed != content:
            section.set_content(collapsed)

    return transform


def heading_prefix() -> SectionTransform:
    """Put the section's own heading line back at the top of its content.

    The heading goes after any leading comment lines (such as the path
    breadcrumb) and is skipped for the document root.
    """

    def transform(view: FrontMatterView, section: Section) -> None:
        if section.is_root:
            return
        expected = f"{'#' * section.level} {section.title}"
        content = section.content
        lines = content.split("\n")

        first = None
        for index, line in enumerate(lines):
            stripped = line.strip()
            if not stripped or stripped.startswith("<!--"):
                continue
            first = index
            break

        if first is not None and lines[first].strip() == expected:
            return

        if first is None:
            if content and not content.endswith("\n"):
                content += "\n"
            section.set_content(f"{content}{expected}\n")
            return

        before = "\n".join(lines[:first])
        if before:
            before += "\n"
        after = "\n".join(lines[first:])
        section.set_content(f"{before}{expected}\n\n{after}")

    return transform


def heading_path_comment() -> SectionTransform:
    """Insert or refresh a ``<!-- path: A / B -->`` breadcrumb as the first line."""

    def transform(view: FrontMatterView, section: Section) -> None:
        content = section.content
        if not content.strip():
            return
        comment = f"{_PATH_COMMENT_PREFIX} {' / '.join(section.title_path())} -->"
        first, newline, rest = content.partition("\n")
        if first.startswith(_PATH_COMMENT_PREFIX):
            if first != comment:
                section.set_content(comment + newline + rest)
            return
        section.prepend_content(f"{comment}\n")

    return transform


def default_front_matter_transforms() -> List[FrontMatterTransform]:
    return [inject_file_path("file_path")]


def default_section_transforms() -> List[SectionTransform]:
    return [
        normalize_newlines(),
        normalize_hard_wraps(),
        prune_leading_blank_lines(0),
        prune_trailing_blank_lines(0),
        collapse_blank_lines(),
        heading_prefix(),
        heading_path_comment(),
    ]


__all__ = [
    "DocumentContext",
    "FrontMatterTransform",
    "SectionTransform",
    "TransformFailure",
    "apply_front_matter_transforms",
    "apply_section_transforms",
    "collapse_blank_lines",
    "default_front_matter_transforms",
    "default_section_transforms",
    "heading_path_comment",
    "heading_prefix",
    "inject_file_path",
    "merge_front_matter",
    "normalize_hard_wraps",
    "normalize_newlines",
    "prune_leading_blank_lines",
    "prune_trailing_blank_lines",
    "require_summary",
]
