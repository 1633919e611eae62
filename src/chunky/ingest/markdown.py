from __future__ import annotations

import logging
import re
import tomllib
from abc import ABC, abstractmethod
from typing import Any, List, Sequence, Tuple

import yaml

from chunky.ingest.blocks import HeadingSpan, find_headings
from chunky.models.frontmatter import FrontMatter
from chunky.models.section import Section

logger = logging.getLogger(__name__)

_FRONT_MATTER_PATTERN = re.compile(
    r"\A\ufeff?(?P<delim>---|\+\+\+)[ \t]*\r?\n(?P<body>.*?)^(?P=delim)[ \t]*(?:\r?\n|\Z)",
    re.DOTALL | re.MULTILINE,
)


class DocumentParser(ABC):
    """Turns raw Markdown into a section tree plus its front matter."""

    @abstractmethod
    def parse(self, markdown: str, title: str) -> Tuple[Section, FrontMatter]:
        """Return the root section (titled ``title``) and the extracted front matter."""


def split_front_matter(markdown: str) -> Tuple[FrontMatter, str]:
    """Separate a leading ``---`` (YAML) or ``+++`` (TOML) block from the body.

    A document without a closed front-matter block is returned unchanged with
    empty metadata.
    """

    match = _FRONT_MATTER_PATTERN.match(markdown)
    if match is None:
        return FrontMatter(), markdown

    raw = match.group("body")
    if match.group("delim") == "+++":
        try:
            data: Any = tomllib.loads(raw)
        except tomllib.TOMLDecodeError as exc:
            raise ValueError(f"invalid TOML front matter: {exc}") from exc
    else:
        try:
            data = yaml.safe_load(raw)
        except yaml.YAMLError as exc:
            raise ValueError(f"invalid YAML front matter: {exc}") from exc

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValueError(f"front matter must be a mapping, got {type(data).__name__}")
    return FrontMatter.from_mapping(data), markdown[match.end() :]


def splice_text(src: str, start: int, stop: int) -> Tuple[str, int]:
    """Slice ``src[start:stop]`` with clamping; returns the text and the next cursor.

    Inverted or empty ranges yield no text and leave the cursor at ``start``.
    """

    start = max(start, 0)
    stop = min(stop, len(src))
    if stop <= start:
        return "", start
    return src[start:stop], stop


def parent_index_for_level(stack: Sequence[Section], level: int) -> int:
    """Index of the deepest stack frame whose level is below ``level``."""

    index = len(stack) - 1
    while index >= 0 and stack[index].level >= level:
        index -= 1
    if index < 0:
        raise ValueError(f"no valid parent section for heading level {level}")
    return index


def fold_sections(body: str, headings: Sequence[HeadingSpan], title: str) -> Section:
    """Fold ordered heading spans over ``body`` into a rooted section tree.

    Text between two boundaries belongs to the section on top of the stack;
    each heading pops frames until its parent has a strictly smaller level, so
    skipped levels (H1 then H3) nest under the nearest shallower heading.
    Heading marker lines themselves never become section content.
    """

    root = Section.root(title)
    stack: List[Section] = [root]
    cursor = 0

    for index, heading in enumerate(headings):
        if heading.start > cursor:
            text, cursor = splice_text(body, cursor, heading.start)
            stack[-1].append_content(text)

        try:
            parent_index = parent_index_for_level(stack, heading.level)
        except ValueError as exc:
            raise ValueError(f"invalid section stack at heading {index} ({heading.title!r}): {exc}") from exc

        del stack[parent_index + 1 :]
        section = stack[-1].create_child(heading.title, heading.level)
        stack.append(section)
        logger.debug(
            "created section %r (level %d) under %r, stack depth %d",
            heading.title,
            heading.level,
            stack[-2].title,
            len(stack),
        )
        cursor = max(cursor, min(heading.end, len(body)))

    if cursor < len(body):
        text, _ = splice_text(body, cursor, len(body))
        stack[-1].append_content(text)

    return root


class MarkdownParser(DocumentParser):
    """Default parser: front matter, heading discovery, then section folding.

    The parser keeps no state between calls, so one instance may be shared by
    independent pipelines.
    """

    def parse(self, markdown: str, title: str) -> Tuple[Section, FrontMatter]:
        logger.debug("parsing document %r (%d chars)", title, len(markdown))
        front_matter, body = split_front_matter(markdown)
        logger.debug("front matter extracted: %d key(s), body %d chars", len(front_matter), len(body))

        headings = find_headings(body)
        logger.debug("found %d heading(s)", len(headings))

        root = fold_sections(body, headings, title)
        return root, front_matter


__all__ = [
    "DocumentParser",
    "MarkdownParser",
    "fold_sections",
    "parent_index_for_level",
    "splice_text",
    "split_front_matter",
]
