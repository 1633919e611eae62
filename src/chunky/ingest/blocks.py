"""Line-oriented Markdown block scanner.

Classifies the lines of a Markdown string into CommonMark-style blocks
(fenced and indented code, ATX and setext headings, list items, block quotes,
HTML blocks, tables and paragraphs) and reports their character offsets.
Headings are located for section folding, code ranges are protected from
whitespace rewriting, and paragraph spans are the only regions whose hard
wraps may be merged.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Tuple

_FENCE_OPEN = re.compile(r"^(?P<indent> {0,3})(?P<fence>`{3,}|~{3,})(?P<info>.*)$")
_ATX_HEADING = re.compile(r"^ {0,3}(?P<hashes>#{1,6})(?:[ \t]+(?P<title>.*?))?(?:[ \t]+#+)?[ \t]*$")
_SETEXT_UNDERLINE = re.compile(r"^ {0,3}(?P<marker>=+|-+)[ \t]*$")
_THEMATIC_BREAK = re.compile(r"^ {0,3}(?:(?:\*[ \t]*){3,}|(?:-[ \t]*){3,}|(?:_[ \t]*){3,})$")
_LIST_ITEM = re.compile(r"^(?P<indent>[ \t]*)(?P<marker>[-+*]|\d{1,9}[.)])(?:[ \t]+|$)")
_BLOCKQUOTE = re.compile(r"^ {0,3}>")
_HTML_COMMENT = re.compile(r"^ {0,3}<!--")
_HTML_BLOCK = re.compile(r"^ {0,3}</?[A-Za-z][A-Za-z0-9-]*(?:[\s/>]|$)")
_TABLE_ROW = re.compile(r"^ {0,3}\|")
_INDENTED = re.compile(r"^(?: {4}| {0,3}\t)")
_LIST_CONTINUATION = re.compile(r"^(?: {2,}|\t)")

_CODE_SPAN = re.compile(r"(?P<ticks>`+)(?P<code>.+?)(?P=ticks)")
_IMAGE = re.compile(r"!\[(?P<alt>[^\]]*)\]\([^)]*\)")
_INLINE_LINK = re.compile(r"\[(?P<text>[^\]]*)\]\([^)]*\)")
_REFERENCE_LINK = re.compile(r"\[(?P<text>[^\]]+)\]\[[^\]]*\]")
_AUTOLINK = re.compile(r"<(?P<url>(?:https?|ftp|mailto):[^>\s]+)>")
_HTML_TAG = re.compile(r"</?[A-Za-z][^>]*>")
_STRONG = re.compile(r"(\*\*|__)(?=\S)(?P<text>.+?)(?<=\S)\1")
_EMPHASIS_STAR = re.compile(r"\*(?=\S)(?P<text>.+?)(?<=\S)\*")
_EMPHASIS_UNDERSCORE = re.compile(r"(?<!\w)_(?=\S)(?P<text>.+?)(?<=\S)_(?!\w)")
_ESCAPE = re.compile(r"\\(?P<char>[!-/:-@\[-`{-~])")

CODE_KINDS = frozenset({"fence", "indented_code"})
PARAGRAPH_KINDS = frozenset({"paragraph", "list_item"})


@dataclass(slots=True)
class Line:
    start: int
    end: int  # exclusive, excludes the newline and any carriage return
    text: str

    @property
    def blank(self) -> bool:
        return not self.text.strip()


@dataclass(slots=True)
class Block:
    """A contiguous run of lines forming one Markdown block."""

    kind: str
    lines: List[Line] = field(default_factory=list)
    level: int = 0
    title: str = ""

    @property
    def start(self) -> int:
        return self.lines[0].start

    @property
    def end(self) -> int:
        return self.lines[-1].end


@dataclass(slots=True)
class HeadingSpan:
    """Character span ``[start, end)`` of a heading's marker line(s)."""

    start: int
    end: int
    level: int
    title: str


def split_lines(text: str) -> List[Line]:
    lines: List[Line] = []
    offset = 0
    for raw in text.split("\n"):
        stripped = raw[:-1] if raw.endswith("\r") else raw
        lines.append(Line(start=offset, end=offset + len(stripped), text=stripped))
        offset += len(raw) + 1
    if lines and text.endswith("\n"):
        lines.pop()
    return lines


def strip_inline(text: str) -> str:
    """Reduce inline Markdown to its plain text run."""

    parts: List[str] = []
    cursor = 0
    for match in _CODE_SPAN.finditer(text):
        parts.append(_strip_inline_markup(text[cursor : match.start()]))
        code = match.group("code")
        if len(code) > 2 and code.startswith(" ") and code.endswith(" "):
            code = code[1:-1]
        parts.append(code)
        cursor = match.end()
    parts.append(_strip_inline_markup(text[cursor:]))
    return "".join(parts).strip()


def _strip_inline_markup(text: str) -> str:
    text = _IMAGE.sub(lambda m: m.group("alt"), text)
    text = _INLINE_LINK.sub(lambda m: m.group("text"), text)
    text = _REFERENCE_LINK.sub(lambda m: m.group("text"), text)
    text = _AUTOLINK.sub(lambda m: m.group("url"), text)
    text = _HTML_TAG.sub("", text)
    text = _STRONG.sub(lambda m: m.group("text"), text)
    text = _EMPHASIS_STAR.sub(lambda m: m.group("text"), text)
    text = _EMPHASIS_UNDERSCORE.sub(lambda m: m.group("text"), text)
    return _ESCAPE.sub(lambda m: m.group("char"), text)


def _is_fence_open(text: str) -> Optional[re.Match[str]]:
    match = _FENCE_OPEN.match(text)
    if match is None:
        return None
    if match.group("fence").startswith("`") and "`" in match.group("info"):
        return None
    return match


def _is_list_item(text: str, in_list: bool) -> bool:
    match = _LIST_ITEM.match(text)
    if match is None or _THEMATIC_BREAK.match(text):
        return False
    return in_list or len(match.group("indent").expandtabs(4)) < 4


def _strip_indent(text: str, width: int) -> Optional[str]:
    """Drop ``width`` columns of leading indentation, or ``None`` if the line is less indented."""

    expanded = text.expandtabs(4)
    if len(expanded) - len(expanded.lstrip(" ")) < width:
        return None
    return expanded[width:]


def _list_content_indent(match: re.Match[str]) -> int:
    marker_end = len(match.group("indent").expandtabs(4)) + len(match.group("marker"))
    spacing = len(match.group(0).expandtabs(4)) - marker_end
    if spacing < 1 or spacing > 4:
        spacing = 1
    return marker_end + spacing


def _interrupts_paragraph(text: str) -> bool:
    if _is_fence_open(text) or _ATX_HEADING.match(text) or _THEMATIC_BREAK.match(text):
        return True
    if _BLOCKQUOTE.match(text) or _HTML_COMMENT.match(text):
        return True
    if _TABLE_ROW.match(text):
        return True
    match = _LIST_ITEM.match(text)
    if match is None or len(match.group("indent").expandtabs(4)) >= 4:
        return False
    marker = match.group("marker")
    # Only ordered lists starting at 1 may interrupt a paragraph.
    return not marker[0].isdigit() or marker[:-1] == "1"


class _BlockScanner:
    def __init__(self, text: str) -> None:
        self.lines = split_lines(text)
        self.blocks: List[Block] = []
        self.index = 0
        self.in_list = False
        self.list_indent = 0  # content column of the most recent list item

    def scan(self) -> List[Block]:
        while self.index < len(self.lines):
            line = self.lines[self.index]
            if line.blank:
                self._emit("blank", [line])
                self.index += 1
                continue
            self._scan_block(line)
        return self.blocks

    def _emit(self, kind: str, lines: List[Line], level: int = 0, title: str = "") -> None:
        self.blocks.append(Block(kind=kind, lines=lines, level=level, title=title))

    def _scan_list_code(self, text: str) -> bool:
        """Scan a fence or indented code block nested in the open list item."""

        inner = _strip_indent(text, self.list_indent)
        if inner is None:
            return False
        fence = _is_fence_open(inner)
        if fence:
            self._scan_fence(fence, self.list_indent)
            return True
        if _INDENTED.match(inner):
            self._scan_indented_code(self.list_indent)
            return True
        return False

    def _scan_block(self, line: Line) -> None:
        text = line.text
        if self.in_list and self._scan_list_code(text):
            return
        fence = _is_fence_open(text)
        if fence:
            self.in_list = False
            self._scan_fence(fence)
            return
        heading = _ATX_HEADING.match(text)
        if heading:
            self.in_list = False
            title = strip_inline(heading.group("title") or "")
            self._emit("heading", [line], level=len(heading.group("hashes")), title=title)
            self.index += 1
            return
        if _THEMATIC_BREAK.match(text):
            self.in_list = False
            self._emit("thematic_break", [line])
            self.index += 1
            return
        if _is_list_item(text, self.in_list):
            self.in_list = True
            self.list_indent = _list_content_indent(_LIST_ITEM.match(text))
            self._scan_paragraph("list_item")
            return
        if self.in_list and _LIST_CONTINUATION.match(text):
            self._scan_paragraph("list_item")
            return
        self.in_list = False
        if _BLOCKQUOTE.match(text):
            self._scan_blockquote()
        elif _HTML_COMMENT.match(text):
            self._scan_until(lambda current: "-->" in current.text, "html")
        elif _HTML_BLOCK.match(text):
            self._scan_while(lambda current: not current.blank, "html")
        elif _TABLE_ROW.match(text):
            self._scan_while(lambda current: not current.blank and "|" in current.text, "table")
        elif _INDENTED.match(text):
            self._scan_indented_code()
        else:
            self._scan_paragraph("paragraph")

    def _scan_fence(self, opener: re.Match[str], indent: int = 0) -> None:
        """Consume a fence; ``indent`` is the list content column it is nested at."""

        fence = opener.group("fence")
        closer = re.compile(rf"^ {{0,3}}{re.escape(fence[0])}{{{len(fence)},}}[ \t]*$")
        lines = [self.lines[self.index]]
        self.index += 1
        while self.index < len(self.lines):
            current = self.lines[self.index]
            inner = _strip_indent(current.text, indent)
            if inner is None:
                # A non-blank line left of the list content closes the item and its fence.
                if not current.blank:
                    break
                inner = ""
            lines.append(current)
            self.index += 1
            if closer.match(inner):
                break
        self._emit("fence", lines)

    def _scan_paragraph(self, kind: str) -> None:
        lines = [self.lines[self.index]]
        self.index += 1
        while self.index < len(self.lines):
            current = self.lines[self.index]
            if current.blank:
                break
            underline = _SETEXT_UNDERLINE.match(current.text)
            if kind == "paragraph" and underline:
                level = 1 if underline.group("marker").startswith("=") else 2
                title = strip_inline(" ".join(item.text.strip() for item in lines))
                self._emit("heading", lines + [current], level=level, title=title)
                self.index += 1
                return
            if _interrupts_paragraph(current.text):
                break
            if kind == "list_item":
                if _LIST_ITEM.match(current.text):
                    break
                inner = _strip_indent(current.text, self.list_indent)
                if inner is not None and _is_fence_open(inner):
                    break
            lines.append(current)
            self.index += 1
        self._emit(kind, lines)

    def _scan_blockquote(self) -> None:
        def inside(current: Line) -> bool:
            if current.blank:
                return False
            return bool(_BLOCKQUOTE.match(current.text)) or not _interrupts_paragraph(current.text)

        self._scan_while(inside, "blockquote")

    def _scan_indented_code(self, indent: int = 0) -> None:
        lines: List[Line] = []
        while self.index < len(self.lines):
            current = self.lines[self.index]
            if not current.blank:
                inner = _strip_indent(current.text, indent)
                if inner is None or not _INDENTED.match(inner):
                    break
            lines.append(current)
            self.index += 1
        trailing: List[Line] = []
        while lines and lines[-1].blank:
            trailing.insert(0, lines.pop())
        self._emit("indented_code", lines)
        for blank in trailing:
            self._emit("blank", [blank])

    def _scan_while(self, predicate: Callable[[Line], bool], kind: str) -> None:
        lines = [self.lines[self.index]]
        self.index += 1
        while self.index < len(self.lines) and predicate(self.lines[self.index]):
            lines.append(self.lines[self.index])
            self.index += 1
        self._emit(kind, lines)

    def _scan_until(self, predicate: Callable[[Line], bool], kind: str) -> None:
        lines: List[Line] = []
        while self.index < len(self.lines):
            current = self.lines[self.index]
            lines.append(current)
            self.index += 1
            if predicate(current):
                break
        self._emit(kind, lines)


def scan_blocks(text: str) -> List[Block]:
    return _BlockScanner(text).scan()


def find_headings(text: str) -> List[HeadingSpan]:
    return [
        HeadingSpan(start=block.start, end=block.end, level=block.level, title=block.title)
        for block in scan_blocks(text)
        if block.kind == "heading"
    ]


def code_ranges(text: str) -> List[Tuple[int, int]]:
    """Character ranges of fenced and indented code blocks, in order."""

    return [(block.start, block.end) for block in scan_blocks(text) if block.kind in CODE_KINDS]


def paragraph_blocks(text: str) -> List[Block]:
    return [block for block in scan_blocks(text) if block.kind in PARAGRAPH_KINDS]


__all__ = [
    "Block",
    "HeadingSpan",
    "Line",
    "code_ranges",
    "find_headings",
    "paragraph_blocks",
    "scan_blocks",
    "split_lines",
    "strip_inline",
]
