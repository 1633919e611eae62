from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator, List, Optional

from chunky.ingest.tokenizer import MeasuredSection
from chunky.models.chunk import Chunk


@dataclass(frozen=True, slots=True)
class Unit:
    """One section's own content and its token count."""

    text: str
    tokens: int


def iter_units(root: Optional[MeasuredSection]) -> Iterator[Unit]:
    """Yield non-empty sections in document (pre-order) order."""

    if root is None:
        return
    stack: List[MeasuredSection] = [root]
    while stack:
        node = stack.pop()
        if node.own_tokens > 0:
            yield Unit(text=node.section.content, tokens=node.own_tokens)
        stack.extend(reversed(node.children))


@dataclass(slots=True)
class ChunkBuilder:
    """Greedy accumulator that turns units into header-prefixed chunks."""

    file_path: str
    file_title: str
    header: str
    header_tokens: int
    body_budget: int
    _parts: List[str] = field(default_factory=list)
    _tokens: int = 0
    _next_index: int = 1

    def _emit(self, body: str, body_tokens: int) -> Chunk:
        chunk = Chunk(
            file_path=self.file_path,
            file_title=self.file_title,
            chunk_index=self._next_index,
            text=self.header + body,
            tokens=self.header_tokens + body_tokens,
        )
        self._next_index += 1
        return chunk

    def append_unit(self, unit: Unit) -> List[Chunk]:
        """Add a unit, returning any chunks completed as a side effect."""

        if unit.tokens <= 0:
            return []

        produced: List[Chunk] = []
        if unit.tokens > self.body_budget:
            # Oversized units are never split: close the open chunk, then emit alone.
            flushed = self.flush()
            if flushed is not None:
                produced.append(flushed)
            produced.append(self._emit(unit.text, unit.tokens))
            return produced

        if self._tokens + unit.tokens > self.body_budget:
            flushed = self.flush()
            if flushed is not None:
                produced.append(flushed)

        self._parts.append(unit.text)
        self._tokens += unit.tokens
        return produced

    def flush(self) -> Optional[Chunk]:
        if not self._parts:
            return None
        chunk = self._emit("".join(self._parts), self._tokens)
        self._parts = []
        self._tokens = 0
        return chunk


def pack_document(
    root: MeasuredSection,
    *,
    file_path: str,
    file_title: str,
    header: str,
    header_tokens: int,
    body_budget: int,
) -> List[Chunk]:
    """Pack a measured tree into ordered chunks without reordering or splitting sections."""

    builder = ChunkBuilder(
        file_path=file_path,
        file_title=file_title,
        header=header,
        header_tokens=header_tokens,
        body_budget=body_budget,
    )
    chunks: List[Chunk] = []
    for unit in iter_units(root):
        chunks.extend(builder.append_unit(unit))
    final = builder.flush()
    if final is not None:
        chunks.append(final)
    return chunks


__all__ = ["ChunkBuilder", "Unit", "iter_units", "pack_document"]
