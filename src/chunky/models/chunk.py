from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Chunk:
    """A packed, header-prefixed slice of one document."""

    file_path: str
    file_title: str
    chunk_index: int  # 1-based within the source document
    text: str
    tokens: int  # header tokens + body tokens

    def is_jumbo(self, effective_budget: int) -> bool:
        return self.tokens > effective_budget


__all__ = ["Chunk"]
