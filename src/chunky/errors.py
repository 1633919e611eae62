from __future__ import annotations

from typing import Sequence, TYPE_CHECKING

if TYPE_CHECKING:
    from chunky.models.chunk import Chunk


class ChunkyError(Exception):
    """Base class for every error raised by chunky."""


class ConfigurationError(ChunkyError, ValueError):
    """Invalid budget, overhead ratio, or options file."""


class DocumentError(ChunkyError):
    """A single document failed; earlier documents' chunks are unaffected."""

    stage = "processing"

    def __init__(self, path: str, message: str) -> None:
        super().__init__(f"{self.stage} failed for {path}: {message}")
        self.path = path


class ParseError(DocumentError):
    stage = "parse"


class TransformError(DocumentError):
    """Raised when a front-matter or section transform fails."""

    stage = "transform"

    def __init__(self, path: str, kind: str, index: int, message: str) -> None:
        self.kind = kind
        self.index = index
        super().__init__(path, f"{kind} transform {index}: {message}")


class HeaderError(DocumentError):
    stage = "header generation"


class MeasurementError(DocumentError):
    stage = "token counting"


class BudgetExhaustedError(DocumentError):
    stage = "budgeting"

    def __init__(self, path: str, header_tokens: int, effective_budget: int) -> None:
        self.header_tokens = header_tokens
        self.effective_budget = effective_budget
        super().__init__(
            path,
            f"header ({header_tokens} tokens) exceeds effective budget ({effective_budget} tokens)",
        )


class ChunkingCancelled(DocumentError):
    stage = "chunking"

    def __init__(self, path: str, checkpoint: str) -> None:
        self.checkpoint = checkpoint
        super().__init__(path, f"cancelled {checkpoint}")


class StrictModeError(ChunkyError):
    """Strict mode found chunks over the effective budget."""

    def __init__(self, jumbo_chunks: Sequence["Chunk"], effective_budget: int) -> None:
        self.jumbo_chunks = list(jumbo_chunks)
        self.effective_budget = effective_budget
        super().__init__(
            f"strict mode enabled: {len(self.jumbo_chunks)} jumbo chunk(s) exceed "
            f"the effective budget of {effective_budget} tokens"
        )


__all__ = [
    "ChunkyError",
    "ConfigurationError",
    "DocumentError",
    "ParseError",
    "TransformError",
    "HeaderError",
    "MeasurementError",
    "BudgetExhaustedError",
    "ChunkingCancelled",
    "StrictModeError",
]
