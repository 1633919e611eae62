"""Structure-aware Markdown chunking for embedding pipelines."""

from .ingest.pipeline import Chunker, ChunkerConfig, DocumentInput
from .models.chunk import Chunk
from .models.section import Section

__version__ = "0.1.0"

__all__ = ["Chunk", "Chunker", "ChunkerConfig", "DocumentInput", "Section", "__version__"]
