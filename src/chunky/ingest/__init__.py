"""Parsing, transforming, measuring and packing Markdown documents."""

from .header import ChunkHeader, KeyValueHeader, YamlFrontMatterHeader, create_header
from .markdown import DocumentParser, MarkdownParser
from .packer import ChunkBuilder, Unit, iter_units, pack_document
from .pipeline import Chunker, ChunkerConfig, DocumentInput
from .tokenizer import (
    CallableTokenizer,
    CharCountTokenizer,
    MeasuredSection,
    TiktokenTokenizer,
    Tokenizer,
    WordCountTokenizer,
    create_tokenizer,
)
from .transforms import DocumentContext, default_front_matter_transforms, default_section_transforms

__all__ = [
    "CallableTokenizer",
    "CharCountTokenizer",
    "ChunkBuilder",
    "ChunkHeader",
    "Chunker",
    "ChunkerConfig",
    "DocumentContext",
    "DocumentInput",
    "DocumentParser",
    "KeyValueHeader",
    "MarkdownParser",
    "MeasuredSection",
    "TiktokenTokenizer",
    "Tokenizer",
    "Unit",
    "WordCountTokenizer",
    "YamlFrontMatterHeader",
    "create_header",
    "create_tokenizer",
    "default_front_matter_transforms",
    "default_section_transforms",
    "iter_units",
    "pack_document",
]
