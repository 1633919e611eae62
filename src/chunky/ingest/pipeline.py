from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import List, Optional

from chunky.errors import (
    BudgetExhaustedError,
    ChunkingCancelled,
    ConfigurationError,
    HeaderError,
    MeasurementError,
    ParseError,
    TransformError,
)
from chunky.ingest.header import ChunkHeader, YamlFrontMatterHeader
from chunky.ingest.markdown import DocumentParser, MarkdownParser
from chunky.ingest.packer import pack_document
from chunky.ingest.tokenizer import DEFAULT_ENCODING, Tokenizer, create_tokenizer
from chunky.ingest.transforms import (
    DocumentContext,
    FrontMatterTransform,
    SectionTransform,
    TransformFailure,
    apply_front_matter_transforms,
    apply_section_transforms,
    default_front_matter_transforms,
    default_section_transforms,
)
from chunky.models.chunk import Chunk

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ChunkerConfig:
    """Pipeline configuration; extra transforms run after the built-in ones."""

    chunk_token_budget: int = 0
    reserved_overhead_ratio: float = 0.1
    tokenizer: Optional[Tokenizer] = None
    parser: Optional[DocumentParser] = None
    header: Optional[ChunkHeader] = None
    front_matter_transforms: List[FrontMatterTransform] = field(default_factory=list)
    section_transforms: List[SectionTransform] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class DocumentInput:
    path: str
    title: str
    markdown: str


class Chunker:
    """Turns Markdown documents into token-bounded chunks.

    Chunks accumulate across :meth:`push` calls until :meth:`reset`.  A failed
    document leaves previously accumulated chunks untouched.  An instance is
    not meant to be shared between threads.
    """

    def __init__(self, config: ChunkerConfig) -> None:
        if config.chunk_token_budget <= 0:
            raise ConfigurationError(
                f"chunk_token_budget is required and must be > 0, got {config.chunk_token_budget}"
            )
        if not 0.0 <= config.reserved_overhead_ratio < 1.0:
            raise ConfigurationError(
                f"reserved_overhead_ratio must be >= 0 and < 1, got {config.reserved_overhead_ratio}"
            )

        self.config = config
        self.tokenizer = config.tokenizer or create_tokenizer(DEFAULT_ENCODING)
        self.parser = config.parser or MarkdownParser()
        self.header = config.header or YamlFrontMatterHeader()
        self.front_matter_transforms: List[FrontMatterTransform] = (
            default_front_matter_transforms() + list(config.front_matter_transforms)
        )
        self.section_transforms: List[SectionTransform] = (
            default_section_transforms() + list(config.section_transforms)
        )
        self._effective_budget = int(config.chunk_token_budget * (1.0 - config.reserved_overhead_ratio))
        self._chunks: List[Chunk] = []

    @property
    def effective_budget(self) -> int:
        return self._effective_budget

    @property
    def chunks(self) -> List[Chunk]:
        return list(self._chunks)

    @property
    def jumbo_chunks(self) -> List[Chunk]:
        return [chunk for chunk in self._chunks if chunk.is_jumbo(self._effective_budget)]

    def reset(self) -> None:
        self._chunks = []

    def push(self, document: DocumentInput, cancel_event: Optional[threading.Event] = None) -> List[Chunk]:
        """Chunk one document and append the result; returns the new chunks.

        Documents whose front matter sets ``do_not_embed: true`` are skipped
        and produce no chunks.
        """

        if not document.path:
            raise ValueError("document path cannot be empty")
        if not document.title:
            raise ValueError("document title cannot be empty")
        if not document.markdown:
            raise ValueError("document markdown cannot be empty")

        path = document.path

        def checkpoint(where: str) -> None:
            if cancel_event is not None and cancel_event.is_set():
                logger.debug("chunking of %s cancelled %s", path, where)
                raise ChunkingCancelled(path, where)

        logger.debug("parsing document %s (title %r)", path, document.title)
        checkpoint("before parsing")
        try:
            root, front_matter = self.parser.parse(document.markdown, document.title)
        except Exception as exc:
            logger.error("parse failed for %s: %s", path, exc)
            raise ParseError(path, str(exc)) from exc

        context = DocumentContext(path=path, title=document.title)
        try:
            apply_front_matter_transforms(
                context,
                front_matter,
                self.front_matter_transforms,
                before_each=lambda index: checkpoint("during front matter transforms"),
            )
        except TransformFailure as failure:
            logger.error(
                "front matter transform %d failed for %s: %s", failure.index, path, failure.error
            )
            raise TransformError(path, "front matter", failure.index, str(failure.error)) from failure.error

        if front_matter.get("do_not_embed") is True:
            logger.debug("skipping %s: do_not_embed is set", path)
            return []

        checkpoint("before section transforms")
        try:
            apply_section_transforms(front_matter.view(), root, self.section_transforms)
        except TransformFailure as failure:
            logger.error("section transform %d failed for %s: %s", failure.index, path, failure.error)
            raise TransformError(path, "section", failure.index, str(failure.error)) from failure.error
        checkpoint("after section transforms")

        try:
            header = self.header.render(front_matter.view())
        except Exception as exc:
            logger.error("header generation failed for %s: %s", path, exc)
            raise HeaderError(path, str(exc)) from exc

        try:
            header_tokens = self.tokenizer.count(header)
        except Exception as exc:
            logger.error("header token counting failed for %s: %s", path, exc)
            raise MeasurementError(path, str(exc)) from exc
        logger.debug("header for %s: %d tokens, %d chars", path, header_tokens, len(header))

        body_budget = self._effective_budget - header_tokens
        if body_budget <= 0:
            logger.warning(
                "no budget left for body content of %s: header %d tokens, effective budget %d",
                path,
                header_tokens,
                self._effective_budget,
            )
            raise BudgetExhaustedError(path, header_tokens, self._effective_budget)
        logger.debug("body budget for %s: %d tokens", path, body_budget)

        try:
            measured = self.tokenizer.measure(root)
        except Exception as exc:
            logger.error("token counting failed for %s: %s", path, exc)
            raise MeasurementError(path, str(exc)) from exc
        logger.debug("measured %s: %d subtree tokens", path, measured.subtree_tokens)

        produced = pack_document(
            measured,
            file_path=path,
            file_title=document.title,
            header=header,
            header_tokens=header_tokens,
            body_budget=body_budget,
        )
        for chunk in produced:
            if chunk.is_jumbo(self._effective_budget):
                logger.warning(
                    "jumbo chunk %s#%d: %d tokens exceeds effective budget %d",
                    path,
                    chunk.chunk_index,
                    chunk.tokens,
                    self._effective_budget,
                )
        logger.debug("chunked %s into %d chunk(s)", path, len(produced))

        self._chunks.extend(produced)
        return produced


__all__ = ["Chunker", "ChunkerConfig", "DocumentInput"]
