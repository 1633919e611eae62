from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Tuple

from rich.console import Console
from rich.markup import escape

from chunky.errors import DocumentError, StrictModeError
from chunky.ingest.header import create_header
from chunky.ingest.pipeline import Chunker, ChunkerConfig, DocumentInput
from chunky.ingest.tokenizer import create_tokenizer
from chunky.models.chunk import Chunk
from chunky.models.configs import ChunkyOptions
from chunky.orchestration.files import expand_globs
from chunky.orchestration.output import (
    print_chunk_report,
    print_effective_options,
    print_jumbo_warning,
    resolve_out_dir,
    write_chunks,
)

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class RunResult:
    """Summarizes one ``chunky run``."""

    files: List[str]
    chunks: List[Chunk]
    effective_budget: int
    failures: List[Tuple[str, str]] = field(default_factory=list)
    written: List[Path] = field(default_factory=list)

    @property
    def jumbo_chunks(self) -> List[Chunk]:
        return [chunk for chunk in self.chunks if chunk.is_jumbo(self.effective_budget)]

    @property
    def ok(self) -> bool:
        return not self.failures


def build_chunker(options: ChunkyOptions) -> Chunker:
    config = ChunkerConfig(
        chunk_token_budget=options.budget,
        reserved_overhead_ratio=options.overhead,
        tokenizer=create_tokenizer(options.tokenizer),
        header=create_header(options.headers),
    )
    return Chunker(config)


def document_title(relative_path: str) -> str:
    return Path(relative_path).stem or Path(relative_path).name


def run_chunky(
    options: ChunkyOptions,
    project_root: Path,
    *,
    console: Optional[Console] = None,
    cancel_event: Optional[threading.Event] = None,
) -> RunResult:
    """Chunk every file matched by ``options.files`` and write the results.

    A file that fails is reported and skipped; the remaining files are still
    processed.  Strict mode raises :class:`StrictModeError` after every file
    has been processed and the chunk report printed, before anything is
    written.
    """

    console = console or Console(stderr=True)
    options.validate_for_run()
    project_root = Path(project_root).resolve()

    files = expand_globs(project_root, options.files)
    if options.verbose:
        print_effective_options(options, project_root, files, console)
    if not files:
        logger.warning("no files matched %s", options.files)

    chunker = build_chunker(options)
    result = RunResult(files=files, chunks=[], effective_budget=chunker.effective_budget)

    for relative_path in files:
        if options.verbose:
            console.print(f"  - {escape(relative_path)}")
        try:
            markdown = (project_root / relative_path).read_text(encoding="utf-8")
            chunker.push(
                DocumentInput(path=relative_path, title=document_title(relative_path), markdown=markdown),
                cancel_event=cancel_event,
            )
        except (DocumentError, OSError, ValueError) as exc:
            logger.error("error processing %s: %s", relative_path, exc)
            console.print(f"[red]✗ {escape(relative_path)}:[/red] {escape(str(exc))}")
            result.failures.append((relative_path, str(exc)))

    result.chunks = chunker.chunks
    jumbo = result.jumbo_chunks
    if jumbo:
        print_jumbo_warning(jumbo, result.effective_budget, console)

    print_chunk_report(result.chunks, result.effective_budget, console)

    if jumbo and options.strict:
        raise StrictModeError(jumbo, result.effective_budget)

    if options.dry_run:
        logger.debug("dry run: not writing %d chunk(s)", len(result.chunks))
        return result

    out_dir = resolve_out_dir(options.out_dir, project_root)
    result.written = write_chunks(result.chunks, out_dir)
    logger.debug("wrote %d chunk file(s) to %s", len(result.written), out_dir)
    return result


__all__ = ["RunResult", "build_chunker", "document_title", "run_chunky"]
