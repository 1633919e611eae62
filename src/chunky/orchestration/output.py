from __future__ import annotations

import hashlib
import posixpath
import re
from pathlib import Path
from typing import Dict, List, Sequence, Tuple

from rich.console import Console
from rich.markup import escape

from chunky.models.chunk import Chunk
from chunky.models.configs import ChunkyOptions

_NON_ALNUM = re.compile(r"[^a-zA-Z0-9]+")


def sanitize_filename(name: str) -> str:
    return _NON_ALNUM.sub("_", name).strip("_")


def chunk_filename(chunk: Chunk) -> str:
    """``{hash8}_{name}.{index:03d}.md`` where the hash keys on the source directory.

    Same-named files in different directories therefore never collide.
    """

    source = chunk.file_path.replace("\\", "/")
    directory = posixpath.dirname(source) or "."
    digest = hashlib.sha256(directory.encode("utf-8")).hexdigest()[:8]
    stem, _ = posixpath.splitext(posixpath.basename(source))
    return f"{digest}_{sanitize_filename(stem)}.{chunk.chunk_index:03d}.md"


def group_chunks_by_file(chunks: Sequence[Chunk]) -> Tuple[List[str], Dict[str, List[Chunk]]]:
    order: List[str] = []
    grouped: Dict[str, List[Chunk]] = {}
    for chunk in chunks:
        if chunk.file_path not in grouped:
            order.append(chunk.file_path)
            grouped[chunk.file_path] = []
        grouped[chunk.file_path].append(chunk)
    return order, grouped


def print_chunk_report(chunks: Sequence[Chunk], effective_budget: int, console: Console) -> None:
    order, grouped = group_chunks_by_file(chunks)
    for file_path in order:
        console.print(f" [bold]{escape(file_path)}[/bold] ")
        for chunk in grouped[file_path]:
            if chunk.is_jumbo(effective_budget):
                marker, tokens = "[bold red]![/bold red]", f"[bold red]{chunk.tokens}[/bold red]"
            else:
                marker, tokens = "[green]✓[/green]", f"[green]{chunk.tokens}[/green]"
            console.print(f"    {marker} ({tokens}) [dim]{chunk_filename(chunk)}[/dim]")
        console.print()


def print_jumbo_warning(jumbo: Sequence[Chunk], effective_budget: int, console: Console) -> None:
    console.print(
        f"\n[yellow]⚠ Warning:[/yellow] found {len(jumbo)} jumbo chunk(s) exceeding "
        f"effective budget of {effective_budget} tokens:"
    )
    for chunk in jumbo:
        console.print(f"  - {escape(chunk.file_path)} (chunk {chunk.chunk_index}): {chunk.tokens} tokens")


def print_effective_options(
    options: ChunkyOptions,
    project_root: Path,
    files: Sequence[str],
    console: Console,
) -> None:
    console.print(" [bold]Effective Configuration[/bold] ")
    console.print(f"    Project Root:  {escape(str(project_root))}")
    console.print(f"    Output Dir:    {escape(options.out_dir)}")
    console.print(f"    Token Budget:  {options.budget}")
    console.print(f"    Overhead:      {options.overhead:.2f} ({options.overhead * 100:.0f}%)")
    console.print(f"    Strict Mode:   {str(options.strict).lower()}")
    console.print(f"    Tokenizer:     {escape(options.tokenizer)}")

    console.print("\n[bold]Header Fields:[/bold]")
    if not options.headers:
        console.print("  [dim](none)[/dim]")
    for position, field in enumerate(options.headers, start=1):
        required = " \\[REQUIRED]" if field.required else ""
        console.print(f"  {position}. {escape(field.path)} → {escape(field.display_label)}{required}")

    console.print(f"\n[bold]Files ({len(files)} total):[/bold]")
    if not files:
        console.print("  [dim](none matched)[/dim]")
    for name in files:
        console.print(f"  - {escape(name)}")


def write_chunks(chunks: Sequence[Chunk], out_dir: Path) -> List[Path]:
    out_dir.mkdir(parents=True, exist_ok=True)
    written: List[Path] = []
    for chunk in chunks:
        target = out_dir / chunk_filename(chunk)
        target.write_text(chunk.text, encoding="utf-8")
        written.append(target)
    return written


def resolve_out_dir(out_dir: str, project_root: Path) -> Path:
    path = Path(out_dir)
    return path if path.is_absolute() else project_root / path


__all__ = [
    "chunk_filename",
    "group_chunks_by_file",
    "print_chunk_report",
    "print_effective_options",
    "print_jumbo_warning",
    "resolve_out_dir",
    "sanitize_filename",
    "write_chunks",
]
