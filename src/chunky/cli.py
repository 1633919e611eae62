from __future__ import annotations

import argparse
import logging
import os
from pathlib import Path
from typing import List, Optional, Sequence

from dotenv import load_dotenv
from rich.console import Console
from rich.markup import escape

from chunky.errors import ChunkyError, StrictModeError
from chunky.models.configs import (
    DEFAULT_BUDGET,
    DEFAULT_OUT_DIR,
    DEFAULT_OVERHEAD,
    DEFAULT_TOKENIZER,
    ChunkyOptions,
    HeaderField,
)
from chunky.orchestration.config_loader import (
    CONFIG_FILE_NAME,
    find_project_root,
    load_config,
    merge_options,
    save_config,
)
from chunky.orchestration.runner import run_chunky

logger = logging.getLogger(__name__)


def _header_field(spec: str) -> HeaderField:
    try:
        return HeaderField.parse(spec)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from exc


def _add_option_flags(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("files", nargs="*", help="File globs to process (prefix with ! to exclude)")
    parser.add_argument("-o", "--out-dir", default=DEFAULT_OUT_DIR, help="Output directory for chunks")
    parser.add_argument("-b", "--budget", type=int, default=DEFAULT_BUDGET, help="Token budget per chunk")
    parser.add_argument(
        "-e",
        "--overhead",
        type=float,
        default=DEFAULT_OVERHEAD,
        help="Reserved overhead fraction (0.01-0.5)",
    )
    parser.add_argument("-s", "--strict", action="store_true", help="Fail when any chunk exceeds the budget")
    parser.add_argument(
        "-t",
        "--tokenizer",
        default=os.getenv("CHUNKY_TOKENIZER") or DEFAULT_TOKENIZER,
        help="Tokenizer: a tiktoken encoding (o200k_base, cl100k_base, ...), 'char' or 'word'",
    )
    parser.add_argument(
        "-H",
        "--header",
        dest="headers",
        action="append",
        type=_header_field,
        default=[],
        help="Front-matter field for the chunk header: path, path:Label, path! or path!:Label",
    )
    parser.add_argument("-d", "--dry-run", action="store_true", help="Print chunks without writing files")
    parser.add_argument("-v", "--verbose", action="store_true", help="Show effective configuration and debug logs")


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    if Path(".env").exists():
        load_dotenv(".env", override=False)
    parser = argparse.ArgumentParser(
        prog="chunky",
        description="Split Markdown documents into token-bounded, header-prefixed chunks.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser("run", help="Chunk Markdown files")
    _add_option_flags(run_parser)

    init_parser = subparsers.add_parser("init", help=f"Write a {CONFIG_FILE_NAME} in the current directory")
    _add_option_flags(init_parser)
    init_parser.add_argument("-f", "--force", action="store_true", help=f"Overwrite an existing {CONFIG_FILE_NAME}")

    return parser.parse_args(argv)


def options_from_args(args: argparse.Namespace) -> ChunkyOptions:
    return ChunkyOptions(
        out_dir=args.out_dir,
        budget=args.budget,
        overhead=args.overhead,
        strict=args.strict,
        tokenizer=args.tokenizer,
        headers=list(args.headers),
        dry_run=args.dry_run,
        verbose=args.verbose,
        files=list(args.files),
    )


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def run_command(args: argparse.Namespace, console: Console) -> int:
    project_root, found = find_project_root()
    config = load_config(project_root) if found else None
    if config is not None:
        console.print(f"[green]✓[/green] Loaded configuration from {escape(str(project_root / CONFIG_FILE_NAME))}")
    else:
        console.print(f"[yellow]⚠[/yellow] No {CONFIG_FILE_NAME} found, using defaults and CLI flags")

    options = merge_options(config, options_from_args(args))
    result = run_chunky(options, project_root, console=console)
    if result.failures:
        console.print(f"[red]{len(result.failures)} file(s) failed[/red]")
        return 1
    return 0


def init_command(args: argparse.Namespace, console: Console) -> int:
    project_root, found = find_project_root()
    if found and not args.force:
        raise ChunkyError(
            f"config file already exists at {project_root / CONFIG_FILE_NAME} (use --force to overwrite)"
        )
    if not found:
        project_root = Path.cwd()

    options = options_from_args(args)
    options.validate_for_run()
    path = save_config(project_root, options)
    console.print(f"[green]✓[/green] Created configuration file at {escape(str(path))}")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    configure_logging(args.verbose)
    console = Console(stderr=True)

    handlers = {"run": run_command, "init": init_command}
    try:
        return handlers[args.command](args, console)
    except StrictModeError as exc:
        console.print(f"[bold red]{escape(str(exc))}[/bold red]")
        return 1
    except (ChunkyError, ValueError, OSError) as exc:
        logger.debug("command %s failed", args.command, exc_info=True)
        console.print(f"[red]error:[/red] {escape(str(exc))}")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
