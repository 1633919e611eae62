"""Project configuration, file discovery and chunk output for the CLI."""

from .config_loader import CONFIG_FILE_NAME, find_project_root, load_config, merge_options, save_config
from .files import expand_globs
from .output import chunk_filename, sanitize_filename, write_chunks
from .runner import RunResult, run_chunky

__all__ = [
    "CONFIG_FILE_NAME",
    "RunResult",
    "chunk_filename",
    "expand_globs",
    "find_project_root",
    "load_config",
    "merge_options",
    "run_chunky",
    "sanitize_filename",
    "save_config",
    "write_chunks",
]
