from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml
from pydantic import ValidationError

from chunky.errors import ConfigurationError
from chunky.models.configs import (
    DEFAULT_BUDGET,
    DEFAULT_OUT_DIR,
    DEFAULT_OVERHEAD,
    DEFAULT_TOKENIZER,
    ChunkyOptions,
)

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = ".chunkyrc"
_CONFIG_BANNER = "# Chunky configuration file\n# Options mirror the `chunky run` flags.\n\n"


def find_project_root(start: Optional[Path] = None) -> Tuple[Path, bool]:
    """Walk up from ``start`` looking for ``.chunkyrc``.

    Returns the directory holding the file and ``True``, or ``start`` itself and
    ``False`` when no config file exists up to the filesystem root.
    """

    origin = (start or Path.cwd()).resolve()
    for directory in (origin, *origin.parents):
        if (directory / CONFIG_FILE_NAME).is_file():
            return directory, True
    return origin, False


def _load_structured_file(path: Path) -> Dict[str, Any]:
    text = path.read_text(encoding="utf-8")
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Failed to parse config file {path}: {exc}") from exc

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {path} must contain a mapping at the top level")
    return data


def load_config(project_root: Path) -> Optional[ChunkyOptions]:
    """Load ``.chunkyrc`` from ``project_root``; ``None`` when the file is absent."""

    path = Path(project_root) / CONFIG_FILE_NAME
    if not path.exists():
        return None
    raw = _load_structured_file(path)
    try:
        options = ChunkyOptions.model_validate(raw)
    except (ValidationError, ValueError) as exc:
        raise ConfigurationError(f"Invalid config file {path}: {exc}") from exc
    logger.debug("loaded %s with %d file pattern(s)", path, len(options.files))
    return options


def save_config(project_root: Path, options: ChunkyOptions) -> Path:
    path = Path(project_root) / CONFIG_FILE_NAME
    body = yaml.safe_dump(options.to_config_dict(), sort_keys=False, allow_unicode=True)
    path.write_text(_CONFIG_BANNER + body, encoding="utf-8")
    logger.debug("wrote %s", path)
    return path


def _pick(cli_value: Any, config_value: Any, default: Any) -> Any:
    if cli_value not in (None, "", 0) and cli_value != default:
        return cli_value
    if config_value not in (None, "", 0):
        return config_value
    return default


def merge_options(config: Optional[ChunkyOptions], cli: ChunkyOptions) -> ChunkyOptions:
    """Combine ``.chunkyrc`` values with command-line values.

    File globs and header fields concatenate (config first).  A scalar flag
    overrides the config only when it differs from its default; ``strict``
    and ``verbose`` are enabled if either side enables them.
    """

    config = config or ChunkyOptions()
    return ChunkyOptions(
        out_dir=_pick(cli.out_dir, config.out_dir, DEFAULT_OUT_DIR),
        budget=_pick(cli.budget, config.budget, DEFAULT_BUDGET),
        overhead=_pick(cli.overhead, config.overhead, DEFAULT_OVERHEAD),
        strict=cli.strict or config.strict,
        tokenizer=_pick(cli.tokenizer, config.tokenizer, DEFAULT_TOKENIZER),
        headers=[*config.headers, *cli.headers],
        dry_run=cli.dry_run or config.dry_run,
        verbose=cli.verbose or config.verbose,
        files=[*config.files, *cli.files],
    )


__all__ = [
    "CONFIG_FILE_NAME",
    "find_project_root",
    "load_config",
    "merge_options",
    "save_config",
]
