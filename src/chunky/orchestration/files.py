from __future__ import annotations

import glob
from pathlib import Path
from typing import Iterable, List, Set

from chunky.errors import ConfigurationError


def _expand_pattern(project_root: Path, pattern: str) -> Set[str]:
    candidate = Path(pattern)
    absolute = candidate if candidate.is_absolute() else project_root / candidate
    matches: Set[str] = set()
    for match in glob.glob(str(absolute), recursive=True):
        resolved = Path(match).resolve()
        if not resolved.is_file():
            continue
        try:
            relative = resolved.relative_to(project_root)
        except ValueError:
            raise ConfigurationError(
                f"file {resolved} is outside project root {project_root}"
            ) from None
        matches.add(relative.as_posix())
    return matches


def expand_globs(project_root: Path, patterns: Iterable[str]) -> List[str]:
    """Expand include globs minus ``!``-prefixed exclusions into sorted root-relative paths.

    ``**`` matches across directories.  Only regular files are returned.
    """

    root = Path(project_root).resolve()
    includes: List[str] = []
    excludes: List[str] = []
    for pattern in patterns:
        if pattern.startswith("!"):
            excludes.append(pattern[1:])
        else:
            includes.append(pattern)

    selected: Set[str] = set()
    for pattern in includes:
        selected |= _expand_pattern(root, pattern)
    for pattern in excludes:
        selected -= _expand_pattern(root, pattern)
    return sorted(selected)


__all__ = ["expand_globs"]
