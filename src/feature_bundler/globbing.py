"""Expand CLI-style path and glob arguments into concrete file paths."""

from __future__ import annotations

import glob
import os
import re
from pathlib import Path
from typing import TYPE_CHECKING

from feature_bundler.logging import logger

if TYPE_CHECKING:
    from collections.abc import Sequence

GLOB_CHARS = frozenset("*?[]{}")
_BRACE_PATTERN = re.compile(r"\{([^{}]*)\}")


def is_glob(pattern: str) -> bool:
    """Check whether a path argument is a glob pattern.

    Args:
        pattern (str): the CLI argument to test

    Returns:
        bool: True if `pattern` contains any of ``* ? [ ] { }``
    """
    return any(ch in GLOB_CHARS for ch in pattern)


def expand_braces(pattern: str) -> list[str]:
    """Expand ``{a,b}`` alternatives, which the standard glob module does not support.

    Nested groups are expanded innermost first. A group without a comma is kept literally.

    Args:
        pattern (str): the glob pattern to expand

    Returns:
        list[str]: the brace-free patterns, in left-to-right alternative order
    """
    match = next((m for m in _BRACE_PATTERN.finditer(pattern) if "," in m.group(1)), None)
    if match is None:
        return [pattern]
    head, tail = pattern[: match.start()], pattern[match.end() :]
    out: list[str] = []
    for alternative in match.group(1).split(","):
        for expanded in expand_braces(head + alternative + tail):
            if expanded not in out:
                out.append(expanded)
    return out


def _absolute(path: str, cwd: Path) -> str:
    return os.path.normpath(os.path.join(cwd, path))


def expand_globs(patterns: Sequence[str], cwd: Path | str | None = None) -> list[str]:
    """Turn path and glob arguments into a deduplicated, ordered list of paths.

    - Literal entries are kept as given, even when the file does not exist.
    - Glob entries are matched relative to `cwd` (``**`` is recursive), directories are
      dropped and matches are sorted; a glob matching nothing contributes nothing.
    - Deduplication uses the absolute path, the first occurrence wins.

    Args:
        patterns (Sequence[str]): paths or glob patterns, in priority order
        cwd (Path | str | None, optional): base directory for relative entries.
            Defaults to the process working directory.

    Returns:
        list[str]: the expanded paths, spelled as given (globs yield paths relative to `cwd`)
    """
    base = Path(cwd) if cwd is not None else Path.cwd()
    expanded: list[str] = []
    seen: set[str] = set()

    def add(path: str) -> None:
        key = _absolute(path, base)
        if key in seen:
            return
        seen.add(key)
        expanded.append(path)

    for pattern in patterns:
        if not pattern:
            continue
        if not is_glob(pattern):
            add(pattern)
            continue
        matches: list[str] = []
        for sub_pattern in expand_braces(pattern):
            for match in sorted(glob.glob(sub_pattern, root_dir=base, recursive=True)):
                if not os.path.isdir(_absolute(match, base)):
                    matches.append(match)
        if not matches:
            logger.debug("glob_no_match", pattern=pattern)
        for match in matches:
            add(match)
    return expanded
