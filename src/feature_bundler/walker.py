"""Bounded-depth traversal of textual references, starting from seed files."""

from __future__ import annotations

import os
from pathlib import Path
from typing import TYPE_CHECKING

from feature_bundler.aliases import resolve_alias
from feature_bundler.config import RESOLVE_EXTENSIONS
from feature_bundler.context import RunContext
from feature_bundler.logging import logger
from feature_bundler.references import extract_references

if TYPE_CHECKING:
    import re
    from collections.abc import Iterable, Mapping


def to_file_path(path: str | Path) -> Path:
    """Normalize a path into the absolute form used as identity key.

    Symlinks are not resolved: a link and its target are distinct files.

    Args:
        path (str | Path): the path to normalize, relative to the working directory

    Returns:
        Path: the absolute, normalized path
    """
    return Path(os.path.abspath(path))


def resolve_candidate(candidate: str | Path) -> Path | None:
    """Find the file a candidate path designates, probing implicit extensions.

    Args:
        candidate (str | Path): the path built from a reference

    Returns:
        Path | None: the candidate itself if it exists, else the first existing
            ``candidate + ext`` for ext in `RESOLVE_EXTENSIONS`, else None
    """
    path = to_file_path(candidate)
    if os.path.exists(path):
        return path
    for ext in RESOLVE_EXTENSIONS:
        with_ext = Path(f"{path}{ext}")
        if os.path.exists(with_ext):
            return with_ext
    return None


def resolve_reference(
    reference: str,
    referencing_file: Path,
    aliases: Mapping[str, str],
) -> Path | None:
    """Turn a raw reference into an existing file path.

    - ``./x`` and ``../x`` are resolved from the referencing file's directory.
    - References rewritten by an alias are absolute paths.
    - Anything else (a package name, Ruby's bare ``require_relative "x"``) is also tried
      from the referencing file's directory, to catch same-directory siblings.

    Args:
        reference (str): the reference string captured from source text
        referencing_file (Path): absolute path of the file containing the reference
        aliases (Mapping[str, str]): expanded alias table

    Returns:
        Path | None: the referenced file, or None when nothing matches
    """
    resolved = resolve_alias(reference, referencing_file, aliases)
    if resolved.startswith(".") or resolved == reference:
        candidate = os.path.join(referencing_file.parent, resolved)
    else:
        candidate = resolved
    return resolve_candidate(candidate)


def scan_file(
    path: Path,
    aliases: Mapping[str, str],
    context: RunContext,
    patterns: Iterable[re.Pattern[str]] | None = None,
) -> list[Path]:
    """Read one file and resolve the references it contains.

    Problems are recorded as warnings in `context` and yield no references.

    Args:
        path (Path): absolute path of the file to scan
        aliases (Mapping[str, str]): expanded alias table
        context (RunContext): run context collecting warnings and counters
        patterns (Iterable[re.Pattern[str]] | None, optional): reference patterns to use
            instead of the registered ones. Defaults to None.

    Returns:
        list[Path]: the distinct referenced files, in discovery order
    """
    if os.path.isdir(path):
        logger.debug("skip_directory_scan", path=str(path))
        return []
    if not os.path.exists(path):
        context.warn("File not found", path=path)
        return []
    try:
        content = path.read_text(encoding="utf-8", errors="replace")
    except OSError as e:
        context.warn(f"Could not read file ({e.__class__.__name__})", path=path)
        return []
    context.files_scanned += 1

    found: list[Path] = []
    for reference in extract_references(content, patterns):
        target = resolve_reference(reference, path, aliases)
        if target is not None and target not in found:
            found.append(target)
    logger.debug("file_scanned", path=str(path), references=len(found))
    return found


def find_references(
    seed_files: Iterable[str | Path],
    max_depth: int,
    visited: set[Path] | None = None,
    *,
    aliases: Mapping[str, str] | None = None,
    context: RunContext | None = None,
    patterns: Iterable[re.Pattern[str]] | None = None,
) -> set[Path]:
    """Collect every file transitively referenced by the seed files.

    The walk is depth first over an explicit stack of ``(path, depth)`` pairs: seeds
    start at depth 1 and the files a file at depth ``d`` references are explored at
    ``d + 1``, each subtree before the next reference. Files found at `max_depth` are
    reported but not scanned. A file enters `visited` when it is taken from the stack
    and is never scanned twice, which makes reference cycles harmless.

    A seed referenced by a file at depth 1 is not reported (it already is a primary
    input). A seed that is explored as a reference before its own turn comes, or that
    is found again deeper, is reported.

    Args:
        seed_files (Iterable[str | Path]): the starting files
        max_depth (int): maximum number of reference hops from a seed
        visited (set[Path] | None, optional): files already processed; updated in place.
            Defaults to a fresh set.
        aliases (Mapping[str, str] | None, optional): expanded alias table. Defaults to None.
        context (RunContext | None, optional): run context collecting warnings and
            counters. Defaults to a fresh context.
        patterns (Iterable[re.Pattern[str]] | None, optional): reference patterns to use
            instead of the registered ones. Defaults to None.

    Returns:
        set[Path]: absolute paths of the referenced files
    """
    ctx = context if context is not None else RunContext()
    seen = visited if visited is not None else set()
    table = aliases or {}
    active_patterns = list(patterns) if patterns is not None else None

    seeds = [to_file_path(f) for f in seed_files]
    seed_set = set(seeds)
    referenced: set[Path] = set()
    if max_depth < 1:
        return referenced

    # top of the stack is the next file to explore
    stack: list[tuple[Path, int]] = [(seed, 1) for seed in reversed(seeds)]
    while stack:
        path, depth = stack.pop()
        if path in seen:
            continue
        seen.add(path)
        if depth > 1:
            referenced.add(path)

        found = scan_file(path, table, ctx, active_patterns)
        for target in found:
            if depth > 1 or target not in seed_set:
                referenced.add(target)
        if depth < max_depth:
            stack.extend((target, depth + 1) for target in reversed(found) if target not in seen)
        logger.debug("file_walked", path=str(path), depth=depth, referenced=len(referenced))
    return referenced
