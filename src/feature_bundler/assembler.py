"""Copy the resolved files into the staging directory, remembering where they came from."""

from __future__ import annotations

import os
import shutil
from pathlib import Path
from typing import TYPE_CHECKING

from feature_bundler.logging import logger
from feature_bundler.walker import to_file_path

if TYPE_CHECKING:
    from collections.abc import Iterable

    from feature_bundler.context import RunContext

EXTERNAL_DIR = "_external"


def relpath(path: Path, root: Path) -> str:
    """Send the path of `path` relative to `root`, with POSIX separators.

    Args:
        path (Path): the absolute path to "relativise"
        root (Path): the absolute root to relativise from

    Returns:
        str: the relative path; it starts with ``../`` when `path` is outside `root`
    """
    try:
        return Path(os.path.relpath(path, root)).as_posix()
    except ValueError:
        # different drives on Windows
        return path.as_posix()


def staging_path(source: Path, staging_dir: Path, project_root: Path) -> Path:
    """Where `source` is copied inside the staging directory.

    Files inside the project keep their project-relative location, other files are
    placed under ``_external/`` followed by their absolute path.
    """
    rel = relpath(source, project_root)
    if rel == ".." or rel.startswith("../") or Path(rel).is_absolute():
        anchorless = Path(*source.parts[1:]) if source.is_absolute() else source
        return staging_dir / EXTERNAL_DIR / anchorless
    return staging_dir / rel


class ContextCopier:
    """Copies files into a staging directory, each source at most once.

    Attributes:
        staging_dir: Destination root.
        project_root: Root the original relative paths are computed from.
        context: Run context collecting warnings and counters.
        original_paths: Staged copy to project-relative original path.
    """

    def __init__(self, staging_dir: Path, project_root: Path, context: RunContext) -> None:
        self.staging_dir = to_file_path(staging_dir)
        self.project_root = to_file_path(project_root)
        self.context = context
        self.original_paths: dict[Path, str] = {}
        self._copied: set[Path] = set()

    def copy(self, source: str | Path) -> None:
        """Copy a file, or a directory recursively; problems become warnings."""
        path = to_file_path(source)
        if path == self.staging_dir or self.staging_dir in path.parents:
            logger.debug("skip_staged_source", path=str(path))
            return
        if os.path.isdir(path):
            self._copy_dir(path)
        elif os.path.exists(path):
            self._copy_file(path)
        else:
            self.context.warn("File not found", path=path)

    def _copy_dir(self, directory: Path) -> None:
        try:
            entries = sorted(os.listdir(directory))
        except OSError as e:
            self.context.warn(f"Could not list directory ({e.__class__.__name__})", path=directory)
            return
        for entry in entries:
            child = directory / entry
            if os.path.isdir(child):
                if os.path.islink(child):
                    logger.debug("skip_directory_symlink", path=str(child))
                    continue
                self._copy_dir(child)
            else:
                self._copy_file(child)

    def _copy_file(self, source: Path) -> None:
        if source in self._copied:
            return
        self._copied.add(source)
        dest = staging_path(source, self.staging_dir, self.project_root)
        try:
            dest.parent.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(source, dest)
        except OSError as e:
            self.context.warn(f"Could not copy file ({e.__class__.__name__})", path=source)
            return
        self.original_paths[dest] = relpath(source, self.project_root)
        self.context.files_copied += 1


def copy_into_context(
    seed_files: Iterable[str | Path],
    referenced: Iterable[str | Path],
    staging_dir: Path,
    project_root: Path,
    context: RunContext,
) -> dict[Path, str]:
    """Copy seeds and referenced files into `staging_dir`.

    Args:
        seed_files (Iterable[str | Path]): the seed files, in seed order
        referenced (Iterable[str | Path]): files and directories found by the walker
        staging_dir (Path): the staging directory (created if needed)
        project_root (Path): root the original relative paths are computed from
        context (RunContext): run context collecting warnings and counters

    Returns:
        dict[Path, str]: staged copy to project-relative original path
    """
    copier = ContextCopier(staging_dir, project_root, context)
    try:
        copier.staging_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        context.warn(f"Could not create staging directory ({e.__class__.__name__})", path=staging_dir)
        return copier.original_paths
    for source in [*seed_files, *sorted(to_file_path(r) for r in referenced)]:
        copier.copy(source)
    logger.info("files_staged", staging_dir=str(copier.staging_dir), files=len(copier.original_paths))
    return copier.original_paths
