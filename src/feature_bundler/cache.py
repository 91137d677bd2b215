"""Change detection for seed files across runs.

The cache only answers one question: did any seed file change since the last full
run with the same seed list and depth? Referenced files are never cached.
"""

from __future__ import annotations

import hashlib
import json
import os
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from feature_bundler.logging import logger
from feature_bundler.walker import to_file_path

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence
    from pathlib import Path

    from feature_bundler.context import RunContext


class FileStamp(BaseModel):
    """Modification metadata of one file."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    mtime_ms: float = Field(..., alias="mtimeMs", description="Modification time (milliseconds)")
    size: int = Field(..., ge=0, description="File size in bytes")

    @classmethod
    def of(cls, path: Path) -> FileStamp | None:
        """Stat `path`, returning None when it cannot be stat'ed."""
        try:
            st = os.stat(path)
        except OSError:
            return None
        return cls(mtime_ms=st.st_mtime * 1000, size=st.st_size)


def normalize_seeds(seed_files: Iterable[str | Path]) -> list[str]:
    """Sorted, deduplicated absolute seed paths."""
    return sorted({str(to_file_path(f)) for f in seed_files})


def compute_input_hash(seed_files: Iterable[str | Path], depth: int) -> str:
    """Fingerprint an invocation: SHA-256 of the sorted seed list and the depth.

    Args:
        seed_files (Iterable[str | Path]): the expanded seed files
        depth (int): the maximum reference depth

    Returns:
        str: the hex digest
    """
    payload = json.dumps({"files": normalize_seeds(seed_files), "depth": depth}, sort_keys=True)
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


class CacheRecord(BaseModel):
    """Seed file metadata recorded at the end of the last full run.

    Attributes:
        input_hash: Fingerprint of the seed list and depth the record was built for.
        files: Absolute seed path to its modification metadata.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    input_hash: str = Field(..., alias="inputHash")
    files: dict[str, FileStamp] = Field(default_factory=dict)

    def matches(self, input_hash: str) -> bool:
        """Whether the record was built for the same seed list and depth."""
        return self.input_hash == input_hash

    def is_cached(self, path: str | Path, input_hash: str, stamp: FileStamp | None = None) -> bool:
        """Whether `path` is unchanged since the record was written.

        Args:
            path (str | Path): the seed file
            input_hash (str): fingerprint of the current invocation
            stamp (FileStamp | None, optional): current metadata of `path`; stat'ed when omitted

        Returns:
            bool: True if the fingerprint matches and both mtime and size are unchanged
        """
        if not self.matches(input_hash):
            return False
        key = str(to_file_path(path))
        previous = self.files.get(key)
        current = stamp if stamp is not None else FileStamp.of(to_file_path(path))
        return previous is not None and current is not None and previous == current


def build_record(seed_files: Sequence[str | Path], depth: int) -> CacheRecord:
    """Snapshot the current metadata of exactly the given seed files.

    Files that cannot be stat'ed are left out, so they count as changed next time.
    """
    files: dict[str, FileStamp] = {}
    for key in normalize_seeds(seed_files):
        stamp = FileStamp.of(to_file_path(key))
        if stamp is not None:
            files[key] = stamp
    return CacheRecord(input_hash=compute_input_hash(seed_files, depth), files=files)


def classify_seeds(
    record: CacheRecord | None,
    seed_files: Sequence[str | Path],
    depth: int,
) -> tuple[list[Path], list[Path]]:
    """Split seed files into unchanged and changed-or-new ones.

    Args:
        record (CacheRecord | None): the record of the previous run, if any
        seed_files (Sequence[str | Path]): the expanded seed files
        depth (int): the maximum reference depth

    Returns:
        tuple[list[Path], list[Path]]: (cached, changed) absolute paths, in seed order
    """
    input_hash = compute_input_hash(seed_files, depth)
    cached: list[Path] = []
    changed: list[Path] = []
    for seed in seed_files:
        path = to_file_path(seed)
        if record is not None and record.is_cached(path, input_hash):
            cached.append(path)
        else:
            changed.append(path)
    return cached, changed


def load_cache(path: Path, context: RunContext | None = None) -> CacheRecord | None:
    """Read the cache file; a missing or malformed file means a cold cache.

    Args:
        path (Path): the cache file
        context (RunContext | None, optional): run context collecting warnings

    Returns:
        CacheRecord | None: the previous record, or None
    """
    if not path.is_file():
        return None
    try:
        return CacheRecord.model_validate_json(path.read_text(encoding="utf-8"))
    except (OSError, ValidationError) as e:
        if context is not None:
            context.warn(f"Ignoring malformed cache file ({e.__class__.__name__})", path=path)
        else:
            logger.warning("cache_unreadable", path=str(path), error=str(e))
        return None


def save_cache(record: CacheRecord, path: Path, context: RunContext | None = None) -> None:
    """Overwrite the cache file with `record`; write failures are only warnings."""
    try:
        path.write_text(record.model_dump_json(by_alias=True, indent=2) + "\n", encoding="utf-8")
    except OSError as e:
        if context is not None:
            context.warn(f"Could not write cache file ({e.__class__.__name__})", path=path)
        else:
            logger.warning("cache_write_failed", path=str(path), error=str(e))
        return
    logger.debug("cache_saved", path=str(path), files=len(record.files))
