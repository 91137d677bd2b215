from __future__ import annotations

import time
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field

from feature_bundler.logging import logger

if TYPE_CHECKING:
    from pathlib import Path


class RunContext(BaseModel):
    """Statistics and warnings collected during a single bundling run.

    One instance is created per run and passed explicitly to the walker and the
    assembler.

    Attributes:
        warnings: Human readable, non-fatal problems in the order they occurred.
        files_scanned: Number of files whose content was searched for references.
        files_copied: Number of files copied into the staging directory.
        started_at: ``time.perf_counter()`` value at creation.
        timings: Named durations in seconds, filled by ``record_timing``.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    warnings: list[str] = Field(default_factory=list)
    files_scanned: int = 0
    files_copied: int = 0
    started_at: float = Field(default_factory=time.perf_counter)
    timings: dict[str, float] = Field(default_factory=dict)

    def warn(self, message: str, *, path: Path | str | None = None) -> None:
        """Record a non-fatal warning and log it."""
        text = f"{message}: {path}" if path is not None else message
        if text in self.warnings:
            return
        self.warnings.append(text)
        logger.warning("bundle_warning", message=message, path=None if path is None else str(path))

    def record_timing(self, name: str, started: float) -> None:
        """Store the time elapsed since ``started`` under ``name``."""
        self.timings[name] = time.perf_counter() - started

    @property
    def elapsed(self) -> float:
        """Seconds since the run started."""
        return time.perf_counter() - self.started_at
