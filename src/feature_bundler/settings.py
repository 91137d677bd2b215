from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

from feature_bundler.config import CACHE_FILE, DEFAULT_CONTEXT_DIR, DEFAULT_OUTPUT, OutputFormat


class Settings(BaseModel):
    """Run options for the feature_bundler module."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    files: list[str] = Field(default_factory=list, description="Seed paths or glob patterns.")
    depth: int | None = Field(default=None, ge=0, description="Maximum reference depth.")
    aliases: dict[str, str] = Field(default_factory=dict, description="Extra aliases.")
    config: Path | None = Field(default=None, description="Config file.")
    output: Path = Field(default=Path(DEFAULT_OUTPUT), description="Output artifact.")
    context_dir: Path = Field(default=Path(DEFAULT_CONTEXT_DIR), description="Staging directory.")
    cache_file: Path = Field(default=Path(CACHE_FILE), description="Cache file.")
    format: OutputFormat = Field(default=OutputFormat.TEXT, description="Artifact layout.")
    no_cache: bool = Field(default=False, description="Ignore and do not write the cache.")
    dry_run: bool = Field(default=False, description="Only report what would be bundled.")
    verbose: bool = Field(default=False, description="Debug logging.")
    log_file: str = Field(default="", description="Log file path.")
