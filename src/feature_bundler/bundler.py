"""Run one bundling pass: expand seeds, consult the cache, walk references, assemble."""

from __future__ import annotations

import time
from pathlib import Path
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field

from feature_bundler.aliases import expand_aliases
from feature_bundler.assembler import copy_into_context
from feature_bundler.cache import build_record, classify_seeds, load_cache, save_cache
from feature_bundler.config import DEFAULT_DEPTH, config_variables, load_config
from feature_bundler.context import RunContext
from feature_bundler.exceptions import NoFilesMatchedError
from feature_bundler.globbing import expand_globs
from feature_bundler.logging import logger
from feature_bundler.output_construction import render_bundle
from feature_bundler.walker import find_references, to_file_path

if TYPE_CHECKING:
    from feature_bundler.settings import Settings


class BundleResult(BaseModel):
    """Outcome of a bundling run.

    Attributes:
        seed_files: Expanded seed paths, as given or matched.
        referenced: Files found by following references, sorted.
        depth: Depth actually used.
        output: Artifact path (written unless `dry_run` or `cache_hit`).
        cache_hit: Whether the run was skipped because no seed changed.
        dry_run: Whether nothing was written.
        context: Warnings and counters of the run.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    seed_files: list[str] = Field(default_factory=list)
    referenced: list[Path] = Field(default_factory=list)
    depth: int = DEFAULT_DEPTH
    output: Path
    cache_hit: bool = False
    dry_run: bool = False
    context: RunContext = Field(default_factory=RunContext)

    @property
    def files_processed(self) -> int:
        """Number of seed files."""
        return len(self.seed_files)


def _is_within(path: Path, directory: Path) -> bool:
    return path == directory or directory in path.parents


def run_bundle(
    settings: Settings,
    *,
    cwd: Path | None = None,
    context: RunContext | None = None,
) -> BundleResult:
    """Bundle the seed files of `settings` and everything they reference.

    Args:
        settings (Settings): run options; unset values fall back to the config file,
            then to the defaults
        cwd (Path | None, optional): invocation directory, holding the config file, the
            cache file and (by default) the staging directory and the artifact.
            Defaults to the process working directory.
        context (RunContext | None, optional): run context. Defaults to a fresh one.

    Raises:
        NoFilesMatchedError: if no seed file results from the patterns.

    Returns:
        BundleResult: what was (or would be) bundled
    """
    ctx = context if context is not None else RunContext()
    base = to_file_path(cwd or Path.cwd())
    config = load_config(settings.config, cwd=base, context=ctx)

    patterns = list(settings.files) or config.files
    if settings.depth is not None:
        depth = settings.depth
    elif config.depth is not None:
        depth = config.depth
    else:
        depth = DEFAULT_DEPTH
    # relative alias targets are anchored at the invocation directory
    merged = expand_aliases({**config.aliases, **settings.aliases}, config_variables(base))
    aliases = {k: str(base / v) for k, v in merged.items()}

    staging_dir = to_file_path(base / settings.context_dir)
    output = to_file_path(base / settings.output)
    seeds = [
        s
        for s in expand_globs(patterns, cwd=base)
        if not _is_within(to_file_path(base / s), staging_dir) and to_file_path(base / s) != output
    ]
    if not seeds:
        raise NoFilesMatchedError(patterns=tuple(patterns))
    seed_paths = [to_file_path(base / s) for s in seeds]
    logger.info("seeds_expanded", patterns=len(patterns), files=len(seeds), depth=depth)
    result = BundleResult(seed_files=seeds, depth=depth, output=output, dry_run=settings.dry_run, context=ctx)

    cache_path = to_file_path(base / settings.cache_file)
    if not settings.no_cache and not settings.dry_run:
        record = load_cache(cache_path, ctx)
        cached, changed = classify_seeds(record, seed_paths, depth)
        logger.info("cache_checked", cached=len(cached), changed=len(changed))
        if not changed and output.exists():
            logger.info("cache_hit", output=str(output))
            result.cache_hit = True
            return result

    started = time.perf_counter()
    referenced = find_references(seed_paths, depth, aliases=aliases, context=ctx)
    ctx.record_timing("walk", started)
    result.referenced = sorted(referenced)
    if settings.dry_run:
        return result

    started = time.perf_counter()
    original_paths = copy_into_context(seed_paths, referenced, staging_dir, base, ctx)
    content = render_bundle(original_paths, staging_dir, ctx, settings.format)
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(content, encoding="utf-8")
    ctx.record_timing("assemble", started)
    logger.info("bundle_written", output=str(output), files=len(original_paths), warnings=len(ctx.warnings))

    if not settings.no_cache:
        save_cache(build_record(seed_paths, depth), cache_path, ctx)
    return result
