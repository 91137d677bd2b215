"""
feature_bundler: bundle a feature's files for review tools and LLMs.

Overview
--------
Starting from seed files (paths or glob patterns), the tool follows textual
``import ... from``, ``require(...)`` and ``require_relative`` references up to
a given depth, copies everything it finds into a staging directory
(``feature-context/`` by default) and concatenates it into one artifact
(``all_feature_files.txt`` by default), grouped by source directory.

Seeds, depth and path aliases can also come from ``bundle_feature.config.json``
(or ``.yaml``) in the working directory; the older ``bundleFeature.config.json``
name is still accepted. Unchanged seed files are detected with
``.bundle_feature.cache.json`` (formerly ``.bundleFeature.cache.json``, which is
not read) so that repeated runs are skipped.

Usage
-----
    python -m feature_bundler.cli src/main.js
    python -m feature_bundler.cli --depth 3 'src/**/*.ts' --alias @=src
    python -m feature_bundler.cli --dry-run --format markdown src/app.tsx
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import TYPE_CHECKING

from feature_bundler import __version__
from feature_bundler.bundler import BundleResult, run_bundle
from feature_bundler.config import OutputFormat
from feature_bundler.context import RunContext
from feature_bundler.exceptions import FeatureBundlerError
from feature_bundler.logging import setup_logging
from feature_bundler.settings import Settings

if TYPE_CHECKING:
    from collections.abc import Sequence

USAGE = "Usage: python -m feature_bundler.cli [options] <file|glob> [<file|glob> ...]"


def parse_alias_overrides(values: Sequence[str]) -> dict[str, str]:
    """Parse repeated ``--alias PREFIX=TARGET`` values.

    Args:
        values (Sequence[str]): CLI ``--alias`` values, in priority order.

    Raises:
        ValueError: If a value is not in ``PREFIX=TARGET`` form.

    Returns:
        dict[str, str]: Alias prefix to target mapping.
    """
    out: dict[str, str] = {}
    for value in values:
        prefix, sep, target = value.partition("=")
        prefix = prefix.strip()
        target = target.strip()
        if not sep or not prefix:
            msg = f"--alias must be PREFIX=TARGET, got: {value}"
            raise ValueError(msg)
        out[prefix] = target
    return out


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="feature_bundler",
        description="Bundle seed files and everything they reference into one artifact.",
    )
    p.add_argument("files", nargs="*", help="Seed files or glob patterns.")
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    p.add_argument("--depth", type=int, default=None, help="Maximum reference depth (default 2).")
    p.add_argument("--config", type=Path, default=None, help="Config file (json or yaml).")
    p.add_argument(
        "--alias",
        action="append",
        default=[],
        help="Alias PREFIX=TARGET (repeatable, first match wins).",
    )
    p.add_argument("--output", type=Path, default=None, help="Output artifact.")
    p.add_argument("--context-dir", type=Path, default=None, help="Staging directory.")
    p.add_argument(
        "--format",
        type=str,
        choices=[f.value for f in OutputFormat],
        default=OutputFormat.TEXT.value,
        help="Artifact layout.",
    )
    p.add_argument("--no-cache", action="store_true", help="Ignore and do not write the cache.")
    p.add_argument("--dry-run", action="store_true", help="Only report what would be bundled.")
    p.add_argument("-v", "--verbose", action="store_true", help="Debug logging.")
    p.add_argument("--log-file", type=str, default="", help="Log file path.")
    return p


def parse_args(argv: Sequence[str] | None = None) -> Settings:
    """Parse command line arguments into `Settings`."""
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.depth is not None and args.depth < 0:
        parser.error("--depth must be >= 0")
    try:
        aliases = parse_alias_overrides(args.alias)
    except ValueError as e:
        parser.error(str(e))
    values = {
        "files": args.files,
        "depth": args.depth,
        "aliases": aliases,
        "config": args.config,
        "format": args.format,
        "no_cache": args.no_cache,
        "dry_run": args.dry_run,
        "verbose": args.verbose,
        "log_file": args.log_file,
    }
    if args.output is not None:
        values["output"] = args.output
    if args.context_dir is not None:
        values["context_dir"] = args.context_dir
    return Settings(**values)


def print_summary(result: BundleResult) -> None:
    """Write the end-of-run report to stdout."""
    ctx = result.context
    if result.dry_run:
        print("\n--- DRY RUN SUMMARY ---")
        print(f"Depth: {result.depth}")
        print("Seed files:")
        for seed in result.seed_files:
            print(f"  - {seed}")
        print(f"Referenced files ({len(result.referenced)}):")
        for ref in result.referenced:
            print(f"  - {ref}")
        print(f"Would write concatenated output to: {result.output}")
    elif result.cache_hit:
        print(f"No seed file changed since the last run, keeping {result.output}")
    else:
        print(f"Referenced files: {len(result.referenced)}")
        print(f"Files copied: {ctx.files_copied}")
        print(f"Wrote {result.output}")
    if ctx.warnings:
        print(f"\nWARNINGS ({len(ctx.warnings)}):")
        for warning in ctx.warnings:
            print(f"  - {warning}")
    print(f"Done in {ctx.elapsed:.2f}s")


def main(argv: Sequence[str] | None = None) -> int:
    settings = parse_args(argv)
    setup_logging(settings.log_file or None, verbose=settings.verbose, force=True)

    context = RunContext()
    try:
        result = run_bundle(settings, context=context)
    except FeatureBundlerError as e:
        print(f"Error: {getattr(e, 'message', e)}", file=sys.stderr)
        print(USAGE, file=sys.stderr)
        return 1

    print(f"Found {result.files_processed} files to process")
    print_summary(result)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
