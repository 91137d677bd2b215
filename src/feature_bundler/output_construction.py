from __future__ import annotations

import io
import json
import os
import posixpath
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict

from feature_bundler.config import OutputFormat, guess_language
from feature_bundler.logging import logger
from feature_bundler.walker import to_file_path

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from feature_bundler.context import RunContext

SECTION_RULE = "=" * 20
DIR_RULE = "=" * 5


class BundleEntry(BaseModel):
    """One staged file, labelled with its original project-relative path."""

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    staged: Path
    original: str
    content: str

    @property
    def directory(self) -> str:
        """Original directory, ``.`` for files at the project root."""
        return posixpath.dirname(self.original) or "."

    @property
    def name(self) -> str:
        """Original file name."""
        return posixpath.basename(self.original)


def now_iso() -> str:
    """Return the current date and time in ISO 8601 format with timezone.

    Returns:
        str: the current date and time in ISO 8601 format with timezone
    """
    return datetime.now(UTC).astimezone().isoformat(timespec="seconds")


def list_staged_files(staging_dir: Path) -> list[Path]:
    """Recursively enumerate the regular files of the staging directory."""
    results: list[Path] = []
    for root, _dirs, files in os.walk(staging_dir):
        results.extend(Path(root) / f for f in files)
    return results


def collect_entries(
    original_paths: Mapping[Path, str],
    staging_dir: Path,
    context: RunContext,
) -> list[BundleEntry]:
    """Read the staged files and order them by original directory, then file name.

    Files of the staging directory that were not copied by this run are left out.

    Args:
        original_paths (Mapping[Path, str]): staged copy to original relative path
        staging_dir (Path): the staging directory
        context (RunContext): run context collecting warnings

    Returns:
        list[BundleEntry]: the sorted entries
    """
    entries: list[BundleEntry] = []
    for staged in list_staged_files(to_file_path(staging_dir)):
        original = original_paths.get(staged)
        if original is None:
            logger.debug("skip_stale_staged_file", path=str(staged))
            continue
        try:
            content = staged.read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            context.warn(f"Could not read staged file ({e.__class__.__name__})", path=original)
            continue
        entries.append(BundleEntry(staged=staged, original=original, content=content))
    return sorted(entries, key=lambda e: (e.directory, e.name))


def build_warnings_block(warnings: Sequence[str]) -> str:
    """Render warnings as a comment block, or an empty string when there are none."""
    if not warnings:
        return ""
    lines = ["/*", " * WARNINGS:"]
    lines.extend(f" * - {w}" for w in warnings)
    lines.append(" */")
    return "\n".join(lines)


def build_text(entries: Sequence[BundleEntry], warnings: Sequence[str]) -> str:
    """Concatenate the entries with directory banners and per-file headers.

    Args:
        entries (Sequence[BundleEntry]): the sorted entries
        warnings (Sequence[str]): warnings rendered as a leading comment block

    Returns:
        str: the artifact text
    """
    out = io.StringIO()
    block = build_warnings_block(warnings)
    if block:
        out.write(f"{block}\n\n")
    last_dir: str | None = None
    for entry in entries:
        if entry.directory != last_dir:
            out.write(f"{DIR_RULE} {entry.directory}/ {DIR_RULE}\n\n")
            last_dir = entry.directory
        out.write(f"{SECTION_RULE} {entry.original} {SECTION_RULE}\n\n")
        out.write(entry.content)
        if not entry.content.endswith("\n"):
            out.write("\n")
        out.write("\n")
    return out.getvalue().rstrip("\n") + "\n"


def build_markdown(entries: Sequence[BundleEntry], warnings: Sequence[str]) -> str:
    """Render the entries as a markdown document with one fenced block per file."""
    out = io.StringIO()
    out.write("# Feature Bundle\n\n")
    out.write(f"Generated on: {now_iso()}\n\n")
    out.write(f"Total files: {len(entries)}\n\n")
    if warnings:
        out.write("## Warnings\n\n")
        out.writelines(f"- {w}\n" for w in warnings)
        out.write("\n")
    for entry in entries:
        body = entry.content.rstrip("\n")
        out.write(f"## {entry.original}\n\n")
        out.write(f"```{guess_language(entry.original)}\n{body}\n```\n\n")
    return out.getvalue().rstrip() + "\n"


def build_json(entries: Sequence[BundleEntry], warnings: Sequence[str]) -> str:
    """Render the entries as a JSON document."""
    payload = {
        "files": [
            {
                "path": entry.original,
                "content": entry.content,
                "language": guess_language(entry.original),
            }
            for entry in entries
        ],
        "metadata": {
            "totalFiles": len(entries),
            "generatedAt": now_iso(),
            "warnings": list(warnings),
        },
    }
    return json.dumps(payload, ensure_ascii=False, indent=2) + "\n"


def render_bundle(
    original_paths: Mapping[Path, str],
    staging_dir: Path,
    context: RunContext,
    output_format: OutputFormat = OutputFormat.TEXT,
) -> str:
    """Build the artifact from the staging directory.

    Args:
        original_paths (Mapping[Path, str]): staged copy to original relative path
        staging_dir (Path): the staging directory
        context (RunContext): run context; its warnings are included in the artifact
        output_format (OutputFormat, optional): artifact layout. Defaults to text.

    Returns:
        str: the artifact content
    """
    entries = collect_entries(original_paths, staging_dir, context)
    if output_format is OutputFormat.MARKDOWN:
        return build_markdown(entries, context.warnings)
    if output_format is OutputFormat.JSON:
        return build_json(entries, context.warnings)
    return build_text(entries, context.warnings)
