from __future__ import annotations

import json
import os
from collections import ChainMap
from enum import StrEnum, auto
from pathlib import Path
from typing import TYPE_CHECKING, Any

import yaml
from dotenv import dotenv_values, find_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from feature_bundler.aliases import expand_aliases, expand_vars
from feature_bundler.exceptions import ConfigFileNotFoundError
from feature_bundler.logging import logger

if TYPE_CHECKING:
    from collections.abc import Mapping

    from feature_bundler.context import RunContext

DEFAULT_DEPTH = 2
DEFAULT_OUTPUT = "all_feature_files.txt"
DEFAULT_CONTEXT_DIR = "feature-context"
CACHE_FILE = ".bundle_feature.cache.json"
CONFIG_FILE_NAMES = (
    "bundle_feature.config.json",
    "bundle_feature.config.yaml",
    "bundle_feature.config.yml",
    # names used by the earlier bundleFeature tool
    "bundleFeature.config.json",
    "bundleFeature.config.yaml",
    "bundleFeature.config.yml",
)

# Tried in order when a reference does not name an existing file.
RESOLVE_EXTENSIONS = (".js", ".ts", ".tsx", ".jsx", ".rb", ".json")


class OutputFormat(StrEnum):
    """Layouts available for the concatenated artifact."""

    TEXT = auto()
    MARKDOWN = auto()
    JSON = auto()


EXT2LANG: dict[str, str] = {
    ".css": "css",
    ".go": "go",
    ".html": "html",
    ".js": "javascript",
    ".json": "json",
    ".jsx": "javascript",
    ".md": "markdown",
    ".php": "php",
    ".py": "python",
    ".rb": "ruby",
    ".scss": "scss",
    ".ts": "typescript",
    ".tsx": "typescript",
    ".yaml": "yaml",
    ".yml": "yaml",
}


def guess_language(path: str | Path) -> str:
    """Get the code fence language for a file, based on its extension.

    Args:
        path (str | Path): the file path

    Returns:
        str: the language name, or "plaintext" if unknown
    """
    return EXT2LANG.get(Path(path).suffix.lower(), "plaintext")


class BundleConfig(BaseModel):
    """Contents of a ``bundle_feature.config.*`` file.

    Attributes:
        files: Seed paths or glob patterns, may contain ``${NAME}`` placeholders.
        depth: Maximum number of reference hops followed from a seed file.
        aliases: Alias prefix to target path, in priority order.
    """

    model_config = ConfigDict(extra="ignore")

    files: list[str] = Field(default_factory=list, description="Seed paths or globs.")
    depth: int | None = Field(default=None, ge=0, description="Maximum reference depth.")
    aliases: dict[str, str] = Field(default_factory=dict, description="Alias table.")

    @field_validator("files", mode="before")
    @classmethod
    def _single_file_as_list(cls, value: Any) -> Any:  # noqa: ANN401
        if isinstance(value, str):
            return [value]
        return value


def find_config_file(cwd: Path) -> Path | None:
    """Return the first default config file present in `cwd`, if any."""
    for name in CONFIG_FILE_NAMES:
        candidate = cwd / name
        if candidate.is_file():
            return candidate
    return None


def env_variables(cwd: Path) -> dict[str, str]:
    """Values from ``cwd/.env``, or the nearest ``.env`` above the working directory.

    Args:
        cwd (Path): directory checked first for a ``.env`` file

    Returns:
        dict[str, str]: the variables defined in the ``.env`` file, empty if none
    """
    local = cwd / ".env"
    env_file = str(local) if local.is_file() else find_dotenv(usecwd=True)
    if not env_file:
        return {}
    return {k: v for k, v in dotenv_values(env_file).items() if v is not None}


def config_variables(cwd: Path) -> Mapping[str, str]:
    """Variables available to ``${NAME}`` placeholders: ``.env`` first, then the environment."""
    return ChainMap(env_variables(cwd), dict(os.environ))


def _parse_config(path: Path) -> dict[str, Any]:
    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() in {".yaml", ".yml"}:
        data = yaml.safe_load(text) or {}
    else:
        data = json.loads(text)
    if not isinstance(data, dict):
        msg = f"top-level value must be a mapping, got {type(data).__name__}"
        raise TypeError(msg)
    return data


def load_config(
    path: Path | None = None,
    *,
    cwd: Path | None = None,
    context: RunContext | None = None,
) -> BundleConfig:
    """Load and expand the bundling configuration file.

    Placeholders in `files` and in alias targets are expanded against the alias table
    first, then the ``.env`` file, then the process environment. A file that cannot be
    parsed is reported as a warning and treated as empty.

    Args:
        path (Path | None, optional): explicit config file. Defaults to the first of
            `CONFIG_FILE_NAMES` found in `cwd`.
        cwd (Path | None, optional): directory holding the default config file.
            Defaults to the process working directory.
        context (RunContext | None, optional): run context collecting warnings.

    Raises:
        ConfigFileNotFoundError: if `path` is given but does not exist.

    Returns:
        BundleConfig: the expanded configuration (empty if there is no config file)
    """
    base = cwd or Path.cwd()
    if path is not None:
        path = path if path.is_absolute() else base / path
        if not path.is_file():
            raise ConfigFileNotFoundError(path=path)
    else:
        path = find_config_file(base)
        if path is None:
            return BundleConfig()

    try:
        raw = BundleConfig.model_validate(_parse_config(path))
    except (OSError, ValueError, TypeError, yaml.YAMLError, ValidationError) as e:
        if context is not None:
            context.warn(f"Ignoring unreadable config file ({e.__class__.__name__})", path=path)
        else:
            logger.warning("config_unreadable", path=str(path), error=str(e))
        return BundleConfig()

    variables = config_variables(base)
    aliases = expand_aliases(raw.aliases, variables)
    lookup = ChainMap(aliases, variables)
    files = [expand_vars(f, lookup) for f in raw.files]
    logger.info("config_loaded", path=str(path), files=len(files), aliases=len(aliases))
    return BundleConfig(files=files, depth=raw.depth, aliases=aliases)
