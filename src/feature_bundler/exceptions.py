from dataclasses import dataclass, field
from pathlib import Path


@dataclass(frozen=True)
class FeatureBundlerError(Exception):
    """Base exception for errors in the feature_bundler module."""


@dataclass(frozen=True)
class NoFilesMatchedError(FeatureBundlerError):
    """Raised when no seed file could be resolved from the given patterns."""

    patterns: tuple[str, ...] = ()
    message: str = "No files matched any pattern."


@dataclass(frozen=True)
class AliasCycleError(FeatureBundlerError):
    """Raised when alias definitions reference each other in a cycle."""

    alias: str
    chain: tuple[str, ...] = field(default_factory=tuple)
    message: str = "Alias definitions form a cycle."


@dataclass(frozen=True)
class ConfigFileNotFoundError(FeatureBundlerError):
    """Raised when an explicitly requested config file does not exist."""

    path: Path
    message: str = "The specified configuration file does not exist."
