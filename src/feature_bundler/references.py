"""Text-pattern extraction of import-like references.

This is deliberately not a parser: a small ordered set of regular expressions
approximates the import syntaxes of several languages at once. It misses dynamic or
multi-line imports and happily captures matching strings inside comments.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable

REFERENCE_PATTERNS: dict[str, re.Pattern[str]] = {}


def register_reference_pattern(name: str, pattern: str | re.Pattern[str]) -> re.Pattern[str]:
    """Register a reference pattern in the default, ordered pattern set.

    The pattern must capture the referenced path in its first group. Registering an
    existing name replaces the pattern in place, keeping its position.

    Args:
        name (str): a unique name for the pattern (e.g. "js-import")
        pattern (str | re.Pattern[str]): the regular expression

    Returns:
        re.Pattern[str]: the compiled pattern
    """
    compiled = re.compile(pattern) if isinstance(pattern, str) else pattern
    if compiled.groups < 1:
        msg = f"Reference pattern {name!r} must capture the path in a group"
        raise ValueError(msg)
    REFERENCE_PATTERNS[name] = compiled
    return compiled


register_reference_pattern("js-import", r"""import\s+.*?from\s+['"](.+?)['"]""")
register_reference_pattern("js-require", r"""require\(['"](.+?)['"]\)""")
register_reference_pattern("ruby-require-relative", r"""require_relative\s+['"](.+?)['"]""")


def extract_references(
    content: str,
    patterns: Iterable[re.Pattern[str]] | None = None,
) -> list[str]:
    """Collect the reference strings found in a file's content.

    Each pattern is applied in order and contributes its matches in textual order, so
    the same string may be returned more than once.

    Args:
        content (str): the file's text
        patterns (Iterable[re.Pattern[str]] | None, optional): patterns to apply instead of
            the registered ones. Defaults to None.

    Returns:
        list[str]: the captured reference strings
    """
    active = REFERENCE_PATTERNS.values() if patterns is None else patterns
    refs: list[str] = []
    for regex in active:
        refs.extend(match.group(1) for match in regex.finditer(content))
    return refs
