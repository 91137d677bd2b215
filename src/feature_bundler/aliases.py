"""Alias table expansion and alias-based rewriting of reference strings."""

from __future__ import annotations

import os
import re
from typing import TYPE_CHECKING

from feature_bundler.exceptions import AliasCycleError
from feature_bundler.logging import logger

if TYPE_CHECKING:
    from collections.abc import Mapping
    from pathlib import Path

_VARIABLE_PATTERN = re.compile(r"\$\{([^}]*)\}")


def expand_vars(template: str, variables: Mapping[str, str]) -> str:
    """Substitute ``${NAME}`` placeholders in a single left-to-right pass.

    Unknown names are replaced by the empty string, and substituted values are not
    expanded again.

    Args:
        template (str): the string containing placeholders
        variables (Mapping[str, str]): the values to substitute

    Returns:
        str: the expanded string
    """
    return _VARIABLE_PATTERN.sub(lambda m: str(variables.get(m.group(1), "")), template)


def _matches_prefix(reference: str, prefix: str) -> bool:
    return reference == prefix or reference.startswith(prefix + "/")


def _expand_alias(
    name: str,
    aliases: Mapping[str, str],
    variables: Mapping[str, str],
    chain: tuple[str, ...],
) -> str:
    if name in chain:
        raise AliasCycleError(alias=name, chain=(*chain, name))
    inner = (*chain, name)

    def substitute(match: re.Match[str]) -> str:
        key = match.group(1)
        if key in aliases:
            return _expand_alias(key, aliases, variables, inner)
        return str(variables.get(key, ""))

    value = _VARIABLE_PATTERN.sub(substitute, aliases[name])
    for other in aliases:
        if other != name and _matches_prefix(value, other):
            return _expand_alias(other, aliases, variables, inner) + value[len(other) :]
    return value


def expand_aliases(
    aliases: Mapping[str, str],
    variables: Mapping[str, str] | None = None,
) -> dict[str, str]:
    """Expand every alias target to a fixed point.

    A target may refer to another alias either through a ``${name}`` placeholder or by
    starting with that alias' prefix (``{"@lib": "lib", "@utils": "@lib"}``). Names that
    are not aliases are looked up in `variables`.

    Args:
        aliases (Mapping[str, str]): the raw alias table, in definition order
        variables (Mapping[str, str] | None, optional): fallback values for ``${NAME}``
            placeholders. Defaults to None.

    Raises:
        AliasCycleError: if an alias refers back to itself, directly or not.

    Returns:
        dict[str, str]: the expanded table, keeping the definition order
    """
    env = variables or {}
    return {name: _expand_alias(name, aliases, env, ()) for name in aliases}


def resolve_alias(reference: str, base_file: str | Path, aliases: Mapping[str, str]) -> str:
    """Rewrite `reference` with the first matching alias.

    An alias matches when the reference equals its prefix or starts with ``prefix + "/"``.
    Entries are tried in table order and the first match wins, so more specific prefixes
    must be declared before the prefixes they extend. The prefix is replaced by the
    absolute form of its target (anchored at the working directory, not at `base_file`).

    Args:
        reference (str): the raw reference string captured from source text
        base_file (str | Path): the file containing the reference
        aliases (Mapping[str, str]): expanded alias table

    Returns:
        str: the rewritten absolute path, or `reference` unchanged when no alias matches
    """
    for prefix, target in aliases.items():
        if _matches_prefix(reference, prefix):
            resolved = os.path.normpath(os.path.abspath(target) + reference[len(prefix) :])
            logger.debug("alias_resolved", reference=reference, alias=prefix, resolved=resolved, file=str(base_file))
            return resolved
    return reference
