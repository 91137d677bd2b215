from __future__ import annotations

import os
from pathlib import Path

import pytest

from feature_bundler.aliases import expand_aliases, expand_vars, resolve_alias
from feature_bundler.exceptions import AliasCycleError

ALIASES = {
    "@": "/project/src",
    "@components": "/project/src/components",
    "~": "/project/root",
}


@pytest.mark.unit
def test_resolve_alias_with_prefix_and_separator() -> None:
    assert resolve_alias("@/foo", "/base/file.ts", ALIASES) == os.path.normpath("/project/src/foo")


@pytest.mark.unit
def test_resolve_alias_exact_match() -> None:
    assert resolve_alias("@", "/base/file.ts", ALIASES) == os.path.normpath("/project/src")


@pytest.mark.unit
def test_resolve_alias_declared_longer_prefix_is_not_shadowed() -> None:
    # "@components/Button" neither equals "@" nor starts with "@/"
    expected = os.path.normpath("/project/src/components/Button")

    assert resolve_alias("@components/Button", "/base/file.ts", ALIASES) == expected
    reordered = {"@components": ALIASES["@components"], "@": ALIASES["@"]}
    assert resolve_alias("@components/Button", "/base/file.ts", reordered) == expected


@pytest.mark.unit
def test_resolve_alias_first_declared_match_wins() -> None:
    general_first = {"@lib": "/project/lib", "@lib/vendor": "/project/third_party"}
    specific_first = {"@lib/vendor": "/project/third_party", "@lib": "/project/lib"}

    assert resolve_alias("@lib/vendor/x", "/base/file.ts", general_first) == os.path.normpath(
        "/project/lib/vendor/x",
    )
    assert resolve_alias("@lib/vendor/x", "/base/file.ts", specific_first) == os.path.normpath(
        "/project/third_party/x",
    )


@pytest.mark.unit
def test_resolve_alias_without_match_returns_reference() -> None:
    assert resolve_alias("./local/file", "/base/file.ts", ALIASES) == "./local/file"
    assert resolve_alias("react", "/base/file.ts", ALIASES) == "react"
    assert resolve_alias("@componentsX/y", "/base/file.ts", {"@components": "/x"}) == "@componentsX/y"


@pytest.mark.unit
def test_resolve_alias_relative_target_is_anchored_at_working_directory(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.chdir(tmp_path)

    assert resolve_alias("@/x", "/base/file.ts", {"@": "src"}) == os.path.join(os.getcwd(), "src", "x")


@pytest.mark.unit
@pytest.mark.parametrize(
    ("template", "variables", "expected"),
    [
        ("Hello, ${name}!", {"name": "World"}, "Hello, World!"),
        ("${greet}, ${name}!", {"greet": "Hi", "name": "Alice"}, "Hi, Alice!"),
        ("Hello, ${missing}!", {}, "Hello, !"),
        ("${a}b${c}d${e}", {"a": "A", "c": "C", "e": "E"}, "AbCdE"),
        ("${a}", {"a": "${b}", "b": "B"}, "${b}"),
    ],
)
def test_expand_vars(template: str, variables: dict[str, str], expected: str) -> None:
    assert expand_vars(template, variables) == expected


@pytest.mark.unit
def test_expand_aliases_follows_alias_prefixes_and_placeholders() -> None:
    aliases = {"@": "src", "@lib": "lib", "@utils": "@lib", "@deep": "${@utils}/deep", "@x": "${ROOT}/x"}

    expanded = expand_aliases(aliases, {"ROOT": "/root"})

    assert list(expanded) == list(aliases)
    assert expanded["@utils"] == "lib"
    assert expanded["@deep"] == "lib/deep"
    assert expanded["@x"] == "/root/x"
    assert expanded["@"] == "src"


@pytest.mark.unit
def test_expand_aliases_rejects_cycles() -> None:
    with pytest.raises(AliasCycleError) as exc_info:
        expand_aliases({"@a": "@b/x", "@b": "${@a}"})

    assert exc_info.value.alias == "@a"
    assert exc_info.value.chain == ("@a", "@b", "@a")
