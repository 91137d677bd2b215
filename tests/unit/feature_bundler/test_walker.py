from __future__ import annotations

import os
import re
from pathlib import Path

import pytest

from feature_bundler.context import RunContext
from feature_bundler.walker import find_references, resolve_candidate, resolve_reference, to_file_path


def write(path: Path, content: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


def names(paths: set[Path]) -> list[str]:
    return sorted(p.name for p in paths)


@pytest.mark.unit
def test_to_file_path_normalizes_without_resolving_links(tmp_path: Path) -> None:
    target = write(tmp_path / "lib" / "utility.js", "")
    link = tmp_path / "utility.js"
    link.symlink_to(target)

    assert to_file_path(tmp_path / "lib" / ".." / "utility.js") == link
    assert to_file_path(link) != to_file_path(target)


@pytest.mark.unit
def test_resolve_candidate_probes_extensions_in_order(tmp_path: Path) -> None:
    write(tmp_path / "mod.ts", "")
    write(tmp_path / "mod.js", "")
    write(tmp_path / "data.json", "{}")

    assert resolve_candidate(tmp_path / "mod") == tmp_path / "mod.js"
    assert resolve_candidate(tmp_path / "mod.ts") == tmp_path / "mod.ts"
    assert resolve_candidate(tmp_path / "data") == tmp_path / "data.json"
    assert resolve_candidate(tmp_path / "nothing") is None


@pytest.mark.unit
def test_resolve_reference_bases(tmp_path: Path) -> None:
    src = tmp_path / "src"
    main = write(src / "main.js", "")
    write(src / "sibling.js", "")
    write(tmp_path / "lib" / "util.js", "")
    aliases = {"@lib": str(tmp_path / "lib")}

    assert resolve_reference("./sibling", main, aliases) == src / "sibling.js"
    assert resolve_reference("../lib/util", main, aliases) == tmp_path / "lib" / "util.js"
    assert resolve_reference("@lib/util", main, aliases) == tmp_path / "lib" / "util.js"
    assert resolve_reference("sibling", main, aliases) == src / "sibling.js"
    assert resolve_reference("react", main, aliases) is None


@pytest.mark.unit
def test_find_references_direct(tmp_path: Path) -> None:
    a = write(tmp_path / "a.js", 'import something from "./b.js";')
    write(tmp_path / "b.js", "// b.js")

    assert find_references([a], 1) == {tmp_path / "b.js"}


@pytest.mark.unit
def test_find_references_depth_bounds_a_chain(tmp_path: Path) -> None:
    a = write(tmp_path / "a.js", 'import b from "./b.js";')
    write(tmp_path / "b.js", 'import c from "./c.js";')
    write(tmp_path / "c.js", "// c.js")

    assert names(find_references([a], 1)) == ["b.js"]
    assert names(find_references([a], 2)) == ["b.js", "c.js"]
    assert find_references([a], 0) == set()


@pytest.mark.unit
def test_find_references_long_chain_is_cut_at_depth(tmp_path: Path) -> None:
    count = 10
    for i in range(1, count + 1):
        content = "export const data = 'end';" if i == count else f"import {{ data }} from './file{i + 1}.js';"
        write(tmp_path / f"file{i}.js", content)

    found = find_references([tmp_path / "file1.js"], 3)

    assert names(found) == ["file2.js", "file3.js", "file4.js"]
    assert len(find_references([tmp_path / "file1.js"], 50)) == count - 1


@pytest.mark.unit
def test_find_references_cycle_terminates(tmp_path: Path) -> None:
    a = write(tmp_path / "a.js", 'import something from "./b.js";')
    write(tmp_path / "b.js", 'import something from "./a.js";')
    context = RunContext()

    result = find_references([a], 5, context=context)

    assert names(result) == ["a.js", "b.js"]
    assert context.files_scanned == 2


@pytest.mark.unit
def test_find_references_missing_reference_is_dropped_silently(tmp_path: Path) -> None:
    a = write(tmp_path / "a.js", 'import something from "./missing.js";\nimport x from "./gone";')
    context = RunContext()

    assert find_references([a], 1, context=context) == set()
    assert context.warnings == []


@pytest.mark.unit
def test_find_references_mixed_syntaxes(tmp_path: Path) -> None:
    a = write(tmp_path / "a.js", 'const x = require("./b.js");')
    write(tmp_path / "b.js", "require_relative 'c.rb'")
    write(tmp_path / "c.rb", "# Ruby file")

    assert names(find_references([a], 2)) == ["b.js", "c.rb"]


@pytest.mark.unit
def test_find_references_bare_ruby_sibling_without_extension(tmp_path: Path) -> None:
    service = write(tmp_path / "service.rb", "require_relative 'helper'\nrequire 'json'\n")
    write(tmp_path / "helper.rb", "module Helper; end")

    assert find_references([service], 1) == {tmp_path / "helper.rb"}


@pytest.mark.unit
def test_find_references_through_alias(tmp_path: Path) -> None:
    main = write(tmp_path / "src" / "main.ts", "import { helper } from '@lib/utility';")
    write(tmp_path / "lib" / "utility.js", "export const helper = () => 'helper';")

    result = find_references([main], 1, aliases={"@lib": str(tmp_path / "lib")})

    assert result == {tmp_path / "lib" / "utility.js"}


@pytest.mark.unit
def test_find_references_seed_imported_by_an_earlier_seed_is_reported(tmp_path: Path) -> None:
    # a -> b -> c -> a with seeds a and b: b is explored from a (depth 2) before
    # its own turn, so b and everything below it are reported.
    a = write(tmp_path / "a.js", "import b from './b';")
    b = write(tmp_path / "b.js", "import c from './c';")
    write(tmp_path / "c.js", "import a from './a';")

    result = find_references([a, b], 3)

    assert names(result) == ["a.js", "b.js", "c.js"]


@pytest.mark.unit
def test_find_references_cycle_between_two_seeds(tmp_path: Path) -> None:
    a = write(tmp_path / "a.js", "import b from './b';")
    b = write(tmp_path / "b.js", "import a from './a';")
    context = RunContext()

    result = find_references([a, b], 5, context=context)

    assert names(result) == ["a.js", "b.js"]
    assert context.files_scanned == 2


@pytest.mark.unit
def test_find_references_seed_found_at_depth_one_is_not_reported(tmp_path: Path) -> None:
    main = write(tmp_path / "main.js", "import m from './module.js';")
    module = write(tmp_path / "module.js", "export default 1;")

    assert find_references([main, module], 1) == set()


@pytest.mark.unit
def test_find_references_seed_explored_from_another_seed_is_reported(tmp_path: Path) -> None:
    main = write(tmp_path / "main.js", "import m from './module.js';")
    module = write(tmp_path / "module.js", "export default 1;")

    assert find_references([main, module], 2) == {module}
    assert find_references([module, main], 2) == set()


@pytest.mark.unit
def test_find_references_updates_visited_set(tmp_path: Path) -> None:
    a = write(tmp_path / "a.js", "import b from './b';\nimport c from './c';")
    write(tmp_path / "b.js", "import c from './c';")
    write(tmp_path / "c.js", "")
    visited: set[Path] = set()

    find_references([a], 3, visited)

    assert visited == {tmp_path / "a.js", tmp_path / "b.js", tmp_path / "c.js"}


@pytest.mark.unit
def test_find_references_skips_already_visited_seeds(tmp_path: Path) -> None:
    a = write(tmp_path / "a.js", "import b from './b';")
    write(tmp_path / "b.js", "")

    assert find_references([a], 2, {to_file_path(a)}) == set()


@pytest.mark.unit
def test_find_references_missing_seed_is_a_warning(tmp_path: Path) -> None:
    a = write(tmp_path / "a.js", "import b from './b';")
    write(tmp_path / "b.js", "")
    context = RunContext()

    result = find_references([tmp_path / "missing.js", a], 1, context=context)

    assert names(result) == ["b.js"]
    assert context.warnings == [f"File not found: {tmp_path / 'missing.js'}"]


@pytest.mark.unit
@pytest.mark.skipif(os.name != "posix" or os.geteuid() == 0, reason="needs POSIX permissions as non-root")
def test_find_references_unreadable_file_does_not_stop_siblings(tmp_path: Path) -> None:
    locked = write(tmp_path / "locked.js", "import b from './b';")
    locked.chmod(0)
    other = write(tmp_path / "other.js", "import c from './c';")
    write(tmp_path / "b.js", "")
    write(tmp_path / "c.js", "")
    context = RunContext()

    try:
        result = find_references([locked, other], 1, context=context)
    finally:
        locked.chmod(0o644)

    assert names(result) == ["c.js"]
    assert len(context.warnings) == 1
    assert context.warnings[0].startswith("Could not read file (PermissionError)")


@pytest.mark.unit
def test_find_references_directory_reference_is_kept_but_not_scanned(tmp_path: Path) -> None:
    main = write(tmp_path / "main.js", "const lib = require('./lib');")
    write(tmp_path / "lib" / "index.js", "import x from './x';")
    write(tmp_path / "lib" / "x.js", "")
    context = RunContext()

    result = find_references([main], 3, context=context)

    assert result == {tmp_path / "lib"}
    assert context.warnings == []


@pytest.mark.unit
def test_find_references_broken_symlink_is_unresolved(tmp_path: Path) -> None:
    main = write(tmp_path / "main.js", "import { data } from './broken.js';")
    (tmp_path / "broken.js").symlink_to(tmp_path / "does-not-exist.js")

    assert find_references([main], 2) == set()


@pytest.mark.unit
def test_find_references_with_custom_patterns(tmp_path: Path) -> None:
    sheet = write(tmp_path / "app.css", "@import './theme.css';")
    write(tmp_path / "theme.css", "body {}")

    result = find_references([sheet], 1, patterns=[re.compile(r"""@import\s+['"](.+?)['"]""")])

    assert result == {tmp_path / "theme.css"}
