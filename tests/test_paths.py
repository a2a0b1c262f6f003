"""Tests for path resolution — pure string rewriting of POSIX paths.

Before a volume can find anything, a path like ``../docs/./a.txt`` has
to become a list of names walked from the root.  These helpers do that
without touching any volume: normalizing, resolving against a working
directory, splitting into steps and computing relative paths.
"""

from collections.abc import Iterator

import pytest

from py_memfs.env import Environment, set_process_env
from py_memfs.errors import FsError, FsErrorCode
from py_memfs.logging import LogLevel, system_log
from py_memfs.paths import (
    basename,
    dirname,
    flatten_json,
    is_absolute,
    join,
    normalize,
    relative,
    resolve,
    to_steps,
)


@pytest.fixture
def process_env() -> Iterator[Environment]:
    """Install an empty process environment for the duration of a test."""
    env = Environment()
    set_process_env(env)
    yield env
    set_process_env(None)


class TestNormalize:
    """Verify collapsing of ``.``, ``..`` and repeated slashes."""

    def test_collapses_dot_and_dotdot(self) -> None:
        """Single dots vanish and ``..`` pops the previous segment."""
        assert normalize("/foo/bar/.././baz") == "/foo/baz"

    def test_collapses_repeated_slashes(self) -> None:
        """Empty segments are dropped."""
        assert normalize("//a///b/") == "/a/b"

    def test_dotdot_past_root_stays_at_root(self) -> None:
        """An absolute path can never climb above ``/``."""
        assert normalize("/../../a") == "/a"
        assert normalize("/..") == "/"

    def test_relative_keeps_leading_dotdot(self) -> None:
        """Unresolvable ``..`` in a relative path is kept for later."""
        assert normalize("../a/../../b") == "../../b"

    def test_dot_and_dotdot_unchanged(self) -> None:
        """The bare names ``.`` and ``..`` come back untouched."""
        assert normalize(".") == "."
        assert normalize("..") == ".."

    def test_relative_collapsing_to_nothing_is_dot(self) -> None:
        """A relative path that cancels out becomes ``.``."""
        assert normalize("a/..") == "."

    def test_idempotent(self) -> None:
        """Normalizing twice changes nothing more."""
        for path in ["/", "/a/b", "//x/./y/../z/", "/../.."]:
            once = normalize(path)
            assert normalize(once) == once


class TestResolve:
    """Verify folding fragments into one absolute path."""

    def test_last_absolute_fragment_wins(self) -> None:
        """Folding stops at the right-most absolute fragment."""
        assert resolve(["/foo", "/bar", "baz"]) == "/bar/baz"
        assert resolve(["/foo", "/bar", "baz", "..", "qux", ".", "quux"]) == "/bar/qux/quux"
        assert resolve(["/foo/bar/.././baz"]) == "/foo/baz"
        assert resolve(["foo/bar/.././baz"], "/qux") == "/qux/foo/baz"

    def test_relative_fragments_join_the_cwd(self) -> None:
        """Without an absolute fragment the cwd anchors the result."""
        assert resolve(["a", "b"], "/home") == "/home/a/b"

    def test_dotdot_applies_to_cwd(self) -> None:
        """Leading ``..`` climbs out of the cwd."""
        assert resolve(["../x"], "/home/user") == "/home/x"

    def test_no_fragments_is_the_cwd(self) -> None:
        """An empty fragment list resolves to the cwd itself."""
        assert resolve([], "/srv/") == "/srv"

    def test_relative_cwd_is_rejected(self) -> None:
        """A cwd that is not absolute raises EINVAL."""
        with pytest.raises(FsError, match="EINVAL") as exc_info:
            resolve(["a"], "relative/dir")
        assert exc_info.value.code is FsErrorCode.EINVAL

    def test_default_cwd_comes_from_environment(self, process_env: Environment) -> None:
        """CWD from the process environment anchors relative paths."""
        process_env.set("CWD", "/work")
        assert resolve(["file.txt"]) == "/work/file.txt"

    def test_pwd_is_used_when_cwd_missing(self, process_env: Environment) -> None:
        """PWD is the fallback when CWD is not set."""
        process_env.set("PWD", "/from/pwd")
        assert resolve(["x"]) == "/from/pwd/x"

    def test_missing_cwd_falls_back_to_root_with_warning(self, process_env: Environment) -> None:
        """With neither variable set the root is used and a warning logged."""
        assert len(process_env) == 0
        before = len(system_log.filter(min_level=LogLevel.WARNING, source="env"))
        assert resolve(["x"]) == "/x"
        after = len(system_log.filter(min_level=LogLevel.WARNING, source="env"))
        assert after == before + 1


class TestSteps:
    """Verify splitting resolved paths into name segments."""

    def test_splits_absolute_path(self) -> None:
        """Each segment becomes one step."""
        assert to_steps("/usr/bin/python") == ["usr", "bin", "python"]

    def test_root_has_no_steps(self) -> None:
        """The root resolves to an empty list."""
        assert to_steps("/") == []

    def test_relative_path_uses_base(self) -> None:
        """A relative filename is resolved against *base* first."""
        assert to_steps("c/../d", "/a/b") == ["a", "b", "d"]


class TestRelative:
    """Verify relative path computation."""

    def test_sibling_directories(self) -> None:
        """Climb out of the uncommon part, then descend."""
        assert relative("/data/a/test", "/data/b") == "../../b"
        assert relative("/data/orandea/test/aaa", "/data/orandea/impl/bbb") == "../../impl/bbb"

    def test_descendant(self) -> None:
        """A descendant is reached without any ``..``."""
        assert relative("/data", "/data/x/y") == "x/y"

    def test_equal_paths_are_empty(self) -> None:
        """Equal paths give the empty string."""
        assert relative("/same/", "/same") == ""

    def test_root_to_child(self) -> None:
        """From the root, the result is the path without its slash."""
        assert relative("/", "/f.txt") == "f.txt"


class TestHelpers:
    """Verify join, dirname, basename and is_absolute."""

    def test_join(self) -> None:
        """Parts are joined and normalized; empty parts are ignored."""
        assert join("/a", "", "b/../c") == "/a/c"

    def test_dirname(self) -> None:
        """dirname drops the final component."""
        assert dirname("/a/b/c.txt") == "/a/b"
        assert dirname("/top") == "/"
        assert dirname("/") == "/"
        assert dirname("name") == "."

    def test_basename(self) -> None:
        """basename keeps only the final component."""
        assert basename("/a/b/c.txt") == "c.txt"
        assert basename("/") == ""

    def test_is_absolute(self) -> None:
        """Only paths starting with ``/`` are absolute."""
        assert is_absolute("/x")
        assert not is_absolute("x/y")


class TestFlattenJson:
    """Verify nested snapshots flatten into ``path -> content`` form."""

    def test_nested_mappings_become_paths(self) -> None:
        """Mappings are directories; text values are files."""
        nested = {"a": {"b.txt": "hi", "c": {"d.txt": "deep"}}, "top.txt": "t"}
        assert flatten_json(nested) == {
            "a/b.txt": "hi",
            "a/c/d.txt": "deep",
            "top.txt": "t",
        }

    def test_empty_mapping_and_none_mark_empty_dirs(self) -> None:
        """Empty mappings and None both become None entries."""
        assert flatten_json({"empty": {}, "also": None}) == {"empty": None, "also": None}

    def test_bytes_are_file_contents(self) -> None:
        """Bytes values are kept as file contents."""
        assert flatten_json({"bin": b"\x00\x01"}) == {"bin": b"\x00\x01"}
