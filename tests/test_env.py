"""Tests for the process environment and the default working directory.

Relative paths need a working directory.  When a volume is not given
one, it comes from the process environment: ``CWD`` first, then
``PWD``, and finally ``/`` with a warning in the system log.
"""

from collections.abc import Iterator

import pytest

from py_memfs.env import Environment, get_process_env, process_cwd, set_process_env
from py_memfs.logging import LogLevel, system_log
from py_memfs.volume import Volume


@pytest.fixture
def process_env() -> Iterator[Environment]:
    """Install an empty process environment for the duration of a test."""
    env = Environment()
    set_process_env(env)
    yield env
    set_process_env(None)


class TestEnvironment:
    """Verify the Environment key-value store."""

    def test_get_and_set(self) -> None:
        """Setting a variable makes it retrievable."""
        env = Environment()
        env.set("CWD", "/work")
        assert env.get("CWD") == "/work"

    def test_get_missing_with_default(self) -> None:
        """Missing keys give the default."""
        env = Environment()
        assert env.get("MISSING") is None
        assert env.get("MISSING", "fallback") == "fallback"

    def test_delete(self) -> None:
        """Deleting removes the key; deleting again is a KeyError."""
        env = Environment({"X": "1"})
        env.delete("X")
        assert len(env) == 0
        with pytest.raises(KeyError):
            env.delete("X")

    def test_copy_is_independent(self) -> None:
        """Changes to a copy do not leak back."""
        env = Environment({"A": "1"})
        clone = env.copy()
        clone.set("A", "2")
        assert env.get("A") == "1"
        assert clone.items() == [("A", "2")]

    def test_initial_is_copied(self) -> None:
        """The initial mapping is copied, not referenced."""
        initial = {"A": "1"}
        env = Environment(initial)
        initial["A"] = "changed"
        assert env.get("A") == "1"

    def test_cwd_prefers_cwd_over_pwd(self) -> None:
        """CWD wins over PWD; empty values count as unset."""
        assert Environment({"CWD": "/c", "PWD": "/p"}).cwd() == "/c"
        assert Environment({"CWD": "", "PWD": "/p"}).cwd() == "/p"
        assert Environment().cwd() is None


class TestProcessEnvironment:
    """Verify the process-wide environment."""

    def test_set_and_get(self, process_env: Environment) -> None:
        """set_process_env installs the environment get_process_env returns."""
        assert get_process_env() is process_env

    def test_snapshot_of_os_environ(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Without an override the OS environment is snapshotted."""
        monkeypatch.setenv("PWD", "/from/os")
        monkeypatch.delenv("CWD", raising=False)
        set_process_env(None)
        try:
            assert get_process_env().get("PWD") == "/from/os"
        finally:
            set_process_env(None)

    def test_process_cwd(self, process_env: Environment) -> None:
        """process_cwd reads CWD from the process environment."""
        process_env.set("CWD", "/srv")
        assert process_cwd() == "/srv"

    def test_explicit_environment(self) -> None:
        """An explicit environment overrides the process one."""
        assert process_cwd(Environment({"PWD": "/x"})) == "/x"

    def test_fallback_to_root_logs_warning(self, process_env: Environment) -> None:
        """With no CWD or PWD, ``/`` is used and a warning is logged."""
        assert process_env.cwd() is None
        system_log.clear()
        assert process_cwd() == "/"
        warnings = system_log.filter(min_level=LogLevel.WARNING)
        assert len(warnings) == 1
        assert warnings[0].source == "env"


class TestVolumeCwd:
    """Verify how a volume picks its working directory."""

    def test_volume_uses_process_cwd(self, process_env: Environment) -> None:
        """A volume without cwd follows the process environment."""
        process_env.set("CWD", "/proc-cwd")
        vol = Volume()
        vol.mkdir("/proc-cwd")
        vol.write_file("f.txt", "x")
        assert vol.exists("/proc-cwd/f.txt")

    def test_volume_cwd_wins(self, process_env: Environment) -> None:
        """An explicit cwd beats the environment."""
        process_env.set("CWD", "/ignored")
        vol = Volume(cwd="/")
        vol.write_file("f.txt", "x")
        assert vol.readdir("/") == ["f.txt"]
