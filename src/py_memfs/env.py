"""Process environment — where the default working directory comes from.

Relative paths need a current working directory.  A volume can be
given one explicitly; otherwise the process-wide environment decides:
``CWD`` first, then ``PWD``.  When neither is set the root ``/`` is
used and a WARNING is written to ``system_log`` so the fallback does
not go unnoticed.

The process-wide environment is a snapshot of ``os.environ`` taken on
first use.  ``set_process_env`` swaps it out, which is how tests pin
the working directory without touching the real environment.
"""

import os

from py_memfs.logging import LogLevel, system_log

ROOT = "/"


class Environment:
    """A key-value store for environment variables.

    Each instance is an independent copy — modifying one does not
    affect any other.
    """

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        """Create an environment, optionally pre-populated.

        Args:
            initial: Starting variables (copied, not referenced).

        """
        self._vars: dict[str, str] = dict(initial) if initial else {}

    @classmethod
    def from_os(cls) -> "Environment":
        """Return a snapshot of the real process environment."""
        return cls(initial=dict(os.environ))

    def get(self, key: str, default: str | None = None) -> str | None:
        """Return the value for *key*, or *default* if not set."""
        return self._vars.get(key, default)

    def set(self, key: str, value: str) -> None:
        """Set *key* to *value* (creates or overwrites)."""
        self._vars[key] = value

    def delete(self, key: str) -> None:
        """Remove *key* from the environment.

        Raises:
            KeyError: If *key* does not exist.

        """
        del self._vars[key]

    def items(self) -> list[tuple[str, str]]:
        """Return all (key, value) pairs."""
        return list(self._vars.items())

    def copy(self) -> "Environment":
        """Return an independent copy of this environment."""
        return Environment(initial=self._vars)

    def cwd(self) -> str | None:
        """Return the configured working directory (CWD, then PWD), or None."""
        return self._vars.get("CWD") or self._vars.get("PWD") or None

    def __len__(self) -> int:
        """Return the number of variables."""
        return len(self._vars)


_process_env: Environment | None = None


def get_process_env() -> Environment:
    """Return the process-wide environment, snapshotting ``os.environ`` once."""
    global _process_env  # noqa: PLW0603
    if _process_env is None:
        _process_env = Environment.from_os()
    return _process_env


def set_process_env(env: Environment | None) -> None:
    """Replace the process-wide environment (None re-reads ``os.environ``)."""
    global _process_env  # noqa: PLW0603
    _process_env = env


def process_cwd(env: Environment | None = None) -> str:
    """Return the default working directory.

    Args:
        env: Environment to consult; the process-wide one if omitted.

    Returns:
        ``CWD`` or ``PWD`` from the environment, else ``/``.

    """
    env = env if env is not None else get_process_env()
    cwd = env.cwd()
    if cwd is None:
        system_log.log(
            LogLevel.WARNING,
            "current working directory not set (CWD/PWD), falling back to '/'",
            source="env",
        )
        return ROOT
    return cwd
