"""Exclusive-access guard — enforce one mutator at a time per object.

Nodes and links are shared by many holders (hard links, open files,
parent/child references).  Nothing here is threaded, so the only way
two mutations of the same object can overlap is re-entrancy: code that
mutates an object and, while doing so, reaches back into the same
object through another path.

Each guarded object owns an ``ExclusiveGuard``.  Mutations run inside
``guard.hold()``; a second ``hold()`` on the same guard before the
first one ends raises ``AliasingError``.  Unlike a mutex there is no
wait queue, since nobody could release the guard while we wait.
"""

from collections.abc import Iterator
from contextlib import contextmanager

from py_memfs.errors import AliasingError


class ExclusiveGuard:
    """Non-reentrant exclusive-access marker for one object."""

    __slots__ = ("_held", "_name")

    def __init__(self, *, name: str) -> None:
        """Create a released guard with the given name."""
        self._name = name
        self._held = False

    @property
    def name(self) -> str:
        """Return the guard name."""
        return self._name

    @property
    def is_held(self) -> bool:
        """Return whether a mutation is currently in progress."""
        return self._held

    @contextmanager
    def hold(self) -> Iterator[None]:
        """Hold the guard for the duration of the block.

        Raises:
            AliasingError: If the guard is already held.

        """
        if self._held:
            msg = f"Re-entrant mutation of {self._name}"
            raise AliasingError(msg)
        self._held = True
        try:
            yield
        finally:
            self._held = False
