"""Links — directory entries binding a name to an inode.

The directory tree is made of ``Link`` objects.  Each one names a child
inside its parent and refers to exactly one node; two links referring
to the same node are hard links.

Links never hold each other directly.  The volume's ``LinkArena`` owns
every link under a stable integer key, and all references (child
entries, the parent back-reference, ``.`` and ``..``) are keys into
that arena.  The parent key is weak: once the parent is dropped from
the arena, ``get_parent()`` simply returns None.

Every directory link carries two synthetic entries:

- ``.`` — its own key (adds one to its node's ``nlink``);
- ``..`` — its parent's key (adds one to the *parent* node's ``nlink``).

So a directory's ``nlink`` is 2 plus the number of child directories.

Each link caches ``steps``, the names from the root down to itself.
Whenever a link is renamed or moved, the cache is rebuilt for it and
every descendant (skipping ``.``/``..``, which would loop forever).
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from typing import TYPE_CHECKING, Any

from py_memfs.guard import ExclusiveGuard

if TYPE_CHECKING:
    from py_memfs.node import Node
    from py_memfs.volume import Volume

SELF = "."
PARENT = ".."
SYNTHETIC = frozenset({SELF, PARENT})


class Link:
    """One name → inode binding inside a directory."""

    def __init__(
        self,
        vol: Volume,
        key: int,
        name: str,
        parent_key: int | None = None,
    ) -> None:
        """Create a link; use ``LinkArena.new`` rather than calling this."""
        self.vol = vol
        self.key = key
        self.name = name
        self.parent_key = parent_key
        self.children: dict[str, int] = {}
        self.ino: int | None = None
        self.length = 0
        self._steps: list[str] = []
        self._guard = ExclusiveGuard(name=f"link {key}")
        self.sync_steps()

    def __repr__(self) -> str:
        """Return a debugging representation."""
        return f"Link(key={self.key}, path={self.get_path()!r}, ino={self.ino})"

    @property
    def guard(self) -> ExclusiveGuard:
        """Return the guard serialising step-cache rebuilds."""
        return self._guard

    @property
    def steps(self) -> list[str]:
        """Return the names from the root to this link."""
        return list(self._steps)

    # -- node binding ----------------------------------------------------------

    def set_node(self, node: Node) -> None:
        """Bind this link to *node*."""
        self.ino = node.ino

    def get_node(self) -> Node:
        """Return the bound node.

        Raises:
            LookupError: If the link is unbound or its node is gone.

        """
        if self.ino is None:
            msg = f"Link {self.get_path()!r} is not bound to a node"
            raise LookupError(msg)
        return self.vol.nodes[self.ino]

    # -- navigation ------------------------------------------------------------

    def get_parent(self) -> Link | None:
        """Return the parent link, or None for the root or a dropped parent."""
        if self.parent_key is None:
            return None
        return self.vol.links.get(self.parent_key)

    def get_child(self, name: str) -> Link | None:
        """Return the child entry called *name*, or None."""
        key = self.children.get(name)
        if key is None:
            return None
        return self.vol.links.get(key)

    def iter_children(self) -> Iterator[tuple[str, Link]]:
        """Yield ``(name, link)`` for real entries, skipping ``.`` and ``..``."""
        for name in list(self.children):
            if name in SYNTHETIC:
                continue
            child = self.get_child(name)
            if child is not None:
                yield name, child

    def walk(self, steps: Sequence[str], stop: int | None = None, start: int = 0) -> Link | None:
        """Follow ``steps[start:stop]`` from this link.

        No symlinks are followed; this is a purely structural walk.

        Returns:
            The link reached, or None as soon as a name is missing.

        """
        stop = len(steps) if stop is None else min(stop, len(steps))
        link = self
        for step in steps[start:stop]:
            child = link.get_child(step)
            if child is None:
                return None
            link = child
        return link

    def get_path(self) -> str:
        """Return the absolute path of this link."""
        return "/" + "/".join(self._steps)

    def get_name(self) -> str:
        """Return the entry name."""
        return self.name

    # -- mutation --------------------------------------------------------------

    def create_child(self, name: str, node: Node | None = None) -> Link:
        """Create a new entry *name* bound to *node* (or a fresh file node).

        Directory nodes get a ``.`` entry pointing back at the new link.
        """
        if node is None:
            node = self.vol.create_node()
        link = self.vol.links.new(name, parent_key=self.key)
        link.set_node(node)
        if node.is_directory():
            link.children[SELF] = link.key
            node.inc_nlink()
        return self.set_child(name, link)

    def set_child(self, name: str, link: Link | None = None) -> Link:
        """Insert *link* (or a new unbound link) under *name*.

        Reparents and renames the link, rebuilds its cached steps and,
        for directories, adds the ``..`` entry.
        """
        if link is None:
            link = self.vol.links.new(name, parent_key=self.key)
        self.children[name] = link.key
        link.parent_key = self.key
        link.name = name
        link.sync_steps()
        self.length += 1
        parent_node = self.get_node()
        if link.ino is not None and link.get_node().is_directory():
            link.children[PARENT] = self.key
            parent_node.inc_nlink()
        parent_node.touch()
        return link

    def delete_child(self, link: Link) -> None:
        """Remove *link* from this directory.

        The caller decides what happens to the unlinked node.
        """
        parent_node = self.get_node()
        if link.ino is not None and link.get_node().is_directory():
            link.children.pop(PARENT, None)
            parent_node.dec_nlink()
        del self.children[link.name]
        self.length -= 1
        parent_node.touch()

    def sync_steps(self) -> None:
        """Rebuild the cached steps of this link and all its descendants."""
        with self._guard.hold():
            parent = self.get_parent()
            if parent is not None:
                self._steps = [*parent._steps, self.name]  # noqa: SLF001
            else:
                self._steps = [self.name] if self.name else []
        for _, child in self.iter_children():
            child.sync_steps()

    def to_json(self) -> dict[str, Any]:
        """Return a plain-dict view of this entry."""
        return {
            "steps": list(self._steps),
            "ino": self.ino,
            "children": list(self.children),
        }


class LinkArena:
    """Owner of every link in one volume, keyed by a stable integer."""

    def __init__(self, vol: Volume) -> None:
        """Create an empty arena for *vol*."""
        self._vol = vol
        self._links: dict[int, Link] = {}
        self._next_key = 0

    def new(self, name: str, *, parent_key: int | None = None) -> Link:
        """Create and register a link under a fresh key."""
        key = self._next_key
        self._next_key += 1
        link = Link(self._vol, key, name, parent_key)
        self._links[key] = link
        return link

    def get(self, key: int) -> Link | None:
        """Return the link with *key*, or None if it was dropped."""
        return self._links.get(key)

    def __getitem__(self, key: int) -> Link:
        """Return the link with *key*.

        Raises:
            KeyError: If no such link is registered.

        """
        return self._links[key]

    def __contains__(self, key: object) -> bool:
        """Return whether *key* is registered."""
        return key in self._links

    def __len__(self) -> int:
        """Return the number of registered links."""
        return len(self._links)

    def release(self, link: Link) -> None:
        """Drop *link* and every descendant from the arena."""
        for _, child in link.iter_children():
            self.release(child)
        self._links.pop(link.key, None)

    def reset(self) -> None:
        """Forget every link."""
        self._links.clear()
        self._next_key = 0
