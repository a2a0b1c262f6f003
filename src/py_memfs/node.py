"""Inodes — file content and metadata, independent of any name.

A ``Node`` is what a name in a directory points at.  The name itself
lives in a ``Link`` (see ``link.py``); the node only knows its number,
owner, timestamps, mode bits, link count and content:

- regular files hold their bytes in ``buf``;
- directories keep ``buf`` empty (their entries live in the link tree);
- symbolic links keep the target path in ``symlink``.

``nlink`` counts every link entry that refers to the node, including a
directory's own ``.`` and each child directory's ``..``.  When it
reaches zero the node can be deleted and its number recycled.

The ``NodeStore`` owns every live node, keyed by inode number.  Numbers
ascend from zero; released numbers go onto a stack and are handed out
again, most recent first, before any new number is minted.
"""

from __future__ import annotations

import time
from typing import Any

from py_memfs.constants import (
    DEFAULT_DIR_PERM,
    DEFAULT_FILE_PERM,
    S_IFDIR,
    S_IFLNK,
    S_IFMT,
    S_IFREG,
    S_IRGRP,
    S_IROTH,
    S_IRUSR,
    S_IWGRP,
    S_IWOTH,
    S_IWUSR,
    S_IXGRP,
    S_IXOTH,
    S_IXUSR,
)
from py_memfs.guard import ExclusiveGuard

PERM_MASK = 0o7777


def _now() -> float:
    return time.time()


class Node:
    """One inode: metadata plus content.

    Setting ``uid``, ``gid``, ``perm``, ``nlink``, ``atime`` or
    ``mtime`` also bumps ``ctime``, like a real inode change.
    """

    def __init__(self, ino: int, perm: int | None = None) -> None:
        """Create a regular-file node with the given number and permissions."""
        perm = DEFAULT_FILE_PERM if perm is None else perm
        now = _now()
        self.ino = ino
        self._uid = 0
        self._gid = 0
        self._atime = now
        self._mtime = now
        self._ctime = now
        self.buf = bytearray()
        self._perm = perm
        self.mode = S_IFREG | perm
        self._nlink = 1
        self.symlink = ""
        self._guard = ExclusiveGuard(name=f"node {ino}")

    def __repr__(self) -> str:
        """Return a debugging representation."""
        return f"Node(ino={self.ino}, mode={self.mode:o}, nlink={self._nlink})"

    # -- metadata --------------------------------------------------------------

    @property
    def guard(self) -> ExclusiveGuard:
        """Return the guard serialising mutations of this node."""
        return self._guard

    @property
    def uid(self) -> int:
        """Return the owning user id."""
        return self._uid

    @uid.setter
    def uid(self, uid: int) -> None:
        self._uid = uid
        self._ctime = _now()

    @property
    def gid(self) -> int:
        """Return the owning group id."""
        return self._gid

    @gid.setter
    def gid(self, gid: int) -> None:
        self._gid = gid
        self._ctime = _now()

    @property
    def atime(self) -> float:
        """Return the last access time."""
        return self._atime

    @atime.setter
    def atime(self, atime: float) -> None:
        self._atime = atime
        self._ctime = _now()

    @property
    def mtime(self) -> float:
        """Return the last modification time."""
        return self._mtime

    @mtime.setter
    def mtime(self, mtime: float) -> None:
        self._mtime = mtime
        self._ctime = _now()

    @property
    def ctime(self) -> float:
        """Return the last status-change time."""
        return self._ctime

    @ctime.setter
    def ctime(self, ctime: float) -> None:
        self._ctime = ctime

    @property
    def perm(self) -> int:
        """Return the permission bits."""
        return self._perm

    @perm.setter
    def perm(self, perm: int) -> None:
        self._perm = perm
        self._ctime = _now()

    @property
    def nlink(self) -> int:
        """Return the number of link entries referencing this node."""
        return self._nlink

    @nlink.setter
    def nlink(self, nlink: int) -> None:
        self._nlink = nlink
        self._ctime = _now()

    def inc_nlink(self) -> None:
        """Count one more referencing link."""
        self.nlink = self._nlink + 1

    def dec_nlink(self) -> None:
        """Count one fewer referencing link."""
        self.nlink = self._nlink - 1

    def touch(self) -> None:
        """Mark the content as modified now."""
        self.mtime = _now()

    # -- type bits -------------------------------------------------------------

    def set_mode_property(self, file_type: int) -> None:
        """Replace the file-type bits of ``mode``."""
        self.mode = (self.mode & ~S_IFMT) | file_type

    def set_is_file(self) -> None:
        """Mark the node as a regular file."""
        self.set_mode_property(S_IFREG)

    def set_is_directory(self) -> None:
        """Mark the node as a directory."""
        self.set_mode_property(S_IFDIR)

    def set_is_symlink(self) -> None:
        """Mark the node as a symbolic link."""
        self.set_mode_property(S_IFLNK)

    def is_file(self) -> bool:
        """Return whether the node is a regular file."""
        return (self.mode & S_IFMT) == S_IFREG

    def is_directory(self) -> bool:
        """Return whether the node is a directory."""
        return (self.mode & S_IFMT) == S_IFDIR

    def is_symlink(self) -> bool:
        """Return whether the node is a symbolic link."""
        return (self.mode & S_IFMT) == S_IFLNK

    def make_symlink(self, target: str) -> None:
        """Turn the node into a symbolic link pointing at *target*."""
        self.set_is_symlink()
        self.symlink = target

    # -- content ---------------------------------------------------------------

    @property
    def size(self) -> int:
        """Return the content length in bytes."""
        return len(self.buf)

    def get_buffer(self) -> bytes:
        """Return a copy of the content and mark the node as accessed."""
        self.atime = _now()
        return bytes(self.buf)

    def set_buffer(self, data: bytes) -> None:
        """Replace the whole content."""
        with self._guard.hold():
            self.buf = bytearray(data)
            self.touch()

    def get_string(self) -> str:
        """Return the content decoded as UTF-8.

        Raises:
            UnicodeDecodeError: If the content is not valid UTF-8.

        """
        return self.get_buffer().decode("utf-8")

    def set_string(self, text: str) -> None:
        """Replace the content with UTF-8 encoded *text*."""
        self.set_buffer(text.encode("utf-8"))

    def write(self, buf: bytes, off: int = 0, length: int | None = None, pos: int = 0) -> int:
        r"""Splice ``buf[off:off+length]`` into the content at *pos*.

        The content grows when the write runs past its end; any gap
        between the old end and *pos* is filled with ``\x00``.

        Returns:
            The number of bytes written.

        """
        available = max(len(buf) - off, 0)
        length = available if length is None else min(length, available)
        with self._guard.hold():
            end = pos + length
            if end > len(self.buf):
                self.buf.extend(bytes(end - len(self.buf)))
            self.buf[pos:end] = buf[off : off + length]
            self.touch()
        return length

    def read(
        self,
        buf: bytearray | memoryview,
        off: int = 0,
        length: int | None = None,
        pos: int = 0,
    ) -> int:
        """Copy content starting at *pos* into ``buf[off:]``.

        The byte count is clamped to the room left in *buf* and to the
        content remaining after *pos*.  Reading at or past the end
        transfers nothing.  Only ``atime`` changes.

        Returns:
            The number of bytes read.

        """
        capacity = max(len(buf) - off, 0)
        length = capacity if length is None else min(length, capacity)
        with self._guard.hold():
            self._atime = _now()
            if pos >= len(self.buf):
                return 0
            length = min(length, len(self.buf) - pos)
            buf[off : off + length] = self.buf[pos : pos + length]
        return length

    def truncate(self, length: int = 0) -> None:
        r"""Resize the content to *length*, padding growth with ``\x00``."""
        with self._guard.hold():
            if length == 0:
                self.buf = bytearray()
            elif length < len(self.buf):
                del self.buf[length:]
            else:
                self.buf.extend(bytes(length - len(self.buf)))
            self.touch()

    def clear(self) -> None:
        """Drop content and symlink target (used when the node is deleted)."""
        with self._guard.hold():
            self.buf = bytearray()
            self.symlink = ""

    # -- ownership and permissions ---------------------------------------------

    def chmod(self, perm: int) -> None:
        """Replace the permission bits."""
        with self._guard.hold():
            self.perm = perm
            self.mode = (self.mode & ~PERM_MASK) | (perm & PERM_MASK)

    def chown(self, uid: int, gid: int) -> None:
        """Change the owning user and group."""
        with self._guard.hold():
            self.uid = uid
            self.gid = gid

    def _can(self, uid: int, gid: int, *, usr: int, grp: int, oth: int) -> bool:
        # Any one matching class grants access; the checks do not combine.
        if self._perm & oth:
            return True
        if gid == self._gid and self._perm & grp:
            return True
        return uid == self._uid and bool(self._perm & usr)

    def can_read(self, uid: int = 0, gid: int = 0) -> bool:
        """Return whether *uid*/*gid* may read this node."""
        return self._can(uid, gid, usr=S_IRUSR, grp=S_IRGRP, oth=S_IROTH)

    def can_write(self, uid: int = 0, gid: int = 0) -> bool:
        """Return whether *uid*/*gid* may write this node."""
        return self._can(uid, gid, usr=S_IWUSR, grp=S_IWGRP, oth=S_IWOTH)

    def can_execute(self, uid: int = 0, gid: int = 0) -> bool:
        """Return whether *uid*/*gid* may execute (or search) this node."""
        return self._can(uid, gid, usr=S_IXUSR, grp=S_IXGRP, oth=S_IXOTH)

    def to_json(self) -> dict[str, Any]:
        """Return a plain-dict view of the node's metadata and content."""
        return {
            "ino": self.ino,
            "uid": self._uid,
            "gid": self._gid,
            "atime": self._atime,
            "mtime": self._mtime,
            "ctime": self._ctime,
            "perm": self._perm,
            "mode": self.mode,
            "nlink": self._nlink,
            "symlink": self.symlink,
            "data": self.buf.decode("utf-8", errors="replace"),
        }


class NodeStore:
    """All live inodes of one volume, keyed by inode number."""

    def __init__(self) -> None:
        """Create an empty store."""
        self._nodes: dict[int, Node] = {}
        self._released: list[int] = []
        self._next_ino = 0

    def _new_ino(self) -> int:
        if self._released:
            return self._released.pop()
        ino = self._next_ino
        self._next_ino += 1
        return ino

    def create(self, *, is_directory: bool = False, perm: int | None = None) -> Node:
        """Allocate a number and register a fresh node.

        Args:
            is_directory: Create a directory rather than a regular file.
            perm: Permission bits (0o666 for files, 0o777 for directories
                when omitted).

        """
        if perm is None:
            perm = DEFAULT_DIR_PERM if is_directory else DEFAULT_FILE_PERM
        node = Node(self._new_ino(), perm)
        if is_directory:
            node.set_is_directory()
        self._nodes[node.ino] = node
        return node

    def delete(self, node: Node) -> None:
        """Drop *node*, clear its content and release its number."""
        node.clear()
        del self._nodes[node.ino]
        self._released.append(node.ino)

    def get(self, ino: int) -> Node | None:
        """Return the node numbered *ino*, or None."""
        return self._nodes.get(ino)

    def __getitem__(self, ino: int) -> Node:
        """Return the node numbered *ino*.

        Raises:
            KeyError: If no such node is live.

        """
        return self._nodes[ino]

    def __contains__(self, ino: object) -> bool:
        """Return whether a node with number *ino* is live."""
        return ino in self._nodes

    def __len__(self) -> int:
        """Return the number of live nodes."""
        return len(self._nodes)

    @property
    def released(self) -> list[int]:
        """Return the reuse stack (next number handed out is last)."""
        return list(self._released)

    def reset(self) -> None:
        """Forget every node and restart numbering from zero."""
        self._nodes.clear()
        self._released.clear()
        self._next_ino = 0
