"""Open files and the descriptor table.

Callers work with open files through **file descriptors** (integers):

1. ``open(path, flags)`` → the volume allocates a descriptor and a
   ``File`` handle bound to the link and node the path resolved to.
2. ``read(fd, …)`` / ``write(fd, …)`` → transfer bytes at the handle's
   cursor (or an explicit position), then advance the cursor.
3. ``close(fd)`` → the handle goes away and the number is recycled.

Key concepts:

- **File**: the cursor record behind a descriptor: link, node, byte
  position and the flags given at open time.  Several handles can share
  one node, each with its own cursor.
- **FdTable**: the volume's mapping from descriptor numbers to handles.
  Numbers count *down* from ``0x7FFFFFFF``; closed numbers are reused
  most-recent-first before a new one is minted.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from py_memfs.constants import O_APPEND
from py_memfs.errors import FsError, FsErrorCode
from py_memfs.stats import Stats

if TYPE_CHECKING:
    from py_memfs.link import Link
    from py_memfs.node import Node

UTF8_NAMES = frozenset({"utf8", "utf-8"})


def check_utf8(encoding: str, operation: str) -> None:
    """Reject any text encoding other than UTF-8.

    Raises:
        FsError: ``EINVAL`` for other encodings.

    """
    if encoding.lower() not in UTF8_NAMES:
        raise FsError(FsErrorCode.EINVAL, operation, [encoding])


class File:
    """An open file: one descriptor bound to one link and node."""

    def __init__(self, link: Link, node: Node, flags: int, fd: int) -> None:
        """Create a handle with its cursor at the start of the file."""
        self.fd = fd
        self.link = link
        self.node = node
        self.position = 0
        self.flags = flags

    def __repr__(self) -> str:
        """Return a debugging representation."""
        return f"File(fd={self.fd}, ino={self.node.ino}, position={self.position})"

    def get_string(self, encoding: str = "utf8") -> str:
        """Return the whole content as text.

        Raises:
            FsError: ``EINVAL`` for a non-UTF-8 encoding or undecodable content.

        """
        check_utf8(encoding, "get_string")
        try:
            return self.node.get_string()
        except UnicodeDecodeError:
            raise FsError(FsErrorCode.EINVAL, "get_string", [self.link.get_path()]) from None

    def set_string(self, text: str) -> None:
        """Replace the whole content with UTF-8 text."""
        self.node.set_string(text)

    def get_buffer(self) -> bytes:
        """Return a copy of the whole content."""
        return self.node.get_buffer()

    def set_buffer(self, data: bytes) -> None:
        """Replace the whole content."""
        self.node.set_buffer(data)

    @property
    def size(self) -> int:
        """Return the content length in bytes."""
        return self.node.size

    def stats(self) -> Stats:
        """Return a metadata snapshot of the bound node."""
        return Stats.build(self.node)

    def truncate(self, length: int = 0) -> None:
        """Resize the content."""
        self.node.truncate(length)

    def seek_to(self, position: int) -> None:
        """Move the cursor to *position*."""
        self.position = position

    def write(
        self,
        buf: bytes,
        offset: int = 0,
        length: int | None = None,
        position: int | None = None,
    ) -> int:
        """Write ``buf[offset:offset+length]`` at *position* or the cursor.

        In append mode an implicit position means the end of the file.
        The cursor ends up just past the last byte written.
        """
        if position is None:
            position = self.node.size if self.flags & O_APPEND else self.position
        written = self.node.write(buf, offset, length, position)
        self.position = position + written
        return written

    def read(
        self,
        buf: bytearray | memoryview,
        offset: int = 0,
        length: int | None = None,
        position: int | None = None,
    ) -> int:
        """Read into ``buf[offset:]`` from *position* or the cursor."""
        if position is None:
            position = self.position
        count = self.node.read(buf, offset, length, position)
        self.position = position + count
        return count

    def chmod(self, perm: int) -> None:
        """Change the permission bits of the bound node."""
        self.node.chmod(perm)

    def chown(self, uid: int, gid: int) -> None:
        """Change the owner of the bound node."""
        self.node.chown(uid, gid)


class FdTable:
    """Mapping from descriptor numbers to open files.

    Numbers are handed out from a LIFO pool of closed descriptors first,
    then minted downward from ``FIRST_FD``.
    """

    FIRST_FD = 0x7FFFFFFF
    DEFAULT_MAX_FILES = 10000

    def __init__(self, *, max_files: int = DEFAULT_MAX_FILES) -> None:
        """Create an empty table allowing at most *max_files* open files."""
        self.max_files = max_files
        self._files: dict[int, File] = {}
        self._released: list[int] = []
        self._next_fd = self.FIRST_FD

    def new_fd(self, operation: str = "open") -> int:
        """Reserve a descriptor number.

        Raises:
            FsError: ``EMFILE`` if ``max_files`` files are already open.

        """
        if len(self._files) >= self.max_files:
            raise FsError(FsErrorCode.EMFILE, operation)
        if self._released:
            return self._released.pop()
        fd = self._next_fd
        self._next_fd -= 1
        return fd

    def register(self, file: File) -> None:
        """Record *file* under its descriptor."""
        self._files[file.fd] = file

    def get(self, fd: int) -> File | None:
        """Return the file open on *fd*, or None."""
        return self._files.get(fd)

    def lookup(self, fd: int, operation: str) -> File:
        """Return the file open on *fd*.

        Raises:
            FsError: ``EBADF`` if *fd* is not open.

        """
        file = self._files.get(fd)
        if file is None:
            raise FsError(FsErrorCode.EBADF, operation, [str(fd)])
        return file

    def close(self, fd: int, operation: str = "close") -> File:
        """Remove *fd* from the table and release its number.

        Raises:
            FsError: ``EBADF`` if *fd* is not open.

        """
        file = self.lookup(fd, operation)
        del self._files[fd]
        self._released.append(fd)
        return file

    def is_open_node(self, node: Node) -> bool:
        """Return whether any open file is bound to *node*."""
        return any(file.node is node for file in self._files.values())

    def list_fds(self) -> dict[int, File]:
        """Return a snapshot of all open descriptors."""
        return dict(self._files)

    def __len__(self) -> int:
        """Return the number of open files."""
        return len(self._files)

    def reset(self) -> None:
        """Forget every open file and restart numbering."""
        self._files.clear()
        self._released.clear()
        self._next_fd = self.FIRST_FD
