"""Read-only projections of a node: ``Stats`` and ``Dirent``.

Both capture a ``mode`` value at the moment they are made, so later
changes to the node are not reflected.  The ``is_*`` predicates test
the file-type bits of that captured mode.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import TYPE_CHECKING

from py_memfs.constants import S_IFBLK, S_IFCHR, S_IFDIR, S_IFIFO, S_IFLNK, S_IFMT, S_IFREG, S_IFSOCK

if TYPE_CHECKING:
    from py_memfs.link import Link
    from py_memfs.node import Node

BLOCK_SIZE = 4096
SECTOR_SIZE = 512


class _ModeChecks:
    """File-type predicates over a ``mode`` attribute."""

    mode: int

    def _check_mode_property(self, file_type: int) -> bool:
        return (self.mode & S_IFMT) == file_type

    def is_directory(self) -> bool:
        """Return whether the mode is a directory."""
        return self._check_mode_property(S_IFDIR)

    def is_file(self) -> bool:
        """Return whether the mode is a regular file."""
        return self._check_mode_property(S_IFREG)

    def is_block_device(self) -> bool:
        """Return whether the mode is a block device."""
        return self._check_mode_property(S_IFBLK)

    def is_character_device(self) -> bool:
        """Return whether the mode is a character device."""
        return self._check_mode_property(S_IFCHR)

    def is_symbolic_link(self) -> bool:
        """Return whether the mode is a symbolic link."""
        return self._check_mode_property(S_IFLNK)

    def is_fifo(self) -> bool:
        """Return whether the mode is a FIFO."""
        return self._check_mode_property(S_IFIFO)

    def is_socket(self) -> bool:
        """Return whether the mode is a socket."""
        return self._check_mode_property(S_IFSOCK)


@dataclass(frozen=True)
class Stats(_ModeChecks):
    """Snapshot of a node's metadata (returned by stat/lstat/fstat)."""

    dev: int
    ino: int
    mode: int
    nlink: int
    uid: int
    gid: int
    rdev: int
    size: int
    blksize: int
    blocks: int
    atime: float
    mtime: float
    ctime: float
    birthtime: float

    @classmethod
    def build(cls, node: Node) -> Stats:
        """Capture the current metadata of *node*."""
        return cls(
            dev=0,
            ino=node.ino,
            mode=node.mode,
            nlink=node.nlink,
            uid=node.uid,
            gid=node.gid,
            rdev=0,
            size=node.size,
            blksize=BLOCK_SIZE,
            blocks=math.ceil(node.size / SECTOR_SIZE),
            atime=node.atime,
            mtime=node.mtime,
            ctime=node.ctime,
            birthtime=node.ctime,
        )

    @property
    def atime_ms(self) -> int:
        """Return the access time in milliseconds."""
        return int(self.atime * 1000)

    @property
    def mtime_ms(self) -> int:
        """Return the modification time in milliseconds."""
        return int(self.mtime * 1000)

    @property
    def ctime_ms(self) -> int:
        """Return the status-change time in milliseconds."""
        return int(self.ctime * 1000)

    @property
    def birthtime_ms(self) -> int:
        """Return the creation time in milliseconds."""
        return int(self.birthtime * 1000)


@dataclass(frozen=True)
class Dirent(_ModeChecks):
    """A directory entry name with the type of the node it names."""

    name: str
    mode: int

    @classmethod
    def build(cls, link: Link) -> Dirent:
        """Capture the name and mode of *link*."""
        return cls(name=link.get_name(), mode=link.get_node().mode)
