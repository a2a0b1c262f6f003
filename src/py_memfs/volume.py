"""The volume — one in-memory filesystem.

A ``Volume`` owns everything that makes up a filesystem:

- **NodeStore** — every inode, keyed by inode number.
- **LinkArena** — every directory entry, keyed by a stable integer;
  the root link ``/`` binds inode 0.
- **FdTable** — every open file, keyed by descriptor.
- **Logger** — the audit trail of what was done to the volume.

Path resolution
    ``/foo/bar/baz.txt`` is split into steps (``["foo", "bar",
    "baz.txt"]``) and walked from the root link.  ``get_link`` walks the
    tree as-is; ``get_resolved_link`` also dereferences symbolic links:
    when a step lands on a symlink, the remaining steps become the
    link's target steps followed by whatever was left of the original
    path, and the walk restarts from the root.  Relative targets are
    taken relative to the directory holding the symlink.  After
    ``MAX_SYMLINK_DEPTH`` redirects the walk gives up with ``ELOOP``.

Link counts
    A file's ``nlink`` is the number of names it has.  A directory's is
    2 plus the number of child directories (its name, its ``.``, and
    one ``..`` per child directory).  When ``nlink`` reaches zero the
    node is deleted and its number recycled, unless a descriptor still
    has it open, in which case that happens on the last ``close``.

Errors
    Every fallible operation raises ``FsError`` tagged with its own
    name and the paths it was given, e.g. ``ENOENT@open: /missing``.
"""

from __future__ import annotations

import random
import string
from collections.abc import Mapping, Sequence
from typing import Any, TypeAlias

from py_memfs.constants import (
    COPYFILE_EXCL,
    COPYFILE_FICLONE_FORCE,
    DEFAULT_DIR_PERM,
    DEFAULT_FILE_PERM,
    F_OK,
    O_APPEND,
    O_CREAT,
    O_DIRECTORY,
    O_EXCL,
    O_NOFOLLOW,
    O_RDONLY,
    O_RDWR,
    O_TRUNC,
    O_WRONLY,
    R_OK,
    W_OK,
    X_OK,
    access_mode,
    flags_to_number,
)
from py_memfs.env import process_cwd
from py_memfs.errors import FsError, FsErrorCode
from py_memfs.file import FdTable, File, check_utf8
from py_memfs.link import PARENT, SELF, Link, LinkArena
from py_memfs.logging import Logger, LogLevel
from py_memfs.node import Node, NodeStore
from py_memfs.paths import dirname, flatten_json, relative, resolve, to_steps
from py_memfs.stats import Dirent, Stats

MAX_SYMLINK_DEPTH = 40
"""Maximum symlink redirects per lookup — matches Linux's SYMLOOP_MAX."""

MKDTEMP_RETRIES = 5
RAND_ALPHABET = string.digits + string.ascii_lowercase

SOURCE = "volume"

Snapshot: TypeAlias = dict[str, str | None]


class Volume:
    """An in-memory filesystem rooted at ``/``.

    Args:
        cwd: Working directory for relative paths (process default if None).
        uid: User id used for permission checks.
        gid: Group id used for permission checks.
        max_files: Maximum number of simultaneously open files.
        logger: Audit log to write to (a fresh one if None).

    """

    def __init__(
        self,
        *,
        cwd: str | None = None,
        uid: int = 0,
        gid: int = 0,
        max_files: int = FdTable.DEFAULT_MAX_FILES,
        logger: Logger | None = None,
    ) -> None:
        """Create a volume holding only an empty root directory."""
        if cwd is not None:
            resolve([], cwd)
        self.cwd = cwd
        self.uid = uid
        self.gid = gid
        self.logger = logger if logger is not None else Logger()
        self.nodes = NodeStore()
        self.links = LinkArena(self)
        self.fds = FdTable(max_files=max_files)
        self.root = self._create_root()

    def _create_root(self) -> Link:
        root = self.links.new("")
        node = self.create_node(is_directory=True)
        root.set_node(node)
        root.children[SELF] = root.key
        root.children[PARENT] = root.key
        node.inc_nlink()
        return root

    @property
    def max_files(self) -> int:
        """Return the open-file limit."""
        return self.fds.max_files

    @property
    def open_files(self) -> int:
        """Return the number of open files."""
        return len(self.fds)

    # -- bookkeeping -----------------------------------------------------------

    def _error(self, code: FsErrorCode, operation: str, *paths: str) -> FsError:
        self.logger.log(
            LogLevel.DEBUG,
            f"{code} in {operation}",
            source=SOURCE,
            operation=operation,
            paths=paths,
        )
        return FsError(code, operation, paths)

    def _audit(self, message: str, operation: str, *paths: str) -> None:
        self.logger.log(LogLevel.INFO, message, source=SOURCE, operation=operation, paths=paths)

    def _steps(self, filename: str) -> list[str]:
        return to_steps(filename, self.cwd)

    def _cwd(self) -> str:
        return self.cwd if self.cwd is not None else process_cwd()

    # -- nodes and links -------------------------------------------------------

    def create_node(self, *, is_directory: bool = False, perm: int | None = None) -> Node:
        """Allocate a new node (recycling a released inode number first)."""
        return self.nodes.create(is_directory=is_directory, perm=perm)

    def delete_node(self, node: Node) -> None:
        """Delete *node* and release its inode number."""
        self.nodes.delete(node)

    def _release_node_if_unlinked(self, node: Node) -> None:
        if node.nlink > 0 or self.fds.is_open_node(node):
            return
        if node.ino in self.nodes and self.nodes[node.ino] is node:
            self.delete_node(node)

    def create_link(
        self,
        parent: Link,
        name: str,
        *,
        is_directory: bool = False,
        perm: int | None = None,
    ) -> Link:
        """Create a node and bind it under *parent* as *name*."""
        return parent.create_child(name, self.create_node(is_directory=is_directory, perm=perm))

    def delete_link(self, link: Link) -> bool:
        """Detach *link* from its parent.

        Returns:
            True if the link had a parent to be removed from.

        """
        parent = link.get_parent()
        if parent is None:
            return False
        parent.delete_child(link)
        return True

    def _unlink(self, link: Link) -> None:
        """Detach *link*, drop it from the arena and settle its node."""
        node = link.get_node()
        self.delete_link(link)
        if node.is_directory() and link.children.pop(SELF, None) is not None:
            node.dec_nlink()
        node.dec_nlink()
        self.links.release(link)
        self._release_node_if_unlinked(node)

    def _remove_tree(self, link: Link) -> None:
        for _, child in link.iter_children():
            if child.get_node().is_directory():
                self._remove_tree(child)
            else:
                self._unlink(child)
        self._unlink(link)

    def gen_rand_str(self) -> str:
        """Return six random characters from ``[0-9a-z]`` (used by mkdtemp)."""
        return "".join(random.choices(RAND_ALPHABET, k=6))  # noqa: S311

    # -- lookup ----------------------------------------------------------------

    def get_link(self, steps: Sequence[str]) -> Link | None:
        """Walk *steps* from the root without following symlinks."""
        return self.root.walk(steps)

    def get_link_or_fail(self, filename: str, operation: str = "get_link") -> Link:
        """Like ``get_link`` for a path, raising ``ENOENT`` when it is missing."""
        link = self.get_link(self._steps(filename))
        if link is None:
            raise self._error(FsErrorCode.ENOENT, operation, filename)
        return link

    def get_resolved_link(
        self,
        filename: str | Sequence[str],
        operation: str = "get_resolved_link",
    ) -> Link | None:
        """Walk a path (or steps) from the root, following every symlink.

        Raises:
            FsError: ``ELOOP`` after more than ``MAX_SYMLINK_DEPTH`` redirects.

        """
        steps = self._steps(filename) if isinstance(filename, str) else list(filename)
        link = self.root
        redirects = 0
        i = 0
        while i < len(steps):
            child = link.get_child(steps[i])
            if child is None:
                return None
            node = child.get_node()
            if node.is_symlink():
                redirects += 1
                if redirects > MAX_SYMLINK_DEPTH:
                    shown = filename if isinstance(filename, str) else "/" + "/".join(filename)
                    raise self._error(FsErrorCode.ELOOP, operation, shown)
                base = "/" + "/".join(steps[:i])
                steps = to_steps(node.symlink, base) + steps[i + 1 :]
                link = self.root
                i = 0
                continue
            link = child
            i += 1
        return link

    def get_resolved_link_or_fail(self, filename: str, operation: str = "get_resolved_link") -> Link:
        """Like ``get_resolved_link``, raising ``ENOENT`` when it is missing."""
        link = self.get_resolved_link(filename, operation)
        if link is None:
            raise self._error(FsErrorCode.ENOENT, operation, filename)
        return link

    def resolve_symlinks(self, link: Link) -> Link | None:
        """Return the link reached by resolving *link*'s own path."""
        return self.get_resolved_link(link.steps)

    def get_link_as_dir_or_fail(self, filename: str, operation: str = "get_link") -> Link:
        """Like ``get_link_or_fail``, raising ``ENOTDIR`` for non-directories."""
        link = self.get_link_or_fail(filename, operation)
        if not link.get_node().is_directory():
            raise self._error(FsErrorCode.ENOTDIR, operation, filename)
        return link

    def get_link_parent(self, steps: Sequence[str]) -> Link | None:
        """Walk to the directory one level above the last step.

        The last step itself need not exist.  The root has no parent.
        """
        if not steps:
            return None
        return self.root.walk(steps, stop=len(steps) - 1)

    def get_link_parent_as_dir_or_fail(self, filename: str, operation: str = "get_link") -> Link:
        """Like ``get_link_parent`` for a path, raising ``ENOENT``/``ENOTDIR``."""
        link = self.get_link_parent(self._steps(filename))
        if link is None:
            raise self._error(FsErrorCode.ENOENT, operation, filename)
        if not link.get_node().is_directory():
            raise self._error(FsErrorCode.ENOTDIR, operation, filename)
        return link

    def _resolved_parent_dir_or_fail(self, steps: Sequence[str], filename: str, operation: str) -> Link:
        parent = self.get_resolved_link(steps[:-1], operation)
        if parent is None:
            raise self._error(FsErrorCode.ENOENT, operation, filename)
        if not parent.get_node().is_directory():
            raise self._error(FsErrorCode.ENOTDIR, operation, filename)
        return parent

    def _lookup_no_follow(self, filename: str, operation: str) -> Link:
        """Resolve every step but the last, which is returned as-is."""
        steps = self._steps(filename)
        if not steps:
            return self.root
        parent = self.get_resolved_link(steps[:-1], operation)
        child = parent.get_child(steps[-1]) if parent is not None else None
        if child is None:
            raise self._error(FsErrorCode.ENOENT, operation, filename)
        return child

    def get_file_by_fd(self, fd: int) -> File | None:
        """Return the file open on *fd*, or None."""
        return self.fds.get(fd)

    def get_file_by_fd_or_fail(self, fd: int, operation: str = "get_file") -> File:
        """Return the file open on *fd*, raising ``EBADF`` when it is not open."""
        file = self.fds.get(fd)
        if file is None:
            raise self._error(FsErrorCode.EBADF, operation, str(fd))
        return file

    # -- descriptors -----------------------------------------------------------

    def _open_link(self, link: Link, flags: int, operation: str, *, check_access: bool = True) -> File:
        node = link.get_node()
        path = link.get_path()
        mode = access_mode(flags)
        if node.is_directory():
            if mode != O_RDONLY:
                raise self._error(FsErrorCode.EISDIR, operation, path)
        elif flags & O_DIRECTORY:
            raise self._error(FsErrorCode.ENOTDIR, operation, path)
        if check_access:
            if mode != O_WRONLY and not node.can_read(self.uid, self.gid):
                raise self._error(FsErrorCode.EACCES, operation, path)
            if mode in {O_WRONLY, O_RDWR} and not node.can_write(self.uid, self.gid):
                raise self._error(FsErrorCode.EACCES, operation, path)
        if len(self.fds) >= self.fds.max_files:
            raise self._error(FsErrorCode.EMFILE, operation, path)
        file = File(link, node, flags, self.fds.new_fd(operation))
        self.fds.register(file)
        if flags & O_TRUNC:
            file.truncate()
        self.logger.log(LogLevel.DEBUG, f"opened fd {file.fd}", source=SOURCE, operation=operation, paths=(path,))
        return file

    def _open_base(
        self,
        filename: str,
        flags: int,
        mode: int = DEFAULT_FILE_PERM,
        *,
        operation: str = "open",
    ) -> File:
        steps = self._steps(filename)
        follow = not flags & O_NOFOLLOW
        link = self.get_resolved_link(steps, operation) if follow else self.get_link(steps)
        if link is not None and flags & O_EXCL:
            raise self._error(FsErrorCode.EEXIST, operation, filename)
        created = False
        if link is None and flags & O_CREAT:
            parent = self._resolved_parent_dir_or_fail(steps, filename, operation)
            if parent.get_child(steps[-1]) is not None:
                # A dangling symlink occupies the name.
                raise self._error(FsErrorCode.ENOENT, operation, filename)
            link = self.create_link(parent, steps[-1], perm=mode)
            created = True
        if link is None:
            raise self._error(FsErrorCode.ENOENT, operation, filename)
        return self._open_link(link, flags, operation, check_access=not created)

    def open(self, path: str, flags: int | str = "r", mode: int = DEFAULT_FILE_PERM) -> int:
        """Open *path* and return a new descriptor.

        Args:
            path: File to open.
            flags: ``O_*`` combination or a string such as ``"r"``, ``"w+"``.
            mode: Permission bits for a file created by this call.

        """
        flags_num = flags_to_number(flags, operation="open")
        return self._open_base(path, flags_num, mode, operation="open").fd

    def close(self, fd: int) -> None:
        """Close *fd*; its number is the next one handed out."""
        file = self.get_file_by_fd_or_fail(fd, "close")
        self.fds.close(fd, "close")
        self.logger.log(
            LogLevel.DEBUG, f"closed fd {fd}", source=SOURCE, operation="close", paths=(file.link.get_path(),)
        )
        self._release_node_if_unlinked(file.node)

    def read(
        self,
        fd: int,
        buf: bytearray | memoryview,
        offset: int = 0,
        length: int | None = None,
        position: int | None = None,
    ) -> int:
        """Read from *fd* into ``buf[offset:]``; return the byte count."""
        file = self.get_file_by_fd_or_fail(fd, "read")
        if access_mode(file.flags) == O_WRONLY:
            raise self._error(FsErrorCode.EBADF, "read", str(fd))
        if file.node.is_directory():
            raise self._error(FsErrorCode.EISDIR, "read", file.link.get_path())
        return file.read(buf, offset, length, position)

    def write(
        self,
        fd: int,
        data: bytes | str,
        offset: int = 0,
        length: int | None = None,
        position: int | None = None,
    ) -> int:
        """Write ``data[offset:offset+length]`` to *fd*; return the byte count."""
        file = self.get_file_by_fd_or_fail(fd, "write")
        if access_mode(file.flags) == O_RDONLY:
            raise self._error(FsErrorCode.EBADF, "write", str(fd))
        payload = data.encode("utf-8") if isinstance(data, str) else data
        return file.write(payload, offset, length, position)

    # -- whole-file helpers ----------------------------------------------------

    def read_file(self, path_or_fd: str | int, encoding: str | None = None) -> bytes | str:
        """Return the whole content of a file (decoded if *encoding* is given).

        Raises:
            FsError: ``EISDIR`` for directories, ``EINVAL`` for a non-UTF-8
                encoding or content that does not decode.

        """
        operation = "read_file"
        if encoding is not None:
            check_utf8(encoding, operation)
        if isinstance(path_or_fd, int):
            file = self.get_file_by_fd_or_fail(path_or_fd, operation)
            owned = False
        else:
            file = self._open_base(path_or_fd, O_RDONLY, operation=operation)
            owned = True
        try:
            if file.node.is_directory():
                raise self._error(FsErrorCode.EISDIR, operation, file.link.get_path())
            data = file.get_buffer()
        finally:
            if owned:
                self.close(file.fd)
        if encoding is None:
            return data
        try:
            return data.decode("utf-8")
        except UnicodeDecodeError:
            raise self._error(FsErrorCode.EINVAL, operation, str(path_or_fd)) from None

    def write_file(
        self,
        path_or_fd: str | int,
        data: bytes | str,
        flags: int | str = "w",
        mode: int = DEFAULT_FILE_PERM,
    ) -> None:
        """Write *data* as the content of a file (created if needed)."""
        self._write_file(path_or_fd, data, flags, mode, operation="write_file")

    def append_file(
        self,
        path_or_fd: str | int,
        data: bytes | str,
        flags: int | str = "a",
        mode: int = DEFAULT_FILE_PERM,
    ) -> None:
        """Append *data* to a file (created if needed)."""
        self._write_file(path_or_fd, data, flags, mode, operation="append_file")

    def _write_file(
        self,
        path_or_fd: str | int,
        data: bytes | str,
        flags: int | str,
        mode: int,
        *,
        operation: str,
    ) -> None:
        flags_num = flags_to_number(flags, operation=operation)
        payload = data.encode("utf-8") if isinstance(data, str) else bytes(data)
        if isinstance(path_or_fd, int):
            file = self.get_file_by_fd_or_fail(path_or_fd, operation)
            if access_mode(file.flags) == O_RDONLY:
                raise self._error(FsErrorCode.EBADF, operation, str(path_or_fd))
            owned = False
        else:
            file = self._open_base(path_or_fd, flags_num, mode, operation=operation)
            owned = True
        try:
            position = None if flags_num & O_APPEND else 0
            file.write(payload, 0, len(payload), position)
        finally:
            if owned:
                self.close(file.fd)

    def copy_file(self, src: str, dest: str, flags: int = 0) -> None:
        """Copy the content of *src* to *dest*.

        Raises:
            FsError: ``EEXIST`` with ``COPYFILE_EXCL`` if *dest* exists,
                ``ENOSYS`` for ``COPYFILE_FICLONE_FORCE``.

        """
        operation = "copy_file"
        if flags & COPYFILE_FICLONE_FORCE:
            raise self._error(FsErrorCode.ENOSYS, operation, src, dest)
        source = self.get_resolved_link_or_fail(src, operation).get_node()
        if source.is_directory():
            raise self._error(FsErrorCode.EISDIR, operation, src, dest)
        dest_flags = O_WRONLY | O_CREAT | O_TRUNC
        if flags & COPYFILE_EXCL:
            dest_flags |= O_EXCL
        file = self._open_base(dest, dest_flags, source.perm, operation=operation)
        try:
            file.write(source.get_buffer(), position=0)
        finally:
            self.close(file.fd)

    # -- directories -----------------------------------------------------------

    def mkdir(self, path: str, mode: int = DEFAULT_DIR_PERM, *, recursive: bool = False) -> str | None:
        """Create a directory.

        Returns:
            With *recursive*, the first directory created (or None);
            otherwise None.

        Raises:
            FsError: ``EEXIST``, ``ENOENT`` for a missing parent,
                ``ENOTDIR`` when the parent is not a directory.

        """
        if recursive:
            return self.mkdirp(path, mode)
        operation = "mkdir"
        steps = self._steps(path)
        if not steps:
            raise self._error(FsErrorCode.EEXIST, operation, path)
        parent = self._resolved_parent_dir_or_fail(steps, path, operation)
        if parent.get_child(steps[-1]) is not None:
            raise self._error(FsErrorCode.EEXIST, operation, path)
        link = self.create_link(parent, steps[-1], is_directory=True, perm=mode)
        self._audit("created directory", operation, link.get_path())
        return None

    def mkdirp(self, path: str, mode: int = DEFAULT_DIR_PERM) -> str | None:
        """Create a directory and any missing ancestors.

        Returns:
            The first directory created, or None if all existed.

        """
        operation = "mkdirp"
        steps = self._steps(path)
        link = self.root
        first_created: str | None = None
        for i, step in enumerate(steps):
            child = link.get_child(step)
            if child is None:
                child = self.create_link(link, step, is_directory=True, perm=mode)
                first_created = first_created or child.get_path()
            elif child.get_node().is_symlink():
                resolved = self.get_resolved_link(steps[: i + 1], operation)
                if resolved is None:
                    raise self._error(FsErrorCode.ENOENT, operation, path)
                child = resolved
            if not child.get_node().is_directory():
                code = FsErrorCode.EEXIST if i == len(steps) - 1 else FsErrorCode.ENOTDIR
                raise self._error(code, operation, path)
            link = child
        if first_created is not None:
            self._audit("created directories", operation, first_created)
        return first_created

    def mkdtemp(self, prefix: str) -> str:
        """Create a uniquely named directory starting with *prefix*."""
        operation = "mkdtemp"
        for _ in range(MKDTEMP_RETRIES):
            filename = prefix + self.gen_rand_str()
            try:
                self.mkdir(filename)
            except FsError as err:
                if err.code is not FsErrorCode.EEXIST:
                    raise
                continue
            return filename
        raise self._error(FsErrorCode.EEXIST, operation, prefix)

    def rmdir(self, path: str, *, recursive: bool = False) -> None:
        """Remove a directory (non-empty ones only with *recursive*)."""
        operation = "rmdir"
        link = self._lookup_no_follow(path, operation)
        if not link.get_node().is_directory():
            raise self._error(FsErrorCode.ENOTDIR, operation, path)
        if link is self.root:
            raise self._error(FsErrorCode.EPERM, operation, path)
        if link.length and not recursive:
            raise self._error(FsErrorCode.ENOTEMPTY, operation, path)
        self._remove_tree(link)
        self._audit("removed directory", operation, path)

    def rm(self, path: str, *, force: bool = False, recursive: bool = False) -> None:
        """Remove a file or (with *recursive*) a directory tree."""
        operation = "rm"
        try:
            link = self._lookup_no_follow(path, operation)
        except FsError as err:
            if force and err.code is FsErrorCode.ENOENT:
                return
            raise
        if link is self.root:
            raise self._error(FsErrorCode.EPERM, operation, path)
        if link.get_node().is_directory():
            if not recursive:
                raise self._error(FsErrorCode.ERR_FS_EISDIR, operation, path)
            self._remove_tree(link)
        else:
            self._unlink(link)
        self._audit("removed", operation, path)

    def readdir(self, path: str) -> list[str]:
        """Return the sorted entry names of a directory."""
        return [entry.name for entry in self._dir_entries(path, "readdir")]

    def scandir(self, path: str) -> list[Dirent]:
        """Return the sorted entries of a directory with their types."""
        return self._dir_entries(path, "scandir")

    def _dir_entries(self, path: str, operation: str) -> list[Dirent]:
        link = self.get_resolved_link_or_fail(path, operation)
        if not link.get_node().is_directory():
            raise self._error(FsErrorCode.ENOTDIR, operation, path)
        return sorted((Dirent.build(child) for _, child in link.iter_children()), key=lambda d: d.name)

    # -- names -----------------------------------------------------------------

    def unlink(self, path: str) -> None:
        """Remove a name; the node goes when its last name (and fd) does."""
        operation = "unlink"
        link = self._lookup_no_follow(path, operation)
        if link.get_node().is_directory():
            raise self._error(FsErrorCode.EISDIR, operation, path)
        self._unlink(link)
        self._audit("unlinked", operation, path)

    def link(self, existing_path: str, new_path: str) -> None:
        """Give the node at *existing_path* a second name.

        Raises:
            FsError: ``EPERM`` for directories, ``EEXIST`` if *new_path*
                is taken, ``ENOENT`` for missing paths.

        """
        operation = "link"
        link = self._lookup_no_follow(existing_path, operation)
        node = link.get_node()
        if node.is_directory():
            raise self._error(FsErrorCode.EPERM, operation, existing_path, new_path)
        steps = self._steps(new_path)
        parent = self._resolved_parent_dir_or_fail(steps, new_path, operation)
        if parent.get_child(steps[-1]) is not None:
            raise self._error(FsErrorCode.EEXIST, operation, existing_path, new_path)
        parent.create_child(steps[-1], node)
        node.inc_nlink()
        self._audit("hard-linked", operation, existing_path, new_path)

    def symlink(self, target: str, path: str) -> None:
        """Create a symbolic link at *path* pointing at *target*.

        The target does not have to exist.
        """
        operation = "symlink"
        steps = self._steps(path)
        if not steps:
            raise self._error(FsErrorCode.EEXIST, operation, target, path)
        parent = self._resolved_parent_dir_or_fail(steps, path, operation)
        if parent.get_child(steps[-1]) is not None:
            raise self._error(FsErrorCode.EEXIST, operation, target, path)
        link = self.create_link(parent, steps[-1], perm=DEFAULT_DIR_PERM)
        link.get_node().make_symlink(target)
        self._audit("symlinked", operation, target, path)

    def readlink(self, path: str) -> str:
        """Return the target stored in the symbolic link at *path*."""
        operation = "readlink"
        node = self._lookup_no_follow(path, operation).get_node()
        if not node.is_symlink():
            raise self._error(FsErrorCode.EINVAL, operation, path)
        return node.symlink

    def realpath(self, path: str) -> str:
        """Return the absolute path *path* resolves to, symlinks followed."""
        return self.get_resolved_link_or_fail(path, "realpath").get_path()

    def rename(self, old_path: str, new_path: str) -> None:
        """Move or rename an entry, replacing a compatible destination.

        Raises:
            FsError: ``ENOENT``, ``ENOTDIR``/``EISDIR`` for kind mismatches,
                ``ENOTEMPTY`` for a non-empty destination directory,
                ``EINVAL`` when moving a directory into itself, ``EPERM``
                for the root.

        """
        operation = "rename"
        link = self._lookup_no_follow(old_path, operation)
        steps = self._steps(new_path)
        if link is self.root or not steps:
            raise self._error(FsErrorCode.EPERM, operation, old_path, new_path)
        new_parent = self._resolved_parent_dir_or_fail(steps, new_path, operation)
        node = link.get_node()
        if node.is_directory():
            ancestor: Link | None = new_parent
            while ancestor is not None:
                if ancestor is link:
                    raise self._error(FsErrorCode.EINVAL, operation, old_path, new_path)
                ancestor = ancestor.get_parent()
        name = steps[-1]
        existing = new_parent.get_child(name)
        if existing is link:
            return
        if existing is not None:
            existing_node = existing.get_node()
            if existing_node is node:
                return
            if existing_node.is_directory():
                if not node.is_directory():
                    raise self._error(FsErrorCode.EISDIR, operation, old_path, new_path)
                if existing.length:
                    raise self._error(FsErrorCode.ENOTEMPTY, operation, old_path, new_path)
            elif node.is_directory():
                raise self._error(FsErrorCode.ENOTDIR, operation, old_path, new_path)
            self._unlink(existing)
        self.delete_link(link)
        new_parent.set_child(name, link)
        self._audit("renamed", operation, old_path, new_path)

    # -- metadata --------------------------------------------------------------

    def exists(self, path: str) -> bool:
        """Return whether *path* resolves to anything (never raises)."""
        try:
            return self.get_resolved_link(path, "exists") is not None
        except FsError:
            return False

    def access(self, path: str, mode: int = F_OK) -> None:
        """Check that *path* exists and grants *mode* (``R_OK|W_OK|X_OK``).

        Raises:
            FsError: ``ENOENT`` if missing, ``EACCES`` if not permitted.

        """
        operation = "access"
        node = self.get_resolved_link_or_fail(path, operation).get_node()
        checks = (
            (R_OK, node.can_read),
            (W_OK, node.can_write),
            (X_OK, node.can_execute),
        )
        for bit, allowed in checks:
            if mode & bit and not allowed(self.uid, self.gid):
                raise self._error(FsErrorCode.EACCES, operation, path)

    def stat(self, path: str) -> Stats:
        """Return metadata for *path*, following symlinks."""
        return Stats.build(self.get_resolved_link_or_fail(path, "stat").get_node())

    def lstat(self, path: str) -> Stats:
        """Return metadata for *path* without following a final symlink."""
        return Stats.build(self._lookup_no_follow(path, "lstat").get_node())

    def fstat(self, fd: int) -> Stats:
        """Return metadata for the file open on *fd*."""
        return self.get_file_by_fd_or_fail(fd, "fstat").stats()

    def truncate(self, path: str, length: int = 0) -> None:
        """Resize the file at *path*."""
        operation = "truncate"
        node = self.get_resolved_link_or_fail(path, operation).get_node()
        if node.is_directory():
            raise self._error(FsErrorCode.EISDIR, operation, path)
        if length < 0:
            raise self._error(FsErrorCode.EINVAL, operation, path)
        node.truncate(length)

    def ftruncate(self, fd: int, length: int = 0) -> None:
        """Resize the file open on *fd*."""
        operation = "ftruncate"
        file = self.get_file_by_fd_or_fail(fd, operation)
        if file.node.is_directory():
            raise self._error(FsErrorCode.EISDIR, operation, str(fd))
        if length < 0:
            raise self._error(FsErrorCode.EINVAL, operation, str(fd))
        file.truncate(length)

    def chmod(self, path: str, perm: int) -> None:
        """Change the permission bits of *path* (symlinks followed)."""
        self.get_resolved_link_or_fail(path, "chmod").get_node().chmod(perm)

    def lchmod(self, path: str, perm: int) -> None:
        """Change the permission bits of *path* itself."""
        self._lookup_no_follow(path, "lchmod").get_node().chmod(perm)

    def fchmod(self, fd: int, perm: int) -> None:
        """Change the permission bits of the file open on *fd*."""
        self.get_file_by_fd_or_fail(fd, "fchmod").chmod(perm)

    def chown(self, path: str, uid: int, gid: int) -> None:
        """Change the owner of *path* (symlinks followed)."""
        self.get_resolved_link_or_fail(path, "chown").get_node().chown(uid, gid)

    def lchown(self, path: str, uid: int, gid: int) -> None:
        """Change the owner of *path* itself."""
        self._lookup_no_follow(path, "lchown").get_node().chown(uid, gid)

    def fchown(self, fd: int, uid: int, gid: int) -> None:
        """Change the owner of the file open on *fd*."""
        self.get_file_by_fd_or_fail(fd, "fchown").chown(uid, gid)

    def utimes(self, path: str, atime: float, mtime: float) -> None:
        """Set the access and modification times of *path*."""
        node = self.get_resolved_link_or_fail(path, "utimes").get_node()
        node.atime = atime
        node.mtime = mtime

    def futimes(self, fd: int, atime: float, mtime: float) -> None:
        """Set the access and modification times of the file open on *fd*."""
        node = self.get_file_by_fd_or_fail(fd, "futimes").node
        node.atime = atime
        node.mtime = mtime

    # -- snapshots -------------------------------------------------------------

    def to_json(
        self,
        paths: Sequence[str] | None = None,
        json: Snapshot | None = None,
        *,
        is_relative: bool = False,
    ) -> Snapshot:
        """Export file contents as a flat ``path -> text`` mapping.

        Empty directories appear with a ``None`` value so they survive a
        round trip.  Symlinks are not exported.

        Args:
            paths: Subtrees to export (the whole volume if None); missing
                paths are skipped.
            json: Mapping to add entries to (a new dict if None).
            is_relative: Key entries relative to each exported subtree.

        Raises:
            FsError: ``EINVAL`` for file content that is not UTF-8.

        """
        links: list[Link] = []
        if paths is None:
            links.append(self.root)
        else:
            for path in paths:
                link = self.get_resolved_link(path, "to_json")
                if link is not None:
                    links.append(link)
        snapshot: Snapshot = {} if json is None else json
        for link in links:
            base: str | None = None
            if is_relative:
                holder = link if link.get_node().is_directory() else link.get_parent()
                base = (holder or self.root).get_path()
            self._to_json(link, snapshot, base)
        return snapshot

    def _to_json(self, link: Link, snapshot: Snapshot, base: str | None) -> None:
        if link.get_node().is_file():
            entries = [(link.name, link)]
            dir_link = link.get_parent() or self.root
        else:
            entries = list(link.iter_children())
            dir_link = link
        is_empty = True
        for _, child in entries:
            node = child.get_node()
            if node.is_file():
                is_empty = False
                filename = child.get_path()
                if base is not None:
                    filename = relative(base, filename)
                try:
                    snapshot[filename] = node.get_string()
                except UnicodeDecodeError:
                    raise self._error(FsErrorCode.EINVAL, "to_json", child.get_path()) from None
            elif node.is_directory():
                is_empty = False
                self._to_json(child, snapshot, base)
        dir_path = dir_link.get_path()
        if base is not None:
            dir_path = relative(base, dir_path)
        if is_empty and dir_path not in {"", "/"}:
            snapshot[dir_path] = None

    def from_json(self, json: Mapping[str, str | bytes | None], cwd: str | None = None) -> None:
        """Materialise a flat snapshot: ``None`` values become directories.

        Relative keys are resolved against *cwd* (default: the volume's
        working directory).

        Raises:
            FsError: ``EINVAL`` for values that are neither text nor None.

        """
        operation = "from_json"
        base = cwd if cwd is not None else self._cwd()
        for filename, data in json.items():
            full_path = resolve([filename], base)
            if data is None:
                self.mkdirp(full_path)
            elif isinstance(data, str | bytes):
                self.mkdirp(dirname(full_path))
                self.write_file(full_path, data)
            else:
                raise self._error(FsErrorCode.EINVAL, operation, filename)
        self._audit(f"imported {len(json)} entries", operation, base)

    def from_nested_json(self, json: Mapping[str, Any], cwd: str | None = None) -> None:
        """Materialise a nested snapshot (mappings are directories)."""
        self.from_json(flatten_json(json), cwd)

    def mount(self, mount_point: str, json: Mapping[str, str | bytes | None]) -> None:
        """Import a flat snapshot with keys relative to *mount_point*."""
        self.from_json(json, cwd=mount_point)

    def reset(self) -> None:
        """Drop every file, link and descriptor; start over with an empty root."""
        self.fds.reset()
        self.links.reset()
        self.nodes.reset()
        self.root = self._create_root()
        self._audit("volume reset", "reset")

    def __repr__(self) -> str:
        """Return a debugging representation."""
        return f"Volume(nodes={len(self.nodes)}, links={len(self.links)}, open_files={self.open_files})"
