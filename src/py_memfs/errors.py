"""Errors raised by the volume.

Two very different kinds of failure exist:

- **FsError** — a recoverable, caller-visible filesystem condition
  (missing path, wrong kind of node, bad descriptor …).  It carries the
  POSIX-style code, the name of the operation that failed and the
  path(s) involved, so a failure can be diagnosed without a traceback.
- **AliasingError** — a breach of the single-mutator rule (one object
  mutated while a mutation of the same object is still in progress).
  That is a bug in the calling code, never a filesystem condition, so
  it derives from ``RuntimeError`` and is never translated into an
  ``FsError``.
"""

from __future__ import annotations

import errno as _errno
from collections.abc import Iterable
from enum import StrEnum


class FsErrorCode(StrEnum):
    """Error codes surfaced by volume operations."""

    ENOENT = "ENOENT"
    EBADF = "EBADF"
    EINVAL = "EINVAL"
    EPERM = "EPERM"
    EPROTO = "EPROTO"
    EEXIST = "EEXIST"
    ENOTDIR = "ENOTDIR"
    EMFILE = "EMFILE"
    EACCES = "EACCES"
    EISDIR = "EISDIR"
    ENOTEMPTY = "ENOTEMPTY"
    ENOSYS = "ENOSYS"
    ELOOP = "ELOOP"
    ERR_FS_EISDIR = "ERR_FS_EISDIR"


_DESCRIPTIONS: dict[FsErrorCode, str] = {
    FsErrorCode.ENOENT: "no such file or directory",
    FsErrorCode.EBADF: "bad file descriptor",
    FsErrorCode.EINVAL: "invalid argument",
    FsErrorCode.EPERM: "operation not permitted",
    FsErrorCode.EPROTO: "protocol error",
    FsErrorCode.EEXIST: "file already exists",
    FsErrorCode.ENOTDIR: "not a directory",
    FsErrorCode.EMFILE: "too many open files",
    FsErrorCode.EACCES: "permission denied",
    FsErrorCode.EISDIR: "illegal operation on a directory",
    FsErrorCode.ENOTEMPTY: "directory not empty",
    FsErrorCode.ENOSYS: "function not implemented",
    FsErrorCode.ELOOP: "too many symbolic links encountered",
    FsErrorCode.ERR_FS_EISDIR: "illegal operation on a directory",
}


class FsError(Exception):
    """Raise when a filesystem operation fails.

    ``str(err)`` is ``"<CODE>@<operation>: <path>, <path>"``.
    """

    def __init__(
        self,
        code: FsErrorCode,
        operation: str | None = None,
        paths: Iterable[str] | None = None,
    ) -> None:
        """Create an error for *code* raised by *operation* on *paths*."""
        self.code = code
        self.operation = operation or "unknown"
        self.paths: list[str] = list(paths) if paths is not None else []
        super().__init__(f"{self.code}@{self.operation}: {', '.join(self.paths)}")

    @property
    def description(self) -> str:
        """Return the human-readable meaning of the code."""
        return _DESCRIPTIONS[self.code]

    @property
    def errno(self) -> int | None:
        """Return the numeric POSIX errno, or None for non-POSIX codes."""
        name = "EISDIR" if self.code is FsErrorCode.ERR_FS_EISDIR else str(self.code)
        return getattr(_errno, name, None)


class AliasingError(RuntimeError):
    """Raise when an object is mutated re-entrantly.

    Signals a contract breach in the caller, not a filesystem failure.
    """
