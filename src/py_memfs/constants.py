"""POSIX numeric constants — file types, permission bits, open flags.

Callers that already speak POSIX pass these numbers straight through,
so every value here matches the Linux headers bit for bit:

- ``S_IF*`` — the file-type field of ``st_mode`` (masked by ``S_IFMT``).
- ``S_I[RWX]{USR,GRP,OTH}`` — the nine permission bits.
- ``O_*`` — flags accepted by ``open(2)``.
- ``F_OK`` / ``R_OK`` / ``W_OK`` / ``X_OK`` — ``access(2)`` modes.

Node.js-style string flags (``"r"``, ``"w+"``, ``"ax"`` …) are also
accepted by ``Volume.open``; ``flags_to_number`` turns them into ``O_*``
combinations.
"""

from enum import StrEnum

from py_memfs.errors import FsError, FsErrorCode

# -- open(2) flags -------------------------------------------------------------

O_RDONLY = 0
O_WRONLY = 1
O_RDWR = 2
O_ACCMODE = 3
O_CREAT = 0o100
O_EXCL = 0o200
O_NOCTTY = 0o400
O_TRUNC = 0o1000
O_APPEND = 0o2000
O_NONBLOCK = 0o4000
O_DIRECT = 0o40000
O_DIRECTORY = 0o200000
O_NOFOLLOW = 0o400000
O_NOATIME = 0o1000000
O_SYNC = 0o4010000

# -- st_mode file types --------------------------------------------------------

S_IFMT = 0o170000
S_IFSOCK = 0o140000
S_IFLNK = 0o120000
S_IFREG = 0o100000
S_IFBLK = 0o60000
S_IFDIR = 0o40000
S_IFCHR = 0o20000
S_IFIFO = 0o10000

# -- st_mode permission bits ---------------------------------------------------

S_ISUID = 0o4000
S_ISGID = 0o2000
S_ISVTX = 0o1000

S_IRWXU = 0o700
S_IRUSR = 0o400
S_IWUSR = 0o200
S_IXUSR = 0o100

S_IRWXG = 0o70
S_IRGRP = 0o40
S_IWGRP = 0o20
S_IXGRP = 0o10

S_IRWXO = 0o7
S_IROTH = 0o4
S_IWOTH = 0o2
S_IXOTH = 0o1

# -- access(2) modes -----------------------------------------------------------

F_OK = 0
R_OK = 4
W_OK = 2
X_OK = 1

# -- copyfile flags ------------------------------------------------------------

COPYFILE_EXCL = 1
COPYFILE_FICLONE = 2
COPYFILE_FICLONE_FORCE = 4

DEFAULT_FILE_PERM = 0o666
DEFAULT_DIR_PERM = 0o777


class OpenFlag(StrEnum):
    """String spellings of common open flag combinations.

    - ``r`` / ``r+`` — open existing file for reading (and writing).
    - ``w`` / ``w+`` — create or truncate for writing (and reading).
    - ``a`` / ``a+`` — create for appending (and reading).
    - An ``x`` makes creation exclusive; ``s`` requests synchronous I/O.
    """

    READ = "r"
    READ_WRITE = "r+"
    READ_SYNC = "rs"
    READ_WRITE_SYNC = "rs+"
    WRITE = "w"
    WRITE_EXCL = "wx"
    WRITE_READ = "w+"
    WRITE_READ_EXCL = "wx+"
    APPEND = "a"
    APPEND_EXCL = "ax"
    APPEND_READ = "a+"
    APPEND_READ_EXCL = "ax+"


_FLAG_NUMBERS: dict[OpenFlag, int] = {
    OpenFlag.READ: O_RDONLY,
    OpenFlag.READ_WRITE: O_RDWR,
    OpenFlag.READ_SYNC: O_RDONLY | O_SYNC,
    OpenFlag.READ_WRITE_SYNC: O_RDWR | O_SYNC,
    OpenFlag.WRITE: O_TRUNC | O_CREAT | O_WRONLY,
    OpenFlag.WRITE_EXCL: O_TRUNC | O_CREAT | O_WRONLY | O_EXCL,
    OpenFlag.WRITE_READ: O_TRUNC | O_CREAT | O_RDWR,
    OpenFlag.WRITE_READ_EXCL: O_TRUNC | O_CREAT | O_RDWR | O_EXCL,
    OpenFlag.APPEND: O_APPEND | O_CREAT | O_WRONLY,
    OpenFlag.APPEND_EXCL: O_APPEND | O_CREAT | O_WRONLY | O_EXCL,
    OpenFlag.APPEND_READ: O_APPEND | O_CREAT | O_RDWR,
    OpenFlag.APPEND_READ_EXCL: O_APPEND | O_CREAT | O_RDWR | O_EXCL,
}

# Legacy aliases accepted alongside the canonical spellings.
_FLAG_ALIASES: dict[str, OpenFlag] = {
    "sr": OpenFlag.READ_SYNC,
    "sr+": OpenFlag.READ_WRITE_SYNC,
    "xw": OpenFlag.WRITE_EXCL,
    "xw+": OpenFlag.WRITE_READ_EXCL,
    "xa": OpenFlag.APPEND_EXCL,
    "xa+": OpenFlag.APPEND_READ_EXCL,
}


def flags_to_number(flags: int | str, *, operation: str = "open") -> int:
    """Convert open flags to their ``O_*`` integer form.

    Args:
        flags: An ``O_*`` combination or one of the ``OpenFlag`` strings.
        operation: Name of the calling operation, used in errors.

    Raises:
        FsError: ``EINVAL`` for an unknown flag string.

    """
    if isinstance(flags, int):
        return flags
    key = _FLAG_ALIASES.get(flags, flags)
    try:
        return _FLAG_NUMBERS[OpenFlag(key)]
    except ValueError:
        raise FsError(FsErrorCode.EINVAL, operation, [flags]) from None


def access_mode(flags: int) -> int:
    """Return the O_RDONLY / O_WRONLY / O_RDWR part of *flags*."""
    return flags & O_ACCMODE
