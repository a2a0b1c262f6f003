"""In-memory filesystem — inodes, links, descriptors and snapshots.

Re-exports public symbols so callers can write::

    from py_memfs import Volume, FsError
"""

from py_memfs.env import Environment, get_process_env, set_process_env
from py_memfs.errors import AliasingError, FsError, FsErrorCode
from py_memfs.file import FdTable, File
from py_memfs.link import Link, LinkArena
from py_memfs.logging import LogEntry, Logger, LogLevel, system_log
from py_memfs.node import Node, NodeStore
from py_memfs.persistence import dump_volume, load_volume
from py_memfs.stats import Dirent, Stats
from py_memfs.volume import MAX_SYMLINK_DEPTH, Volume

__all__ = [
    "MAX_SYMLINK_DEPTH",
    "AliasingError",
    "Dirent",
    "Environment",
    "FdTable",
    "File",
    "FsError",
    "FsErrorCode",
    "Link",
    "LinkArena",
    "LogEntry",
    "LogLevel",
    "Logger",
    "Node",
    "NodeStore",
    "Stats",
    "Volume",
    "dump_volume",
    "get_process_env",
    "load_volume",
    "set_process_env",
    "system_log",
]
