"""Tests for Stats and Dirent — read-only views of a node.

Both capture the node's mode when they are made and answer the usual
``is_*`` questions from its file-type bits.
"""

import dataclasses

import pytest

from py_memfs.constants import S_IFBLK, S_IFCHR, S_IFIFO, S_IFSOCK
from py_memfs.node import Node
from py_memfs.stats import Dirent, Stats
from py_memfs.volume import Volume


class TestStats:
    """Verify the metadata snapshot."""

    def test_build_copies_metadata(self) -> None:
        """Every field mirrors the node at build time."""
        node = Node(9, 0o640)
        node.set_string("x" * 1025)
        node.chown(3, 4)
        stats = Stats.build(node)
        expected_ino = 9
        expected_size = 1025
        expected_blocks = 3
        assert stats.ino == expected_ino
        assert stats.size == expected_size
        assert stats.blocks == expected_blocks
        assert stats.blksize == 4096  # noqa: PLR2004
        assert (stats.uid, stats.gid) == (3, 4)
        assert stats.birthtime == node.ctime

    def test_snapshot_is_frozen(self) -> None:
        """Stats cannot be modified after the fact."""
        stats = Stats.build(Node(0))
        with pytest.raises(dataclasses.FrozenInstanceError):
            stats.size = 10  # type: ignore[misc]

    def test_later_changes_not_reflected(self) -> None:
        """A snapshot keeps the values it was built with."""
        node = Node(0)
        stats = Stats.build(node)
        node.set_string("grown")
        assert stats.size == 0

    def test_millisecond_times(self) -> None:
        """The *_ms properties scale seconds to milliseconds."""
        node = Node(0)
        node.atime = 1.5
        node.mtime = 2.25
        stats = Stats.build(node)
        assert stats.atime_ms == 1500  # noqa: PLR2004
        assert stats.mtime_ms == 2250  # noqa: PLR2004
        assert stats.ctime_ms == int(node.ctime * 1000)

    def test_type_predicates(self) -> None:
        """Exactly one predicate holds for each file type."""
        for file_type, name in [
            (S_IFBLK, "is_block_device"),
            (S_IFCHR, "is_character_device"),
            (S_IFIFO, "is_fifo"),
            (S_IFSOCK, "is_socket"),
        ]:
            node = Node(0)
            node.set_mode_property(file_type)
            stats = Stats.build(node)
            assert getattr(stats, name)()
            assert not stats.is_file()
            assert not stats.is_directory()


class TestDirent:
    """Verify directory entries."""

    def test_dirent_from_link(self) -> None:
        """A dirent carries the entry name and node mode."""
        vol = Volume(cwd="/")
        vol.mkdir("/sub")
        link = vol.get_link(["sub"])
        assert link is not None
        dirent = Dirent.build(link)
        assert dirent.name == "sub"
        assert dirent.is_directory()
        assert not dirent.is_symbolic_link()
