"""Tests for snapshots — exporting and importing a volume as JSON.

A snapshot is a flat mapping from file path to text content, with
``None`` marking empty directories.  It is how volumes are seeded for
tests, mounted under a directory and saved to disk.
"""

import json
from pathlib import Path

import pytest

from py_memfs.errors import FsError
from py_memfs.persistence import dump_volume, load_volume
from py_memfs.volume import Volume


def _volume() -> Volume:
    """Create a volume anchored at the root."""
    return Volume(cwd="/")


def _sample() -> Volume:
    """Create a volume with nested dirs, an empty dir and UTF-8 text."""
    vol = _volume()
    vol.mkdirp("/docs/drafts")
    vol.mkdir("/empty")
    vol.write_file("/docs/readme.md", "# Titel — straße")
    vol.write_file("/docs/drafts/one.txt", "1")
    vol.write_file("/top.txt", "top")
    return vol


class TestToJson:
    """Verify exporting a volume."""

    def test_empty_volume(self) -> None:
        """An empty volume exports nothing."""
        assert _volume().to_json() == {}

    def test_full_export(self) -> None:
        """Files map to content and empty directories to None."""
        assert _sample().to_json() == {
            "/docs/readme.md": "# Titel — straße",
            "/docs/drafts/one.txt": "1",
            "/empty": None,
            "/top.txt": "top",
        }

    def test_export_subtree(self) -> None:
        """Only the requested paths are exported; missing ones are skipped."""
        snapshot = _sample().to_json(["/docs/drafts", "/nope"])
        assert snapshot == {"/docs/drafts/one.txt": "1"}

    def test_export_relative(self) -> None:
        """Relative export keys entries from the exported directory."""
        snapshot = _sample().to_json(["/docs"], is_relative=True)
        assert snapshot == {"readme.md": "# Titel — straße", "drafts/one.txt": "1"}

    def test_export_single_file_relative(self) -> None:
        """A file is keyed relative to its own directory."""
        snapshot = _sample().to_json(["/docs/readme.md"], is_relative=True)
        assert snapshot == {"readme.md": "# Titel — straße"}

    def test_export_into_existing_mapping(self) -> None:
        """Entries are added to a supplied mapping."""
        existing: dict[str, str | None] = {"/other": "kept"}
        result = _sample().to_json(["/top.txt"], existing)
        assert result is existing
        assert result == {"/other": "kept", "/top.txt": "top"}

    def test_symlinks_are_skipped(self) -> None:
        """Symlinks are not part of the snapshot."""
        vol = _volume()
        vol.mkdir("/d")
        vol.symlink("/x", "/d/l")
        assert vol.to_json() == {"/d": None}

    def test_binary_content_rejected(self) -> None:
        """Content that is not UTF-8 cannot be exported as text."""
        vol = _volume()
        vol.write_file("/bin", b"\xff")
        with pytest.raises(FsError, match="EINVAL@to_json"):
            vol.to_json()


class TestFromJson:
    """Verify importing snapshots."""

    def test_round_trip(self) -> None:
        """Export then import reproduces an equivalent tree."""
        original = _sample()
        copy = _volume()
        copy.from_json(original.to_json())
        assert copy.to_json() == original.to_json()
        assert copy.readdir("/empty") == []
        assert copy.read_file("/docs/readme.md", "utf8") == "# Titel — straße"

    def test_relative_keys_use_cwd(self) -> None:
        """Relative keys are resolved against the given cwd."""
        vol = _volume()
        vol.from_json({"a.txt": "A", "sub/b.txt": "B"}, cwd="/base")
        assert vol.read_file("/base/a.txt") == b"A"
        assert vol.read_file("/base/sub/b.txt") == b"B"

    def test_relative_keys_default_to_volume_cwd(self) -> None:
        """Without a cwd argument the volume's own cwd is used."""
        vol = Volume(cwd="/home")
        vol.from_json({"f": "x"})
        assert vol.exists("/home/f")

    def test_bytes_values(self) -> None:
        """Bytes values become file content as-is."""
        vol = _volume()
        vol.from_json({"/b": b"\x00\x01"})
        assert vol.read_file("/b") == b"\x00\x01"

    def test_invalid_value(self) -> None:
        """Values that are neither text nor None are EINVAL."""
        vol = _volume()
        with pytest.raises(FsError, match="EINVAL@from_json"):
            vol.from_json({"/n": 5})  # pyright: ignore[reportArgumentType]

    def test_nested_json(self) -> None:
        """Nested mappings become directories."""
        vol = _volume()
        vol.from_nested_json({"a": {"b.txt": "hi", "empty": {}}}, cwd="/root")
        assert vol.read_file("/root/a/b.txt") == b"hi"
        assert vol.readdir("/root/a/empty") == []

    def test_mount(self) -> None:
        """mount imports a snapshot below a mount point."""
        vol = _volume()
        vol.mount("/mnt/data", {"x.txt": "X", "/abs.txt": "A"})
        assert vol.read_file("/mnt/data/x.txt") == b"X"
        assert vol.read_file("/abs.txt") == b"A"


class TestPersistence:
    """Verify saving and loading snapshots on disk."""

    def test_round_trip_through_file(self, tmp_path: Path) -> None:
        """A dumped volume loads back with the same contents."""
        path = tmp_path / "volume.json"
        original = _sample()
        dump_volume(original, path)
        loaded = load_volume(path)
        assert loaded.to_json() == original.to_json()

    def test_dump_is_plain_json(self, tmp_path: Path) -> None:
        """The file on disk is the flat snapshot."""
        path = tmp_path / "volume.json"
        vol = _volume()
        vol.write_file("/a", "b")
        dump_volume(vol, path)
        assert json.loads(path.read_text()) == {"/a": "b"}

    def test_load_passes_options(self, tmp_path: Path) -> None:
        """Keyword options configure the new volume."""
        path = tmp_path / "volume.json"
        path.write_text("{}")
        vol = load_volume(path, uid=7, max_files=3)
        expected_uid = 7
        assert vol.uid == expected_uid
        assert vol.max_files == 3  # noqa: PLR2004

    def test_load_missing_file(self, tmp_path: Path) -> None:
        """Loading a missing file raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            load_volume(tmp_path / "missing.json")

    def test_load_non_snapshot(self, tmp_path: Path) -> None:
        """A JSON document that is not an object is EINVAL."""
        path = tmp_path / "list.json"
        path.write_text("[1, 2]")
        with pytest.raises(FsError, match="EINVAL@load_volume"):
            load_volume(path)
