"""Volume persistence — save and load snapshots to/from disk.

A volume lives only in memory.  To keep its contents across runs we
write its flat snapshot (``Volume.to_json``) to a **JSON** file and
rebuild a fresh volume from it later:

    - ``dump_volume(vol, path)`` — save every file and empty directory.
    - ``load_volume(path)`` — build a new volume from a saved snapshot.

Only what the snapshot format carries survives: paths, UTF-8 contents
and empty directories.  Metadata (modes, owners, times), hard-link
identity and symlinks are not saved.
"""

import json
from pathlib import Path
from typing import Any

from py_memfs.errors import FsError, FsErrorCode
from py_memfs.paths import ROOT
from py_memfs.volume import Volume


def dump_volume(vol: Volume, path: Path) -> None:
    """Save a volume's snapshot to a JSON file.

    Args:
        vol: The volume to save.
        path: The file path to write to.

    Raises:
        FsError: ``EINVAL`` if a file's content is not UTF-8 text.

    """
    data = vol.to_json()
    path.write_text(json.dumps(data, indent=2, sort_keys=True))


def load_volume(path: Path, **options: Any) -> Volume:
    """Load a volume from a JSON snapshot file.

    Args:
        path: The file path to read from.
        **options: Keyword arguments for the new ``Volume``.

    Returns:
        A new volume holding the snapshot's files and directories.

    Raises:
        FileNotFoundError: If the path does not exist.
        FsError: ``EINVAL`` if the file does not hold a snapshot object.

    """
    data = json.loads(path.read_text())
    if not isinstance(data, dict):
        raise FsError(FsErrorCode.EINVAL, "load_volume", [str(path)])
    vol = Volume(**options)
    vol.from_json(data, cwd=ROOT)  # pyright: ignore[reportUnknownArgumentType]
    return vol
