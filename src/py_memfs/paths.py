"""Path resolution — pure string functions over POSIX-style paths.

Nothing in this module touches a volume; it only rewrites strings:

- ``normalize`` — collapse ``.``, ``..`` and repeated slashes.
- ``resolve`` — fold fragments into one absolute path against a cwd.
- ``to_steps`` — split an absolute path into its name segments.
- ``relative`` — the path that leads from one location to another.

Examples::

    normalize("/foo/bar/.././baz")        → "/foo/baz"
    resolve(["/foo", "/bar", "baz"])      → "/bar/baz"
    to_steps("/usr/bin/python")           → ["usr", "bin", "python"]
    relative("/data/a/test", "/data/b")   → "../../b"

Popping ``..`` past the root is a no-op (``/..`` is ``/``).  In a
relative path, leading ``..`` segments that have nothing to pop are
kept so a later ``resolve`` can apply them to the cwd.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from py_memfs.env import process_cwd
from py_memfs.errors import FsError, FsErrorCode

SEP = "/"
ROOT = "/"


def normalize(path: str) -> str:
    """Return *path* with ``.``/``..`` and empty segments collapsed.

    ``"."`` and ``".."`` are returned unchanged; a relative path that
    collapses to nothing becomes ``"."``; an absolute one becomes ``"/"``.
    """
    if path in {".", ".."}:
        return path
    is_absolute = path.startswith(SEP)
    parts: list[str] = []
    for step in path.split(SEP):
        if step in {"", "."}:
            continue
        if step == "..":
            if parts and parts[-1] != "..":
                parts.pop()
            elif not is_absolute:
                parts.append(step)
            continue
        parts.append(step)
    joined = SEP.join(parts)
    if is_absolute:
        return SEP + joined
    return joined or "."


def is_absolute(path: str) -> bool:
    """Return whether *path* starts at the root."""
    return path.startswith(SEP)


def _check_cwd(cwd: str) -> str:
    if not is_absolute(cwd):
        raise FsError(FsErrorCode.EINVAL, "resolve", [cwd])
    return cwd


def resolve(fragments: Sequence[str], cwd: str | None = None) -> str:
    """Fold *fragments* right-to-left into one absolute, normalized path.

    Folding stops at the first absolute fragment met from the right.
    If none is absolute, the result is anchored at *cwd* (or the
    process default working directory).

    Raises:
        FsError: ``EINVAL`` if the working directory is not absolute.

    """
    if cwd is not None:
        _check_cwd(cwd)
    if not fragments:
        return normalize(_check_cwd(cwd if cwd is not None else process_cwd()))
    path = ""
    for part in reversed(fragments):
        normalized = normalize(part)
        path = f"{normalized}{SEP}{path}"
        if is_absolute(normalized):
            break
    if not is_absolute(path):
        base = cwd if cwd is not None else _check_cwd(process_cwd())
        path = f"{base}{SEP}{path}"
    return normalize(path)


def to_steps(filename: str, base: str | None = None) -> list[str]:
    """Resolve *filename* and split it into name segments.

    The root resolves to an empty list.
    """
    full_path = resolve([filename], base).lstrip(SEP)
    if not full_path:
        return []
    return full_path.split(SEP)


def relative(from_: str, to: str, cwd: str | None = None) -> str:
    """Return the relative path leading from *from_* to *to*.

    Empty arguments stand for the working directory.  Equal paths give
    ``""``.
    """
    to_abs = resolve([to], cwd) if to else resolve([], cwd)
    from_abs = resolve([from_], cwd) if from_ else resolve([], cwd)
    if from_abs == to_abs:
        return ""
    from_steps = to_steps(from_abs)
    to_steps_ = to_steps(to_abs)
    common = 0
    for left, right in zip(from_steps, to_steps_, strict=False):
        if left != right:
            break
        common += 1
    ups = [".."] * (len(from_steps) - common)
    return SEP.join(ups + to_steps_[common:])


def join(*parts: str) -> str:
    """Join *parts* with ``/`` and normalize the result."""
    return normalize(SEP.join(part for part in parts if part))


def dirname(path: str) -> str:
    """Return the directory component of *path* (``/`` for top-level names)."""
    normalized = normalize(path)
    if normalized == ROOT:
        return ROOT
    head, _, _ = normalized.rpartition(SEP)
    if not head:
        return ROOT if is_absolute(normalized) else "."
    return head


def basename(path: str) -> str:
    """Return the final component of *path* (``""`` for the root)."""
    normalized = normalize(path)
    if normalized == ROOT:
        return ""
    return normalized.rpartition(SEP)[2]


def flatten_json(nested: Mapping[str, Any]) -> dict[str, str | bytes | None]:
    """Flatten a nested snapshot into ``path -> content`` form.

    Strings and bytes are file contents; non-empty mappings are
    directories to descend into; empty mappings and ``None`` mark
    empty directories.  Keys are joined with ``/``.

    Example::

        {"a": {"b.txt": "hi", "empty": {}}}
        → {"a/b.txt": "hi", "a/empty": None}

    """
    flat: dict[str, str | bytes | None] = {}

    def _flatten(prefix: str, node: Mapping[str, Any]) -> None:
        for key, value in node.items():
            joined = join(prefix, key) if prefix else key
            if isinstance(value, str | bytes):
                flat[joined] = value
            elif isinstance(value, Mapping) and value:
                _flatten(joined, value)  # pyright: ignore[reportUnknownArgumentType]
            else:
                flat[joined] = None

    _flatten("", nested)
    return flat
