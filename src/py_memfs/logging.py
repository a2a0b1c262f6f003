"""Volume audit log.

Every volume keeps a structured, append-only record of what happened
to it: namespace changes (mkdir, unlink, rename …), descriptor traffic
and the errors it handed back to callers.  Pure helpers that have no
volume to report to (path resolution, for one) write to the
process-wide ``system_log`` instead.

- **LogLevel** — severity levels ordered for filtering (DEBUG < ERROR).
- **LogEntry** — a single record (level, message, source, operation, paths).
- **Logger** — an append-only buffer with filtering and clearing.
"""

from dataclasses import dataclass, field
from enum import IntEnum


class LogLevel(IntEnum):
    """Severity levels for log entries.

    IntEnum so minimum-level filtering is a plain ``>=``.
    """

    DEBUG = 0
    INFO = 1
    WARNING = 2
    ERROR = 3


@dataclass(frozen=True)
class LogEntry:
    """A single structured log record.

    Attributes:
        level: The severity of this event.
        message: A human-readable description of what happened.
        source: The component that generated the event (e.g. "volume").
        operation: The volume operation involved, if any.
        paths: The paths the operation touched.

    """

    level: LogLevel
    message: str
    source: str
    operation: str | None = None
    paths: tuple[str, ...] = field(default=())

    def __str__(self) -> str:
        """Format as ``[LEVEL] source: message``."""
        return f"[{self.level.name}] {self.source}: {self.message}"


class Logger:
    """Append-only log buffer with filtering."""

    def __init__(self) -> None:
        """Create an empty logger."""
        self._entries: list[LogEntry] = []

    @property
    def entries(self) -> list[LogEntry]:
        """Return all log entries in chronological order."""
        return list(self._entries)

    def log(
        self,
        level: LogLevel,
        message: str,
        *,
        source: str,
        operation: str | None = None,
        paths: tuple[str, ...] = (),
    ) -> None:
        """Append a new entry to the log.

        Args:
            level: Severity of the event.
            message: Human-readable event description.
            source: Component that generated the event.
            operation: Volume operation involved, if any.
            paths: Paths involved in the event.

        """
        self._entries.append(
            LogEntry(level=level, message=message, source=source, operation=operation, paths=paths)
        )

    def filter(
        self,
        *,
        min_level: LogLevel | None = None,
        source: str | None = None,
        operation: str | None = None,
    ) -> list[LogEntry]:
        """Return entries matching the given criteria.

        Args:
            min_level: If set, only return entries at or above this level.
            source: If set, only return entries from this source.
            operation: If set, only return entries for this operation.

        """
        result = self._entries
        if min_level is not None:
            result = [e for e in result if e.level >= min_level]
        if source is not None:
            result = [e for e in result if e.source == source]
        if operation is not None:
            result = [e for e in result if e.operation == operation]
        return result if result is not self._entries else list(result)

    def clear(self) -> None:
        """Remove all log entries."""
        self._entries.clear()

    def __len__(self) -> int:
        """Return the number of entries."""
        return len(self._entries)


system_log = Logger()
"""Process-wide log for diagnostics that are not tied to one volume."""
