"""
Onchange Change Events.

Translates watchdog events into the operations the scheduler reasons about.
Requires Python 3.11+.
"""

from dataclasses import dataclass
from enum import Enum

from watchdog.events import (
    EVENT_TYPE_CLOSED,
    EVENT_TYPE_CREATED,
    EVENT_TYPE_DELETED,
    EVENT_TYPE_MODIFIED,
    EVENT_TYPE_MOVED,
    FileSystemEvent,
)


class ChangeOp(str, Enum):
    """Kinds of filesystem operation."""

    CREATE = "CREATE"
    WRITE = "WRITE"
    REMOVE = "REMOVE"
    RENAME = "RENAME"
    CHMOD = "CHMOD"


# Opened and closed-without-write events carry no change and are not mapped.
_WATCHDOG_OPS: dict[str, ChangeOp] = {
    EVENT_TYPE_CREATED: ChangeOp.CREATE,
    EVENT_TYPE_MODIFIED: ChangeOp.WRITE,
    EVENT_TYPE_CLOSED: ChangeOp.WRITE,
    EVENT_TYPE_DELETED: ChangeOp.REMOVE,
    EVENT_TYPE_MOVED: ChangeOp.RENAME,
}


@dataclass(frozen=True, slots=True)
class ChangeEvent:
    """A single filesystem change notification."""

    path: str
    op: ChangeOp
    dest_path: str | None = None

    def describe(self) -> str:
        """Render as ``"<path>": <OP>``; exclusion matching runs on this text."""
        return f'"{self.path}": {self.op.value}'

    def __str__(self) -> str:
        return self.describe()

    @classmethod
    def from_watchdog(cls, event: FileSystemEvent) -> "ChangeEvent | None":
        """
        Convert a watchdog event.

        Returns:
            The change event, or None for event types that are not changes
        """
        op = _WATCHDOG_OPS.get(event.event_type)
        if op is None:
            return None

        dest = getattr(event, "dest_path", None) or None
        return cls(path=_as_str(event.src_path), op=op, dest_path=_as_str(dest) if dest else None)


def _as_str(path: str | bytes) -> str:
    if isinstance(path, bytes):
        return path.decode(errors="replace")
    return path
