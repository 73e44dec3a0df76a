"""
Onchange File Watcher.

Watches a directory tree with watchdog and forwards change events into the
asyncio loop that runs the restart scheduler.
Requires Python 3.11+.
"""

import asyncio
import dataclasses
import os
from collections.abc import Callable, Iterable
from pathlib import Path
from typing import Any

from watchdog.events import (
    EVENT_TYPE_DELETED,
    EVENT_TYPE_MODIFIED,
    EVENT_TYPE_MOVED,
    FileSystemEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer

from onchange.utils.errors import WatchError
from onchange.utils.logger import LoggerMixin
from onchange.watcher.events import ChangeEvent, ChangeOp
from onchange.watcher.exclusion import ExclusionFilter

# (st_size, st_mtime_ns) of a path when it was last seen
Signature = tuple[int, int]


def _signature(path: str) -> Signature | None:
    try:
        st = os.stat(path)
    except OSError:
        return None
    return (st.st_size, st.st_mtime_ns)


class ChangeHandler(FileSystemEventHandler):
    """
    Forwards watchdog events to the event loop.

    Runs on watchdog's observer thread, so it only converts the event and
    schedules ``sink`` on the loop; all decisions happen in the scheduler.

    watchdog reports attribute-only changes (inotify ``IN_ATTRIB``) as plain
    modifications. A modification that leaves size and mtime untouched is
    reported as ``CHMOD`` instead of ``WRITE``.
    """

    def __init__(
        self,
        loop: asyncio.AbstractEventLoop,
        sink: Callable[[ChangeEvent], Any],
    ) -> None:
        super().__init__()
        self._loop = loop
        self._sink = sink
        self._signatures: dict[str, Signature] = {}

    def remember(self, paths: Iterable[str]) -> None:
        """Record the current size/mtime of paths seen before watching."""
        for path in paths:
            sig = _signature(path)
            if sig is not None:
                self._signatures[path] = sig

    def on_any_event(self, event: FileSystemEvent) -> None:
        change = ChangeEvent.from_watchdog(event)
        if change is None:
            return
        change = self._classify(event, change)
        self._loop.call_soon_threadsafe(self._sink, change)

    def _classify(self, event: FileSystemEvent, change: ChangeEvent) -> ChangeEvent:
        path = change.path

        if event.event_type == EVENT_TYPE_DELETED:
            self._signatures.pop(path, None)
            return change
        if event.event_type == EVENT_TYPE_MOVED:
            self._signatures.pop(path, None)
            if change.dest_path:
                self.remember([change.dest_path])
            return change

        sig = _signature(path)
        previous = self._signatures.get(path)
        if sig is None:
            self._signatures.pop(path, None)
            return change
        self._signatures[path] = sig

        if event.event_type == EVENT_TYPE_MODIFIED and previous == sig:
            return dataclasses.replace(change, op=ChangeOp.CHMOD)
        # created and closed events only refresh the signature
        return change


class ChangeSource(LoggerMixin):
    """
    Watches a directory tree for changes.

    A single recursive watch covers the whole tree, including directories
    created later. Excluded paths still produce events; the scheduler
    filters them.
    """

    def __init__(
        self,
        root_path: Path,
        exclusion: ExclusionFilter,
        logger: Any | None = None,
        observer_factory: Callable[[], Any] = Observer,
    ) -> None:
        """
        Initialize the change source.

        Args:
            root_path: Root directory to watch
            exclusion: Filter applied to paths during the initial walk
            logger: Logger collaborator, defaults to one named after the class
            observer_factory: Creates the watchdog observer
        """
        self.use_logger(logger)
        self._root_path = root_path
        self._exclusion = exclusion
        self._observer_factory = observer_factory
        self._observer: Any | None = None

    def start(
        self,
        loop: asyncio.AbstractEventLoop,
        sink: Callable[[ChangeEvent], Any],
    ) -> None:
        """
        Start delivering events for the tree to ``sink`` on ``loop``.

        Raises:
            WatchError: If the root is not a directory or can't be watched
        """
        if self._observer is not None:
            return

        if not self._root_path.is_dir():
            raise WatchError(f"not a directory: {self._root_path}")

        handler = ChangeHandler(loop, sink)
        directories = self.directories()
        for path in directories:
            self.log.debug("watching", path=path)
            handler.remember(
                [path, *(os.path.join(path, name) for name in _files(path))]
            )

        self._observer = self._observer_factory()
        self._observer.start()
        try:
            self._observer.schedule(handler, str(self._root_path), recursive=True)
        except OSError as e:
            self.stop()
            raise WatchError(f"cannot watch {self._root_path}: {e}") from e
        self.log.info(
            "file_watcher_started",
            path=str(self._root_path),
            directories=len(directories),
            exclude=list(self._exclusion.patterns),
        )

    def directories(self) -> list[str]:
        """List every directory under the root that is not excluded."""
        found = []
        for dirpath, dirnames, _ in os.walk(self._root_path):
            if self._exclusion.is_excluded(dirpath):
                dirnames[:] = []
                continue
            found.append(dirpath)
            dirnames.sort()
        return found

    def check(self) -> None:
        """
        Verify the observer is still delivering events.

        Raises:
            WatchError: If the observer thread died
        """
        if self._observer is not None and not self._observer.is_alive():
            raise WatchError("file watcher stopped unexpectedly")

    def stop(self) -> None:
        """Stop watching for file changes."""
        if self._observer is None:
            return

        self._observer.stop()
        self._observer.join(timeout=5.0)
        self._observer = None
        self.log.info("file_watcher_stopped")

    @property
    def is_running(self) -> bool:
        return self._observer is not None


def _files(directory: str) -> list[str]:
    try:
        with os.scandir(directory) as entries:
            return [e.name for e in entries if e.is_file(follow_symlinks=False)]
    except OSError:
        return []
