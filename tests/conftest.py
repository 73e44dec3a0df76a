"""
Onchange Test Configuration.

Pytest fixtures and test doubles.
Requires Python 3.11+.
"""

import asyncio
import signal
from pathlib import Path
from typing import Any

import pytest

from onchange.supervisor.process import ProcessSupervisor
from onchange.utils.config import RestartConfig, parse_excludes


class RecordingLogger:
    """Collects structured log calls instead of printing them."""

    def __init__(self) -> None:
        self.records: list[tuple[str, str, dict[str, Any]]] = []

    def _record(self, level: str, event: str, **kw: Any) -> None:
        self.records.append((level, event, kw))

    def debug(self, event: str, **kw: Any) -> None:
        self._record("debug", event, **kw)

    def info(self, event: str, **kw: Any) -> None:
        self._record("info", event, **kw)

    def warning(self, event: str, **kw: Any) -> None:
        self._record("warning", event, **kw)

    def error(self, event: str, **kw: Any) -> None:
        self._record("error", event, **kw)

    def events(self, level: str | None = None) -> list[str]:
        return [e for lvl, e, _ in self.records if level is None or lvl == level]


class FakeProcess:
    """Stands in for asyncio.subprocess.Process."""

    _next_pid = 1000

    def __init__(self, argv: tuple[str, ...], kill_error: Exception | None = None) -> None:
        FakeProcess._next_pid += 1
        self.pid = FakeProcess._next_pid
        self.argv = argv
        self.kill_error = kill_error
        self.killed = False
        self.returncode: int | None = None
        self._exited = asyncio.Event()

    def kill(self) -> None:
        if self.kill_error is not None:
            raise self.kill_error
        self.killed = True
        self.exit(-signal.SIGKILL)

    def exit(self, returncode: int) -> None:
        self.returncode = returncode
        self._exited.set()

    async def wait(self) -> int:
        await self._exited.wait()
        return self.returncode


class FakeSpawner:
    """Records every launch and hands out FakeProcess instances."""

    def __init__(self) -> None:
        self.processes: list[FakeProcess] = []
        self.kill_error: Exception | None = None
        self.start_error: Exception | None = None

    async def __call__(self, *argv: str) -> FakeProcess:
        if self.start_error is not None:
            raise self.start_error
        process = FakeProcess(argv, kill_error=self.kill_error)
        self.processes.append(process)
        return process

    @property
    def launches(self) -> int:
        return len(self.processes)


class FakeSource:
    """Notification source that never touches the filesystem."""

    def __init__(self) -> None:
        self.sink = None
        self.loop = None
        self.failure: Exception | None = None
        self.stopped = False

    def start(self, loop: asyncio.AbstractEventLoop, sink: Any) -> None:
        self.loop = loop
        self.sink = sink

    def check(self) -> None:
        if self.failure is not None:
            raise self.failure

    def stop(self) -> None:
        self.stopped = True


@pytest.fixture
def recording_logger() -> RecordingLogger:
    return RecordingLogger()


@pytest.fixture
def spawner() -> FakeSpawner:
    return FakeSpawner()


@pytest.fixture
def supervisor(spawner: FakeSpawner, recording_logger: RecordingLogger) -> ProcessSupervisor:
    """Supervisor backed by fake processes."""
    return ProcessSupervisor(spawn=spawner, logger=recording_logger)


@pytest.fixture
def fake_source() -> FakeSource:
    return FakeSource()


@pytest.fixture
def make_config(tmp_path: Path):
    """Build a RestartConfig rooted at a temporary project."""

    def _make(
        command: str = "echo hi",
        interval: float = 0.05,
        exclude: str = "",
    ) -> RestartConfig:
        return RestartConfig(
            watch_dir=tmp_path,
            command=command,
            check_interval=interval,
            exclude_patterns=parse_excludes(exclude),
        )

    return _make


@pytest.fixture
def temp_project(tmp_path: Path) -> Path:
    """Create a small directory tree to watch."""
    project = tmp_path / "proj"
    (project / "src" / "pkg").mkdir(parents=True)
    (project / "node_modules" / "lib").mkdir(parents=True)
    (project / ".git" / "objects").mkdir(parents=True)
    (project / "src" / "main.py").write_text("print('hi')\n")
    return project
