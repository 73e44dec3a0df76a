"""
Onchange Process Supervisor.

Owns the single managed child process: kills it, launches a replacement and
waits for it to exit.
Requires Python 3.11+.
"""

import asyncio
import subprocess
from collections.abc import Awaitable, Callable
from typing import Any

from onchange.utils.errors import ProcessExitError, ProcessKillError, ProcessStartError
from onchange.utils.logger import LoggerMixin

Spawn = Callable[..., Awaitable[Any]]


async def spawn_process(*argv: str) -> asyncio.subprocess.Process:
    """Launch a command with stdout inherited and stdin/stderr discarded."""
    return await asyncio.create_subprocess_exec(
        *argv,
        stdin=subprocess.DEVNULL,
        stdout=None,
        stderr=subprocess.DEVNULL,
    )


class ProcessSupervisor(LoggerMixin):
    """
    Keeps at most one instance of the command running.

    ``kill_current`` must finish before ``start_new`` is called; the
    scheduler does both under one lock so instances never overlap.
    """

    def __init__(self, spawn: Spawn = spawn_process, logger: Any | None = None) -> None:
        """
        Initialize the supervisor.

        Args:
            spawn: Coroutine function launching ``*argv`` and returning a
                process with ``pid``, ``kill()`` and ``wait()``
            logger: Logger collaborator, defaults to one named after the class
        """
        self.use_logger(logger)
        self._spawn = spawn
        self._process: Any | None = None

    @property
    def current(self) -> Any | None:
        """The tracked process handle, if any."""
        return self._process

    async def kill_current(self) -> None:
        """
        Kill the tracked process, if there is one.

        A process that already exited is not an error.

        Raises:
            ProcessKillError: If the kill fails for any other reason
        """
        if self._process is None:
            return

        self.log.debug("killing_current_process", pid=self._process.pid)
        try:
            self._process.kill()
        except ProcessLookupError:
            self.log.debug("process_already_finished", pid=self._process.pid)
        except OSError as e:
            raise ProcessKillError(f"failed to kill pid {self._process.pid}: {e}") from e
        self._process = None

    async def start_new(self, argv: list[str]) -> Any:
        """
        Launch the command and track it.

        Returns as soon as the process is started.

        Raises:
            ProcessStartError: If the command is empty or can't be launched
        """
        if not argv:
            raise ProcessStartError("empty command")

        try:
            process = await self._spawn(*argv)
        except OSError as e:
            raise ProcessStartError(f"failed to start {argv[0]}: {e}") from e

        self._process = process
        self.log.debug("process_started", pid=process.pid, argv=argv)
        return process

    async def restart(self, argv: list[str]) -> Any:
        """Kill the current process, then launch a new one."""
        await self.kill_current()
        return await self.start_new(argv)

    async def await_completion(self, process: Any) -> ProcessExitError | None:
        """
        Wait for a launched process to exit.

        Returns:
            None on a clean exit, otherwise the exit error
        """
        returncode = await process.wait()
        if returncode == 0:
            return None
        return ProcessExitError(returncode)
