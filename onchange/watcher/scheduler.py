"""
Onchange Restart Scheduler.

Debounces file changes into at most one command restart per check interval.
Requires Python 3.11+.
"""

import asyncio
import contextlib
from dataclasses import dataclass
from typing import Any

from onchange.supervisor.process import ProcessSupervisor
from onchange.utils.config import RestartConfig
from onchange.utils.errors import ProcessError, ProcessExitError, WatchError
from onchange.utils.logger import LoggerMixin
from onchange.watcher.events import ChangeEvent, ChangeOp
from onchange.watcher.exclusion import ExclusionFilter


@dataclass(frozen=True, slots=True)
class Tick:
    """Periodic check of the pending-restart flag."""


@dataclass(frozen=True, slots=True)
class Completed:
    """A launched process exited."""

    pid: int
    error: ProcessExitError | None


@dataclass(frozen=True, slots=True)
class SourceFailed:
    """The notification source reported an error."""

    error: Exception


@dataclass(frozen=True, slots=True)
class Stop:
    """Request to shut the loop down."""


_TICK = Tick()
_STOP = Stop()


class RestartScheduler(LoggerMixin):
    """
    Decides when to restart the managed command.

    Change notifications, ticks, process completions and source errors all
    arrive on one queue and are handled one at a time. A qualifying change
    only arms ``_should_restart``; the next tick clears it and performs the
    kill/start sequence while holding the lock, so a change arriving mid-restart
    stays armed for the following tick.

    The flag starts armed, so the command runs on the first tick without
    waiting for a change.
    """

    def __init__(
        self,
        config: RestartConfig,
        supervisor: ProcessSupervisor,
        source: Any,
        logger: Any | None = None,
    ) -> None:
        """
        Initialize the scheduler.

        Args:
            config: Run configuration
            supervisor: Owner of the managed process
            source: Notification source with ``start(loop, sink)``,
                ``check()`` and ``stop()``
            logger: Logger collaborator, defaults to one named after the class
        """
        self.use_logger(logger)
        self._config = config
        self._supervisor = supervisor
        self._source = source
        self._exclusion = ExclusionFilter(config.exclude_patterns)

        self._should_restart = True
        self._lock = asyncio.Lock()
        self._queue: asyncio.Queue[Any] = asyncio.Queue()
        self._loop: asyncio.AbstractEventLoop | None = None
        self._waiters: set[asyncio.Task[None]] = set()
        self._stop_requested = False

    @property
    def should_restart(self) -> bool:
        """Current state of the pending-restart flag."""
        return self._should_restart

    def notify(self, event: ChangeEvent) -> None:
        """Queue a change event. Must be called on the loop thread."""
        self._queue.put_nowait(event)

    def stop(self) -> None:
        """Ask the loop to kill the command and return. Safe from any thread."""
        if self._loop is None:
            self._stop_requested = True
            return
        self._loop.call_soon_threadsafe(self._queue.put_nowait, _STOP)

    async def run(self) -> None:
        """
        Watch and restart until stopped.

        Raises:
            WatchError: If the notification source fails
            ProcessError: If the command can't be killed or launched
        """
        self._loop = asyncio.get_running_loop()
        if self._stop_requested:
            return

        self.log.debug("starting", config=self._config.model_dump(mode="json"))
        self._source.start(self._loop, self.notify)
        ticker = asyncio.create_task(self._tick_forever())

        try:
            while True:
                message = await self._queue.get()
                if isinstance(message, Stop):
                    self.log.info("stopping")
                    await self._supervisor.kill_current()
                    return
                await self._dispatch(message)
        except BaseException:
            with contextlib.suppress(ProcessError):
                await self._supervisor.kill_current()
            raise
        finally:
            ticker.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await ticker
            for waiter in list(self._waiters):
                waiter.cancel()
            self._source.stop()

    async def _dispatch(self, message: Any) -> None:
        if isinstance(message, ChangeEvent):
            await self.handle_change(message)
        elif isinstance(message, Tick):
            await self.handle_tick()
        elif isinstance(message, Completed):
            self.handle_completion(message.pid, message.error)
        elif isinstance(message, SourceFailed):
            self.handle_source_error(message.error)

    async def handle_change(self, event: ChangeEvent) -> bool:
        """
        Arm the restart flag for a qualifying change.

        Returns:
            True if the event armed the flag
        """
        description = event.describe()
        if event.op is ChangeOp.CHMOD or self._exclusion.is_excluded(description):
            self.log.debug("skipping_event", event_description=description)
            return False

        self.log.debug("got_event", event_description=description)
        async with self._lock:
            self._should_restart = True
        return True

    async def handle_tick(self) -> bool:
        """
        Restart the command if a change is pending.

        Returns:
            True if a restart was performed
        """
        async with self._lock:
            if not self._should_restart:
                return False

            self.log.info("running_command", command=self._config.command)
            self._should_restart = False

            process = await self._supervisor.restart(self._config.argv)
            self._spawn_waiter(process)
            return True

    def handle_completion(self, pid: int, error: ProcessExitError | None) -> None:
        """Log how a process exited; a kill by the scheduler is expected."""
        if error is None:
            self.log.debug("process_exited", pid=pid)
        elif error.killed:
            self.log.debug("process_killed", pid=pid)
        else:
            self.log.error("process_failed", pid=pid, error=str(error))

    def handle_source_error(self, error: Exception) -> None:
        """Notification source failures end the run."""
        if isinstance(error, WatchError):
            raise error
        raise WatchError(str(error)) from error

    def _spawn_waiter(self, process: Any) -> None:
        task = asyncio.create_task(self._await_completion(process))
        self._waiters.add(task)
        task.add_done_callback(self._waiters.discard)

    async def _await_completion(self, process: Any) -> None:
        error = await self._supervisor.await_completion(process)
        self._queue.put_nowait(Completed(pid=process.pid, error=error))

    async def _tick_forever(self) -> None:
        loop = asyncio.get_running_loop()
        interval = self._config.check_interval
        next_tick = loop.time()

        while True:
            next_tick += interval
            await asyncio.sleep(max(0.0, next_tick - loop.time()))
            try:
                self._source.check()
            except WatchError as e:
                self._queue.put_nowait(SourceFailed(e))
                return
            self._queue.put_nowait(_TICK)
