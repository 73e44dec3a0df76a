"""
Onchange Error Types.

Exceptions raised by configuration, the watch source and the process supervisor.
Requires Python 3.11+.
"""

import signal


class OnchangeError(Exception):
    """Base class for all onchange errors."""


class ConfigError(OnchangeError, ValueError):
    """Invalid command-line or environment configuration."""


class WatchError(OnchangeError):
    """The filesystem notification source failed to start or stopped working."""


class ProcessError(OnchangeError):
    """Base class for managed process failures."""


class ProcessStartError(ProcessError):
    """The command could not be launched."""


class ProcessKillError(ProcessError):
    """The running command could not be terminated."""


class ProcessExitError(ProcessError):
    """The command exited with a non-zero status."""

    def __init__(self, returncode: int) -> None:
        self.returncode = returncode
        if returncode < 0:
            try:
                reason = f"signal: {signal.Signals(-returncode).name}"
            except ValueError:
                reason = f"signal: {-returncode}"
        else:
            reason = f"exit status {returncode}"
        super().__init__(reason)

    @property
    def killed(self) -> bool:
        """True when the process was terminated by SIGKILL."""
        return self.returncode == -signal.SIGKILL
