"""
Onchange Supervisor Package.

Lifecycle management for the restarted command.
Requires Python 3.11+.
"""

from onchange.supervisor.process import ProcessSupervisor, spawn_process

__all__ = ["ProcessSupervisor", "spawn_process"]
