"""
Onchange File Watcher Package.

File system monitoring and debounced restart scheduling.
Requires Python 3.11+.
"""

from onchange.watcher.events import ChangeEvent, ChangeOp
from onchange.watcher.exclusion import ExclusionFilter
from onchange.watcher.file_watcher import ChangeHandler, ChangeSource
from onchange.watcher.scheduler import RestartScheduler

__all__ = [
    "ChangeEvent",
    "ChangeOp",
    "ExclusionFilter",
    "ChangeHandler",
    "ChangeSource",
    "RestartScheduler",
]
