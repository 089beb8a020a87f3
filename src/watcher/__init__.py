"""
hotrun File Watcher Package.

File system monitoring, path filtering and event debouncing.
Requires Python 3.11+.
"""

from watcher.debouncer import DebounceScheduler
from watcher.file_watcher import ChangeEvent, ChangeKind, FileWatcher
from watcher.path_filter import PathFilter, WatchRules

__all__ = [
    "ChangeEvent",
    "ChangeKind",
    "DebounceScheduler",
    "FileWatcher",
    "PathFilter",
    "WatchRules",
]
