"""
hotrun File Watcher.

Cross-platform file system monitoring using watchdog.
Requires Python 3.11+.
"""

import os
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any

from watchdog.observers import Observer
from watchdog.events import (
    FileSystemEventHandler,
    FileCreatedEvent,
    FileModifiedEvent,
    FileDeletedEvent,
    FileMovedEvent,
    DirCreatedEvent,
    DirDeletedEvent,
    DirModifiedEvent,
    DirMovedEvent,
)

from utils.errors import WatchSubscriptionError
from utils.logger import LoggerMixin


class ChangeKind(str, Enum):
    """Kinds of file system changes.

    watchdog reports permission changes as modifications, so they arrive
    as WRITE.
    """

    CREATE = "create"
    WRITE = "write"
    REMOVE = "remove"
    RENAME = "rename"


@dataclass(frozen=True)
class ChangeEvent:
    """A single file system change notification."""

    kind: ChangeKind
    path: Path


class ChangeEventHandler(FileSystemEventHandler):
    """
    Translates watchdog file events into ChangeEvents.

    Directory events are dropped; filtering by path is left to the
    consumer.
    """

    def __init__(self, on_event: Callable[[ChangeEvent], Any]) -> None:
        """
        Initialize the file handler.

        Args:
            on_event: Callback receiving every file change
        """
        super().__init__()
        self._on_event = on_event

    def _dispatch(self, kind: ChangeKind, path: bytes | str) -> None:
        self._on_event(ChangeEvent(kind=kind, path=Path(os.fsdecode(path))))

    def on_created(self, event: FileCreatedEvent | DirCreatedEvent) -> None:
        """Handle file/directory creation."""
        if isinstance(event, DirCreatedEvent):
            return
        self._dispatch(ChangeKind.CREATE, event.src_path)

    def on_modified(self, event: FileModifiedEvent | DirModifiedEvent) -> None:
        """Handle file/directory modification."""
        if isinstance(event, DirModifiedEvent):
            return
        self._dispatch(ChangeKind.WRITE, event.src_path)

    def on_deleted(self, event: FileDeletedEvent | DirDeletedEvent) -> None:
        """Handle file/directory deletion."""
        if isinstance(event, DirDeletedEvent):
            return
        self._dispatch(ChangeKind.REMOVE, event.src_path)

    def on_moved(self, event: FileMovedEvent | DirMovedEvent) -> None:
        """Handle file/directory move/rename."""
        if isinstance(event, DirMovedEvent):
            return
        self._dispatch(ChangeKind.RENAME, event.src_path)
        if event.dest_path:
            self._dispatch(ChangeKind.CREATE, event.dest_path)


class FileWatcher(LoggerMixin):
    """
    Recursive subscription to file changes under a root directory.

    Uses watchdog for cross-platform file system monitoring. Every file
    event is forwarded to on_event from the observer thread.
    """

    def __init__(
        self,
        root_path: Path,
        on_event: Callable[[ChangeEvent], Any],
        recursive: bool = True,
        observer_factory: Callable[[], Any] = Observer,
    ) -> None:
        """
        Initialize the file watcher.

        Args:
            root_path: Root directory to watch
            on_event: Callback for each file change
            recursive: Whether to watch subdirectories
            observer_factory: Creates the watchdog observer
        """
        self._root_path = root_path
        self._recursive = recursive
        self._handler = ChangeEventHandler(on_event)
        self._observer_factory = observer_factory
        self._observer: Any = None
        self._running = False

    def start(self) -> None:
        """
        Start watching for file changes.

        Raises:
            WatchSubscriptionError: if the directory cannot be monitored
        """
        if self._running:
            return

        if not self._root_path.is_dir():
            raise WatchSubscriptionError(str(self._root_path), "not a directory")

        observer = self._observer_factory()
        try:
            observer.schedule(
                self._handler,
                str(self._root_path),
                recursive=self._recursive,
            )
            observer.start()
        except OSError as e:
            raise WatchSubscriptionError(str(self._root_path), str(e)) from e

        self._observer = observer
        self._running = True

        self.log.info(
            "file_watcher_started",
            path=str(self._root_path),
            recursive=self._recursive,
        )

    def stop(self) -> None:
        """Stop watching for file changes."""
        if not self._running:
            return

        if self._observer is not None:
            self._observer.stop()
            self._observer.join(timeout=5.0)
            self._observer = None

        self._running = False
        self.log.info("file_watcher_stopped")

    @property
    def is_running(self) -> bool:
        """Check if the watcher is running."""
        return self._running

    def __enter__(self) -> "FileWatcher":
        """Context manager entry."""
        self.start()
        return self

    def __exit__(self, *args: Any) -> None:
        """Context manager exit."""
        self.stop()
