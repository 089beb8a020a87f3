"""
hotrun Watch Loop.

Ties file watching, debouncing, building and process restarts together.
Requires Python 3.11+.
"""

import threading
from collections.abc import Callable
from enum import Enum
from typing import Any

from builder.build_runner import BuildRunner
from process.supervisor import ProcessSupervisor
from reloader.models import Project
from utils.errors import ReloaderError
from utils.logger import LoggerMixin
from watcher.debouncer import DebounceScheduler
from watcher.file_watcher import ChangeEvent, FileWatcher
from watcher.path_filter import PathFilter


class LoopState(str, Enum):
    """States of the watch loop."""

    IDLE = "idle"
    BUILD_PENDING = "build_pending"
    BUILDING = "building"
    RUNNING = "running"


class WatchLoop(LoggerMixin):
    """
    Orchestrates watch -> debounce -> build -> restart for one project.

    File events arrive on the watchdog observer thread and rebuilds run
    on the debounce timer thread. The loop is purely reactive: run()
    only waits for stop() or a fatal error.
    """

    def __init__(
        self,
        project: Project,
        path_filter: PathFilter,
        build_runner: BuildRunner,
        supervisor: ProcessSupervisor,
        debounce_delay_ms: int = 1000,
        recursive: bool = True,
        watcher_factory: Callable[..., FileWatcher] = FileWatcher,
    ) -> None:
        """
        Initialize the loop.

        Args:
            project: Project to watch and build
            path_filter: Decides which paths trigger a rebuild
            build_runner: Builds the project
            supervisor: Runs the built executable
            debounce_delay_ms: Quiescence window before a rebuild
            recursive: Whether to watch subdirectories
            watcher_factory: Creates the file watcher
        """
        self._project = project
        self._filter = path_filter
        self._builder = build_runner
        self._supervisor = supervisor
        self._scheduler = DebounceScheduler(self._on_settled, delay_ms=debounce_delay_ms)
        self._watcher = watcher_factory(
            project.root_path,
            self.handle_event,
            recursive=recursive,
        )

        self._state = LoopState.IDLE
        self._state_lock = threading.Lock()
        self._stopped = threading.Event()
        self._fatal: ReloaderError | None = None

    @property
    def state(self) -> LoopState:
        with self._state_lock:
            return self._state

    @property
    def project(self) -> Project:
        return self._project

    @property
    def scheduler(self) -> DebounceScheduler:
        return self._scheduler

    @property
    def supervisor(self) -> ProcessSupervisor:
        return self._supervisor

    def _set_state(self, state: LoopState) -> None:
        with self._state_lock:
            self._state = state

    def handle_event(self, event: ChangeEvent) -> bool:
        """
        Process one file system event.

        Returns:
            True if the event qualified and a rebuild was scheduled
        """
        if not self._filter.should_act(event.path):
            return False

        self.log.info("file_changed", kind=event.kind.value, path=str(event.path))

        with self._state_lock:
            self._state = LoopState.BUILD_PENDING
            self._scheduler.notify()
        return True

    def _on_settled(self) -> None:
        try:
            self.rebuild()
        except ReloaderError as e:
            self._fail(e)

    def rebuild(self) -> bool:
        """
        Run one build and, if it succeeds, restart the process.

        A failed build leaves any running process untouched. Nothing is
        restarted once stop() has been requested.

        Returns:
            True if the build succeeded and the new process was spawned

        Raises:
            ProcessTerminationError: if the old process cannot be killed
        """
        self._set_state(LoopState.BUILDING)

        result = self._builder.build(self._project)
        if not result.success:
            self.log.error(
                "build_failed",
                name=self._project.name,
                returncode=result.returncode,
                diagnostics=result.diagnostics,
            )
            self._finish_build(LoopState.IDLE)
            return False

        if self._stopped.is_set():
            self._finish_build(LoopState.IDLE)
            return False

        starter = self._supervisor.restart()
        if starter is not None:
            starter.join()

        if self._supervisor.instance is None:
            self.log.error("restart_failed", name=self._project.name)
            self._finish_build(LoopState.IDLE)
            return False

        self._finish_build(LoopState.RUNNING)
        return True

    def _finish_build(self, state: LoopState) -> None:
        with self._state_lock:
            # Events that arrived mid-build already moved us to BUILD_PENDING
            if self._state is LoopState.BUILDING:
                self._state = state

    def _fail(self, error: ReloaderError) -> None:
        self.log.critical("supervisor_halted", error=str(error))
        self._fatal = error
        self._stopped.set()

    def start(self) -> None:
        """
        Subscribe to file changes and perform the initial build.

        Raises:
            WatchSubscriptionError: if the directory cannot be watched
        """
        self._watcher.start()
        self.rebuild()

    def run(self) -> None:
        """
        Start the loop and block until stop() or a fatal error.

        Raises:
            ReloaderError: the fatal error that halted the loop
        """
        self.start()
        try:
            self._stopped.wait()
        finally:
            self.shutdown()

        if self._fatal is not None:
            raise self._fatal

    def stop(self) -> None:
        """Ask a blocking run() to return."""
        self._stopped.set()

    def shutdown(self) -> None:
        """Cancel pending work, stop watching and kill the running process."""
        self._scheduler.cancel()
        self._watcher.stop()
        try:
            self._supervisor.stop()
        except ReloaderError as e:
            self.log.error("shutdown_kill_failed", error=str(e))
        self._set_state(LoopState.IDLE)

    def __enter__(self) -> "WatchLoop":
        """Context manager entry."""
        self.start()
        return self

    def __exit__(self, *args: Any) -> None:
        """Context manager exit."""
        self.shutdown()
