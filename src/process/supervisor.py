"""
hotrun Process Supervisor.

Starts, kills and restarts the project's built executable.
Requires Python 3.11+.
"""

import errno
import os
import subprocess
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import IO, Any

from reloader.models import Project
from utils.errors import ProcessTerminationError
from utils.logger import LoggerMixin

# Errors that mean the process was already gone when the signal was sent
_EXITED_ERRNOS = frozenset({errno.EINVAL, errno.ESRCH})


@dataclass
class RunningInstance:
    """Handle to a spawned application process."""

    process: subprocess.Popen
    started_at: float = field(default_factory=time.time)
    returncode: int | None = None
    _exited: threading.Event = field(default_factory=threading.Event, repr=False)

    @property
    def pid(self) -> int:
        return self.process.pid

    @property
    def alive(self) -> bool:
        """False once the reaper has seen the process exit."""
        return not self._exited.is_set()

    def mark_exited(self, returncode: int | None) -> None:
        self.returncode = returncode
        self._exited.set()

    def wait_exited(self, timeout: float | None = None) -> bool:
        """Block until the reaper marks the handle dead."""
        return self._exited.wait(timeout)


def executable_path(name: str) -> str:
    """Make a bare executable name explicitly relative to the working directory."""
    if os.path.isabs(name) or name.startswith(("./", ".\\", "../", "..\\")):
        return name
    return os.path.join(os.curdir, name)


class ProcessSupervisor(LoggerMixin):
    """
    Owns the single running instance of a project's executable.

    The instance's stdout and stderr go straight to the supervisor's own
    streams unless others are given. Exits are observed by a daemon
    reaper thread that only marks the handle dead.
    """

    def __init__(
        self,
        project: Project,
        executable: str | None = None,
        stdout: IO[Any] | int | None = None,
        stderr: IO[Any] | int | None = None,
        kill_timeout: float = 5.0,
        popen: Callable[..., subprocess.Popen] = subprocess.Popen,
    ) -> None:
        """
        Initialize the supervisor.

        Args:
            project: Project whose executable is supervised
            executable: Executable to launch, defaults to the project name
            stdout: Stream for the child's stdout, None to inherit
            stderr: Stream for the child's stderr, None to inherit
            kill_timeout: Seconds to wait for a killed process to be reaped
            popen: Process factory
        """
        self._project = project
        self._executable = executable or project.name
        self._stdout = stdout
        self._stderr = stderr
        self._kill_timeout = kill_timeout
        self._popen = popen
        self._instance: RunningInstance | None = None
        self._starter: threading.Thread | None = None
        self._lock = threading.RLock()
        self._restart_lock = threading.Lock()
        self._stopped = False

    @property
    def instance(self) -> RunningInstance | None:
        with self._lock:
            return self._instance

    @property
    def is_running(self) -> bool:
        """Check if a spawned instance is still alive."""
        with self._lock:
            return self._instance is not None and self._instance.alive

    def start(self) -> RunningInstance | None:
        """
        Launch the executable and return without waiting for it.

        Returns:
            The new RunningInstance, or None if the spawn failed
        """
        path = executable_path(self._executable)
        self.log.info("process_starting", name=self._project.name, path=path)

        with self._lock:
            try:
                process = self._popen(
                    [path],
                    cwd=self._project.root_path,
                    stdout=self._stdout,
                    stderr=self._stderr,
                )
            except OSError as e:
                self.log.error("process_start_failed", name=self._project.name, error=str(e))
                return None

            instance = RunningInstance(process=process)
            self._instance = instance

        reaper = threading.Thread(
            target=self._reap,
            args=(instance,),
            name=f"reap-{instance.pid}",
            daemon=True,
        )
        reaper.start()

        self.log.info("process_started", name=self._project.name, pid=instance.pid)
        return instance

    def _reap(self, instance: RunningInstance) -> None:
        returncode = instance.process.wait()
        instance.mark_exited(returncode)
        self.log.debug("process_exited", pid=instance.pid, returncode=returncode)

    def kill(self) -> None:
        """
        Kill the running instance, if any.

        An instance that already exited is simply forgotten.

        Raises:
            ProcessTerminationError: if a live process cannot be signalled
        """
        with self._lock:
            instance = self._instance
            if instance is None:
                return

            self.log.info("process_killing", name=self._project.name, pid=instance.pid)

            failure: OSError | None = None
            try:
                instance.process.kill()
            except ProcessLookupError:
                pass
            except OSError as e:
                if e.errno not in _EXITED_ERRNOS:
                    failure = e
            except Exception as e:
                self.log.warning("process_kill_fault", pid=instance.pid, error=repr(e))

            if failure is not None:
                raise ProcessTerminationError(instance.pid, failure) from failure

            self._instance = None

        if self._kill_timeout > 0 and not instance.wait_exited(self._kill_timeout):
            self.log.warning(
                "process_still_running",
                pid=instance.pid,
                timeout=self._kill_timeout,
            )

    def restart(self) -> threading.Thread | None:
        """
        Kill the current instance, then start a new one in the background.

        Concurrent calls are serialized so only one instance is ever live.

        Returns:
            The thread running start(); join it to wait for the spawn.
            None once stop() has been called.
        """
        with self._restart_lock:
            if self._stopped:
                self.log.info("restart_skipped", name=self._project.name)
                return None

            # A previous background start must land before it can be killed
            if self._starter is not None:
                self._starter.join()

            self.kill()
            starter = threading.Thread(target=self.start, name=f"start-{self._project.name}", daemon=True)
            self._starter = starter
            starter.start()
            return starter

    def stop(self) -> None:
        """Wait for any background start, kill the instance and refuse later restarts."""
        with self._restart_lock:
            self._stopped = True
            if self._starter is not None:
                self._starter.join()
            self.kill()
