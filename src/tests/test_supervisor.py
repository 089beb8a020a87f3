"""
Tests for Process Supervisor.

Requires Python 3.11+.
"""

import errno
import os
import subprocess
import threading
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from conftest import posix_only, wait_for
from process.supervisor import ProcessSupervisor, executable_path
from reloader.models import Project
from utils.errors import ProcessTerminationError


def write_binary(root: Path, name: str, body: str) -> Path:
    """Write an executable shell script standing in for a built binary."""
    path = root / name
    path.write_text(f"#!/bin/sh\n{body}\n")
    path.chmod(0o755)
    return path


def fake_popen(process: MagicMock | None = None) -> MagicMock:
    """Popen replacement returning a mock process."""
    process = process or MagicMock(pid=4242)
    process.wait.return_value = 0
    return MagicMock(return_value=process)


class TestExecutablePath:
    """Test cases for executable path normalization."""

    def test_bare_name_made_relative(self):
        """Test a bare name gets an explicit ./ prefix."""
        assert executable_path("proj") == os.path.join(os.curdir, "proj")

    def test_relative_kept(self):
        """Test explicitly relative names are unchanged."""
        assert executable_path("./proj") == "./proj"
        assert executable_path("../bin/proj") == "../bin/proj"

    def test_absolute_kept(self, tmp_path: Path):
        """Test absolute paths are unchanged."""
        path = str(tmp_path / "proj")
        assert executable_path(path) == path


@posix_only
class TestProcessLifecycle:
    """Test cases running real child processes."""

    @pytest.fixture
    def supervisor(self, project: Project):
        """Supervisor for a long-running fake binary."""
        write_binary(project.root_path, project.name, "exec sleep 30")
        supervisor = ProcessSupervisor(project, stdout=subprocess.DEVNULL, kill_timeout=5.0)
        yield supervisor
        supervisor.kill()

    def test_start_returns_running_instance(self, supervisor: ProcessSupervisor):
        """Test start launches the binary without waiting for it."""
        instance = supervisor.start()

        assert instance is not None
        assert instance.alive
        assert supervisor.instance is instance
        assert supervisor.is_running
        assert instance.process.poll() is None

    def test_kill_terminates_and_clears(self, supervisor: ProcessSupervisor):
        """Test kill stops the process and clears the handle."""
        instance = supervisor.start()

        supervisor.kill()

        assert supervisor.instance is None
        assert not supervisor.is_running
        assert wait_for(lambda: not instance.alive)
        assert instance.process.poll() is not None

    def test_kill_without_instance_is_noop(self, supervisor: ProcessSupervisor):
        """Test kill with nothing running does nothing."""
        supervisor.kill()
        assert supervisor.instance is None

    def test_kill_exited_process_is_noop(self, project: Project):
        """Test killing a process that already exited is treated as success."""
        write_binary(project.root_path, project.name, "exit 3")
        supervisor = ProcessSupervisor(project)
        instance = supervisor.start()

        assert instance.wait_exited(5)
        assert instance.returncode == 3
        assert not supervisor.is_running

        supervisor.kill()
        assert supervisor.instance is None

    def test_restart_replaces_instance(self, supervisor: ProcessSupervisor):
        """Test restart kills the old instance before the new one starts."""
        first = supervisor.start()

        supervisor.restart().join(timeout=5)
        second = supervisor.instance

        assert second is not None
        assert second.pid != first.pid
        assert wait_for(lambda: not first.alive)
        assert second.alive

    def test_concurrent_restarts_leave_one_instance(self, project: Project):
        """Test restarts racing from two threads never leave two live children."""
        write_binary(project.root_path, project.name, "exec sleep 30")
        spawned: list[subprocess.Popen] = []

        def popen(*args, **kwargs):
            process = subprocess.Popen(*args, **kwargs)
            spawned.append(process)
            return process

        supervisor = ProcessSupervisor(project, stdout=subprocess.DEVNULL, popen=popen)
        supervisor.start()
        barrier = threading.Barrier(2)
        starters: list[threading.Thread] = []

        def restart() -> None:
            barrier.wait()
            starters.append(supervisor.restart())

        threads = [threading.Thread(target=restart) for _ in range(2)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=15)
        for starter in starters:
            starter.join(timeout=5)

        # The reaper sets returncode once a killed child is gone
        assert len(spawned) == 3
        assert wait_for(lambda: sum(p.returncode is None for p in spawned) == 1)
        assert supervisor.instance.process.returncode is None

        supervisor.stop()

        assert wait_for(lambda: all(p.returncode is not None for p in spawned))

    def test_restart_after_stop_is_refused(self, supervisor: ProcessSupervisor):
        """Test nothing is spawned once the supervisor has been stopped."""
        first = supervisor.start()
        supervisor.stop()

        assert supervisor.restart() is None
        assert supervisor.instance is None
        assert wait_for(lambda: not first.alive)

    def test_missing_binary(self, project: Project):
        """Test a spawn failure is logged and leaves no instance."""
        supervisor = ProcessSupervisor(project, executable="does-not-exist")

        assert supervisor.start() is None
        assert supervisor.instance is None


class TestKillOutcomes:
    """Test cases for kill error handling with a mocked process."""

    @pytest.fixture
    def process(self) -> MagicMock:
        """Mock child process."""
        return MagicMock(pid=4242)

    @pytest.fixture
    def supervisor(self, project: Project, process: MagicMock) -> ProcessSupervisor:
        """Supervisor whose instance is the mock process."""
        supervisor = ProcessSupervisor(project, kill_timeout=1.0, popen=fake_popen(process))
        supervisor.start()
        return supervisor

    def test_process_lookup_error_is_benign(self, supervisor: ProcessSupervisor, process: MagicMock):
        """Test a vanished process counts as killed."""
        process.kill.side_effect = ProcessLookupError()

        supervisor.kill()

        assert supervisor.instance is None

    def test_invalid_argument_is_benign(self, supervisor: ProcessSupervisor, process: MagicMock):
        """Test EINVAL from the signal call counts as killed."""
        process.kill.side_effect = OSError(errno.EINVAL, "Invalid argument")

        supervisor.kill()

        assert supervisor.instance is None

    def test_other_os_error_is_fatal(self, supervisor: ProcessSupervisor, process: MagicMock):
        """Test any other OS failure raises ProcessTerminationError."""
        process.kill.side_effect = PermissionError(errno.EPERM, "Operation not permitted")

        with pytest.raises(ProcessTerminationError) as exc_info:
            supervisor.kill()

        assert exc_info.value.pid == 4242
        assert supervisor.instance is not None

    def test_unexpected_fault_is_recovered(self, supervisor: ProcessSupervisor, process: MagicMock):
        """Test a non-OS fault in the signal call is logged and swallowed."""
        process.kill.side_effect = RuntimeError("handle closed")

        supervisor.kill()

        assert supervisor.instance is None

    def test_restart_kills_before_start(self, project: Project):
        """Test restart orders kill before the new spawn."""
        calls = []
        old = MagicMock(pid=1)
        old.kill.side_effect = lambda: calls.append("kill")
        old.wait.return_value = 0
        new = MagicMock(pid=2)
        new.wait.return_value = 0

        def popen(*args, **kwargs):
            calls.append("spawn")
            return spawned.pop(0)

        spawned = [old, new]
        supervisor = ProcessSupervisor(project, kill_timeout=1.0, popen=popen)
        supervisor.start()

        supervisor.restart().join(timeout=5)

        assert calls == ["spawn", "kill", "spawn"]
        assert supervisor.instance.process is new

    def test_start_passes_streams_and_cwd(self, project: Project):
        """Test the child runs in the project root with the given streams."""
        popen = fake_popen()
        supervisor = ProcessSupervisor(project, stdout=subprocess.DEVNULL, stderr=subprocess.STDOUT, popen=popen)

        supervisor.start()

        args, kwargs = popen.call_args
        assert args[0] == [executable_path(project.name)]
        assert kwargs["cwd"] == project.root_path
        assert kwargs["stdout"] == subprocess.DEVNULL
        assert kwargs["stderr"] == subprocess.STDOUT

    def test_stop_kills_after_pending_start(self, project: Project):
        """Test stop lets an in-flight restart land and then kills it."""
        popen = fake_popen()
        supervisor = ProcessSupervisor(project, kill_timeout=1.0, popen=popen)

        supervisor.restart()
        supervisor.stop()

        assert popen.call_count == 1
        popen.return_value.kill.assert_called_once()
        assert supervisor.instance is None
