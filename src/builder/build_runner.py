"""
hotrun Build Runner.

Invokes the external build tool for a project.
Requires Python 3.11+.
"""

import os
import subprocess
import sys
import time
from collections.abc import Mapping, Sequence
from dataclasses import dataclass

from builder.locks import NamedLocker
from reloader.models import Project
from utils.errors import BuildError
from utils.logger import LoggerMixin


@dataclass(frozen=True)
class BuildResult:
    """Outcome of a single build."""

    success: bool
    diagnostics: str = ""
    returncode: int | None = None
    duration: float = 0.0

    def raise_for_status(self, name: str) -> None:
        """Raise BuildError if the build failed."""
        if not self.success:
            raise BuildError(name, self.diagnostics)


class BuildRunner(LoggerMixin):
    """
    Runs `<command> build -o <name> [-tags <tags>]` in the project root.

    Builds sharing a project name are serialized: a call made while
    another build of the same project is running waits for it and then
    runs its own build.
    """

    def __init__(
        self,
        command: Sequence[str] = ("go",),
        env_overrides: Mapping[str, str] | None = None,
        locker: NamedLocker | None = None,
        platform: str = sys.platform,
    ) -> None:
        """
        Initialize the build runner.

        Args:
            command: Build tool executable and any leading arguments
            env_overrides: Variables set on top of os.environ while building
            locker: Lock registry used to serialize builds per project
            platform: Target platform, decides the executable suffix
        """
        self._command = list(command)
        self._env_overrides = dict({"GOGC": "off"} if env_overrides is None else env_overrides)
        self._locker = locker or NamedLocker()
        self._platform = platform

    @property
    def locker(self) -> NamedLocker:
        return self._locker

    def output_name(self, project: Project) -> str:
        """Name of the executable the build produces."""
        if self._platform.startswith("win"):
            return f"{project.name}.exe"
        return project.name

    def build_args(self, project: Project) -> list[str]:
        """Full argument vector for the build tool."""
        args = [*self._command, "build", "-o", self.output_name(project)]
        if project.build_tags:
            args.extend(["-tags", project.build_tags])
        return args

    def build(self, project: Project) -> BuildResult:
        """
        Build the project.

        Args:
            project: Project to build

        Returns:
            BuildResult with captured stderr on failure
        """
        self.log.info("build_started", name=project.name)

        with self._locker.hold(project.name):
            args = self.build_args(project)
            env = {**os.environ, **self._env_overrides}
            start = time.perf_counter()

            try:
                completed = subprocess.run(
                    args,
                    cwd=project.root_path,
                    env=env,
                    stdout=subprocess.DEVNULL,
                    stderr=subprocess.PIPE,
                    text=True,
                    errors="replace",
                )
            except OSError as e:
                self.log.error("build_tool_unavailable", command=args[0], error=str(e))
                return BuildResult(
                    success=False,
                    diagnostics=str(e),
                    duration=time.perf_counter() - start,
                )

            duration = time.perf_counter() - start

        if completed.returncode != 0:
            return BuildResult(
                success=False,
                diagnostics=completed.stderr,
                returncode=completed.returncode,
                duration=duration,
            )

        self.log.debug("build_succeeded", name=project.name, duration=round(duration, 3))
        return BuildResult(success=True, returncode=0, duration=duration)
