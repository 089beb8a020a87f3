"""
hotrun Test Configuration.

Pytest fixtures and configuration.
Requires Python 3.11+.
"""

import sys
import time
from collections.abc import Callable
from pathlib import Path

import pytest

from builder.build_runner import BuildRunner
from reloader.models import Project


# Stand-in for `go build`: records each call in builds.log and writes a
# shell script as the "binary". Marker files in the project root change
# its behaviour: `fail` makes it exit non-zero, `slow` makes it sleep.
FAKE_BUILD_TOOL = '''
import os
import sys
import time

args = sys.argv[1:]
out = args[args.index("-o") + 1]

with open("builds.log", "a") as fh:
    fh.write(f"start {time.time()} GOGC={os.environ.get('GOGC', '')} {' '.join(args)}\\n")

if os.path.exists("slow"):
    time.sleep(0.3)

if os.path.exists("fail"):
    sys.stderr.write("main.go:4: syntax error line 4\\n")
    sys.exit(2)

with open(out, "w") as fh:
    fh.write("#!/bin/sh\\nexec sleep 30\\n")
os.chmod(out, 0o755)

with open("builds.log", "a") as fh:
    fh.write(f"end {time.time()}\\n")
'''


@pytest.fixture
def project_dir(tmp_path: Path) -> Path:
    """Create a small Go project named `proj`."""
    root = tmp_path / "proj"
    root.mkdir()
    (root / "main.go").write_text('package main\n\nfunc main() {}\n')
    (root / "README.md").write_text("# proj\n")
    return root


@pytest.fixture
def project(project_dir: Path) -> Project:
    """Project rooted at project_dir."""
    return Project.from_path(project_dir)


@pytest.fixture
def fake_build_tool(tmp_path: Path) -> list[str]:
    """Command that behaves like `go` for the build subcommand."""
    script = tmp_path / "fake_go.py"
    script.write_text(FAKE_BUILD_TOOL)
    return [sys.executable, str(script)]


@pytest.fixture
def build_runner(fake_build_tool: list[str]) -> BuildRunner:
    """BuildRunner driving the fake build tool."""
    return BuildRunner(command=fake_build_tool)


def read_build_log(root: Path) -> list[str]:
    """Return the recorded build tool invocations, one line each."""
    log = root / "builds.log"
    if not log.exists():
        return []
    return log.read_text().splitlines()


def wait_for(predicate: Callable[[], bool], timeout: float = 5.0, interval: float = 0.02) -> bool:
    """Poll predicate until it is true or timeout elapses."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()


posix_only = pytest.mark.skipif(sys.platform.startswith("win"), reason="uses shell scripts as binaries")
