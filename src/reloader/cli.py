"""
hotrun Command Line Entry Point.

Watches the current directory, rebuilds on change and restarts the
freshly built binary.
Requires Python 3.11+.

Usage:
    hotrun
"""

import argparse
import os
import sys
from pathlib import Path

from pydantic import ValidationError

from builder.build_runner import BuildRunner
from process.supervisor import ProcessSupervisor
from reloader.models import Project
from reloader.watch_loop import WatchLoop
from utils.config import Settings, get_settings
from utils.errors import ReloaderError
from utils.logger import configure_logging, get_logger
from watcher.path_filter import PathFilter, WatchRules


logger = get_logger("hotrun")

DESCRIPTION = """\
Run this in the directory holding your main package. Every change to a
watched source file rebuilds the project and restarts the binary.
This version takes no arguments; settings come from the environment or a
.env file (WATCHER_*, BUILD_*, PROCESS_*, LOG_*)."""


def build_parser() -> argparse.ArgumentParser:
    return argparse.ArgumentParser(
        prog="hotrun",
        description=DESCRIPTION,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )


def create_loop(root: Path, settings: Settings) -> WatchLoop:
    """
    Wire up a WatchLoop for the project rooted at root.

    Raises:
        InvalidPatternError: if a configured pattern does not compile
    """
    project = Project.from_path(root, build_tags=settings.build.tags)

    path_filter = PathFilter(
        WatchRules.from_lists(
            settings.watcher.watch_patterns,
            settings.watcher.ignore_patterns,
        )
    )
    path_filter.validate()

    builder = BuildRunner(
        command=settings.build.command,
        env_overrides=settings.build.env,
    )
    supervisor = ProcessSupervisor(
        project,
        executable=builder.output_name(project),
        kill_timeout=settings.process.kill_timeout,
    )

    return WatchLoop(
        project,
        path_filter,
        builder,
        supervisor,
        debounce_delay_ms=settings.watcher.debounce_delay_ms,
        recursive=settings.watcher.recursive,
    )


def main(argv: list[str] | None = None) -> int:
    """Run the live-reload loop until interrupted."""
    build_parser().parse_args(argv)

    try:
        settings = get_settings()
    except ValidationError as e:
        # Logging is not configured yet; structlog's defaults still print
        logger.error("invalid_settings", error=str(e))
        return 1

    configure_logging()
    root = Path(os.getcwd())

    try:
        loop = create_loop(root, settings)
        logger.info("watching_project", name=loop.project.name, path=str(loop.project.root_path))
        loop.run()
    except KeyboardInterrupt:
        logger.info("interrupted")
        return 0
    except ReloaderError as e:
        logger.error("fatal_error", error=str(e))
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
