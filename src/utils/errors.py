"""hotrun error types."""


class ReloaderError(Exception):
    """Base error for the live-reload supervisor."""

    pass


class InvalidPatternError(ReloaderError):
    """A watch or ignore pattern is not a valid regular expression."""

    def __init__(self, pattern: str, reason: str) -> None:
        super().__init__(f"Invalid path pattern {pattern!r}: {reason}")
        self.pattern = pattern
        self.reason = reason


class BuildError(ReloaderError):
    """The build tool exited with a non-zero status."""

    def __init__(self, name: str, diagnostics: str) -> None:
        super().__init__(f"Build failed for {name}: {diagnostics.strip()}")
        self.name = name
        self.diagnostics = diagnostics


class ProcessTerminationError(ReloaderError):
    """A live process could not be signalled."""

    def __init__(self, pid: int, cause: OSError) -> None:
        super().__init__(f"Failed to kill process {pid}: {cause}")
        self.pid = pid
        self.cause = cause


class WatchSubscriptionError(ReloaderError):
    """Directory monitoring could not be established."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"Cannot watch {path}: {reason}")
        self.path = path
        self.reason = reason
