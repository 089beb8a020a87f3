"""
hotrun Path Filter.

Classifies changed file paths as watched or ignored.
Requires Python 3.11+.
"""

import re
import threading
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

from utils.config import DEFAULT_IGNORE_PATTERNS, DEFAULT_WATCH_PATTERNS
from utils.errors import InvalidPatternError


@dataclass(frozen=True)
class WatchRules:
    """Ordered inclusion and exclusion patterns, matched against full paths."""

    watch: tuple[str, ...] = tuple(DEFAULT_WATCH_PATTERNS)
    ignore: tuple[str, ...] = tuple(DEFAULT_IGNORE_PATTERNS)

    @classmethod
    def from_lists(cls, watch: Iterable[str], ignore: Iterable[str]) -> "WatchRules":
        return cls(watch=tuple(watch), ignore=tuple(ignore))


class PathFilter:
    """
    Regex based path classifier.

    Patterns are compiled on first use. At match time a pattern that does
    not compile never matches; call validate() to surface such patterns
    as configuration errors instead.
    """

    def __init__(self, rules: WatchRules | None = None) -> None:
        self._rules = rules or WatchRules()
        self._compiled: dict[str, re.Pattern[str] | None] = {}
        self._lock = threading.Lock()

    @property
    def rules(self) -> WatchRules:
        return self._rules

    def _compile(self, pattern: str) -> re.Pattern[str] | None:
        with self._lock:
            if pattern not in self._compiled:
                try:
                    self._compiled[pattern] = re.compile(pattern)
                except re.error:
                    self._compiled[pattern] = None
            return self._compiled[pattern]

    def _matches_any(self, patterns: tuple[str, ...], path: str | Path) -> bool:
        target = str(path)
        for pattern in patterns:
            regex = self._compile(pattern)
            if regex is not None and regex.search(target):
                return True
        return False

    def is_ignored(self, path: str | Path) -> bool:
        """Check if path matches any ignore pattern."""
        return self._matches_any(self._rules.ignore, path)

    def is_watched(self, path: str | Path) -> bool:
        """Check if path matches any watch pattern."""
        return self._matches_any(self._rules.watch, path)

    def should_act(self, path: str | Path) -> bool:
        """Check if a change to path should trigger a rebuild."""
        if self.is_ignored(path):
            return False
        return self.is_watched(path)

    def validate(self) -> None:
        """
        Compile every pattern up front.

        Raises:
            InvalidPatternError: for the first pattern that does not compile
        """
        for pattern in (*self._rules.ignore, *self._rules.watch):
            try:
                re.compile(pattern)
            except re.error as e:
                raise InvalidPatternError(pattern, str(e)) from e
