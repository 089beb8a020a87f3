"""
hotrun Builder Package.

Serialized invocation of the project's build tool.
Requires Python 3.11+.
"""

from builder.build_runner import BuildResult, BuildRunner
from builder.locks import NamedLocker

__all__ = ["BuildResult", "BuildRunner", "NamedLocker"]
