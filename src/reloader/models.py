"""
hotrun Data Models.

Requires Python 3.11+.
"""

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class Project:
    """The watched project; its name doubles as the binary name and build lock key."""

    name: str
    root_path: Path
    build_tags: str = ""

    @classmethod
    def from_path(cls, path: Path | str, build_tags: str = "") -> "Project":
        """Create a project rooted at path, named after its directory."""
        root = Path(path).resolve()
        return cls(name=root.name, root_path=root, build_tags=build_tags)
