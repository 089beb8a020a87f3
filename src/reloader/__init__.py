"""
hotrun Reloader Package.

The watch, build and restart loop and its command line entry point.
Requires Python 3.11+.
"""

from reloader.models import Project

__all__ = ["Project"]
