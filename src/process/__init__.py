"""
hotrun Process Package.

Lifecycle management for the supervised application process.
Requires Python 3.11+.
"""

from process.supervisor import ProcessSupervisor, RunningInstance, executable_path

__all__ = ["ProcessSupervisor", "RunningInstance", "executable_path"]
