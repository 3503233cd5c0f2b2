"""Version-control access for the reconciler.

The engine only ever talks to the ``VersionControl`` protocol; ``GitBackend``
is the production implementation on top of GitPython.
"""

from bundlesync.vcs.git_backend import GitBackend
from bundlesync.vcs.port import VersionControl

__all__ = ["GitBackend", "VersionControl"]
