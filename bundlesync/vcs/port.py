"""The narrow version-control contract the engine depends on."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Protocol


class VersionControl(Protocol):
    """Operations the reconciler, archiver and reporter need from a VCS.

    Mutating operations raise ``VcsCommandError`` when the backend fails.
    Queries never raise for a missing or broken working copy; they return
    None (or False) instead.
    """

    def clone(self, url: str, path: Path) -> None: ...

    def fetch_updates(self, path: Path) -> None: ...

    def checkout_ref(self, path: Path, ref: str) -> None: ...

    def pull_branch(self, path: Path, branch: str | None = None) -> None:
        """Bring ``branch`` (the remote default when None) up to date."""
        ...

    def current_origin_url(self, path: Path) -> str | None: ...

    def is_local_branch(self, path: Path, ref: str) -> bool: ...

    def add_submodule(self, url: str, path: Path) -> None: ...

    def init_submodules(self) -> None: ...

    def update_submodules(self) -> None: ...

    def stage_path(self, path: Path) -> None: ...

    def stage_removed_path(self, path: Path) -> None: ...

    def detach_submodule(self, path: Path) -> bool:
        """Make the submodule checkout at ``path`` a standalone repository.

        Its git directory is moved out of the superproject into ``path/.git``.
        Returns False if ``path`` already carries its own git directory.
        """
        ...

    def exclude_path(self, path: Path, pattern: str) -> bool:
        """Add ``pattern`` to the working copy's local ignore rules.

        Returns True if the pattern was added, False if already present.
        """
        ...

    def describe_version(self, path: Path) -> str | None: ...

    def last_commit_date(self, path: Path) -> datetime | None: ...
