"""Trash archiver — move a bundle directory into a numbered trash slot.

Slots are ``<name>-01`` through ``<name>-100`` under the trash root. The
first free slot wins and an existing slot is never reused, so archiving the
same bundle name repeatedly keeps every earlier copy.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

from bundlesync.errors import TrashExhausted
from bundlesync.trash.manifest import strip_submodule_file
from bundlesync.vcs.port import VersionControl

logger = logging.getLogger(__name__)

MAX_TRASH_SLOTS = 100


class TrashArchiver:
    """Moves directories to the trash root.

    Args:
        trash_dir: Where archived bundles go. Created on first use.
        vcs: Needed in submodule mode to unregister the path.
        submodule_root: The dotfiles repository when bundles are tracked as
            submodules; None for plain clones.
    """

    def __init__(
        self,
        trash_dir: str | Path,
        vcs: VersionControl | None = None,
        submodule_root: str | Path | None = None,
    ):
        self.trash_dir = Path(trash_dir)
        self.vcs = vcs
        self.submodule_root = Path(submodule_root) if submodule_root else None

    def next_slot(self, name: str) -> Path:
        """Return the first unoccupied ``name-NN`` path."""
        for number in range(1, MAX_TRASH_SLOTS + 1):
            candidate = self.trash_dir / f"{name}-{number:02d}"
            if not candidate.exists() and not candidate.is_symlink():
                return candidate
        raise TrashExhausted(name, MAX_TRASH_SLOTS)

    def archive(self, path: str | Path) -> Path:
        """Move ``path`` into the trash and return its new location.

        In submodule mode the checkout first takes its git directory back
        from the superproject, so the archived copy is a working repository
        wherever the trash lives.
        """
        path = Path(path)
        destination = self.next_slot(path.name)
        self.trash_dir.mkdir(parents=True, exist_ok=True)

        if self.submodule_root is not None and self.vcs is not None:
            self.vcs.detach_submodule(path)

        logger.info("Trashing %s -> %s", path, destination)
        shutil.move(str(path), str(destination))

        if self.submodule_root is not None:
            self._unregister_submodule(path)
        return destination

    def _unregister_submodule(self, path: Path) -> None:
        if self.vcs is not None:
            self.vcs.stage_removed_path(path)

        try:
            relative = path.resolve().relative_to(self.submodule_root.resolve()).as_posix()
        except ValueError:
            logger.warning("%s is outside %s; leaving submodule manifests alone",
                           path, self.submodule_root)
            return

        for manifest in (
            self.submodule_root / ".gitmodules",
            self.submodule_root / ".git" / "config",
        ):
            try:
                if strip_submodule_file(manifest, relative):
                    logger.debug("Removed submodule %s from %s", relative, manifest)
            except OSError as e:
                logger.warning("Could not clean %s from %s: %s", relative, manifest, e)
