"""Bundle reconciler — converge the bundle root onto the declared directives.

Every run re-derives what to do from what is on disk:

1. A bundle with no directory is created (cloned, or added as a submodule).
2. A bundle whose directory has the declared origin is refreshed in place.
3. A bundle whose directory points at another origin (or is not a working
   copy at all) is trashed and created again.
4. Static bundles, and refreshes when updates are disabled, are left alone.
5. Any directory no declaration accounts for is trashed.

Nothing is stored between runs, which is what makes running twice safe.
"""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Callable

from bundlesync.config.options import Settings
from bundlesync.directives.models import BundleDirective
from bundlesync.directives.parser import load_directives
from bundlesync.engine.hooks import run_post_command
from bundlesync.engine.lock import RunLock
from bundlesync.engine.models import (
    COMPLETED_STATES,
    BundleDirectoryState,
    BundleOutcome,
    BundleState,
    Decision,
    PlannedAction,
    ReconcileReport,
)
from bundlesync.errors import BundleSyncError
from bundlesync.inventory.reporter import make_record, write_inventory
from bundlesync.trash.archiver import TrashArchiver
from bundlesync.vcs.git_backend import GitBackend
from bundlesync.vcs.port import VersionControl

logger = logging.getLogger(__name__)

DOC_TAGS_PATTERN = "doc/tags"

HookRunner = Callable[[str, str, Path], None]


def list_bundle_dirs(bundle_dir: Path) -> list[str]:
    """Names of the bundle directories currently on disk, sorted."""
    if not bundle_dir.is_dir():
        return []
    return sorted(
        entry.name
        for entry in bundle_dir.iterdir()
        if entry.is_dir() and not entry.name.startswith(".")
    )


class BundleReconciler:
    """Plans and applies one reconciliation pass over the bundle root."""

    def __init__(
        self,
        settings: Settings,
        vcs: VersionControl,
        archiver: TrashArchiver | None = None,
        hook_runner: HookRunner = run_post_command,
    ):
        self.settings = settings
        self.vcs = vcs
        self.archiver = archiver or TrashArchiver(
            settings.trash_dir,
            vcs=vcs,
            submodule_root=settings.dotfiles if settings.submodule else None,
        )
        self.hook_runner = hook_runner
        self.report = ReconcileReport()

    # ── Planning ─────────────────────────────────────────────────────

    def plan(self, directives: list[BundleDirective]) -> list[PlannedAction]:
        """Decide what to do with every declared and every on-disk bundle.

        Only reads the disk and working-copy metadata; nothing is changed.
        """
        remaining = dict.fromkeys(list_bundle_dirs(self.settings.bundle_dir))
        actions = []

        for directive in directives:
            if directive.is_static:
                remaining.pop(directive.name, None)
                actions.append(PlannedAction(directive.name, Decision.LEAVE, directive))
                continue
            actions.append(self._decide(directive, remaining))

        for name in remaining:
            observed = BundleDirectoryState(
                name, self.vcs.current_origin_url(self.settings.bundle_dir / name)
            )
            actions.append(PlannedAction(name, Decision.REMOVE, observed=observed))
        return actions

    def _decide(self, directive: BundleDirective, remaining: dict) -> PlannedAction:
        if directive.name not in remaining:
            return PlannedAction(directive.name, Decision.CREATE, directive)

        del remaining[directive.name]
        origin = self.vcs.current_origin_url(self.settings.bundle_dir / directive.name)
        observed = BundleDirectoryState(directive.name, origin)

        if origin != directive.source_url:
            decision = Decision.REORIGIN
        elif self.settings.updates:
            decision = Decision.REFRESH
        else:
            decision = Decision.LEAVE
        return PlannedAction(directive.name, decision, directive, observed)

    # ── Execution ────────────────────────────────────────────────────

    def run(self, directives: list[BundleDirective]) -> ReconcileReport:
        """Apply a full pass. Any failure aborts the remaining bundles.

        The partial report stays available on ``self.report`` when a
        ``BundleSyncError`` or filesystem error propagates.
        """
        self.report = ReconcileReport()

        if self.settings.submodule:
            self.vcs.init_submodules()
            self.vcs.update_submodules()
        self.settings.bundle_dir.mkdir(parents=True, exist_ok=True)

        for action in self.plan(directives):
            try:
                outcome = self._apply(action)
            except (BundleSyncError, OSError):
                self.report.outcomes.append(
                    BundleOutcome(action.name, action.decision, BundleState.ABORTED)
                )
                raise
            self.report.outcomes.append(outcome)

        logger.info("Reconciled bundles: %s", self.report.summary())
        return self.report

    def _apply(self, action: PlannedAction) -> BundleOutcome:
        path = self.settings.bundle_dir / action.name
        directive = action.directive
        outcome = BundleOutcome(action.name, action.decision, COMPLETED_STATES[action.decision])

        if action.decision == Decision.REMOVE:
            logger.info("Removing undeclared bundle %s", action.name)
            outcome.detail = str(self.archiver.archive(path))
            return outcome

        if action.decision == Decision.LEAVE:
            if not directive.is_static and path.is_dir():
                self.report.inventory.append(make_record(self.vcs, action.name, path))
            return outcome

        if action.decision == Decision.REORIGIN:
            logger.info(
                "%s moved from %s to %s",
                action.name,
                action.observed.origin_url if action.observed else None,
                directive.source_url,
            )
            outcome.detail = str(self.archiver.archive(path))

        if action.decision == Decision.REFRESH:
            logger.info("Updating %s", action.name)
            self.vcs.fetch_updates(path)
        else:
            logger.info("Installing %s from %s", action.name, directive.source_url)
            self._create(directive, path)

        self._sync_ref(directive, path)
        self.vcs.exclude_path(path, DOC_TAGS_PATTERN)
        if self.settings.submodule:
            self.vcs.stage_path(path)
        if directive.post_command:
            self.hook_runner(directive.name, directive.post_command, path)

        self.report.inventory.append(make_record(self.vcs, action.name, path))
        return outcome

    def update(
        self, directives: list[BundleDirective], now: datetime | None = None
    ) -> ReconcileReport:
        """Run a locked pass and rewrite the inventory file."""
        with RunLock(self.settings.lock_path):
            report = self.run(directives)
            write_inventory(self.settings.inventory_path, report.inventory, now)
        return report

    def _create(self, directive: BundleDirective, path: Path) -> None:
        if self.settings.submodule:
            self.vcs.add_submodule(directive.source_url, path)
        else:
            self.vcs.clone(directive.source_url, path)

    def _sync_ref(self, directive: BundleDirective, path: Path) -> None:
        """Move the working copy to the declared ref.

        Tags, commits and branches not yet present locally are checked out.
        A ref that already is a local branch (or no ref at all, meaning the
        remote default branch) is advanced with a pull instead, so commits on
        that branch are never thrown away by a fresh checkout.
        """
        ref = directive.ref
        if ref and not self.vcs.is_local_branch(path, ref):
            self.vcs.checkout_ref(path, ref)
        else:
            self.vcs.pull_branch(path, ref)


def update_bundles(
    settings: Settings,
    vcs: VersionControl | None = None,
    hook_runner: HookRunner = run_post_command,
    now: datetime | None = None,
) -> ReconcileReport:
    """Read the vimrc, reconcile the bundle root and rewrite the inventory.

    Directives are fully parsed before the lock is taken or any bundle is
    touched.
    """
    directives = load_directives(settings.vimrc)
    vcs = vcs or GitBackend(settings.dotfiles)
    reconciler = BundleReconciler(settings, vcs, hook_runner=hook_runner)
    return reconciler.update(directives, now)
