"""Git operations — clone, fetch, checkout, submodules, inspect working copies."""

from __future__ import annotations

import logging
import re
import shutil
from datetime import datetime
from pathlib import Path

from git import Git, GitCommandError, InvalidGitRepositoryError, NoSuchPathError, Repo
from git.config import GitConfigParser

from bundlesync.errors import BundleSyncError, VcsCommandError

logger = logging.getLogger(__name__)

FALLBACK_BRANCH = "master"
_STDERR_RE = re.compile(r"^\s*stderr: '(.*)'\s*$", re.DOTALL)
_GITDIR_RE = re.compile(r"^gitdir:\s*(.+)$", re.MULTILINE)


def _command_error(exc: GitCommandError) -> VcsCommandError:
    """Translate GitPython's exception into the port's error type."""
    if isinstance(exc.command, (list, tuple)):
        command = " ".join(str(part) for part in exc.command)
    else:
        command = str(exc.command)
    output = exc.stderr or exc.stdout or ""
    match = _STDERR_RE.match(output)
    if match:
        output = match.group(1)
    return VcsCommandError(command, exc.status, output.strip())


def _open_repo(path: Path) -> Repo | None:
    """Open ``path`` as a working copy, or None if it is not one."""
    try:
        return Repo(path)
    except (InvalidGitRepositoryError, NoSuchPathError):
        return None


class GitBackend:
    """``VersionControl`` implementation backed by the git CLI via GitPython.

    Args:
        root: The dotfiles repository. Submodule operations run here and
            take paths relative to it.
    """

    def __init__(self, root: str | Path | None = None):
        self.root = Path(root) if root else None

    # ── Plumbing ──────────────────────────────────────────────────────

    def _run(self, cwd: Path, *args: str) -> str:
        logger.debug("git %s  (in %s)", " ".join(args), cwd)
        try:
            return Git(str(cwd)).execute(["git", *args])
        except GitCommandError as e:
            raise _command_error(e) from e

    def _require_root(self) -> Path:
        if self.root is None:
            raise BundleSyncError("Submodule mode needs the dotfiles repository root")
        return self.root

    def _relative(self, path: Path) -> str:
        root = self._require_root()
        try:
            return Path(path).resolve().relative_to(root.resolve()).as_posix()
        except ValueError:
            raise BundleSyncError(f"{path} is not inside the dotfiles repository {root}")

    # ── Working copy lifecycle ───────────────────────────────────────

    def clone(self, url: str, path: Path) -> None:
        logger.debug("git clone %s %s", url, path)
        try:
            Repo.clone_from(url, str(path)).close()
        except GitCommandError as e:
            raise _command_error(e) from e

    def fetch_updates(self, path: Path) -> None:
        self._run(path, "fetch", "--quiet", "--tags", "origin")

    def checkout_ref(self, path: Path, ref: str) -> None:
        self._run(path, "checkout", "--quiet", ref)

    def pull_branch(self, path: Path, branch: str | None = None) -> None:
        """Switch to ``branch`` if needed, then fast-forward it from origin.

        Pulls are fast-forward only: a bundle with local commits that have
        diverged from upstream stops the run instead of being merged.
        """
        branch = branch or self.default_branch(path)
        if self.current_branch(path) != branch:
            self._run(path, "checkout", "--quiet", branch)
        self._run(path, "pull", "--quiet", "--ff-only", "origin", branch)

    # ── Queries ──────────────────────────────────────────────────────

    def current_origin_url(self, path: Path) -> str | None:
        repo = _open_repo(path)
        if repo is None:
            return None
        with repo:
            if "origin" not in [remote.name for remote in repo.remotes]:
                return None
            return repo.remotes.origin.url

    def is_local_branch(self, path: Path, ref: str) -> bool:
        repo = _open_repo(path)
        if repo is None:
            return False
        with repo:
            return ref in [head.name for head in repo.heads]

    def current_branch(self, path: Path) -> str | None:
        repo = _open_repo(path)
        if repo is None:
            return None
        with repo:
            if repo.head.is_detached:
                return None
            return repo.active_branch.name

    def default_branch(self, path: Path) -> str:
        """Return the branch ``origin/HEAD`` points at.

        Without ``origin/HEAD``, ``main`` then ``master`` are tried.
        """
        repo = _open_repo(path)
        if repo is None:
            return FALLBACK_BRANCH
        with repo:
            try:
                target = repo.git.symbolic_ref("refs/remotes/origin/HEAD")
                return target.strip()[len("refs/remotes/origin/"):]
            except GitCommandError:
                pass
            remote_refs: set[str] = set()
            if "origin" in [remote.name for remote in repo.remotes]:
                remote_refs = {ref.name for ref in repo.remotes.origin.refs}
        for candidate in ("main", "master"):
            if f"origin/{candidate}" in remote_refs:
                return candidate
        return FALLBACK_BRANCH

    def describe_version(self, path: Path) -> str | None:
        repo = _open_repo(path)
        if repo is None:
            return None
        repo.close()
        try:
            return self._run(path, "describe", "--tags") or None
        except VcsCommandError:
            return None

    def last_commit_date(self, path: Path) -> datetime | None:
        repo = _open_repo(path)
        if repo is None:
            return None
        with repo:
            try:
                return repo.head.commit.committed_datetime
            except ValueError:
                # no commits yet
                return None

    # ── Ignore rules ─────────────────────────────────────────────────

    def exclude_path(self, path: Path, pattern: str) -> bool:
        repo = _open_repo(path)
        if repo is None:
            raise BundleSyncError(f"{path} is not a git working copy")
        with repo:
            exclude = Path(repo.git_dir) / "info" / "exclude"
        existing = exclude.read_text() if exclude.exists() else ""
        if pattern in existing.splitlines():
            return False
        exclude.parent.mkdir(parents=True, exist_ok=True)
        separator = "" if not existing or existing.endswith("\n") else "\n"
        with open(exclude, "a") as f:
            f.write(f"{separator}{pattern}\n")
        logger.debug("Excluded %s in %s", pattern, exclude)
        return True

    # ── Submodules (run in the dotfiles repository) ──────────────────

    def add_submodule(self, url: str, path: Path) -> None:
        self._run(self._require_root(), "submodule", "--quiet", "add", url, self._relative(path))

    def init_submodules(self) -> None:
        self._run(self._require_root(), "submodule", "--quiet", "init")

    def update_submodules(self) -> None:
        self._run(self._require_root(), "submodule", "--quiet", "update")

    def stage_path(self, path: Path) -> None:
        self._run(self._require_root(), "add", "--", self._relative(path))

    def stage_removed_path(self, path: Path) -> None:
        self._run(
            self._require_root(),
            "rm", "--cached", "-r", "-q", "--ignore-unmatch", "--", self._relative(path),
        )

    def detach_submodule(self, path: Path) -> bool:
        """Move a submodule's git directory into its own checkout.

        ``git submodule add`` keeps the repository under
        ``.git/modules/<path>`` and leaves a ``gitdir:`` file in the checkout.
        Once that checkout is moved elsewhere the relative link breaks, and the
        leftover module directory blocks adding a submodule at the same path.
        """
        path = Path(path)
        gitfile = path / ".git"
        if not gitfile.is_file():
            return False
        match = _GITDIR_RE.match(gitfile.read_text())
        if not match:
            raise BundleSyncError(f"{gitfile} does not point at a git directory")
        git_dir = (path / match.group(1).strip()).resolve()
        if not git_dir.is_dir():
            raise BundleSyncError(f"Git directory {git_dir} for {path} is missing")

        with GitConfigParser(str(git_dir / "config"), read_only=False) as config:
            if config.has_option("core", "worktree"):
                config.remove_option("core", "worktree")
        gitfile.unlink()
        shutil.move(str(git_dir), str(gitfile))
        logger.debug("Moved git directory %s into %s", git_dir, path)
        return True
