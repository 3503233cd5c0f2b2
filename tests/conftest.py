"""Shared test helpers: an in-memory version-control fake and git fixtures."""

import shutil
from datetime import datetime, timezone
from pathlib import Path

import pytest

from bundlesync.config.options import Settings

ORIGIN_FILE = ".fake-origin"
COMMIT_DATE = datetime(2024, 3, 1, 12, 30, 0, tzinfo=timezone.utc)

requires_git = pytest.mark.skipif(shutil.which("git") is None, reason="git not installed")


def make_settings(root: str | Path, **overrides) -> Settings:
    root = Path(root)
    values = {
        "dotfiles": root,
        "bundle_dir": root / "bundle",
        "trash_dir": root / "Trashed-Bundles",
        "doc_dir": root / "doc",
        "vimrc": root / "vimrc",
    }
    values.update(overrides)
    return Settings(**values)


class FakeVcs:
    """``VersionControl`` stand-in that fakes working copies on disk.

    A "working copy" is a directory holding a ``.fake-origin`` file with its
    URL. Every mutating call is recorded in ``calls``.
    """

    def __init__(self, versions: dict | None = None, remote_branches: set | None = None):
        self.calls: list[tuple] = []
        self.versions = versions or {}
        self.remote_branches = remote_branches or set()
        self.local_branches: dict[str, set] = {}
        self.excluded: dict[str, set] = {}
        self.fail_on: set[str] = set()

    def _record(self, *call):
        self.calls.append(call)
        if call[0] in self.fail_on:
            from bundlesync.errors import VcsCommandError

            raise VcsCommandError(f"git {call[0]}", 128, "fatal: simulated")

    def calls_named(self, name: str) -> list[tuple]:
        return [c for c in self.calls if c[0] == name]

    def clone(self, url, path):
        self._record("clone", url, Path(path).name)
        path = Path(path)
        path.mkdir(parents=True)
        (path / ORIGIN_FILE).write_text(url)
        self.local_branches[path.name] = {"master"}

    def fetch_updates(self, path):
        self._record("fetch", Path(path).name)

    def checkout_ref(self, path, ref):
        self._record("checkout", Path(path).name, ref)
        if ref in self.remote_branches:
            self.local_branches.setdefault(Path(path).name, set()).add(ref)

    def pull_branch(self, path, branch=None):
        self._record("pull", Path(path).name, branch)

    def current_origin_url(self, path):
        origin = Path(path) / ORIGIN_FILE
        return origin.read_text() if origin.is_file() else None

    def is_local_branch(self, path, ref):
        return ref in self.local_branches.get(Path(path).name, set())

    def add_submodule(self, url, path):
        self._record("submodule_add", url, Path(path).name)
        path = Path(path)
        path.mkdir(parents=True)
        (path / ORIGIN_FILE).write_text(url)

    def init_submodules(self):
        self._record("submodule_init")

    def update_submodules(self):
        self._record("submodule_update")

    def stage_path(self, path):
        self._record("stage", Path(path).name)

    def stage_removed_path(self, path):
        self._record("unstage", Path(path).name)

    def detach_submodule(self, path):
        self._record("detach", Path(path).name)
        return True

    def exclude_path(self, path, pattern):
        patterns = self.excluded.setdefault(Path(path).name, set())
        added = pattern not in patterns
        patterns.add(pattern)
        return added

    def describe_version(self, path):
        return self.versions.get(Path(path).name)

    def last_commit_date(self, path):
        return COMMIT_DATE if (Path(path) / ORIGIN_FILE).is_file() else None


@pytest.fixture
def git_identity(monkeypatch):
    """Give git a committer identity and allow file:// submodules."""
    for var in ("GIT_AUTHOR_NAME", "GIT_COMMITTER_NAME"):
        monkeypatch.setenv(var, "Test User")
    for var in ("GIT_AUTHOR_EMAIL", "GIT_COMMITTER_EMAIL"):
        monkeypatch.setenv(var, "test@example.com")
    monkeypatch.setenv("GIT_CONFIG_COUNT", "1")
    monkeypatch.setenv("GIT_CONFIG_KEY_0", "protocol.file.allow")
    monkeypatch.setenv("GIT_CONFIG_VALUE_0", "always")
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
