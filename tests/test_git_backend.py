"""Tests for the GitPython backend against real local repositories."""

import tempfile
from pathlib import Path

import pytest
from git import Repo

from bundlesync.engine import BundleState, update_bundles
from bundlesync.errors import VcsCommandError
from bundlesync.trash import TrashArchiver
from bundlesync.vcs import GitBackend

from conftest import make_settings, requires_git

pytestmark = [requires_git, pytest.mark.usefixtures("git_identity")]


def _make_upstream(path: Path, tag: str | None = None) -> Repo:
    """Create a repository with one commit (and optionally a tag)."""
    repo = Repo.init(path)
    (path / "plugin").mkdir(parents=True, exist_ok=True)
    (path / "plugin" / f"{path.name}.vim").write_text('" plugin\n')
    repo.git.add(A=True)
    repo.git.commit(m="Initial commit")
    if tag:
        repo.git.tag(tag)
    return repo


def _commit(repo: Repo, filename: str, content: str = "x\n") -> None:
    (Path(repo.working_tree_dir) / filename).write_text(content)
    repo.git.add(A=True)
    repo.git.commit(m=f"Add {filename}")


def test_clone_and_inspect():
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)
        _make_upstream(root / "upstream" / "foo.git", tag="v1.0")
        url = str(root / "upstream" / "foo.git")
        dest = root / "bundle" / "foo"

        vcs = GitBackend()
        vcs.clone(url, dest)

        assert vcs.current_origin_url(dest) == url
        assert vcs.describe_version(dest) == "v1.0"
        assert vcs.last_commit_date(dest) is not None


def test_queries_on_plain_directory():
    with tempfile.TemporaryDirectory() as tmpdir:
        plain = Path(tmpdir) / "plain"
        plain.mkdir()
        vcs = GitBackend()
        assert vcs.current_origin_url(plain) is None
        assert vcs.describe_version(plain) is None
        assert vcs.last_commit_date(plain) is None
        assert vcs.is_local_branch(plain, "master") is False
        assert vcs.describe_version(Path(tmpdir) / "missing") is None


def test_describe_without_tags_is_none():
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)
        _make_upstream(root / "up")
        vcs = GitBackend()
        vcs.clone(str(root / "up"), root / "clone")
        assert vcs.describe_version(root / "clone") is None


def test_clone_failure_raises_command_error():
    with tempfile.TemporaryDirectory() as tmpdir:
        with pytest.raises(VcsCommandError) as exc:
            GitBackend().clone(str(Path(tmpdir) / "no-such-repo"), Path(tmpdir) / "dest")
        assert exc.value.exit_code != 0
        assert "clone" in exc.value.command


def test_checkout_tag_then_return_to_default_branch():
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)
        upstream = _make_upstream(root / "up", tag="v1.0")
        default = upstream.active_branch.name
        _commit(upstream, "later.txt")

        vcs = GitBackend()
        dest = root / "clone"
        vcs.clone(str(root / "up"), dest)

        vcs.checkout_ref(dest, "v1.0")
        assert vcs.current_branch(dest) is None
        assert not (dest / "later.txt").exists()

        _commit(upstream, "newest.txt")
        vcs.fetch_updates(dest)
        vcs.pull_branch(dest)

        assert vcs.current_branch(dest) == default
        assert vcs.is_local_branch(dest, default)
        assert (dest / "newest.txt").exists()


def test_checkout_remote_branch_creates_local_branch():
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)
        upstream = _make_upstream(root / "up")
        default = upstream.active_branch.name
        upstream.git.checkout("-b", "develop")
        _commit(upstream, "dev.txt")
        upstream.git.checkout(default)

        vcs = GitBackend()
        dest = root / "clone"
        vcs.clone(str(root / "up"), dest)
        assert not vcs.is_local_branch(dest, "develop")

        vcs.checkout_ref(dest, "develop")
        assert vcs.is_local_branch(dest, "develop")
        assert (dest / "dev.txt").exists()


def test_exclude_path_is_idempotent():
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)
        _make_upstream(root / "up")
        vcs = GitBackend()
        vcs.clone(str(root / "up"), root / "clone")

        assert vcs.exclude_path(root / "clone", "doc/tags") is True
        assert vcs.exclude_path(root / "clone", "doc/tags") is False
        exclude = (root / "clone" / ".git" / "info" / "exclude").read_text()
        assert exclude.splitlines().count("doc/tags") == 1


def test_submodule_add_and_archive():
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)
        _make_upstream(root / "up" / "foo.git")
        dotfiles = root / "dotfiles"
        _make_upstream(dotfiles)

        vcs = GitBackend(dotfiles)
        bundle = dotfiles / "bundle" / "foo"
        vcs.add_submodule(str(root / "up" / "foo.git"), bundle)
        vcs.stage_path(bundle)

        assert vcs.current_origin_url(bundle) == str(root / "up" / "foo.git")
        assert 'submodule "bundle/foo"' in (dotfiles / ".gitmodules").read_text()
        assert vcs.exclude_path(bundle, "doc/tags") is True

        TrashArchiver(root / "trash", vcs=vcs, submodule_root=dotfiles).archive(bundle)

        trashed = root / "trash" / "foo-01"
        assert (trashed / ".git").is_dir()
        assert vcs.current_origin_url(trashed) == str(root / "up" / "foo.git")
        assert not (dotfiles / ".git" / "modules" / "bundle" / "foo").exists()
        assert 'submodule "bundle/foo"' not in (dotfiles / ".gitmodules").read_text()
        staged = Repo(dotfiles).git.ls_files("--stage", "bundle")
        assert staged == ""


def test_end_to_end_update_is_idempotent():
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)
        _make_upstream(root / "remotes" / "foo.git")
        _make_upstream(root / "remotes" / "bar.git", tag="v1.2")
        foo_url = str(root / "remotes" / "foo.git")
        bar_url = str(root / "remotes" / "bar.git")

        settings = make_settings(root / "vim", vimrc=root / "vimrc")
        settings.vimrc.write_text(f'" Bundle: {foo_url}\n" Bundle: {bar_url} v1.2\n')
        (settings.bundle_dir / "baz").mkdir(parents=True)

        report = update_bundles(settings)

        assert {o.name: o.state for o in report.outcomes} == {
            "foo": BundleState.CREATED,
            "bar": BundleState.CREATED,
            "baz": BundleState.REMOVED,
        }
        assert (settings.trash_dir / "baz-01").is_dir()
        inventory = settings.inventory_path.read_text()
        assert "foo" in inventory
        assert "v1.2" in inventory
        assert "baz" not in inventory

        second = update_bundles(settings)
        assert not second.mutated
        assert {o.state for o in second.outcomes} == {BundleState.REFRESHED}


def test_submodule_reorigin_keeps_archived_copy_usable():
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)
        _make_upstream(root / "a" / "foo.git")
        upstream_b = _make_upstream(root / "b" / "foo.git")
        _commit(upstream_b, "fork.txt")
        old_url = str(root / "a" / "foo.git")
        new_url = str(root / "b" / "foo.git")

        dotfiles = root / "dotfiles"
        _make_upstream(dotfiles)
        settings = make_settings(
            dotfiles,
            submodule=True,
            vimrc=root / "vimrc",
            trash_dir=root / "elsewhere" / "deeper" / "trash",
        )

        settings.vimrc.write_text(f'" Bundle: {old_url}\n')
        first = update_bundles(settings)
        assert [o.state for o in first.outcomes] == [BundleState.CREATED]
        with Repo(dotfiles) as repo:
            repo.git.commit(m="Add foo")

        settings.vimrc.write_text(f'" Bundle: {new_url}\n')
        second = update_bundles(settings)
        assert [o.state for o in second.outcomes] == [BundleState.REORIGINATED]

        vcs = GitBackend(dotfiles)
        bundle = settings.bundle_dir / "foo"
        assert vcs.current_origin_url(bundle) == new_url
        assert (bundle / "fork.txt").exists()
        gitmodules = (dotfiles / ".gitmodules").read_text()
        assert new_url in gitmodules
        assert old_url not in gitmodules

        trashed = settings.trash_dir / "foo-01"
        assert (trashed / ".git").is_dir()
        assert vcs.current_origin_url(trashed) == old_url
        with Repo(trashed) as archived:
            assert archived.git.status("--porcelain") == ""
            assert archived.config_reader().has_option("core", "worktree") is False


def test_queries_close_the_repositories_they_open(monkeypatch):
    opened, closed = [], []

    class TrackingRepo(Repo):
        def __init__(self, *args, **kwargs):
            super().__init__(*args, **kwargs)
            opened.append(id(self))

        def close(self):
            closed.append(id(self))
            super().close()

    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)
        _make_upstream(root / "up", tag="v1.0")
        vcs = GitBackend()
        dest = root / "clone"
        vcs.clone(str(root / "up"), dest)

        monkeypatch.setattr("bundlesync.vcs.git_backend.Repo", TrackingRepo)
        vcs.current_origin_url(dest)
        vcs.is_local_branch(dest, "master")
        vcs.current_branch(dest)
        vcs.default_branch(dest)
        vcs.describe_version(dest)
        vcs.last_commit_date(dest)
        vcs.exclude_path(dest, "doc/tags")

        assert len(opened) == 7
        assert set(opened) <= set(closed)


def test_detach_leaves_standalone_checkout_alone():
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)
        _make_upstream(root / "up")
        vcs = GitBackend(root)
        vcs.clone(str(root / "up"), root / "clone")

        assert vcs.detach_submodule(root / "clone") is False
        assert vcs.current_origin_url(root / "clone") == str(root / "up")
