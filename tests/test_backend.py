"""Tests for the GitPython backend against throwaway local repositories."""

from __future__ import annotations

import shutil
from pathlib import Path

import pytest
from git import Actor, Repo

from webhook_mirror.config import RetryPolicy
from webhook_mirror.entities.mapping import RefKind, RefSelector, SshAuth
from webhook_mirror.entities.outcome import OutcomeKind
from webhook_mirror.errors import VcsError
from webhook_mirror.sync.backend import FetchResult, GitPythonBackend, fetch_refspec, ssh_environment
from webhook_mirror.sync.engine import SyncEngine

pytestmark = pytest.mark.skipif(shutil.which("git") is None, reason="git binary not available")

ACTOR = Actor("Mirror Test", "mirror@example.com")
MAIN = RefSelector(kind=RefKind.BRANCH, name="main")
NO_AUTH = SshAuth()


def commit_file(repo: Repo, name: str, content: str) -> str:
    path = Path(repo.working_tree_dir) / name
    path.write_text(content)
    repo.index.add([name])
    return repo.index.commit(f"update {name}", author=ACTOR, committer=ACTOR).hexsha


@pytest.fixture
def origin(tmp_path: Path) -> Repo:
    repo = Repo.init(tmp_path / "origin")
    commit_file(repo, "README.md", "one\n")
    repo.git.branch("-M", "main")
    return repo


class TestHelpers:
    def test_branch_refspec(self) -> None:
        assert fetch_refspec("origin", MAIN) == "+refs/heads/main:refs/remotes/origin/main"

    def test_tag_refspec(self) -> None:
        tag = RefSelector(kind=RefKind.TAG, name="v1")
        assert fetch_refspec("origin", tag) == "+refs/tags/v1:refs/tags/v1"

    def test_ssh_environment(self) -> None:
        assert ssh_environment(NO_AUTH) == {}
        env = ssh_environment(SshAuth(private_key=Path("/keys/deploy key")))
        assert "-i '/keys/deploy key'" in env["GIT_SSH_COMMAND"]


class TestGitPythonBackend:
    def test_clone_fetch_reset(self, origin: Repo, tmp_path: Path) -> None:
        backend = GitPythonBackend()
        work = tmp_path / "work"

        backend.clone(origin.working_tree_dir, work, MAIN, NO_AUTH)
        handle = backend.open(work)
        try:
            assert backend.resolve_ref(handle, "HEAD") == origin.head.commit.hexsha

            new_sha = commit_file(origin, "README.md", "two\n")
            assert backend.fetch(handle, "origin", MAIN, NO_AUTH) is FetchResult.UPDATED
            assert backend.resolve_ref(handle, "refs/remotes/origin/main") == new_sha

            (work / "README.md").write_text("local edit\n")
            backend.hard_reset(handle, new_sha)

            assert backend.resolve_ref(handle, "HEAD") == new_sha
            assert (work / "README.md").read_text() == "two\n"
            assert backend.fetch(handle, "origin", MAIN, NO_AUTH) is FetchResult.UP_TO_DATE
        finally:
            backend.close(handle)

    def test_open_non_repository(self, tmp_path: Path) -> None:
        with pytest.raises(VcsError):
            GitPythonBackend().open(tmp_path)

    def test_unknown_remote(self, origin: Repo, tmp_path: Path) -> None:
        backend = GitPythonBackend()
        backend.clone(origin.working_tree_dir, tmp_path / "work", MAIN, NO_AUTH)
        handle = backend.open(tmp_path / "work")
        try:
            with pytest.raises(VcsError, match="upstream"):
                backend.fetch(handle, "upstream", MAIN, NO_AUTH)
        finally:
            backend.close(handle)

    def test_unknown_ref(self, origin: Repo, tmp_path: Path) -> None:
        backend = GitPythonBackend()
        backend.clone(origin.working_tree_dir, tmp_path / "work", MAIN, NO_AUTH)
        handle = backend.open(tmp_path / "work")
        try:
            with pytest.raises(VcsError):
                backend.resolve_ref(handle, "refs/remotes/origin/nope")
        finally:
            backend.close(handle)

    def test_clone_missing_branch(self, origin: Repo, tmp_path: Path) -> None:
        with pytest.raises(VcsError):
            GitPythonBackend().clone(
                origin.working_tree_dir, tmp_path / "work", RefSelector(name="nope"), NO_AUTH
            )


@pytest.mark.asyncio
class TestEngineWithGit:
    async def test_initialize_then_update(self, origin: Repo, make_mapping, tmp_path: Path) -> None:
        marker = tmp_path / "updated"
        mapping = make_mapping(
            url=origin.working_tree_dir, directory=tmp_path / "work", name="main", trigger=marker
        )
        engine = SyncEngine(GitPythonBackend())
        policy = RetryPolicy(attempts=1, delay=0)

        first = await engine.run(mapping, policy)
        assert first.kind is OutcomeKind.INITIALIZED
        assert marker.exists()

        new_sha = commit_file(origin, "app.py", "print('v2')\n")
        second = await engine.run(mapping, policy)
        assert second.kind is OutcomeKind.UPDATED
        assert second.local_hash == new_sha
        assert (tmp_path / "work" / "app.py").exists()

        third = await engine.run(mapping, policy)
        assert third.kind is OutcomeKind.UP_TO_DATE

    async def test_tag_mapping_follows_moved_tag(self, origin: Repo, make_mapping, tmp_path: Path) -> None:
        first_sha = origin.head.commit.hexsha
        origin.create_tag("release")
        mapping = make_mapping(
            url=origin.working_tree_dir, directory=tmp_path / "work", kind=RefKind.TAG, name="release"
        )
        engine = SyncEngine(GitPythonBackend())
        policy = RetryPolicy(attempts=1, delay=0)

        initialized = await engine.run(mapping, policy)
        assert initialized.local_hash == first_sha

        new_sha = commit_file(origin, "README.md", "release 2\n")
        origin.create_tag("release", ref=new_sha, force=True)

        updated = await engine.run(mapping, policy)
        assert updated.kind is OutcomeKind.UPDATED
        assert updated.local_hash == new_sha
