"""Version-control capability consumed by the sync engine."""

from __future__ import annotations

import logging
import os
import shlex
from enum import StrEnum
from typing import TYPE_CHECKING, Any, Protocol

from git import FetchInfo, GitCommandError, InvalidGitRepositoryError, NoSuchPathError, Repo
from git.exc import BadName

from webhook_mirror.errors import VcsError

if TYPE_CHECKING:
    from pathlib import Path

    from webhook_mirror.entities.mapping import RefSelector, SshAuth

logger = logging.getLogger(__name__)


class FetchResult(StrEnum):
    """Non-error outcomes of a fetch."""

    UP_TO_DATE = "up_to_date"
    UPDATED = "updated"


class GitBackend(Protocol):
    """Clone/fetch/resolve/reset primitives; every failure raises ``VcsError``."""

    def open(self, directory: Path) -> Any: ...

    def close(self, handle: Any) -> None: ...

    def clone(self, url: str, directory: Path, ref: RefSelector, auth: SshAuth) -> None: ...

    def fetch(self, handle: Any, remote: str, ref: RefSelector, auth: SshAuth) -> FetchResult: ...

    def resolve_ref(self, handle: Any, ref_name: str) -> str: ...

    def hard_reset(self, handle: Any, commit: str) -> None: ...


def fetch_refspec(remote: str, ref: RefSelector) -> str:
    """Refspec updating exactly the tracked ref."""
    if ref.is_tag:
        return f"+refs/tags/{ref.name}:refs/tags/{ref.name}"
    return f"+refs/heads/{ref.name}:refs/remotes/{remote}/{ref.name}"


def ssh_environment(auth: SshAuth) -> dict[str, str]:
    """Environment making git's ssh use the configured private key."""
    if not auth.enabled:
        return {}
    if auth.passphrase:
        logger.warning(
            "Key %s has a passphrase; it must be loaded into ssh-agent, "
            "git runs non-interactively",
            auth.private_key,
        )
    key = os.path.expanduser(str(auth.private_key))
    return {
        "GIT_SSH_COMMAND": f"ssh -i {shlex.quote(key)} -o IdentitiesOnly=yes -o BatchMode=yes",
    }


class GitPythonBackend:
    """``GitBackend`` implemented with GitPython on top of the git binary."""

    def open(self, directory: Path) -> Repo:
        try:
            repo = Repo(directory)
        except (InvalidGitRepositoryError, NoSuchPathError) as e:
            raise VcsError(f"{directory} is not a git working copy") from e
        if repo.bare:
            repo.close()
            raise VcsError(f"{directory} has no work tree")
        return repo

    def close(self, handle: Repo) -> None:
        handle.close()

    def clone(self, url: str, directory: Path, ref: RefSelector, auth: SshAuth) -> None:
        env = ssh_environment(auth)
        try:
            repo = Repo.clone_from(
                url,
                directory,
                env=env or None,
                branch=ref.name,
                single_branch=True,
            )
        except GitCommandError as e:
            raise VcsError(f"clone of {url} ({ref}) failed: {e.stderr.strip() or e}") from e
        repo.close()

    def fetch(self, handle: Repo, remote: str, ref: RefSelector, auth: SshAuth) -> FetchResult:
        try:
            origin = handle.remote(remote)
        except ValueError as e:
            raise VcsError(f"remote {remote!r} is not configured") from e

        try:
            with handle.git.custom_environment(**ssh_environment(auth)):
                infos = origin.fetch(fetch_refspec(remote, ref))
        except GitCommandError as e:
            raise VcsError(f"fetch from {remote} failed: {e.stderr.strip() or e}") from e

        if all(info.flags & FetchInfo.HEAD_UPTODATE for info in infos):
            return FetchResult.UP_TO_DATE
        return FetchResult.UPDATED

    def resolve_ref(self, handle: Repo, ref_name: str) -> str:
        try:
            return handle.commit(ref_name).hexsha
        except (BadName, ValueError, GitCommandError) as e:
            raise VcsError(f"cannot resolve {ref_name}: {e}") from e

    def hard_reset(self, handle: Repo, commit: str) -> None:
        try:
            handle.head.reset(commit=commit, index=True, working_tree=True)
        except GitCommandError as e:
            raise VcsError(f"hard reset to {commit} failed: {e.stderr.strip() or e}") from e
