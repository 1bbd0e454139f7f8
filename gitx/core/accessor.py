"""The capability interface every Git accessor implements."""

from collections.abc import Callable
from pathlib import Path
from typing import Protocol

from gitx.models.git import GitBranch, GitCommit, GitCommitDetail, GitTag, WorkingTreeState


class GitAccessor(Protocol):
    """Read and mutate one on-disk repository.

    Implementations own no persisted state. Errors are raised as
    ``gitx.errors.GitError`` subclasses.
    """

    path: Path

    def verify(self) -> None:
        """Raise ``NotARepository`` unless the path holds a repository."""
        ...

    def resolve_ref(self, ref: str) -> str:
        """Return the commit oid a ref points to, or raise ``RefNotFound``."""
        ...

    def list_commits(
        self, ref: str, limit: int = 0, exclude: list[str] | None = None
    ) -> list[GitCommit]:
        """Return commits reachable from ``ref``, newest committer time first.

        Commits reachable from an oid in ``exclude`` may be left out; the
        hint is ignored when an excluded oid is unknown.
        """
        ...

    def commit_detail(self, oid: str) -> GitCommitDetail:
        """Return a commit with its diff stats and patch, or raise ``MissingObject``."""
        ...

    def list_branches(self, include_remote: bool = True) -> list[GitBranch]:
        ...

    def list_tags(self) -> list[GitTag]:
        ...

    def working_tree_state(self) -> WorkingTreeState:
        ...

    def checkout(self, branch: str) -> None:
        ...

    def cherry_pick(self, oid: str) -> str:
        """Apply one commit onto HEAD and return the new commit's oid."""
        ...

    def push(self, remote: str, branch: str) -> str:
        """Push ``branch`` to ``remote`` and return the remote's message."""
        ...

    def fetch(self, remote: str, prune: bool = True) -> None:
        ...


AccessorFactory = Callable[[Path], GitAccessor]
