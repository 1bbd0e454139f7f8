"""Branch diff: commits on one branch with no equivalent on another."""

from collections.abc import Hashable
from typing import Protocol

import logbook

from gitx.models.repository import Commit, Repository
from gitx.models.results import UnmatchedCommit
from gitx.store.commit_store import CommitStore
from gitx.errors import BranchNotSynced, ConfigError


log = logbook.Logger(__name__)


class FingerprintPolicy(Protocol):
    """Decides when two commits are the same change.

    Two commits match when their fingerprints are equal. A cherry-pick
    creates a new oid, so the fingerprint must only use fields a
    cherry-pick preserves.
    """

    name: str

    def fingerprint(self, commit: Commit) -> Hashable:
        ...


class AuthorSummaryPolicy:
    """Match on author name and summary line."""

    name = "author-summary"

    def fingerprint(self, commit: Commit) -> Hashable:
        return (commit.author_name, commit.summary)


class AuthorSummaryTimePolicy:
    """Match on author name, summary and committer time.

    Only recognizes copies that kept the original committer time, e.g.
    branches created by fast-forward or rebased with ``--committer-date-is-author-date``.
    """

    name = "author-summary-time"

    def fingerprint(self, commit: Commit) -> Hashable:
        return (commit.author_name, commit.summary, commit.committer_time)


POLICIES: dict[str, type] = {
    AuthorSummaryPolicy.name: AuthorSummaryPolicy,
    AuthorSummaryTimePolicy.name: AuthorSummaryTimePolicy,
}


def get_policy(name: str) -> FingerprintPolicy:
    """Return the fingerprint policy registered under ``name``."""
    try:
        return POLICIES[name]()
    except KeyError:
        known = ", ".join(sorted(POLICIES))
        raise ConfigError(f"Unknown match policy: {name} (expected one of {known})")


class BranchDiffMatcher:
    """Computes branch differences from the commit store alone."""

    def __init__(self, store: CommitStore, policy: FingerprintPolicy | None = None) -> None:
        self._store = store
        self.policy = policy or AuthorSummaryPolicy()

    def diff(
        self,
        repository: Repository,
        from_branch: str,
        to_branch: str,
        limit: int | None = None,
    ) -> list[UnmatchedCommit]:
        """List commits on ``from_branch`` that have no match on ``to_branch``.

        The result is oldest first, ordered by (committer time, oid), which
        is the order to cherry-pick them in. ``limit`` keeps the oldest.

        Raises:
            BranchNotSynced: if either branch has never been synced
        """
        for branch in (from_branch, to_branch):
            if self._store.get_branch(repository.id, branch) is None:
                raise BranchNotSynced(branch)

        destination = self._store.branch_commits(repository.id, to_branch)
        destination_oids = {c.oid for c in destination}
        destination_prints = {self.policy.fingerprint(c) for c in destination}

        unmatched = [
            commit
            for commit in self._store.branch_commits(repository.id, from_branch)
            if commit.oid not in destination_oids
            and self.policy.fingerprint(commit) not in destination_prints
        ]
        unmatched.sort(key=lambda c: (c.committer_time, c.oid))
        if limit:
            unmatched = unmatched[:limit]

        log.debug(
            "{}: {} commits on {} missing from {} ({})",
            repository.name,
            len(unmatched),
            from_branch,
            to_branch,
            self.policy.name,
        )
        return [
            UnmatchedCommit(
                oid=c.oid,
                author_name=c.author_name,
                author_email=c.author_email,
                summary=c.summary,
                committer_time=c.committer_time,
            )
            for c in unmatched
        ]
