"""Result types returned by sync, diff, cherry-pick and push operations."""

from dataclasses import dataclass, field
from datetime import datetime, timezone

from .repository import from_timestamp


@dataclass
class BranchSyncResult:
    """Outcome of syncing one branch."""

    branch: str
    inserted: int = 0
    tip_oid: str | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class SyncReport:
    """Outcome of syncing one repository."""

    repository: str
    branches: list[BranchSyncResult] = field(default_factory=list)
    tags: int = 0
    synced_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def inserted(self) -> int:
        """Total number of commit rows inserted across branches."""
        return sum(b.inserted for b in self.branches)

    @property
    def failed_branches(self) -> list[BranchSyncResult]:
        return [b for b in self.branches if not b.ok]

    def branch(self, name: str) -> BranchSyncResult | None:
        """Find the result for a branch."""
        for result in self.branches:
            if result.branch == name:
                return result
        return None


@dataclass
class UnmatchedCommit:
    """A commit on the source branch with no counterpart on the destination."""

    oid: str
    author_name: str
    author_email: str
    summary: str
    committer_time: int

    @property
    def short_oid(self) -> str:
        """Return shortened commit hash."""
        return self.oid[:8]

    @property
    def committed_at(self) -> datetime:
        return from_timestamp(self.committer_time)


@dataclass
class PickFailure:
    """The commit a cherry-pick sequence stopped at, and why."""

    oid: str
    reason: str
    kind: str = "error"  # conflict, empty, missing, timeout, error


@dataclass
class PickResult:
    """Outcome of applying a sequence of commits onto a branch."""

    destination: str
    requested: int
    applied: list[str] = field(default_factory=list)
    created: list[str] = field(default_factory=list)
    failed_at: PickFailure | None = None
    sync: BranchSyncResult | None = None

    @property
    def applied_count(self) -> int:
        return len(self.applied)

    @property
    def succeeded(self) -> bool:
        return self.failed_at is None

    def remaining(self, oids: list[str]) -> list[str]:
        """Return the unapplied suffix of ``oids`` to pass on a retry."""
        return list(oids[len(self.applied):])

    def summary(self) -> str:
        """Return a one-line message for the operator."""
        text = f"{self.applied_count} of {self.requested} commits applied to {self.destination}"
        if self.failed_at:
            text += f"; stopped at {self.failed_at.oid[:8]}: {self.failed_at.reason}"
        return text


@dataclass
class PushResult:
    """Outcome of a successful push."""

    branch: str
    remote: str
    success: bool = True
    message: str = ""
    sync: BranchSyncResult | None = None


@dataclass
class CycleReport:
    """Outcome of one scheduled sync cycle over every registered repository."""

    reports: list[SyncReport] = field(default_factory=list)
    failures: dict[str, str] = field(default_factory=dict)
    discovered: int = 0

    @property
    def synced(self) -> int:
        return len(self.reports)

    @property
    def inserted(self) -> int:
        return sum(r.inserted for r in self.reports)
