"""Data models describing what a Git accessor reads from a repository."""

from dataclasses import dataclass, field


@dataclass
class GitCommit:
    """A commit object as reported by git."""

    oid: str
    author_name: str
    author_email: str
    author_time: int
    committer_name: str
    committer_email: str
    committer_time: int
    summary: str
    message: str | None = None
    parent_oids: list[str] = field(default_factory=list)

    @property
    def is_merge(self) -> bool:
        """Return True for commits with more than one parent."""
        return len(self.parent_oids) > 1

    @property
    def short_oid(self) -> str:
        """Return shortened commit hash."""
        return self.oid[:8]


@dataclass
class GitBranch:
    """A branch ref and the commit it points to."""

    name: str
    target_oid: str
    is_head: bool = False
    is_remote: bool = False


@dataclass
class GitTag:
    """A tag ref. Annotated tags carry tagger metadata."""

    name: str
    target_oid: str
    tagger_name: str | None = None
    tagger_email: str | None = None
    tagger_time: int | None = None
    message: str | None = None


@dataclass
class WorkingTreeState:
    """Snapshot of a working tree's checkout and cleanliness."""

    branch: str
    changed_paths: list[str] = field(default_factory=list)
    operation: str | None = None  # cherry-pick, merge, rebase, revert

    @property
    def is_clean(self) -> bool:
        """Return True when nothing blocks a mutating operation."""
        return not self.changed_paths and self.operation is None

    def describe(self) -> str:
        """Return a human-readable reason the tree is not clean."""
        if self.operation:
            return f"A {self.operation} is in progress on {self.branch}"
        if self.changed_paths:
            shown = ", ".join(self.changed_paths[:5])
            more = len(self.changed_paths) - 5
            if more > 0:
                shown += f" (+{more} more)"
            return f"Uncommitted changes on {self.branch}: {shown}"
        return "Working tree is clean"


@dataclass
class GitCommitDetail:
    """A commit with its change against the first parent."""

    commit: GitCommit
    files_changed: int = 0
    insertions: int = 0
    deletions: int = 0
    patch: str = ""

    @property
    def stats(self) -> str:
        return (
            f"{self.files_changed} files changed, "
            f"{self.insertions} insertions(+), {self.deletions} deletions(-)"
        )
