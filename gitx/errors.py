"""Exception types raised by gitx services."""


class GitxError(Exception):
    """Base class for gitx errors."""

    pass


class GitError(GitxError):
    """Exception raised for Git operation errors."""

    pass


class NotARepository(GitError):
    """The path does not hold a readable Git repository."""

    pass


class RefNotFound(GitError):
    """A branch or ref name does not resolve to a commit."""

    def __init__(self, ref: str, message: str | None = None) -> None:
        super().__init__(message or f"Reference not found: {ref}")
        self.ref = ref


class MissingObject(GitError):
    """A commit object is not present in the repository."""

    pass


class GitTimeout(GitError):
    """A git subprocess did not finish within its timeout."""

    pass


class CherryPickConflict(GitError):
    """A cherry-pick stopped with merge conflicts."""

    pass


class CherryPickEmpty(GitError):
    """A cherry-pick produced no changes on the current branch."""

    pass


class WorkingTreeDirty(GitError):
    """The working tree has local changes or an operation in progress."""

    pass


class ConfigError(GitxError):
    """A configuration value is invalid."""

    pass


class StoreWriteFailure(GitxError):
    """A write to the commit store failed and was rolled back."""

    pass


class RepositoryNotFound(GitxError):
    """No registered repository matches the given name, path or id."""

    pass


class BranchNotSynced(GitxError):
    """A branch has never been synced into the commit store."""

    def __init__(self, branch: str) -> None:
        super().__init__(f"Branch not synced: {branch}")
        self.branch = branch


class RepositoryBusy(GitxError):
    """The working-tree lock of a repository could not be acquired in time."""

    pass


class SyncError(GitxError):
    """A repository sync failed as a whole."""

    pass


class PushError(GitxError):
    """A push failed. ``reason`` holds the remote's message verbatim."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class PushRejected(PushError):
    """The remote rejected the push (non-fast-forward or hook)."""

    pass
