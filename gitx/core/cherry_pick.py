"""Cherry-pick orchestrator: apply a sequence of commits onto a branch."""

import logbook
from PySide6.QtCore import QObject, Signal

from gitx.models.repository import Repository
from gitx.models.results import BranchSyncResult, PickFailure, PickResult
from gitx.errors import (
    CherryPickConflict,
    CherryPickEmpty,
    GitError,
    GitTimeout,
    MissingObject,
    SyncError,
    WorkingTreeDirty,
)

from .accessor import AccessorFactory, GitAccessor
from .locks import WorkingTreeLocks
from .sync_engine import SyncEngine

log = logbook.Logger(__name__)

FAILURE_KINDS: list[tuple[type[GitError], str]] = [
    (CherryPickConflict, "conflict"),
    (CherryPickEmpty, "empty"),
    (MissingObject, "missing"),
    (GitTimeout, "timeout"),
    (WorkingTreeDirty, "dirty"),
]


def failure_kind(error: GitError) -> str:
    """Classify why a cherry-pick failed."""
    for error_type, kind in FAILURE_KINDS:
        if isinstance(error, error_type):
            return kind
    return "error"


class CherryPickOrchestrator(QObject):
    """Applies commits in order and stops at the first failure.

    A failed pick is never aborted: the working tree is left exactly as
    git left it for the operator to resolve. Commits applied before the
    failure stay applied.
    """

    commit_applied = Signal(str, str)  # source oid, new oid
    pick_finished = Signal(object)  # PickResult

    def __init__(
        self,
        git_factory: AccessorFactory,
        locks: WorkingTreeLocks,
        sync_engine: SyncEngine,
        remote: str = "origin",
        parent: QObject | None = None,
    ) -> None:
        super().__init__(parent)
        self._git_factory = git_factory
        self._locks = locks
        self._sync_engine = sync_engine
        self._remote = remote

    def apply(
        self,
        repository: Repository,
        commit_oids: list[str],
        destination_branch: str,
    ) -> PickResult:
        """Cherry-pick ``commit_oids`` in order onto ``destination_branch``.

        The destination is checked out first when the tree is clean and on
        another branch. A remote-tracking name such as ``origin/release``
        is applied to the local ``release`` branch.

        Raises:
            WorkingTreeDirty: if the tree has changes or an operation in
                progress; nothing is attempted
            RepositoryBusy: if another operation holds the repository
        """
        oids = list(commit_oids)
        destination = self._local_branch(destination_branch)
        result = PickResult(destination=destination, requested=len(oids))
        git = self._git_factory(repository.path)

        with self._locks.hold(repository.path):
            self._prepare(git, destination)

            for oid in oids:
                try:
                    new_oid = git.cherry_pick(oid)
                except GitError as e:
                    result.failed_at = PickFailure(oid=oid, reason=str(e), kind=failure_kind(e))
                    log.warning(
                        "Cherry-pick of {} onto {} stopped ({}): {}",
                        oid[:8],
                        destination,
                        result.failed_at.kind,
                        e,
                    )
                    break
                result.applied.append(oid)
                result.created.append(new_oid)
                log.debug("Applied {} onto {} as {}", oid[:8], destination, new_oid[:8])
                self.commit_applied.emit(oid, new_oid)

            if result.applied:
                result.sync = self._resync(repository, destination)

        log.info("{}: {}", repository.name, result.summary())
        self.pick_finished.emit(result)
        return result

    def _local_branch(self, branch: str) -> str:
        prefix = f"{self._remote}/"
        if branch.startswith(prefix):
            return branch[len(prefix):]
        return branch

    def _prepare(self, git: GitAccessor, destination: str) -> None:
        state = git.working_tree_state()
        if not state.is_clean:
            raise WorkingTreeDirty(state.describe())
        if state.branch != destination:
            log.info("Checking out {} in {}", destination, git.path)
            git.checkout(destination)

    def _resync(self, repository: Repository, branch: str) -> BranchSyncResult:
        try:
            return self._sync_engine.sync_branch(repository, branch)
        except SyncError as e:
            # The picks are committed; report the stale store instead of failing
            return BranchSyncResult(branch=branch, error=str(e))
