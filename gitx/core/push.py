"""Push coordinator: publish a branch to its remote."""

import logbook
from PySide6.QtCore import QObject, Signal

from gitx.models.repository import Repository
from gitx.models.results import BranchSyncResult, PushResult
from gitx.store.commit_store import CommitStore
from gitx.errors import GitError, PushError, SyncError, WorkingTreeDirty

from .accessor import AccessorFactory
from .locks import WorkingTreeLocks
from .sync_engine import SyncEngine

log = logbook.Logger(__name__)


class PushCoordinator(QObject):
    """Pushes a branch only from a clean working tree checked out on it."""

    push_finished = Signal(object)  # PushResult

    def __init__(
        self,
        store: CommitStore,
        git_factory: AccessorFactory,
        locks: WorkingTreeLocks,
        sync_engine: SyncEngine,
        remote: str = "origin",
        parent: QObject | None = None,
    ) -> None:
        super().__init__(parent)
        self._store = store
        self._git_factory = git_factory
        self._locks = locks
        self._sync_engine = sync_engine
        self.remote = remote

    def push(self, repository: Repository, branch: str) -> PushResult:
        """Push ``branch`` and re-sync it.

        Raises:
            WorkingTreeDirty: if the tree has changes or an operation in progress
            PushError: if the tree is on another branch or the push fails;
                ``PushRejected`` when the remote refuses it
        """
        git = self._git_factory(repository.path)

        with self._locks.hold(repository.path):
            state = git.working_tree_state()
            if not state.is_clean:
                raise WorkingTreeDirty(state.describe())
            if state.branch != branch:
                raise PushError(
                    f"Working tree is on {state.branch}, not {branch}; refusing to push"
                )

            try:
                message = git.push(self.remote, branch)
            except PushError as e:
                log.error("Push of {} to {} failed: {}", branch, self.remote, e.reason)
                raise
            except GitError as e:
                log.error("Push of {} to {} failed: {}", branch, self.remote, e)
                raise PushError(str(e)) from e

            log.info("Pushed {} of {} to {}", branch, repository.name, self.remote)
            result = PushResult(branch=branch, remote=self.remote, message=message)
            result.sync = self._resync(repository, branch)

        self.push_finished.emit(result)
        return result

    def _resync(self, repository: Repository, branch: str) -> BranchSyncResult:
        try:
            result = self._sync_engine.sync_branch(repository, branch)
            remote_branch = f"{self.remote}/{branch}"
            if self._store.get_branch(repository.id, remote_branch) is not None:
                self._sync_engine.sync_branch(repository, remote_branch)
            return result
        except SyncError as e:
            return BranchSyncResult(branch=branch, error=str(e))
