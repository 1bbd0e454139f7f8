"""Sync engine: mirror branch history from a repository into the commit store."""

import logbook

from gitx.models.config import AppConfig
from gitx.models.repository import Repository
from gitx.models.results import BranchSyncResult, SyncReport
from gitx.store.commit_store import CommitStore
from gitx.errors import (
    GitError,
    RefNotFound,
    RepositoryBusy,
    StoreWriteFailure,
    SyncError,
)

from .accessor import AccessorFactory, GitAccessor
from .locks import WorkingTreeLocks

log = logbook.Logger(__name__)


class SyncEngine:
    """Incrementally copies commits, branch tips and tags into the store.

    Each branch is walked newest-first and the walk stops at the first
    commit already stored for that branch, so a repeated sync with no new
    commits inserts nothing.
    """

    def __init__(
        self,
        store: CommitStore,
        git_factory: AccessorFactory,
        locks: WorkingTreeLocks,
        config: AppConfig | None = None,
    ) -> None:
        self._store = store
        self._git_factory = git_factory
        self._locks = locks
        self._config = config or AppConfig()

    def sync(
        self,
        repository: Repository,
        branches: list[str] | None = None,
        *,
        all_branches: bool = False,
        fetch: bool | None = None,
    ) -> SyncReport:
        """Sync ``branches`` of a repository (default: every tracked branch).

        Args:
            repository: A registered repository
            branches: Branch names to sync; ``None`` syncs the branches
                already recorded plus the default branch
            all_branches: Also sync every branch the repository lists
            fetch: Fetch from the remote first; ``None`` follows the config

        Raises:
            SyncError: if the repository cannot be read, a git call times
                out or a store write fails
        """
        if fetch is None:
            fetch = self._config.fetch_before_sync
        report = SyncReport(repository=repository.name)

        try:
            git = self._git_factory(repository.path)
            with self._locks.hold(repository.path):
                git.verify()
                if fetch:
                    self._fetch(git, repository)

                for name in self._branches_to_sync(repository, git, branches, all_branches):
                    report.branches.append(self._sync_branch(repository, git, name))

                report.tags = self._store.replace_tags(repository.id, git.list_tags())
            self._store.mark_synced(repository.id, int(report.synced_at.timestamp()))
        except (GitError, StoreWriteFailure, RepositoryBusy) as e:
            log.error("Sync of {} failed: {}", repository.name, e)
            raise SyncError(f"Sync of {repository.name} failed: {e}") from e

        log.info(
            "Synced {}: {} commits across {} branches, {} tags",
            repository.name,
            report.inserted,
            len(report.branches),
            report.tags,
        )
        for failed in report.failed_branches:
            log.warning("Branch {} of {} not synced: {}", failed.branch, repository.name, failed.error)
        return report

    def sync_branch(self, repository: Repository, branch: str) -> BranchSyncResult:
        """Sync a single branch, without touching tags or the sync time.

        Raises:
            SyncError: on the same fatal failures as ``sync``
        """
        try:
            git = self._git_factory(repository.path)
            with self._locks.hold(repository.path):
                return self._sync_branch(repository, git, branch)
        except (GitError, StoreWriteFailure, RepositoryBusy) as e:
            log.error("Sync of {}:{} failed: {}", repository.name, branch, e)
            raise SyncError(f"Sync of {repository.name}:{branch} failed: {e}") from e

    def _fetch(self, git: GitAccessor, repository: Repository) -> None:
        remote = self._config.remote
        try:
            git.fetch(remote)
        except GitError as e:
            log.warning(
                "Fetch from {} failed for {}, continuing with local data: {}",
                remote,
                repository.name,
                e,
            )

    def _branches_to_sync(
        self,
        repository: Repository,
        git: GitAccessor,
        requested: list[str] | None,
        all_branches: bool,
    ) -> list[str]:
        if requested:
            names = list(requested)
        else:
            names = [repository.default_branch]
            names.extend(b.name for b in self._store.list_branches(repository.id))
        if all_branches:
            names.extend(b.name for b in git.list_branches())
        # Keep first occurrence order, default branch first
        return list(dict.fromkeys(names))

    def _sync_branch(
        self, repository: Repository, git: GitAccessor, branch: str
    ) -> BranchSyncResult:
        try:
            tip = git.resolve_ref(branch)
        except RefNotFound as e:
            log.warning("Branch {} not found in {}", branch, repository.name)
            return BranchSyncResult(branch=branch, error=str(e))

        stored = self._store.get_branch(repository.id, branch)
        known = self._store.known_oids(repository.id, branch)
        # Everything reachable from the recorded tip was walked by an earlier sync
        exclude = [stored.target_oid] if stored else None

        try:
            history = git.list_commits(
                branch, limit=self._config.max_commits_per_branch, exclude=exclude
            )
        except RefNotFound as e:
            return BranchSyncResult(branch=branch, error=str(e))

        new_commits = []
        for commit in history:
            if commit.oid in known:
                break
            if commit.is_merge and not self._config.include_merges:
                continue
            new_commits.append(commit)

        inserted = self._store.record_branch(
            repository.id,
            branch,
            tip,
            new_commits,
            is_default=branch == repository.default_branch,
        )
        log.debug("Branch {} of {}: {} new commits, tip {}", branch, repository.name, inserted, tip[:8])
        return BranchSyncResult(branch=branch, inserted=inserted, tip_oid=tip)
