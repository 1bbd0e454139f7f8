"""Wiring of the store, locks and services for one configuration."""

import functools
from pathlib import Path

from gitx.models.config import AppConfig
from gitx.store.commit_store import CommitStore

from .accessor import AccessorFactory
from .cherry_pick import CherryPickOrchestrator
from .git_service import GitService
from .locks import WorkingTreeLocks
from .matcher import BranchDiffMatcher, get_policy
from .push import PushCoordinator
from .scheduler import SyncScheduler
from .sync_engine import SyncEngine


class GitxContext:
    """Owns the commit store and the services sharing its locks."""

    def __init__(
        self,
        config: AppConfig,
        store: CommitStore | None = None,
        git_factory: AccessorFactory | None = None,
    ) -> None:
        self.config = config
        policy = get_policy(config.match_policy)
        self.store = store or CommitStore.open(Path(config.database_path).expanduser())
        self.git_factory = git_factory or functools.partial(
            GitService,
            timeout=config.git_timeout_secs,
            network_timeout=config.fetch_timeout_secs,
        )
        self.locks = WorkingTreeLocks(timeout=config.lock_timeout_secs)

        self.sync_engine = SyncEngine(self.store, self.git_factory, self.locks, config)
        self.matcher = BranchDiffMatcher(self.store, policy)
        self.cherry_pick = CherryPickOrchestrator(
            self.git_factory, self.locks, self.sync_engine, remote=config.remote
        )
        self.pusher = PushCoordinator(
            self.store, self.git_factory, self.locks, self.sync_engine, remote=config.remote
        )
        self.scheduler = SyncScheduler(self.sync_engine, self.store, config)

    def close(self) -> None:
        self.scheduler.stop()
        self.store.close()
