"""Concurrent and periodic syncing of every registered repository."""

import logbook
from PySide6.QtCore import QObject, QThread, QTimer, Signal

from gitx.models.config import AppConfig
from gitx.models.repository import Repository
from gitx.models.results import CycleReport, SyncReport
from gitx.store.commit_store import CommitStore
from gitx.errors import GitxError

from .discovery import register_discovered
from .sync_engine import SyncEngine
from .utils import batched, safe_slot

log = logbook.Logger(__name__)


class SyncWorker(QThread):
    """Worker thread syncing one repository."""

    sync_finished = Signal(object)  # SyncReport
    sync_failed = Signal(str, str)  # repository name, message

    def __init__(
        self,
        engine: SyncEngine,
        repository: Repository,
        all_branches: bool = False,
        fetch: bool | None = None,
        parent: QObject | None = None,
    ) -> None:
        super().__init__(parent)
        self._engine = engine
        self.repository = repository
        self._all_branches = all_branches
        self._fetch = fetch
        self.report: SyncReport | None = None
        self.error: str | None = None

    def run(self) -> None:
        """Run the sync in the background thread."""
        try:
            self.report = self._engine.sync(
                self.repository, all_branches=self._all_branches, fetch=self._fetch
            )
            self.sync_finished.emit(self.report)
        except GitxError as e:
            self.error = str(e)
            self.sync_failed.emit(self.repository.name, self.error)
        except Exception as e:
            log.exception("Unexpected error syncing {}", self.repository.name)
            self.error = f"Error: {e}"
            self.sync_failed.emit(self.repository.name, self.error)


class SyncScheduler(QObject):
    """Runs sync cycles over all repositories, once or on an interval.

    At most ``worker_threads`` repositories sync at a time; the branches
    of one repository always sync sequentially in its worker.
    """

    repository_synced = Signal(object)  # SyncReport
    repository_failed = Signal(str, str)  # repository name, message
    cycle_finished = Signal(object)  # CycleReport

    def __init__(
        self,
        engine: SyncEngine,
        store: CommitStore,
        config: AppConfig | None = None,
        parent: QObject | None = None,
    ) -> None:
        super().__init__(parent)
        self._engine = engine
        self._store = store
        self._config = config or AppConfig()
        self._timer = QTimer(self)
        self._timer.timeout.connect(self._on_timeout)
        self._running_cycle = False

    @property
    def is_active(self) -> bool:
        return self._timer.isActive()

    def run_cycle(
        self,
        repositories: list[Repository] | None = None,
        all_branches: bool = False,
        fetch: bool | None = None,
    ) -> CycleReport:
        """Sync repositories concurrently and block until all are done.

        Without ``repositories``, newly discovered repositories are
        registered first and every registered repository is synced.
        """
        cycle = CycleReport()
        if repositories is None:
            cycle.discovered = len(register_discovered(self._store, self._config.projects))
            repositories = self._store.list_repositories()

        for batch in batched(repositories, self._config.worker_threads):
            workers = [
                SyncWorker(self._engine, repo, all_branches=all_branches, fetch=fetch)
                for repo in batch
            ]
            for worker in workers:
                worker.start()
            for worker in workers:
                worker.wait()
                self._collect(worker, cycle)

        log.info(
            "Sync cycle finished: {} synced, {} failed, {} new commits",
            cycle.synced,
            len(cycle.failures),
            cycle.inserted,
        )
        self.cycle_finished.emit(cycle)
        return cycle

    def _collect(self, worker: SyncWorker, cycle: CycleReport) -> None:
        if worker.report is not None:
            cycle.reports.append(worker.report)
            self.repository_synced.emit(worker.report)
        else:
            name = worker.repository.name
            cycle.failures[name] = worker.error or "unknown error"
            log.error("Sync of {} failed: {}", name, cycle.failures[name])
            self.repository_failed.emit(name, cycle.failures[name])

    def start(self, interval_secs: int | None = None) -> None:
        """Start periodic cycles; the first runs after one interval."""
        interval = interval_secs or self._config.sync_interval_secs
        log.info("Syncing every {}s", interval)
        self._timer.start(int(interval * 1000))

    def stop(self) -> None:
        self._timer.stop()

    @safe_slot
    def _on_timeout(self) -> None:
        # A cycle slower than the interval delays the next one instead of overlapping
        if self._running_cycle:
            return
        self._running_cycle = True
        try:
            self.run_cycle()
        finally:
            self._running_cycle = False
