"""Per-repository working-tree locks.

A repository has one working tree and one index, so every operation that
reads tips or mutates the tree holds that repository's lock. The locks are
re-entrant: a cherry-pick may re-sync its branch while still holding it.
"""

import threading
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import logbook

from gitx.errors import RepositoryBusy


log = logbook.Logger(__name__)


class WorkingTreeLocks:
    """Registry of one exclusive lock per repository path."""

    def __init__(self, timeout: float | None = 30) -> None:
        self.timeout = timeout
        self._locks: dict[str, threading.RLock] = {}
        self._guard = threading.Lock()

    def _lock_for(self, path: Path) -> threading.RLock:
        key = str(Path(path).resolve())
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.RLock()
                self._locks[key] = lock
            return lock

    @contextmanager
    def hold(self, path: Path, timeout: float | None = None) -> Iterator[None]:
        """Hold the lock of the repository at ``path`` for the block.

        Raises:
            RepositoryBusy: if the lock is not acquired within the timeout
        """
        timeout = self.timeout if timeout is None else timeout
        lock = self._lock_for(path)
        acquired = lock.acquire(timeout=-1 if timeout is None else timeout)
        if not acquired:
            raise RepositoryBusy(f"Repository is busy: {path} (waited {timeout}s)")
        log.debug("Acquired working-tree lock for {}", path)
        try:
            yield
        finally:
            lock.release()
