"""Tests for WorkingTreeLocks."""

import threading
from pathlib import Path

import pytest

from gitx.core.locks import WorkingTreeLocks
from gitx.errors import RepositoryBusy


class TestWorkingTreeLocks:
    """Tests for per-repository locking."""

    def test_reentrant(self, temp_dir: Path) -> None:
        """Test that the holding thread may acquire the lock again."""
        locks = WorkingTreeLocks(timeout=0.1)

        with locks.hold(temp_dir):
            with locks.hold(temp_dir):
                pass

    def test_busy_from_other_thread(self, temp_dir: Path) -> None:
        """Test that another thread times out with RepositoryBusy."""
        locks = WorkingTreeLocks(timeout=0.1)
        errors = []

        def contend():
            try:
                with locks.hold(temp_dir):
                    pass
            except RepositoryBusy as e:
                errors.append(e)

        with locks.hold(temp_dir):
            thread = threading.Thread(target=contend)
            thread.start()
            thread.join()

        assert len(errors) == 1

    def test_paths_are_independent(self, temp_dir: Path) -> None:
        """Test that different repositories do not block each other."""
        locks = WorkingTreeLocks(timeout=0.1)
        acquired = []

        def other():
            with locks.hold(temp_dir / "b"):
                acquired.append(True)

        with locks.hold(temp_dir / "a"):
            thread = threading.Thread(target=other)
            thread.start()
            thread.join()

        assert acquired == [True]

    def test_same_path_spelled_differently(self, temp_dir: Path) -> None:
        """Test that lock identity follows the resolved path."""
        locks = WorkingTreeLocks(timeout=0.1)
        (temp_dir / "repo").mkdir()
        errors = []

        def contend():
            try:
                with locks.hold(temp_dir / "repo" / ".." / "repo"):
                    pass
            except RepositoryBusy as e:
                errors.append(e)

        with locks.hold(temp_dir / "repo"):
            thread = threading.Thread(target=contend)
            thread.start()
            thread.join()

        assert len(errors) == 1

    def test_released_after_error(self, temp_dir: Path) -> None:
        """Test that an exception inside the block releases the lock."""
        locks = WorkingTreeLocks(timeout=0.1)

        with pytest.raises(ValueError):
            with locks.hold(temp_dir):
                raise ValueError("boom")

        result = []
        thread = threading.Thread(target=lambda: result.append(locks._lock_for(temp_dir).acquire(timeout=0.1)))
        thread.start()
        thread.join()
        assert result == [True]
