"""Pytest configuration and fixtures."""

import os
import subprocess
import tempfile
from collections.abc import Callable, Generator
from pathlib import Path

import pytest
from PySide6.QtCore import QCoreApplication

from gitx.core.locks import WorkingTreeLocks
from gitx.core.memory_git import InMemoryGit, MemoryGitRegistry
from gitx.core.sync_engine import SyncEngine
from gitx.models.config import AppConfig
from gitx.models.repository import Repository
from gitx.store.commit_store import CommitStore

# Git environment for tests - preserve PATH so git can be found
GIT_ENV = {
    "GIT_AUTHOR_NAME": "Test User",
    "GIT_AUTHOR_EMAIL": "test@test.com",
    "GIT_COMMITTER_NAME": "Test User",
    "GIT_COMMITTER_EMAIL": "test@test.com",
    "GIT_CONFIG_NOSYSTEM": "1",
}

MEMORY_PATH = Path("/memory/repo")


def run_git(repo: Path, *args: str, env: dict[str, str] | None = None) -> str:
    """Run git in ``repo`` and return its stripped stdout."""
    full_env = os.environ.copy()
    full_env.update(GIT_ENV)
    full_env.update(env or {})
    result = subprocess.run(
        ["git", *args], cwd=repo, check=True, capture_output=True, text=True, env=full_env
    )
    return result.stdout.strip()


def init_repo(repo_path: Path) -> None:
    repo_path.mkdir(parents=True, exist_ok=True)
    run_git(repo_path, "init")
    run_git(repo_path, "symbolic-ref", "HEAD", "refs/heads/main")
    run_git(repo_path, "config", "user.email", "test@test.com")
    run_git(repo_path, "config", "user.name", "Test User")
    # Disable GPG signing for test commits
    run_git(repo_path, "config", "commit.gpgsign", "false")


@pytest.fixture
def temp_dir() -> Generator[Path]:
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def make_commit() -> Callable[..., str]:
    """Return a helper that commits one file and returns the new oid."""

    def _commit(
        repo: Path,
        filename: str,
        content: str,
        message: str,
        when: int | None = None,
        author: str | None = None,
    ) -> str:
        env = {}
        if when is not None:
            env["GIT_AUTHOR_DATE"] = f"{when} +0000"
            env["GIT_COMMITTER_DATE"] = f"{when} +0000"
        if author is not None:
            env["GIT_AUTHOR_NAME"] = author
        (repo / filename).write_text(content)
        run_git(repo, "add", filename)
        run_git(repo, "commit", "-m", message, env=env)
        return run_git(repo, "rev-parse", "HEAD")

    return _commit


@pytest.fixture
def git_repo(temp_dir: Path) -> Generator[Path]:
    """Create a temporary git repository on ``main`` with one commit."""
    repo_path = temp_dir / "test-repo"
    init_repo(repo_path)

    # Create initial commit
    (repo_path / "README.md").write_text("# Test Repo\n")
    run_git(repo_path, "add", ".")
    run_git(
        repo_path,
        "commit",
        "-m",
        "Initial commit",
        env={"GIT_AUTHOR_DATE": "1700000000 +0000", "GIT_COMMITTER_DATE": "1700000000 +0000"},
    )

    yield repo_path


@pytest.fixture
def bare_remote(temp_dir: Path, git_repo: Path) -> Path:
    """Create a bare repository registered as ``origin`` of ``git_repo``."""
    remote_path = temp_dir / "remote.git"
    run_git(temp_dir, "init", "--bare", str(remote_path))
    run_git(remote_path, "symbolic-ref", "HEAD", "refs/heads/main")
    run_git(git_repo, "remote", "add", "origin", str(remote_path))
    run_git(git_repo, "push", "origin", "main")
    run_git(git_repo, "fetch", "origin")
    return remote_path


@pytest.fixture
def qapp():
    """Create a QCoreApplication for Qt tests."""
    app = QCoreApplication.instance()
    if app is None:
        app = QCoreApplication([])
    yield app


@pytest.fixture
def config(temp_dir: Path) -> AppConfig:
    """Configuration pointing at a throwaway database."""
    return AppConfig(database_path=str(temp_dir / "gitx.db"), lock_timeout_secs=2)


@pytest.fixture
def store(config: AppConfig) -> Generator[CommitStore]:
    """A file-backed commit store."""
    commit_store = CommitStore.open(Path(config.database_path))
    yield commit_store
    commit_store.close()


@pytest.fixture
def locks() -> WorkingTreeLocks:
    return WorkingTreeLocks(timeout=2)


@pytest.fixture
def registry() -> MemoryGitRegistry:
    return MemoryGitRegistry()


@pytest.fixture
def memory_git(registry: MemoryGitRegistry) -> InMemoryGit:
    """An in-memory repository with an initial commit on ``main``."""
    git = registry.add(MEMORY_PATH)
    git.commit("Initial commit")
    return git


@pytest.fixture
def memory_repo(store: CommitStore, memory_git: InMemoryGit) -> Repository:
    """The in-memory repository, registered in the store."""
    return store.register_repository(MEMORY_PATH, name="memory")


@pytest.fixture
def engine(
    store: CommitStore,
    registry: MemoryGitRegistry,
    locks: WorkingTreeLocks,
    config: AppConfig,
) -> SyncEngine:
    """A sync engine over in-memory repositories."""
    return SyncEngine(store, registry, locks, config)
