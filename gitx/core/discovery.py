"""Find repositories under configured project paths and register them."""

from dataclasses import dataclass
from pathlib import Path

import logbook

from gitx.models.config import ProjectConfig
from gitx.models.repository import Repository
from gitx.store.commit_store import CommitStore

log = logbook.Logger(__name__)


@dataclass
class DiscoveredRepository:
    name: str
    path: Path


def is_git_repository(path: Path) -> bool:
    """Check for a working-tree checkout or a bare repository at ``path``."""
    if (path / ".git").exists():
        return True
    return (path / "HEAD").is_file() and (path / "objects").is_dir()


def discover_repositories(projects: list[ProjectConfig]) -> list[DiscoveredRepository]:
    """List the repositories named by each project's scan paths.

    A scan path is checked itself; its subdirectories are not searched.
    """
    found = []
    for project in projects:
        base = Path(project.base_path).expanduser()
        for scan_path in project.scan_paths:
            path = base / scan_path
            if not path.exists():
                log.warning("Scan path does not exist: {}", path)
                continue
            if not is_git_repository(path):
                log.debug("Not a git repository: {}", path)
                continue
            path = path.resolve()
            found.append(DiscoveredRepository(name=path.name, path=path))
            log.debug("Found repository {} at {}", path.name, path)

    log.debug("Discovered {} repositories", len(found))
    return found


def register_discovered(store: CommitStore, projects: list[ProjectConfig]) -> list[Repository]:
    """Register newly discovered repositories and return them.

    Repositories already registered at a discovered path keep their name
    and default branch.
    """
    registered = {r.path for r in store.list_repositories()}
    return [
        store.register_repository(repo.path, name=repo.name)
        for repo in discover_repositories(projects)
        if repo.path not in registered
    ]
