"""Application configuration management."""

import json
from dataclasses import dataclass, field
from pathlib import Path


def get_config_dir() -> Path:
    """Get the configuration directory path."""
    config_dir = Path.home() / ".config" / "gitx"
    config_dir.mkdir(parents=True, exist_ok=True)
    return config_dir


def get_config_file() -> Path:
    """Get the main configuration file path."""
    return get_config_dir() / "config.json"


def get_database_file() -> Path:
    """Get the default commit store database path."""
    return get_config_dir() / "gitx.db"


@dataclass
class BranchCompareConfig:
    """A saved from/to branch pair for diffing."""

    name: str
    from_branch: str
    to_branch: str


@dataclass
class ProjectConfig:
    """A directory tree scanned for repositories."""

    name: str
    base_path: str
    scan_paths: list[str] = field(default_factory=lambda: ["."])
    compares: list[BranchCompareConfig] = field(default_factory=list)

    def _to_dict(self) -> dict:
        return {
            "name": self.name,
            "base_path": self.base_path,
            "scan_paths": self.scan_paths,
            "compares": [
                {"name": c.name, "from_branch": c.from_branch, "to_branch": c.to_branch}
                for c in self.compares
            ],
        }

    @classmethod
    def _from_dict(cls, data: dict) -> "ProjectConfig":
        return cls(
            name=data["name"],
            base_path=data["base_path"],
            scan_paths=data.get("scan_paths", ["."]),
            compares=[BranchCompareConfig(**c) for c in data.get("compares", [])],
        )


@dataclass
class AppConfig:
    """Application configuration."""

    # Commit store
    database_path: str = ""

    # Git settings
    remote: str = "origin"
    git_timeout_secs: float = 60
    fetch_timeout_secs: float = 300
    lock_timeout_secs: float = 30

    # Sync settings
    max_commits_per_branch: int = 0  # 0 = walk to the root
    include_merges: bool = False
    fetch_before_sync: bool = False
    worker_threads: int = 4
    sync_interval_secs: int = 300

    # Diff settings
    match_policy: str = "author-summary"

    projects: list[ProjectConfig] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not self.database_path:
            self.database_path = str(get_database_file())

    def save(self, path: Path | None = None) -> None:
        """Save configuration to file."""
        config_file = path or get_config_file()
        with open(config_file, "w") as f:
            json.dump(self._to_dict(), f, indent=2)

    def _to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "database": {
                "path": self.database_path,
            },
            "git": {
                "remote": self.remote,
                "timeout_secs": self.git_timeout_secs,
                "fetch_timeout_secs": self.fetch_timeout_secs,
                "lock_timeout_secs": self.lock_timeout_secs,
            },
            "sync": {
                "max_commits_per_branch": self.max_commits_per_branch,
                "include_merges": self.include_merges,
                "fetch_before_sync": self.fetch_before_sync,
                "worker_threads": self.worker_threads,
                "interval_secs": self.sync_interval_secs,
            },
            "diff": {
                "match_policy": self.match_policy,
            },
            "projects": [p._to_dict() for p in self.projects],
        }

    @classmethod
    def load(cls, path: Path | None = None) -> "AppConfig":
        """Load configuration from file."""
        config_file = path or get_config_file()
        if not config_file.exists():
            return cls()

        try:
            with open(config_file) as f:
                data = json.load(f)
            return cls._from_dict(data)
        except (json.JSONDecodeError, KeyError, TypeError):
            return cls()

    @classmethod
    def _from_dict(cls, data: dict) -> "AppConfig":
        """Create from dictionary."""
        database = data.get("database", {})
        git = data.get("git", {})
        sync = data.get("sync", {})
        diff = data.get("diff", {})

        return cls(
            database_path=database.get("path", ""),
            remote=git.get("remote", "origin"),
            git_timeout_secs=git.get("timeout_secs", 60),
            fetch_timeout_secs=git.get("fetch_timeout_secs", 300),
            lock_timeout_secs=git.get("lock_timeout_secs", 30),
            max_commits_per_branch=sync.get("max_commits_per_branch", 0),
            include_merges=sync.get("include_merges", False),
            fetch_before_sync=sync.get("fetch_before_sync", False),
            worker_threads=sync.get("worker_threads", 4),
            sync_interval_secs=sync.get("interval_secs", 300),
            match_policy=diff.get("match_policy", "author-summary"),
            projects=[ProjectConfig._from_dict(p) for p in data.get("projects", [])],
        )

    def add_project(self, project: ProjectConfig) -> None:
        """Add a project, replacing one with the same name."""
        self.projects = [p for p in self.projects if p.name != project.name]
        self.projects.append(project)

    def find_compare(self, name: str) -> BranchCompareConfig | None:
        """Find a compare preset by name across all projects."""
        for project in self.projects:
            for compare in project.compares:
                if compare.name == name:
                    return compare
        return None
