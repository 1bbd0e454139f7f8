"""Repository, Commit, Branch and Tag records held by the commit store."""

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path


def from_timestamp(value: int | None) -> datetime | None:
    """Convert Unix seconds to an aware UTC datetime."""
    if value is None:
        return None
    return datetime.fromtimestamp(value, tz=timezone.utc)


@dataclass
class Repository:
    """Represents a tracked Git repository."""

    id: int
    path: Path
    name: str
    default_branch: str = "main"
    description: str | None = None
    last_synced_at: datetime | None = None
    created_at: datetime | None = None

    def __hash__(self) -> int:
        return hash(str(self.path))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Repository):
            return False
        return self.path == other.path


@dataclass
class Commit:
    """A commit observed under one branch of a repository."""

    repository_id: int
    oid: str
    branch: str
    author_name: str
    author_email: str
    author_time: int
    committer_name: str
    committer_email: str
    committer_time: int
    summary: str
    message: str | None = None
    parent_oids: list[str] = field(default_factory=list)
    created_at: datetime | None = None

    @property
    def short_oid(self) -> str:
        """Return shortened commit hash."""
        return self.oid[:8]

    @property
    def committed_at(self) -> datetime:
        """Return the committer time as a datetime."""
        return from_timestamp(self.committer_time)

    @staticmethod
    def dump_parents(parent_oids: list[str]) -> str:
        """Serialize parent oids for storage."""
        return json.dumps(parent_oids)

    @staticmethod
    def parse_parents(raw: str | None) -> list[str]:
        """Parse stored parent oids."""
        if not raw:
            return []
        return json.loads(raw)


@dataclass
class Branch:
    """A branch tip as last recorded by a sync."""

    repository_id: int
    name: str
    target_oid: str
    is_default: bool = False
    updated_at: datetime | None = None


@dataclass
class Tag:
    """A tag as last recorded by a sync."""

    repository_id: int
    name: str
    target_oid: str
    tagger_name: str | None = None
    tagger_email: str | None = None
    tagger_time: int | None = None
    message: str | None = None
