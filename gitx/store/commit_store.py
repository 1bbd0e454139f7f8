"""Commit store: the relational cache of repositories, commits, branches and tags.

All access goes through ``CommitStore``, which hands out detached domain
records (``gitx.models.repository``) rather than ORM rows. Writes happen in
``transaction()`` blocks; any SQLAlchemy failure inside one rolls the whole
block back and surfaces as ``StoreWriteFailure``.
"""

import time
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from pathlib import Path

import logbook
from sqlalchemy import create_engine, delete, event, func, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from gitx.models.git import GitCommit, GitTag
from gitx.models.repository import Branch, Commit, Repository, Tag, from_timestamp
from gitx.errors import RepositoryNotFound, StoreWriteFailure

from .schema import Base, BranchRow, CommitRow, RepositoryRow, TagRow

log = logbook.Logger(__name__)

# Keeps IN (...) lists under SQLite's bound-parameter limit
_CHUNK_SIZE = 500


def _now() -> int:
    return int(time.time())


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _chunks(items: list[str], size: int = _CHUNK_SIZE) -> Iterator[list[str]]:
    for start in range(0, len(items), size):
        yield items[start:start + size]


class CommitStore:
    """Durable table store for synced git history."""

    def __init__(self, url: str, echo: bool = False) -> None:
        kwargs: dict = {"echo": echo}
        is_sqlite = url.startswith("sqlite")
        if is_sqlite:
            kwargs["connect_args"] = {"check_same_thread": False, "timeout": 30}
            if url in ("sqlite://", "sqlite:///:memory:"):
                # One shared connection, otherwise every session sees an empty database
                kwargs["poolclass"] = StaticPool

        self._engine: Engine = create_engine(url, **kwargs)
        if is_sqlite:
            event.listen(self._engine, "connect", _enable_sqlite_foreign_keys)

        Base.metadata.create_all(self._engine)
        self._session_factory = sessionmaker(bind=self._engine, expire_on_commit=False)

    @classmethod
    def open(cls, path: Path) -> "CommitStore":
        """Open (creating if needed) a SQLite store at ``path``."""
        path.parent.mkdir(parents=True, exist_ok=True)
        return cls(f"sqlite:///{path}")

    def close(self) -> None:
        """Dispose of pooled connections."""
        self._engine.dispose()

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        """Run a block of writes atomically."""
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            log.error("Commit store write failed: {}", e)
            raise StoreWriteFailure(f"Commit store write failed: {e}") from e
        except BaseException:
            session.rollback()
            raise
        finally:
            session.close()

    @contextmanager
    def _reader(self) -> Iterator[Session]:
        session = self._session_factory()
        try:
            yield session
        finally:
            session.close()

    # Repositories

    def register_repository(
        self,
        path: Path,
        name: str | None = None,
        default_branch: str | None = None,
        description: str | None = None,
    ) -> Repository:
        """Register a repository, or update the one already at ``path``.

        Arguments left as ``None`` keep the stored values of an existing
        repository; a new one defaults to the ``main`` branch.
        """
        resolved = str(Path(path).resolve())
        now = _now()
        with self.transaction() as session:
            row = session.execute(
                select(RepositoryRow).where(RepositoryRow.path == resolved)
            ).scalar_one_or_none()
            if row is None:
                row = RepositoryRow(
                    path=resolved,
                    name=name or Path(resolved).name,
                    default_branch=default_branch or "main",
                    description=description,
                    created_at=now,
                    updated_at=now,
                )
                session.add(row)
                log.info("Registered repository {} at {}", row.name, resolved)
            else:
                if name:
                    row.name = name
                if default_branch:
                    row.default_branch = default_branch
                if description is not None:
                    row.description = description
                row.updated_at = now
            session.flush()
            return self._to_repository(row)

    def get_repository(self, repository_id: int) -> Repository:
        """Get a repository by id."""
        with self._reader() as session:
            row = session.get(RepositoryRow, repository_id)
            if row is None:
                raise RepositoryNotFound(f"Repository not found: {repository_id}")
            return self._to_repository(row)

    def find_repository(self, ident: str) -> Repository:
        """Find a repository by id, name or path."""
        with self._reader() as session:
            row = None
            if ident.isdigit():
                row = session.get(RepositoryRow, int(ident))
            if row is None:
                row = session.execute(
                    select(RepositoryRow).where(RepositoryRow.name == ident).limit(1)
                ).scalar_one_or_none()
            if row is None:
                resolved = str(Path(ident).expanduser().resolve())
                row = session.execute(
                    select(RepositoryRow).where(RepositoryRow.path == resolved)
                ).scalar_one_or_none()
            if row is None:
                raise RepositoryNotFound(f"Repository not found: {ident}")
            return self._to_repository(row)

    def list_repositories(self) -> list[Repository]:
        with self._reader() as session:
            rows = session.execute(
                select(RepositoryRow).order_by(RepositoryRow.name)
            ).scalars().all()
            return [self._to_repository(r) for r in rows]

    def delete_repository(self, repository_id: int) -> None:
        """Delete a repository with all of its commits, branches and tags."""
        with self.transaction() as session:
            row = session.get(RepositoryRow, repository_id)
            if row is None:
                raise RepositoryNotFound(f"Repository not found: {repository_id}")
            session.delete(row)

    def mark_synced(self, repository_id: int, when: int | None = None) -> None:
        """Record a completed sync."""
        when = when or _now()
        with self.transaction() as session:
            row = session.get(RepositoryRow, repository_id)
            if row is None:
                raise RepositoryNotFound(f"Repository not found: {repository_id}")
            row.last_synced_at = when
            row.updated_at = when

    # Commits and branches

    def known_oids(self, repository_id: int, branch: str) -> set[str]:
        """Return every oid stored for a branch."""
        with self._reader() as session:
            oids = session.execute(
                select(CommitRow.oid).where(
                    CommitRow.repository_id == repository_id,
                    CommitRow.branch == branch,
                )
            ).scalars()
            return set(oids)

    def record_branch(
        self,
        repository_id: int,
        branch: str,
        tip_oid: str,
        commits: Iterable[GitCommit],
        is_default: bool = False,
    ) -> int:
        """Insert new commits for a branch and move its tip, atomically.

        Commits already stored for (repository, oid, branch) are skipped.
        Returns the number of rows inserted.
        """
        now = _now()
        commits = list(commits)
        with self.transaction() as session:
            existing: set[str] = set()
            for chunk in _chunks([c.oid for c in commits]):
                existing.update(
                    session.execute(
                        select(CommitRow.oid).where(
                            CommitRow.repository_id == repository_id,
                            CommitRow.branch == branch,
                            CommitRow.oid.in_(chunk),
                        )
                    ).scalars()
                )

            inserted = 0
            for commit in commits:
                if commit.oid in existing:
                    continue
                existing.add(commit.oid)
                session.add(self._to_commit_row(repository_id, branch, commit, now))
                inserted += 1

            row = session.execute(
                select(BranchRow).where(
                    BranchRow.repository_id == repository_id,
                    BranchRow.name == branch,
                )
            ).scalar_one_or_none()
            if row is None:
                row = BranchRow(repository_id=repository_id, name=branch)
                session.add(row)
            row.target_oid = tip_oid
            row.is_default = is_default
            row.updated_at = now
        return inserted

    def get_branch(self, repository_id: int, name: str) -> Branch | None:
        with self._reader() as session:
            row = session.execute(
                select(BranchRow).where(
                    BranchRow.repository_id == repository_id,
                    BranchRow.name == name,
                )
            ).scalar_one_or_none()
            return self._to_branch(row) if row else None

    def list_branches(self, repository_id: int) -> list[Branch]:
        with self._reader() as session:
            rows = session.execute(
                select(BranchRow)
                .where(BranchRow.repository_id == repository_id)
                .order_by(BranchRow.name)
            ).scalars().all()
            return [self._to_branch(r) for r in rows]

    def branch_commits(self, repository_id: int, branch: str) -> list[Commit]:
        """Return all commits of a branch, newest first."""
        with self._reader() as session:
            rows = session.execute(
                select(CommitRow)
                .where(
                    CommitRow.repository_id == repository_id,
                    CommitRow.branch == branch,
                )
                .order_by(CommitRow.committer_time.desc(), CommitRow.oid)
            ).scalars().all()
            return [self._to_commit(r) for r in rows]

    def list_commits(
        self,
        repository_id: int,
        branch: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[Commit]:
        """Page through commits, newest first."""
        stmt = select(CommitRow).where(CommitRow.repository_id == repository_id)
        if branch is not None:
            stmt = stmt.where(CommitRow.branch == branch)
        stmt = (
            stmt.order_by(CommitRow.committer_time.desc(), CommitRow.oid)
            .limit(limit)
            .offset(offset)
        )
        with self._reader() as session:
            return [self._to_commit(r) for r in session.execute(stmt).scalars().all()]

    def count_commits(self, repository_id: int, branch: str | None = None) -> int:
        stmt = select(func.count(CommitRow.id)).where(CommitRow.repository_id == repository_id)
        if branch is not None:
            stmt = stmt.where(CommitRow.branch == branch)
        with self._reader() as session:
            return session.execute(stmt).scalar_one()

    def find_commit(self, repository_id: int, oid: str) -> Commit | None:
        """Find a commit by oid on any branch."""
        with self._reader() as session:
            row = session.execute(
                select(CommitRow)
                .where(CommitRow.repository_id == repository_id, CommitRow.oid == oid)
                .limit(1)
            ).scalar_one_or_none()
            return self._to_commit(row) if row else None

    # Tags

    def replace_tags(self, repository_id: int, tags: Iterable[GitTag]) -> int:
        """Replace the full tag set of a repository. Returns the new count."""
        now = _now()
        tags = list(tags)
        with self.transaction() as session:
            session.execute(delete(TagRow).where(TagRow.repository_id == repository_id))
            for tag in tags:
                session.add(
                    TagRow(
                        repository_id=repository_id,
                        name=tag.name,
                        target_oid=tag.target_oid,
                        tagger_name=tag.tagger_name,
                        tagger_email=tag.tagger_email,
                        tagger_time=tag.tagger_time,
                        message=tag.message,
                        created_at=now,
                    )
                )
        return len(tags)

    def list_tags(self, repository_id: int) -> list[Tag]:
        with self._reader() as session:
            rows = session.execute(
                select(TagRow).where(TagRow.repository_id == repository_id).order_by(TagRow.name)
            ).scalars().all()
            return [
                Tag(
                    repository_id=r.repository_id,
                    name=r.name,
                    target_oid=r.target_oid,
                    tagger_name=r.tagger_name,
                    tagger_email=r.tagger_email,
                    tagger_time=r.tagger_time,
                    message=r.message,
                )
                for r in rows
            ]

    # Row conversion

    @staticmethod
    def _to_repository(row: RepositoryRow) -> Repository:
        return Repository(
            id=row.id,
            path=Path(row.path),
            name=row.name,
            default_branch=row.default_branch,
            description=row.description,
            last_synced_at=from_timestamp(row.last_synced_at),
            created_at=from_timestamp(row.created_at),
        )

    @staticmethod
    def _to_branch(row: BranchRow) -> Branch:
        return Branch(
            repository_id=row.repository_id,
            name=row.name,
            target_oid=row.target_oid,
            is_default=row.is_default,
            updated_at=from_timestamp(row.updated_at),
        )

    @staticmethod
    def _to_commit(row: CommitRow) -> Commit:
        return Commit(
            repository_id=row.repository_id,
            oid=row.oid,
            branch=row.branch,
            author_name=row.author_name,
            author_email=row.author_email,
            author_time=row.author_time,
            committer_name=row.committer_name,
            committer_email=row.committer_email,
            committer_time=row.committer_time,
            summary=row.summary,
            message=row.message,
            parent_oids=Commit.parse_parents(row.parent_oids),
            created_at=from_timestamp(row.created_at),
        )

    @staticmethod
    def _to_commit_row(
        repository_id: int, branch: str, commit: GitCommit, now: int
    ) -> CommitRow:
        return CommitRow(
            repository_id=repository_id,
            oid=commit.oid,
            branch=branch,
            author_name=commit.author_name,
            author_email=commit.author_email,
            author_time=commit.author_time,
            committer_name=commit.committer_name,
            committer_email=commit.committer_email,
            committer_time=commit.committer_time,
            summary=commit.summary,
            message=commit.message,
            parent_oids=Commit.dump_parents(commit.parent_oids),
            created_at=now,
        )
