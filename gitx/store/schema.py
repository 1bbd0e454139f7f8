"""SQLAlchemy tables of the commit store."""

from sqlalchemy import (
    Boolean,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    pass


class RepositoryRow(Base):
    __tablename__ = "repositories"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    path: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    default_branch: Mapped[str] = mapped_column(String(255), nullable=False, default="main")
    last_synced_at: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[int] = mapped_column(Integer, nullable=False)
    updated_at: Mapped[int] = mapped_column(Integer, nullable=False)

    commits: Mapped[list["CommitRow"]] = relationship(
        back_populates="repository", cascade="all, delete-orphan"
    )
    branches: Mapped[list["BranchRow"]] = relationship(
        back_populates="repository", cascade="all, delete-orphan"
    )
    tags: Mapped[list["TagRow"]] = relationship(
        back_populates="repository", cascade="all, delete-orphan"
    )


class CommitRow(Base):
    __tablename__ = "commits"
    __table_args__ = (
        UniqueConstraint("repository_id", "oid", "branch", name="uq_commits_repo_oid_branch"),
        Index("idx_commits_repository_branch", "repository_id", "branch", "committer_time"),
        # Supports the (author, summary) fingerprint lookup of branch diffs
        Index("idx_commits_diff_match", "repository_id", "branch", "author_name", "summary"),
        Index("idx_commits_oid", "oid"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    repository_id: Mapped[int] = mapped_column(
        ForeignKey("repositories.id", ondelete="CASCADE"), nullable=False
    )
    oid: Mapped[str] = mapped_column(String(64), nullable=False)
    branch: Mapped[str] = mapped_column(String(255), nullable=False)
    author_name: Mapped[str] = mapped_column(Text, nullable=False)
    author_email: Mapped[str] = mapped_column(Text, nullable=False)
    author_time: Mapped[int] = mapped_column(Integer, nullable=False)
    committer_name: Mapped[str] = mapped_column(Text, nullable=False)
    committer_email: Mapped[str] = mapped_column(Text, nullable=False)
    committer_time: Mapped[int] = mapped_column(Integer, nullable=False)
    summary: Mapped[str] = mapped_column(Text, nullable=False)
    message: Mapped[str | None] = mapped_column(Text, nullable=True)
    parent_oids: Mapped[str | None] = mapped_column(Text, nullable=True)  # JSON array
    created_at: Mapped[int] = mapped_column(Integer, nullable=False)

    repository: Mapped[RepositoryRow] = relationship(back_populates="commits")


class BranchRow(Base):
    __tablename__ = "branches"
    __table_args__ = (UniqueConstraint("repository_id", "name", name="uq_branches_repo_name"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    repository_id: Mapped[int] = mapped_column(
        ForeignKey("repositories.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    target_oid: Mapped[str] = mapped_column(String(64), nullable=False)
    is_default: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    updated_at: Mapped[int] = mapped_column(Integer, nullable=False)

    repository: Mapped[RepositoryRow] = relationship(back_populates="branches")


class TagRow(Base):
    __tablename__ = "tags"
    __table_args__ = (UniqueConstraint("repository_id", "name", name="uq_tags_repo_name"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    repository_id: Mapped[int] = mapped_column(
        ForeignKey("repositories.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    target_oid: Mapped[str] = mapped_column(String(64), nullable=False)
    tagger_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    tagger_email: Mapped[str | None] = mapped_column(Text, nullable=True)
    tagger_time: Mapped[int | None] = mapped_column(Integer, nullable=True)
    message: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[int] = mapped_column(Integer, nullable=False)

    repository: Mapped[RepositoryRow] = relationship(back_populates="tags")
