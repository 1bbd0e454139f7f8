"""Data models for gitx."""

from .config import AppConfig, BranchCompareConfig, ProjectConfig
from .git import GitBranch, GitCommit, GitCommitDetail, GitTag, WorkingTreeState
from .repository import Branch, Commit, Repository, Tag
from .results import (
    BranchSyncResult,
    CycleReport,
    PickFailure,
    PickResult,
    PushResult,
    SyncReport,
    UnmatchedCommit,
)

__all__ = [
    "AppConfig",
    "BranchCompareConfig",
    "ProjectConfig",
    "GitBranch",
    "GitCommit",
    "GitCommitDetail",
    "GitTag",
    "WorkingTreeState",
    "Branch",
    "Commit",
    "Repository",
    "Tag",
    "BranchSyncResult",
    "CycleReport",
    "PickFailure",
    "PickResult",
    "PushResult",
    "SyncReport",
    "UnmatchedCommit",
]
