"""Core services for gitx."""

from .cherry_pick import CherryPickOrchestrator
from .context import GitxContext
from .git_service import GitService
from .locks import WorkingTreeLocks
from .matcher import BranchDiffMatcher
from .push import PushCoordinator
from .scheduler import SyncScheduler
from .sync_engine import SyncEngine

__all__ = [
    "CherryPickOrchestrator",
    "GitxContext",
    "GitService",
    "WorkingTreeLocks",
    "BranchDiffMatcher",
    "PushCoordinator",
    "SyncScheduler",
    "SyncEngine",
]
