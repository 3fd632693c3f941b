"""Git-related services for git-worktree-keeper."""

from .worktrees import WorktreeService, WorktreePathCache
from .branch_queries import BranchQueries
from .conflict_detector import ConflictDetector
from .integration import IntegrationService
from .remote_sync import RemoteSyncService

__all__ = [
    "WorktreeService",
    "WorktreePathCache",
    "BranchQueries",
    "ConflictDetector",
    "IntegrationService",
    "RemoteSyncService",
]
