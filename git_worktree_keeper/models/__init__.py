"""Data models for git-worktree-keeper."""

from .project import Project
from .worktree import WorktreeInfo, CreatedWorktree
from .branch import BranchInfo
from .conflict import ConflictReport, ConflictingCommits
from .commit import CommitInfo
from .integration import IntegrationState

__all__ = [
    "Project",
    "WorktreeInfo",
    "CreatedWorktree",
    "BranchInfo",
    "ConflictReport",
    "ConflictingCommits",
    "CommitInfo",
    "IntegrationState",
]
