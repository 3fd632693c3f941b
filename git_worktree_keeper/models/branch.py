"""Branch model"""
from dataclasses import dataclass


@dataclass(frozen=True)
class BranchInfo:
    """A local or remote branch as seen from a project."""
    name: str
    is_current: bool = False
    has_worktree: bool = False
    is_remote: bool = False
