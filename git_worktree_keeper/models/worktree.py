"""Worktree data models."""

from dataclasses import dataclass


@dataclass(frozen=True)
class WorktreeInfo:
    """Information about a git worktree."""

    path: str
    branch_name: str
    head: str = ""
    is_main: bool = False  # Is this the main working tree?
    is_prunable: bool = False  # git reports the directory as gone

    def __str__(self) -> str:
        """String representation of worktree."""
        status = "prunable" if self.is_prunable else "active"
        main_marker = " (main)" if self.is_main else ""
        return f"{self.branch_name} @ {self.path}{main_marker} [{status}]"


@dataclass(frozen=True)
class CreatedWorktree:
    """Result of creating a worktree.

    base_commit is the sha the branch pointed at before the worktree was
    added; it is the historical fork point and is not updated by rebases.
    """

    worktree_path: str
    base_commit: str
    base_branch: str
