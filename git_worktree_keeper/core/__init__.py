"""Core functionality for git-worktree-keeper."""

from .worktree_manager import WorktreeManager

__all__ = ["WorktreeManager"]
