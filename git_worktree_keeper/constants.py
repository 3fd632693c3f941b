"""Shared constants for git-worktree-keeper."""

from dataclasses import dataclass
from typing import List


@dataclass
class ColumnDefinition:
    """Definition of a table column."""

    key: str
    label: str


BRANCH_COLUMNS: List[ColumnDefinition] = [
    ColumnDefinition("branch", "Branch"),
    ColumnDefinition("kind", "Kind"),
    ColumnDefinition("current", "Current"),
    ColumnDefinition("worktree", "Worktree"),
]

WORKTREE_COLUMNS: List[ColumnDefinition] = [
    ColumnDefinition("branch", "Branch"),
    ColumnDefinition("path", "Path"),
    ColumnDefinition("head", "HEAD"),
    ColumnDefinition("notes", "Notes"),
]

COMMIT_COLUMNS: List[ColumnDefinition] = [
    ColumnDefinition("hash", "Commit"),
    ColumnDefinition("date", "Date"),
    ColumnDefinition("author", "Author"),
    ColumnDefinition("message", "Message"),
    ColumnDefinition("stat", "Changes"),
]


# Symbol constants
SYMBOL_YES = "✓"
SYMBOL_NO = " "
SYMBOL_CURRENT_BRANCH = "*"

SHORT_SHA_LENGTH = 7


# CLI colors (Rich color names)
class BranchStyleType:
    """Style types for branches."""

    REMOTE = "remote"
    WORKTREE = "worktree"
    CURRENT = "current"
    LOCAL = "local"


CLI_COLORS = {
    BranchStyleType.REMOTE: "dim",
    BranchStyleType.WORKTREE: "cyan",
    BranchStyleType.CURRENT: "green",
    BranchStyleType.LOCAL: None,  # Default color
}
