"""Commit summary model."""

from dataclasses import dataclass


@dataclass(frozen=True)
class CommitInfo:
    """One entry of `git log --shortstat`."""

    hash: str
    message: str
    date: str
    author: str = "Unknown"
    files_changed: int = 0
    additions: int = 0
    deletions: int = 0
