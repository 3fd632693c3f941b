"""Conflict analysis results."""

from dataclasses import dataclass, field
from typing import List, Optional


@dataclass(frozen=True)
class ConflictingCommits:
    """One-line commit summaries on each side since the merge-base."""

    ours: List[str] = field(default_factory=list)
    theirs: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class ConflictReport:
    """Outcome of a dry-run merge between a worktree branch and main.

    has_conflicts=False with can_auto_merge=False means the analysis itself
    failed and the outcome is unknown.
    """

    has_conflicts: bool
    can_auto_merge: bool
    conflicting_files: Optional[List[str]] = None
    conflicting_commits: Optional[ConflictingCommits] = None

    @classmethod
    def clean(cls) -> "ConflictReport":
        return cls(has_conflicts=False, can_auto_merge=True)

    @classmethod
    def unknown(cls) -> "ConflictReport":
        return cls(has_conflicts=False, can_auto_merge=False)
