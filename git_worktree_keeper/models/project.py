"""Project model."""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class Project:
    """A main repository that worktrees are created for.

    Read-only input; persistence of projects lives elsewhere.
    """

    path: str
    worktree_folder: Optional[str] = None  # relative to path, or absolute
    wsl_distribution: Optional[str] = None  # run git inside this WSL distribution

    @property
    def uses_wsl(self) -> bool:
        return bool(self.wsl_distribution)
