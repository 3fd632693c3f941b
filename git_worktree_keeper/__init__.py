"""
git-worktree-keeper - Git worktree lifecycle and safe merges into main
"""

from .__version__ import __version__
from .config import Config
from .core import WorktreeManager
from .models import Project
from .cli.main import main

__all__ = ["WorktreeManager", "Config", "Project", "main", "__version__"]
