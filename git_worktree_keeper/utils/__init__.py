"""Utility functions for git-worktree-keeper.

This package provides utility modules:
- logging: Logging configuration and logger creation
- mutex: Keyed asyncio mutex used to serialize git operations
"""

from .logging import setup_logging, get_logger, ColoredFormatter
from .mutex import KeyedMutex

__all__ = [
    # Logging
    "setup_logging",
    "get_logger",
    "ColoredFormatter",
    # Concurrency
    "KeyedMutex",
]
