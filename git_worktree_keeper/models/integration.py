"""Integration protocol states."""

from enum import Enum


class IntegrationState(Enum):
    """Where an integration attempt currently is."""
    IDLE = "idle"
    REBASING_WORKTREE = "rebasing-worktree"
    ABORTED = "aborted"
    SQUASHING = "squashing"
    COMMITTING = "committing"
    CHECKOUT_MAIN = "checkout-main"
    FF_MERGE = "ff-merge"
    DONE = "done"
    FAILED = "failed"
