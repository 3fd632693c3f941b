"""Configuration handling for git-worktree-keeper"""

from dataclasses import dataclass
from typing import Optional


@dataclass
class Config:
    """Configuration for git-worktree-keeper with validation."""

    # Worktree layout
    worktree_folder: str = "worktrees"  # relative to the project, or absolute
    remote_name: str = "origin"

    # Squash commits
    enable_commit_footer: bool = False
    commit_footer: Optional[str] = None

    stash_message: str = "git-worktree-keeper stash"

    # Timeouts in seconds (None = wait forever)
    command_timeout: Optional[float] = None
    lock_timeout: Optional[float] = None

    # Branch listing
    fetch_on_list: bool = True

    # Execution modes
    verbose: bool = False
    debug: bool = False

    def __post_init__(self):
        """Validate configuration after initialization."""
        self._validate_worktree_folder()
        self._validate_remote_name()
        self._validate_timeouts()
        self._validate_commit_footer()

    def _validate_worktree_folder(self):
        """Validate worktree_folder is not empty."""
        if not self.worktree_folder or not self.worktree_folder.strip():
            raise ValueError("worktree_folder cannot be empty")
        self.worktree_folder = self.worktree_folder.strip()

    def _validate_remote_name(self):
        """Validate remote_name is a single non-empty token."""
        if not self.remote_name or not self.remote_name.strip():
            raise ValueError("remote_name cannot be empty")
        if any(ch.isspace() for ch in self.remote_name.strip()):
            raise ValueError(f"remote_name cannot contain whitespace, got '{self.remote_name}'")
        self.remote_name = self.remote_name.strip()

    def _validate_timeouts(self):
        """Validate timeouts are positive when set."""
        for name in ("command_timeout", "lock_timeout"):
            value = getattr(self, name)
            if value is not None and value <= 0:
                raise ValueError(f"{name} must be positive, got {value}")

    def _validate_commit_footer(self):
        """A footer must be provided when the footer is enabled."""
        if self.enable_commit_footer and not (self.commit_footer or "").strip():
            raise ValueError("commit_footer must be set when enable_commit_footer is true")

    def format_commit_message(self, message: str) -> str:
        """Append the configured attribution footer to a commit message."""
        if self.enable_commit_footer and self.commit_footer:
            return f"{message}\n\n{self.commit_footer.strip()}"
        return message

    def to_dict(self) -> dict:
        """Convert config to dictionary."""
        return {
            "worktree_folder": self.worktree_folder,
            "remote_name": self.remote_name,
            "enable_commit_footer": self.enable_commit_footer,
            "commit_footer": self.commit_footer,
            "stash_message": self.stash_message,
            "command_timeout": self.command_timeout,
            "lock_timeout": self.lock_timeout,
            "fetch_on_list": self.fetch_on_list,
            "verbose": self.verbose,
            "debug": self.debug,
        }

    def get(self, key: str, default=None):
        """Get config value by key, dict style."""
        return getattr(self, key, default)

    @classmethod
    def from_dict(cls, config_dict: dict) -> "Config":
        """Create Config from dictionary."""
        # Extract only known fields
        known_fields = {
            "worktree_folder",
            "remote_name",
            "enable_commit_footer",
            "commit_footer",
            "stash_message",
            "command_timeout",
            "lock_timeout",
            "fetch_on_list",
            "verbose",
            "debug",
        }

        filtered = {k: v for k, v in config_dict.items() if k in known_fields}
        return cls(**filtered)
