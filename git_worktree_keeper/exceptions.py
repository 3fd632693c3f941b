"""Custom exceptions for git-worktree-keeper"""

import shlex
from typing import List, Optional, Sequence


class GitWorktreeKeeperError(Exception):
    """Base exception for all git-worktree-keeper errors."""
    pass


class LockTimeoutError(GitWorktreeKeeperError):
    """Exception raised when a keyed lock could not be acquired in time."""

    def __init__(self, key: str, timeout: float):
        self.key = key
        self.timeout = timeout
        super().__init__(f"Timed out after {timeout}s waiting for lock '{key}'")


class GitOperationError(GitWorktreeKeeperError):
    """Exception raised for errors in Git operations.

    Carries everything a caller needs to render diagnostics without
    re-deriving them: the git commands that ran, the raw git output and the
    directories involved.
    """

    def __init__(
        self,
        operation: str,
        message: Optional[str] = None,
        *,
        commands: Optional[Sequence[str]] = None,
        git_output: str = "",
        working_directory: Optional[str] = None,
        project_path: Optional[str] = None,
        state: Optional[str] = None,
    ):
        self.operation = operation
        self.message = message
        self.commands: List[str] = list(commands or [])
        self.git_output = git_output
        self.working_directory = working_directory
        self.project_path = project_path
        self.state = state

        error_msg = f"Git operation '{operation}' failed"
        if message:
            error_msg += f": {message}"

        super().__init__(error_msg)

    def describe(self) -> str:
        """Multi-line diagnostic text for display."""
        lines = [str(self)]
        if self.working_directory:
            lines.append(f"Working directory: {self.working_directory}")
        if self.project_path and self.project_path != self.working_directory:
            lines.append(f"Project: {self.project_path}")
        if self.state:
            lines.append(f"Failed while: {self.state}")
        if self.commands:
            lines.append("Commands:")
            lines.extend(f"  {command}" for command in self.commands)
        if self.git_output:
            lines.append("Git output:")
            lines.append(self.git_output.rstrip())
        return "\n".join(lines)


class CommandError(GitOperationError):
    """Exception raised when the command runner reports a failed process."""

    def __init__(
        self,
        argv: Sequence[str],
        cwd: Optional[str],
        exit_code: Optional[int] = None,
        stdout: str = "",
        stderr: str = "",
        message: Optional[str] = None,
    ):
        self.argv = list(argv)
        self.command = shlex.join(self.argv)
        self.cwd = cwd
        self.exit_code = exit_code
        self.stdout = stdout or ""
        self.stderr = stderr or ""

        if message is None:
            detail = self.stderr.strip()
            if detail:
                message = f"'{self.command}' failed (exit {exit_code}): {detail}"
            else:
                message = f"'{self.command}' failed with exit code {exit_code}"

        super().__init__(
            "execute",
            message,
            commands=[f"{self.command} (in {cwd})"],
            git_output=self.stderr or self.stdout,
            working_directory=cwd,
        )

    @property
    def output(self) -> str:
        """stderr, falling back to stdout, falling back to the message."""
        return self.stderr or self.stdout or (self.message or "")


class CommandNotFoundError(CommandError):
    """Exception raised when the executable itself cannot be started."""

    def __init__(self, argv: Sequence[str], cwd: Optional[str], reason: str = ""):
        super().__init__(
            argv,
            cwd,
            stderr=reason,
            message=f"could not run '{shlex.join(list(argv))}': {reason or 'executable not found'}",
        )


class CommandTimeoutError(CommandError):
    """Exception raised when a command was killed after exceeding its timeout."""

    def __init__(self, argv: Sequence[str], cwd: Optional[str], timeout: float, stderr: str = ""):
        self.timeout = timeout
        super().__init__(
            argv,
            cwd,
            stderr=stderr,
            message=f"'{shlex.join(list(argv))}' killed after {timeout}s",
        )


class WorktreeError(GitOperationError):
    """Exception raised when a worktree cannot be created, removed or listed."""
    pass


class DetachedHeadError(GitOperationError):
    """Exception raised when repository is in detached HEAD state."""

    def __init__(self, path: str):
        super().__init__(
            "check_state",
            message=f"Cannot determine main branch: repository at {path} is in detached HEAD state",
            working_directory=path,
        )


class BaseBranchNotFoundError(GitOperationError):
    """Exception raised when the requested base ref does not exist."""

    def __init__(self, base_branch: str, project_path: Optional[str] = None):
        self.base_branch = base_branch
        super().__init__(
            "create_worktree",
            message=f"Base branch '{base_branch}' does not exist",
            working_directory=project_path,
            project_path=project_path,
        )


class IntegrationError(GitOperationError):
    """Exception raised when rebasing or merging a worktree fails."""
    pass


class NothingToIntegrateError(IntegrationError):
    """Exception raised when a worktree has no commits to squash or merge."""
    pass


class RebaseConflictError(IntegrationError):
    """Exception raised when rebasing a worktree onto main stops on conflicts."""
    pass


class DetachedWorktreeError(IntegrationError, DetachedHeadError):
    """Exception raised when a worktree to integrate has no branch checked out."""

    def __init__(self, operation: str, message: Optional[str] = None, **details):
        GitOperationError.__init__(self, operation, message, **details)


class FastForwardError(IntegrationError):
    """Exception raised when main cannot be fast-forwarded to the worktree branch."""
    pass


class SyncError(GitOperationError):
    """Exception raised for pull/push/fetch/stash/commit failures."""
    pass
