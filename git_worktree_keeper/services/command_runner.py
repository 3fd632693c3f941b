"""Command runner service.

Runs a command in a working directory and returns its output. Processes are
started through GitPython's ``Git.execute`` on a worker thread so callers on
the event loop never block. Where the process runs is decided by an
ExecutionContext strategy chosen per project.
"""

import asyncio
import os
import posixpath
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import git

from git_worktree_keeper.exceptions import (
    CommandError,
    CommandNotFoundError,
    CommandTimeoutError,
)
from git_worktree_keeper.models.project import Project
from git_worktree_keeper.utils.logging import get_logger

logger = get_logger(__name__)

# GitPython rewrites stderr to this when its watchdog kills a process
_TIMEOUT_MARKER = "Timeout: the command"


@dataclass(frozen=True)
class CommandResult:
    """Captured output of a finished command."""

    stdout: str
    stderr: str

    @property
    def output(self) -> str:
        """stdout, falling back to stderr."""
        return self.stdout or self.stderr


class ExecutionContext:
    """Where commands run and how paths are spelled there."""

    name = "local"

    def wrap(self, argv: List[str], cwd: Optional[str]) -> Tuple[List[str], Optional[str]]:
        """Return the argv and host cwd that actually get executed."""
        return argv, cwd

    def join(self, *parts: str) -> str:
        return os.path.join(*parts)

    def is_absolute(self, path: str) -> bool:
        # Drive letters (C:\...) count as absolute on the host
        return path.startswith("/") or ":" in path

    def __repr__(self) -> str:
        return f"<{type(self).__name__}>"


class LocalExecutionContext(ExecutionContext):
    """Run commands directly on the host."""
    pass


class WslExecutionContext(ExecutionContext):
    """Run commands inside a Windows Subsystem for Linux distribution.

    Paths are Linux paths; the working directory is handed to wsl.exe via
    --cd so the host process needs no cwd of its own.
    """

    name = "wsl"

    def __init__(self, distribution: str, executable: str = "wsl.exe"):
        self.distribution = distribution
        self.executable = executable

    def wrap(self, argv: List[str], cwd: Optional[str]) -> Tuple[List[str], Optional[str]]:
        wrapped = [self.executable, "-d", self.distribution]
        if cwd:
            wrapped += ["--cd", cwd]
        return wrapped + ["--", *argv], None

    def join(self, *parts: str) -> str:
        return posixpath.join(*parts)

    def is_absolute(self, path: str) -> bool:
        return path.startswith("/")

    def __repr__(self) -> str:
        return f"<WslExecutionContext {self.distribution}>"


LOCAL_CONTEXT = LocalExecutionContext()


class CommandRunner:
    """Execute commands and capture their output.

    Non-zero exit raises CommandError carrying exit code, stdout and stderr.
    """

    def __init__(self, timeout: Optional[float] = None):
        """Initialize the runner.

        Args:
            timeout: Seconds after which a running process is killed
                (None = no limit)
        """
        self.timeout = timeout

    @staticmethod
    def context_for(project: Optional[Project]) -> ExecutionContext:
        """Pick the execution context for a project."""
        if project is not None and project.wsl_distribution:
            return WslExecutionContext(project.wsl_distribution)
        return LOCAL_CONTEXT

    async def execute(
        self,
        args: Sequence[str],
        cwd: Optional[str],
        context: Optional[ExecutionContext] = None,
    ) -> CommandResult:
        """Run args in cwd and return its output."""
        return await asyncio.to_thread(
            self._execute_sync, list(args), cwd, context or LOCAL_CONTEXT
        )

    async def git(
        self, cwd: Optional[str], *args: str, context: Optional[ExecutionContext] = None
    ) -> CommandResult:
        """Run a git subcommand in cwd."""
        return await self.execute(["git", *args], cwd, context)

    def _execute_sync(
        self, argv: List[str], cwd: Optional[str], context: ExecutionContext
    ) -> CommandResult:
        actual_argv, host_cwd = context.wrap(argv, cwd)

        # Git.execute silently falls back to the process cwd for a missing
        # directory, which could run git against an unrelated repository.
        if host_cwd is not None and not os.path.isdir(host_cwd):
            raise CommandError(
                argv,
                cwd,
                message=f"working directory {host_cwd} does not exist",
                stderr=f"No such file or directory: {host_cwd}",
            )

        logger.debug(f"Executing: {' '.join(actual_argv)} in {cwd}")
        try:
            status, stdout, stderr = git.cmd.Git(host_cwd).execute(
                actual_argv,
                with_extended_output=True,
                with_exceptions=False,
                kill_after_timeout=self.timeout,
                env={"GIT_TERMINAL_PROMPT": "0"},
            )
        except git.exc.GitCommandNotFound as e:
            logger.error(f"Could not start {actual_argv[0]}: {e}")
            raise CommandNotFoundError(argv, cwd, str(e)) from e

        stdout = stdout if isinstance(stdout, str) else stdout.decode("utf-8", errors="replace")
        stderr = stderr if isinstance(stderr, str) else stderr.decode("utf-8", errors="replace")

        if status != 0:
            if self.timeout is not None and stderr.startswith(_TIMEOUT_MARKER):
                logger.error(f"Timed out after {self.timeout}s: {' '.join(argv)}")
                raise CommandTimeoutError(argv, cwd, self.timeout, stderr=stderr)
            logger.debug(f"Failed (exit {status}): {' '.join(argv)}: {stderr.strip()}")
            raise CommandError(argv, cwd, exit_code=status, stdout=stdout, stderr=stderr)

        if stdout:
            lines = stdout.split("\n")
            preview = lines[0][:100] + (f" ... ({len(lines)} lines)" if len(lines) > 1 else "")
            logger.debug(f"Success: {preview}")

        return CommandResult(stdout=stdout, stderr=stderr)
