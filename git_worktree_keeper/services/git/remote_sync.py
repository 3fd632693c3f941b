"""Remote sync service for git-worktree-keeper.

Thin wrappers around pull/push/fetch/stash/upstream/commit. Every failure is
raised as SyncError with the git output and the working directory attached.
"""

import shlex
from typing import Optional

from git_worktree_keeper.config import Config
from git_worktree_keeper.exceptions import CommandError, SyncError
from git_worktree_keeper.services.command_runner import CommandRunner, ExecutionContext
from git_worktree_keeper.services.git.branch_queries import BranchQueries
from git_worktree_keeper.services.git.locks import worktree_key
from git_worktree_keeper.utils.logging import get_logger
from git_worktree_keeper.utils.mutex import KeyedMutex

logger = get_logger(__name__)


class RemoteSyncService:
    """Service for synchronizing worktrees with their remotes."""

    def __init__(
        self,
        runner: CommandRunner,
        config: Config,
        mutex: KeyedMutex,
        branch_queries: BranchQueries,
    ):
        self.runner = runner
        self.config = config
        self.mutex = mutex
        self.branch_queries = branch_queries
        self.remote_name = config.remote_name

    async def _run(
        self,
        operation: str,
        worktree_path: str,
        args: list[str],
        default_output: str,
        context: Optional[ExecutionContext],
        failure_message: str,
    ) -> str:
        """Run one git command under the worktree lock and return its output."""
        async with self.mutex.hold(worktree_key(worktree_path), self.config.lock_timeout):
            try:
                result = await self.runner.git(worktree_path, *args, context=context)
            except CommandError as e:
                logger.error(f"{failure_message} in {worktree_path}: {e.output.strip()}")
                raise SyncError(
                    operation,
                    failure_message,
                    commands=[f"git {shlex.join(args)} (in {worktree_path})"],
                    git_output=e.output,
                    working_directory=worktree_path,
                ) from e

        output = result.stdout or result.stderr or default_output
        logger.info(f"{operation} in {worktree_path}: {output.splitlines()[0] if output else ''}")
        return output

    async def git_pull(self, worktree_path: str, context: Optional[ExecutionContext] = None) -> str:
        return await self._run(
            "pull", worktree_path, ["pull"], "Pull completed successfully", context, "Git pull failed"
        )

    async def git_push(self, worktree_path: str, context: Optional[ExecutionContext] = None) -> str:
        """Push, setting the upstream to <remote>/HEAD on the first push."""
        has_upstream = await self.branch_queries.get_upstream(worktree_path, context) is not None
        args = ["push"] if has_upstream else ["push", "-u", self.remote_name, "HEAD"]
        return await self._run(
            "push", worktree_path, args, "Push completed successfully", context, "Git push failed"
        )

    async def git_fetch(self, worktree_path: str, context: Optional[ExecutionContext] = None) -> str:
        return await self._run(
            "fetch",
            worktree_path,
            ["fetch", "--all"],
            "Fetch completed successfully",
            context,
            "Git fetch failed",
        )

    async def git_stash(
        self,
        worktree_path: str,
        message: Optional[str] = None,
        context: Optional[ExecutionContext] = None,
    ) -> str:
        stash_message = message or self.config.stash_message
        return await self._run(
            "stash",
            worktree_path,
            ["stash", "push", "-m", stash_message],
            "Changes stashed successfully",
            context,
            "Git stash failed",
        )

    async def git_stash_pop(
        self, worktree_path: str, context: Optional[ExecutionContext] = None
    ) -> str:
        return await self._run(
            "stash_pop",
            worktree_path,
            ["stash", "pop"],
            "Stash applied successfully",
            context,
            "Git stash pop failed",
        )

    async def has_stash(self, worktree_path: str, context: Optional[ExecutionContext] = None) -> bool:
        try:
            result = await self.runner.git(worktree_path, "stash", "list", context=context)
        except CommandError as e:
            logger.debug(f"Could not list stashes in {worktree_path}: {e}")
            return False
        return bool(result.stdout.strip())

    async def set_upstream(
        self, worktree_path: str, remote_branch: str, context: Optional[ExecutionContext] = None
    ) -> str:
        return await self._run(
            "set_upstream",
            worktree_path,
            ["branch", f"--set-upstream-to={remote_branch}"],
            f"Tracking set to {remote_branch}",
            context,
            "Failed to set upstream",
        )

    async def git_stage_all_and_commit(
        self, worktree_path: str, message: str, context: Optional[ExecutionContext] = None
    ) -> str:
        """Stage everything, untracked files included, and commit."""
        if not message or not message.strip():
            raise ValueError("Commit message cannot be empty")

        commands = [f"git add -A (in {worktree_path})", f"git commit -m ... (in {worktree_path})"]
        async with self.mutex.hold(worktree_key(worktree_path), self.config.lock_timeout):
            try:
                await self.runner.git(worktree_path, "add", "-A", context=context)
                result = await self.runner.git(worktree_path, "commit", "-m", message, context=context)
            except CommandError as e:
                logger.error(f"Git commit failed in {worktree_path}: {e.output.strip()}")
                raise SyncError(
                    "commit",
                    "Git commit failed",
                    commands=commands,
                    git_output=e.output,
                    working_directory=worktree_path,
                ) from e

        return result.stdout or result.stderr or "Committed successfully"
