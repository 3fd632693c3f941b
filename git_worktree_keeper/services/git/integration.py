"""Safe integration of worktree branches into main.

Two safety checks protect main:

1. the worktree branch is rebased onto main first, so conflicts surface in
   the disposable worktree and never in main;
2. main is only advanced with ``git merge --ff-only``, which refuses to move
   if main gained commits after the rebase.

Main's history is therefore never rewritten.
"""

import shlex
from typing import List, Optional, Type

from git_worktree_keeper.config import Config
from git_worktree_keeper.exceptions import (
    CommandError,
    DetachedWorktreeError,
    FastForwardError,
    IntegrationError,
    NothingToIntegrateError,
    RebaseConflictError,
)
from git_worktree_keeper.models.integration import IntegrationState
from git_worktree_keeper.models.project import Project
from git_worktree_keeper.services.command_runner import (
    CommandResult,
    CommandRunner,
    ExecutionContext,
)
from git_worktree_keeper.services.git.locks import main_key, worktree_key
from git_worktree_keeper.utils.logging import get_logger
from git_worktree_keeper.utils.mutex import KeyedMutex

logger = get_logger(__name__)


class IntegrationAttempt:
    """State and command log of one integration attempt."""

    def __init__(
        self,
        runner: CommandRunner,
        operation: str,
        worktree_path: str,
        project_path: Optional[str] = None,
        context: Optional[ExecutionContext] = None,
    ):
        self.runner = runner
        self.operation = operation
        self.worktree_path = worktree_path
        self.project_path = project_path
        self.context = context
        self.state = IntegrationState.IDLE
        self.history: List[IntegrationState] = [IntegrationState.IDLE]
        self.commands: List[str] = []
        self.last_output = ""

    def transition(self, state: IntegrationState):
        logger.debug(f"[{self.operation}] {self.state.value} -> {state.value} ({self.worktree_path})")
        self.state = state
        self.history.append(state)

    async def run(self, cwd: str, *args: str) -> CommandResult:
        self.commands.append(f"git {shlex.join(args)} (in {cwd})")
        result = await self.runner.git(cwd, *args, context=self.context)
        self.last_output = result.output
        return result

    def failure(
        self,
        error_cls: Type[IntegrationError],
        message: str,
        cause: Optional[CommandError] = None,
    ) -> IntegrationError:
        """Build the error for the current state and move to FAILED."""
        # Prefer git's own error text over whatever the last command printed
        git_output = cause.output if cause is not None else self.last_output
        error = error_cls(
            self.operation,
            message,
            commands=self.commands,
            git_output=git_output,
            working_directory=self.worktree_path,
            project_path=self.project_path,
            state=self.state.value,
        )
        self.transition(IntegrationState.FAILED)
        return error


class IntegrationService:
    """Service for rebasing worktrees and merging them into main."""

    def __init__(self, runner: CommandRunner, config: Config, mutex: KeyedMutex):
        """Initialize the integration service.

        Args:
            runner: Command runner used for every git call
            config: Configuration object
            mutex: Keyed mutex shared with the other services
        """
        self.runner = runner
        self.config = config
        self.mutex = mutex

    async def rebase_main_into_worktree(
        self, worktree_path: str, main_branch: str, context: Optional[ExecutionContext] = None
    ) -> None:
        """Rebase the worktree branch onto main. Never touches main.

        A failed rebase is left in progress; call abort_rebase to recover.
        """
        async with self.mutex.hold(worktree_key(worktree_path), self.config.lock_timeout):
            attempt = IntegrationAttempt(self.runner, "rebase", worktree_path, context=context)
            attempt.transition(IntegrationState.REBASING_WORKTREE)
            try:
                await attempt.run(worktree_path, "rebase", main_branch)
            except CommandError as e:
                logger.error(f"Failed to rebase {main_branch} into worktree {worktree_path}: {e}")
                error_cls = RebaseConflictError if _is_conflict(e) else IntegrationError
                raise attempt.failure(
                    error_cls, f"Failed to rebase {main_branch} into worktree", e
                ) from e
            attempt.transition(IntegrationState.DONE)

        logger.info(f"Rebased worktree {worktree_path} onto {main_branch}")

    async def abort_rebase(
        self, worktree_path: str, context: Optional[ExecutionContext] = None
    ) -> None:
        """Abort an in-progress rebase. No rebase in progress counts as success."""
        async with self.mutex.hold(worktree_key(worktree_path), self.config.lock_timeout):
            await self._abort_rebase(worktree_path, context)

    async def _abort_rebase(self, worktree_path: str, context: Optional[ExecutionContext]) -> None:
        try:
            await self.runner.git(worktree_path, "rebase", "--abort", context=context)
        except CommandError as e:
            if "No rebase in progress" in e.output:
                logger.debug(f"No rebase in progress in {worktree_path}")
                return
            raise IntegrationError(
                "abort_rebase",
                f"Failed to abort rebase: {e.output.strip()}",
                commands=e.commands,
                git_output=e.output,
                working_directory=worktree_path,
            ) from e
        logger.info(f"Aborted rebase in {worktree_path}")

    async def squash_and_merge_worktree_to_main(
        self, project: Project, worktree_path: str, main_branch: str, commit_message: str
    ) -> None:
        """Squash the worktree's commits into one and fast-forward main to it."""
        if not commit_message or not commit_message.strip():
            raise ValueError("Commit message cannot be empty")

        async with self.mutex.hold(worktree_key(worktree_path), self.config.lock_timeout):
            await self._integrate(project, worktree_path, main_branch, commit_message)

    async def merge_worktree_to_main(
        self, project: Project, worktree_path: str, main_branch: str
    ) -> None:
        """Fast-forward main to the worktree branch, keeping its individual commits."""
        async with self.mutex.hold(worktree_key(worktree_path), self.config.lock_timeout):
            await self._integrate(project, worktree_path, main_branch, None)

    async def _integrate(
        self,
        project: Project,
        worktree_path: str,
        main_branch: str,
        commit_message: Optional[str],
    ) -> None:
        squash = commit_message is not None
        operation = "squash_and_merge" if squash else "merge"
        attempt = IntegrationAttempt(
            self.runner,
            operation,
            worktree_path,
            project_path=project.path,
            context=self.runner.context_for(project),
        )
        verb = "squash and merge" if squash else "merge"
        logger.info(f"Starting {verb} of {worktree_path} into {main_branch}")

        try:
            branch_name = (await attempt.run(worktree_path, "branch", "--show-current")).stdout.strip()
            if not branch_name:
                raise attempt.failure(
                    DetachedWorktreeError, f"Worktree at {worktree_path} is in detached HEAD state"
                )

            if squash:
                base = (await attempt.run(worktree_path, "merge-base", main_branch, "HEAD")).stdout.strip()
                commits = (await attempt.run(worktree_path, "log", "--oneline", f"{base}..HEAD")).stdout
            else:
                commits = (await attempt.run(worktree_path, "log", "--oneline", f"{main_branch}..HEAD")).stdout

            if not commits.strip():
                noun = "squash" if squash else "merge"
                raise attempt.failure(
                    NothingToIntegrateError,
                    f"No commits to {noun}. The branch is already up to date with {main_branch}.",
                )
            commit_count = len([c for c in commits.split("\n") if c.strip()])

            # Safety check 1: conflicts surface here, in the worktree only
            attempt.transition(IntegrationState.REBASING_WORKTREE)
            try:
                await attempt.run(worktree_path, "rebase", main_branch)
            except CommandError as e:
                try:
                    await self._abort_rebase(worktree_path, attempt.context)
                    attempt.transition(IntegrationState.ABORTED)
                except IntegrationError as abort_error:
                    logger.error(f"Could not abort rebase in {worktree_path}: {abort_error}")
                raise attempt.failure(
                    RebaseConflictError,
                    f"Failed to rebase worktree onto {main_branch}. Conflicts must be resolved first.",
                    e,
                ) from e

            if squash:
                rebased_head = (await attempt.run(worktree_path, "rev-parse", "HEAD")).stdout.strip()
                try:
                    attempt.transition(IntegrationState.SQUASHING)
                    # After the rebase the fork point is main's current tip
                    base = (await attempt.run(worktree_path, "merge-base", main_branch, "HEAD")).stdout.strip()
                    await attempt.run(worktree_path, "reset", "--soft", base)

                    attempt.transition(IntegrationState.COMMITTING)
                    full_message = self.config.format_commit_message(commit_message)
                    await attempt.run(worktree_path, "commit", "-m", full_message)
                except CommandError as e:
                    message = f"Failed to squash worktree commits: {e.output.strip()}"
                    try:
                        await self.runner.git(
                            worktree_path, "reset", "--soft", rebased_head, context=attempt.context
                        )
                        attempt.commands.append(f"git reset --soft {rebased_head} (in {worktree_path})")
                        message += f". Worktree branch restored to {rebased_head[:7]}"
                    except CommandError as reset_error:
                        logger.error(
                            f"Could not restore {worktree_path} to {rebased_head}: {reset_error}"
                        )
                        message += f". Restore the branch manually with: git reset --soft {rebased_head}"
                    raise attempt.failure(IntegrationError, message, e) from e

            async with self.mutex.hold(main_key(project.path), self.config.lock_timeout):
                attempt.transition(IntegrationState.CHECKOUT_MAIN)
                await attempt.run(project.path, "checkout", main_branch)

                # Safety check 2: refuses to move main if it diverged
                attempt.transition(IntegrationState.FF_MERGE)
                try:
                    await attempt.run(project.path, "merge", "--ff-only", branch_name)
                except CommandError as e:
                    raise attempt.failure(
                        FastForwardError,
                        f"Failed to fast-forward {main_branch} to {branch_name}. "
                        f"This usually means {main_branch} has commits that {branch_name} doesn't have. "
                        f"Rebase the worktree onto {main_branch} again, or reset {main_branch} to match "
                        f"{self.config.remote_name}.",
                        e,
                    ) from e
        except CommandError as e:
            logger.error(f"Failed to {verb} worktree {worktree_path} to {main_branch}: {e}")
            raise attempt.failure(
                IntegrationError, f"Failed to {verb} worktree to {main_branch}", e
            ) from e

        attempt.transition(IntegrationState.DONE)
        logger.info(
            f"Fast-forwarded {main_branch} to {branch_name} ({commit_count} commit(s), {verb})"
        )

    @staticmethod
    def generate_rebase_commands(main_branch: str) -> List[str]:
        """Manual equivalent of rebase_main_into_worktree."""
        return [f"git rebase {main_branch}"]

    @staticmethod
    def generate_squash_commands(main_branch: str, branch_name: str) -> List[str]:
        """Manual equivalent of squash_and_merge_worktree_to_main."""
        return [
            f"# In worktree: Rebase onto {main_branch} to get latest changes",
            f"git rebase {main_branch}",
            "# In worktree: Squash all commits into one",
            f"git reset --soft $(git merge-base {main_branch} HEAD)",
            'git commit -m "Your commit message"',
            f"# In main repo: Switch to {main_branch}",
            f"git checkout {main_branch}",
            "# In main repo: Merge the worktree branch",
            f"git merge --ff-only {branch_name}",
        ]

    @staticmethod
    def generate_merge_commands(main_branch: str, branch_name: str) -> List[str]:
        """Manual equivalent of merge_worktree_to_main."""
        return [
            f"# In worktree: Rebase onto {main_branch} to get latest changes",
            f"git rebase {main_branch}",
            f"# In main repo: Switch to {main_branch}",
            f"git checkout {main_branch}",
            "# In main repo: Merge the worktree branch",
            f"git merge --ff-only {branch_name}",
        ]


def _is_conflict(error: CommandError) -> bool:
    return "CONFLICT" in error.stdout or "CONFLICT" in error.stderr
