"""Worktree operations service for git-worktree-keeper."""

import os
import shlex
from typing import Any, Dict, List, Optional, Tuple

from git_worktree_keeper.config import Config
from git_worktree_keeper.exceptions import (
    BaseBranchNotFoundError,
    CommandError,
    WorktreeError,
)
from git_worktree_keeper.models.project import Project
from git_worktree_keeper.models.worktree import CreatedWorktree, WorktreeInfo
from git_worktree_keeper.services.command_runner import (
    CommandResult,
    CommandRunner,
    ExecutionContext,
)
from git_worktree_keeper.services.git.locks import worktree_name_key
from git_worktree_keeper.utils.logging import get_logger
from git_worktree_keeper.utils.mutex import KeyedMutex

logger = get_logger(__name__)

# Phrases git uses when asked to remove a worktree that is already gone
ALREADY_REMOVED_MARKERS = (
    "is not a working tree",
    "does not exist",
    "No such file or directory",
)


class WorktreePathCache:
    """Memoised worktree base directory per (project, folder, context)."""

    def __init__(self):
        self._base_dirs: Dict[Tuple[str, str, str], str] = {}

    def base_dir(self, project: Project, context: ExecutionContext, default_folder: str) -> str:
        folder = project.worktree_folder or default_folder
        cache_key = (project.path, folder, context.name)
        if cache_key not in self._base_dirs:
            if context.is_absolute(folder):
                base_dir = folder
            else:
                base_dir = context.join(project.path, folder)
            self._base_dirs[cache_key] = base_dir
        return self._base_dirs[cache_key]

    def clear(self):
        self._base_dirs.clear()

    def __len__(self) -> int:
        return len(self._base_dirs)


class WorktreeService:
    """Service for creating, removing and listing git worktrees."""

    def __init__(
        self,
        runner: CommandRunner,
        config: Config,
        mutex: KeyedMutex,
        path_cache: Optional[WorktreePathCache] = None,
    ):
        """Initialize the worktree service.

        Args:
            runner: Command runner used for every git call
            config: Configuration object
            mutex: Keyed mutex shared with the other services
            path_cache: Cache of worktree base directories (one per manager)
        """
        self.runner = runner
        self.config = config
        self.mutex = mutex
        self.path_cache = path_cache if path_cache is not None else WorktreePathCache()

    def worktree_path(self, project: Project, name: str) -> str:
        """Deterministic path of the worktree called name."""
        context = self.runner.context_for(project)
        base_dir = self.path_cache.base_dir(project, context, self.config.worktree_folder)
        return context.join(base_dir, name)

    async def initialize_project(self, project: Project) -> None:
        """Make sure the worktree base directory exists."""
        context = self.runner.context_for(project)
        base_dir = self.path_cache.base_dir(project, context, self.config.worktree_folder)
        try:
            if project.uses_wsl:
                await self.runner.execute(["mkdir", "-p", base_dir], None, context)
            else:
                os.makedirs(base_dir, exist_ok=True)
        except (OSError, CommandError) as e:
            logger.error(f"Failed to create worktrees directory {base_dir}: {e}")

    async def create_worktree(
        self,
        project: Project,
        name: str,
        branch: Optional[str] = None,
        base_branch: Optional[str] = None,
    ) -> CreatedWorktree:
        """Create the worktree called name for a project.

        Reuses branch when it already exists, otherwise creates it from
        base_branch (or HEAD). A repository without commits is bootstrapped
        first.
        """
        if not name or not name.strip():
            raise ValueError("Worktree name cannot be empty")

        async with self.mutex.hold(worktree_name_key(project.path, name), self.config.lock_timeout):
            return await self._create_worktree(project, name, branch, base_branch)

    async def _create_worktree(
        self,
        project: Project,
        name: str,
        branch: Optional[str],
        base_branch: Optional[str],
    ) -> CreatedWorktree:
        context = self.runner.context_for(project)
        worktree_path = self.worktree_path(project, name)
        branch_name = branch or name
        executed: List[str] = []

        async def run(*args: str) -> CommandResult:
            executed.append(f"git {shlex.join(args)} (in {project.path})")
            return await self.runner.git(project.path, *args, context=context)

        async def succeeds(*args: str) -> bool:
            try:
                await run(*args)
                return True
            except CommandError:
                return False

        try:
            if not await succeeds("rev-parse", "--is-inside-work-tree"):
                logger.info(f"Initializing git repository at {project.path}")
                await run("init")

            # Stale worktree from an earlier run at the same path
            try:
                await run("worktree", "remove", "--force", worktree_path)
                logger.debug(f"Removed stale worktree at {worktree_path}")
            except CommandError:
                pass
            try:
                await run("worktree", "prune")
            except CommandError as e:
                logger.debug(f"Could not prune worktrees: {e}")

            if not await succeeds("rev-parse", "--verify", "--quiet", "HEAD"):
                logger.info(f"Repository at {project.path} has no commits, creating initial commit")
                await run("commit", "--allow-empty", "-m", "Initial commit")

            branch_exists = await succeeds(
                "show-ref", "--verify", "--quiet", f"refs/heads/{branch_name}"
            )

            if branch_exists:
                await run("worktree", "add", worktree_path, branch_name)
                base_commit = (await run("rev-parse", branch_name)).stdout.strip()
                actual_base_branch = branch_name
            else:
                base_ref = base_branch or "HEAD"
                actual_base_branch = base_ref

                if base_branch and not await succeeds(
                    "rev-parse", "--verify", "--quiet", f"{base_branch}^{{commit}}"
                ):
                    raise BaseBranchNotFoundError(base_branch, project.path)

                base_commit = (await run("rev-parse", base_ref)).stdout.strip()

                is_remote_base = base_branch is not None and await succeeds(
                    "show-ref", "--verify", "--quiet", f"refs/remotes/{base_branch}"
                )
                if is_remote_base:
                    # Track the remote so push/pull work without further setup
                    await run(
                        "worktree", "add", "-b", branch_name, "--track", worktree_path, base_branch
                    )
                else:
                    await run("worktree", "add", "-b", branch_name, worktree_path, base_ref)
        except CommandError as e:
            logger.error(f"Failed to create worktree {name} for {project.path}: {e}")
            raise WorktreeError(
                "create_worktree",
                f"Failed to create worktree: {e.message}",
                commands=executed,
                git_output=e.output,
                working_directory=project.path,
                project_path=project.path,
            ) from e

        logger.info(f"Worktree created at {worktree_path} on branch {branch_name}")
        return CreatedWorktree(
            worktree_path=worktree_path,
            base_commit=base_commit,
            base_branch=actual_base_branch,
        )

    async def remove_worktree(self, project: Project, name: str) -> None:
        """Remove the worktree called name. Removing a missing worktree succeeds."""
        worktree_path = self.worktree_path(project, name)
        context = self.runner.context_for(project)

        async with self.mutex.hold(worktree_name_key(project.path, name), self.config.lock_timeout):
            try:
                await self.runner.git(
                    project.path, "worktree", "remove", worktree_path, "--force", context=context
                )
            except CommandError as e:
                # Only git itself can report the worktree as gone
                if e.exit_code is not None and any(
                    marker in e.output for marker in ALREADY_REMOVED_MARKERS
                ):
                    logger.info(f"Worktree {worktree_path} already removed, skipping")
                    return

                logger.error(f"Failed to remove worktree at {worktree_path}: {e}")
                raise WorktreeError(
                    "remove_worktree",
                    f"Failed to remove worktree: {e.output.strip()}",
                    commands=[f"git worktree remove {worktree_path} --force (in {project.path})"],
                    git_output=e.output,
                    working_directory=project.path,
                    project_path=project.path,
                ) from e

        logger.info(f"Removed worktree at {worktree_path}")

    async def list_worktrees(self, project: Project) -> list[WorktreeInfo]:
        """List the project's worktrees that have a branch checked out."""
        context = self.runner.context_for(project)
        try:
            result = await self.runner.git(
                project.path, "worktree", "list", "--porcelain", context=context
            )
        except CommandError as e:
            raise WorktreeError(
                "list_worktrees",
                f"Failed to list worktrees: {e.message}",
                commands=e.commands,
                git_output=e.output,
                working_directory=project.path,
                project_path=project.path,
            ) from e

        worktrees = self.parse_worktree_list(result.stdout)
        logger.debug(f"Found {len(worktrees)} worktrees")
        return worktrees

    @staticmethod
    def parse_worktree_list(output: str) -> list[WorktreeInfo]:
        """Parse `git worktree list --porcelain` output.

        Format:
            worktree /path/to/worktree
            HEAD commit_sha
            branch refs/heads/branch-name
            (blank line between worktrees)

        Detached and bare entries are skipped.
        """
        worktrees: list[WorktreeInfo] = []
        current: Dict[str, Any] = {}
        seen_first = False

        def flush():
            if current.get("path") and current.get("branch"):
                worktrees.append(
                    WorktreeInfo(
                        path=current["path"],
                        branch_name=current["branch"],
                        head=current.get("HEAD", ""),
                        is_main=current.get("is_main", False),
                        is_prunable=current.get("prunable", False),
                    )
                )

        for line in output.split("\n"):
            line = line.rstrip("\r")

            if line.startswith("worktree "):
                flush()
                # First worktree in list is always the main one
                current = {"path": line[len("worktree ") :], "is_main": not seen_first}
                seen_first = True
            elif line.startswith("HEAD "):
                current["HEAD"] = line[len("HEAD ") :]
            elif line.startswith("branch "):
                branch_ref = line[len("branch ") :]
                if branch_ref.startswith("refs/heads/"):
                    branch_ref = branch_ref[len("refs/heads/") :]
                current["branch"] = branch_ref
            elif line.startswith("prunable"):
                current["prunable"] = True

        flush()
        return worktrees
