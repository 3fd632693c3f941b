"""Branch query service for git-worktree-keeper."""

import re
from typing import List, Optional

from git_worktree_keeper.config import Config
from git_worktree_keeper.exceptions import (
    CommandError,
    DetachedHeadError,
    GitOperationError,
    SyncError,
)
from git_worktree_keeper.models.branch import BranchInfo
from git_worktree_keeper.models.commit import CommitInfo
from git_worktree_keeper.models.project import Project
from git_worktree_keeper.services.command_runner import CommandRunner, ExecutionContext
from git_worktree_keeper.services.git.worktrees import WorktreeService
from git_worktree_keeper.utils.logging import get_logger

logger = get_logger(__name__)

SHORTSTAT_PATTERN = re.compile(
    r"(\d+) files? changed(?:, (\d+) insertions?\(\+\))?(?:, (\d+) deletions?\(-\))?"
)


class BranchQueries:
    """Service for querying branch information."""

    def __init__(
        self,
        runner: CommandRunner,
        config: Config,
        worktree_service: WorktreeService,
    ):
        """Initialize the branch queries service.

        Args:
            runner: Command runner used for every git call
            config: Configuration object
            worktree_service: WorktreeService used to find worktree branches
        """
        self.runner = runner
        self.config = config
        self.worktree_service = worktree_service
        self.remote_name = config.remote_name

        logger.debug("Branch queries service initialized")

    async def list_branches(self, project: Project) -> list[BranchInfo]:
        """List remote and local branches of a project.

        Remote branches come first, alphabetically; then local branches with
        worktree-bound ones first, each group alphabetically.
        """
        context = self.runner.context_for(project)

        if self.config.fetch_on_list:
            try:
                await self.runner.git(project.path, "fetch", "--all", "--prune", context=context)
            except CommandError as e:
                # The user may be offline
                logger.debug(f"Could not fetch remotes: {e}")

        local_output = (
            await self.runner.git(
                project.path,
                "for-each-ref",
                "--format=%(HEAD)%09%(refname:short)",
                "refs/heads",
                context=context,
            )
        ).stdout

        remote_names = await self._remote_branch_names(project.path, context)

        worktrees = await self.worktree_service.list_worktrees(project)
        worktree_branches = {wt.branch_name for wt in worktrees}

        local_branches = []
        for line in local_output.split("\n"):
            if not line.strip():
                continue
            marker, _, name = line.partition("\t")
            name = name.strip()
            if name:
                local_branches.append(
                    BranchInfo(
                        name=name,
                        is_current=marker.strip() == "*",
                        has_worktree=name in worktree_branches,
                        is_remote=False,
                    )
                )

        # Remote branches never have worktrees directly
        remote_branches = [BranchInfo(name=name, is_remote=True) for name in remote_names]

        remote_branches.sort(key=lambda b: b.name.casefold())
        local_branches.sort(key=lambda b: (not b.has_worktree, b.name.casefold()))
        return remote_branches + local_branches

    async def get_project_main_branch(self, project: Project) -> str:
        """Return the branch checked out in the project root.

        Raises DetachedHeadError instead of guessing when HEAD is detached.
        """
        context = self.runner.context_for(project)
        try:
            result = await self.runner.git(
                project.path, "branch", "--show-current", context=context
            )
        except CommandError as e:
            raise GitOperationError(
                "get_main_branch",
                f"Failed to get main branch for project at {project.path}: {e.message}",
                commands=e.commands,
                git_output=e.output,
                working_directory=project.path,
                project_path=project.path,
            ) from e

        current_branch = result.stdout.strip()
        if not current_branch:
            raise DetachedHeadError(project.path)
        return current_branch

    async def get_remote_branches(
        self, worktree_path: str, context: Optional[ExecutionContext] = None
    ) -> List[str]:
        """Remote branch names such as origin/main. Empty on error."""
        return await self._remote_branch_names(worktree_path, context)

    async def _remote_branch_names(
        self, cwd: str, context: Optional[ExecutionContext]
    ) -> List[str]:
        try:
            result = await self.runner.git(
                cwd, "for-each-ref", "--format=%(refname)", "refs/remotes", context=context
            )
        except CommandError as e:
            # Repo may not have remotes
            logger.debug(f"Could not list remote branches in {cwd}: {e}")
            return []

        names = []
        for line in result.stdout.split("\n"):
            ref = line.strip()
            if not ref.startswith("refs/remotes/"):
                continue
            name = ref[len("refs/remotes/") :]
            # Skip symbolic origin/HEAD
            if name.endswith("/HEAD"):
                continue
            names.append(name)
        return names

    async def get_upstream(
        self, worktree_path: str, context: Optional[ExecutionContext] = None
    ) -> Optional[str]:
        """Upstream of the checked-out branch, or None when not configured."""
        try:
            result = await self.runner.git(
                worktree_path,
                "rev-parse",
                "--abbrev-ref",
                "--symbolic-full-name",
                "@{u}",
                context=context,
            )
        except CommandError:
            return None
        return result.stdout.strip() or None

    async def get_origin_branch(
        self, worktree_path: str, branch: str, context: Optional[ExecutionContext] = None
    ) -> Optional[str]:
        """Return '<remote>/<branch>' if that ref exists."""
        remote_branch = f"{self.remote_name}/{branch}"
        try:
            await self.runner.git(
                worktree_path, "rev-parse", "--verify", "--quiet", remote_branch, context=context
            )
        except CommandError:
            return None
        return remote_branch

    async def get_last_commits(
        self, worktree_path: str, count: int = 20, context: Optional[ExecutionContext] = None
    ) -> list[CommitInfo]:
        """Most recent commits of a worktree with their shortstat numbers."""
        try:
            result = await self.runner.git(
                worktree_path,
                "log",
                f"-{count}",
                "--pretty=format:%H|%s|%ai|%an",
                "--shortstat",
                context=context,
            )
        except CommandError as e:
            raise SyncError(
                "get_last_commits",
                f"Failed to get commits: {e.message}",
                commands=e.commands,
                git_output=e.output,
                working_directory=worktree_path,
            ) from e

        return self.parse_log_output(result.stdout)

    @staticmethod
    def parse_log_output(output: str) -> list[CommitInfo]:
        """Parse `%H|%s|%ai|%an` lines, each optionally followed by a shortstat line."""
        commits: list[CommitInfo] = []
        lines = output.split("\n")
        i = 0

        while i < len(lines):
            commit_line = lines[i]
            if not commit_line or "|" not in commit_line:
                i += 1
                continue

            # Subjects may contain '|': hash is first, date and author are last
            parts = commit_line.split("|")
            commit_hash = parts.pop(0).strip()
            author = parts.pop().strip() if parts else ""
            date = parts.pop().strip() if parts else ""
            message = "|".join(parts).strip()

            files_changed = additions = deletions = 0
            # git puts a blank line between the header and its shortstat
            j = i + 1
            while j < len(lines) and not lines[j].strip():
                j += 1
            if j < len(lines):
                match = SHORTSTAT_PATTERN.search(lines[j])
                if match and "|" not in lines[j]:
                    files_changed = int(match.group(1) or 0)
                    additions = int(match.group(2) or 0)
                    deletions = int(match.group(3) or 0)
                    i = j

            commits.append(
                CommitInfo(
                    hash=commit_hash,
                    message=message,
                    date=date,
                    author=author or "Unknown",
                    files_changed=files_changed,
                    additions=additions,
                    deletions=deletions,
                )
            )
            i += 1

        return commits
