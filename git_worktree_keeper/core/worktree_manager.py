"""Core functionality for git-worktree-keeper"""

from typing import List, Optional, Union

from git_worktree_keeper.config import Config
from git_worktree_keeper.models.branch import BranchInfo
from git_worktree_keeper.models.commit import CommitInfo
from git_worktree_keeper.models.conflict import ConflictReport
from git_worktree_keeper.models.project import Project
from git_worktree_keeper.models.worktree import CreatedWorktree, WorktreeInfo
from git_worktree_keeper.services.command_runner import CommandRunner
from git_worktree_keeper.services.git import (
    BranchQueries,
    ConflictDetector,
    IntegrationService,
    RemoteSyncService,
    WorktreePathCache,
    WorktreeService,
)
from git_worktree_keeper.utils.logging import get_logger
from git_worktree_keeper.utils.mutex import KeyedMutex

logger = get_logger(__name__)


class WorktreeManager:
    """Entry point for worktree lifecycle and safe-merge operations.

    Each manager owns its runner, keyed mutex and path cache, so several
    managers in one process never share state. Operations that only take a
    worktree path accept the owning project to pick its execution context.
    """

    def __init__(
        self,
        config: Union[Config, dict, None] = None,
        runner: Optional[CommandRunner] = None,
    ):
        """Initialize WorktreeManager.

        Args:
            config: Configuration dict or Config object
            runner: Command runner (defaults to one honouring config.command_timeout)
        """
        if config is None:
            config = Config()
        elif isinstance(config, dict):
            config = Config.from_dict(config)
        self.config = config

        self.runner = runner or CommandRunner(timeout=config.command_timeout)
        self.mutex = KeyedMutex(default_timeout=config.lock_timeout)
        self.path_cache = WorktreePathCache()

        self.worktree_service = WorktreeService(self.runner, config, self.mutex, self.path_cache)
        self.branch_queries = BranchQueries(self.runner, config, self.worktree_service)
        self.conflict_detector = ConflictDetector(self.runner, config)
        self.integration_service = IntegrationService(self.runner, config, self.mutex)
        self.remote_sync = RemoteSyncService(self.runner, config, self.mutex, self.branch_queries)

        logger.debug("Worktree manager initialized")

    def _context(self, project: Optional[Project]):
        return self.runner.context_for(project)

    # Worktree lifecycle

    def worktree_path(self, project: Project, name: str) -> str:
        return self.worktree_service.worktree_path(project, name)

    async def initialize_project(self, project: Project) -> None:
        await self.worktree_service.initialize_project(project)

    async def create_worktree(
        self,
        project: Project,
        name: str,
        branch: Optional[str] = None,
        base_branch: Optional[str] = None,
    ) -> CreatedWorktree:
        return await self.worktree_service.create_worktree(project, name, branch, base_branch)

    async def remove_worktree(self, project: Project, name: str) -> None:
        await self.worktree_service.remove_worktree(project, name)

    async def list_worktrees(self, project: Project) -> List[WorktreeInfo]:
        return await self.worktree_service.list_worktrees(project)

    # Branches

    async def list_branches(self, project: Project) -> List[BranchInfo]:
        return await self.branch_queries.list_branches(project)

    async def get_project_main_branch(self, project: Project) -> str:
        return await self.branch_queries.get_project_main_branch(project)

    async def get_remote_branches(
        self, worktree_path: str, project: Optional[Project] = None
    ) -> List[str]:
        return await self.branch_queries.get_remote_branches(worktree_path, self._context(project))

    async def get_upstream(self, worktree_path: str, project: Optional[Project] = None) -> Optional[str]:
        return await self.branch_queries.get_upstream(worktree_path, self._context(project))

    async def get_origin_branch(
        self, worktree_path: str, branch: str, project: Optional[Project] = None
    ) -> Optional[str]:
        return await self.branch_queries.get_origin_branch(
            worktree_path, branch, self._context(project)
        )

    async def get_last_commits(
        self, worktree_path: str, count: int = 20, project: Optional[Project] = None
    ) -> List[CommitInfo]:
        return await self.branch_queries.get_last_commits(
            worktree_path, count, self._context(project)
        )

    # Conflict preview

    async def has_changes_to_rebase(
        self, worktree_path: str, main_branch: str, project: Optional[Project] = None
    ) -> bool:
        return await self.conflict_detector.has_changes_to_rebase(
            worktree_path, main_branch, self._context(project)
        )

    async def check_for_rebase_conflicts(
        self, worktree_path: str, main_branch: str, project: Optional[Project] = None
    ) -> ConflictReport:
        return await self.conflict_detector.check_for_rebase_conflicts(
            worktree_path, main_branch, self._context(project)
        )

    # Integration

    async def rebase_main_into_worktree(
        self, worktree_path: str, main_branch: str, project: Optional[Project] = None
    ) -> None:
        await self.integration_service.rebase_main_into_worktree(
            worktree_path, main_branch, self._context(project)
        )

    async def abort_rebase(self, worktree_path: str, project: Optional[Project] = None) -> None:
        await self.integration_service.abort_rebase(worktree_path, self._context(project))

    async def squash_and_merge_worktree_to_main(
        self, project: Project, worktree_path: str, main_branch: str, commit_message: str
    ) -> None:
        await self.integration_service.squash_and_merge_worktree_to_main(
            project, worktree_path, main_branch, commit_message
        )

    async def merge_worktree_to_main(
        self, project: Project, worktree_path: str, main_branch: str
    ) -> None:
        await self.integration_service.merge_worktree_to_main(project, worktree_path, main_branch)

    def generate_rebase_commands(self, main_branch: str) -> List[str]:
        return self.integration_service.generate_rebase_commands(main_branch)

    def generate_squash_commands(self, main_branch: str, branch_name: str) -> List[str]:
        return self.integration_service.generate_squash_commands(main_branch, branch_name)

    def generate_merge_commands(self, main_branch: str, branch_name: str) -> List[str]:
        return self.integration_service.generate_merge_commands(main_branch, branch_name)

    # Remote sync

    async def git_pull(self, worktree_path: str, project: Optional[Project] = None) -> str:
        return await self.remote_sync.git_pull(worktree_path, self._context(project))

    async def git_push(self, worktree_path: str, project: Optional[Project] = None) -> str:
        return await self.remote_sync.git_push(worktree_path, self._context(project))

    async def git_fetch(self, worktree_path: str, project: Optional[Project] = None) -> str:
        return await self.remote_sync.git_fetch(worktree_path, self._context(project))

    async def git_stash(
        self, worktree_path: str, message: Optional[str] = None, project: Optional[Project] = None
    ) -> str:
        return await self.remote_sync.git_stash(worktree_path, message, self._context(project))

    async def git_stash_pop(self, worktree_path: str, project: Optional[Project] = None) -> str:
        return await self.remote_sync.git_stash_pop(worktree_path, self._context(project))

    async def has_stash(self, worktree_path: str, project: Optional[Project] = None) -> bool:
        return await self.remote_sync.has_stash(worktree_path, self._context(project))

    async def set_upstream(
        self, worktree_path: str, remote_branch: str, project: Optional[Project] = None
    ) -> str:
        return await self.remote_sync.set_upstream(
            worktree_path, remote_branch, self._context(project)
        )

    async def git_stage_all_and_commit(
        self, worktree_path: str, message: str, project: Optional[Project] = None
    ) -> str:
        return await self.remote_sync.git_stage_all_and_commit(
            worktree_path, message, self._context(project)
        )
