"""Conflict detection service for git-worktree-keeper."""

from typing import List, Optional

from git_worktree_keeper.config import Config
from git_worktree_keeper.exceptions import CommandError
from git_worktree_keeper.models.conflict import ConflictingCommits, ConflictReport
from git_worktree_keeper.services.command_runner import CommandRunner, ExecutionContext
from git_worktree_keeper.utils.logging import get_logger

logger = get_logger(__name__)

CONFLICT_MARKER = "<<<<<<< "


class ConflictDetector:
    """Predict whether integrating a worktree branch with main would conflict.

    Every check is read-only: nothing here touches the index, the working
    tree or any ref, so it is safe to call at any time without a lock.
    """

    def __init__(self, runner: CommandRunner, config: Config):
        """Initialize the conflict detector.

        Args:
            runner: Command runner used for every git call
            config: Configuration object
        """
        self.runner = runner
        self.config = config
        # Which analysis produced each conflicting report
        self.detection_stats = {
            "merge_tree": 0,  # Three-way dry-run merge
            "fallback": 0,  # Files changed on both sides
        }

        logger.debug("Conflict detector initialized")

    async def has_changes_to_rebase(
        self, worktree_path: str, main_branch: str, context: Optional[ExecutionContext] = None
    ) -> bool:
        """Check if main has commits the worktree branch doesn't have."""
        try:
            result = await self.runner.git(
                worktree_path, "rev-list", "--count", f"HEAD..{main_branch}", context=context
            )
            return int(result.stdout.strip() or "0") > 0
        except (CommandError, ValueError) as e:
            logger.debug(f"Could not count commits to rebase in {worktree_path}: {e}")
            return False

    async def check_for_rebase_conflicts(
        self, worktree_path: str, main_branch: str, context: Optional[ExecutionContext] = None
    ) -> ConflictReport:
        """Dry-run the integration of main into the worktree branch."""
        try:
            if not await self.has_changes_to_rebase(worktree_path, main_branch, context):
                return ConflictReport.clean()

            base = (
                await self.runner.git(
                    worktree_path, "merge-base", "HEAD", main_branch, context=context
                )
            ).stdout.strip()

            try:
                merge_tree = await self.runner.git(
                    worktree_path, "merge-tree", base, "HEAD", main_branch, context=context
                )
            except CommandError as e:
                # merge-tree syntax and availability vary by git version
                logger.info(f"merge-tree not available ({e.output.strip()}), using fallback conflict detection")
                return await self._check_overlapping_files(worktree_path, main_branch, base, context)

            if CONFLICT_MARKER not in merge_tree.stdout:
                return ConflictReport.clean()

            conflicting_files = await self._files_changed_on_both_sides(
                worktree_path, main_branch, base, context
            )
            self.detection_stats["merge_tree"] += 1
            logger.info(f"Found conflicts in files: {', '.join(conflicting_files)}")
            return await self._conflict_report(
                worktree_path, main_branch, base, conflicting_files, context
            )
        except CommandError as e:
            logger.error(f"Error checking for rebase conflicts in {worktree_path}: {e}")
            return ConflictReport.unknown()

    async def _check_overlapping_files(
        self,
        worktree_path: str,
        main_branch: str,
        base: str,
        context: Optional[ExecutionContext],
    ) -> ConflictReport:
        """Treat any file touched on both sides as a potential conflict.

        Over-approximates: edits to different regions of one file merge
        cleanly but are still reported.
        """
        conflicting_files = await self._files_changed_on_both_sides(
            worktree_path, main_branch, base, context
        )
        if not conflicting_files:
            return ConflictReport.clean()

        self.detection_stats["fallback"] += 1
        logger.info(f"Potential conflicts in files: {', '.join(conflicting_files)}")
        return await self._conflict_report(
            worktree_path, main_branch, base, conflicting_files, context
        )

    async def _files_changed_on_both_sides(
        self,
        worktree_path: str,
        main_branch: str,
        base: str,
        context: Optional[ExecutionContext],
    ) -> List[str]:
        our_files = await self._changed_files(worktree_path, f"{base}...HEAD", context)
        their_files = set(await self._changed_files(worktree_path, f"{base}...{main_branch}", context))
        return [f for f in our_files if f in their_files]

    async def _changed_files(
        self, worktree_path: str, revision_range: str, context: Optional[ExecutionContext]
    ) -> List[str]:
        result = await self.runner.git(
            worktree_path, "diff", "--name-only", revision_range, context=context
        )
        return [f for f in result.stdout.strip().split("\n") if f]

    async def _oneline_log(
        self, worktree_path: str, revision_range: str, context: Optional[ExecutionContext]
    ) -> List[str]:
        result = await self.runner.git(
            worktree_path, "log", "--oneline", revision_range, context=context
        )
        return [c for c in result.stdout.strip().split("\n") if c]

    async def _conflict_report(
        self,
        worktree_path: str,
        main_branch: str,
        base: str,
        conflicting_files: List[str],
        context: Optional[ExecutionContext],
    ) -> ConflictReport:
        ours = await self._oneline_log(worktree_path, f"{base}..HEAD", context)
        theirs = await self._oneline_log(worktree_path, f"{base}..{main_branch}", context)
        return ConflictReport(
            has_conflicts=True,
            can_auto_merge=False,
            conflicting_files=conflicting_files,
            conflicting_commits=ConflictingCommits(ours=ours, theirs=theirs),
        )
