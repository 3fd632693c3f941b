"""Display and formatting service for worktree and branch information"""
from typing import List, Optional

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from git_worktree_keeper.constants import (
    BRANCH_COLUMNS,
    CLI_COLORS,
    COMMIT_COLUMNS,
    SHORT_SHA_LENGTH,
    SYMBOL_CURRENT_BRANCH,
    SYMBOL_NO,
    SYMBOL_YES,
    WORKTREE_COLUMNS,
    BranchStyleType,
)
from git_worktree_keeper.exceptions import GitOperationError
from git_worktree_keeper.models.branch import BranchInfo
from git_worktree_keeper.models.commit import CommitInfo
from git_worktree_keeper.models.conflict import ConflictReport
from git_worktree_keeper.models.worktree import CreatedWorktree, WorktreeInfo


def get_branch_style_type(branch: BranchInfo) -> str:
    if branch.is_remote:
        return BranchStyleType.REMOTE
    if branch.is_current:
        return BranchStyleType.CURRENT
    if branch.has_worktree:
        return BranchStyleType.WORKTREE
    return BranchStyleType.LOCAL


def format_shortstat(commit: CommitInfo) -> str:
    if not commit.files_changed:
        return ""
    return f"{commit.files_changed}f +{commit.additions} -{commit.deletions}"


class DisplayService:
    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    def display_worktrees(self, worktrees: List[WorktreeInfo]) -> None:
        """Display a table of worktrees."""
        if not worktrees:
            self.console.print("[yellow]No worktrees found[/yellow]")
            return

        table = Table()
        for col in WORKTREE_COLUMNS:
            table.add_column(col.label)

        for wt in worktrees:
            notes = []
            if wt.is_main:
                notes.append("main")
            if wt.is_prunable:
                notes.append("prunable")
            table.add_row(
                escape(wt.branch_name),
                escape(wt.path),
                wt.head[:SHORT_SHA_LENGTH],
                ", ".join(notes),
                style="red" if wt.is_prunable else None,
            )

        self.console.print(table)

    def display_branches(self, branches: List[BranchInfo]) -> None:
        """Display a table of branches, remotes first."""
        if not branches:
            self.console.print("[yellow]No branches found[/yellow]")
            return

        table = Table()
        for col in BRANCH_COLUMNS:
            table.add_column(col.label)

        for branch in branches:
            table.add_row(
                escape(branch.name),
                "remote" if branch.is_remote else "local",
                SYMBOL_CURRENT_BRANCH if branch.is_current else SYMBOL_NO,
                SYMBOL_YES if branch.has_worktree else SYMBOL_NO,
                style=CLI_COLORS.get(get_branch_style_type(branch)),
            )

        self.console.print(table)
        self.console.print(
            f"\n{sum(1 for b in branches if b.is_remote)} remote, "
            f"{sum(1 for b in branches if not b.is_remote)} local, "
            f"{sum(1 for b in branches if b.has_worktree)} with worktrees"
        )

    def display_created_worktree(self, created: CreatedWorktree) -> None:
        self.console.print(f"[green]Created worktree at {escape(created.worktree_path)}[/green]")
        self.console.print(
            f"  based on {created.base_branch} @ {created.base_commit[:SHORT_SHA_LENGTH]}"
        )

    def display_conflict_report(self, report: ConflictReport, main_branch: str) -> None:
        """Display the outcome of a conflict check."""
        if not report.has_conflicts:
            if report.can_auto_merge:
                self.console.print(f"[green]No conflicts with {main_branch}[/green]")
            else:
                self.console.print("[yellow]Could not determine conflict status[/yellow]")
            return

        self.console.print(f"[red]Integrating {main_branch} would conflict[/red]")
        for path in report.conflicting_files or []:
            self.console.print(f"  [red]✗[/red] {escape(path)}")

        commits = report.conflicting_commits
        if commits is not None:
            self.console.print("\nCommits on this branch:")
            for line in commits.ours:
                self.console.print(f"  {line}", markup=False)
            self.console.print(f"\nCommits on {main_branch}:")
            for line in commits.theirs:
                self.console.print(f"  {line}", markup=False)

    def display_commits(self, commits: List[CommitInfo]) -> None:
        if not commits:
            self.console.print("[yellow]No commits[/yellow]")
            return

        table = Table()
        for col in COMMIT_COLUMNS:
            table.add_column(col.label)
        for commit in commits:
            table.add_row(
                commit.hash[:SHORT_SHA_LENGTH],
                commit.date,
                escape(commit.author),
                escape(commit.message),
                format_shortstat(commit),
            )
        self.console.print(table)

    def display_commands(self, commands: List[str]) -> None:
        for command in commands:
            style = "dim" if command.startswith("#") else "bold"
            self.console.print(f"[{style}]{escape(command)}[/{style}]")

    def display_error(self, error: Exception) -> None:
        """Print an error with the git diagnostics it carries."""
        if isinstance(error, GitOperationError):
            self.console.print(f"[red]Error: {escape(str(error))}[/red]", highlight=False)
            details = error.describe().split("\n", 1)
            if len(details) > 1:
                self.console.print(details[1], markup=False, highlight=False)
        else:
            self.console.print(f"[red]Error: {escape(str(error))}[/red]", highlight=False)
