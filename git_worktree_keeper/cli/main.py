"""Command-line interface for git-worktree-keeper"""

import asyncio
import os
import sys
from typing import Optional

from rich.console import Console
from rich.markup import escape

from git_worktree_keeper.cli.args import parse_args
from git_worktree_keeper.config import Config
from git_worktree_keeper.core import WorktreeManager
from git_worktree_keeper.exceptions import GitWorktreeKeeperError
from git_worktree_keeper.models.project import Project
from git_worktree_keeper.services.display_service import DisplayService
from git_worktree_keeper.utils.logging import setup_logging

console = Console()


def build_config(parsed_args) -> Config:
    """Build a Config from parsed arguments."""
    footer = getattr(parsed_args, "footer", None)
    return Config(
        worktree_folder=parsed_args.worktree_folder or "worktrees",
        remote_name=parsed_args.remote,
        enable_commit_footer=bool(footer),
        commit_footer=footer,
        command_timeout=parsed_args.command_timeout,
        lock_timeout=parsed_args.lock_timeout,
        fetch_on_list=not getattr(parsed_args, "no_fetch", False),
        verbose=parsed_args.verbose,
        debug=parsed_args.debug,
    )


def build_project(parsed_args) -> Project:
    # Under WSL the path lives inside the distribution and is used as given
    path = parsed_args.project if parsed_args.wsl_distro else os.path.abspath(parsed_args.project)
    return Project(
        path=path,
        worktree_folder=parsed_args.worktree_folder,
        wsl_distribution=parsed_args.wsl_distro,
    )


def resolve_worktree(manager: WorktreeManager, project: Project, value: str) -> str:
    """Turn a worktree name into its path; absolute paths pass through."""
    if manager.runner.context_for(project).is_absolute(value):
        return value
    return manager.worktree_path(project, value)


async def _main_branch(manager: WorktreeManager, project: Project, parsed_args) -> str:
    return parsed_args.main_branch or await manager.get_project_main_branch(project)


async def _branch_of(manager: WorktreeManager, project: Project, worktree_path: str) -> str:
    target = os.path.normpath(worktree_path)
    for worktree in await manager.list_worktrees(project):
        if os.path.normpath(worktree.path) == target:
            return worktree.branch_name
    return os.path.basename(target)


async def run_command(
    parsed_args, manager: WorktreeManager, project: Project, display: DisplayService
) -> int:
    """Run the selected subcommand. Returns the process exit code."""
    command = parsed_args.command
    out = display.console

    if command == "init":
        await manager.initialize_project(project)
        base_dir = manager.worktree_path(project, "").rstrip("/\\")
        out.print(f"[green]Worktree folder ready: {escape(base_dir)}[/green]", highlight=False)
    elif command == "create":
        created = await manager.create_worktree(
            project, parsed_args.name, parsed_args.branch, parsed_args.base
        )
        display.display_created_worktree(created)
    elif command == "remove":
        await manager.remove_worktree(project, parsed_args.name)
        out.print(f"[green]Removed worktree {escape(parsed_args.name)}[/green]")
    elif command == "list":
        display.display_worktrees(await manager.list_worktrees(project))
    elif command == "branches":
        display.display_branches(await manager.list_branches(project))
    elif command == "main-branch":
        out.print(await manager.get_project_main_branch(project))
    else:
        return await _run_worktree_command(parsed_args, manager, project, display)
    return 0


async def _run_worktree_command(
    parsed_args, manager: WorktreeManager, project: Project, display: DisplayService
) -> int:
    command = parsed_args.command
    out = display.console
    path = resolve_worktree(manager, project, parsed_args.worktree)

    if command == "conflicts":
        main_branch = await _main_branch(manager, project, parsed_args)
        report = await manager.check_for_rebase_conflicts(path, main_branch, project)
        display.display_conflict_report(report, main_branch)
        return 1 if report.has_conflicts else 0

    if command in ("rebase", "squash-merge", "merge"):
        main_branch = await _main_branch(manager, project, parsed_args)
        if parsed_args.dry_run:
            if command == "rebase":
                commands = manager.generate_rebase_commands(main_branch)
            else:
                branch_name = await _branch_of(manager, project, path)
                if command == "merge":
                    commands = manager.generate_merge_commands(main_branch, branch_name)
                else:
                    commands = manager.generate_squash_commands(main_branch, branch_name)
            display.display_commands(commands)
            return 0

        if command == "rebase":
            await manager.rebase_main_into_worktree(path, main_branch, project)
            out.print(f"[green]Rebased {escape(path)} onto {main_branch}[/green]")
        elif command == "squash-merge":
            await manager.squash_and_merge_worktree_to_main(
                project, path, main_branch, parsed_args.message
            )
            out.print(f"[green]Squashed and fast-forwarded {main_branch}[/green]")
        else:
            await manager.merge_worktree_to_main(project, path, main_branch)
            out.print(f"[green]Fast-forwarded {main_branch}[/green]")
        return 0

    if command == "abort-rebase":
        await manager.abort_rebase(path, project)
        out.print("[green]Rebase aborted[/green]")
    elif command == "log":
        display.display_commits(await manager.get_last_commits(path, parsed_args.count, project))
    else:
        output = await _run_sync_command(parsed_args, manager, project, path)
        out.print(output.rstrip(), markup=False, highlight=False)
    return 0


async def _run_sync_command(
    parsed_args, manager: WorktreeManager, project: Project, path: str
) -> str:
    command = parsed_args.command
    if command == "pull":
        return await manager.git_pull(path, project)
    if command == "push":
        return await manager.git_push(path, project)
    if command == "fetch":
        return await manager.git_fetch(path, project)
    if command == "stash":
        return await manager.git_stash(path, parsed_args.message, project)
    if command == "stash-pop":
        return await manager.git_stash_pop(path, project)
    if command == "commit":
        return await manager.git_stage_all_and_commit(path, parsed_args.message, project)
    if command == "set-upstream":
        return await manager.set_upstream(path, parsed_args.remote_branch, project)
    raise ValueError(f"Unknown command: {command}")


def main(argv: Optional[list] = None) -> int:
    """Main entry point for the application."""
    parsed_args = parse_args(argv)
    setup_logging(verbose=parsed_args.verbose, debug=parsed_args.debug)
    display = DisplayService(console)

    try:
        config = build_config(parsed_args)

        if parsed_args.debug:
            console.print("[yellow]Debug mode enabled[/yellow]")
            console.print("[yellow]Configuration:[/yellow]")
            for key, value in config.to_dict().items():
                console.print(f"  {key}: {value}")

        manager = WorktreeManager(config)
        project = build_project(parsed_args)
        return asyncio.run(run_command(parsed_args, manager, project, display))
    except KeyboardInterrupt:
        console.print("\n[yellow]Operation cancelled by user[/yellow]")
        return 1
    except (GitWorktreeKeeperError, ValueError) as e:
        display.display_error(e)
        if parsed_args.debug:
            console.print_exception()
        return 1


if __name__ == "__main__":
    sys.exit(main())
