"""Command-line argument parsing for git-worktree-keeper."""

import argparse
from git_worktree_keeper.__version__ import __version__


def _positive_float(value: str) -> float:
    number = float(value)
    if number <= 0:
        raise argparse.ArgumentTypeError(f"must be positive, got {value}")
    return number


def _add_worktree_argument(parser: argparse.ArgumentParser):
    parser.add_argument(
        "worktree",
        help="Worktree name (resolved under the worktree folder) or an absolute path",
    )


def _add_main_argument(parser: argparse.ArgumentParser):
    parser.add_argument(
        "--main",
        dest="main_branch",
        help="Main branch name (default: the branch checked out in the project)",
    )


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with one subcommand per operation."""
    parser = argparse.ArgumentParser(
        prog="git-worktree-keeper",
        description="Create git worktrees and integrate them safely into main",
        epilog="Main is only ever advanced with a fast-forward merge; "
        "conflicts are resolved inside the worktree.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Show verbose output")
    parser.add_argument(
        "--debug", action="store_true", help="Show debug information for troubleshooting"
    )
    parser.add_argument(
        "--version", action="version", version=f"git-worktree-keeper {__version__}"
    )
    parser.add_argument(
        "-C",
        "--project",
        default=".",
        help="Path to the main repository (default: current directory)",
    )
    parser.add_argument(
        "--worktree-folder",
        help="Folder for worktrees, relative to the project or absolute (default: worktrees)",
    )
    parser.add_argument(
        "--wsl-distro", help="Run git inside this WSL distribution instead of locally"
    )
    parser.add_argument("--remote", default="origin", help="Remote name (default: origin)")
    parser.add_argument(
        "--command-timeout",
        type=_positive_float,
        metavar="SECONDS",
        help="Kill git commands running longer than this",
    )
    parser.add_argument(
        "--lock-timeout",
        type=_positive_float,
        metavar="SECONDS",
        help="Give up waiting for a busy worktree after this long",
    )

    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")
    subparsers.required = True

    subparsers.add_parser("init", help="Create the worktree folder")

    create = subparsers.add_parser("create", help="Create a worktree")
    create.add_argument("name", help="Worktree name")
    create.add_argument("-b", "--branch", help="Branch name (default: the worktree name)")
    create.add_argument("--base", help="Base branch for a new branch (default: HEAD)")

    remove = subparsers.add_parser("remove", help="Remove a worktree")
    remove.add_argument("name", help="Worktree name")

    subparsers.add_parser("list", help="List worktrees")

    branches = subparsers.add_parser("branches", help="List remote and local branches")
    branches.add_argument(
        "--no-fetch", action="store_true", help="Skip fetching from remotes first"
    )

    subparsers.add_parser("main-branch", help="Show the project's main branch")

    conflicts = subparsers.add_parser(
        "conflicts", help="Check whether integrating main into a worktree would conflict"
    )
    _add_worktree_argument(conflicts)
    _add_main_argument(conflicts)

    rebase = subparsers.add_parser("rebase", help="Rebase a worktree onto main")
    _add_worktree_argument(rebase)
    _add_main_argument(rebase)
    rebase.add_argument(
        "--dry-run", action="store_true", help="Print the equivalent git commands only"
    )

    abort = subparsers.add_parser("abort-rebase", help="Abort a rebase in progress")
    _add_worktree_argument(abort)

    squash = subparsers.add_parser(
        "squash-merge", help="Squash a worktree's commits and fast-forward main to them"
    )
    _add_worktree_argument(squash)
    _add_main_argument(squash)
    squash.add_argument("-m", "--message", required=True, help="Squash commit message")
    squash.add_argument(
        "--footer", help="Footer appended to the squash commit message"
    )
    squash.add_argument(
        "--dry-run", action="store_true", help="Print the equivalent git commands only"
    )

    merge = subparsers.add_parser(
        "merge", help="Fast-forward main to a worktree, keeping its commits"
    )
    _add_worktree_argument(merge)
    _add_main_argument(merge)
    merge.add_argument(
        "--dry-run", action="store_true", help="Print the equivalent git commands only"
    )

    for name, help_text in (
        ("pull", "Pull into a worktree"),
        ("push", "Push a worktree branch, setting its upstream on first push"),
        ("fetch", "Fetch all remotes"),
        ("stash-pop", "Apply and drop the latest stash"),
    ):
        _add_worktree_argument(subparsers.add_parser(name, help=help_text))

    stash = subparsers.add_parser("stash", help="Stash uncommitted changes")
    _add_worktree_argument(stash)
    stash.add_argument("-m", "--message", help="Stash message")

    commit = subparsers.add_parser("commit", help="Stage everything and commit")
    _add_worktree_argument(commit)
    commit.add_argument("-m", "--message", required=True, help="Commit message")

    upstream = subparsers.add_parser("set-upstream", help="Set the branch's upstream")
    _add_worktree_argument(upstream)
    upstream.add_argument("remote_branch", help="Remote branch, e.g. origin/feature")

    log = subparsers.add_parser("log", help="Show recent commits of a worktree")
    _add_worktree_argument(log)
    log.add_argument("-n", "--count", type=int, default=20, help="Number of commits (default: 20)")

    return parser


def parse_args(argv=None):
    """Parse command-line arguments."""
    return build_parser().parse_args(argv)
