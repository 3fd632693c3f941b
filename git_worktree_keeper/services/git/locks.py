"""Lock keys for serializing git operations.

Keys are scoped so operations on different worktrees or different projects
never wait on each other. The main key is only ever taken while already
holding a worktree key, never the other way round.
"""


def worktree_name_key(project_path: str, name: str) -> str:
    """Creating or removing the worktree called name in a project."""
    return f"worktree-{project_path}-{name}"


def worktree_key(worktree_path: str) -> str:
    """Any mutating command run inside one worktree."""
    return f"git-worktree-{worktree_path}"


def main_key(project_path: str) -> str:
    """Checking out and advancing main in the project root."""
    return f"git-main-{project_path}"
