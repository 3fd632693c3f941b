"""Version of git-worktree-keeper, written by setuptools-scm at build time."""

try:
    from git_worktree_keeper._version import __version__
except ImportError:
    # Source checkout that was never installed
    __version__ = "0.1.0.dev0"
